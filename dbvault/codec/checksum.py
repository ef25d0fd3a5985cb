# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Checksum - SHA-256 content digests for backup artifacts.
"""

import hashlib
from pathlib import Path

import aiofiles
import structlog

logger = structlog.get_logger()

CHUNK_SIZE = 1024 * 1024


def digest(data: bytes) -> str:
    """Lowercase hex SHA-256 of data."""
    return hashlib.sha256(data).hexdigest()


async def digest_file(path: Path) -> str:
    """
    Stream a file through SHA-256.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    sha = hashlib.sha256()
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(CHUNK_SIZE)
            if not chunk:
                break
            sha.update(chunk)
    return sha.hexdigest()


async def verify_checksum(path: Path, expected: str | None) -> bool:
    """
    Recompute a file's digest and compare it byte-for-byte with expected.

    A missing file or a missing expected digest never verifies.
    """
    if not expected:
        return False

    try:
        actual = await digest_file(path)
    except FileNotFoundError:
        logger.error("checksum_file_missing", path=str(path))
        return False

    if actual != expected:
        logger.error(
            "checksum_mismatch",
            path=str(path),
            expected=expected,
            actual=actual,
        )
        return False

    return True
