# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Compression - gzip stage of the artifact pipeline.

The pipeline compresses *after* encryption. Ciphertext barely compresses,
but the ``.raw.enc.gz`` artifact format depends on this order.
"""

import asyncio
import gzip
import zlib
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import aiofiles
import structlog

from dbvault.exceptions import IntegrityError

logger = structlog.get_logger()

# Thread pool for CPU-bound compression
_executor = ThreadPoolExecutor(max_workers=2)

DEFAULT_GZIP_LEVEL = 9


def compress(data: bytes, level: int = DEFAULT_GZIP_LEVEL) -> bytes:
    """Compress bytes into a gzip member."""
    return gzip.compress(data, compresslevel=level)


def decompress(data: bytes) -> bytes:
    """
    Decompress gzip bytes.

    Raises:
        IntegrityError: If the input is not a valid gzip stream
    """
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise IntegrityError(f"Artifact is not a valid gzip stream: {e}") from e


async def compress_file(
    source: Path,
    destination: Path,
    level: int = DEFAULT_GZIP_LEVEL,
) -> Path:
    """Compress a file; the destination appears atomically via rename."""
    async with aiofiles.open(source, "rb") as f:
        raw = await f.read()

    loop = asyncio.get_running_loop()
    compressed = await loop.run_in_executor(_executor, compress, raw, level)

    temp_path = destination.with_name(destination.name + ".tmp")
    async with aiofiles.open(temp_path, "wb") as f:
        await f.write(compressed)
    temp_path.rename(destination)

    logger.debug(
        "compression_complete",
        destination=str(destination),
        original_size=len(raw),
        compressed_size=len(compressed),
    )
    return destination


async def decompress_file(source: Path, destination: Path) -> Path:
    """Decompress a gzip file into destination."""
    async with aiofiles.open(source, "rb") as f:
        data = await f.read()

    loop = asyncio.get_running_loop()
    raw = await loop.run_in_executor(_executor, decompress, data)

    async with aiofiles.open(destination, "wb") as f:
        await f.write(raw)

    logger.debug("decompression_complete", destination=str(destination), size=len(raw))
    return destination
