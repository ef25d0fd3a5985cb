# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Artifacts - Naming and scoped cleanup of backup files.

Artifact suffix chain:

    {kind}_backup_{timestamp}.raw          dump output
    {kind}_backup_{timestamp}.raw.enc      after encryption
    {kind}_backup_{timestamp}.raw.enc.gz   after compression (stored path)
"""

from contextlib import asynccontextmanager
from datetime import datetime, UTC
from pathlib import Path
from typing import AsyncIterator, Iterable, List

import structlog

from dbvault.exceptions import CleanupWarning
from dbvault.models import BackupType

logger = structlog.get_logger()

RAW_SUFFIX = ".raw"
ENCRYPTED_SUFFIX = ".raw.enc"
COMPRESSED_SUFFIX = ".raw.enc.gz"


def format_timestamp(moment: datetime) -> str:
    """
    Render a UTC instant for use in a file name.

    ``2026-10-18T02:00:00.123Z`` becomes ``2026-10-18T02-00-00-123Z``.
    """
    moment = moment.astimezone(UTC)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def artifact_basename(backup_type: BackupType, moment: datetime | None = None) -> str:
    """Base file name (no suffix) for a new backup artifact."""
    return f"{backup_type.value}_backup_{format_timestamp(moment or datetime.now(UTC))}"


def artifact_paths(backup_dir: Path, basename: str) -> tuple[Path, Path, Path]:
    """Return the (raw, encrypted, compressed) paths for a base name."""
    return (
        backup_dir / f"{basename}{RAW_SUFFIX}",
        backup_dir / f"{basename}{ENCRYPTED_SUFFIX}",
        backup_dir / f"{basename}{COMPRESSED_SUFFIX}",
    )


def remove_quietly(paths: Iterable[Path]) -> List[Path]:
    """
    Best-effort unlink of each path.

    Failures are logged as CleanupWarning and never raised.

    Returns:
        Paths that were actually removed
    """
    removed: List[Path] = []
    for path in paths:
        try:
            path.unlink()
            removed.append(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            warning = CleanupWarning(
                f"Failed to remove temporary file: {e}",
                details={"path": str(path)},
            )
            logger.warning("cleanup_warning", error=str(warning))
    return removed


@asynccontextmanager
async def temp_files(*paths: Path) -> AsyncIterator[List[Path]]:
    """
    Scope a set of temporary files.

    The yielded list may be appended to; every listed path is removed on
    exit, including exits by exception.
    """
    tracked: List[Path] = list(paths)
    try:
        yield tracked
    finally:
        removed = remove_quietly(tracked)
        if removed:
            logger.debug("temp_files_removed", count=len(removed))
