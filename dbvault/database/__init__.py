# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Database Tooling Port - Dump, restore and scratch-database management.

The backup and recovery components only talk to the database through this
narrow interface, so tests can substitute an in-memory implementation.
"""

from datetime import datetime
from pathlib import Path
from typing import Protocol

from dbvault.config import DatabaseBackend, DatabaseConfig
from dbvault.exceptions import ConfigurationError


class DatabaseTool(Protocol):
    """Capabilities the backup subsystem needs from the primary database."""

    async def dump(self, output_path: Path, since: datetime | None = None) -> Path:
        """
        Write a dump of the database to output_path.

        Args:
            output_path: Destination file
            since: For incremental backups, only changes after this instant
        """
        ...

    async def restore(self, dump_path: Path, database: str, clean: bool) -> None:
        """Restore a dump into database; ``clean`` drops and recreates objects."""
        ...

    async def create_database(self, name: str) -> None: ...

    async def drop_database(self, name: str) -> None: ...

    async def count_tables(self, database: str) -> int: ...


def create_database_tool(database: DatabaseConfig) -> DatabaseTool:
    """
    Build the tool for the configured backend.

    Raises:
        ConfigurationError: If the backend is unsupported
    """
    if database.backend == DatabaseBackend.POSTGRES:
        from dbvault.database.postgres import PostgresTool

        return PostgresTool(database)
    raise ConfigurationError(f"Unsupported database backend: {database.backend}")


__all__ = [
    "DatabaseTool",
    "create_database_tool",
]
