# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
PostgreSQL Tooling - Dump/restore through pg_dump and pg_restore.

Dumps and restores run as subprocesses (custom archive format). Scratch
database management and sanity queries go through asyncpg against the
maintenance database.
"""

import asyncio
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import structlog

from dbvault.config import DatabaseConfig
from dbvault.exceptions import ExternalToolError

logger = structlog.get_logger()

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def _quote_identifier(name: str) -> str:
    """Quote a database name after checking it is a plain identifier."""
    if not _IDENTIFIER.match(name):
        raise ExternalToolError(f"Refusing unsafe database name: {name!r}")
    return f'"{name}"'


class PostgresTool:
    """DatabaseTool implementation for PostgreSQL."""

    def __init__(self, database: DatabaseConfig):
        self.database = database

    def _binary(self, name: str) -> str:
        if self.database.bin_dir:
            return str(self.database.bin_dir / name)
        return name

    def _env(self) -> Dict[str, str]:
        env = dict(os.environ)
        if self.database.password:
            env["PGPASSWORD"] = self.database.password
        return env

    def _connection_args(self) -> List[str]:
        return [
            "-h", self.database.host,
            "-p", str(self.database.port),
            "-U", self.database.user,
        ]

    async def _run(self, args: List[str], action: str) -> str:
        """Run a tool to completion and return stdout; non-zero exit raises."""
        logger.debug("external_tool_started", action=action, tool=args[0])
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env(),
            )
        except FileNotFoundError as e:
            raise ExternalToolError(
                f"{action} failed: {args[0]} not found",
                details={"tool": args[0]},
            ) from e

        stdout, stderr = await process.communicate()

        if process.returncode != 0:
            raise ExternalToolError(
                f"{action} failed with exit code {process.returncode}",
                returncode=process.returncode,
                stderr=stderr.decode("utf-8", errors="replace"),
                details={"tool": args[0]},
            )

        return stdout.decode("utf-8", errors="replace")

    async def _connect(self, database: str) -> Any:
        import asyncpg

        try:
            return await asyncpg.connect(
                host=self.database.host,
                port=self.database.port,
                user=self.database.user,
                password=self.database.password,
                database=database,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise ExternalToolError(
                f"Could not connect to database {database}: {e}",
                details={"database": database},
            ) from e

    async def _admin_execute(self, statement: str, action: str) -> None:
        import asyncpg

        conn = await self._connect(self.database.maintenance_db)
        try:
            await conn.execute(statement)
        except asyncpg.PostgresError as e:
            raise ExternalToolError(f"{action} failed: {e}") from e
        finally:
            await conn.close()

    async def dump(self, output_path: Path, since: datetime | None = None) -> Path:
        """
        Write a custom-format dump of the configured database.

        pg_dump has no row-level change filter, so an incremental request
        still produces a complete snapshot; ``since`` is recorded in the log.
        """
        if since is not None:
            logger.info(
                "incremental_dump_full_snapshot",
                database=self.database.name,
                since=since.isoformat(),
            )

        await self._run(
            [
                self._binary("pg_dump"),
                *self._connection_args(),
                "-d", self.database.name,
                "--format=custom",
                "--clean",
                "--no-owner",
                "--no-privileges",
                f"--file={output_path}",
            ],
            action="pg_dump",
        )

        logger.info("database_dumped", database=self.database.name, path=str(output_path))
        return output_path

    async def restore(self, dump_path: Path, database: str, clean: bool) -> None:
        """
        Restore a custom-format dump into database.

        With ``clean`` existing objects are dropped and recreated.
        """
        args = [
            self._binary("pg_restore"),
            *self._connection_args(),
            "-d", database,
            "--no-owner",
        ]
        if clean:
            args += ["--clean", "--if-exists"]
        args.append(str(dump_path))

        await self._run(args, action="pg_restore")
        logger.info("database_restored", database=database, clean=clean)

    async def create_database(self, name: str) -> None:
        await self._admin_execute(
            f"CREATE DATABASE {_quote_identifier(name)}", action="create database"
        )
        logger.info("database_created", database=name)

    async def drop_database(self, name: str) -> None:
        await self._admin_execute(
            f"DROP DATABASE IF EXISTS {_quote_identifier(name)}", action="drop database"
        )
        logger.info("database_dropped", database=name)

    async def count_tables(self, database: str) -> int:
        """Schema sanity query: number of tables in the public schema."""
        import asyncpg

        conn = await self._connect(database)
        try:
            count = await conn.fetchval(
                "SELECT COUNT(*) FROM information_schema.tables "
                "WHERE table_schema = 'public'"
            )
        except asyncpg.PostgresError as e:
            raise ExternalToolError(f"Sanity query failed: {e}") from e
        finally:
            await conn.close()

        return int(count or 0)
