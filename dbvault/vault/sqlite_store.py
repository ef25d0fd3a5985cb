# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault SQLite Store - Persistence for backup records and recovery tests.

Each call opens its own short-lived connection, so the store can be shared
between request handlers, background tasks and scheduled jobs.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, List

import aiosqlite
import structlog

from dbvault.exceptions import RecordStoreError
from dbvault.models import (
    BackupRecord,
    BackupStatus,
    BackupType,
    RecoveryTest,
    RecoveryTestStatus,
    RecoveryTestType,
)

logger = structlog.get_logger()

_BACKUP_COLUMNS = """
    id, backup_type, status, backup_path, backup_size, checksum, encrypted,
    compressed, metadata, error_message, started_at, completed_at,
    duration_seconds, compliant, verified_at, verified_by
"""

_RECOVERY_COLUMNS = """
    id, backup_id, status, test_type, results, error_message, started_at,
    completed_at, duration_seconds, tested_by, notes
"""

_ORDERABLE = {"started_at", "completed_at"}


async def init_record_db(db_path: Path) -> None:
    """
    Initialize the record database schema.

    Creates tables if they don't exist. This is idempotent.

    Args:
        db_path: Path to the SQLite database file
    """
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS backup_records (
                    id TEXT PRIMARY KEY,
                    backup_type TEXT NOT NULL,
                    status TEXT NOT NULL,
                    backup_path TEXT,
                    backup_size INTEGER,
                    checksum TEXT,
                    encrypted INTEGER NOT NULL DEFAULT 0,
                    compressed INTEGER NOT NULL DEFAULT 0,
                    metadata TEXT NOT NULL,
                    error_message TEXT,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    duration_seconds INTEGER,
                    compliant INTEGER NOT NULL DEFAULT 0,
                    verified_at TEXT,
                    verified_by TEXT
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS recovery_tests (
                    id TEXT PRIMARY KEY,
                    backup_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    test_type TEXT NOT NULL,
                    results TEXT NOT NULL,
                    error_message TEXT,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    duration_seconds INTEGER,
                    tested_by TEXT NOT NULL,
                    notes TEXT,
                    FOREIGN KEY (backup_id) REFERENCES backup_records(id)
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_backup_records_started_at
                ON backup_records(started_at)
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_backup_records_status
                ON backup_records(status, backup_type)
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_recovery_tests_started_at
                ON recovery_tests(started_at)
            """)

            await db.commit()

        logger.info("record_db_initialized", db_path=str(db_path))

    except Exception as e:
        raise RecordStoreError(
            f"Failed to initialize record database: {e}",
            details={"db_path": str(db_path)},
        )


def _ts(value: datetime | None) -> str | None:
    return value.isoformat(timespec="microseconds") if value else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_backup(row: Any) -> BackupRecord:
    return BackupRecord(
        id=row[0],
        backup_type=BackupType(row[1]),
        status=BackupStatus(row[2]),
        backup_path=row[3],
        backup_size=row[4],
        checksum=row[5],
        encrypted=bool(row[6]),
        compressed=bool(row[7]),
        metadata=json.loads(row[8]),
        error_message=row[9],
        started_at=_parse_ts(row[10]),
        completed_at=_parse_ts(row[11]),
        duration_seconds=row[12],
        compliant=bool(row[13]),
        verified_at=_parse_ts(row[14]),
        verified_by=row[15],
    )


def _row_to_recovery_test(row: Any) -> RecoveryTest:
    return RecoveryTest(
        id=row[0],
        backup_id=row[1],
        status=RecoveryTestStatus(row[2]),
        test_type=RecoveryTestType(row[3]),
        results=json.loads(row[4]),
        error_message=row[5],
        started_at=_parse_ts(row[6]),
        completed_at=_parse_ts(row[7]),
        duration_seconds=row[8],
        tested_by=row[9],
        notes=row[10],
    )


class SQLiteRecordStore:
    """RecordStore backed by a local SQLite file."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    async def initialize(self) -> None:
        await init_record_db(self.db_path)

    # ------------------------------------------------------------------
    # Backup records
    # ------------------------------------------------------------------

    async def save_backup(self, record: BackupRecord) -> None:
        """Insert or replace a backup record."""
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    f"""
                    INSERT OR REPLACE INTO backup_records ({_BACKUP_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.backup_type.value,
                        record.status.value,
                        record.backup_path,
                        record.backup_size,
                        record.checksum,
                        int(record.encrypted),
                        int(record.compressed),
                        json.dumps(record.metadata, default=str),
                        record.error_message,
                        _ts(record.started_at),
                        _ts(record.completed_at),
                        record.duration_seconds,
                        int(record.compliant),
                        _ts(record.verified_at),
                        record.verified_by,
                    ),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise RecordStoreError(
                f"Failed to save backup record: {e}",
                details={"backup_id": record.id},
            )

        logger.debug("backup_record_saved", backup_id=record.id, status=record.status.value)

    async def get_backup(self, backup_id: str) -> BackupRecord | None:
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                f"SELECT {_BACKUP_COLUMNS} FROM backup_records WHERE id = ?",
                (backup_id,),
            ) as cursor:
                row = await cursor.fetchone()
                return _row_to_backup(row) if row else None

    async def delete_backup(self, backup_id: str) -> bool:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM backup_records WHERE id = ?",
                (backup_id,),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def find_latest_backup(
        self,
        backup_type: BackupType,
        status: BackupStatus,
    ) -> BackupRecord | None:
        """Most recently started backup of the given kind and status."""
        records = await self.list_backups(
            status=status, backup_type=backup_type, limit=1
        )
        return records[0] if records else None

    async def list_backups(
        self,
        status: BackupStatus | None = None,
        backup_type: BackupType | None = None,
        started_after: datetime | None = None,
        started_before: datetime | None = None,
        limit: int | None = None,
        newest_first: bool = True,
        order_by: str = "started_at",
    ) -> List[BackupRecord]:
        """
        List backup records with optional filters.

        Args:
            status: Only records in this status
            backup_type: Only records of this kind
            started_after: Only records started at or after this instant
            started_before: Only records started strictly before this instant
            limit: Maximum number of records
            newest_first: Sort direction
            order_by: 'started_at' or 'completed_at'

        Returns:
            List of backup records
        """
        if order_by not in _ORDERABLE:
            raise RecordStoreError(f"Unsupported order column: {order_by}")

        query = f"SELECT {_BACKUP_COLUMNS} FROM backup_records WHERE 1 = 1"
        params: List[Any] = []

        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        if backup_type is not None:
            query += " AND backup_type = ?"
            params.append(backup_type.value)
        if started_after is not None:
            query += " AND started_at >= ?"
            params.append(_ts(started_after))
        if started_before is not None:
            query += " AND started_at < ?"
            params.append(_ts(started_before))

        query += f" ORDER BY {order_by} {'DESC' if newest_first else 'ASC'}"

        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        records: List[BackupRecord] = []

        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(query, params) as cursor:
                async for row in cursor:
                    records.append(_row_to_backup(row))

        return records

    async def count_backups(self, status: BackupStatus | None = None) -> int:
        query = "SELECT COUNT(*) FROM backup_records"
        params: List[Any] = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)

        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    # ------------------------------------------------------------------
    # Recovery tests
    # ------------------------------------------------------------------

    async def save_recovery_test(self, test: RecoveryTest) -> None:
        """Insert or replace a recovery test."""
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    f"""
                    INSERT OR REPLACE INTO recovery_tests ({_RECOVERY_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        test.id,
                        test.backup_id,
                        test.status.value,
                        test.test_type.value,
                        json.dumps(test.results, default=str),
                        test.error_message,
                        _ts(test.started_at),
                        _ts(test.completed_at),
                        test.duration_seconds,
                        test.tested_by,
                        test.notes,
                    ),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise RecordStoreError(
                f"Failed to save recovery test: {e}",
                details={"recovery_test_id": test.id},
            )

        logger.debug(
            "recovery_test_saved",
            recovery_test_id=test.id,
            status=test.status.value,
        )

    async def get_recovery_test(self, test_id: str) -> RecoveryTest | None:
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                f"SELECT {_RECOVERY_COLUMNS} FROM recovery_tests WHERE id = ?",
                (test_id,),
            ) as cursor:
                row = await cursor.fetchone()
                return _row_to_recovery_test(row) if row else None

    async def list_recovery_tests(self, limit: int = 50) -> List[RecoveryTest]:
        tests: List[RecoveryTest] = []

        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                f"""
                SELECT {_RECOVERY_COLUMNS} FROM recovery_tests
                ORDER BY started_at DESC
                LIMIT ?
                """,
                (limit,),
            ) as cursor:
                async for row in cursor:
                    tests.append(_row_to_recovery_test(row))

        return tests

    async def get_latest_recovery_test(self) -> RecoveryTest | None:
        tests = await self.list_recovery_tests(limit=1)
        return tests[0] if tests else None
