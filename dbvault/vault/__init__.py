# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Record Vault - Persistence boundary for backup records and recovery tests.
"""

from datetime import datetime
from typing import List, Protocol

from dbvault.models import BackupRecord, BackupStatus, BackupType, RecoveryTest


class RecordStore(Protocol):
    """Repository the backup subsystem persists its two record types through."""

    async def save_backup(self, record: BackupRecord) -> None: ...

    async def get_backup(self, backup_id: str) -> BackupRecord | None: ...

    async def delete_backup(self, backup_id: str) -> bool: ...

    async def find_latest_backup(
        self, backup_type: BackupType, status: BackupStatus
    ) -> BackupRecord | None: ...

    async def list_backups(
        self,
        status: BackupStatus | None = None,
        backup_type: BackupType | None = None,
        started_after: datetime | None = None,
        started_before: datetime | None = None,
        limit: int | None = None,
        newest_first: bool = True,
        order_by: str = "started_at",
    ) -> List[BackupRecord]: ...

    async def count_backups(self, status: BackupStatus | None = None) -> int: ...

    async def save_recovery_test(self, test: RecoveryTest) -> None: ...

    async def get_recovery_test(self, test_id: str) -> RecoveryTest | None: ...

    async def list_recovery_tests(self, limit: int = 50) -> List[RecoveryTest]: ...

    async def get_latest_recovery_test(self) -> RecoveryTest | None: ...


from dbvault.vault.sqlite_store import SQLiteRecordStore, init_record_db  # noqa: E402

__all__ = [
    "RecordStore",
    "SQLiteRecordStore",
    "init_record_db",
]
