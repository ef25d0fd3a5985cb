# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Models - Backup and recovery-test records.

Records carry their own lifecycle rules: status changes go through the
``mark_*`` methods, which refuse transitions the lifecycle does not allow.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict

from ulid import ULID

from dbvault.exceptions import PreconditionError


class BackupType(str, Enum):
    """Kind of backup."""

    FULL = "full"
    INCREMENTAL = "incremental"
    DIFFERENTIAL = "differential"


class BackupStatus(str, Enum):
    """Lifecycle state of a backup record."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    VERIFIED = "verified"


class RecoveryTestStatus(str, Enum):
    """Lifecycle state of a recovery test."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"


class RecoveryTestType(str, Enum):
    """Rehearsal into a scratch database, or a real restore."""

    VALIDATION = "validation"
    FULL_RECOVERY = "full_recovery"


_BACKUP_TRANSITIONS = {
    BackupStatus.PENDING: {BackupStatus.IN_PROGRESS},
    BackupStatus.IN_PROGRESS: {BackupStatus.COMPLETED, BackupStatus.FAILED},
    BackupStatus.COMPLETED: {BackupStatus.VERIFIED},
    BackupStatus.FAILED: set(),
    BackupStatus.VERIFIED: set(),
}


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(ULID())


def _iso(value: datetime | None) -> str | None:
    return value.isoformat(timespec="microseconds") if value else None


@dataclass
class BackupRecord:
    """One backup attempt and, once COMPLETED, its artifact."""

    backup_type: BackupType
    id: str = field(default_factory=new_id)
    status: BackupStatus = BackupStatus.PENDING
    backup_path: str | None = None
    backup_size: int | None = None
    checksum: str | None = None
    encrypted: bool = False
    compressed: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    duration_seconds: int | None = None
    compliant: bool = False
    verified_at: datetime | None = None
    verified_by: str | None = None

    def _advance(self, target: BackupStatus) -> None:
        if target not in _BACKUP_TRANSITIONS[self.status]:
            raise PreconditionError(
                f"Backup cannot move from {self.status.value} to {target.value}",
                details={"backup_id": self.id},
            )
        self.status = target

    def mark_in_progress(self) -> None:
        self._advance(BackupStatus.IN_PROGRESS)

    def mark_completed(self, backup_path: str, backup_size: int, checksum: str) -> None:
        """Attach the finished artifact and close the attempt."""
        self._advance(BackupStatus.COMPLETED)
        self.backup_path = backup_path
        self.backup_size = backup_size
        self.checksum = checksum
        self._finish()

    def mark_failed(self, error_message: str) -> None:
        """Close the attempt as failed; a failed record never points at an artifact."""
        self._advance(BackupStatus.FAILED)
        self.error_message = error_message
        self.backup_path = None
        self.backup_size = None
        self.checksum = None
        self._finish()

    def mark_verified(self, verified_by: str) -> None:
        self._advance(BackupStatus.VERIFIED)
        self.verified_at = utcnow()
        self.verified_by = verified_by
        self.compliant = True

    def _finish(self) -> None:
        self.completed_at = utcnow()
        self.duration_seconds = int((self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "backup_type": self.backup_type.value,
            "status": self.status.value,
            "backup_path": self.backup_path,
            "backup_size": self.backup_size,
            "checksum": self.checksum,
            "encrypted": self.encrypted,
            "compressed": self.compressed,
            "metadata": self.metadata,
            "error_message": self.error_message,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "duration_seconds": self.duration_seconds,
            "compliant": self.compliant,
            "verified_at": _iso(self.verified_at),
            "verified_by": self.verified_by,
        }


@dataclass
class RecoveryTest:
    """One recovery drill (validation) or real recovery."""

    backup_id: str
    test_type: RecoveryTestType
    tested_by: str
    id: str = field(default_factory=new_id)
    status: RecoveryTestStatus = RecoveryTestStatus.IN_PROGRESS
    results: Dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    duration_seconds: int | None = None
    notes: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (RecoveryTestStatus.PASSED, RecoveryTestStatus.FAILED)

    def _close(self, status: RecoveryTestStatus) -> None:
        if self.is_terminal:
            raise PreconditionError(
                f"Recovery test already finished as {self.status.value}",
                details={"recovery_test_id": self.id},
            )
        self.status = status
        self.completed_at = utcnow()
        self.duration_seconds = int((self.completed_at - self.started_at).total_seconds())

    def mark_passed(self, results: Dict[str, Any]) -> None:
        self._close(RecoveryTestStatus.PASSED)
        self.results = dict(results)

    def mark_failed(self, error_message: str, results: Dict[str, Any]) -> None:
        self._close(RecoveryTestStatus.FAILED)
        self.error_message = error_message
        self.results = dict(results)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "backup_id": self.backup_id,
            "status": self.status.value,
            "test_type": self.test_type.value,
            "results": self.results,
            "error_message": self.error_message,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "duration_seconds": self.duration_seconds,
            "tested_by": self.tested_by,
            "notes": self.notes,
        }
