# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Backup Verification - Integrity and compliance checks on artifacts.

A COMPLETED backup is promoted to VERIFIED only when every check passes:

- file_not_found          the artifact exists on disk
- checksum_mismatch       SHA-256 of the artifact equals the stored digest
- size_mismatch           on-disk size equals the stored size
- not_encrypted           the record is flagged encrypted
- missing_version_marker  metadata carries ``backup_version``
- retention_exceeded      the backup is no older than the retention window
"""

from datetime import datetime, timedelta, UTC
from enum import Enum
from pathlib import Path
from typing import Dict, List

import structlog

from dbvault.codec.checksum import verify_checksum
from dbvault.config import DBVaultConfig
from dbvault.exceptions import NotFoundError, PreconditionError, VerificationError
from dbvault.models import BackupRecord, BackupStatus
from dbvault.vault import RecordStore

logger = structlog.get_logger()


class VerificationCondition(str, Enum):
    """Names of the individual verification checks."""

    FILE_NOT_FOUND = "file_not_found"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    SIZE_MISMATCH = "size_mismatch"
    NOT_ENCRYPTED = "not_encrypted"
    MISSING_VERSION_MARKER = "missing_version_marker"
    RETENTION_EXCEEDED = "retention_exceeded"


class BackupVerificationService:
    """Promotes COMPLETED backups to VERIFIED."""

    def __init__(self, config: DBVaultConfig, store: RecordStore):
        self.config = config
        self.store = store

    async def _failed_conditions(self, backup: BackupRecord) -> List[VerificationCondition]:
        failures: List[VerificationCondition] = []
        artifact = Path(backup.backup_path) if backup.backup_path else None

        # Integrity checks need the file; without it they cannot be evaluated
        if artifact is None or not artifact.is_file():
            failures.append(VerificationCondition.FILE_NOT_FOUND)
        else:
            if not await verify_checksum(artifact, backup.checksum):
                failures.append(VerificationCondition.CHECKSUM_MISMATCH)
            if artifact.stat().st_size != backup.backup_size:
                failures.append(VerificationCondition.SIZE_MISMATCH)

        # Compliance checks
        if not backup.encrypted:
            failures.append(VerificationCondition.NOT_ENCRYPTED)

        if not backup.metadata or not backup.metadata.get("backup_version"):
            failures.append(VerificationCondition.MISSING_VERSION_MARKER)

        age = datetime.now(UTC) - backup.started_at
        if age > timedelta(days=self.config.retention_days):
            failures.append(VerificationCondition.RETENTION_EXCEEDED)

        return failures

    async def verify_backup(self, backup_id: str, verified_by: str = "system") -> BackupRecord:
        """
        Verify one backup and promote it to VERIFIED.

        Args:
            backup_id: Backup to verify
            verified_by: Operator recorded on success

        Returns:
            The VERIFIED record

        Raises:
            NotFoundError: Unknown backup id
            PreconditionError: Backup is not COMPLETED
            VerificationError: One or more checks failed; record stays COMPLETED
        """
        backup = await self.store.get_backup(backup_id)
        if backup is None:
            raise NotFoundError("Backup not found", details={"backup_id": backup_id})

        if backup.status != BackupStatus.COMPLETED:
            raise PreconditionError(
                "Backup is not in completed state",
                details={"backup_id": backup_id, "status": backup.status.value},
            )

        failures = await self._failed_conditions(backup)

        if failures:
            if backup.compliant:
                backup.compliant = False
                await self.store.save_backup(backup)

            conditions = [f.value for f in failures]
            logger.error(
                "backup_verification_failed",
                backup_id=backup_id,
                conditions=conditions,
            )
            raise VerificationError(
                f"Backup verification failed: {', '.join(conditions)}",
                conditions=conditions,
                details={"backup_id": backup_id},
            )

        backup.mark_verified(verified_by)
        await self.store.save_backup(backup)

        logger.info("backup_verified", backup_id=backup_id, verified_by=verified_by)
        return backup

    async def verify_recent_backups(self, limit: int | None = None) -> Dict[str, object]:
        """
        Verify the most recent COMPLETED backups, each independently.

        Returns:
            {"verified": [ids], "failed": {id: error message}}
        """
        batch = await self.store.list_backups(
            status=BackupStatus.COMPLETED,
            limit=limit or self.config.verification_batch_size,
            order_by="completed_at",
        )

        verified: List[str] = []
        failed: Dict[str, str] = {}

        for backup in batch:
            try:
                await self.verify_backup(backup.id)
                verified.append(backup.id)
            except Exception as e:
                failed[backup.id] = str(e)
                logger.error(
                    "scheduled_verification_failed",
                    backup_id=backup.id,
                    error=str(e),
                )

        logger.info(
            "verification_sweep_complete",
            checked=len(batch),
            verified=len(verified),
            failed=len(failed),
        )
        return {"verified": verified, "failed": failed}

    async def get_verification_status(self) -> Dict[str, int]:
        return {
            "total_backups": await self.store.count_backups(),
            "verified_backups": await self.store.count_backups(BackupStatus.VERIFIED),
            "unverified_backups": await self.store.count_backups(BackupStatus.COMPLETED),
            "failed_backups": await self.store.count_backups(BackupStatus.FAILED),
        }
