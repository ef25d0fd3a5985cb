# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Backup Orchestrator - Full and incremental backup pipelines.

Every backup runs the same pipeline:

1. Dump the database through the DatabaseTool port   -> .raw
2. Encrypt (AES-256-GCM envelope), drop plaintext     -> .raw.enc
3. Compress (gzip)                                    -> .raw.enc.gz
4. Checksum (SHA-256) and stat the final artifact
5. Record COMPLETED with path/size/checksum

Any failing step, the COMPLETED write included, removes the artifacts,
marks the record FAILED and stops; nothing is retried
within the same invocation.
"""

from dataclasses import replace
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import List, Tuple

import structlog

from dbvault.backup.artifacts import (
    artifact_basename,
    artifact_paths,
    remove_quietly,
)
from dbvault.codec.checksum import digest_file
from dbvault.codec.compression import compress_file
from dbvault.codec.crypto import encrypt_file
from dbvault.config import DBVaultConfig
from dbvault.database import DatabaseTool
from dbvault.exceptions import NotFoundError
from dbvault.models import BackupRecord, BackupStatus, BackupType
from dbvault.vault import RecordStore

logger = structlog.get_logger()


class BackupOrchestrator:
    """Creates backup artifacts and owns their records until they are terminal."""

    def __init__(
        self,
        config: DBVaultConfig,
        store: RecordStore,
        database_tool: DatabaseTool,
    ):
        self.config = config
        self.store = store
        self.database_tool = database_tool

    def _new_record(self, backup_type: BackupType, **metadata) -> BackupRecord:
        return BackupRecord(
            backup_type=backup_type,
            encrypted=True,
            compressed=True,
            metadata={
                "initiated_by": "system",
                "backup_version": self.config.backup_version,
                **metadata,
            },
        )

    async def create_full_backup(self) -> BackupRecord:
        """
        Create a full backup, then purge completed backups past retention.

        Returns:
            The COMPLETED record

        Raises:
            ConfigurationError: If no key material is configured (nothing recorded)
            ExternalToolError: If the dump fails (record is FAILED)
        """
        key_material = self.config.require_encryption_key()

        record = self._new_record(BackupType.FULL)
        await self.store.save_backup(record)

        await self._run_pipeline(record, key_material)

        logger.info(
            "full_backup_completed",
            backup_id=record.id,
            backup_path=record.backup_path,
            size=record.backup_size,
        )

        try:
            await self.cleanup_old_backups()
        except Exception as e:
            logger.error("retention_cleanup_failed", error=str(e))

        return record

    async def create_incremental_backup(self) -> BackupRecord:
        """
        Create a backup of changes since the latest verified full backup.

        Without a verified full backup to anchor to, a full backup is
        created instead; that is the expected behaviour, not an error.
        """
        key_material = self.config.require_encryption_key()

        base = await self.store.find_latest_backup(BackupType.FULL, BackupStatus.VERIFIED)
        if base is None:
            logger.warning(
                "no_verified_full_backup",
                message="creating full backup instead of incremental",
            )
            return await self.create_full_backup()

        since = base.completed_at or base.started_at
        record = self._new_record(
            BackupType.INCREMENTAL,
            base_backup_id=base.id,
            since_timestamp=since.isoformat(),
        )
        await self.store.save_backup(record)

        await self._run_pipeline(record, key_material, since=since)

        logger.info(
            "incremental_backup_completed",
            backup_id=record.id,
            base_backup_id=base.id,
            backup_path=record.backup_path,
            size=record.backup_size,
        )
        return record

    async def _run_pipeline(
        self,
        record: BackupRecord,
        key_material: str,
        since: datetime | None = None,
    ) -> None:
        record.mark_in_progress()
        await self.store.save_backup(record)

        backup_dir = self.config.backup_dir
        backup_dir.mkdir(parents=True, exist_ok=True)

        raw_path, encrypted_path, compressed_path = artifact_paths(
            backup_dir, artifact_basename(record.backup_type, record.started_at)
        )

        logger.info(
            "backup_started",
            backup_id=record.id,
            backup_type=record.backup_type.value,
        )

        try:
            await self.database_tool.dump(raw_path, since=since)

            await encrypt_file(raw_path, encrypted_path, key_material)
            remove_quietly([raw_path])

            await compress_file(encrypted_path, compressed_path, self.config.compression_level)
            remove_quietly([encrypted_path])

            checksum = await digest_file(compressed_path)
            size = compressed_path.stat().st_size

            # record stays IN_PROGRESS until the COMPLETED write lands
            committed = replace(record, metadata=dict(record.metadata))
            committed.mark_completed(str(compressed_path), size, checksum)
            await self.store.save_backup(committed)

        except Exception as e:
            remove_quietly(
                [
                    raw_path,
                    encrypted_path,
                    compressed_path,
                    encrypted_path.with_name(encrypted_path.name + ".tmp"),
                    compressed_path.with_name(compressed_path.name + ".tmp"),
                ]
            )

            record.mark_failed(str(e))
            try:
                await self.store.save_backup(record)
            except Exception as store_error:
                logger.error(
                    "backup_failure_not_recorded",
                    backup_id=record.id,
                    error=str(store_error),
                )

            logger.error(
                "backup_failed",
                backup_id=record.id,
                backup_type=record.backup_type.value,
                error=str(e),
            )
            raise

        vars(record).update(vars(committed))

    async def cleanup_old_backups(self) -> Tuple[int, int]:
        """
        Delete artifact and record of every COMPLETED backup past retention.

        A failure on one backup is logged and the sweep moves on.

        Returns:
            Tuple of (records_removed, bytes_freed)
        """
        cutoff = datetime.now(UTC) - timedelta(days=self.config.retention_days)
        old_backups = await self.store.list_backups(
            status=BackupStatus.COMPLETED,
            started_before=cutoff,
        )

        removed = 0
        bytes_freed = 0

        for backup in old_backups:
            try:
                size = 0
                if backup.backup_path:
                    artifact = Path(backup.backup_path)
                    if artifact.exists():
                        size = artifact.stat().st_size
                    artifact.unlink(missing_ok=True)

                await self.store.delete_backup(backup.id)

                removed += 1
                bytes_freed += size
                logger.info(
                    "old_backup_deleted",
                    backup_id=backup.id,
                    backup_path=backup.backup_path,
                )
            except Exception as e:
                logger.error(
                    "old_backup_delete_failed",
                    backup_id=backup.id,
                    error=str(e),
                )

        logger.info(
            "retention_cleanup_complete",
            records_removed=removed,
            bytes_freed=bytes_freed,
            retention_days=self.config.retention_days,
        )
        return (removed, bytes_freed)

    async def get_backup_history(self, limit: int = 50) -> List[BackupRecord]:
        """Most recent backups first."""
        return await self.store.list_backups(limit=limit)

    async def get_backup(self, backup_id: str) -> BackupRecord:
        """
        Raises:
            NotFoundError: If the id is unknown
        """
        record = await self.store.get_backup(backup_id)
        if record is None:
            raise NotFoundError("Backup not found", details={"backup_id": backup_id})
        return record
