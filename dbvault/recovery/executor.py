# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Recovery Executor - Restore drills and real recoveries.

Recovery inverts the artifact pipeline:

    .raw.enc.gz --checksum--> --gunzip--> .enc --decrypt--> .dump --restore-->

A validation run restores into a throwaway ``restore_check_*`` database
that is always dropped afterwards; a full recovery restores destructively
into the target database.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List

import structlog
from ulid import ULID

from dbvault.backup.artifacts import temp_files
from dbvault.codec.checksum import verify_checksum
from dbvault.codec.compression import decompress_file
from dbvault.codec.crypto import decrypt_file
from dbvault.config import DBVaultConfig
from dbvault.database import DatabaseTool
from dbvault.exceptions import (
    CleanupWarning,
    IntegrityError,
    NotFoundError,
    PreconditionError,
)
from dbvault.models import (
    BackupRecord,
    BackupStatus,
    RecoveryTest,
    RecoveryTestType,
)
from dbvault.vault import RecordStore

logger = structlog.get_logger()

SCRATCH_DATABASE_PREFIX = "restore_check_"

PASSED = "passed"


@dataclass(frozen=True)
class RecoveryOptions:
    """
    What to restore and where.

    Attributes:
        backup_id: VERIFIED backup to restore
        target_database: Destination for a full recovery (configured database if None)
        validate_only: Restore into a scratch database and drop it afterwards
        point_in_time: Accepted and recorded, but the whole backup is restored
    """

    backup_id: str
    target_database: str | None = None
    validate_only: bool = False
    point_in_time: datetime | None = None


def scratch_database_name() -> str:
    return f"{SCRATCH_DATABASE_PREFIX}{str(ULID()).lower()}"


class DisasterRecoveryExecutor:
    """Runs recoveries from VERIFIED backups and records each as a RecoveryTest."""

    def __init__(
        self,
        config: DBVaultConfig,
        store: RecordStore,
        database_tool: DatabaseTool,
    ):
        self.config = config
        self.store = store
        self.database_tool = database_tool

    @asynccontextmanager
    async def scratch_database(self) -> AsyncIterator[str]:
        """Create a uniquely named database and drop it on every exit path."""
        name = scratch_database_name()
        await self.database_tool.create_database(name)
        try:
            yield name
        finally:
            try:
                await self.database_tool.drop_database(name)
            except Exception as e:
                warning = CleanupWarning(
                    f"Failed to drop scratch database: {e}",
                    details={"database": name},
                )
                logger.warning("cleanup_warning", error=str(warning))

    async def _load_verified_backup(self, backup_id: str) -> BackupRecord:
        backup = await self.store.get_backup(backup_id)
        if backup is None:
            raise NotFoundError("Backup not found", details={"backup_id": backup_id})
        if backup.status != BackupStatus.VERIFIED:
            raise PreconditionError(
                "Backup is not verified",
                details={"backup_id": backup_id, "status": backup.status.value},
            )
        return backup

    async def check_recoverable(self, backup_id: str) -> BackupRecord:
        """
        Check the preconditions of perform_recovery without starting one.

        Raises:
            NotFoundError: If the backup is unknown
            PreconditionError: If the backup is not VERIFIED
            ConfigurationError: If no key material is configured
        """
        backup = await self._load_verified_backup(backup_id)
        self.config.require_encryption_key()
        return backup

    async def perform_recovery(
        self,
        options: RecoveryOptions,
        performed_by: str,
    ) -> RecoveryTest:
        """
        Restore a verified backup.

        Args:
            options: Backup, destination and mode
            performed_by: Operator recorded on the RecoveryTest

        Returns:
            The PASSED RecoveryTest

        Raises:
            NotFoundError: Unknown backup (nothing recorded)
            PreconditionError: Backup is not VERIFIED (nothing recorded)
            ConfigurationError: No key material (nothing recorded)
            IntegrityError: Artifact checksum or authentication failed
            ExternalToolError: Database tooling failed
        """
        backup = await self._load_verified_backup(options.backup_id)
        key_material = self.config.require_encryption_key()

        test = RecoveryTest(
            backup_id=backup.id,
            test_type=(
                RecoveryTestType.VALIDATION
                if options.validate_only
                else RecoveryTestType.FULL_RECOVERY
            ),
            tested_by=performed_by,
        )
        if options.point_in_time is not None:
            test.notes = (
                f"point_in_time {options.point_in_time.isoformat()} requested; "
                "whole backup restored"
            )
            logger.warning(
                "point_in_time_not_supported",
                backup_id=backup.id,
                point_in_time=options.point_in_time.isoformat(),
            )
        await self.store.save_recovery_test(test)

        logger.info(
            "recovery_started",
            recovery_test_id=test.id,
            backup_id=backup.id,
            test_type=test.test_type.value,
        )

        results: Dict[str, Any] = {}
        try:
            await self._recover(backup, options, key_material, test.id, results)
        except Exception as e:
            test.mark_failed(str(e), results)
            await self.store.save_recovery_test(test)
            logger.error(
                "recovery_failed",
                recovery_test_id=test.id,
                backup_id=backup.id,
                error=str(e),
            )
            raise

        test.mark_passed(results)
        await self.store.save_recovery_test(test)

        logger.info(
            "recovery_completed",
            recovery_test_id=test.id,
            backup_id=backup.id,
            duration_seconds=test.duration_seconds,
        )
        return test

    async def _recover(
        self,
        backup: BackupRecord,
        options: RecoveryOptions,
        key_material: str,
        run_id: str,
        results: Dict[str, Any],
    ) -> None:
        """Run each step in order, recording it in results once it passes."""
        artifact = Path(backup.backup_path)

        if not await verify_checksum(artifact, backup.checksum):
            raise IntegrityError(
                "Backup integrity check failed",
                details={"backup_id": backup.id, "backup_path": str(artifact)},
            )
        results["integrity_check"] = PASSED

        workdir = artifact.parent
        encrypted_path = workdir / f"{run_id}.enc"
        dump_path = workdir / f"{run_id}.dump"

        async with temp_files(encrypted_path, dump_path):
            await decompress_file(artifact, encrypted_path)
            results["decompression"] = PASSED

            await decrypt_file(encrypted_path, dump_path, key_material)
            results["decryption"] = PASSED

            if options.validate_only:
                results["tables_restored"] = await self._validate_restore(dump_path)
            else:
                target = options.target_database or self.config.database.name
                await self.database_tool.restore(dump_path, target, clean=True)
                logger.info("database_recovered", backup_id=backup.id, database=target)
            results["restoration"] = PASSED

    async def _validate_restore(self, dump_path: Path) -> int:
        async with self.scratch_database() as name:
            await self.database_tool.restore(dump_path, name, clean=False)
            tables = await self.database_tool.count_tables(name)
            logger.info("test_restore_verified", database=name, tables=tables)
            return tables

    async def schedule_recovery_test(self, backup_id: str, tested_by: str) -> RecoveryTest:
        """Validation-only recovery of backup_id."""
        return await self.perform_recovery(
            RecoveryOptions(backup_id=backup_id, validate_only=True),
            tested_by,
        )

    async def get_recovery_tests(self, limit: int = 50) -> List[RecoveryTest]:
        return await self.store.list_recovery_tests(limit=limit)
