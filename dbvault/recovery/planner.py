# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Recovery Planner - Operator-facing runbook for restoring a backup.

The plan is a fixed template; step durations are estimates, not measurements.
"""

from dataclasses import dataclass, field
from typing import List

import structlog

from dbvault.config import DBVaultConfig
from dbvault.exceptions import NotFoundError
from dbvault.models import BackupRecord, BackupType
from dbvault.vault import RecordStore

logger = structlog.get_logger()

RISK_ASSESSMENT = "Medium - Requires application downtime. Ensure all users are notified."


@dataclass(frozen=True)
class RecoveryStep:
    order: int
    description: str
    estimated_minutes: int
    critical: bool = True
    command: str | None = None

    def to_dict(self) -> dict:
        return {
            "order": self.order,
            "description": self.description,
            "estimated_minutes": self.estimated_minutes,
            "critical": self.critical,
            "command": self.command,
        }


@dataclass
class RecoveryPlan:
    backup_id: str
    steps: List[RecoveryStep]
    required_backups: List[BackupRecord] = field(default_factory=list)
    risk_assessment: str = RISK_ASSESSMENT

    @property
    def estimated_duration_minutes(self) -> int:
        return sum(step.estimated_minutes for step in self.steps)

    def to_dict(self) -> dict:
        return {
            "backup_id": self.backup_id,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "steps": [step.to_dict() for step in self.steps],
            "required_backups": [b.to_dict() for b in self.required_backups],
            "risk_assessment": self.risk_assessment,
        }


class DisasterRecoveryPlanner:
    """Builds recovery runbooks for existing backups."""

    def __init__(self, config: DBVaultConfig, store: RecordStore):
        self.config = config
        self.store = store

    def _steps(self) -> List[RecoveryStep]:
        return [
            RecoveryStep(1, "Verify backup integrity and checksum", 5),
            RecoveryStep(2, "Decrypt backup file", 10),
            RecoveryStep(3, "Decompress backup archive", 5),
            RecoveryStep(
                4,
                "Stop application services",
                2,
                command=self.config.stop_services_command,
            ),
            RecoveryStep(5, "Create database backup of current state", 15),
            RecoveryStep(6, "Restore database from backup", 30),
            RecoveryStep(7, "Verify data integrity post-restore", 10),
            RecoveryStep(
                8,
                "Restart application services",
                5,
                command=self.config.start_services_command,
            ),
            RecoveryStep(9, "Run health checks and validation", 10),
            RecoveryStep(10, "Verify compliance and audit logs", 5),
        ]

    async def create_recovery_plan(self, backup_id: str) -> RecoveryPlan:
        """
        Build the runbook for restoring backup_id.

        An incremental backup also requires its base full backup, which is
        listed first when it still exists.

        Raises:
            NotFoundError: Unknown backup id
        """
        backup = await self.store.get_backup(backup_id)
        if backup is None:
            raise NotFoundError("Backup not found", details={"backup_id": backup_id})

        required = [backup]
        base_id = backup.metadata.get("base_backup_id")
        if backup.backup_type == BackupType.INCREMENTAL and base_id:
            base = await self.store.get_backup(base_id)
            if base is not None:
                required.insert(0, base)
            else:
                logger.warning(
                    "base_backup_missing",
                    backup_id=backup_id,
                    base_backup_id=base_id,
                )

        plan = RecoveryPlan(backup_id=backup_id, steps=self._steps(), required_backups=required)

        logger.info(
            "recovery_plan_created",
            backup_id=backup_id,
            steps=len(plan.steps),
            estimated_duration_minutes=plan.estimated_duration_minutes,
        )
        return plan
