# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Monitor - Backup health metrics, compliance status and alerts.

Compliance is derived from four signals, evaluated in order:

1. Backup freshness     (> 12h warning, > 24h critical, none at all critical)
2. Success rate (7d)    (< 95% warning, < 80% critical)
3. Failures (24h)       (> 0 warning, > 3 critical)
4. Recovery drills      (none or > 30 days old: warning)

A critical status is never downgraded by a later rule; every triggered
rule contributes an alert.
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, UTC
from enum import Enum
from typing import Any, Dict, List, MutableSequence

import structlog

from dbvault.config import DBVaultConfig
from dbvault.models import BackupStatus
from dbvault.vault import RecordStore

logger = structlog.get_logger()

BACKUP_WARNING_HOURS = 12
BACKUP_CRITICAL_HOURS = 24
SUCCESS_RATE_WARNING = 95
SUCCESS_RATE_CRITICAL = 80
FAILURES_CRITICAL = 3
RECOVERY_TEST_MAX_DAYS = 30
METRICS_WINDOW = timedelta(days=7)
FAILURE_WINDOW = timedelta(hours=24)


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class BackupAlert:
    severity: AlertSeverity
    message: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class BackupHealthMetrics:
    """Snapshot of backup health at one instant."""

    last_backup_time: datetime | None
    last_successful_backup: datetime | None
    backup_success_rate: float
    average_backup_duration: float
    total_backup_size: int
    oldest_verified_backup: datetime | None
    recent_failures: int
    compliance_status: ComplianceStatus
    alerts: List[BackupAlert] = field(default_factory=list)

    def to_dict(self) -> dict:
        def iso(value: datetime | None) -> str | None:
            return value.isoformat() if value else None

        return {
            "last_backup_time": iso(self.last_backup_time),
            "last_successful_backup": iso(self.last_successful_backup),
            "backup_success_rate": self.backup_success_rate,
            "average_backup_duration": self.average_backup_duration,
            "total_backup_size": self.total_backup_size,
            "oldest_verified_backup": iso(self.oldest_verified_backup),
            "recent_failures": self.recent_failures,
            "compliance_status": self.compliance_status.value,
            "alerts": [a.to_dict() for a in self.alerts],
        }


class _Assessment:
    """Accumulates alerts while tracking the worst status seen."""

    def __init__(self, now: datetime):
        self.now = now
        self.status = ComplianceStatus.COMPLIANT
        self.alerts: List[BackupAlert] = []

    def critical(self, message: str) -> None:
        self.alerts.append(BackupAlert(AlertSeverity.CRITICAL, message, self.now))
        self.status = ComplianceStatus.CRITICAL

    def warning(self, message: str) -> None:
        self.alerts.append(BackupAlert(AlertSeverity.WARNING, message, self.now))
        if self.status != ComplianceStatus.CRITICAL:
            self.status = ComplianceStatus.WARNING


class BackupHealthMonitor:
    """Evaluates backup health and keeps a bounded buffer of critical alerts."""

    def __init__(
        self,
        config: DBVaultConfig,
        store: RecordStore,
        alert_buffer: MutableSequence[BackupAlert] | None = None,
    ):
        self.config = config
        self.store = store
        self.alert_buffer = (
            alert_buffer
            if alert_buffer is not None
            else deque(maxlen=config.alert_buffer_size)
        )

    async def get_health_metrics(self) -> BackupHealthMetrics:
        now = datetime.now(UTC)

        # Newest first
        recent = await self.store.list_backups(started_after=now - METRICS_WINDOW)
        verified = [b for b in recent if b.status == BackupStatus.VERIFIED]
        recent_failures = sum(
            1
            for b in recent
            if b.status == BackupStatus.FAILED and b.started_at >= now - FAILURE_WINDOW
        )

        success_rate = (len(verified) / len(recent) * 100) if recent else 0.0
        average_duration = (
            sum(b.duration_seconds or 0 for b in verified) / len(verified) if verified else 0.0
        )
        total_size = sum(b.backup_size or 0 for b in verified)

        oldest_verified = await self.store.list_backups(
            status=BackupStatus.VERIFIED, limit=1, newest_first=False
        )

        assessment = _Assessment(now)

        if not recent:
            assessment.critical("No backups found in the system")
        else:
            hours_since = (now - recent[0].started_at).total_seconds() / 3600
            message = f"Last backup was {int(hours_since)} hours ago"
            if hours_since > BACKUP_CRITICAL_HOURS:
                assessment.critical(message)
            elif hours_since > BACKUP_WARNING_HOURS:
                assessment.warning(message)

        if success_rate < SUCCESS_RATE_CRITICAL:
            assessment.critical(
                f"Backup success rate is {success_rate:.1f}% "
                f"(below {SUCCESS_RATE_CRITICAL}% threshold)"
            )
        elif success_rate < SUCCESS_RATE_WARNING:
            assessment.warning(
                f"Backup success rate is {success_rate:.1f}% "
                f"(below {SUCCESS_RATE_WARNING}% threshold)"
            )

        if recent_failures > FAILURES_CRITICAL:
            assessment.critical(f"{recent_failures} backup failures in the last 24 hours")
        elif recent_failures > 0:
            assessment.warning(f"{recent_failures} backup failure(s) in the last 24 hours")

        last_test = await self.store.get_latest_recovery_test()
        if last_test is None:
            assessment.warning("No recovery tests have been performed")
        else:
            days_since = (now - last_test.started_at).total_seconds() / 86400
            if days_since > RECOVERY_TEST_MAX_DAYS:
                assessment.warning(
                    f"Last recovery test was {int(days_since)} days ago (recommended: monthly)"
                )

        return BackupHealthMetrics(
            last_backup_time=recent[0].started_at if recent else None,
            last_successful_backup=verified[0].completed_at if verified else None,
            backup_success_rate=success_rate,
            average_backup_duration=average_duration,
            total_backup_size=total_size,
            oldest_verified_backup=oldest_verified[0].started_at if oldest_verified else None,
            recent_failures=recent_failures,
            compliance_status=assessment.status,
            alerts=assessment.alerts,
        )

    async def monitor_backup_health(self) -> BackupHealthMetrics:
        """Scheduled evaluation; critical alerts are retained in the buffer."""
        metrics = await self.get_health_metrics()

        if metrics.compliance_status == ComplianceStatus.CRITICAL:
            critical = [a for a in metrics.alerts if a.severity == AlertSeverity.CRITICAL]
            logger.error(
                "backup_health_critical",
                alerts=[a.message for a in critical],
            )
            self.alert_buffer.extend(critical)
        elif metrics.compliance_status == ComplianceStatus.WARNING:
            logger.warning(
                "backup_health_warning",
                alerts=[a.message for a in metrics.alerts],
            )

        logger.info(
            "backup_health_checked",
            success_rate=round(metrics.backup_success_rate, 1),
            recent_failures=metrics.recent_failures,
            compliance_status=metrics.compliance_status.value,
        )
        return metrics

    async def get_recent_alerts(self, limit: int = 50) -> List[BackupAlert]:
        """The last limit buffered alerts, oldest first."""
        if limit <= 0:
            return []
        return list(self.alert_buffer)[-limit:]

    async def get_backup_statistics(self, days: int = 30) -> Dict[str, Any]:
        cutoff = datetime.now(UTC) - timedelta(days=days)
        backups = await self.store.list_backups(started_after=cutoff, newest_first=False)

        by_status = Counter(b.status.value for b in backups)
        by_type = Counter(b.backup_type.value for b in backups)
        total_size = sum(b.backup_size or 0 for b in backups)
        total = len(backups)

        return {
            "period": f"Last {days} days",
            "total_backups": total,
            "by_status": dict(by_status),
            "by_type": dict(by_type),
            "total_size": total_size,
            "average_size": total_size / total if total else 0,
            "success_rate": (
                by_status.get(BackupStatus.VERIFIED.value, 0) / total * 100 if total else 0
            ),
        }
