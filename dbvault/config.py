# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation to prevent
accidental modification during runtime. Key material is injected here
explicitly and never read ad hoc from the process environment.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import List

from dbvault.errors import explain_invalid_schedule_time, explain_missing_encryption_key


class DatabaseBackend(str, Enum):
    """Database engine behind the dump/restore port."""

    POSTGRES = "postgres"


def _validate_cron_time(time_str: str) -> bool:
    """Validate HH:MM time format."""
    if not time_str:
        return False
    try:
        parts = time_str.split(":")
        if len(parts) != 2:
            return False
        hour, minute = int(parts[0]), int(parts[1])
        return 0 <= hour <= 23 and 0 <= minute <= 59
    except (ValueError, AttributeError):
        return False


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection parameters used by the dump/restore tooling."""

    host: str = "localhost"
    port: int = 5432
    name: str = "postgres"
    user: str = "postgres"
    password: str | None = field(default=None, repr=False)

    # Database used for CREATE/DROP DATABASE of scratch databases
    maintenance_db: str = "postgres"

    # Directory holding pg_dump/pg_restore; None means resolve from PATH
    bin_dir: Path | None = None

    backend: DatabaseBackend = DatabaseBackend.POSTGRES

    def dsn(self, database: str | None = None) -> str:
        """Build a postgresql:// DSN for the given (or default) database."""
        auth = self.user
        if self.password:
            auth = f"{self.user}:{self.password}"
        return f"postgresql://{auth}@{self.host}:{self.port}/{database or self.name}"


@dataclass(frozen=True)
class DBVaultConfig:
    """
    Immutable configuration for backup, verification and recovery.

    This configuration is frozen after creation so that long-running
    pipelines and scheduled jobs always see a consistent view.
    """

    # Directory where backup artifacts are written
    backup_dir: Path = field(default_factory=lambda: Path("./backups"))

    # Directory holding the record database
    state_path: Path = field(default_factory=lambda: Path("./dbvault_state"))

    # Symmetric key material (opaque); required for backup and recovery
    encryption_key: str | None = field(default=None, repr=False)

    # Completed backups older than this are purged
    retention_days: int = 90

    # Primary database connection parameters
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    # Version marker written to every backup's metadata
    backup_version: str = "1.0"

    # gzip level for the artifact compression stage
    compression_level: int = 9

    # How many COMPLETED backups one verification sweep picks up
    verification_batch_size: int = 10

    # Size of the in-memory critical alert ring buffer
    alert_buffer_size: int = 100

    # Commands shown in recovery plans for stopping/restarting dependents
    stop_services_command: str | None = "docker-compose stop app"
    start_services_command: str | None = "docker-compose up -d app"

    # Scheduler settings, consumed by the integration layer only
    full_backup_time: str | None = None  # HH:MM UTC
    incremental_interval_hours: int | None = None
    verification_time: str | None = None  # HH:MM UTC
    health_check_interval_minutes: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if self.retention_days < 1:
            errors.append(f"retention_days must be >= 1, got {self.retention_days}")

        if not 1 <= self.compression_level <= 9:
            errors.append(
                f"compression_level must be between 1 and 9, got {self.compression_level}"
            )

        if self.verification_batch_size < 1:
            errors.append(
                f"verification_batch_size must be >= 1, got {self.verification_batch_size}"
            )

        if self.alert_buffer_size < 1:
            errors.append(f"alert_buffer_size must be >= 1, got {self.alert_buffer_size}")

        if not self.backup_version:
            errors.append("backup_version must not be empty")

        if self.encryption_key is not None and not self.encryption_key:
            errors.append("encryption_key must not be an empty string")

        if not 1 <= self.database.port <= 65535:
            errors.append(f"Invalid database port: {self.database.port}")

        for name in ("full_backup_time", "verification_time"):
            value = getattr(self, name)
            if value and not _validate_cron_time(value):
                errors.append(f"{name}: {explain_invalid_schedule_time(value)}")

        if self.incremental_interval_hours is not None and self.incremental_interval_hours < 1:
            errors.append(
                f"incremental_interval_hours must be >= 1, got {self.incremental_interval_hours}"
            )

        if (
            self.health_check_interval_minutes is not None
            and self.health_check_interval_minutes < 1
        ):
            errors.append(
                "health_check_interval_minutes must be >= 1, "
                f"got {self.health_check_interval_minutes}"
            )

        # Raise all errors at once
        if errors:
            from dbvault.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    def require_encryption_key(self) -> str:
        """
        Return the key material or fail before any side effect happens.

        Raises:
            ConfigurationError: If no key material is configured
        """
        if not self.encryption_key:
            from dbvault.exceptions import ConfigurationError

            raise ConfigurationError(explain_missing_encryption_key())
        return self.encryption_key

    @property
    def record_db_path(self) -> Path:
        return self.state_path / "records.db"

    def with_updates(self, **kwargs) -> "DBVaultConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        return replace(self, **kwargs)
