# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

The environment is read once, here, at the edge of the application. The
resulting frozen DBVaultConfig is then injected into every component.
"""

from __future__ import annotations

import os
from pathlib import Path

from dbvault.builder import create_config
from dbvault.config import DatabaseConfig, DBVaultConfig
from dbvault.errors import (
    explain_invalid_db_port_env,
    explain_invalid_interval_env,
    explain_invalid_retention_days_env,
)
from dbvault.exceptions import ConfigurationError


def _parse_retention_days(value: str | None) -> int:
    if not value:
        return 90
    try:
        days = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_retention_days_env(value)) from exc
    if days < 1:
        raise ConfigurationError(explain_invalid_retention_days_env(value))
    return days


def _parse_port(value: str | None) -> int:
    if not value:
        return 5432
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_db_port_env(value)) from exc
    if not 1 <= port <= 65535:
        raise ConfigurationError(explain_invalid_db_port_env(value))
    return port


def _parse_interval(name: str, value: str | None) -> int | None:
    if not value:
        return None
    try:
        interval = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_interval_env(name, value)) from exc
    if interval < 1:
        raise ConfigurationError(explain_invalid_interval_env(name, value))
    return interval


def create_config_from_env() -> DBVaultConfig:
    """
    Create a DBVaultConfig from environment variables.

    Optional environment variables:
        - BACKUP_DIR: Artifact directory (default: /backups)
        - BACKUP_ENCRYPTION_KEY: Key material (required for backup/recovery)
        - BACKUP_RETENTION_DAYS: Positive integer (default: 90)
        - DBVAULT_STATE_PATH: Record database directory (default: ./dbvault_state)
        - DB_HOST, DB_PORT, DB_NAME, DB_USERNAME, DB_PASSWORD: database
          connection parameters for pg_dump/pg_restore
        - DBVAULT_FULL_BACKUP_TIME: Daily full backup in HH:MM (UTC)
        - DBVAULT_VERIFICATION_TIME: Daily verification sweep in HH:MM (UTC)
        - DBVAULT_INCREMENTAL_INTERVAL_HOURS: Incremental backup every N hours
        - DBVAULT_HEALTH_CHECK_INTERVAL_MINUTES: Health check every N minutes
    """

    database = DatabaseConfig(
        host=os.getenv("DB_HOST", "localhost"),
        port=_parse_port(os.getenv("DB_PORT")),
        name=os.getenv("DB_NAME", "postgres"),
        user=os.getenv("DB_USERNAME", "postgres"),
        password=os.getenv("DB_PASSWORD"),
    )

    return create_config(
        backup_dir=Path(os.getenv("BACKUP_DIR", "/backups")),
        encryption_key=os.getenv("BACKUP_ENCRYPTION_KEY"),
        retention_days=_parse_retention_days(os.getenv("BACKUP_RETENTION_DAYS")),
        database=database,
        state_path=os.getenv("DBVAULT_STATE_PATH"),
        full_backup_time=os.getenv("DBVAULT_FULL_BACKUP_TIME"),
        verification_time=os.getenv("DBVAULT_VERIFICATION_TIME"),
        incremental_interval_hours=_parse_interval(
            "DBVAULT_INCREMENTAL_INTERVAL_HOURS",
            os.getenv("DBVAULT_INCREMENTAL_INTERVAL_HOURS"),
        ),
        health_check_interval_minutes=_parse_interval(
            "DBVAULT_HEALTH_CHECK_INTERVAL_MINUTES",
            os.getenv("DBVAULT_HEALTH_CHECK_INTERVAL_MINUTES"),
        ),
    )
