# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Builder - Functional builder pattern for configuration.

This module provides pure functions for building DBVaultConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict

from dbvault.config import DatabaseConfig, DBVaultConfig


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "backup_dir": Path("./backups"),
        "state_path": Path("./dbvault_state"),
        "encryption_key": None,
        "retention_days": 90,
        "database": DatabaseConfig(),
        "backup_version": "1.0",
        "compression_level": 9,
        "verification_batch_size": 10,
        "alert_buffer_size": 100,
        "stop_services_command": "docker-compose stop app",
        "start_services_command": "docker-compose up -d app",
        "full_backup_time": None,
        "incremental_interval_hours": None,
        "verification_time": None,
        "health_check_interval_minutes": None,
    }


def with_backup_dir(config: ConfigDict, backup_dir: Path | str) -> ConfigDict:
    """
    Set the directory where backup artifacts are written.

    Args:
        config: Current configuration dictionary
        backup_dir: Artifact directory

    Returns:
        New configuration dictionary with backup_dir set
    """
    return {**config, "backup_dir": Path(backup_dir)}


def with_state_path(config: ConfigDict, state_path: Path | str) -> ConfigDict:
    """Set the directory holding the record database."""
    return {**config, "state_path": Path(state_path)}


def with_encryption_key(config: ConfigDict, key_material: str) -> ConfigDict:
    """
    Set the symmetric key material used for artifact encryption.

    The value is opaque; a fixed-length key is derived from it.
    """
    return {**config, "encryption_key": key_material}


def with_database(
    config: ConfigDict,
    host: str = "localhost",
    port: int = 5432,
    name: str = "postgres",
    user: str = "postgres",
    password: str | None = None,
    bin_dir: Path | str | None = None,
) -> ConfigDict:
    """
    Set connection parameters for the dump/restore tooling.

    Args:
        config: Current configuration dictionary
        host: Database host
        port: Database port
        name: Database that is backed up and restored by default
        user: Database user
        password: Database password (passed to tools via PGPASSWORD)
        bin_dir: Directory with pg_dump/pg_restore, or None for PATH

    Returns:
        New configuration dictionary with database set
    """
    database = DatabaseConfig(
        host=host,
        port=port,
        name=name,
        user=user,
        password=password,
        bin_dir=Path(bin_dir) if bin_dir else None,
    )
    return {**config, "database": database}


def retain_backups_for(config: ConfigDict, days: int) -> ConfigDict:
    """
    Set the retention window in days.

    Completed backups older than this are purged after each full backup,
    and verification rejects artifacts older than this.
    """
    return {**config, "retention_days": days}


def run_full_backup_daily_at(config: ConfigDict, time: str) -> ConfigDict:
    """
    Schedule a daily full backup at HH:MM (UTC).

    Example:
        config = run_full_backup_daily_at(config, "02:00")
    """
    return {**config, "full_backup_time": time}


def run_incremental_backup_every(config: ConfigDict, hours: int) -> ConfigDict:
    """Schedule an incremental backup every N hours."""
    return {**config, "incremental_interval_hours": hours}


def run_verification_daily_at(config: ConfigDict, time: str) -> ConfigDict:
    """Schedule the daily verification sweep at HH:MM (UTC)."""
    return {**config, "verification_time": time}


def check_health_every(config: ConfigDict, minutes: int) -> ConfigDict:
    """Schedule the health evaluation every N minutes."""
    return {**config, "health_check_interval_minutes": minutes}


def with_service_commands(
    config: ConfigDict,
    stop_command: str | None,
    start_command: str | None,
) -> ConfigDict:
    """Set the stop/restart commands listed in recovery plans."""
    return {
        **config,
        "stop_services_command": stop_command,
        "start_services_command": start_command,
    }


def build_config(config_dict: ConfigDict) -> DBVaultConfig:
    """
    Build and validate the final immutable configuration.

    Raises:
        ConfigurationError: If validation fails
    """
    return DBVaultConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose builder functions left to right.

    Example:
        configure = pipe(
            lambda c: with_backup_dir(c, "/var/backups"),
            lambda c: retain_backups_for(c, 30),
        )
        config = build_config(configure(create_empty_config()))
    """

    def composed(config: ConfigDict) -> ConfigDict:
        for func in funcs:
            config = func(config)
        return config

    return composed


def build_from_steps(*steps: BuilderFunc) -> DBVaultConfig:
    """Apply builder steps to an empty config and build it."""
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(
    backup_dir: Path | str | None = None,
    encryption_key: str | None = None,
    retention_days: int | None = None,
    database: DatabaseConfig | None = None,
    state_path: Path | str | None = None,
    full_backup_time: str | None = None,
    **kwargs: Any,
) -> DBVaultConfig:
    """
    Create a DBVaultConfig with sensible defaults.

    This is the simple, one-call API for the common cases.

    Example:
        config = create_config(
            backup_dir="/var/backups/db",
            encryption_key=os.environ["BACKUP_ENCRYPTION_KEY"],
            retention_days=90,
            full_backup_time="02:00",
        )
    """
    config_dict = create_empty_config()

    if backup_dir:
        config_dict = with_backup_dir(config_dict, backup_dir)

    if state_path:
        config_dict = with_state_path(config_dict, state_path)

    if encryption_key:
        config_dict = with_encryption_key(config_dict, encryption_key)

    if retention_days is not None:
        config_dict = retain_backups_for(config_dict, retention_days)

    if database is not None:
        config_dict["database"] = database

    if full_backup_time:
        config_dict = run_full_backup_daily_at(config_dict, full_backup_time)

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)
