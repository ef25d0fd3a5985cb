# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for dbvault.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""


def explain_missing_encryption_key() -> str:
    """
    Explain that backup key material is missing.
    """

    return (
        "Backup encryption key is not configured. "
        "Set the BACKUP_ENCRYPTION_KEY environment variable or pass "
        "encryption_key=... to create_config()."
    )


def explain_invalid_retention_days_env(value: str | None) -> str:
    """
    Explain that BACKUP_RETENTION_DAYS is invalid.
    """

    return (
        f"Invalid BACKUP_RETENTION_DAYS value: {value!r}. "
        "It must be a positive integer number of days."
    )


def explain_invalid_db_port_env(value: str | None) -> str:
    """
    Explain that DB_PORT is invalid.
    """

    return (
        f"Invalid DB_PORT value: {value!r}. "
        "It must be an integer between 1 and 65535."
    )


def explain_invalid_schedule_time(value: str | None) -> str:
    """
    Explain that a daily schedule time is malformed.
    """

    return f"Invalid schedule time: {value!r}, expected HH:MM (UTC)."


def explain_invalid_interval_env(name: str, value: str | None) -> str:
    """
    Explain that a schedule interval variable is invalid.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "It must be a positive integer, or unset to disable the job."
    )
