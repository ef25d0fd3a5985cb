# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Exceptions - Custom exceptions for the dbvault package.
"""

from typing import List


class DBVaultError(Exception):
    """Base exception for all dbvault errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DBVaultError):
    """Raised when configuration is invalid or key material is missing."""

    pass


class IntegrityError(DBVaultError):
    """Raised on checksum mismatch, auth-tag mismatch or a truncated artifact."""

    pass


class NotFoundError(DBVaultError):
    """Raised when a backup or recovery test id is unknown."""

    pass


class PreconditionError(DBVaultError):
    """Raised when a record is not in the state an operation requires."""

    pass


class VerificationError(PreconditionError):
    """
    Raised when a COMPLETED backup fails one or more verification conditions.

    The record stays COMPLETED. ``conditions`` names every failed check.
    """

    def __init__(
        self,
        message: str,
        conditions: List[str],
        details: dict | None = None,
    ):
        self.conditions = list(conditions)
        super().__init__(message, details={**(details or {}), "conditions": self.conditions})


class ExternalToolError(DBVaultError):
    """Raised when a dump/restore subprocess or admin query fails."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str | None = None,
        details: dict | None = None,
    ):
        self.returncode = returncode
        self.stderr = stderr
        extra = dict(details or {})
        if returncode is not None:
            extra["returncode"] = returncode
        if stderr:
            extra["stderr"] = stderr.strip()[-2000:]
        super().__init__(message, details=extra)


class RecordStoreError(DBVaultError):
    """Raised when record persistence fails."""

    pass


class CleanupWarning(DBVaultError):
    """Best-effort release of a temp file or scratch database failed. Logged only."""

    pass
