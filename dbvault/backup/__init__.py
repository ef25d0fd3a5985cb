# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - Backup creation, retention and verification.
"""

from dbvault.backup.artifacts import (
    artifact_basename,
    format_timestamp,
    temp_files,
)

from dbvault.backup.orchestrator import BackupOrchestrator

from dbvault.backup.verification import (
    BackupVerificationService,
    VerificationCondition,
)

__all__ = [
    # Artifacts
    "artifact_basename",
    "format_timestamp",
    "temp_files",
    # Orchestrator
    "BackupOrchestrator",
    # Verification
    "BackupVerificationService",
    "VerificationCondition",
]
