# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault - Encrypted database backups, verification and disaster recovery.

Produces encrypted, compressed, checksummed database backups, verifies them
against integrity and compliance rules, plans and rehearses restores, and
reports on the health of the backup regime.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from dbvault.builder import create_config

# Core functions
from dbvault.core import (
    DBVaultState,
    initialize_vault_state,
    shutdown_vault_state,
)

# Environment-based configuration
from dbvault.env import create_config_from_env

# Components
from dbvault.backup import BackupOrchestrator, BackupVerificationService
from dbvault.monitor import BackupHealthMonitor
from dbvault.recovery import (
    DisasterRecoveryExecutor,
    DisasterRecoveryPlanner,
    RecoveryOptions,
)

__all__ = [
    # Version
    "__version__",
    # Configuration creation
    "create_config",
    "create_config_from_env",
    # Core
    "DBVaultState",
    "initialize_vault_state",
    "shutdown_vault_state",
    # Components
    "BackupOrchestrator",
    "BackupVerificationService",
    "BackupHealthMonitor",
    "DisasterRecoveryExecutor",
    "DisasterRecoveryPlanner",
    "RecoveryOptions",
]
