# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Disaster Recovery - Runbook planning and restore execution.
"""

from dbvault.recovery.executor import (
    DisasterRecoveryExecutor,
    RecoveryOptions,
    scratch_database_name,
)

from dbvault.recovery.planner import (
    DisasterRecoveryPlanner,
    RecoveryPlan,
    RecoveryStep,
)

__all__ = [
    # Executor
    "DisasterRecoveryExecutor",
    "RecoveryOptions",
    "scratch_database_name",
    # Planner
    "DisasterRecoveryPlanner",
    "RecoveryPlan",
    "RecoveryStep",
]
