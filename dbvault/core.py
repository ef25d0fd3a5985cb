# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Core - Wires the backup subsystem together.

All components share one RecordStore and one DatabaseTool; the state dict
returned by initialize_vault_state() is what integrations hold on to.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, TypedDict

import structlog

from dbvault.backup import BackupOrchestrator, BackupVerificationService
from dbvault.config import DBVaultConfig
from dbvault.database import DatabaseTool, create_database_tool
from dbvault.models import utcnow
from dbvault.monitor import BackupHealthMonitor
from dbvault.recovery import DisasterRecoveryExecutor, DisasterRecoveryPlanner
from dbvault.vault import RecordStore, SQLiteRecordStore

logger = structlog.get_logger()


class DBVaultState(TypedDict):
    """Runtime state for backup operations."""

    config: DBVaultConfig
    record_db_path: Path | None
    store: RecordStore
    database_tool: DatabaseTool
    orchestrator: BackupOrchestrator
    verification: BackupVerificationService
    planner: DisasterRecoveryPlanner
    executor: DisasterRecoveryExecutor
    monitor: BackupHealthMonitor
    started_at: datetime
    last_error: str | None


async def initialize_vault_state(
    config: DBVaultConfig,
    database_tool: DatabaseTool | None = None,
    store: RecordStore | None = None,
) -> DBVaultState:
    """
    Initialize runtime state for backup operations.

    Creates the backup and state directories, initializes the record
    database and builds every component.

    Args:
        config: dbvault configuration
        database_tool: Override for the configured backend's tool
        store: Override for the SQLite record store

    Returns:
        Initialized DBVaultState dictionary
    """
    config.backup_dir.mkdir(parents=True, exist_ok=True)

    record_db_path = None
    if store is None:
        config.state_path.mkdir(parents=True, exist_ok=True)
        record_db_path = config.record_db_path
        sqlite_store = SQLiteRecordStore(record_db_path)
        await sqlite_store.initialize()
        store = sqlite_store

    if database_tool is None:
        database_tool = create_database_tool(config.database)

    state = DBVaultState(
        config=config,
        record_db_path=record_db_path,
        store=store,
        database_tool=database_tool,
        orchestrator=BackupOrchestrator(config, store, database_tool),
        verification=BackupVerificationService(config, store),
        planner=DisasterRecoveryPlanner(config, store),
        executor=DisasterRecoveryExecutor(config, store, database_tool),
        monitor=BackupHealthMonitor(config, store),
        started_at=utcnow(),
        last_error=None,
    )

    logger.info(
        "vault_state_initialized",
        backup_dir=str(config.backup_dir),
        record_db_path=str(record_db_path) if record_db_path else None,
        database=config.database.name,
    )
    return state


def describe_state(state: DBVaultState) -> Dict[str, Any]:
    """Non-secret summary of the running configuration."""
    config = state["config"]
    return {
        "backup_dir": str(config.backup_dir),
        "retention_days": config.retention_days,
        "database": config.database.name,
        "encryption_configured": config.encryption_key is not None,
        "started_at": state["started_at"].isoformat(),
        "last_error": state["last_error"],
    }


async def shutdown_vault_state(state: DBVaultState) -> None:
    """Cleanup resources."""
    close = getattr(state["database_tool"], "close", None)
    if close is not None:
        try:
            await close()
        except Exception as e:
            logger.warning("database_tool_close_failed", error=str(e))

    logger.info("vault_state_shutdown_complete")
