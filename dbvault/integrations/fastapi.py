# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault FastAPI Integration - Admin API and scheduler for FastAPI applications.

This module provides:
- Lifespan management (startup/shutdown)
- Protected admin endpoints under /admin/backups
- Scheduled backups, verification sweeps and health checks
"""

import os
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterator

import structlog
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from dbvault.config import DBVaultConfig
from dbvault.core import (
    DBVaultState,
    describe_state,
    initialize_vault_state,
    shutdown_vault_state,
)
from dbvault.database import DatabaseTool
from dbvault.exceptions import (
    ConfigurationError,
    DBVaultError,
    IntegrityError,
    NotFoundError,
    PreconditionError,
)
from dbvault.recovery import RecoveryOptions

logger = structlog.get_logger()

DEFAULT_PREFIX = "/admin/backups"

# Security
security = HTTPBearer(auto_error=False)


class VerifyRequest(BaseModel):
    verified_by: str = "system"


class RecoveryPlanRequest(BaseModel):
    backup_id: str


class RecoveryExecuteRequest(BaseModel):
    backup_id: str
    performed_by: str
    target_database: str | None = None
    validate_only: bool = False
    point_in_time: datetime | None = None


class RecoveryTestRequest(BaseModel):
    backup_id: str
    tested_by: str


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> bool:
    """
    Verify API key from Authorization header.

    The API key is read from the DBVAULT_ADMIN_API_KEY environment variable.
    Requests must include: Authorization: Bearer <api_key>

    Raises:
        HTTPException: If API key is missing or invalid
    """
    api_key = os.getenv("DBVAULT_ADMIN_API_KEY")

    if not api_key:
        raise HTTPException(
            status_code=500,
            detail="DBVAULT_ADMIN_API_KEY environment variable not set",
        )

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Authorization header required",
        )

    if credentials.credentials != api_key:
        raise HTTPException(
            status_code=403,
            detail="Invalid API key",
        )

    return True


def status_code_for(error: DBVaultError) -> int:
    """HTTP status for a dbvault error."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, IntegrityError):
        return 422
    if isinstance(error, PreconditionError):
        return 409
    return 500


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise dbvault errors as HTTPException with the mapped status."""
    try:
        yield
    except DBVaultError as e:
        if isinstance(e, ConfigurationError):
            logger.error("configuration_error", error=str(e))
        raise HTTPException(
            status_code=status_code_for(e),
            detail={"message": e.message, **e.details},
        ) from e


async def _run_logged(
    state: DBVaultState,
    job: str,
    operation: Callable[[], Awaitable[Any]],
) -> None:
    """Run a background operation; failures are already recorded, so only log."""
    try:
        await operation()
    except Exception as e:
        state["last_error"] = str(e)
        logger.error("background_job_failed", job=job, error=str(e))


def register_dbvault_routes(
    app: FastAPI,
    state: DBVaultState,
    prefix: str = DEFAULT_PREFIX,
) -> None:
    """
    Register dbvault admin endpoints on a FastAPI app.

    All endpoints require Bearer token authentication.

    Args:
        app: FastAPI application
        state: Runtime state
        prefix: URL prefix for endpoints (default: /admin/backups)
    """
    orchestrator = state["orchestrator"]
    verification = state["verification"]
    planner = state["planner"]
    executor = state["executor"]
    monitor = state["monitor"]

    auth = [Depends(verify_api_key)]

    @app.post(f"{prefix}/full", status_code=202, dependencies=auth)
    async def create_full_backup(background_tasks: BackgroundTasks) -> dict:
        """Start a full backup in the background."""
        with translate_errors():
            state["config"].require_encryption_key()
        background_tasks.add_task(
            _run_logged, state, "full_backup", orchestrator.create_full_backup
        )
        return {"status": "accepted", "backup_type": "full"}

    @app.post(f"{prefix}/incremental", status_code=202, dependencies=auth)
    async def create_incremental_backup(background_tasks: BackgroundTasks) -> dict:
        """Start an incremental backup (or a full one if no verified base exists)."""
        with translate_errors():
            state["config"].require_encryption_key()
        background_tasks.add_task(
            _run_logged, state, "incremental_backup", orchestrator.create_incremental_backup
        )
        return {"status": "accepted", "backup_type": "incremental"}

    @app.get(f"{prefix}/history", dependencies=auth)
    async def get_backup_history(limit: int = 50) -> list:
        records = await orchestrator.get_backup_history(limit)
        return [r.to_dict() for r in records]

    @app.get(f"{prefix}/verification/status", dependencies=auth)
    async def get_verification_status() -> dict:
        return await verification.get_verification_status()

    @app.get(f"{prefix}/recovery/tests", dependencies=auth)
    async def get_recovery_tests(limit: int = 50) -> list:
        tests = await executor.get_recovery_tests(limit)
        return [t.to_dict() for t in tests]

    @app.get(f"{prefix}/monitoring/health", dependencies=auth)
    async def get_health_metrics() -> dict:
        metrics = await monitor.get_health_metrics()
        return metrics.to_dict()

    @app.get(f"{prefix}/monitoring/alerts", dependencies=auth)
    async def get_recent_alerts(limit: int = 50) -> list:
        alerts = await monitor.get_recent_alerts(limit)
        return [a.to_dict() for a in alerts]

    @app.get(f"{prefix}/monitoring/statistics", dependencies=auth)
    async def get_backup_statistics(days: int = 30) -> dict:
        return await monitor.get_backup_statistics(days)

    @app.get(f"{prefix}/config", dependencies=auth)
    async def get_config() -> dict:
        """Current configuration (secrets redacted)."""
        return describe_state(state)

    @app.get(f"{prefix}/{{backup_id}}", dependencies=auth)
    async def get_backup(backup_id: str) -> dict:
        with translate_errors():
            record = await orchestrator.get_backup(backup_id)
        return record.to_dict()

    @app.post(f"{prefix}/{{backup_id}}/verify", dependencies=auth)
    async def verify_backup(backup_id: str, body: VerifyRequest | None = None) -> dict:
        verified_by = body.verified_by if body else "system"
        with translate_errors():
            record = await verification.verify_backup(backup_id, verified_by)
        return record.to_dict()

    @app.post(f"{prefix}/recovery/plan", dependencies=auth)
    async def create_recovery_plan(body: RecoveryPlanRequest) -> dict:
        with translate_errors():
            plan = await planner.create_recovery_plan(body.backup_id)
        return plan.to_dict()

    @app.post(f"{prefix}/recovery/execute", dependencies=auth)
    async def execute_recovery(body: RecoveryExecuteRequest) -> dict:
        """
        Run a recovery synchronously.

        Without validate_only this restores destructively into the target.
        """
        options = RecoveryOptions(
            backup_id=body.backup_id,
            target_database=body.target_database,
            validate_only=body.validate_only,
            point_in_time=body.point_in_time,
        )
        with translate_errors():
            test = await executor.perform_recovery(options, body.performed_by)
        return test.to_dict()

    @app.post(f"{prefix}/recovery/test", status_code=202, dependencies=auth)
    async def schedule_recovery_test(
        body: RecoveryTestRequest,
        background_tasks: BackgroundTasks,
    ) -> dict:
        """Start a validation-only recovery drill in the background."""
        with translate_errors():
            await executor.check_recoverable(body.backup_id)

        async def drill() -> None:
            await executor.schedule_recovery_test(body.backup_id, body.tested_by)

        background_tasks.add_task(_run_logged, state, "recovery_test", drill)
        return {"status": "accepted", "backup_id": body.backup_id}


def _setup_scheduled_jobs(state: DBVaultState) -> Any:
    """
    Set up APScheduler jobs from the schedule fields of the config.

    Returns:
        The started scheduler, or None if nothing is scheduled
    """
    config = state["config"]
    if not any(
        (
            config.full_backup_time,
            config.incremental_interval_hours,
            config.verification_time,
            config.health_check_interval_minutes,
        )
    ):
        return None

    try:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.cron import CronTrigger
        from apscheduler.triggers.interval import IntervalTrigger

        scheduler = AsyncIOScheduler(timezone="UTC")

        def scheduled(job: str, operation: Callable[[], Awaitable[Any]]):
            async def run() -> None:
                logger.info("scheduled_job_starting", job=job)
                await _run_logged(state, job, operation)

            return run

        if config.full_backup_time:
            hour, minute = map(int, config.full_backup_time.split(":"))
            scheduler.add_job(
                scheduled("full_backup", state["orchestrator"].create_full_backup),
                trigger=CronTrigger(hour=hour, minute=minute),
                id="dbvault_full_backup",
                replace_existing=True,
            )

        if config.incremental_interval_hours:
            scheduler.add_job(
                scheduled(
                    "incremental_backup", state["orchestrator"].create_incremental_backup
                ),
                trigger=IntervalTrigger(hours=config.incremental_interval_hours),
                id="dbvault_incremental_backup",
                replace_existing=True,
            )

        if config.verification_time:
            hour, minute = map(int, config.verification_time.split(":"))
            scheduler.add_job(
                scheduled("verification", state["verification"].verify_recent_backups),
                trigger=CronTrigger(hour=hour, minute=minute),
                id="dbvault_verification",
                replace_existing=True,
            )

        if config.health_check_interval_minutes:
            scheduler.add_job(
                scheduled("health_check", state["monitor"].monitor_backup_health),
                trigger=IntervalTrigger(minutes=config.health_check_interval_minutes),
                id="dbvault_health_check",
                replace_existing=True,
            )

        scheduler.start()
        logger.info(
            "scheduler_started",
            jobs=[job.id for job in scheduler.get_jobs()],
        )
        return scheduler

    except Exception as e:
        logger.error("scheduler_setup_failed", error=str(e))
        return None


@asynccontextmanager
async def dbvault_lifespan(
    app: FastAPI,
    config: DBVaultConfig,
    prefix: str = DEFAULT_PREFIX,
    database_tool: DatabaseTool | None = None,
):
    """
    Lifespan context manager for FastAPI.

        app = FastAPI(lifespan=lambda app: dbvault_lifespan(app, config))

    Args:
        app: FastAPI application
        config: dbvault configuration
        prefix: URL prefix for admin endpoints
        database_tool: Override for the configured backend's tool
    """
    logger.info("dbvault_lifespan_starting", backup_dir=str(config.backup_dir))

    state = await initialize_vault_state(config, database_tool=database_tool)
    app.state.dbvault_state = state
    app.state.dbvault_config = config

    register_dbvault_routes(app, state, prefix)

    scheduler = _setup_scheduled_jobs(state)

    logger.info("dbvault_lifespan_started")

    try:
        yield
    finally:
        logger.info("dbvault_lifespan_stopping")
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        await shutdown_vault_state(state)
        logger.info("dbvault_lifespan_stopped")


def get_dbvault_state(app: FastAPI) -> DBVaultState:
    """
    Get dbvault state from a FastAPI app.

    Raises:
        RuntimeError: If dbvault is not initialized
    """
    state = getattr(app.state, "dbvault_state", None)
    if not state:
        raise RuntimeError("dbvault not initialized. Use dbvault_lifespan first.")
    return state
