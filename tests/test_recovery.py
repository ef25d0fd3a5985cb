# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Disaster Recovery Tests - Planning, restore drills and real recoveries.
"""

from datetime import datetime, UTC
from pathlib import Path

import pytest

from dbvault.exceptions import (
    ConfigurationError,
    ExternalToolError,
    IntegrityError,
    NotFoundError,
    PreconditionError,
)
from dbvault.models import RecoveryTestStatus, RecoveryTestType
from dbvault.recovery import (
    DisasterRecoveryExecutor,
    DisasterRecoveryPlanner,
    RecoveryOptions,
    scratch_database_name,
)

from conftest import FAKE_DUMP, FakeDatabaseTool


# ============================================================================
# Planner
# ============================================================================


@pytest.mark.asyncio
async def test_plan_has_ten_ordered_steps(test_config, store, verified_backup):
    planner = DisasterRecoveryPlanner(test_config, store)

    plan = await planner.create_recovery_plan(verified_backup.id)

    assert [s.order for s in plan.steps] == list(range(1, 11))
    assert all(s.critical for s in plan.steps)
    assert plan.estimated_duration_minutes == 97
    assert plan.steps[3].command == test_config.stop_services_command
    assert plan.steps[7].command == test_config.start_services_command
    assert [b.id for b in plan.required_backups] == [verified_backup.id]
    assert plan.risk_assessment.startswith("Medium")


@pytest.mark.asyncio
async def test_plan_uses_configured_service_commands(test_config, store, verified_backup):
    config = test_config.with_updates(
        stop_services_command="systemctl stop app",
        start_services_command="systemctl start app",
    )
    plan = await DisasterRecoveryPlanner(config, store).create_recovery_plan(verified_backup.id)

    assert plan.steps[3].command == "systemctl stop app"
    assert plan.steps[7].command == "systemctl start app"
    assert plan.to_dict()["steps"][3]["command"] == "systemctl stop app"


@pytest.mark.asyncio
async def test_plan_for_incremental_includes_base(test_config, store, orchestrator, verified_backup):
    incremental = await orchestrator.create_incremental_backup()

    plan = await DisasterRecoveryPlanner(test_config, store).create_recovery_plan(incremental.id)

    assert [b.id for b in plan.required_backups] == [verified_backup.id, incremental.id]


@pytest.mark.asyncio
async def test_plan_for_unknown_backup(test_config, store):
    with pytest.raises(NotFoundError):
        await DisasterRecoveryPlanner(test_config, store).create_recovery_plan("missing")


# ============================================================================
# Preconditions
# ============================================================================


@pytest.mark.asyncio
async def test_recovery_of_unknown_backup(executor, store):
    with pytest.raises(NotFoundError):
        await executor.perform_recovery(RecoveryOptions(backup_id="missing"), "ops")

    assert await store.list_recovery_tests() == []


@pytest.mark.asyncio
async def test_recovery_requires_verified_backup(executor, orchestrator, store, fake_db):
    completed = await orchestrator.create_full_backup()

    with pytest.raises(PreconditionError):
        await executor.perform_recovery(RecoveryOptions(backup_id=completed.id), "ops")

    assert await store.list_recovery_tests() == []
    assert fake_db.restores == []


@pytest.mark.asyncio
async def test_recovery_requires_key_material(keyless_config, store, fake_db, verified_backup):
    executor = DisasterRecoveryExecutor(keyless_config, store, fake_db)

    with pytest.raises(ConfigurationError):
        await executor.perform_recovery(RecoveryOptions(backup_id=verified_backup.id), "ops")

    assert await store.list_recovery_tests() == []


@pytest.mark.asyncio
async def test_check_recoverable_applies_recovery_preconditions(
    executor, orchestrator, keyless_config, store, fake_db, verified_backup
):
    assert (await executor.check_recoverable(verified_backup.id)).id == verified_backup.id

    with pytest.raises(NotFoundError):
        await executor.check_recoverable("missing")

    completed = await orchestrator.create_full_backup()
    with pytest.raises(PreconditionError):
        await executor.check_recoverable(completed.id)

    keyless = DisasterRecoveryExecutor(keyless_config, store, fake_db)
    with pytest.raises(ConfigurationError):
        await keyless.check_recoverable(verified_backup.id)

    assert await store.list_recovery_tests() == []
    assert fake_db.restores == []


# ============================================================================
# Validation drills
# ============================================================================


def test_scratch_database_names_are_unique():
    first, second = scratch_database_name(), scratch_database_name()
    assert first.startswith("restore_check_")
    assert first == first.lower()
    assert first != second


@pytest.mark.asyncio
async def test_validation_restores_into_scratch_database(
    executor, fake_db, verified_backup, store, test_config
):
    test = await executor.perform_recovery(
        RecoveryOptions(backup_id=verified_backup.id, validate_only=True), "ops"
    )

    assert test.status == RecoveryTestStatus.PASSED
    assert test.test_type == RecoveryTestType.VALIDATION
    assert test.results == {
        "integrity_check": "passed",
        "decompression": "passed",
        "decryption": "passed",
        "tables_restored": 7,
        "restoration": "passed",
    }

    [scratch] = fake_db.created
    assert scratch.startswith("restore_check_")
    assert fake_db.dropped == [scratch]
    assert fake_db.restores == [(FAKE_DUMP, scratch, False)]

    # Temp files are gone, only the artifact remains
    assert [p.name for p in test_config.backup_dir.iterdir()] == [
        Path(verified_backup.backup_path).name
    ]

    stored = await store.get_recovery_test(test.id)
    assert stored.status == RecoveryTestStatus.PASSED
    assert stored.tested_by == "ops"


@pytest.mark.asyncio
async def test_scratch_database_dropped_when_restore_fails(
    test_config, store, verified_backup
):
    failing = FakeDatabaseTool(fail_restore=ExternalToolError("pg_restore failed", returncode=1))
    executor = DisasterRecoveryExecutor(test_config, store, failing)

    with pytest.raises(ExternalToolError):
        await executor.schedule_recovery_test(verified_backup.id, "ops")

    assert len(failing.created) == 1
    assert failing.dropped == failing.created

    [test] = await store.list_recovery_tests()
    assert test.status == RecoveryTestStatus.FAILED
    assert "pg_restore failed" in test.error_message
    assert test.results == {
        "integrity_check": "passed",
        "decompression": "passed",
        "decryption": "passed",
    }
    assert len(list(test_config.backup_dir.iterdir())) == 1


@pytest.mark.asyncio
async def test_drop_failure_does_not_fail_drill(test_config, store, verified_backup):
    flaky = FakeDatabaseTool(fail_drop=ExternalToolError("drop database failed"))
    executor = DisasterRecoveryExecutor(test_config, store, flaky)

    test = await executor.schedule_recovery_test(verified_backup.id, "ops")

    assert test.status == RecoveryTestStatus.PASSED
    assert flaky.dropped == flaky.created


# ============================================================================
# Integrity failures
# ============================================================================


@pytest.mark.asyncio
async def test_tampered_artifact_never_reaches_database(executor, fake_db, verified_backup, store):
    with open(verified_backup.backup_path, "ab") as f:
        f.write(b"corruption")

    with pytest.raises(IntegrityError):
        await executor.perform_recovery(
            RecoveryOptions(backup_id=verified_backup.id, validate_only=True), "ops"
        )

    assert fake_db.created == []
    assert fake_db.restores == []

    [test] = await store.list_recovery_tests()
    assert test.status == RecoveryTestStatus.FAILED
    assert test.results == {}


@pytest.mark.asyncio
async def test_wrong_key_fails_at_decryption(test_config, store, fake_db, verified_backup):
    executor = DisasterRecoveryExecutor(
        test_config.with_updates(encryption_key="a-different-key"), store, fake_db
    )

    with pytest.raises(IntegrityError):
        await executor.perform_recovery(RecoveryOptions(backup_id=verified_backup.id), "ops")

    assert fake_db.restores == []
    [test] = await store.list_recovery_tests()
    assert test.results == {"integrity_check": "passed", "decompression": "passed"}
    assert len(list(test_config.backup_dir.iterdir())) == 1


# ============================================================================
# Full recovery
# ============================================================================


@pytest.mark.asyncio
async def test_full_recovery_restores_into_configured_database(executor, fake_db, verified_backup):
    test = await executor.perform_recovery(RecoveryOptions(backup_id=verified_backup.id), "ops")

    assert test.status == RecoveryTestStatus.PASSED
    assert test.test_type == RecoveryTestType.FULL_RECOVERY
    assert "tables_restored" not in test.results
    assert fake_db.restores == [(FAKE_DUMP, "appdb", True)]
    assert fake_db.created == []


@pytest.mark.asyncio
async def test_full_recovery_into_target_database(executor, fake_db, verified_backup):
    await executor.perform_recovery(
        RecoveryOptions(backup_id=verified_backup.id, target_database="appdb_restored"), "ops"
    )

    assert fake_db.restores == [(FAKE_DUMP, "appdb_restored", True)]


@pytest.mark.asyncio
async def test_point_in_time_is_noted_not_applied(executor, fake_db, verified_backup):
    moment = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)

    test = await executor.perform_recovery(
        RecoveryOptions(backup_id=verified_backup.id, point_in_time=moment), "ops"
    )

    assert test.status == RecoveryTestStatus.PASSED
    assert moment.isoformat() in test.notes
    assert fake_db.restores == [(FAKE_DUMP, "appdb", True)]


@pytest.mark.asyncio
async def test_recovery_tests_are_listed_newest_first(executor, verified_backup):
    first = await executor.schedule_recovery_test(verified_backup.id, "ops")
    second = await executor.schedule_recovery_test(verified_backup.id, "ops")

    tests = await executor.get_recovery_tests(limit=10)
    assert [t.id for t in tests] == [second.id, first.id]
