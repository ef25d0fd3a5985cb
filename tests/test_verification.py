# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Verification Tests - Each integrity and compliance condition in isolation.
"""

from datetime import timedelta
from pathlib import Path

import pytest

from dbvault.backup import BackupVerificationService
from dbvault.exceptions import NotFoundError, PreconditionError, VerificationError
from dbvault.models import BackupStatus


async def _completed(orchestrator, store, **changes):
    """Create a COMPLETED backup and apply record changes before verifying."""
    record = await orchestrator.create_full_backup()
    for name, value in changes.items():
        setattr(record, name, value)
    await store.save_backup(record)
    return record


async def _expect_conditions(verification, store, record, expected):
    with pytest.raises(VerificationError) as exc_info:
        await verification.verify_backup(record.id)

    assert exc_info.value.conditions == expected

    stored = await store.get_backup(record.id)
    assert stored.status == BackupStatus.COMPLETED
    assert stored.compliant is False
    assert stored.verified_at is None


# ============================================================================
# Happy path
# ============================================================================


@pytest.mark.asyncio
async def test_clean_backup_is_promoted_to_verified(orchestrator, verification, store):
    record = await orchestrator.create_full_backup()

    verified = await verification.verify_backup(record.id, verified_by="auditor")

    assert verified.status == BackupStatus.VERIFIED
    assert verified.compliant is True
    assert verified.verified_by == "auditor"
    assert verified.verified_at is not None

    stored = await store.get_backup(record.id)
    assert stored.status == BackupStatus.VERIFIED
    assert stored.compliant is True


# ============================================================================
# Individual conditions
# ============================================================================


@pytest.mark.asyncio
async def test_missing_file(orchestrator, verification, store):
    record = await orchestrator.create_full_backup()
    Path(record.backup_path).unlink()

    await _expect_conditions(verification, store, record, ["file_not_found"])


@pytest.mark.asyncio
async def test_checksum_mismatch(orchestrator, verification, store):
    record = await _completed(orchestrator, store, checksum="f" * 64)

    await _expect_conditions(verification, store, record, ["checksum_mismatch"])


@pytest.mark.asyncio
async def test_size_mismatch(orchestrator, verification, store):
    record = await orchestrator.create_full_backup()
    record.backup_size += 1
    await store.save_backup(record)

    await _expect_conditions(verification, store, record, ["size_mismatch"])


@pytest.mark.asyncio
async def test_tampered_artifact_fails_checksum_and_size(orchestrator, verification, store):
    record = await orchestrator.create_full_backup()
    with open(record.backup_path, "ab") as f:
        f.write(b"tamper")

    await _expect_conditions(
        verification, store, record, ["checksum_mismatch", "size_mismatch"]
    )


@pytest.mark.asyncio
async def test_not_encrypted(orchestrator, verification, store):
    record = await _completed(orchestrator, store, encrypted=False)

    await _expect_conditions(verification, store, record, ["not_encrypted"])


@pytest.mark.asyncio
async def test_missing_version_marker(orchestrator, verification, store):
    record = await _completed(orchestrator, store, metadata={"initiated_by": "system"})

    await _expect_conditions(verification, store, record, ["missing_version_marker"])


@pytest.mark.asyncio
async def test_retention_exceeded(orchestrator, verification, store, test_config):
    record = await orchestrator.create_full_backup()
    record.started_at = record.started_at - timedelta(days=test_config.retention_days + 1)
    await store.save_backup(record)

    await _expect_conditions(verification, store, record, ["retention_exceeded"])


@pytest.mark.asyncio
async def test_failure_clears_previous_compliance_flag(orchestrator, verification, store):
    record = await _completed(orchestrator, store, compliant=True, encrypted=False)

    await _expect_conditions(verification, store, record, ["not_encrypted"])


# ============================================================================
# Preconditions
# ============================================================================


@pytest.mark.asyncio
async def test_unknown_backup(verification):
    with pytest.raises(NotFoundError):
        await verification.verify_backup("01JNOSUCHBACKUP0000000000000")


@pytest.mark.asyncio
async def test_already_verified_backup_is_rejected(verification, verified_backup):
    with pytest.raises(PreconditionError) as exc_info:
        await verification.verify_backup(verified_backup.id)

    assert not isinstance(exc_info.value, VerificationError)


@pytest.mark.asyncio
async def test_failed_backup_is_rejected(verification, store):
    from dbvault.models import BackupRecord, BackupType

    record = BackupRecord(backup_type=BackupType.FULL)
    record.mark_in_progress()
    record.mark_failed("boom")
    await store.save_backup(record)

    with pytest.raises(PreconditionError):
        await verification.verify_backup(record.id)


# ============================================================================
# Sweep and status
# ============================================================================


@pytest.mark.asyncio
async def test_sweep_continues_past_failures(orchestrator, verification, store):
    good = await orchestrator.create_full_backup()
    bad = await orchestrator.create_full_backup()
    Path(bad.backup_path).unlink()

    outcome = await verification.verify_recent_backups()

    assert outcome["verified"] == [good.id]
    assert list(outcome["failed"]) == [bad.id]
    assert "file_not_found" in outcome["failed"][bad.id]


@pytest.mark.asyncio
async def test_sweep_respects_batch_size(orchestrator, store, test_config):
    service = BackupVerificationService(
        test_config.with_updates(verification_batch_size=2), store
    )
    for _ in range(3):
        await orchestrator.create_full_backup()

    outcome = await service.verify_recent_backups()

    assert len(outcome["verified"]) == 2
    assert await store.count_backups(BackupStatus.COMPLETED) == 1


@pytest.mark.asyncio
async def test_verification_status_counts(orchestrator, verification, store):
    first = await orchestrator.create_full_backup()
    await orchestrator.create_full_backup()
    await verification.verify_backup(first.id)

    from dbvault.models import BackupRecord, BackupType

    failed = BackupRecord(backup_type=BackupType.FULL)
    failed.mark_in_progress()
    failed.mark_failed("boom")
    await store.save_backup(failed)

    status = await verification.get_verification_status()

    assert status == {
        "total_backups": 3,
        "verified_backups": 1,
        "unverified_backups": 1,
        "failed_backups": 1,
    }
