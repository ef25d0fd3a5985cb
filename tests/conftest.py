# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for dbvault tests.

Provides a temporary record store, test configuration and an in-memory
database tool standing in for pg_dump/pg_restore.
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Generator, List, Tuple

import pytest
import pytest_asyncio

# Set test environment variables
os.environ["DBVAULT_ADMIN_API_KEY"] = "test-api-key-12345"

TEST_KEY_MATERIAL = "test-encryption-key-material"
FAKE_DUMP = b"PGDMP\x01\x0e fake custom-format dump " * 64


class FakeDatabaseTool:
    """
    In-memory DatabaseTool.

    Records every call so tests can assert what touched the database.
    """

    def __init__(
        self,
        dump_bytes: bytes = FAKE_DUMP,
        tables: int = 7,
        fail_dump: Exception | None = None,
        fail_restore: Exception | None = None,
        fail_drop: Exception | None = None,
    ):
        self.dump_bytes = dump_bytes
        self.tables = tables
        self.fail_dump = fail_dump
        self.fail_restore = fail_restore
        self.fail_drop = fail_drop

        self.dumps: List[datetime | None] = []
        self.restores: List[Tuple[bytes, str, bool]] = []
        self.created: List[str] = []
        self.dropped: List[str] = []

    async def dump(self, output_path: Path, since: datetime | None = None) -> Path:
        self.dumps.append(since)
        if self.fail_dump is not None:
            raise self.fail_dump
        output_path.write_bytes(self.dump_bytes)
        return output_path

    async def restore(self, dump_path: Path, database: str, clean: bool) -> None:
        self.restores.append((dump_path.read_bytes(), database, clean))
        if self.fail_restore is not None:
            raise self.fail_restore

    async def create_database(self, name: str) -> None:
        self.created.append(name)

    async def drop_database(self, name: str) -> None:
        self.dropped.append(name)
        if self.fail_drop is not None:
            raise self.fail_drop

    async def count_tables(self, database: str) -> int:
        return self.tables


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path):
    """Create a test configuration with key material."""
    from dbvault.config import DatabaseConfig, DBVaultConfig

    return DBVaultConfig(
        backup_dir=temp_dir / "backups",
        state_path=temp_dir / "state",
        encryption_key=TEST_KEY_MATERIAL,
        retention_days=30,
        database=DatabaseConfig(name="appdb"),
    )


@pytest.fixture
def keyless_config(test_config):
    """Same configuration without key material."""
    return test_config.with_updates(encryption_key=None)


@pytest_asyncio.fixture
async def store(temp_dir: Path):
    """Create an initialized SQLite record store."""
    from dbvault.vault import SQLiteRecordStore

    record_store = SQLiteRecordStore(temp_dir / "records.db")
    await record_store.initialize()
    return record_store


@pytest.fixture
def fake_db() -> FakeDatabaseTool:
    return FakeDatabaseTool()


@pytest.fixture
def orchestrator(test_config, store, fake_db):
    from dbvault.backup import BackupOrchestrator

    return BackupOrchestrator(test_config, store, fake_db)


@pytest.fixture
def verification(test_config, store):
    from dbvault.backup import BackupVerificationService

    return BackupVerificationService(test_config, store)


@pytest.fixture
def executor(test_config, store, fake_db):
    from dbvault.recovery import DisasterRecoveryExecutor

    return DisasterRecoveryExecutor(test_config, store, fake_db)


@pytest_asyncio.fixture
async def verified_backup(orchestrator, verification):
    """A full backup that has passed verification."""
    record = await orchestrator.create_full_backup()
    return await verification.verify_backup(record.id, verified_by="fixture")
