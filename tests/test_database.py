# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Database Tooling Tests - PostgreSQL tool wiring without a live server.
"""

from pathlib import Path

import pytest

from dbvault.config import DatabaseConfig
from dbvault.database import create_database_tool
from dbvault.database.postgres import PostgresTool, _quote_identifier
from dbvault.exceptions import ExternalToolError


def test_factory_builds_postgres_tool():
    tool = create_database_tool(DatabaseConfig(name="appdb"))
    assert isinstance(tool, PostgresTool)


def test_quote_identifier_accepts_scratch_names():
    assert _quote_identifier("restore_check_01jabc") == '"restore_check_01jabc"'


@pytest.mark.parametrize("name", ['x"; DROP DATABASE prod; --', "1abc", "", "a-b"])
def test_quote_identifier_rejects_unsafe_names(name):
    with pytest.raises(ExternalToolError):
        _quote_identifier(name)


def test_password_is_passed_through_environment_only():
    tool = PostgresTool(DatabaseConfig(host="db", port=5433, user="u", password="pw"))

    assert tool._env()["PGPASSWORD"] == "pw"
    assert tool._connection_args() == ["-h", "db", "-p", "5433", "-U", "u"]
    assert "pw" not in tool._connection_args()


def test_bin_dir_prefixes_binaries():
    tool = PostgresTool(DatabaseConfig(bin_dir=Path("/opt/pg/bin")))
    assert tool._binary("pg_dump") == "/opt/pg/bin/pg_dump"
    assert PostgresTool(DatabaseConfig())._binary("pg_dump") == "pg_dump"


@pytest.mark.asyncio
async def test_missing_binary_raises_external_tool_error(temp_dir: Path):
    tool = PostgresTool(DatabaseConfig(bin_dir=temp_dir / "no-such-bin"))

    with pytest.raises(ExternalToolError, match="not found"):
        await tool.dump(temp_dir / "out.raw")

    assert not (temp_dir / "out.raw").exists()
