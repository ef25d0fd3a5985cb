# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Packaging Tests - Project metadata stays installable.
"""

import tomllib
from pathlib import Path

import dbvault

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def load_project() -> dict:
    with open(PROJECT_ROOT / "pyproject.toml", "rb") as f:
        return tomllib.load(f)["project"]


def test_version_matches_package():
    assert load_project()["version"] == dbvault.__version__


def test_readme_if_declared_is_package_documentation():
    readme = load_project().get("readme")
    if readme is None:
        return

    path = readme if isinstance(readme, str) else readme["file"]
    assert (PROJECT_ROOT / path).exists()
    assert Path(path).stem.upper() == "README"
