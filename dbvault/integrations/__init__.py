# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Framework Integrations - FastAPI admin API and scheduler.
"""

from dbvault.integrations.fastapi import (
    dbvault_lifespan,
    get_dbvault_state,
    register_dbvault_routes,
    verify_api_key,
)

__all__ = [
    "dbvault_lifespan",
    "get_dbvault_state",
    "register_dbvault_routes",
    "verify_api_key",
]
