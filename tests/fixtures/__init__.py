"""
Test fixtures for deterministic testing.

This module provides:
- fixture_db: Creates temp SQLite databases with pinned seed employees/projects
"""

from .fixture_db import (
    SEED_EMPLOYEES,
    SEED_PROJECTS,
    create_fixture_db,
    get_fixture_db_path,
    guard_no_live_db,
)

__all__ = [
    "SEED_EMPLOYEES",
    "SEED_PROJECTS",
    "create_fixture_db",
    "get_fixture_db_path",
    "guard_no_live_db",
]
