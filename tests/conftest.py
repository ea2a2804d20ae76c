"""
Test configuration: ensures repo root is in sys.path + determinism guards.

This allows tests to import from top-level packages (lib, api, cli).
Enforces determinism by blocking live DB access: every test runs with
STAFF_DESK_HOME pointed at a temp directory and talks to a fixture DB.

IMPORTANT: Guards are installed at conftest load time (not in fixtures) to catch
import-time filesystem probes to live DB paths.
"""

import os
import sqlite3
import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import lib.*, api.*, cli.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# =============================================================================
# DETERMINISM GUARD: Block live database access
# =============================================================================

HOME_DB_ABSOLUTE = Path.home() / ".staff_desk" / "data" / "staff_desk.db"

# Precompute string patterns for fast matching (avoid Path operations)
_FORBIDDEN_DB_PATTERNS = [
    str(HOME_DB_ABSOLUTE),
    ".staff_desk/data/staff_desk.db",
]


def _is_forbidden_path(path_str: str) -> bool:
    """Check if a path string matches any forbidden live DB pattern."""
    if not path_str:
        return False
    return any(pattern in path_str for pattern in _FORBIDDEN_DB_PATTERNS)


def _raise_determinism_violation(path_str: str, operation: str):
    """Raise RuntimeError for forbidden path access."""
    raise RuntimeError(
        f"DETERMINISM VIOLATION: live DB path probed via {operation}: {path_str}\n"
        "Tests must use fixture_db from tests/fixtures/fixture_db.py.\n"
        "Use: from tests.fixtures import create_fixture_db"
    )


# =============================================================================
# FILESYSTEM GUARDS (installed at conftest load time)
# =============================================================================

_original_os_stat = os.stat
_original_path_exists = Path.exists


def _guarded_os_stat(path, *args, **kwargs):
    """Guard os.stat against live DB path probes."""
    path_str = str(path)
    if _is_forbidden_path(path_str):
        _raise_determinism_violation(path_str, "os.stat")
    return _original_os_stat(path, *args, **kwargs)


def _guarded_path_exists(self, *args, **kwargs):
    """Guard Path.exists against live DB path probes."""
    path_str = str(self)
    if _is_forbidden_path(path_str):
        _raise_determinism_violation(path_str, "Path.exists")
    return _original_path_exists(self, *args, **kwargs)


os.stat = _guarded_os_stat
Path.exists = _guarded_path_exists

_original_sqlite_connect = sqlite3.connect


def _guarded_sqlite_connect(database, *args, **kwargs):
    """Intercept sqlite3.connect to block live DB access."""
    if _is_forbidden_path(str(database)):
        _raise_determinism_violation(str(database), "sqlite3.connect")
    return _original_sqlite_connect(database, *args, **kwargs)


@pytest.fixture(autouse=True)
def guard_live_db_access(monkeypatch, tmp_path):
    """Automatically guard all tests against live DB access."""
    monkeypatch.setattr(sqlite3, "connect", _guarded_sqlite_connect)
    monkeypatch.setenv("STAFF_DESK_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("STAFF_DESK_DB", raising=False)


# =============================================================================
# FIXTURE DB
# =============================================================================


@pytest.fixture
def fixture_db_path(tmp_path, monkeypatch):
    """
    Fresh fixture DB per test, with seed employees and projects.
    STAFF_DESK_DB points at it so Database() and the API use it.
    """
    from tests.fixtures.fixture_db import create_fixture_db

    db_path = tmp_path / "fixture_test.db"
    create_fixture_db(db_path).close()
    monkeypatch.setenv("STAFF_DESK_DB", str(db_path))
    return db_path


@pytest.fixture
def db(fixture_db_path):
    """Database handle on the fixture DB."""
    from lib.db import Database

    database = Database(fixture_db_path)
    yield database
    database.close()


@pytest.fixture
def service(db):
    from lib.allocations import AllocationService

    return AllocationService(db)


# =============================================================================
# ACTORS
# =============================================================================


@pytest.fixture
def hr():
    from lib.security import Actor, Role

    return Actor(id="hr-1", role=Role.HR_EXECUTIVE)


@pytest.fixture
def pm():
    from lib.security import Actor, Role

    return Actor(id="pm-1", role=Role.PROJECT_MANAGER)


@pytest.fixture
def employee():
    from lib.security import Actor, Role

    return Actor(id="emp-1", role=Role.EMPLOYEE)
