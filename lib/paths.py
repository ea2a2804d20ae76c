from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "STAFF_DESK_HOME"
APP_ENV_DB = "STAFF_DESK_DB"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains lib/, api/, cli/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for Staff Desk.
    Override with STAFF_DESK_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".staff_desk").resolve()


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def log_dir() -> Path:
    d = app_home() / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    """
    Canonical DB path for staff_desk.

    Resolution order:
    1. STAFF_DESK_DB env var (explicit override)
    2. ~/.staff_desk/data/staff_desk.db (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / "staff_desk.db"
