"""
Centralized Database Access for STAFF DESK.

Single source of truth for:
- DB path resolution
- Connection factory and transactions
- Schema convergence (delegated to schema_engine)
- Startup validation

ALL code must use this module for DB access. No direct sqlite3.connect() elsewhere.
"""

import logging
import re
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from lib import paths, schema, schema_engine

logger = logging.getLogger(__name__)

# ============================================================
# SQL IDENTIFIER VALIDATION
# ============================================================

_SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_identifier(name: str) -> str:
    """Validate that *name* is a safe SQL identifier (table or column name).

    Returns the name unchanged if valid; raises ``ValueError`` otherwise.
    This prevents SQL injection via dynamic identifier interpolation.
    """
    if not _SAFE_IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


# ============================================================
# DB PATH RESOLUTION
# ============================================================


def get_db_path() -> Path:
    """
    Get the canonical DB path. ALL code must use this.

    Resolution order:
    1. STAFF_DESK_DB env var (explicit override)
    2. ~/.staff_desk/data/staff_desk.db (default via paths.db_path())
    """
    return paths.db_path()


# ============================================================
# DATABASE
# ============================================================


def _dict_factory(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    """Row factory that returns dicts instead of tuples."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


class Database:
    """
    Request-scoped database handle.

    Holds one lazily-opened connection in autocommit mode; statements
    executed inside ``transaction()`` share a single explicit
    BEGIN/COMMIT, everything else commits per statement.
    """

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path else get_db_path()
        self._connection: sqlite3.Connection | None = None
        self._in_transaction = False

    def get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(
                str(self.db_path),
                isolation_level=None,
                check_same_thread=False,
                timeout=10,
            )
            self._connection.row_factory = _dict_factory
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @contextmanager
    def transaction(self, immediate: bool = True) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for an all-or-nothing transaction.

        Commits on success, rolls back on any exception. ``immediate``
        takes SQLite's write lock up front so that reads made inside the
        block cannot be invalidated by another writer before COMMIT.

        Usage:
            with db.transaction() as conn:
                conn.execute("INSERT INTO ...")
        """
        if self._in_transaction:
            raise RuntimeError("Nested transactions are not supported")

        conn = self.get_connection()
        conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        self._in_transaction = True
        try:
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        finally:
            self._in_transaction = False

    # =========================================================================
    # Query Helpers
    # =========================================================================

    def execute(self, sql: str, params: tuple | list | dict | None = None) -> sqlite3.Cursor:
        conn = self.get_connection()
        if params is None:
            return conn.execute(sql)
        return conn.execute(sql, params)

    def fetch_one(self, sql: str, params: tuple | list | dict | None = None) -> dict[str, Any] | None:
        """Execute query and return first row as dict, or None."""
        return self.execute(sql, params).fetchone()

    def fetch_all(self, sql: str, params: tuple | list | dict | None = None) -> list[dict[str, Any]]:
        """Execute query and return all rows as list of dicts."""
        return self.execute(sql, params).fetchall()

    def fetch_value(self, sql: str, params: tuple | list | dict | None = None) -> Any:
        """Execute query and return the first column of the first row, or None."""
        row = self.fetch_one(sql, params)
        if not row:
            return None
        return next(iter(row.values()))

    def insert(self, table: str, data: dict[str, Any]) -> Any:
        """
        Insert a row and return its ``id``.

        Does not commit on its own: wrap in ``transaction()`` to group
        with other writes.
        """
        validate_identifier(table)
        columns = [validate_identifier(c) for c in data]
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"  # noqa: S608
        self.execute(sql, tuple(data.values()))
        return data.get("id")

    def update(self, table: str, data: dict[str, Any], where: str, where_params: tuple | list = ()) -> int:
        """Update rows matching ``where``; returns the number of rows updated."""
        validate_identifier(table)
        set_clause = ", ".join(f"{validate_identifier(col)} = ?" for col in data)
        sql = f"UPDATE {table} SET {set_clause} WHERE {where}"  # noqa: S608
        cursor = self.execute(sql, list(data.values()) + list(where_params))
        return cursor.rowcount


# ============================================================
# CONNECTION FACTORY
# ============================================================


@contextmanager
def get_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Get a plain database connection for maintenance work.

    Usage:
        with get_connection() as conn:
            conn.execute(...)
    """
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


# ============================================================
# SCHEMA INTROSPECTION
# ============================================================


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check if a table exists."""
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    return cursor.fetchone() is not None


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get current schema version from PRAGMA user_version."""
    cursor = conn.execute("PRAGMA user_version")
    return cursor.fetchone()[0]


# ============================================================
# STARTUP ENTRY POINT
# ============================================================


def run_startup_migrations() -> dict:
    """
    Converge the schema at startup. Safe to call multiple times.
    Logs comprehensive startup info.
    """
    db_path = get_db_path()

    logger.info("Resolved DB path: %s", db_path)
    logger.info("DB exists: %s", db_path.exists())
    logger.info("Target SCHEMA_VERSION: %s", schema.SCHEMA_VERSION)

    with get_connection() as conn:
        previous_version = get_schema_version(conn)
        results = schema_engine.converge(conn)
        results["previous_version"] = previous_version

        if results.get("tables_created"):
            logger.info("Tables created: %s", results["tables_created"])
        if results.get("columns_added"):
            logger.info("Columns added: %s", results["columns_added"])
        if results.get("indexes_created"):
            logger.info("Indexes created: %d", len(results["indexes_created"]))
        if results.get("errors"):
            logger.warning("Convergence errors: %s", results["errors"])

        for critical in schema.TABLES:
            if not table_exists(conn, critical):
                logger.error("MISSING %s", critical)

        logger.info("Final user_version: %s", results.get("schema_version"))

    return results
