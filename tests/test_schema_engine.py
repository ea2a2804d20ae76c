"""
Schema engine and Database tests.

Convergence of old databases, ALTER-safe column DDL, and the
transaction/query helpers on Database.
"""

import sqlite3

import pytest

from lib import schema, schema_engine
from lib.db import Database, run_startup_migrations, validate_identifier


class TestMakeAlterSafe:
    @pytest.mark.parametrize(
        "ddl, expected",
        [
            ("TEXT PRIMARY KEY", "TEXT"),
            ("TEXT NOT NULL UNIQUE", "TEXT NOT NULL DEFAULT ''"),
            ("TEXT NOT NULL REFERENCES employees(id)", "TEXT NOT NULL DEFAULT ''"),
            ("INTEGER NOT NULL DEFAULT 0", "INTEGER NOT NULL DEFAULT 0"),
            ("REAL NOT NULL CHECK (percentage > 0 AND percentage <= 100)", "REAL NOT NULL DEFAULT ''"),
            ("TEXT", "TEXT"),
        ],
    )
    def test_strips_create_only_clauses(self, ddl, expected):
        assert schema_engine.make_alter_safe(ddl) == expected


class TestConverge:
    def test_empty_db_gets_every_table(self, tmp_path):
        conn = sqlite3.connect(str(tmp_path / "new.db"))

        result = schema_engine.converge(conn)

        assert result["tables_created"] == list(schema.TABLES)
        assert result["errors"] == []
        assert conn.execute("PRAGMA user_version").fetchone()[0] == schema.SCHEMA_VERSION
        conn.close()

    def test_adds_missing_columns_without_dropping_data(self, tmp_path):
        conn = sqlite3.connect(str(tmp_path / "old.db"))
        conn.execute(
            "CREATE TABLE project_allocation (id TEXT PRIMARY KEY, employee_id TEXT, project_id TEXT, "
            "percentage REAL, start_date TEXT, end_date TEXT)"
        )
        conn.execute(
            "INSERT INTO project_allocation VALUES ('a1', 'emp-1', 'prj-a', 50, '2024-01-01', NULL)"
        )

        result = schema_engine.converge(conn)

        assert "project_allocation.billable" in result["columns_added"]
        assert "project_allocation.updated_at" in result["columns_added"]
        row = conn.execute("SELECT percentage, billable FROM project_allocation WHERE id = 'a1'").fetchone()
        assert row == (50, 0)
        conn.close()

    def test_converge_is_idempotent(self, tmp_path):
        conn = sqlite3.connect(str(tmp_path / "twice.db"))
        schema_engine.converge(conn)

        second = schema_engine.converge(conn)

        assert second["tables_created"] == []
        assert second["columns_added"] == []
        assert second["indexes_created"] == []
        conn.close()

    def test_run_startup_migrations_uses_configured_path(self, tmp_path, monkeypatch):
        db_path = tmp_path / "startup.db"
        monkeypatch.setenv("STAFF_DESK_DB", str(db_path))

        result = run_startup_migrations()

        assert result["previous_version"] == 0
        assert result["schema_version"] == schema.SCHEMA_VERSION
        assert db_path.exists()


class TestDatabase:
    def test_transaction_commits(self, db):
        with db.transaction():
            db.insert("projects", {"id": "prj-x", "project_code": "PRJ-X", "project_name": "X"})

        assert db.fetch_value("SELECT project_name FROM projects WHERE id = 'prj-x'") == "X"

    def test_transaction_rolls_back(self, db):
        with pytest.raises(ValueError), db.transaction():
            db.insert("projects", {"id": "prj-x", "project_code": "PRJ-X", "project_name": "X"})
            raise ValueError("boom")

        assert db.fetch_one("SELECT * FROM projects WHERE id = 'prj-x'") is None
        assert not db.in_transaction

    def test_nested_transaction_refused(self, db):
        with db.transaction(), pytest.raises(RuntimeError):
            with db.transaction():
                pass

    def test_immediate_transaction_blocks_second_writer(self, db, fixture_db_path):
        """A second connection cannot start a write while one is open."""
        other = Database(fixture_db_path)
        other.get_connection().execute("PRAGMA busy_timeout = 0")
        try:
            with db.transaction():
                with pytest.raises(sqlite3.OperationalError):
                    other.execute("BEGIN IMMEDIATE")
        finally:
            other.close()

    def test_foreign_keys_enforced(self, db):
        with pytest.raises(sqlite3.IntegrityError):
            db.insert("projects", {
                "id": "prj-y", "project_code": "PRJ-Y", "project_name": "Y", "project_manager_id": "ghost",
            })

    def test_update_returns_rowcount(self, db):
        assert db.update("employees", {"status": "INACTIVE"}, "employee_role = ?", ["employee"]) == 3

    def test_validate_identifier(self):
        assert validate_identifier("project_allocation") == "project_allocation"
        with pytest.raises(ValueError):
            validate_identifier("x; DROP TABLE employees")
