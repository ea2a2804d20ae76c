"""
Declarative Schema Definition: the single source of truth.

Every table and index for STAFF DESK lives here. Nothing else defines
schema. The schema_engine reads this and converges any database to match.

Adding a column = add one line here. The engine handles the rest.

Column definitions use CREATE TABLE syntax. The schema_engine knows how
to derive ALTER TABLE ADD COLUMN DDL (strips PK, adjusts NOT NULL, etc.).

Dates are stored as ISO-8601 TEXT (YYYY-MM-DD) so that lexical comparison
in SQL matches calendar order. A NULL end_date means open-ended.
"""

from collections import OrderedDict

# =============================================================================
# Schema version, bump when you change this file
# =============================================================================
SCHEMA_VERSION = 3

# =============================================================================
# Table Definitions
#
# Format: TABLES[name] = {"columns": [(col_name, col_ddl), ...]}
# =============================================================================

TABLES: dict[str, dict] = OrderedDict()

# ---------------------------------------------------------------------------
# employees
# ---------------------------------------------------------------------------
TABLES["employees"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("employee_code", "TEXT NOT NULL UNIQUE"),
        ("full_name", "TEXT NOT NULL"),
        ("email", "TEXT"),
        ("employee_role", "TEXT NOT NULL DEFAULT 'employee'"),
        ("status", "TEXT NOT NULL DEFAULT 'ACTIVE'"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

# ---------------------------------------------------------------------------
# projects
# ---------------------------------------------------------------------------
TABLES["projects"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("project_code", "TEXT NOT NULL UNIQUE"),
        ("project_name", "TEXT NOT NULL"),
        ("project_manager_id", "TEXT REFERENCES employees(id)"),
        ("status", "TEXT NOT NULL DEFAULT 'ACTIVE'"),
        ("created_at", "TEXT NOT NULL DEFAULT (datetime('now'))"),
    ],
}

# ---------------------------------------------------------------------------
# project_allocation
# ---------------------------------------------------------------------------
TABLES["project_allocation"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("employee_id", "TEXT NOT NULL REFERENCES employees(id)"),
        ("project_id", "TEXT NOT NULL REFERENCES projects(id)"),
        ("role", "TEXT NOT NULL"),
        ("percentage", "REAL NOT NULL CHECK (percentage > 0 AND percentage <= 100)"),
        ("start_date", "TEXT NOT NULL"),
        ("end_date", "TEXT"),
        ("billable", "INTEGER NOT NULL DEFAULT 0"),
        ("assigned_by", "TEXT"),
        ("created_at", "TEXT NOT NULL"),
        ("updated_at", "TEXT NOT NULL"),
    ],
}

# ---------------------------------------------------------------------------
# audit_logs (append-only)
# ---------------------------------------------------------------------------
TABLES["audit_logs"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("entity_type", "TEXT NOT NULL"),
        ("entity_id", "TEXT NOT NULL"),
        ("operation", "TEXT NOT NULL CHECK (operation IN ('INSERT', 'UPDATE', 'DELETE'))"),
        ("changed_by", "TEXT NOT NULL"),
        ("changed_at", "TEXT NOT NULL"),
        ("changed_fields", "TEXT"),
        ("request_id", "TEXT"),
    ],
}

# =============================================================================
# Indexes
#
# Format: (index_name, table, columns, where_clause_or_None)
# =============================================================================

INDEXES: list[tuple[str, str, str, str | None]] = [
    ("idx_pa_employee", "project_allocation", "employee_id", None),
    ("idx_pa_project", "project_allocation", "project_id", None),
    ("idx_pa_employee_span", "project_allocation", "employee_id, start_date, end_date", None),
    ("idx_projects_manager", "projects", "project_manager_id", None),
    ("idx_audit_entity", "audit_logs", "entity_type, entity_id", None),
    ("idx_audit_changed_at", "audit_logs", "changed_at", None),
]
