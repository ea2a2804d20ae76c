"""
Allocation Repository

Raw database operations for allocations and the employee/project rows
they reference.
"""

from datetime import date
from typing import Any

from lib.db import Database

from .models import Allocation

_LIST_COLUMNS = """
    pa.*,
    e.employee_code AS employee_code,
    e.full_name AS employee_name,
    p.project_code AS project_code,
    p.project_name AS project_name
"""

_LIST_FROM = """
    FROM project_allocation pa
    JOIN employees e ON e.id = pa.employee_id
    JOIN projects p ON p.id = pa.project_id
"""


class AllocationRepository:
    """Repository for allocation database operations."""

    def __init__(self, db: Database):
        self.db = db

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    def insert(self, allocation: Allocation) -> str:
        return self.db.insert("project_allocation", allocation.to_row())

    def update(self, allocation_id: str, updates: dict[str, Any]) -> bool:
        """Apply column updates to one allocation. Returns True if a row changed."""
        return self.db.update("project_allocation", updates, "id = ?", [allocation_id]) > 0

    def get(self, allocation_id: str) -> Allocation | None:
        row = self.db.fetch_one("SELECT * FROM project_allocation WHERE id = ?", (allocation_id,))
        return Allocation.from_row(row) if row else None

    def for_employee(self, employee_id: str) -> list[Allocation]:
        rows = self.db.fetch_all(
            "SELECT * FROM project_allocation WHERE employee_id = ? ORDER BY start_date, id",
            (employee_id,),
        )
        return [Allocation.from_row(r) for r in rows]

    # =========================================================================
    # Listing
    # =========================================================================

    def list_page(
        self,
        employee_id: str | None = None,
        project_id: str | None = None,
        managed_by: str | None = None,
        active_on: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        List allocations joined with employee and project names.

        Args:
            employee_id: Only this employee's rows
            project_id: Only rows on this project
            managed_by: Only rows on projects managed by this employee
            active_on: Only rows with no end or an end on/after this day

        Returns:
            (rows, total) where total ignores limit/offset
        """
        conditions = ["1=1"]
        params: list[Any] = []

        if employee_id:
            conditions.append("pa.employee_id = ?")
            params.append(employee_id)

        if project_id:
            conditions.append("pa.project_id = ?")
            params.append(project_id)

        if managed_by:
            conditions.append("p.project_manager_id = ?")
            params.append(managed_by)

        if active_on:
            conditions.append("(pa.end_date IS NULL OR pa.end_date >= ?)")
            params.append(active_on.isoformat())

        where = " AND ".join(conditions)
        total = self.db.fetch_value(f"SELECT COUNT(*) AS cnt {_LIST_FROM} WHERE {where}", params)  # noqa: S608
        rows = self.db.fetch_all(
            f"SELECT {_LIST_COLUMNS} {_LIST_FROM} WHERE {where} "  # noqa: S608
            "ORDER BY pa.start_date DESC, e.employee_code, pa.id LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )

        for row in rows:
            row["billable"] = bool(row["billable"])

        return rows, int(total or 0)

    def current_with_projects(self, employee_id: str, today: date) -> list[dict[str, Any]]:
        """Allocations with no end or an end on/after ``today``, with project names."""
        rows = self.db.fetch_all(
            """
            SELECT pa.project_id, p.project_code, p.project_name,
                   pa.percentage, pa.billable, pa.start_date, pa.end_date
            FROM project_allocation pa
            JOIN projects p ON p.id = pa.project_id
            WHERE pa.employee_id = ?
              AND (pa.end_date IS NULL OR pa.end_date >= ?)
            ORDER BY pa.start_date, p.project_code
            """,
            (employee_id, today.isoformat()),
        )
        for row in rows:
            row["billable"] = bool(row["billable"])
        return rows

    # =========================================================================
    # Referenced rows
    # =========================================================================

    def get_employee(self, employee_id: str) -> dict[str, Any] | None:
        return self.db.fetch_one("SELECT * FROM employees WHERE id = ?", (employee_id,))

    def get_project(self, project_id: str) -> dict[str, Any] | None:
        return self.db.fetch_one("SELECT * FROM projects WHERE id = ?", (project_id,))
