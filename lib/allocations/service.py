"""
Allocation Service - Business logic for staffing allocations.

Every write follows the same protocol:
1. Validate the request (required fields, percentage, date range)
2. Check capacity against the employee's overlapping allocations
3. Write the allocation row and exactly one audit row per change,
   all inside one transaction

Any exception between BEGIN and COMMIT rolls everything back, so an
allocation write and its audit entry land together or not at all.
"""

import logging
from datetime import date, timedelta
from typing import Any

from lib import config
from lib.audit import AuditStore, EntityType, Operation
from lib.db import Database
from lib.security.rbac import Actor, Role

from .accountant import CapacityAccountant, CapacityCheck, validate_percentage
from .errors import (
    AccessDenied,
    ImmutableField,
    InvalidDateRange,
    InvalidTransfer,
    MissingFields,
    NotFound,
)
from .models import (
    Allocation,
    Bounded,
    DateSpan,
    TransferResult,
    end_date_from,
    new_allocation_id,
    now_iso,
    parse_date,
)
from .repository import AllocationRepository

logger = logging.getLogger(__name__)

REQUIRED_CREATE_FIELDS = ("employee_id", "project_id", "role", "percentage", "start_date")
UPDATABLE_FIELDS = ("percentage", "end_date", "billable")
IMMUTABLE_FIELDS = ("employee_id", "project_id", "start_date")


def _missing(payload: dict[str, Any], fields: tuple[str, ...]) -> list[str]:
    return [f for f in fields if payload.get(f) is None or payload.get(f) == ""]


class AllocationService:
    """
    Creates, changes and reads allocations.

    The accountant, audit store and repository all share ``db`` so their
    statements run on the connection that holds the transaction.
    """

    def __init__(
        self,
        db: Database,
        accountant: CapacityAccountant | None = None,
        audit: AuditStore | None = None,
        repo: AllocationRepository | None = None,
    ):
        self.db = db
        self.accountant = accountant or CapacityAccountant(db)
        self.audit = audit or AuditStore(db)
        self.repo = repo or AllocationRepository(db)

    # =========================================================================
    # Writes
    # =========================================================================

    def create_allocation(self, actor: Actor, payload: dict[str, Any]) -> Allocation:
        """
        Create an allocation after checking the employee's capacity.

        Raises:
            MissingFields, InvalidPercentage, InvalidDate, InvalidDateRange:
                request is malformed
            NotFound: employee or project does not exist
            CapacityExceeded: overlapping total would go above 100%
        """
        missing = _missing(payload, REQUIRED_CREATE_FIELDS)
        if missing:
            raise MissingFields(missing)

        percentage = validate_percentage(payload["percentage"])
        span = DateSpan.from_values(payload["start_date"], payload.get("end_date"))

        with self.db.transaction():
            self._require_employee(payload["employee_id"])
            self._require_project(payload["project_id"])

            check = self.accountant.validate_capacity(payload["employee_id"], percentage, span)

            allocation = Allocation(
                id=new_allocation_id(),
                employee_id=payload["employee_id"],
                project_id=payload["project_id"],
                role=str(payload["role"]),
                percentage=percentage,
                span=span,
                billable=bool(payload.get("billable", False)),
                assigned_by=actor.id,
            )
            self.repo.insert(allocation)
            self.audit.record(
                EntityType.PROJECT_ALLOCATION,
                allocation.id,
                Operation.INSERT,
                actor.id,
                allocation.to_dict(),
            )

        logger.info(
            "Allocation created",
            extra={
                "allocation_id": allocation.id,
                "employee_id": allocation.employee_id,
                "project_id": allocation.project_id,
                "percentage": percentage,
                "new_total": check.new_total,
            },
        )
        return allocation

    def update_allocation(self, actor: Actor, allocation_id: str, changes: dict[str, Any]) -> Allocation:
        """
        Change percentage, end date or billability of an allocation.

        ``end_date`` present with value None makes the allocation open-ended;
        absent leaves it unchanged. The capacity check runs again, excluding
        the allocation itself, when percentage or end date is changed.
        """
        if not allocation_id:
            raise MissingFields(["id"])

        updatable = {k: changes[k] for k in UPDATABLE_FIELDS if k in changes}
        # Only end_date has a meaning for null.
        if updatable.get("billable", False) is None:
            del updatable["billable"]
        attempted_immutable = [k for k in IMMUTABLE_FIELDS if k in changes]
        if not updatable and not attempted_immutable:
            raise MissingFields(list(UPDATABLE_FIELDS), "No updatable fields provided")

        with self.db.transaction():
            current = self.repo.get(allocation_id)
            if current is None:
                raise NotFound("Allocation")

            self._reject_immutable_changes(current, changes, attempted_immutable)
            if not updatable:
                raise MissingFields(list(UPDATABLE_FIELDS), "No updatable fields provided")

            percentage = current.percentage
            if "percentage" in updatable:
                percentage = validate_percentage(updatable["percentage"])

            span = current.span
            if "end_date" in updatable:
                span = DateSpan(current.start_date, end_date_from(updatable["end_date"]))
                span.validate()

            if "percentage" in updatable or "end_date" in updatable:
                self.accountant.validate_capacity(
                    current.employee_id, percentage, span, exclude_allocation_id=current.id
                )

            changed: dict[str, Any] = {}
            if percentage != current.percentage:
                changed["percentage"] = percentage
            if span.end != current.end_date:
                changed["end_date"] = span.end.to_db()
            if "billable" in updatable and bool(updatable["billable"]) != current.billable:
                changed["billable"] = bool(updatable["billable"])

            current.percentage = percentage
            current.span = span
            current.billable = changed.get("billable", current.billable)

            if changed:
                current.updated_at = now_iso()
                row_updates = {k: int(v) if k == "billable" else v for k, v in changed.items()}
                row_updates["updated_at"] = current.updated_at
                self.repo.update(current.id, row_updates)
                self.audit.record(
                    EntityType.PROJECT_ALLOCATION,
                    current.id,
                    Operation.UPDATE,
                    actor.id,
                    changed,
                )

        logger.info(
            "Allocation updated",
            extra={"allocation_id": allocation_id, "changed_fields": sorted(changed)},
        )
        return current

    def transfer_allocation(
        self,
        actor: Actor,
        allocation_id: str,
        new_project_id: str,
        transfer_date: Any,
    ) -> TransferResult:
        """
        Move the remainder of an allocation to another project.

        The old allocation ends the day before ``transfer_date``; a copy on
        ``new_project_id`` starts on ``transfer_date`` and keeps the old end.
        """
        missing = [
            name
            for name, value in (
                ("allocation_id", allocation_id),
                ("new_project_id", new_project_id),
                ("transfer_date", transfer_date),
            )
            if not value
        ]
        if missing:
            raise MissingFields(missing)

        day = parse_date(transfer_date, "transfer_date")

        with self.db.transaction():
            old = self.repo.get(allocation_id)
            if old is None:
                raise NotFound("Allocation")
            if old.project_id == new_project_id:
                raise InvalidTransfer("Allocation is already on this project")
            self._require_project(new_project_id)

            if not (old.start_date < day and old.span.contains(day)):
                raise InvalidDateRange(
                    "transfer_date must be after start_date and on or before end_date"
                )

            trimmed_end = Bounded(day - timedelta(days=1))
            updated_at = now_iso()
            self.repo.update(old.id, {"end_date": trimmed_end.to_db(), "updated_at": updated_at})
            self.audit.record(
                EntityType.PROJECT_ALLOCATION,
                old.id,
                Operation.UPDATE,
                actor.id,
                {"end_date": trimmed_end.to_db()},
            )

            new_span = DateSpan(day, old.end_date)
            self.accountant.validate_capacity(old.employee_id, old.percentage, new_span)

            new = Allocation(
                id=new_allocation_id(),
                employee_id=old.employee_id,
                project_id=new_project_id,
                role=old.role,
                percentage=old.percentage,
                span=new_span,
                billable=old.billable,
                assigned_by=actor.id,
            )
            self.repo.insert(new)
            self.audit.record(
                EntityType.PROJECT_ALLOCATION,
                new.id,
                Operation.INSERT,
                actor.id,
                new.to_dict(),
            )

            old.span = DateSpan(old.start_date, trimmed_end)
            old.updated_at = updated_at

        logger.info(
            "Allocation transferred",
            extra={
                "allocation_id": old.id,
                "new_allocation_id": new.id,
                "new_project_id": new_project_id,
                "transfer_date": day.isoformat(),
            },
        )
        return TransferResult(old_allocation=old, new_allocation=new)

    # =========================================================================
    # Reads
    # =========================================================================

    def list_allocations(
        self,
        actor: Actor,
        employee_id: str | None = None,
        project_id: str | None = None,
        active_only: bool = False,
        page: int = 1,
        limit: int = config.DEFAULT_PAGE_LIMIT,
        today: date | None = None,
    ) -> dict[str, Any]:
        """
        List allocations visible to ``actor``.

        Employees only see their own rows and project managers only rows on
        projects they manage; HR sees everything.
        """
        page = max(1, page)
        limit = max(1, min(limit, config.MAX_PAGE_LIMIT))

        managed_by = None
        if actor.role == Role.EMPLOYEE:
            employee_id = actor.id
        elif actor.role == Role.PROJECT_MANAGER:
            managed_by = actor.id

        rows, total = self.repo.list_page(
            employee_id=employee_id,
            project_id=project_id,
            managed_by=managed_by,
            active_on=(today or date.today()) if active_only else None,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return {"allocations": rows, "total": total, "page": page, "limit": limit}

    def get_billability(self, actor: Actor, employee_id: str, today: date | None = None) -> dict[str, Any]:
        """Split an employee's current allocation into billable and non-billable."""
        if actor.role == Role.EMPLOYEE and actor.id != employee_id:
            raise AccessDenied()
        self._require_employee(employee_id)

        rows = self.repo.current_with_projects(employee_id, today or date.today())
        billable = sum(r["percentage"] for r in rows if r["billable"])
        non_billable = sum(r["percentage"] for r in rows if not r["billable"])
        precision = config.PERCENTAGE_PRECISION

        return {
            "employee_id": employee_id,
            "billable_percentage": round(billable, precision),
            "non_billable_percentage": round(non_billable, precision),
            "total_allocation": round(billable + non_billable, precision),
            "allocations": rows,
        }

    def capacity_preview(
        self,
        employee_id: str,
        start_date: Any,
        end_date: Any = None,
        percentage: Any = None,
        exclude_allocation_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Read-only capacity answer for a candidate interval.

        Never raises CapacityExceeded; ``ok`` reports whether ``percentage``
        (when given) would fit.
        """
        span = DateSpan.from_values(start_date, end_date)
        self._require_employee(employee_id)

        current = self.accountant.compute_overlap_total(employee_id, span, exclude_allocation_id)
        requested = validate_percentage(percentage) if percentage is not None else 0.0
        new_total = round(current + requested, config.PERCENTAGE_PRECISION)
        check = CapacityCheck(
            ok=new_total <= config.CAPACITY_LIMIT_PCT,
            current_total=current,
            requested=requested,
            new_total=new_total,
        )
        return {
            "employee_id": employee_id,
            "start_date": span.start.isoformat(),
            "end_date": span.end.to_db(),
            **check.to_dict(),
        }

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_employee(self, employee_id: str) -> dict[str, Any]:
        employee = self.repo.get_employee(employee_id)
        if employee is None:
            raise NotFound("Employee")
        return employee

    def _require_project(self, project_id: str) -> dict[str, Any]:
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFound("Project")
        return project

    @staticmethod
    def _reject_immutable_changes(current: Allocation, changes: dict[str, Any], fields: list[str]) -> None:
        changed = []
        for name in fields:
            value = changes[name]
            if value is None:
                continue
            if name == "start_date":
                if parse_date(value, "start_date") != current.start_date:
                    changed.append(name)
            elif value != getattr(current, name):
                changed.append(name)
        if changed:
            raise ImmutableField(changed)
