"""
Allocation domain types.

An allocation's end is an explicit variant: ``Bounded(day)`` for a last
inclusive day, ``OpenEnded()`` for "until further notice". Storage maps
OpenEnded to a NULL ``end_date`` column; nothing compares against a
far-future placeholder date.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from .errors import InvalidDate, InvalidDateRange


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a Z suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def new_allocation_id() -> str:
    return f"alloc_{secrets.token_hex(8)}"


def _date_part(text: str) -> str:
    """Drop a time component after "T" or a space; the rest must be the date."""
    for sep in ("T", " "):
        if sep in text:
            return text.split(sep, 1)[0]
    return text


def parse_date(value: Any, field_name: str = "date") -> date:
    """Accept a ``date`` or a YYYY-MM-DD string; anything else is InvalidDate."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(_date_part(value.strip()))
        except ValueError:
            raise InvalidDate(field_name, value) from None
    raise InvalidDate(field_name, value)


# =============================================================================
# End-date variants
# =============================================================================


@dataclass(frozen=True)
class Bounded:
    """Allocation ends on ``day`` (inclusive)."""

    day: date

    def to_db(self) -> str:
        return self.day.isoformat()


@dataclass(frozen=True)
class OpenEnded:
    """Allocation has no planned end; treated as unbounded future."""

    def to_db(self) -> None:
        return None


EndDate = Bounded | OpenEnded


def end_date_from(value: Any, field_name: str = "end_date") -> EndDate:
    """Map an optional date value onto the end-date variant (None → OpenEnded)."""
    if value is None or value == "":
        return OpenEnded()
    if isinstance(value, Bounded | OpenEnded):
        return value
    return Bounded(parse_date(value, field_name))


def _starts_by(start: date, end: EndDate) -> bool:
    """True if ``start`` is on or before ``end`` (always true for an open end)."""
    return isinstance(end, OpenEnded) or start <= end.day


@dataclass(frozen=True)
class DateSpan:
    """
    Inclusive calendar interval ``[start, end]``.

    Two spans overlap iff ``s1 <= e2 and s2 <= e1``, where an open end
    never bounds anything.
    """

    start: date
    end: EndDate = field(default_factory=OpenEnded)

    @classmethod
    def from_values(cls, start: Any, end: Any = None) -> DateSpan:
        """Parse raw start/end values and reject an end before the start."""
        span = cls(parse_date(start, "start_date"), end_date_from(end))
        span.validate()
        return span

    @property
    def is_open(self) -> bool:
        return isinstance(self.end, OpenEnded)

    def validate(self) -> None:
        if not _starts_by(self.start, self.end):
            raise InvalidDateRange()

    def overlaps(self, other: DateSpan) -> bool:
        return _starts_by(self.start, other.end) and _starts_by(other.start, self.end)

    def contains(self, day: date) -> bool:
        return self.start <= day and _starts_by(day, self.end)

    def __str__(self) -> str:
        end = "open" if self.is_open else self.end.day.isoformat()
        return f"{self.start.isoformat()}..{end}"


# =============================================================================
# Allocation
# =============================================================================


@dataclass
class Allocation:
    id: str
    employee_id: str
    project_id: str
    role: str
    percentage: float
    span: DateSpan
    billable: bool = False
    assigned_by: str | None = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @property
    def start_date(self) -> date:
        return self.span.start

    @property
    def end_date(self) -> EndDate:
        return self.span.end

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Allocation:
        return cls(
            id=row["id"],
            employee_id=row["employee_id"],
            project_id=row["project_id"],
            role=row["role"],
            percentage=float(row["percentage"]),
            span=DateSpan(date.fromisoformat(row["start_date"]), end_date_from(row["end_date"])),
            billable=bool(row["billable"]),
            assigned_by=row.get("assigned_by"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "project_id": self.project_id,
            "role": self.role,
            "percentage": self.percentage,
            "start_date": self.span.start.isoformat(),
            "end_date": self.span.end.to_db(),
            "billable": int(self.billable),
            "assigned_by": self.assigned_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.to_row()
        data["billable"] = self.billable
        return data


@dataclass
class TransferResult:
    old_allocation: Allocation
    new_allocation: Allocation

    def to_dict(self) -> dict[str, Any]:
        return {
            "old_allocation": {
                "id": self.old_allocation.id,
                "end_date": self.old_allocation.end_date.to_db(),
            },
            "new_allocation": self.new_allocation.to_dict(),
        }
