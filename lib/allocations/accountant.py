"""
Capacity Accountant - Overlap accounting for employee allocations.

Answers "if this allocation is added or changed, does the employee go
above 100% at any moment it covers?".

The overlapping total is recomputed from the allocation rows on every
call (a SQL SUM over the employee's rows), never kept as a running
counter per employee.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from lib import config
from lib.db import Database

from .errors import CapacityExceeded, InvalidPercentage
from .models import DateSpan

logger = logging.getLogger(__name__)


@dataclass
class CapacityCheck:
    ok: bool
    current_total: float
    requested: float
    new_total: float

    @property
    def headroom(self) -> float:
        """Percentage still free across the whole candidate span."""
        return max(0.0, round(config.CAPACITY_LIMIT_PCT - self.current_total, config.PERCENTAGE_PRECISION))

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "current_total": self.current_total,
            "requested": self.requested,
            "new_total": self.new_total,
            "headroom": self.headroom,
        }


def validate_percentage(value: Any) -> float:
    """
    Coerce an allocation percentage and require it to be in (0, 100].

    Raises InvalidPercentage for booleans, non-numbers, NaN and out of
    range values.
    """
    if isinstance(value, bool):
        raise InvalidPercentage(value)
    try:
        pct = float(value)
    except (TypeError, ValueError):
        raise InvalidPercentage(value) from None
    if math.isnan(pct):
        raise InvalidPercentage(value)
    # Range applies to the stored value, which is rounded.
    pct = round(pct, config.PERCENTAGE_PRECISION)
    if pct <= 0 or pct > config.CAPACITY_LIMIT_PCT:
        raise InvalidPercentage(value)
    return pct


def validate_date_range(span: DateSpan) -> DateSpan:
    """Raise InvalidDateRange if a bounded end precedes the start."""
    span.validate()
    return span


class CapacityAccountant:
    """
    Sums overlapping allocation percentages for an employee.

    Responsibilities:
    - Compute the overlapping total for a candidate span
    - Decide whether a candidate percentage fits under the 100% limit
    """

    def __init__(self, db: Database):
        self.db = db

    def compute_overlap_total(
        self,
        employee_id: str,
        span: DateSpan,
        exclude_allocation_id: str | None = None,
    ) -> float:
        """
        Sum of percentages of the employee's allocations overlapping ``span``.

        Overlap: existing.start <= candidate.end AND candidate.start <= existing.end,
        both inclusive; an open end on either side satisfies its half.
        Returns 0 when nothing overlaps.
        """
        conditions = ["employee_id = ?", "(end_date IS NULL OR end_date >= ?)"]
        params: list[Any] = [employee_id, span.start.isoformat()]

        if not span.is_open:
            conditions.append("start_date <= ?")
            params.append(span.end.day.isoformat())

        if exclude_allocation_id:
            conditions.append("id != ?")
            params.append(exclude_allocation_id)

        total = self.db.fetch_value(
            f"SELECT COALESCE(SUM(percentage), 0) AS total FROM project_allocation "  # noqa: S608
            f"WHERE {' AND '.join(conditions)}",
            params,
        )
        return round(float(total or 0), config.PERCENTAGE_PRECISION)

    def validate_capacity(
        self,
        employee_id: str,
        candidate_percentage: float,
        span: DateSpan,
        exclude_allocation_id: str | None = None,
    ) -> CapacityCheck:
        """
        Check that adding ``candidate_percentage`` over ``span`` keeps the
        employee at or below the limit.

        Returns a CapacityCheck on success; raises CapacityExceeded with the
        current, requested and resulting totals otherwise.
        """
        current_total = self.compute_overlap_total(employee_id, span, exclude_allocation_id)
        new_total = round(current_total + candidate_percentage, config.PERCENTAGE_PRECISION)

        if new_total > config.CAPACITY_LIMIT_PCT:
            logger.info(
                "Capacity exceeded",
                extra={
                    "employee_id": employee_id,
                    "span": str(span),
                    "current_total": current_total,
                    "requested": candidate_percentage,
                    "total": new_total,
                },
            )
            raise CapacityExceeded(current_total, candidate_percentage, new_total)

        return CapacityCheck(
            ok=True,
            current_total=current_total,
            requested=candidate_percentage,
            new_total=new_total,
        )
