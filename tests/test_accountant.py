"""
Capacity Accountant Tests.

Overlap totals and the 100% threshold, against the fixture DB.
"""

from datetime import date

import pytest

from lib.allocations import (
    Bounded,
    CapacityAccountant,
    CapacityExceeded,
    DateSpan,
    InvalidDateRange,
    InvalidPercentage,
    OpenEnded,
    validate_percentage,
)
from lib.allocations.models import now_iso


def _add(db, alloc_id, pct, start, end=None, employee_id="emp-1", project_id="prj-a"):
    """Insert an allocation row directly, bypassing the capacity check."""
    ts = now_iso()
    db.insert(
        "project_allocation",
        {
            "id": alloc_id,
            "employee_id": employee_id,
            "project_id": project_id,
            "role": "Developer",
            "percentage": pct,
            "start_date": start,
            "end_date": end,
            "billable": 1,
            "created_at": ts,
            "updated_at": ts,
        },
    )


def span(start, end=None):
    return DateSpan.from_values(start, end)


@pytest.fixture
def accountant(db):
    return CapacityAccountant(db)


class TestComputeOverlapTotal:
    """compute_overlap_total sums overlapping rows only."""

    def test_no_allocations_is_zero(self, accountant):
        assert accountant.compute_overlap_total("emp-1", span("2024-01-01", "2024-12-31")) == 0

    def test_disjoint_allocations_contribute_nothing(self, db, accountant):
        """Rows entirely before or after the candidate are ignored."""
        _add(db, "a1", 70, "2024-01-01", "2024-02-28")
        _add(db, "a2", 50, "2024-09-01", "2024-12-31")

        assert accountant.compute_overlap_total("emp-1", span("2024-03-01", "2024-08-31")) == 0

    def test_overlapping_allocation_is_included(self, db, accountant):
        _add(db, "a1", 70, "2024-01-01", "2024-06-30")

        assert accountant.compute_overlap_total("emp-1", span("2024-03-01", "2024-03-31")) == 70

    def test_inclusive_boundary_counts_as_overlap(self, db, accountant):
        """An allocation ending on the candidate's first day overlaps it."""
        _add(db, "a1", 70, "2024-01-01", "2024-06-30")

        assert accountant.compute_overlap_total("emp-1", span("2024-06-30", "2024-07-31")) == 70
        assert accountant.compute_overlap_total("emp-1", span("2024-07-01", "2024-07-31")) == 0

    def test_candidate_ending_on_existing_start_overlaps(self, db, accountant):
        _add(db, "a1", 40, "2024-05-01", "2024-05-31")

        assert accountant.compute_overlap_total("emp-1", span("2024-04-01", "2024-05-01")) == 40
        assert accountant.compute_overlap_total("emp-1", span("2024-04-01", "2024-04-30")) == 0

    def test_open_ended_existing_overlaps_any_later_span(self, db, accountant):
        _add(db, "a1", 30, "2024-01-01", None)

        assert accountant.compute_overlap_total("emp-1", span("2030-01-01", "2030-01-31")) == 30

    def test_open_ended_candidate_overlaps_any_later_row(self, db, accountant):
        _add(db, "a1", 30, "2031-01-01", "2031-03-31")

        assert accountant.compute_overlap_total("emp-1", span("2024-01-01")) == 30

    def test_open_ended_candidate_ignores_rows_ended_before_start(self, db, accountant):
        _add(db, "a1", 30, "2023-01-01", "2023-12-31")

        assert accountant.compute_overlap_total("emp-1", span("2024-01-01")) == 0

    def test_sums_every_overlapping_row(self, db, accountant):
        """Rows are summed even if they do not overlap each other."""
        _add(db, "a1", 60, "2024-01-01", "2024-02-28")
        _add(db, "a2", 60, "2024-04-01", "2024-05-31")

        assert accountant.compute_overlap_total("emp-1", span("2024-01-01", "2024-12-31")) == 120

    def test_other_employees_are_ignored(self, db, accountant):
        _add(db, "a1", 80, "2024-01-01", None, employee_id="emp-2")

        assert accountant.compute_overlap_total("emp-1", span("2024-01-01")) == 0

    def test_exclude_allocation_id(self, db, accountant):
        _add(db, "a1", 60, "2024-01-01", "2024-06-30")
        _add(db, "a2", 30, "2024-01-01", "2024-06-30")

        total = accountant.compute_overlap_total(
            "emp-1", span("2024-01-01", "2024-06-30"), exclude_allocation_id="a1"
        )
        assert total == 30

    def test_fractional_percentages(self, db, accountant):
        _add(db, "a1", 33.33, "2024-01-01", None)
        _add(db, "a2", 33.33, "2024-01-01", None)

        assert accountant.compute_overlap_total("emp-1", span("2024-01-01")) == 66.66


class TestValidateCapacity:
    """validate_capacity allows exactly 100 and rejects anything above."""

    def test_exactly_100_is_allowed(self, db, accountant):
        _add(db, "a1", 60, "2024-01-01", "2024-12-31")

        check = accountant.validate_capacity("emp-1", 40, span("2024-06-01", "2024-06-30"))

        assert check.ok
        assert check.current_total == 60
        assert check.new_total == 100
        assert check.headroom == 40

    def test_101_is_rejected_with_numbers(self, db, accountant):
        _add(db, "a1", 60, "2024-01-01", "2024-12-31")

        with pytest.raises(CapacityExceeded) as exc_info:
            accountant.validate_capacity("emp-1", 41, span("2024-06-01", "2024-06-30"))

        err = exc_info.value
        assert (err.current_total, err.requested, err.total) == (60, 41, 101)
        assert err.message == "Employee allocation exceeds 100%. Current: 60%, Requested: 41%, Total: 101%"
        assert err.status_code == 400

    def test_disjoint_interval_passes(self, db, accountant):
        _add(db, "a1", 100, "2024-01-01", "2024-06-30")

        check = accountant.validate_capacity("emp-1", 100, span("2024-07-01"))

        assert check.current_total == 0
        assert check.new_total == 100

    def test_exclusion_on_update(self, db, accountant):
        """Raising an allocation from 60 to 100 does not count its old 60."""
        _add(db, "a1", 60, "2024-01-01", "2024-12-31")

        check = accountant.validate_capacity(
            "emp-1", 100, span("2024-01-01", "2024-12-31"), exclude_allocation_id="a1"
        )

        assert check.new_total == 100


class TestValidatePercentage:
    @pytest.mark.parametrize("value", [0.01, 1, 50, 99.99, 100, "75"])
    def test_accepts_range(self, value):
        assert 0 < validate_percentage(value) <= 100

    @pytest.mark.parametrize("value", [0, -5, 100.01, 101, None, "abc", float("nan"), True])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(InvalidPercentage):
            validate_percentage(value)

    def test_rounds_to_two_places(self):
        assert validate_percentage(33.333) == 33.33

    @pytest.mark.parametrize("value", [0.001, 0.004, "0.004"])
    def test_rejects_values_that_round_to_zero(self, value):
        with pytest.raises(InvalidPercentage):
            validate_percentage(value)

    def test_range_checked_after_rounding(self):
        assert validate_percentage(0.006) == 0.01
        assert validate_percentage(100.004) == 100.0


class TestDateSpan:
    def test_end_before_start_is_invalid(self):
        with pytest.raises(InvalidDateRange):
            DateSpan.from_values("2024-06-30", "2024-06-01")

    def test_single_day_span_is_valid(self):
        s = DateSpan.from_values("2024-06-01", "2024-06-01")
        assert s.end == Bounded(date(2024, 6, 1))

    def test_missing_end_is_open(self):
        s = DateSpan.from_values("2024-06-01", None)
        assert s.is_open
        assert s.end == OpenEnded()
        assert s.end.to_db() is None

    def test_contains(self):
        s = DateSpan.from_values("2024-06-01", "2024-06-30")
        assert s.contains(date(2024, 6, 1))
        assert s.contains(date(2024, 6, 30))
        assert not s.contains(date(2024, 7, 1))
        assert DateSpan.from_values("2024-06-01").contains(date(2099, 1, 1))
