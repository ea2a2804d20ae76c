"""
Allocations Module

Assigns employees to projects for a percentage of their time over a
date interval, and keeps every employee at or below 100% at every moment.

Objects:
- Allocation (employee x project x percentage x interval)
- DateSpan (inclusive interval with a Bounded or OpenEnded end)

Invariants:
- sum(percentage of overlapping allocations) <= 100 for every employee
- 0 < percentage <= 100
- start_date <= end_date when an end exists
- Each write lands together with exactly one audit entry per changed row
"""

from .accountant import CapacityAccountant, CapacityCheck, validate_date_range, validate_percentage
from .errors import (
    AccessDenied,
    AllocationError,
    CapacityExceeded,
    ImmutableField,
    InvalidDate,
    InvalidDateRange,
    InvalidPercentage,
    InvalidTransfer,
    MissingFields,
    NotFound,
)
from .models import Allocation, Bounded, DateSpan, EndDate, OpenEnded, TransferResult
from .repository import AllocationRepository
from .service import AllocationService

__all__ = [
    "AccessDenied",
    "Allocation",
    "AllocationError",
    "AllocationRepository",
    "AllocationService",
    "Bounded",
    "CapacityAccountant",
    "CapacityCheck",
    "CapacityExceeded",
    "DateSpan",
    "EndDate",
    "ImmutableField",
    "InvalidDate",
    "InvalidDateRange",
    "InvalidPercentage",
    "InvalidTransfer",
    "MissingFields",
    "NotFound",
    "OpenEnded",
    "TransferResult",
    "validate_date_range",
    "validate_percentage",
]
