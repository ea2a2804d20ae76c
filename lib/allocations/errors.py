"""
Allocation validation errors.

Every error here is a terminal, user-facing failure: raised synchronously
before anything is written, never retried. ``status_code`` is the HTTP
status the API layer answers with.
"""

from typing import Any


class AllocationError(Exception):
    """Base class for allocation rule violations."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class MissingFields(AllocationError):
    """Required request fields are absent or empty."""

    def __init__(self, fields: list[str], message: str | None = None):
        self.fields = list(fields)
        super().__init__(message or f"Missing required fields: {', '.join(self.fields)}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "fields": self.fields}


class ImmutableField(AllocationError):
    """An update tried to change a field that is fixed after creation."""

    def __init__(self, fields: list[str]):
        self.fields = sorted(fields)
        super().__init__(f"Fields cannot be changed after creation: {', '.join(self.fields)}")


class InvalidDate(AllocationError):
    """A date value could not be parsed as YYYY-MM-DD."""

    def __init__(self, field: str, value: Any):
        self.field = field
        super().__init__(f"Invalid date for {field}: {value!r}")


class InvalidDateRange(AllocationError):
    """The end date precedes the start date (or a transfer date is out of range)."""

    def __init__(self, message: str = "end_date must be on or after start_date"):
        super().__init__(message)


class InvalidPercentage(AllocationError):
    """Allocation percentage outside (0, 100]."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Allocation percentage must be greater than 0 and at most 100, got {value!r}")


class CapacityExceeded(AllocationError):
    """Adding the candidate would push the employee above 100% at some moment."""

    def __init__(self, current_total: float, requested: float, total: float):
        self.current_total = current_total
        self.requested = requested
        self.total = total
        super().__init__(
            f"Employee allocation exceeds 100%. "
            f"Current: {_fmt(current_total)}%, Requested: {_fmt(requested)}%, Total: {_fmt(total)}%"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "current_total": self.current_total,
            "requested": self.requested,
            "total": self.total,
        }


class InvalidTransfer(AllocationError):
    """A transfer request that cannot be applied to the allocation."""


class NotFound(AllocationError):
    """Referenced allocation, employee or project does not exist."""

    status_code = 404

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(f"{resource} not found")


class AccessDenied(AllocationError):
    """The acting user may not see or change this data."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


def _fmt(value: float) -> str:
    """Render 60.0 as '60' and 12.5 as '12.5'."""
    return f"{value:g}"
