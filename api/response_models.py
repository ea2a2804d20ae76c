"""
Shared Pydantic request/response models for API endpoints.

These models give FastAPI the type information it needs to generate
accurate OpenAPI schemas instead of empty `schema: {}`.

Request bodies keep every field optional: presence and range rules are
enforced by the allocation service so that every rule violation answers
with the same `{"error": ...}` body.

Usage:
    from api.response_models import AllocationResponse

    @router.post("/allocations", response_model=AllocationResponse)
    async def my_endpoint(): ...
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

# ==== Requests ====


class AllocationCreate(BaseModel):
    """Body of POST /api/allocations."""

    employee_id: str | None = Field(default=None, description="Employee to allocate")
    project_id: str | None = Field(default=None, description="Project to allocate to")
    role: str | None = Field(default=None, description="Role on the project")
    percentage: float | None = Field(default=None, description="Share of time, 0 < p <= 100")
    start_date: date | None = Field(default=None, description="First day (inclusive)")
    end_date: date | None = Field(default=None, description="Last day (inclusive); null = open-ended")
    billable: bool = Field(default=False, description="Whether the time is billable")


class AllocationUpdate(BaseModel):
    """Body of PUT /api/allocations.

    Only fields present in the request are applied; an explicit
    ``"end_date": null`` makes the allocation open-ended.
    """

    id: str | None = Field(default=None, description="Allocation to change")
    percentage: float | None = None
    end_date: date | None = None
    billable: bool | None = None
    # Fixed after creation; accepted only to reject attempts to change them.
    employee_id: str | None = None
    project_id: str | None = None
    start_date: date | None = None

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, minus the id."""
        return self.model_dump(include=self.model_fields_set - {"id"})


class TransferRequest(BaseModel):
    """Body of POST /api/allocations/transfer."""

    allocation_id: str | None = None
    new_project_id: str | None = None
    transfer_date: date | None = None


# ==== Allocation ====


class AllocationResponse(BaseModel):
    """One allocation row."""

    id: str
    employee_id: str
    project_id: str
    role: str
    percentage: float
    start_date: str
    end_date: str | None = Field(default=None, description="null = open-ended")
    billable: bool
    assigned_by: str | None = None
    created_at: str
    updated_at: str


class AllocationListItem(AllocationResponse):
    """Allocation row joined with employee and project names."""

    employee_code: str | None = None
    employee_name: str | None = None
    project_code: str | None = None
    project_name: str | None = None


class AllocationListResponse(BaseModel):
    """Paginated allocation list."""

    allocations: list[AllocationListItem] = Field(default_factory=list)
    total: int = Field(description="Total matching rows across all pages")
    page: int
    limit: int


class TransferredAllocation(BaseModel):
    id: str
    end_date: str | None


class TransferResponse(BaseModel):
    """Result of a transfer: the trimmed old row and the new row."""

    old_allocation: TransferredAllocation
    new_allocation: AllocationResponse


# ==== Capacity / billability ====


class CapacityResponse(BaseModel):
    """Read-only capacity preview for a candidate interval."""

    employee_id: str
    start_date: str
    end_date: str | None = None
    ok: bool = Field(description="Whether the requested percentage fits")
    current_total: float = Field(description="Sum of overlapping allocations")
    requested: float
    new_total: float
    headroom: float = Field(description="Percentage still free over the whole interval")


class BillabilityItem(BaseModel):
    project_id: str
    project_code: str | None = None
    project_name: str | None = None
    percentage: float
    billable: bool
    start_date: str
    end_date: str | None = None


class BillabilityResponse(BaseModel):
    """Current allocation split by billability."""

    employee_id: str
    billable_percentage: float
    non_billable_percentage: float
    total_allocation: float
    allocations: list[BillabilityItem] = Field(default_factory=list)


# ==== Audit ====


class AuditEntryResponse(BaseModel):
    id: str
    entity_type: str
    entity_id: str
    operation: str
    changed_by: str
    changed_at: str
    changed_fields: dict[str, Any] = Field(default_factory=dict)
    request_id: str | None = None


class AuditListResponse(BaseModel):
    items: list[AuditEntryResponse] = Field(default_factory=list)
    total: int


# ==== Health Check ====


class HealthCheckItem(BaseModel):
    name: str
    status: str
    message: str = ""
    latency_ms: float | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check result."""

    status: str = Field(description="healthy, degraded or unhealthy")
    timestamp: str = Field(description="ISO timestamp")
    checks: list[HealthCheckItem] = Field(default_factory=list)
