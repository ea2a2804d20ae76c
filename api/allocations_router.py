"""
STAFF DESK - Allocations API

REST endpoints for creating, changing, transferring and reading project
allocations, plus the capacity preview, billability and audit views.

Every route requires a bearer token; writes additionally require the
HR_EXECUTIVE role. Allocation rule violations propagate as
AllocationError and are rendered by the handler installed in server.py.
"""

import logging
from collections.abc import Generator

from fastapi import APIRouter, Depends, Query

from api.auth import get_current_user
from api.response_models import (
    AllocationCreate,
    AllocationListResponse,
    AllocationResponse,
    AllocationUpdate,
    AuditListResponse,
    BillabilityResponse,
    CapacityResponse,
    TransferRequest,
    TransferResponse,
)
from lib import config
from lib.allocations import AllocationService, MissingFields
from lib.audit import AuditStore
from lib.db import Database
from lib.security import Actor, Role, require_role

logger = logging.getLogger(__name__)

router = APIRouter(tags=["allocations"], dependencies=[Depends(get_current_user)])


def get_database() -> Generator[Database, None, None]:
    """One database handle per request, closed when the response is sent."""
    db = Database()
    try:
        yield db
    finally:
        db.close()


def get_service(db: Database = Depends(get_database)) -> AllocationService:
    return AllocationService(db)


# =============================================================================
# Writes (HR only)
# =============================================================================


@router.post(
    "/allocations",
    response_model=AllocationResponse,
    status_code=201,
    dependencies=[Depends(require_role(Role.HR_EXECUTIVE))],
)
def create_allocation(
    body: AllocationCreate,
    actor: Actor = Depends(get_current_user),
    service: AllocationService = Depends(get_service),
):
    """Create an allocation; rejected with 400 if it would push the employee above 100%."""
    allocation = service.create_allocation(actor, body.model_dump())
    return allocation.to_dict()


@router.put(
    "/allocations",
    response_model=AllocationResponse,
    dependencies=[Depends(require_role(Role.HR_EXECUTIVE))],
)
def update_allocation(
    body: AllocationUpdate,
    actor: Actor = Depends(get_current_user),
    service: AllocationService = Depends(get_service),
):
    """Change percentage, end date or billability of an allocation."""
    if not body.id:
        raise MissingFields(["id"])
    allocation = service.update_allocation(actor, body.id, body.changes())
    return allocation.to_dict()


@router.post(
    "/allocations/transfer",
    response_model=TransferResponse,
    dependencies=[Depends(require_role(Role.HR_EXECUTIVE))],
)
def transfer_allocation(
    body: TransferRequest,
    actor: Actor = Depends(get_current_user),
    service: AllocationService = Depends(get_service),
):
    """Move the remainder of an allocation to another project from transfer_date on."""
    result = service.transfer_allocation(
        actor, body.allocation_id, body.new_project_id, body.transfer_date
    )
    return result.to_dict()


# =============================================================================
# Reads
# =============================================================================


@router.get("/allocations", response_model=AllocationListResponse)
def list_allocations(
    employee_id: str | None = Query(None, description="Filter by employee"),
    project_id: str | None = Query(None, description="Filter by project"),
    active_only: bool = Query(False, description="Only allocations not yet ended"),
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_LIMIT, ge=1, le=config.MAX_PAGE_LIMIT),
    actor: Actor = Depends(get_current_user),
    service: AllocationService = Depends(get_service),
):
    """List allocations visible to the caller."""
    return service.list_allocations(
        actor,
        employee_id=employee_id,
        project_id=project_id,
        active_only=active_only,
        page=page,
        limit=limit,
    )


@router.get(
    "/allocations/capacity",
    response_model=CapacityResponse,
    dependencies=[Depends(require_role(Role.PROJECT_MANAGER))],
)
def capacity_preview(
    employee_id: str = Query(..., description="Employee to check"),
    start_date: str = Query(..., description="First day of the candidate interval"),
    end_date: str | None = Query(None, description="Last day; omit for open-ended"),
    percentage: float | None = Query(None, description="Candidate percentage to test"),
    exclude_id: str | None = Query(None, description="Allocation to leave out of the sum"),
    service: AllocationService = Depends(get_service),
):
    """Overlapping total for a candidate interval, without writing anything."""
    return service.capacity_preview(
        employee_id,
        start_date,
        end_date,
        percentage=percentage,
        exclude_allocation_id=exclude_id,
    )


@router.get("/employees/{employee_id}/billability", response_model=BillabilityResponse)
def get_billability(
    employee_id: str,
    actor: Actor = Depends(get_current_user),
    service: AllocationService = Depends(get_service),
):
    """Current billable vs non-billable allocation of one employee."""
    return service.get_billability(actor, employee_id)


@router.get(
    "/audit",
    response_model=AuditListResponse,
    dependencies=[Depends(require_role(Role.HR_EXECUTIVE))],
)
def list_audit(
    entity_type: str | None = Query(None),
    entity_id: str | None = Query(None),
    operation: str | None = Query(None),
    changed_by: str | None = Query(None),
    since: str | None = Query(None, description="ISO timestamp lower bound"),
    limit: int = Query(100, ge=1, le=1000),
    db: Database = Depends(get_database),
):
    """Audit log entries, oldest first."""
    entries = AuditStore(db).get_events(
        entity_type=entity_type,
        entity_id=entity_id,
        operation=operation,
        changed_by=changed_by,
        since=since,
        limit=limit,
    )
    return {"items": [e.to_dict() for e in entries], "total": len(entries)}
