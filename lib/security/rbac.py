"""
Role-based access control (RBAC) for the STAFF DESK API.

Provides:
- Role enum (EMPLOYEE, PROJECT_MANAGER, HR_EXECUTIVE)
- Role hierarchy and permission checking
- Actor, the authenticated caller handed to the service layer
- require_role() dependency for FastAPI

Role Hierarchy:
  HR_EXECUTIVE >= PROJECT_MANAGER >= EMPLOYEE

Default Permissions:
  EMPLOYEE: read own allocations and billability
  PROJECT_MANAGER: + allocations on managed projects, capacity preview
  HR_EXECUTIVE: everything, including allocation writes and the audit log

Usage:
    from lib.security.rbac import Role, require_role

    @router.post("/allocations", dependencies=[Depends(require_role(Role.HR_EXECUTIVE))])
    def create_allocation():
        ...
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


class Role(StrEnum):
    """Role enumeration with hierarchy: HR_EXECUTIVE > PROJECT_MANAGER > EMPLOYEE.

    Values match the ``employee_role`` claim carried in bearer tokens.
    """

    EMPLOYEE = "employee"
    PROJECT_MANAGER = "project_manager"
    HR_EXECUTIVE = "hr_executive"


# Role hierarchy: higher value = more permissions
_ROLE_HIERARCHY = {
    Role.EMPLOYEE: 1,
    Role.PROJECT_MANAGER: 2,
    Role.HR_EXECUTIVE: 3,
}


def role_has_permission(user_role: Role | str, minimum_role: Role) -> bool:
    """Check if user_role has at least minimum_role permissions.

    Unknown roles have no permissions at all.
    """
    user_level = _ROLE_HIERARCHY.get(user_role, 0)
    min_level = _ROLE_HIERARCHY.get(minimum_role, 0)
    return user_level > 0 and user_level >= min_level


def parse_role(value: str | None) -> Role | None:
    """Map a token claim onto a Role, or None if it names no known role."""
    try:
        return Role(value)
    except ValueError:
        return None


@dataclass
class Actor:
    """The authenticated caller: an employee id plus their role."""

    id: str
    role: Role
    employee_code: str | None = None
    full_name: str | None = None

    def at_least(self, minimum_role: Role) -> bool:
        return role_has_permission(self.role, minimum_role)


def require_role(minimum_role: Role) -> Callable:
    """
    FastAPI dependency that requires a minimum role.

    The role is read from request.state.role, which the authentication
    dependency sets once the bearer token has been verified.

    Usage:
        @router.get("/hr-only", dependencies=[Depends(require_role(Role.HR_EXECUTIVE))])
        def hr_only():
            ...
    """

    async def _check_role(request: Request) -> Role:
        role = getattr(request.state, "role", None)

        if not role:
            logger.warning(f"No role found in request state for {request.url.path}")
            raise HTTPException(status_code=403, detail="Access denied")

        if not role_has_permission(role, minimum_role):
            logger.warning(
                f"Access denied: {role} lacks permission for {minimum_role} at {request.url.path}"
            )
            raise HTTPException(status_code=403, detail="Access denied")

        return role

    return _check_role
