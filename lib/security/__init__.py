"""
Security module for STAFF DESK.

Provides role-based access control (RBAC) for API endpoints.

Exports:
    Role: Enum of employee roles (EMPLOYEE, PROJECT_MANAGER, HR_EXECUTIVE)
    Actor: The authenticated caller
    require_role: Dependency for FastAPI to enforce role requirements
    role_has_permission: Function to check a role against a minimum role
"""

from lib.security.rbac import Actor, Role, parse_role, require_role, role_has_permission

__all__ = [
    "Actor",
    "Role",
    "parse_role",
    "require_role",
    "role_has_permission",
]
