"""
API Authentication for STAFF DESK.

Bearer tokens are HS256 JWTs signed with STAFF_DESK_JWT_SECRET and
carrying the claims:
    id             - the caller's employee id
    employee_role  - employee | project_manager | hr_executive

Token extraction order:
1. Authorization: Bearer <token> header
2. X-API-Token header
3. api_token query parameter (for testing)

Usage:
    from api.auth import get_current_user

    @router.get("/protected")
    def protected_endpoint(actor: Actor = Depends(get_current_user)):
        # request.state.role holds actor.role for require_role()
        ...
"""

import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from lib import config
from lib.observability import set_actor_id
from lib.security import Actor, parse_role

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)

_dev_secret_warned = False


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _get_token_from_request(request: Request) -> str | None:
    """
    Extract token from request.

    Checks in order:
    1. Authorization: Bearer <token> header
    2. X-API-Token header (alternative)
    3. api_token query parameter (for testing/debugging)
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]

    x_token = request.headers.get("X-API-Token")
    if x_token:
        return x_token

    query_token = request.query_params.get("api_token")
    if query_token:
        return query_token

    return None


def decode_token(token: str) -> Actor:
    """
    Verify a bearer token and build the Actor it names.

    Raises HTTPException 401 for a bad signature, an expired token, or
    missing/unknown claims.
    """
    global _dev_secret_warned
    if config.JWT_SECRET == config.DEV_JWT_SECRET and not _dev_secret_warned:
        logger.warning(
            "STAFF_DESK_JWT_SECRET not set - verifying tokens with the development secret! "
            "Configure a real secret in production."
        )
        _dev_secret_warned = True

    try:
        claims = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError as e:
        raise _unauthorized("Invalid authentication token.") from e

    employee_id = claims.get("id")
    role = parse_role(claims.get("employee_role"))
    if not employee_id or role is None:
        raise _unauthorized("Invalid authentication token.")

    return Actor(
        id=str(employee_id),
        role=role,
        employee_code=claims.get("employee_code"),
        full_name=claims.get("full_name"),
    )


async def get_current_user(
    request: Request, credentials: HTTPAuthorizationCredentials | None = Depends(security)
) -> Actor:
    """
    Dependency that requires a valid bearer token.

    Returns the authenticated Actor. Attaches request.state.role and
    request.state.actor, and tags log records with the actor id.
    Raises HTTPException 401 on a missing or invalid token.
    """
    token = _get_token_from_request(request)
    if not token:
        logger.warning(f"Auth failed: no token provided for {request.url.path}")
        raise _unauthorized("Authentication required. Provide Bearer token in Authorization header.")

    try:
        actor = decode_token(token)
    except HTTPException:
        logger.warning(f"Auth failed: invalid token for {request.url.path}")
        raise

    request.state.role = actor.role
    request.state.actor = actor
    set_actor_id(actor.id)
    logger.debug(f"Auth succeeded for {request.url.path} (actor={actor.id}, role={actor.role.value})")
    return actor
