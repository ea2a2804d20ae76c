"""
Request context management with context variables.

Carries the request ID and the acting user's ID for the duration of one
request so that log lines and audit rows can be correlated.
"""

import contextvars
import uuid

_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_actor_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "actor_id", default=None
)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _request_id_var.get()


def set_request_id(request_id: str) -> contextvars.Token:
    """Set the request ID in context. Returns token for reset."""
    return _request_id_var.set(request_id)


def get_actor_id() -> str | None:
    """Get the ID of the authenticated user handling this request, if any."""
    return _actor_id_var.get()


def set_actor_id(actor_id: str | None) -> contextvars.Token:
    return _actor_id_var.set(actor_id)


def generate_request_id() -> str:
    """Generate a new request ID."""
    return f"req-{uuid.uuid4().hex[:16]}"


class RequestContext:
    """
    Context manager for request-scoped operations.

    Usage:
        with RequestContext() as ctx:
            logger.info("Processing", extra={"request_id": ctx.request_id})

        # Or with an existing ID:
        with RequestContext(request_id="req-abc123"):
            ...
    """

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id or generate_request_id()
        self._tokens: list[tuple[contextvars.ContextVar, contextvars.Token]] = []

    def __enter__(self) -> "RequestContext":
        self._tokens.append((_request_id_var, set_request_id(self.request_id)))
        self._tokens.append((_actor_id_var, set_actor_id(None)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
