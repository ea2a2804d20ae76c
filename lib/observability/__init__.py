"""
Observability module: structured logging, request IDs, health checks.

Usage:
    from lib.observability import get_logger, RequestContext, HealthChecker

    logger = get_logger(__name__)
    logger.info("Processing request", extra={"employee_id": "emp-1"})

    with RequestContext() as ctx:
        logger.info("Request started", extra={"request_id": ctx.request_id})

    health = HealthChecker()
    result = health.run_all()
"""

from .context import (
    RequestContext,
    generate_request_id,
    get_actor_id,
    get_request_id,
    set_actor_id,
    set_request_id,
)
from .health import HealthChecker, HealthStatus
from .logging import HumanFormatter, JSONFormatter, configure_logging, get_logger
from .middleware import CorrelationIdMiddleware

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    # Context
    "RequestContext",
    "generate_request_id",
    "get_request_id",
    "set_request_id",
    "get_actor_id",
    "set_actor_id",
    # Middleware
    "CorrelationIdMiddleware",
    # Health
    "HealthChecker",
    "HealthStatus",
]
