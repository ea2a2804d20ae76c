"""
ASGI middleware for correlation ID tracking and access logging.
"""

import logging
import time

from .context import RequestContext, generate_request_id

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("staff_desk.access")


class CorrelationIdMiddleware:
    """
    Middleware for adding request ID to logs.

    Usage in server.py:
        from lib.observability.middleware import CorrelationIdMiddleware
        app.add_middleware(CorrelationIdMiddleware)

    All logs within a request will include the request_id in context, and
    the response echoes it as X-Request-ID. One access line is logged per
    request with method, path, status and duration.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = None
        for key, value in scope.get("headers", []):
            if key.lower() == b"x-request-id":
                try:
                    request_id = value.decode("utf-8")
                except UnicodeDecodeError as e:
                    logger.warning(f"Could not decode X-Request-ID header: {e}")
                break

        if not request_id:
            request_id = generate_request_id()

        status_code = 500
        start = time.perf_counter()

        async def send_with_request_id(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 200)
                headers_list = list(message.get("headers", []))
                headers_list.append((b"x-request-id", request_id.encode("utf-8")))
                message["headers"] = headers_list
            await send(message)

        with RequestContext(request_id=request_id):
            try:
                await self.app(scope, receive, send_with_request_id)
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                access_logger.info(
                    f"{scope.get('method', '-')} {scope.get('path', '-')} -> {status_code}",
                    extra={
                        "method": scope.get("method"),
                        "path": scope.get("path"),
                        "status": status_code,
                        "duration_ms": round(duration_ms, 2),
                    },
                )
