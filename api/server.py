"""
STAFF DESK API Server - REST API for project allocations.
"""
# ruff: noqa: S104
# S104: Development server binding (guarded by __name__ check)

import logging
import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.allocations_router import router as allocations_router
from api.response_models import HealthResponse
from lib import config
from lib import db as db_module
from lib.allocations import AllocationError
from lib.observability import CorrelationIdMiddleware, HealthChecker, configure_logging

logger = logging.getLogger(__name__)

# FastAPI app initialization
app = FastAPI(
    title="STAFF DESK API",
    description="Project allocation and capacity accounting",
    version="1.0.0",
)

# CORS middleware - configurable via CORS_ORIGINS env var
# Dev default: allow all origins; Production: set CORS_ORIGINS to comma-separated list
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(allocations_router, prefix="/api")


# ==== Error Handling ====
# Every error body has the shape {"error": message, ...}.


@app.exception_handler(AllocationError)
async def allocation_error_handler(request: Request, exc: AllocationError):
    logger.info(
        f"{request.method} {request.url.path} rejected: {exc.message}",
        extra={"error_type": type(exc).__name__, "status": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = [".".join(str(p) for p in e.get("loc", ())[1:]) for e in errors]
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: {message}", "fields": fields},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ==== DB Startup & Migrations ====
@app.on_event("startup")
async def run_db_migrations_on_startup():
    """Converge the schema and log DB info at startup."""
    db_path = db_module.get_db_path()
    logger.info("=== STAFF DESK Startup ===")
    logger.info(f"DB path: {db_path}")

    migration_result = db_module.run_startup_migrations()
    if migration_result.get("errors"):
        logger.warning(f"Schema convergence reported errors: {migration_result['errors']}")


# ==== Health ====


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Database connectivity and schema version."""
    report = HealthChecker().run_all()
    status_code = 503 if report.status.value == "unhealthy" else 200
    return JSONResponse(status_code=status_code, content=report.to_dict())


# ==== Main ====


def main():
    """Run the server."""
    configure_logging(level=config.LOG_LEVEL, log_file=config.LOG_FILE)
    port = int(os.environ.get("PORT", 8420))
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
