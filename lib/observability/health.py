"""
Health check system with component-level checks.
"""

import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from lib import paths, schema

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    name: str
    status: HealthStatus
    message: str
    latency_ms: float = 0.0
    details: dict = field(default_factory=dict)


@dataclass
class HealthReport:
    status: HealthStatus
    checks: list[HealthCheckResult]
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": round(c.latency_ms, 2),
                    "details": c.details,
                }
                for c in self.checks
            ],
        }


class HealthChecker:
    """
    Health check orchestrator.

    Usage:
        checker = HealthChecker()
        checker.add_check("db", check_db)
        report = checker.run_all()
    """

    def __init__(self):
        self._checks: dict[str, Callable[[], HealthCheckResult]] = {}
        self.add_check("db", self._check_db)
        self.add_check("schema_version", self._check_schema_version)

    def add_check(self, name: str, check_fn: Callable[[], HealthCheckResult]) -> None:
        """Register a health check function."""
        self._checks[name] = check_fn

    def run_all(self) -> HealthReport:
        """Run all health checks and return aggregated report (worst status wins)."""
        results = []
        overall_status = HealthStatus.HEALTHY

        for name, check_fn in self._checks.items():
            start = time.monotonic()
            try:
                result = check_fn()
            except Exception as e:
                logger.error(f"Health check '{name}' failed with exception", exc_info=e)
                result = HealthCheckResult(
                    name=name,
                    status=HealthStatus.UNHEALTHY,
                    message=f"Check failed: {e}",
                )

            result.latency_ms = (time.monotonic() - start) * 1000
            results.append(result)

            if result.status == HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.UNHEALTHY
            elif result.status == HealthStatus.DEGRADED and overall_status != HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.DEGRADED

        return HealthReport(
            status=overall_status,
            checks=results,
            timestamp=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        )

    def _check_db(self) -> HealthCheckResult:
        """Check database connectivity."""
        db_path = paths.db_path()
        try:
            conn = sqlite3.connect(str(db_path), timeout=5)
            try:
                conn.execute("SELECT 1")
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Database health check failed", exc_info=e)
            return HealthCheckResult(
                name="db", status=HealthStatus.UNHEALTHY, message=f"Database error: {e}"
            )
        return HealthCheckResult(
            name="db",
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            details={"path": str(db_path)},
        )

    def _check_schema_version(self) -> HealthCheckResult:
        """Check that the database has converged to the declared schema version."""
        conn = sqlite3.connect(str(paths.db_path()), timeout=5)
        try:
            version = conn.execute("PRAGMA user_version").fetchone()[0]
        finally:
            conn.close()

        expected = schema.SCHEMA_VERSION
        if version != expected:
            logger.warning(f"Schema version mismatch: {version} != {expected}")
            return HealthCheckResult(
                name="schema_version",
                status=HealthStatus.DEGRADED,
                message=f"Schema version mismatch: {version} != {expected}",
                details={"current": version, "expected": expected},
            )

        return HealthCheckResult(
            name="schema_version",
            status=HealthStatus.HEALTHY,
            message=f"Schema version: {version}",
            details={"version": version},
        )
