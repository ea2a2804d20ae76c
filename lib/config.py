"""
Centralized configuration for STAFF DESK.

All hardcoded values that vary by deployment belong here.
Override via environment variables where marked.
"""

import os

# ============================================================
# Authentication
# ============================================================

JWT_SECRET: str = os.environ.get("STAFF_DESK_JWT_SECRET", "dev-secret-change-me")
"""HMAC secret used to verify bearer tokens. Must be overridden in production."""

JWT_ALGORITHM: str = os.environ.get("STAFF_DESK_JWT_ALGORITHM", "HS256")
"""Signing algorithm accepted for bearer tokens."""

DEV_JWT_SECRET = "dev-secret-change-me"

# ============================================================
# Allocation rules
# ============================================================

CAPACITY_LIMIT_PCT: float = 100.0
"""Maximum summed allocation percentage for one employee at any moment."""

PERCENTAGE_PRECISION: int = 2
"""Decimal places kept for allocation percentages (matches DECIMAL(5,2))."""

# ============================================================
# Listing
# ============================================================

DEFAULT_PAGE_LIMIT: int = int(os.environ.get("STAFF_DESK_PAGE_LIMIT", "20"))
"""Default page size for list endpoints."""

MAX_PAGE_LIMIT: int = 100
"""Upper bound on page size for list endpoints."""

# ============================================================
# Server / logging
# ============================================================

CORS_ORIGINS: list[str] = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
]
"""Allowed CORS origins. '*' in dev; comma-separated list in production."""

LOG_LEVEL: str = os.environ.get("STAFF_DESK_LOG_LEVEL", "INFO")
"""Root log level for the API server and CLI."""

LOG_FILE: str | None = os.environ.get("STAFF_DESK_LOG_FILE") or None
"""Optional path of a rotating JSON log file."""
