# STAFF DESK - Core Library
"""
Allocation capacity accounting, persistence and audit trail.

Exports for the API server, CLI and other consumers.
"""

from .allocations import (
    AllocationService,
    CapacityAccountant,
    CapacityCheck,
    DateSpan,
)
from .db import Database, run_startup_migrations

__all__ = [
    "AllocationService",
    "CapacityAccountant",
    "CapacityCheck",
    "DateSpan",
    "Database",
    "run_startup_migrations",
]
