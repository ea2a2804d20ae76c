"""
Audit Trail.

Append-only change log for every write made through the service layer.
Supports:
- Recording one entry per data change, inside the caller's transaction
- Request ID correlation
- Querying by entity/operation/actor/time
"""

import json
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from lib.db import Database
from lib.observability import get_request_id

# ============================================================================
# Event Types
# ============================================================================


class EntityType(StrEnum):
    EMPLOYEE = "EMPLOYEE"
    PROJECT = "PROJECT"
    PROJECT_ALLOCATION = "PROJECT_ALLOCATION"


class Operation(StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class AuditEntry:
    """One audit log row."""

    id: str
    entity_type: str
    entity_id: str
    operation: str
    changed_by: str
    changed_at: str
    changed_fields: dict[str, Any]
    request_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "operation": self.operation,
            "changed_by": self.changed_by,
            "changed_at": self.changed_at,
            "changed_fields": self.changed_fields,
            "request_id": self.request_id,
        }


# ============================================================================
# Audit Store
# ============================================================================


class AuditStore:
    """
    Append-only audit log store.

    ``record`` never commits: it writes on the caller's connection so the
    audit row lands or rolls back together with the data change it
    describes.
    """

    def __init__(self, db: Database):
        self.db = db

    def record(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        operation: Operation | str,
        changed_by: str,
        changed_fields: dict[str, Any],
    ) -> AuditEntry:
        """Record an audit entry."""
        entry = AuditEntry(
            id=f"aud_{secrets.token_hex(8)}",
            entity_type=str(entity_type),
            entity_id=entity_id,
            operation=str(operation),
            changed_by=changed_by,
            changed_at=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            changed_fields=changed_fields,
            request_id=get_request_id(),
        )

        self.db.insert(
            "audit_logs",
            {
                "id": entry.id,
                "entity_type": entry.entity_type,
                "entity_id": entry.entity_id,
                "operation": entry.operation,
                "changed_by": entry.changed_by,
                "changed_at": entry.changed_at,
                "changed_fields": json.dumps(entry.changed_fields, default=str, sort_keys=True),
                "request_id": entry.request_id,
            },
        )
        return entry

    def get_events(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        operation: str | None = None,
        changed_by: str | None = None,
        since: str | None = None,
        limit: int = 100,
    ) -> list[AuditEntry]:
        """Query audit entries, oldest first."""
        query = "SELECT * FROM audit_logs WHERE 1=1"
        params: list[Any] = []

        if entity_type:
            query += " AND entity_type = ?"
            params.append(entity_type)

        if entity_id:
            query += " AND entity_id = ?"
            params.append(entity_id)

        if operation:
            query += " AND operation = ?"
            params.append(operation)

        if changed_by:
            query += " AND changed_by = ?"
            params.append(changed_by)

        if since:
            query += " AND changed_at >= ?"
            params.append(since)

        query += " ORDER BY changed_at ASC, rowid ASC LIMIT ?"
        params.append(limit)

        return [
            AuditEntry(
                id=row["id"],
                entity_type=row["entity_type"],
                entity_id=row["entity_id"],
                operation=row["operation"],
                changed_by=row["changed_by"],
                changed_at=row["changed_at"],
                changed_fields=json.loads(row["changed_fields"] or "{}"),
                request_id=row["request_id"],
            )
            for row in self.db.fetch_all(query, params)
        ]
