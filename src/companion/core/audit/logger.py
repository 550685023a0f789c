"""Audit logger: mutation history for the health log bank.

Records every create, update, delete, and consent change in a PHI-free audit
trail:

* ``details``: only identifiers (record type, record ID, consent category).
* ``input_hash``: SHA-256 of the canonical JSON payload, never the raw input.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from companion.core.storage.database import HealthDatabase

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CONSENT_CHANGE = "consent_change"


def _hash_input(data: Any) -> str:
    """SHA-256 hash of canonical JSON.

    Returns:
        Hex-encoded SHA-256 digest, or empty string if ``data`` is not
        JSON-serializable.
    """
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: AuditAction
    target_entity: str                   # 'Record' | 'FluidIntakeLog' | 'NutritionGoals' | ...
    details: str | None = None
    input_hash: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    Writes are committed immediately. A failed audit write is logged and
    swallowed so it never undoes the mutation it describes.

    Usage::

        audit = AuditLogger(health_db)
        audit.log(AuditAction.CREATE, "Record", details="meal:3f2a...")
    """

    def __init__(self, database: HealthDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID (empty string on failure)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat(timespec="microseconds")

        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"))
            if event.metadata
            else None
        )

        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO audit_log
                   (id, timestamp, action, target_entity, details, input_hash, metadata_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.action.value,
                    event.target_entity,
                    event.details,
                    event.input_hash or None,
                    metadata_json,
                ),
            )
            conn.commit()
        except Exception:
            logger.exception("Failed to write audit event; event lost")
            return ""

        return event_id

    def log(
        self,
        action: AuditAction,
        target_entity: str,
        *,
        details: str | None = None,
        payload: Any = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Convenience wrapper for logging a mutation.

        Args:
            action: What happened.
            target_entity: Kind of entity touched (e.g. 'Record', 'Consent').
            details: Non-PHI identifiers only.
            payload: Mutation input; hashed, never stored raw.
            metadata: Additional non-PHI metadata.
        """
        return self.log_event(AuditEvent(
            action=action,
            target_entity=target_entity,
            details=details,
            input_hash=_hash_input(payload) if payload is not None else "",
            metadata=metadata or {},
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: AuditAction | None = None,
        target_entity: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events with optional filters, newest first."""
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action.value)
        if target_entity:
            conditions.append("target_entity = ?")
            params.append(target_entity)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC, rowid DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, since: str | None = None) -> int:
        """Count total audit events, optionally since a timestamp."""
        if since:
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM audit_log WHERE timestamp >= ?", (since,)
            ).fetchone()
        else:
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM audit_log"
            ).fetchone()
        return row[0]

    def count_by_action(self, *, since: str | None = None) -> dict[str, int]:
        """Count audit events per action, optionally since a timestamp."""
        if since:
            rows = self._db.connection.execute(
                "SELECT action, COUNT(*) FROM audit_log WHERE timestamp >= ? GROUP BY action",
                (since,),
            ).fetchall()
        else:
            rows = self._db.connection.execute(
                "SELECT action, COUNT(*) FROM audit_log GROUP BY action"
            ).fetchall()
        return {row[0]: row[1] for row in rows}
