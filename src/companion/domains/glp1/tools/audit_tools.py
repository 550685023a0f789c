"""MCP tools for viewing the audit trail.

The trail holds only identifiers and input hashes, never logged values or
notes, so it can be shown back to the user in full.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.domains.glp1.tools.common import error

if TYPE_CHECKING:
    from companion.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_audit_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger,
) -> None:
    """Register audit trail tools on the MCP server."""

    @mcp.tool
    async def audit_summary(
        ctx: Context,
        days: int = 30,
    ) -> str:
        """View recent changes to your health log.

        Lists creates, edits, deletions, and consent changes. No logged
        values or notes are stored in the trail.

        Args:
            days: Number of days to look back (default: 30).
        """
        if days < 1:
            return error("days must be at least 1")
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat(
            timespec="microseconds"
        )

        total_events = audit_logger.count_events(since=since)
        by_action = audit_logger.count_by_action(since=since)
        recent_events = audit_logger.get_events(since=since, limit=20)

        display_events = []
        for event in recent_events:
            display_events.append({
                "timestamp": event.get("timestamp"),
                "action": event.get("action"),
                "target_entity": event.get("target_entity"),
                "details": event.get("details"),
            })

        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": total_events,
            "events_by_action": by_action,
            "recent_events": display_events,
            "note": (
                "This audit trail contains no health values. "
                "It tracks what kind of entry changed and when."
            ),
        }, indent=2)
