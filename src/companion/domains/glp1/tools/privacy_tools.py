"""MCP tools for consent and the right to deletion.

Deleting everything keeps consents and the audit trail; the deletion
itself is audit-logged.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.audit.logger import AuditAction
from companion.core.privacy.consent import ConsentCategory
from companion.domains.glp1.tools.common import error

if TYPE_CHECKING:
    from companion.core.audit.logger import AuditLogger
    from companion.core.privacy.consent import ConsentManager
    from companion.core.storage.repository import HealthLogRepository

logger = logging.getLogger(__name__)


def register_privacy_tools(
    mcp: FastMCP,
    repository: HealthLogRepository,
    audit_logger: AuditLogger,
    consent: ConsentManager,
) -> None:
    """Register consent and deletion tools on the MCP server."""

    @mcp.tool
    async def consent_status(ctx: Context) -> str:
        """Show which kinds of data the companion may store."""
        return json.dumps({
            "status": "ok",
            "consents": [
                {
                    "category": category.value,
                    "title": category.permission_title,
                    "description": category.permission_description,
                    "enabled": enabled,
                }
                for category, enabled in consent.statuses().items()
            ],
        }, indent=2)

    @mcp.tool
    async def set_consent(ctx: Context, category: str, enabled: bool) -> str:
        """Turn storage of a data category on or off.

        Turning a category off stops new entries; existing entries are kept
        until deleted.

        Args:
            category: meals, hydration, symptoms, medication, weight, or activity.
            enabled: Whether the category may be logged.
        """
        try:
            consent_category = ConsentCategory(category)
        except ValueError:
            valid = ", ".join(c.value for c in ConsentCategory)
            return error(f"Unknown category {category!r}; expected one of {valid}")

        consent.set(consent_category, enabled)
        return json.dumps({
            "status": "saved",
            "category": consent_category.value,
            "enabled": enabled,
        })

    @mcp.tool
    async def delete_all_data(
        ctx: Context,
        confirm: str = "",
    ) -> str:
        """Permanently delete ALL logged data.

        Removes every record, fluid log, goal, goal history entry, medication
        schedule, and cached barcode. It cannot be undone.

        Args:
            confirm: Must be exactly 'DELETE_ALL' to proceed. Safety gate.
        """
        if confirm != "DELETE_ALL":
            return json.dumps({
                "status": "cancelled",
                "message": (
                    "To delete all logged data, call this tool with "
                    "confirm='DELETE_ALL'. This action cannot be undone."
                ),
            })

        count = repository.delete_all_data()
        audit_logger.log(
            AuditAction.DELETE,
            "AllData",
            metadata={"entries_deleted": count, "confirmed": True},
        )
        return json.dumps({
            "status": "deleted",
            "entries_deleted": count,
            "message": "All logged data has been permanently deleted.",
        })
