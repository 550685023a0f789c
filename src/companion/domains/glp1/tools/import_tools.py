"""MCP tools for importing a day of Apple Health data."""

from __future__ import annotations

import json
import logging
from datetime import timezone, tzinfo
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.audit.logger import AuditAction
from companion.core.privacy.consent import ConsentCategory, category_for
from companion.core.storage.repository import RepositoryError
from companion.domains.glp1.connectors.apple_health_import import (
    AppleHealthImportError,
    import_apple_health_day,
)
from companion.domains.glp1.tools.common import ToolInputError, error, parse_day

if TYPE_CHECKING:
    from companion.core.audit.logger import AuditLogger
    from companion.core.privacy.consent import ConsentManager
    from companion.core.storage.repository import HealthLogRepository

logger = logging.getLogger(__name__)


def register_import_tools(
    mcp: FastMCP,
    repository: HealthLogRepository,
    audit_logger: AuditLogger,
    consent: ConsentManager,
    *,
    tz: tzinfo = timezone.utc,
    default_export_path: str = "",
) -> None:
    """Register Apple Health import tools on the MCP server."""

    @mcp.tool
    async def import_apple_health(
        ctx: Context,
        export_path: str = "",
        date: str = "",
    ) -> str:
        """Import one day of water, calories, weight, steps, glucose, and workouts.

        Entries in categories without consent are skipped.

        Args:
            export_path: Path to Apple Health export.xml. Defaults to the
                configured APPLE_HEALTH_EXPORT_PATH.
            date: Day to import (YYYY-MM-DD). Defaults to today.
        """
        path = export_path or default_export_path
        if not path:
            return error("No export path given and APPLE_HEALTH_EXPORT_PATH is not set")
        try:
            day = parse_day(date, tz)
            batch = import_apple_health_day(path, day, tz)
        except (ToolInputError, AppleHealthImportError) as exc:
            return error(str(exc))

        imported = 0
        declined = 0
        failure: str | None = None
        try:
            for record in batch.records:
                if not consent.allows(record.type):
                    declined += 1
                    continue
                repository.add_record(record)
                imported += 1

            if consent.is_enabled(ConsentCategory.HYDRATION):
                for log in batch.fluid_logs:
                    repository.add_fluid_log(log)
                    imported += 1
            else:
                declined += len(batch.fluid_logs)
        except RepositoryError as exc:
            logger.warning("Apple Health import for %s stopped: %s", day.isoformat(), exc)
            failure = str(exc)

        metadata = {
            "imported": imported,
            "declined": declined,
            "skipped": batch.skipped,
            "categories": sorted({category_for(r.type).value for r in batch.records}),
        }
        if failure is not None:
            metadata["failed"] = True
        audit_logger.log(
            AuditAction.CREATE,
            "AppleHealthImport",
            details=day.isoformat(),
            metadata=metadata,
        )

        if failure is not None:
            return json.dumps({
                "status": "error",
                "message": f"Import stopped after {imported} entries: {failure}",
                "date": day.isoformat(),
                "imported": imported,
            })
        logger.info("Imported %d Apple Health entries for %s", imported, day.isoformat())
        return json.dumps({
            "status": "ok",
            "date": day.isoformat(),
            "imported": imported,
            "declined_by_consent": declined,
            "skipped": batch.skipped,
        })
