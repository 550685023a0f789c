"""MCP tools for the daily summary and its insights."""

from __future__ import annotations

import json
import logging
from datetime import date, timezone, tzinfo
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.domains.glp1.domain_logic.insights import insights
from companion.domains.glp1.domain_logic.models import DailySummary
from companion.domains.glp1.domain_logic.summary import summarize
from companion.domains.glp1.tools.common import ToolInputError, error, parse_day

if TYPE_CHECKING:
    from companion.core.storage.repository import HealthLogRepository

logger = logging.getLogger(__name__)


def build_daily_summary(
    repository: HealthLogRepository,
    day: date,
    tz: tzinfo = timezone.utc,
) -> DailySummary:
    """Load one day's entries and goals from storage and summarise them."""
    return summarize(
        repository.records_for_day(day, tz),
        repository.fluid_logs_for_day(day, tz),
        repository.ensure_goals(),
        repository.get_medication_schedule(),
        day=day,
    )


def register_summary_tools(
    mcp: FastMCP,
    repository: HealthLogRepository,
    *,
    tz: tzinfo = timezone.utc,
) -> None:
    """Register daily summary tools on the MCP server."""

    @mcp.tool
    async def daily_summary(ctx: Context, date: str = "") -> str:
        """Totals for a day against your personalised goals.

        Calorie and fibre goals follow your medication phase when a schedule
        is set.

        Args:
            date: Day to summarise (YYYY-MM-DD). Defaults to today.
        """
        try:
            day = parse_day(date, tz)
        except ToolInputError as exc:
            return error(str(exc))

        summary = build_daily_summary(repository, day, tz)
        logger.info("Built daily summary for %s", day.isoformat())
        return json.dumps({"status": "ok", "summary": summary.as_dict()}, indent=2)

    @mcp.tool
    async def daily_insights(ctx: Context, date: str = "") -> str:
        """Plain-language coaching for a day: energy, fibre, hydration, phase, mood.

        Args:
            date: Day to review (YYYY-MM-DD). Defaults to today.
        """
        try:
            day = parse_day(date, tz)
        except ToolInputError as exc:
            return error(str(exc))

        summary = build_daily_summary(repository, day, tz)
        return json.dumps({
            "status": "ok",
            "date": day.isoformat(),
            "insights": [insight.as_dict() for insight in insights(summary)],
        }, indent=2)
