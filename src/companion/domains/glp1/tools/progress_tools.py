"""MCP tools for multi-day progress trends.

These tools read the health log bank across a window of days and return
weight, hydration, and mood series for charting or review.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta, timezone, tzinfo
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.storage.repository import day_bounds
from companion.domains.glp1.domain_logic.trends import (
    hydration_trend,
    mood_trend,
    weight_trend,
)
from companion.domains.glp1.domain_logic.units import WeightUnit
from companion.domains.glp1.tools.common import ToolInputError, error, parse_day

if TYPE_CHECKING:
    from companion.core.storage.repository import HealthLogRepository

logger = logging.getLogger(__name__)

MAX_TREND_DAYS = 365


def register_progress_tools(
    mcp: FastMCP,
    repository: HealthLogRepository,
    *,
    tz: tzinfo = timezone.utc,
) -> None:
    """Register progress trend tools on the MCP server."""

    @mcp.tool
    async def progress_trends(
        ctx: Context,
        days: int = 30,
        unit: str = "kilograms",
        end_date: str = "",
    ) -> str:
        """Show how weight, hydration, and mood have moved over recent days.

        Args:
            days: Number of days to include, ending on end_date (default: 30).
            unit: Weight unit for the weight series: 'kilograms' or 'stones'.
            end_date: Last day of the window (YYYY-MM-DD). Defaults to today.
        """
        if not 1 <= days <= MAX_TREND_DAYS:
            return error(f"days must be between 1 and {MAX_TREND_DAYS}")
        try:
            weight_unit = WeightUnit(unit)
        except ValueError:
            return error(f"Unknown weight unit {unit!r}; expected kilograms or stones")
        try:
            last_day = parse_day(end_date, tz)
        except ToolInputError as exc:
            return error(str(exc))

        first_day = last_day - timedelta(days=days - 1)
        since, _ = day_bounds(first_day, tz)
        _, until = day_bounds(last_day, tz)

        records = repository.get_records(since=since, until=until)
        fluid_logs = repository.get_fluid_logs(since=since, until=until)
        goals = repository.ensure_goals()

        weight = weight_trend(records, weight_unit)
        hydration = hydration_trend(fluid_logs, goals.daily_hydration_ml, tz)
        mood = mood_trend(records, tz)

        window = {"start": first_day.isoformat(), "end": last_day.isoformat(), "days": days}
        if not (weight["samples"] or hydration["days"] or mood["days"]):
            return json.dumps({
                "status": "no_data",
                "window": window,
                "message": "Log weight, hydration, or mood to see your trends here.",
            })

        logger.info(
            "Built progress trends for %s..%s", first_day.isoformat(), last_day.isoformat()
        )
        return json.dumps({
            "status": "ok",
            "window": window,
            "weight": weight,
            "hydration": hydration,
            "mood": mood,
        }, indent=2)
