"""MCP tools for reading and changing nutrition goals."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.audit.logger import AuditAction
from companion.domains.glp1.domain_logic.models import (
    FluidType,
    GoalChangeReason,
    GoalHistoryEntry,
    NutritionGoals,
)
from companion.domains.glp1.tools.common import error

if TYPE_CHECKING:
    from companion.core.audit.logger import AuditLogger
    from companion.core.storage.repository import HealthLogRepository

logger = logging.getLogger(__name__)


def _goals_payload(goals: NutritionGoals) -> dict:
    return {
        "daily_calories": goals.daily_calories,
        "daily_carbs": goals.daily_carbs,
        "daily_protein": goals.daily_protein,
        "daily_fat": goals.daily_fat,
        "daily_fiber": goals.daily_fiber,
        "daily_hydration_ml": goals.daily_hydration_ml,
        "hydration_types_enabled": sorted(t.value for t in goals.hydration_types_enabled),
        "updated_at": goals.updated_at.isoformat() if goals.updated_at else None,
    }


def _history_payload(entry: GoalHistoryEntry) -> dict:
    return {
        "id": entry.id,
        "date": entry.date.isoformat(),
        "reason": entry.reason.value,
        "reason_description": entry.reason.description,
        "calories": entry.calories,
        "carbs": entry.carbs,
        "protein": entry.protein,
        "fat": entry.fat,
        "fiber": entry.fiber,
        "hydration_ml": entry.hydration_ml,
        "notes": entry.notes,
    }


def register_goal_tools(
    mcp: FastMCP,
    repository: HealthLogRepository,
    audit_logger: AuditLogger,
) -> None:
    """Register nutrition goal tools on the MCP server."""

    @mcp.tool
    async def get_goals(ctx: Context) -> str:
        """Show your current base daily targets.

        These are the targets before any medication phase adjustment; the
        daily summary shows the effective calorie and fibre goals.
        """
        goals = repository.ensure_goals()
        return json.dumps({"status": "ok", "goals": _goals_payload(goals)}, indent=2)

    @mcp.tool
    async def set_goals(
        ctx: Context,
        calories: float | None = None,
        carbs: float | None = None,
        protein: float | None = None,
        fat: float | None = None,
        fiber: float | None = None,
        hydration_ml: float | None = None,
        hydration_types: list[str] | None = None,
        reason: str = "manual",
        notes: str = "",
    ) -> str:
        """Change your daily targets. Omitted targets keep their current value.

        Every change is kept in the goal history.

        Args:
            calories: Daily calorie target (kcal).
            carbs: Daily carbohydrate target (g).
            protein: Daily protein target (g).
            fat: Daily fat target (g).
            fiber: Daily fibre target (g).
            hydration_ml: Daily fluid target (mL).
            hydration_types: Fluid types you track, stored with your goals
                (water, tea, coffee, electrolyte, soup, other). Every logged
                fluid still counts toward the daily total.
            reason: titrationStart, titrationIncrease, maintenance,
                pauseMedication, coachAdvice, or manual.
            notes: Optional note stored with the history entry.
        """
        try:
            change_reason = GoalChangeReason(reason)
        except ValueError:
            valid = ", ".join(r.value for r in GoalChangeReason)
            return error(f"Unknown reason {reason!r}; expected one of {valid}")

        types = None
        if hydration_types is not None:
            try:
                types = frozenset(FluidType(t) for t in hydration_types)
            except ValueError:
                return error(f"Unknown fluid type in {hydration_types!r}")

        current = repository.ensure_goals()
        new_values = {
            "calories": calories if calories is not None else current.daily_calories,
            "carbs": carbs if carbs is not None else current.daily_carbs,
            "protein": protein if protein is not None else current.daily_protein,
            "fat": fat if fat is not None else current.daily_fat,
            "fiber": fiber if fiber is not None else current.daily_fiber,
            "hydration_ml": hydration_ml if hydration_ml is not None else current.daily_hydration_ml,
        }
        not_positive = [name for name, value in new_values.items() if value <= 0]
        if not_positive:
            return error(f"Targets must be positive: {', '.join(not_positive)}")

        goals = current.updated(
            **new_values,
            hydration_types=types,
            reason=change_reason,
            notes=notes or None,
        )
        repository.save_goals(goals)
        audit_logger.log(
            AuditAction.UPDATE,
            "NutritionGoals",
            details=change_reason.value,
            payload=new_values,
        )
        return json.dumps({"status": "saved", "goals": _goals_payload(goals)}, indent=2)

    @mcp.tool
    async def goal_history(ctx: Context, limit: int = 20) -> str:
        """List past goal changes, newest first.

        Args:
            limit: Maximum number of entries (default: 20).
        """
        entries = repository.get_goal_history(limit=max(limit, 1))
        return json.dumps({
            "status": "ok",
            "count": len(entries),
            "history": [_history_payload(e) for e in entries],
        }, indent=2)
