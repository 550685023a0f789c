"""Daily summary builder.

Combines record aggregates and resolved goals into one ``DailySummary``.
Pure: no I/O, no shared state, identical inputs give equal summaries.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from companion.domains.glp1.domain_logic.aggregator import (
    aggregate_records,
    sum_fluid_intake,
)
from companion.domains.glp1.domain_logic.goal_resolver import resolve_goals
from companion.domains.glp1.domain_logic.models import (
    DailySummary,
    FluidIntakeLog,
    MedicationSchedule,
    NutritionGoals,
    Record,
)


def summarize(
    records: Iterable[Record],
    fluid_logs: Iterable[FluidIntakeLog],
    goals: NutritionGoals | None = None,
    schedule: MedicationSchedule | None = None,
    *,
    day: date | None = None,
) -> DailySummary:
    """Build the summary for one day's records and fluid logs.

    Args:
        records: The day's logged records (any type).
        fluid_logs: The day's fluid intake logs.
        goals: Active nutrition goals, or ``None`` for the defaults.
        schedule: Current medication schedule, if any.
        day: Date stamped on the summary. Defaults to today.
    """
    aggregates = aggregate_records(records)
    resolved = resolve_goals(goals, schedule)

    return DailySummary(
        date=day or date.today(),
        calories_in=aggregates.calories_in,
        calories_goal=resolved.calories_goal,
        calories_out=aggregates.calories_out,
        carbs=aggregates.carbs,
        protein=aggregates.protein,
        fat=aggregates.fat,
        fiber=aggregates.fiber,
        fiber_goal=resolved.fiber_goal,
        hydration_ml=sum_fluid_intake(fluid_logs),
        hydration_goal_ml=resolved.hydration_goal_ml,
        medication_phase=resolved.medication_phase,
        mood_scores=aggregates.mood_scores,
        latest_mood=aggregates.latest_mood,
    )
