"""Effective daily targets from base goals and the current medication phase."""

from __future__ import annotations

from dataclasses import dataclass

from companion.domains.glp1.domain_logic.models import (
    FluidType,
    MedicationPhase,
    MedicationSchedule,
    NutritionGoals,
    phase_constants,
)

DEFAULT_GOALS = NutritionGoals()


@dataclass(frozen=True)
class ResolvedGoals:
    calories_goal: float
    fiber_goal: float
    hydration_goal_ml: float
    hydration_types: frozenset[FluidType]
    medication_phase: MedicationPhase | None = None


def resolve_goals(
    goals: NutritionGoals | None,
    schedule: MedicationSchedule | None,
) -> ResolvedGoals:
    """Merge base goals with phase adjustments.

    The phase calorie offset is added to the base calories, while the phase
    fibre target replaces the base fibre goal outright. Hydration is not
    affected by phase. Missing goals fall back to the defaults.
    """
    base = goals if goals is not None else DEFAULT_GOALS
    phase = schedule.phase if schedule is not None else None

    if phase is None:
        return ResolvedGoals(
            calories_goal=base.daily_calories,
            fiber_goal=base.daily_fiber,
            hydration_goal_ml=base.daily_hydration_ml,
            hydration_types=base.hydration_types_enabled,
        )

    constants = phase_constants(phase)
    return ResolvedGoals(
        calories_goal=base.daily_calories + constants.calorie_offset,
        fiber_goal=constants.fibre_target,
        hydration_goal_ml=base.daily_hydration_ml,
        hydration_types=base.hydration_types_enabled,
        medication_phase=phase,
    )
