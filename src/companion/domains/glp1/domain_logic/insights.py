"""Rule-based daily coaching insights.

Five independent rule categories are evaluated in a fixed order against a
``DailySummary``; each contributes at most one insight:

1. calorie balance (always one)
2. fibre (always one)
3. hydration (dead band between 60% and 100% of goal emits nothing)
4. medication phase (only when a phase is set)
5. mood (an average in [3, 4) emits nothing)

The returned order is the order a dashboard renders them in.
"""

from __future__ import annotations

from companion.domains.glp1.domain_logic.models import (
    DailyInsight,
    DailySummary,
    InsightLevel,
    MedicationPhase,
)

ENERGY_GAP_RATIO = 0.75
HYDRATION_LOW_RATIO = 0.6
POSITIVE_MOOD_THRESHOLD = 4.0
MOOD_DIP_THRESHOLD = 3.0


def whole(value: float) -> int:
    """Truncate toward zero for display: 29.99 shows as 29, never 30."""
    return int(value)


def insights(summary: DailySummary) -> list[DailyInsight]:
    """Evaluate every rule category against ``summary`` in display order."""
    items: list[DailyInsight] = [
        _calorie_insight(summary),
        _fibre_insight(summary),
    ]

    hydration = _hydration_insight(summary)
    if hydration is not None:
        items.append(hydration)

    if summary.medication_phase is not None:
        items.append(_PHASE_INSIGHTS[summary.medication_phase])

    mood = _mood_insight(summary)
    if mood is not None:
        items.append(mood)

    return items


def _calorie_insight(summary: DailySummary) -> DailyInsight:
    net = summary.net_calories
    goal = summary.calories_goal
    if net < goal * ENERGY_GAP_RATIO:
        return DailyInsight(
            title="Energy gap",
            message=(
                f"You're {whole(goal - net)} kcal below today's goal. Consider a "
                "balanced snack to stay energised during GLP-1 therapy."
            ),
            level=InsightLevel.NEUTRAL,
        )
    if net > goal:
        return DailyInsight(
            title="Above calorie goal",
            message=(
                f"Net intake is {whole(net - goal)} kcal over target. Track evening "
                "snacks or add a light walk."
            ),
            level=InsightLevel.WARNING,
        )
    return DailyInsight(
        title="Calories on track",
        message=(
            "Today's net calories are within your personalised goal. Great "
            "consistency for GLP-1 progress."
        ),
        level=InsightLevel.POSITIVE,
    )


def _fibre_insight(summary: DailySummary) -> DailyInsight:
    if summary.fiber >= summary.fiber_goal:
        return DailyInsight(
            title="Fibre target met",
            message=(
                f"You've logged {whole(summary.fiber)}g fibre, ideal for satiety "
                "and glucose stability."
            ),
            level=InsightLevel.POSITIVE,
        )
    remaining = max(summary.fiber_goal - summary.fiber, 0)
    return DailyInsight(
        title="Boost fibre",
        message=(
            f"Add {whole(remaining)}g more fibre (vegetables, pulses, oats) to "
            "support GLP-1 medication."
        ),
        level=InsightLevel.WARNING,
    )


def _hydration_insight(summary: DailySummary) -> DailyInsight | None:
    if summary.hydration_ml < summary.hydration_goal_ml * HYDRATION_LOW_RATIO:
        return DailyInsight(
            title="Hydration low",
            message=(
                f"Only {whole(summary.hydration_ml)} mL logged. Sip water regularly "
                "to reduce nausea risk."
            ),
            level=InsightLevel.WARNING,
        )
    if summary.hydration_ml >= summary.hydration_goal_ml:
        return DailyInsight(
            title="Hydration on point",
            message="Great hydration today. Staying hydrated supports appetite control.",
            level=InsightLevel.POSITIVE,
        )
    return None


_PHASE_INSIGHTS = {
    MedicationPhase.TITRATION: DailyInsight(
        title="Titration focus",
        message="Keep meals gentle and fibre gradual while doses increase.",
        level=InsightLevel.NEUTRAL,
    ),
    MedicationPhase.MAINTENANCE: DailyInsight(
        title="Maintenance",
        message="Consistency is key. Log weekly to keep momentum.",
        level=InsightLevel.NEUTRAL,
    ),
    MedicationPhase.PAUSE: DailyInsight(
        title="Pause week",
        message="Without medication, watch hunger cues and keep fibre steady.",
        level=InsightLevel.NEUTRAL,
    ),
}


def _mood_insight(summary: DailySummary) -> DailyInsight | None:
    average = summary.average_mood
    if average is None:
        return DailyInsight(
            title="Log mood",
            message="No mood logged yet today. A quick check-in helps spot patterns with your medication.",
            level=InsightLevel.NEUTRAL,
        )
    if average >= POSITIVE_MOOD_THRESHOLD:
        return DailyInsight(
            title="Positive mood",
            message=f"Your mood averaged {average:.1f} today. Keep doing what works.",
            level=InsightLevel.POSITIVE,
        )
    if average < MOOD_DIP_THRESHOLD:
        return DailyInsight(
            title="Mood dip",
            message=(
                f"Your mood averaged {average:.1f} today. Rest, hydrate, and reach "
                "out to your care team if low mood persists."
            ),
            level=InsightLevel.WARNING,
        )
    return None
