"""Record classification and per-day accumulation.

Partitions a day's records by type and sums the numeric fields that matter
for each: meal macros, activity burn, and integer mood scores. Hydration is
summed separately from fluid logs.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from companion.domains.glp1.domain_logic.models import (
    FluidIntakeLog,
    Record,
    RecordType,
)

_INTEGER_RE = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class RecordAggregates:
    """Accumulators produced from one day's records."""

    calories_in: float = 0.0
    carbs: float = 0.0
    protein: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    calories_out: float = 0.0
    mood_scores: tuple[int, ...] = ()
    latest_mood: int | None = None


def parse_mood(value: str | None) -> int | None:
    """Parse a mood value as a plain integer, or ``None`` if it isn't one."""
    if value is None or not _INTEGER_RE.fullmatch(value):
        return None
    return int(value)


def aggregate_records(records: Iterable[Record]) -> RecordAggregates:
    """Sum the domain-relevant fields of a day's records.

    Absent macros count as zero. Mood records contribute only when their
    value parses as an integer; ``latest_mood`` follows the strictly latest
    date, so equal timestamps keep the first one seen.
    """
    calories_in = carbs = protein = fat = fiber = 0.0
    calories_out = 0.0
    mood_scores: list[int] = []
    latest_mood: int | None = None
    latest_mood_at: datetime | None = None

    for record in records:
        if record.type is RecordType.MEAL:
            calories_in += record.calories or 0.0
            carbs += record.carbs or 0.0
            protein += record.protein or 0.0
            fat += record.fat or 0.0
            fiber += record.fiber or 0.0
        elif record.type is RecordType.ACTIVITY:
            calories_out += record.calories or 0.0
        elif record.type is RecordType.MOOD:
            score = parse_mood(record.value)
            if score is None:
                continue
            mood_scores.append(score)
            if latest_mood_at is None or record.date > latest_mood_at:
                latest_mood_at = record.date
                latest_mood = score
        # hydration, symptom, medication and weight carry nothing to sum here

    return RecordAggregates(
        calories_in=calories_in,
        carbs=carbs,
        protein=protein,
        fat=fat,
        fiber=fiber,
        calories_out=calories_out,
        mood_scores=tuple(mood_scores),
        latest_mood=latest_mood,
    )


def sum_fluid_intake(fluid_logs: Iterable[FluidIntakeLog]) -> float:
    """Total millilitres across every fluid log, whatever its type."""
    return sum((log.amount_ml for log in fluid_logs), 0.0)
