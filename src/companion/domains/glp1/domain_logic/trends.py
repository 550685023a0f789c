"""Multi-day progress series for weight, hydration, and mood.

Each series is built from stored entries only. Days without entries are
omitted rather than filled with zeros.
"""

from __future__ import annotations

import statistics
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timezone, tzinfo
from typing import Any

from companion.domains.glp1.domain_logic.aggregator import parse_mood
from companion.domains.glp1.domain_logic.models import FluidIntakeLog, Record, RecordType
from companion.domains.glp1.domain_logic.units import WeightUnit


def _local_day(record_date: datetime, tz: tzinfo) -> date:
    if record_date.tzinfo is None:
        record_date = record_date.replace(tzinfo=timezone.utc)
    return record_date.astimezone(tz).date()


def weight_trend(
    records: Iterable[Record],
    unit: WeightUnit = WeightUnit.KILOGRAMS,
) -> dict[str, Any]:
    """Weight readings converted to ``unit``, oldest first.

    Readings whose stored value is not a number are skipped.
    """
    samples: list[tuple[datetime, float]] = []
    for record in records:
        if record.type is not RecordType.WEIGHT or record.value is None:
            continue
        try:
            kg = float(record.value)
        except ValueError:
            continue
        samples.append((record.date, kg))
    samples.sort(key=lambda s: s[0])

    trend: dict[str, Any] = {
        "unit": unit.display_name,
        "samples": [
            {
                "date": moment.isoformat(),
                "value": round(unit.from_kg(kg), 2),
                "display": unit.format(kg),
            }
            for moment, kg in samples
        ],
        "data_points": len(samples),
    }
    if len(samples) >= 2:
        change_kg = samples[-1][1] - samples[0][1]
        trend["change"] = round(unit.from_kg(change_kg), 2)
    return trend


def hydration_trend(
    fluid_logs: Iterable[FluidIntakeLog],
    goal_ml: float,
    tz: tzinfo = timezone.utc,
) -> dict[str, Any]:
    """Daily fluid totals with a per-type breakdown, oldest day first."""
    totals: dict[date, float] = defaultdict(float)
    by_type: dict[date, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for log in fluid_logs:
        day = _local_day(log.date, tz)
        totals[day] += log.amount_ml
        by_type[day][log.type.display_name] += log.amount_ml

    days = [
        {
            "date": day.isoformat(),
            "total_ml": totals[day],
            "by_type": dict(by_type[day]),
            "goal_met": totals[day] >= goal_ml,
        }
        for day in sorted(totals)
    ]
    return {
        "goal_ml": goal_ml,
        "days": days,
        "days_goal_met": sum(1 for d in days if d["goal_met"]),
    }


def mood_trend(records: Iterable[Record], tz: tzinfo = timezone.utc) -> dict[str, Any]:
    """Average mood per day, oldest day first."""
    scores: dict[date, list[int]] = defaultdict(list)
    for record in records:
        if record.type is not RecordType.MOOD:
            continue
        score = parse_mood(record.value)
        if score is not None:
            scores[_local_day(record.date, tz)].append(score)

    return {
        "days": [
            {
                "date": day.isoformat(),
                "average": round(statistics.mean(scores[day]), 1),
                "entries": len(scores[day]),
            }
            for day in sorted(scores)
        ],
    }
