"""Apple Health XML export import.

Parses the ``export.xml`` file produced by Apple Health (iOS → Share → Export
Health Data) for a single day and maps samples onto the record shapes the
daily summary consumes. Uses iterparse so large exports stay cheap.

HealthKit type mappings:
- HKQuantityTypeIdentifierDietaryWater → FluidIntakeLog (water)
- HKQuantityTypeIdentifierDietaryEnergyConsumed → meal record ("Imported calories")
- HKQuantityTypeIdentifierBodyMass → weight record (kg)
- HKQuantityTypeIdentifierStepCount → activity record (``steps:N``)
- HKQuantityTypeIdentifierBloodGlucose → symptom record (``glucose``)
- Workout → activity record (minutes, active calories when exported)
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from pathlib import Path

from companion.domains.glp1.domain_logic.models import (
    FluidIntakeLog,
    FluidType,
    Record,
    RecordType,
)

logger = logging.getLogger(__name__)

# HealthKit quantity type identifiers
_WATER = "HKQuantityTypeIdentifierDietaryWater"
_ENERGY = "HKQuantityTypeIdentifierDietaryEnergyConsumed"
_BODY_MASS = "HKQuantityTypeIdentifierBodyMass"
_STEPS = "HKQuantityTypeIdentifierStepCount"
_GLUCOSE = "HKQuantityTypeIdentifierBloodGlucose"
_ACTIVE_ENERGY = "HKQuantityTypeIdentifierActiveEnergyBurned"

_QUANTITY_TYPES = {_WATER, _ENERGY, _BODY_MASS, _STEPS, _GLUCOSE}

_ML_PER_UNIT = {"mL": 1.0, "L": 1000.0, "cL": 10.0, "dL": 100.0, "fl_oz_us": 29.5735, "fl_oz_imp": 28.4131}
_KCAL_PER_UNIT = {"kcal": 1.0, "Cal": 1.0, "kJ": 1 / 4.184}
_KG_PER_UNIT = {"kg": 1.0, "g": 0.001, "lb": 0.45359237, "st": 6.35029318}
_MG_DL_PER_MMOL_L = 18.0


class AppleHealthImportError(Exception):
    """Raised when parsing an Apple Health export fails."""


@dataclass
class ImportBatch:
    """Records and fluid logs mapped from one day of an export."""

    records: list[Record] = field(default_factory=list)
    fluid_logs: list[FluidIntakeLog] = field(default_factory=list)
    skipped: int = 0

    @property
    def count(self) -> int:
        return len(self.records) + len(self.fluid_logs)


def _parse_date(date_str: str) -> datetime:
    """Parse Apple Health date format: '2025-12-01 08:30:00 -0500'."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S %z")
    except ValueError:
        return datetime.fromisoformat(date_str)


def _convert(value: float, unit: str, table: dict[str, float]) -> float | None:
    factor = table.get(unit)
    if factor is None:
        return None
    return value * factor


def _glucose_mg_dl(value: float, unit: str) -> float | None:
    if unit == "mg/dL":
        return value
    if unit.startswith("mmol"):
        return value * _MG_DL_PER_MMOL_L
    return None


def _quantity_to_entry(
    rec_type: str, value: float, unit: str, moment: datetime
) -> Record | FluidIntakeLog | None:
    if rec_type == _WATER:
        ml = _convert(value, unit, _ML_PER_UNIT)
        # Whole millilitres only; sub-millilitre samples are dropped
        if ml is None or ml < 1:
            return None
        return FluidIntakeLog(
            date=moment,
            amount_ml=float(int(ml)),
            type=FluidType.WATER,
            notes="Imported from Apple Health",
        )

    if rec_type == _ENERGY:
        kcal = _convert(value, unit, _KCAL_PER_UNIT)
        if kcal is None:
            return None
        return Record(type=RecordType.MEAL, date=moment, note="Imported calories", calories=kcal)

    if rec_type == _BODY_MASS:
        kg = _convert(value, unit, _KG_PER_UNIT)
        if kg is None:
            return None
        return Record(type=RecordType.WEIGHT, date=moment, value=f"{kg:.2f}")

    if rec_type == _STEPS:
        return Record(type=RecordType.ACTIVITY, date=moment, value="0", note=f"steps:{int(value)}")

    if rec_type == _GLUCOSE:
        mg_dl = _glucose_mg_dl(value, unit)
        if mg_dl is None:
            return None
        return Record(type=RecordType.SYMPTOM, date=moment, value=f"{mg_dl:.1f}", note="glucose")

    return None


def _workout_to_record(elem: ET.Element, moment: datetime) -> Record:
    duration = float(elem.get("duration", "0") or "0")
    if elem.get("durationUnit", "min") == "s":
        duration /= 60
    minutes = max(round(duration), 1 if duration > 0 else 0)

    calories: float | None = None
    total = elem.get("totalEnergyBurned")
    if total:
        calories = _convert(float(total), elem.get("totalEnergyBurnedUnit", "kcal"), _KCAL_PER_UNIT)
    else:
        for stat in elem.iter("WorkoutStatistics"):
            if stat.get("type") == _ACTIVE_ENERGY and stat.get("sum"):
                calories = _convert(float(stat.get("sum")), stat.get("unit", "kcal"), _KCAL_PER_UNIT)
                break

    activity = elem.get("workoutActivityType", "").replace("HKWorkoutActivityType", "")
    summary = f"{activity or 'Workout'} · {minutes} min"
    if calories is not None and calories > 0:
        summary += f" · {int(calories)} kcal"
    else:
        calories = None

    return Record(
        type=RecordType.ACTIVITY,
        date=moment,
        value=str(minutes),
        note=summary,
        calories=calories,
    )


def import_apple_health_day(
    export_path: str | Path,
    day: date,
    tz: tzinfo = timezone.utc,
) -> ImportBatch:
    """Map one day of an Apple Health export onto records and fluid logs.

    Args:
        export_path: Path to the Apple Health export.xml file.
        day: Calendar day to import.
        tz: Zone in which ``day`` is interpreted.

    Raises:
        AppleHealthImportError: If the file is missing or is not valid XML.
    """
    path = Path(export_path).expanduser()
    if not path.exists():
        raise AppleHealthImportError(f"Export file not found: {path}")

    batch = ImportBatch()

    try:
        for _event, elem in ET.iterparse(str(path), events=("end",)):
            tag = elem.tag

            if tag == "Record":
                rec_type = elem.get("type", "")
                if rec_type in _QUANTITY_TYPES:
                    try:
                        moment = _parse_date(elem.get("startDate", ""))
                        if moment.astimezone(tz).date() == day:
                            entry = _quantity_to_entry(
                                rec_type,
                                float(elem.get("value", "")),
                                elem.get("unit", ""),
                                moment,
                            )
                            if entry is None:
                                batch.skipped += 1
                            elif isinstance(entry, FluidIntakeLog):
                                batch.fluid_logs.append(entry)
                            else:
                                batch.records.append(entry)
                    except (ValueError, TypeError):
                        batch.skipped += 1
                elem.clear()

            elif tag == "Workout":
                try:
                    moment = _parse_date(elem.get("startDate", ""))
                    if moment.astimezone(tz).date() == day:
                        batch.records.append(_workout_to_record(elem, moment))
                except (ValueError, TypeError):
                    batch.skipped += 1
                elem.clear()

    except ET.ParseError as exc:
        raise AppleHealthImportError(f"Invalid XML: {exc}") from exc

    logger.info(
        "Parsed Apple Health export for %s: %d records, %d fluid logs, %d skipped",
        day.isoformat(), len(batch.records), len(batch.fluid_logs), batch.skipped,
    )
    return batch
