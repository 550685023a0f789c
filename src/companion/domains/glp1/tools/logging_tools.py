"""MCP tools for logging meals, fluids, activity, weight, mood, and doses.

Every write is gated by the category's consent and recorded in the audit
trail. Hydration is always written as a fluid log, never as a hydration
record, so daily totals have a single source.
"""

from __future__ import annotations

import json
import logging
from datetime import timezone, tzinfo
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.audit.logger import AuditAction
from companion.core.privacy.consent import ConsentCategory, category_for
from companion.domains.glp1.connectors.food_lookup import FoodLookupError
from companion.domains.glp1.domain_logic.models import (
    FluidIntakeLog,
    FluidType,
    Record,
    RecordType,
)
from companion.domains.glp1.domain_logic.units import WeightUnit
from companion.domains.glp1.tools.common import ToolInputError, error, parse_day, parse_moment

if TYPE_CHECKING:
    from companion.core.audit.logger import AuditLogger
    from companion.core.privacy.consent import ConsentManager
    from companion.core.storage.repository import HealthLogRepository
    from companion.domains.glp1.connectors.food_lookup import CachedFoodLookup

logger = logging.getLogger(__name__)


def _record_payload(record: Record) -> dict:
    return {
        "id": record.id,
        "type": record.type.value,
        "date": record.date.isoformat(),
        "value": record.value,
        "note": record.note,
        "calories": record.calories,
        "carbs": record.carbs,
        "protein": record.protein,
        "fat": record.fat,
        "fiber": record.fiber,
    }


def register_logging_tools(
    mcp: FastMCP,
    repository: HealthLogRepository,
    audit_logger: AuditLogger,
    consent: ConsentManager,
    *,
    tz: tzinfo = timezone.utc,
    food_lookup: CachedFoodLookup | None = None,
) -> None:
    """Register record logging tools on the MCP server."""

    def _save(record: Record) -> str:
        category = category_for(record.type)
        if not consent.is_enabled(category):
            return error(f"Consent for {category.permission_title.lower()} is turned off")
        repository.add_record(record)
        audit_logger.log(
            AuditAction.CREATE,
            "Record",
            details=f"{record.type.value}:{record.id}",
            payload=_record_payload(record),
        )
        return json.dumps({"status": "saved", "record": _record_payload(record)})

    @mcp.tool
    async def log_meal(
        ctx: Context,
        description: str,
        calories: float | None = None,
        carbs: float | None = None,
        protein: float | None = None,
        fat: float | None = None,
        fiber: float | None = None,
        logged_at: str = "",
    ) -> str:
        """Log a meal with its macros.

        Args:
            description: What you ate.
            calories: Energy in kcal, if known.
            carbs: Carbohydrates in grams.
            protein: Protein in grams.
            fat: Fat in grams.
            fiber: Fibre in grams.
            logged_at: When you ate (ISO 8601). Defaults to now.
        """
        try:
            moment = parse_moment(logged_at, tz)
        except ToolInputError as exc:
            return error(str(exc))
        return _save(Record(
            type=RecordType.MEAL,
            date=moment,
            note=description or None,
            calories=calories,
            carbs=carbs,
            protein=protein,
            fat=fat,
            fiber=fiber,
        ))

    @mcp.tool
    async def log_scanned_meal(
        ctx: Context,
        barcode: str,
        servings: float = 1.0,
        logged_at: str = "",
    ) -> str:
        """Log a meal from a product barcode.

        Macros come from the nutrition lookup (per 100 g where available) and
        are multiplied by ``servings``.

        Args:
            barcode: EAN/UPC barcode digits.
            servings: Number of 100 g portions eaten.
            logged_at: When you ate (ISO 8601). Defaults to now.
        """
        if food_lookup is None:
            return error("Barcode lookup is not configured")
        if servings <= 0:
            return error("Servings must be positive")
        try:
            moment = parse_moment(logged_at, tz)
            item = await food_lookup.lookup_product(barcode)
        except (ToolInputError, FoodLookupError) as exc:
            return error(str(exc))

        def scaled(value: float | None) -> float | None:
            return value * servings if value is not None else None

        response = json.loads(_save(Record(
            type=RecordType.MEAL,
            date=moment,
            note=item.name,
            calories=scaled(item.calories),
            carbs=scaled(item.carbs),
            protein=scaled(item.protein),
            fat=scaled(item.fat),
            fiber=scaled(item.fiber),
        )))
        if item.alerts:
            response["food_alerts"] = [a.title for a in item.alerts]
        return json.dumps(response)

    @mcp.tool
    async def log_fluid(
        ctx: Context,
        amount_ml: float,
        fluid_type: str = "water",
        notes: str = "",
        logged_at: str = "",
    ) -> str:
        """Log a drink toward today's hydration.

        Args:
            amount_ml: Volume in millilitres (must be positive).
            fluid_type: One of water, tea, coffee, electrolyte, soup, other.
            notes: Optional notes.
            logged_at: When you drank it (ISO 8601). Defaults to now.
        """
        if not consent.is_enabled(ConsentCategory.HYDRATION):
            return error("Consent for hydration tracking is turned off")
        if amount_ml <= 0:
            return error("Fluid amount must be positive")
        try:
            kind = FluidType(fluid_type)
        except ValueError:
            valid = ", ".join(t.value for t in FluidType)
            return error(f"Unknown fluid type {fluid_type!r}; expected one of {valid}")
        try:
            moment = parse_moment(logged_at, tz)
        except ToolInputError as exc:
            return error(str(exc))

        log = FluidIntakeLog(amount_ml=amount_ml, type=kind, date=moment, notes=notes or None)
        repository.add_fluid_log(log)
        audit_logger.log(
            AuditAction.CREATE,
            "FluidIntakeLog",
            details=f"{kind.value}:{log.id}",
            payload={"amount_ml": amount_ml, "type": kind.value, "date": moment.isoformat()},
        )
        return json.dumps({
            "status": "saved",
            "fluid_log_id": log.id,
            "amount_ml": amount_ml,
            "fluid_type": kind.value,
        })

    @mcp.tool
    async def log_activity(
        ctx: Context,
        minutes: int,
        description: str = "",
        calories: float | None = None,
        logged_at: str = "",
    ) -> str:
        """Log an exercise session.

        Args:
            minutes: Duration in minutes.
            description: What you did (e.g. 'brisk walk').
            calories: Calories burned, if known.
            logged_at: When it happened (ISO 8601). Defaults to now.
        """
        try:
            moment = parse_moment(logged_at, tz)
        except ToolInputError as exc:
            return error(str(exc))

        note_parts = []
        if description:
            note_parts.append(description)
        if calories is not None and calories > 0:
            note_parts.append(f"{int(calories)} kcal")
        return _save(Record(
            type=RecordType.ACTIVITY,
            date=moment,
            value=str(minutes),
            note=" · ".join(note_parts) or None,
            calories=calories,
        ))

    @mcp.tool
    async def log_weight(
        ctx: Context,
        weight: float,
        unit: str = "kilograms",
        note: str = "",
        logged_at: str = "",
    ) -> str:
        """Log a weight reading. Stored in kilograms.

        Args:
            weight: The reading.
            unit: 'kilograms' or 'stones'.
            note: Optional note.
            logged_at: When you weighed in (ISO 8601). Defaults to now.
        """
        try:
            weight_unit = WeightUnit(unit)
            moment = parse_moment(logged_at, tz)
        except ToolInputError as exc:
            return error(str(exc))
        except ValueError:
            return error(f"Unknown weight unit {unit!r}; expected kilograms or stones")
        if weight <= 0:
            return error("Weight must be positive")

        kg = weight_unit.to_kg(weight)
        return _save(Record(
            type=RecordType.WEIGHT,
            date=moment,
            value=f"{kg:.2f}",
            note=note or None,
        ))

    @mcp.tool
    async def log_mood(
        ctx: Context,
        level: int,
        note: str = "",
        logged_at: str = "",
    ) -> str:
        """Log how you feel on a 1 (low) to 5 (great) scale.

        Args:
            level: Mood score from 1 to 5.
            note: Optional note.
            logged_at: When (ISO 8601). Defaults to now.
        """
        if not 1 <= level <= 5:
            return error("Mood level must be between 1 and 5")
        try:
            moment = parse_moment(logged_at, tz)
        except ToolInputError as exc:
            return error(str(exc))
        return _save(Record(type=RecordType.MOOD, date=moment, value=str(level), note=note or None))

    @mcp.tool
    async def log_medication_dose(
        ctx: Context,
        name: str,
        dose: str,
        logged_at: str = "",
    ) -> str:
        """Log a medication dose you have taken.

        Args:
            name: Medication name (e.g. 'Ozempic').
            dose: Dose taken (e.g. '0.5 mg').
            logged_at: When (ISO 8601). Defaults to now.
        """
        try:
            moment = parse_moment(logged_at, tz)
        except ToolInputError as exc:
            return error(str(exc))
        return _save(Record(type=RecordType.MEDICATION, date=moment, value=dose, note=name))

    @mcp.tool
    async def log_glucose(
        ctx: Context,
        mg_per_dl: float,
        logged_at: str = "",
    ) -> str:
        """Log a blood glucose reading in mg/dL.

        Args:
            mg_per_dl: Reading in mg/dL.
            logged_at: When (ISO 8601). Defaults to now.
        """
        try:
            moment = parse_moment(logged_at, tz)
        except ToolInputError as exc:
            return error(str(exc))
        return _save(Record(
            type=RecordType.SYMPTOM,
            date=moment,
            value=f"{mg_per_dl:.1f}",
            note="glucose",
        ))

    @mcp.tool
    async def log_symptom(
        ctx: Context,
        description: str,
        severity: str = "",
        logged_at: str = "",
    ) -> str:
        """Log a symptom such as nausea or fatigue.

        Args:
            description: The symptom.
            severity: Optional severity (e.g. 'mild', '3').
            logged_at: When (ISO 8601). Defaults to now.
        """
        try:
            moment = parse_moment(logged_at, tz)
        except ToolInputError as exc:
            return error(str(exc))
        return _save(Record(
            type=RecordType.SYMPTOM,
            date=moment,
            value=severity or None,
            note=description,
        ))

    @mcp.tool
    async def update_record(
        ctx: Context,
        record_id: str,
        value: str = "",
        note: str = "",
        calories: float | None = None,
        carbs: float | None = None,
        protein: float | None = None,
        fat: float | None = None,
        fiber: float | None = None,
    ) -> str:
        """Edit a logged record. Value, note, and all macros are replaced.

        Args:
            record_id: ID of the record to edit.
            value: New value (empty clears it).
            note: New note (empty clears it).
            calories: New calories (omit to clear).
            carbs: New carbs (omit to clear).
            protein: New protein (omit to clear).
            fat: New fat (omit to clear).
            fiber: New fibre (omit to clear).
        """
        existing = repository.get_record(record_id)
        if existing is None:
            return error(f"No record with id {record_id!r}")
        if not consent.allows(existing.type):
            return error("Consent for this record's category is turned off")

        edited = repository.update_record(
            record_id,
            value=value,
            note=note,
            calories=calories,
            carbs=carbs,
            protein=protein,
            fat=fat,
            fiber=fiber,
        )
        audit_logger.log(
            AuditAction.UPDATE,
            "Record",
            details=record_id,
            payload=_record_payload(edited),
        )
        return json.dumps({"status": "saved", "record": _record_payload(edited)})

    @mcp.tool
    async def delete_record(ctx: Context, record_id: str) -> str:
        """Permanently delete a logged record.

        Args:
            record_id: ID of the record to delete.
        """
        if not repository.delete_record(record_id):
            return error(f"No record with id {record_id!r}")
        audit_logger.log(AuditAction.DELETE, "Record", details=record_id)
        return json.dumps({"status": "deleted", "record_id": record_id})

    @mcp.tool
    async def list_records(
        ctx: Context,
        date: str = "",
        record_type: str = "all",
    ) -> str:
        """List records logged on a day.

        Args:
            date: Day to list (YYYY-MM-DD). Defaults to today.
            record_type: 'all' or one of meal, hydration, symptom, medication,
                weight, activity, mood.
        """
        try:
            day = parse_day(date, tz)
            wanted = None if record_type == "all" else RecordType(record_type)
        except ToolInputError as exc:
            return error(str(exc))
        except ValueError:
            return error(f"Unknown record type {record_type!r}")

        records = repository.records_for_day(day, tz)
        if wanted is not None:
            records = [r for r in records if r.type is wanted]
        fluid_logs = repository.fluid_logs_for_day(day, tz)

        return json.dumps({
            "status": "ok",
            "date": day.isoformat(),
            "count": len(records),
            "records": [_record_payload(r) for r in records],
            "fluid_logs": [
                {
                    "id": log.id,
                    "date": log.date.isoformat(),
                    "amount_ml": log.amount_ml,
                    "type": log.type.value,
                }
                for log in fluid_logs
            ] if wanted in (None, RecordType.HYDRATION) else [],
        }, indent=2)
