"""MCP tools for the GLP-1 medication catalogue and the user's schedule."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone, tzinfo
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.audit.logger import AuditAction
from companion.core.privacy.consent import ConsentCategory
from companion.domains.glp1.domain_logic.medication_library import (
    CUSTOM_MEDICATION_ID,
    get_medication,
    list_medications as catalogue,
)
from companion.domains.glp1.domain_logic.models import MedicationPhase, MedicationSchedule
from companion.domains.glp1.tools.common import ToolInputError, error, parse_moment

if TYPE_CHECKING:
    from companion.core.audit.logger import AuditLogger
    from companion.core.privacy.consent import ConsentManager
    from companion.core.storage.repository import HealthLogRepository

logger = logging.getLogger(__name__)


def _schedule_payload(schedule: MedicationSchedule) -> dict:
    return {
        "medication_id": schedule.medication_id,
        "medication_name": schedule.medication_name,
        "current_dose": schedule.current_dose,
        "phase": schedule.phase.value,
        "phase_display_name": schedule.phase.display_name,
        "suggested_fibre_target": schedule.phase.suggested_fibre_target,
        "suggested_calorie_offset": schedule.phase.suggested_calorie_offset,
        "next_dose_date": schedule.next_dose_date.isoformat() if schedule.next_dose_date else None,
        "notes": schedule.notes,
    }


def register_medication_tools(
    mcp: FastMCP,
    repository: HealthLogRepository,
    audit_logger: AuditLogger,
    consent: ConsentManager,
    *,
    tz: tzinfo = timezone.utc,
) -> None:
    """Register medication tools on the MCP server."""

    @mcp.tool
    async def list_medications(ctx: Context) -> str:
        """List the GLP-1 medications known to the companion, with dose steps."""
        return json.dumps({
            "status": "ok",
            "medications": [m.as_dict() for m in catalogue()],
        }, indent=2)

    @mcp.tool
    async def get_medication_schedule(ctx: Context) -> str:
        """Show your current medication, dose, and phase."""
        schedule = repository.get_medication_schedule()
        if schedule is None:
            return json.dumps({
                "status": "ok",
                "schedule": None,
                "message": "No medication schedule set. Use set_medication_schedule to add one.",
            })
        return json.dumps({"status": "ok", "schedule": _schedule_payload(schedule)}, indent=2)

    @mcp.tool
    async def set_medication_schedule(
        ctx: Context,
        medication_id: str,
        current_dose: str,
        phase: str = "titration",
        medication_name: str = "",
        next_dose_date: str = "",
        notes: str = "",
    ) -> str:
        """Set your medication and phase. The phase adjusts calorie and fibre goals.

        Args:
            medication_id: Catalogue ID (see list_medications) or 'custom'.
            current_dose: Dose you are on (e.g. '0.5 mg').
            phase: titration, maintenance, or pause.
            medication_name: Name to show; required for 'custom'.
            next_dose_date: When the next dose is due (ISO 8601).
            notes: Optional notes.
        """
        if not consent.is_enabled(ConsentCategory.MEDICATION):
            return error("Consent for medication logging is turned off")
        try:
            medication_phase = MedicationPhase(phase)
        except ValueError:
            return error(f"Unknown phase {phase!r}; expected titration, maintenance, or pause")

        if medication_id == CUSTOM_MEDICATION_ID:
            if not medication_name:
                return error("medication_name is required for a custom medication")
            name = medication_name
        else:
            medication = get_medication(medication_id)
            if medication is None:
                return error(f"Unknown medication {medication_id!r}")
            name = medication_name or medication.brand_name

        try:
            next_dose = parse_moment(next_dose_date, tz) if next_dose_date else None
        except ToolInputError as exc:
            return error(str(exc))

        previous = repository.get_medication_schedule()
        schedule = MedicationSchedule(
            medication_id=medication_id,
            medication_name=name,
            current_dose=current_dose,
            phase=medication_phase,
            next_dose_date=next_dose,
            notes=notes or None,
            updated_at=datetime.now(timezone.utc),
        )
        repository.save_medication_schedule(schedule)
        audit_logger.log(
            AuditAction.CREATE if previous is None else AuditAction.UPDATE,
            "MedicationSchedule",
            details=f"{medication_id}:{medication_phase.value}",
            payload=_schedule_payload(schedule),
        )
        return json.dumps({"status": "saved", "schedule": _schedule_payload(schedule)}, indent=2)
