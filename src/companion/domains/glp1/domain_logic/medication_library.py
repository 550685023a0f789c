"""GLP-1 medication catalogue loaded from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from companion.domains.glp1.domain_logic.models import MedicationPhase, MedicationSchedule

logger = logging.getLogger(__name__)

CUSTOM_MEDICATION_ID = "custom"

_LIBRARY_PATH = Path(__file__).resolve().parent.parent / "data" / "medications.yaml"


@dataclass(frozen=True)
class GLP1Medication:
    id: str
    brand_name: str
    generic_name: str
    frequency: str
    titration_doses: tuple[str, ...]
    maintenance_doses: tuple[str, ...]
    notes: str = ""

    @property
    def display_name(self) -> str:
        return self.brand_name

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "brand_name": self.brand_name,
            "generic_name": self.generic_name,
            "frequency": self.frequency,
            "titration_doses": list(self.titration_doses),
            "maintenance_doses": list(self.maintenance_doses),
            "notes": self.notes,
        }


_FALLBACK_MEDICATION = GLP1Medication(
    id="default",
    brand_name="GLP-1",
    generic_name="",
    frequency="Weekly",
    titration_doses=("0.25 mg",),
    maintenance_doses=("0.5 mg",),
)


def load_medication_file(path: str | Path) -> list[GLP1Medication]:
    """Parse a medication catalogue YAML file."""
    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    medications = []
    for entry in data.get("medications", []):
        medications.append(GLP1Medication(
            id=entry["id"],
            brand_name=entry["brand_name"],
            generic_name=entry.get("generic_name", ""),
            frequency=entry.get("frequency", ""),
            titration_doses=tuple(entry.get("titration_doses", [])),
            maintenance_doses=tuple(entry.get("maintenance_doses", [])),
            notes=entry.get("notes", ""),
        ))
    return medications


@lru_cache(maxsize=1)
def list_medications() -> tuple[GLP1Medication, ...]:
    """Return the bundled catalogue, in file order."""
    medications = tuple(load_medication_file(_LIBRARY_PATH))
    logger.info("Loaded %d medications from %s", len(medications), _LIBRARY_PATH)
    return medications


def get_medication(medication_id: str) -> GLP1Medication | None:
    for medication in list_medications():
        if medication.id == medication_id:
            return medication
    return None


def default_medication() -> GLP1Medication:
    medications = list_medications()
    return medications[0] if medications else _FALLBACK_MEDICATION


def default_schedule() -> MedicationSchedule:
    """A titration-phase schedule on the default medication's starting dose."""
    medication = default_medication()
    dose = medication.titration_doses[0] if medication.titration_doses else "0.25 mg"
    return MedicationSchedule(
        medication_name=medication.brand_name,
        current_dose=dose,
        phase=MedicationPhase.TITRATION,
        medication_id=medication.id,
    )
