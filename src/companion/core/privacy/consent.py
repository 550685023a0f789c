"""Per-category logging consent.

Each loggable category carries an on/off consent. Logging tools check the
category before writing; every change is recorded in the audit trail.
Categories without a stored consent are treated as enabled.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from companion.core.audit.logger import AuditAction, AuditLogger
from companion.domains.glp1.domain_logic.models import RecordType

if TYPE_CHECKING:
    from companion.core.storage.repository import HealthLogRepository

logger = logging.getLogger(__name__)


class ConsentCategory(str, Enum):
    MEALS = "meals"
    HYDRATION = "hydration"
    SYMPTOMS = "symptoms"
    MEDICATION = "medication"
    WEIGHT = "weight"
    ACTIVITY = "activity"

    @property
    def permission_title(self) -> str:
        return _PERMISSION_TEXT[self][0]

    @property
    def permission_description(self) -> str:
        return _PERMISSION_TEXT[self][1]


_PERMISSION_TEXT = {
    ConsentCategory.MEALS: (
        "Meal logging",
        "Saves meal descriptions and calories you add.",
    ),
    ConsentCategory.HYDRATION: (
        "Hydration tracking",
        "Keeps a history of water intake entries.",
    ),
    ConsentCategory.SYMPTOMS: (
        "Symptom logging",
        "Stores symptom notes, glucose readings, and mood logs.",
    ),
    ConsentCategory.MEDICATION: (
        "Medication logging",
        "Tracks medications, doses, and reminders you record.",
    ),
    ConsentCategory.WEIGHT: (
        "Weight tracking",
        "Logs weight readings for daily trends.",
    ),
    ConsentCategory.ACTIVITY: (
        "Activity tracking",
        "Stores exercise sessions and imported step counts.",
    ),
}

_RECORD_CATEGORIES = {
    RecordType.MEAL: ConsentCategory.MEALS,
    RecordType.HYDRATION: ConsentCategory.HYDRATION,
    RecordType.SYMPTOM: ConsentCategory.SYMPTOMS,
    RecordType.MOOD: ConsentCategory.SYMPTOMS,
    RecordType.MEDICATION: ConsentCategory.MEDICATION,
    RecordType.WEIGHT: ConsentCategory.WEIGHT,
    RecordType.ACTIVITY: ConsentCategory.ACTIVITY,
}


def category_for(record_type: RecordType) -> ConsentCategory:
    """Consent category that gates a record type."""
    return _RECORD_CATEGORIES[record_type]


class ConsentManager:
    """Reads and changes consents through the repository, auditing each change."""

    def __init__(self, repository: HealthLogRepository, audit_logger: AuditLogger) -> None:
        self._repo = repository
        self._audit = audit_logger

    def ensure_defaults(self) -> None:
        """Create an enabled consent for every category that has none."""
        existing = self._repo.get_consents()
        for category in ConsentCategory:
            if category.value in existing:
                continue
            self._repo.set_consent(category.value, True)
            self._audit.log(AuditAction.CREATE, "Consent", details=category.value)
            logger.info("Created default consent for %s", category.value)

    def set(self, category: ConsentCategory, enabled: bool) -> None:
        self._repo.set_consent(category.value, enabled)
        self._audit.log(
            AuditAction.CONSENT_CHANGE,
            "Consent",
            details=f"{category.value}:{str(enabled).lower()}",
        )
        logger.info("Consent for %s set to %s", category.value, enabled)

    def is_enabled(self, category: ConsentCategory) -> bool:
        return self._repo.get_consents().get(category.value, True)

    def allows(self, record_type: RecordType) -> bool:
        return self.is_enabled(category_for(record_type))

    def statuses(self) -> dict[ConsentCategory, bool]:
        stored = self._repo.get_consents()
        return {c: stored.get(c.value, True) for c in ConsentCategory}
