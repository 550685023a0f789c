"""Domain models for GLP-1 companion logging, goals, and daily summaries."""

from __future__ import annotations

import statistics
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Logged records
# ---------------------------------------------------------------------------

class RecordType(str, Enum):
    """Closed set of loggable record kinds."""

    MEAL = "meal"
    HYDRATION = "hydration"
    SYMPTOM = "symptom"
    MEDICATION = "medication"
    WEIGHT = "weight"
    ACTIVITY = "activity"
    MOOD = "mood"


@dataclass(frozen=True)
class Record:
    """A single logged event.

    Macro fields are only populated for ``meal`` (intake) and ``activity``
    (calories burned). Absent fields stay ``None``; they are never stored as
    a logged zero.
    """

    type: RecordType
    date: datetime = field(default_factory=_utcnow)
    value: str | None = None
    note: str | None = None
    calories: float | None = None
    carbs: float | None = None
    protein: float | None = None
    fat: float | None = None
    fiber: float | None = None
    id: str = field(default_factory=_new_id)

    def edited(
        self,
        *,
        value: str | None,
        note: str | None,
        calories: float | None = None,
        carbs: float | None = None,
        protein: float | None = None,
        fat: float | None = None,
        fiber: float | None = None,
    ) -> Record:
        """Return a copy with value, note, and macros replaced wholesale.

        Empty strings are normalised to ``None``.
        """
        return replace(
            self,
            value=value or None,
            note=note or None,
            calories=calories,
            carbs=carbs,
            protein=protein,
            fat=fat,
            fiber=fiber,
        )


class FluidType(str, Enum):
    WATER = "water"
    TEA = "tea"
    COFFEE = "coffee"
    ELECTROLYTE = "electrolyte"
    SOUP = "soup"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _FLUID_DISPLAY_NAMES[self]


_FLUID_DISPLAY_NAMES = {
    FluidType.WATER: "Water",
    FluidType.TEA: "Tea",
    FluidType.COFFEE: "Coffee",
    FluidType.ELECTROLYTE: "Electrolyte",
    FluidType.SOUP: "Soup/Broth",
    FluidType.OTHER: "Other",
}


@dataclass(frozen=True)
class FluidIntakeLog:
    """A hydration event. Source of truth for daily hydration totals."""

    amount_ml: float
    type: FluidType = FluidType.WATER
    date: datetime = field(default_factory=_utcnow)
    notes: str | None = None
    id: str = field(default_factory=_new_id)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

class GoalChangeReason(str, Enum):
    TITRATION_START = "titrationStart"
    TITRATION_INCREASE = "titrationIncrease"
    MAINTENANCE = "maintenance"
    PAUSE_MEDICATION = "pauseMedication"
    COACH_ADVICE = "coachAdvice"
    MANUAL = "manual"

    @property
    def description(self) -> str:
        return _REASON_DESCRIPTIONS[self]


_REASON_DESCRIPTIONS = {
    GoalChangeReason.TITRATION_START: "Titration start",
    GoalChangeReason.TITRATION_INCREASE: "Dose increase",
    GoalChangeReason.MAINTENANCE: "Maintenance adjustment",
    GoalChangeReason.PAUSE_MEDICATION: "Medication pause",
    GoalChangeReason.COACH_ADVICE: "Coach recommendation",
    GoalChangeReason.MANUAL: "Manual update",
}


@dataclass(frozen=True)
class GoalHistoryEntry:
    """Immutable snapshot of the goals as they stood after a change."""

    calories: float
    carbs: float
    protein: float
    fat: float
    fiber: float
    hydration_ml: float
    reason: GoalChangeReason
    date: datetime = field(default_factory=_utcnow)
    notes: str | None = None
    id: str = field(default_factory=_new_id)


DEFAULT_DAILY_CALORIES = 1800.0
DEFAULT_DAILY_CARBS = 130.0
DEFAULT_DAILY_PROTEIN = 90.0
DEFAULT_DAILY_FAT = 60.0
DEFAULT_DAILY_FIBER = 30.0
DEFAULT_DAILY_HYDRATION_ML = 2000.0


@dataclass(frozen=True)
class NutritionGoals:
    """The single active set of daily targets plus its append-only history."""

    daily_calories: float = DEFAULT_DAILY_CALORIES
    daily_carbs: float = DEFAULT_DAILY_CARBS
    daily_protein: float = DEFAULT_DAILY_PROTEIN
    daily_fat: float = DEFAULT_DAILY_FAT
    daily_fiber: float = DEFAULT_DAILY_FIBER
    daily_hydration_ml: float = DEFAULT_DAILY_HYDRATION_ML
    hydration_types_enabled: frozenset[FluidType] = frozenset(FluidType)
    history: tuple[GoalHistoryEntry, ...] = ()
    updated_at: datetime | None = None

    def updated(
        self,
        *,
        calories: float,
        carbs: float,
        protein: float,
        fat: float,
        fiber: float,
        hydration_ml: float,
        hydration_types: frozenset[FluidType] | set[FluidType] | None = None,
        reason: GoalChangeReason = GoalChangeReason.MANUAL,
        notes: str | None = None,
        at: datetime | None = None,
    ) -> NutritionGoals:
        """Return new goals with the targets replaced and one history entry appended."""
        when = at or _utcnow()
        entry = GoalHistoryEntry(
            calories=calories,
            carbs=carbs,
            protein=protein,
            fat=fat,
            fiber=fiber,
            hydration_ml=hydration_ml,
            reason=reason,
            date=when,
            notes=notes,
        )
        return replace(
            self,
            daily_calories=calories,
            daily_carbs=carbs,
            daily_protein=protein,
            daily_fat=fat,
            daily_fiber=fiber,
            daily_hydration_ml=hydration_ml,
            hydration_types_enabled=(
                frozenset(hydration_types)
                if hydration_types is not None
                else self.hydration_types_enabled
            ),
            history=self.history + (entry,),
            updated_at=when,
        )


# ---------------------------------------------------------------------------
# Medication
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PhaseConstants:
    fibre_target: float
    calorie_offset: float


class MedicationPhase(str, Enum):
    TITRATION = "titration"
    MAINTENANCE = "maintenance"
    PAUSE = "pause"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def suggested_fibre_target(self) -> float:
        return phase_constants(self).fibre_target

    @property
    def suggested_calorie_offset(self) -> float:
        return phase_constants(self).calorie_offset


_PHASE_CONSTANTS = {
    MedicationPhase.TITRATION: PhaseConstants(fibre_target=25.0, calorie_offset=-200.0),
    MedicationPhase.MAINTENANCE: PhaseConstants(fibre_target=30.0, calorie_offset=0.0),
    MedicationPhase.PAUSE: PhaseConstants(fibre_target=25.0, calorie_offset=100.0),
}


def phase_constants(phase: MedicationPhase) -> PhaseConstants:
    """Fibre target and calorie offset attached to a medication phase."""
    return _PHASE_CONSTANTS[phase]


@dataclass(frozen=True)
class MedicationSchedule:
    """Current medication, dose, and titration phase.

    Phase transitions only happen when the user changes them.
    """

    medication_name: str
    current_dose: str
    phase: MedicationPhase = MedicationPhase.TITRATION
    medication_id: str | None = None
    next_dose_date: datetime | None = None
    notes: str | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Barcode lookups
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FoodAlert:
    title: str
    issued: str | None = None
    allergens: tuple[str, ...] = ()
    url: str | None = None


@dataclass(frozen=True)
class FoodItem:
    """Macro data for a scanned product, in the shape a meal record takes."""

    name: str
    calories: float | None = None
    carbs: float | None = None
    protein: float | None = None
    fat: float | None = None
    fiber: float | None = None
    alerts: tuple[FoodAlert, ...] = ()

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "calories": self.calories,
            "carbs": self.carbs,
            "protein": self.protein,
            "fat": self.fat,
            "fiber": self.fiber,
            "alerts": [
                {
                    "title": a.title,
                    "issued": a.issued,
                    "allergens": list(a.allergens),
                    "url": a.url,
                }
                for a in self.alerts
            ],
        }


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailySummary:
    """Aggregated view of one day's records against the effective goals."""

    date: date
    calories_in: float
    calories_goal: float
    calories_out: float
    carbs: float
    protein: float
    fat: float
    fiber: float
    fiber_goal: float
    hydration_ml: float
    hydration_goal_ml: float
    medication_phase: MedicationPhase | None = None
    mood_scores: tuple[int, ...] = ()
    latest_mood: int | None = None

    @property
    def net_calories(self) -> float:
        return self.calories_in - self.calories_out

    @property
    def remaining_calories(self) -> float:
        return self.calories_goal - self.net_calories

    @property
    def average_mood(self) -> float | None:
        if not self.mood_scores:
            return None
        return statistics.fmean(self.mood_scores)

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "calories_in": self.calories_in,
            "calories_goal": self.calories_goal,
            "calories_out": self.calories_out,
            "net_calories": self.net_calories,
            "remaining_calories": self.remaining_calories,
            "carbs": self.carbs,
            "protein": self.protein,
            "fat": self.fat,
            "fiber": self.fiber,
            "fiber_goal": self.fiber_goal,
            "hydration_ml": self.hydration_ml,
            "hydration_goal_ml": self.hydration_goal_ml,
            "medication_phase": self.medication_phase.value if self.medication_phase else None,
            "mood_scores": list(self.mood_scores),
            "latest_mood": self.latest_mood,
            "average_mood": self.average_mood,
        }


class InsightLevel(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    WARNING = "warning"


@dataclass(frozen=True)
class DailyInsight:
    title: str
    message: str
    level: InsightLevel

    def as_dict(self) -> dict[str, str]:
        return {"title": self.title, "message": self.message, "level": self.level.value}
