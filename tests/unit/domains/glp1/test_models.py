"""Tests for domain models: record edits, goal history, fluid types, units."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from companion.domains.glp1.domain_logic.models import (
    FluidType,
    FoodAlert,
    FoodItem,
    GoalChangeReason,
    NutritionGoals,
    Record,
    RecordType,
)
from companion.domains.glp1.domain_logic.units import WeightUnit


class TestRecordEdited:
    def test_replaces_all_fields_and_keeps_identity(self):
        record = Record(type=RecordType.MEAL, note="Toast", calories=200, fiber=3)
        edited = record.edited(value=None, note="Toast and jam", calories=260)
        assert edited.id == record.id
        assert edited.date == record.date
        assert edited.note == "Toast and jam"
        assert edited.calories == 260
        assert edited.fiber is None

    def test_empty_strings_become_none(self):
        edited = Record(type=RecordType.MOOD, value="4", note="ok").edited(value="", note="")
        assert edited.value is None
        assert edited.note is None

    def test_original_is_unchanged(self):
        record = Record(type=RecordType.MEAL, calories=200)
        record.edited(value=None, note=None, calories=500)
        assert record.calories == 200


class TestNutritionGoalsHistory:
    def test_defaults(self):
        goals = NutritionGoals()
        assert goals.daily_calories == 1800
        assert goals.daily_carbs == 130
        assert goals.daily_protein == 90
        assert goals.daily_fat == 60
        assert goals.daily_fiber == 30
        assert goals.daily_hydration_ml == 2000
        assert goals.hydration_types_enabled == frozenset(FluidType)
        assert goals.history == ()

    def test_update_appends_snapshot_of_new_values(self):
        when = datetime(2025, 3, 1, 9, tzinfo=timezone.utc)
        goals = NutritionGoals().updated(
            calories=1600, carbs=120, protein=100, fat=55, fiber=25, hydration_ml=2200,
            reason=GoalChangeReason.TITRATION_START, notes="Started Ozempic", at=when,
        )
        assert goals.daily_calories == 1600
        assert goals.updated_at == when
        assert len(goals.history) == 1
        entry = goals.history[0]
        assert entry.calories == 1600
        assert entry.hydration_ml == 2200
        assert entry.reason is GoalChangeReason.TITRATION_START
        assert entry.notes == "Started Ozempic"

    def test_history_is_append_only(self):
        first = NutritionGoals().updated(
            calories=1700, carbs=130, protein=90, fat=60, fiber=30, hydration_ml=2000,
        )
        second = first.updated(
            calories=1500, carbs=110, protein=95, fat=50, fiber=28, hydration_ml=2100,
            reason=GoalChangeReason.COACH_ADVICE,
        )
        assert second.history[0] == first.history[0]
        assert [e.calories for e in second.history] == [1700, 1500]
        assert len(first.history) == 1

    def test_hydration_types_kept_unless_given(self):
        goals = NutritionGoals().updated(
            calories=1800, carbs=130, protein=90, fat=60, fiber=30, hydration_ml=2000,
            hydration_types={FluidType.WATER},
        )
        assert goals.hydration_types_enabled == frozenset({FluidType.WATER})
        again = goals.updated(
            calories=1800, carbs=130, protein=90, fat=60, fiber=30, hydration_ml=2500,
        )
        assert again.hydration_types_enabled == frozenset({FluidType.WATER})

    def test_reason_descriptions(self):
        assert GoalChangeReason.PAUSE_MEDICATION.value == "pauseMedication"
        assert GoalChangeReason.MANUAL.description == "Manual update"


class TestFluidType:
    def test_display_names(self):
        assert FluidType.SOUP.display_name == "Soup/Broth"
        assert FluidType.WATER.display_name == "Water"


class TestFoodItem:
    def test_as_dict_includes_alerts(self):
        item = FoodItem(
            name="Oat bar",
            calories=410,
            fiber=7.5,
            alerts=(FoodAlert(title="Undeclared milk", allergens=("Milk",)),),
        )
        data = item.as_dict()
        assert data["name"] == "Oat bar"
        assert data["fiber"] == 7.5
        assert data["alerts"][0]["title"] == "Undeclared milk"
        assert data["alerts"][0]["allergens"] == ["Milk"]


class TestWeightUnit:
    def test_kilograms_pass_through(self):
        assert WeightUnit.KILOGRAMS.to_kg(82.5) == 82.5

    def test_stones_to_kg(self):
        assert WeightUnit.STONES.to_kg(13) == pytest.approx(82.5538, rel=1e-4)

    def test_round_trip_through_stones(self):
        assert WeightUnit.STONES.from_kg(WeightUnit.STONES.to_kg(12.5)) == pytest.approx(12.5)

    def test_format(self):
        assert WeightUnit.KILOGRAMS.format(82.46) == "82.5 kg"
        assert WeightUnit.STONES.format(6.35029318 * 14) == "14.0 st"
