"""Weight unit conversions. Weights are always stored in kilograms."""

from __future__ import annotations

from enum import Enum

KG_PER_STONE = 6.35029318


class WeightUnit(str, Enum):
    KILOGRAMS = "kilograms"
    STONES = "stones"

    @property
    def display_name(self) -> str:
        return self.value.title()

    def to_kg(self, value: float) -> float:
        if self is WeightUnit.STONES:
            return value * KG_PER_STONE
        return value

    def from_kg(self, kg: float) -> float:
        if self is WeightUnit.STONES:
            return kg / KG_PER_STONE
        return kg

    def format(self, kg: float) -> str:
        suffix = "st" if self is WeightUnit.STONES else "kg"
        return f"{self.from_kg(kg):.1f} {suffix}"
