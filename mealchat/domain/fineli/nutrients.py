"""
Nutrient arithmetic.

Fineli publishes every component per 100 g. Meal entries need the
values for the eaten portion and totals across entries.
"""

from __future__ import annotations

import math
from typing import Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from mealchat.domain.fineli.models import COMPONENT_ORDER


class NutrientSummary(BaseModel):
    """Key nutrients for display."""

    model_config = ConfigDict(frozen=True)

    energy_kcal: int
    protein: float
    fat: float
    carbs: float
    fiber: float


def compute_nutrients(nutrients_per_100g: Mapping[str, float], portion_grams: float) -> dict[str, float]:
    """
    Scale per-100g values to a portion.

    Formula: value * portion_grams / 100, rounded to 4 decimals.

    Example:
        >>> compute_nutrients({"PROT": 10.0}, 150)
        {'PROT': 15.0}
    """
    return {
        code: round(value * portion_grams / 100, 4)
        for code, value in nutrients_per_100g.items()
    }


def sum_nutrients(*maps: Mapping[str, Optional[float]]) -> dict[str, float]:
    """
    Sum nutrient maps code by code.

    None and non-finite values are skipped, not treated as zero.
    """
    result: dict[str, float] = {}
    for nutrient_map in maps:
        for code, value in nutrient_map.items():
            if value is None or not math.isfinite(value):
                continue
            result[code] = result.get(code, 0.0) + value
    return result


def map_data_to_components(data: Sequence[float]) -> dict[str, float]:
    """Map a Fineli data[] array (per 100 g) to {component code: value}."""
    return {code: value for code, value in zip(COMPONENT_ORDER, data)}


def kj_to_kcal(kj: float) -> int:
    """Convert energy from kJ to kcal (1 kcal = 4.184 kJ)."""
    return round(kj / 4.184)


def get_nutrient_summary(nutrients: Mapping[str, float]) -> NutrientSummary:
    """Energy in kcal plus protein, fat, carbohydrate and fiber rounded to 0.1 g."""
    return NutrientSummary(
        energy_kcal=kj_to_kcal(nutrients.get("ENERC", 0.0)),
        protein=round(nutrients.get("PROT", 0.0), 1),
        fat=round(nutrients.get("FAT", 0.0), 1),
        carbs=round(nutrients.get("CHOAVL", 0.0), 1),
        fiber=round(nutrients.get("FIBC", 0.0), 1),
    )
