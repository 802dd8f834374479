"""
Portion conversion.

Converts what the user reported ("2 dl", "keskikokoinen", "3 kpl")
into grams using the food's Fineli units, with a water-density fallback
for volumes.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from mealchat.domain.fineli.models import FineliUnit
from mealchat.domain.shared.value_objects import GRAM_UNIT_CODE, GRAM_UNIT_LABEL

UNIT_ALIASES: dict[str, str] = {
    # Direct grams
    "g": "G", "grammaa": "G", "gram": "G",
    "kg": "KG",
    # Volume
    "dl": "DL", "desi": "DL", "desilitra": "DL",
    "ml": "ML", "millilitra": "ML",
    "l": "L", "litra": "L",
    # Pieces
    "kpl": "KPL_M", "kappaletta": "KPL_M", "piece": "KPL_M", "pcs": "KPL_M",
    # Sizes
    "pieni": "KPL_S", "small": "KPL_S",
    "keskikokoinen": "KPL_M", "medium": "KPL_M",
    "iso": "KPL_L", "large": "KPL_L", "suuri": "KPL_L",
    # Portions
    "annos": "PORTM", "portion": "PORTM",
    "pieni annos": "PORTS", "small portion": "PORTS",
    "iso annos": "PORTL", "large portion": "PORTL",
    # Household
    "rkl": "RKL", "ruokalusikka": "RKL", "tbsp": "RKL",
    "tl": "TL", "teelusikka": "TL", "tsp": "TL",
    "kuppi": "CUP", "cup": "CUP",
    "lasi": "GLASS", "glass": "GLASS",
    "viipale": "SLICE", "slice": "SLICE", "viipaletta": "SLICE",
}  # fmt: skip

# g per ml
DENSITY_TABLE: dict[str, float] = {
    "default_liquid": 1.0,
    "milk": 1.03,
    "cream": 1.01,
    "oil": 0.92,
    "honey": 1.42,
    "flour": 0.53,
    "sugar": 0.85,
    "oats": 0.40,
    "rice_raw": 0.85,
}

# Fineli uses PORT* for dishes and KPL_* for pieces; sizes are interchangeable
PORTION_EQUIVALENTS: dict[str, tuple[str, ...]] = {
    "PORTS": ("PORTS", "KPL_S"),
    "KPL_S": ("KPL_S", "PORTS"),
    "PORTM": ("PORTM", "KPL_M"),
    "KPL_M": ("KPL_M", "PORTM"),
    "PORTL": ("PORTL", "KPL_L"),
    "KPL_L": ("KPL_L", "PORTL"),
}

STANDARD_UNIT_LABELS: dict[str, str] = {
    "G": "g",
    "KG": "kg",
    "DL": "dl",
    "ML": "ml",
    "L": "l",
}

_VOLUME_ML: dict[str, float] = {"ML": 1.0, "DL": 100.0, "L": 1000.0}


class ConversionMethod(str, Enum):
    """How a portion was turned into grams."""

    FINELI_UNIT = "fineli_unit"
    DIRECT_GRAMS = "direct_grams"
    VOLUME_DENSITY = "volume_density"
    USER_PROVIDED = "user_provided"


class PortionConversion(BaseModel):
    """Result of a successful portion conversion."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    grams: float = Field(..., gt=0)
    unit_code: str
    unit_label: str
    method: ConversionMethod


def resolve_unit_code(unit_input: str) -> Optional[str]:
    """Map user unit text to a Fineli unit code ('desi' -> 'DL')."""
    return UNIT_ALIASES.get(unit_input.strip().lower())


def find_unit(code: str, fineli_units: Sequence[FineliUnit]) -> Optional[FineliUnit]:
    """First unit with the given code."""
    return next((u for u in fineli_units if u.code == code), None)


def find_equivalent_unit(code: str, fineli_units: Sequence[FineliUnit]) -> Optional[FineliUnit]:
    """Unit with the given code, or its portion/piece equivalent."""
    for candidate in PORTION_EQUIVALENTS.get(code, (code,)):
        unit = find_unit(candidate, fineli_units)
        if unit is not None:
            return unit
    return None


class PortionConverter:
    """
    Converts user-reported portions to grams.

    Order of attempts:
    1. No unit: the number is grams
    2. g / kg
    3. Volume with the food's Fineli DL unit
    4. Volume with water density
    5. Any other Fineli unit of the food (pieces, portions, spoons)

    Example:
        >>> converter = PortionConverter()
        >>> converter.convert(2, "dl", []).grams
        200.0
    """

    def convert(
        self,
        amount: float,
        unit_input: Optional[str],
        fineli_units: Sequence[FineliUnit],
    ) -> Optional[PortionConversion]:
        """
        Convert a user-provided portion to grams.

        Args:
            amount: Numeric value (e.g. 2)
            unit_input: What the user said ('dl', 'medium', 'kpl'); None for bare numbers
            fineli_units: Units Fineli offers for the food

        Returns:
            PortionConversion, or None if conversion is not possible
        """
        if not math.isfinite(amount) or amount <= 0:
            return None

        if not unit_input:
            return PortionConversion(
                grams=amount,
                unit_code=GRAM_UNIT_CODE,
                unit_label=GRAM_UNIT_LABEL,
                method=ConversionMethod.DIRECT_GRAMS,
            )

        code = resolve_unit_code(unit_input)
        if code is None:
            return None

        if code == GRAM_UNIT_CODE:
            return PortionConversion(
                grams=amount,
                unit_code=GRAM_UNIT_CODE,
                unit_label=GRAM_UNIT_LABEL,
                method=ConversionMethod.DIRECT_GRAMS,
            )

        if code == "KG":
            return PortionConversion(
                grams=amount * 1000,
                unit_code="KG",
                unit_label="kg",
                method=ConversionMethod.DIRECT_GRAMS,
            )

        if code in _VOLUME_ML:
            dl_unit = find_unit("DL", fineli_units)
            if dl_unit is not None:
                return PortionConversion(
                    grams=dl_unit.mass_grams * amount * _VOLUME_ML[code] / 100,
                    unit_code=code,
                    unit_label=dl_unit.label_fi,
                    method=ConversionMethod.FINELI_UNIT,
                )
            density = DENSITY_TABLE["default_liquid"]
            return PortionConversion(
                grams=amount * _VOLUME_ML[code] * density,
                unit_code=code,
                unit_label=STANDARD_UNIT_LABELS.get(code, code),
                method=ConversionMethod.VOLUME_DENSITY,
            )

        fineli_unit = find_unit(code, fineli_units)
        if fineli_unit is not None:
            return PortionConversion(
                grams=fineli_unit.mass_grams * amount,
                unit_code=code,
                unit_label=fineli_unit.label_fi,
                method=ConversionMethod.FINELI_UNIT,
            )

        return None
