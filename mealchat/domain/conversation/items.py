"""
Parsed meal item models.

One variant per resolution state. Each variant carries exactly the
fields its state allows, so an item can never hold candidates, a food
or a portion that its state does not admit.

    PARSED          no candidates, no food, no portion
    DISAMBIGUATING  2+ candidates
    PORTIONING      food (+ at most one carried candidate)
    RESOLVED        food + portion
    NO_MATCH        empty candidates
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from mealchat.domain.fineli.models import FineliFood
from mealchat.domain.shared.value_objects import InferredAmount


class ItemState(str, Enum):
    """Resolution state of a parsed item."""

    PARSED = "PARSED"  # Just parsed, not searched
    DISAMBIGUATING = "DISAMBIGUATING"  # User must pick a food
    PORTIONING = "PORTIONING"  # Food known, grams unknown
    RESOLVED = "RESOLVED"  # Food and grams known
    NO_MATCH = "NO_MATCH"  # Search found nothing


class ParsedMealItem(BaseModel):
    """
    Food mention produced by the intent parser.

    Example:
        >>> ParsedMealItem(text="maitoa", amount=2, unit="dl")
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Food description as written")
    amount: Optional[float] = Field(None, description="Parsed quantity")
    unit: Optional[str] = Field(None, description="Parsed unit (defaults to grams)")


class _ItemBase(BaseModel):
    """Fields shared by every state. Never changed by a transition."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Opaque item identifier")
    raw_text: str = Field(..., description="Original food description")
    inferred_amount: Optional[InferredAmount] = Field(None, description="Quantity guess from parsing")
    created_at: int = Field(..., ge=0, description="Creation time (ms since epoch)")
    updated_at: int = Field(..., ge=0, description="Last transition time (ms since epoch)")


class ParsedStateItem(_ItemBase):
    """Item that has not been searched yet."""

    state: Literal["PARSED"] = "PARSED"


class DisambiguatingItem(_ItemBase):
    """Item waiting for the user to choose among candidate foods."""

    state: Literal["DISAMBIGUATING"] = "DISAMBIGUATING"
    fineli_candidates: tuple[FineliFood, ...] = Field(..., min_length=2)


class PortioningItem(_ItemBase):
    """Item with a selected food, waiting for a portion."""

    state: Literal["PORTIONING"] = "PORTIONING"
    selected_food: FineliFood
    fineli_candidates: tuple[FineliFood, ...] = Field(default=(), max_length=1)


class ResolvedItem(_ItemBase):
    """Item with food and gram portion. Terminal."""

    state: Literal["RESOLVED"] = "RESOLVED"
    selected_food: FineliFood
    portion_grams: float = Field(..., gt=0)
    portion_unit_code: str = Field(..., min_length=1)
    portion_unit_label: str

    @field_validator("portion_grams")
    @classmethod
    def finite(cls, v: float) -> float:
        """Reject infinite portions."""
        if not math.isfinite(v):
            raise ValueError(f"Portion must be finite, got {v}")
        return v


class NoMatchItem(_ItemBase):
    """Item for which the food search returned nothing. Terminal."""

    state: Literal["NO_MATCH"] = "NO_MATCH"
    fineli_candidates: tuple[FineliFood, ...] = Field(default=(), max_length=0)


ParsedItem = Annotated[
    Union[ParsedStateItem, DisambiguatingItem, PortioningItem, ResolvedItem, NoMatchItem],
    Field(discriminator="state"),
]

PARSED_ITEM_ADAPTER: TypeAdapter[ParsedItem] = TypeAdapter(ParsedItem)

TERMINAL_STATES = frozenset({ItemState.RESOLVED, ItemState.NO_MATCH})
