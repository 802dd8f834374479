"""
Shared value objects.

Immutable, validated domain primitives.
Following DDD value object pattern.
"""

from __future__ import annotations

import math
import time
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Canonical mass unit. Its code drives auto-resolution.
GRAM_UNIT_CODE = "G"
GRAM_UNIT_LABEL = "g"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


def generate_id() -> str:
    """
    Generate a new opaque identifier.

    Example:
        >>> assert generate_id() != generate_id()
    """
    return uuid.uuid4().hex


class InferredAmount(BaseModel):
    """
    Best-effort quantity extracted from the user's text.

    The value may be zero: the parser's guess is stored as given
    and judged later by the state machine.

    Example:
        >>> amount = InferredAmount(value=2, unit="dl")
        >>> assert not amount.is_grams()
        >>> assert InferredAmount(value=120, unit="g").is_grams()
    """

    model_config = ConfigDict(frozen=True)

    value: float = Field(..., description="Numeric amount as parsed")
    unit: str = Field(GRAM_UNIT_LABEL, min_length=1, description="Unit as parsed (e.g. 'g', 'dl')")

    @field_validator("value")
    @classmethod
    def finite(cls, v: float) -> float:
        """Reject NaN and infinities."""
        if not math.isfinite(v):
            raise ValueError(f"Amount must be finite, got {v}")
        return v

    def is_grams(self) -> bool:
        """True when the unit is the gram unit."""
        return self.unit.strip().lower() == GRAM_UNIT_LABEL

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"{self.value:g} {self.unit}"


def has_known_grams(amount: Optional[InferredAmount]) -> bool:
    """
    Check whether an inferred amount is a usable gram portion.

    Only a positive amount in the gram unit qualifies. Other units are
    never converted here.

    Example:
        >>> has_known_grams(InferredAmount(value=200, unit="g"))
        True
        >>> has_known_grams(InferredAmount(value=0, unit="g"))
        False
        >>> has_known_grams(None)
        False
    """
    return amount is not None and amount.is_grams() and amount.value > 0
