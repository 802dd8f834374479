"""
Classified user intents.

The intent parser (regex or AI) turns a user message into one of
these; the orchestrator consumes them. Discriminated on ``type``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from mealchat.domain.conversation.items import ParsedMealItem

# Removal target meaning "the most recently added item"
LAST_ITEM = "__LAST__"


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)


# ═══════════════════════════════════════════════════════════
# ANSWERS
# ═══════════════════════════════════════════════════════════


class SelectionAnswer(_Message):
    """Pick a candidate by 0-based index."""

    type: Literal["selection"] = "selection"
    index: int = Field(..., ge=0)


class ClarificationAnswer(_Message):
    """New search text for the item."""

    type: Literal["clarification"] = "clarification"
    text: str = Field(..., min_length=1)


class RejectAnswer(_Message):
    """Skip the item."""

    type: Literal["reject"] = "reject"


class WeightAnswer(_Message):
    """Portion in grams ('120g')."""

    type: Literal["weight"] = "weight"
    grams: float


class PortionSizeAnswer(_Message):
    """Fineli size code ('KPL_M', 'PORTS')."""

    type: Literal["portion_size"] = "portion_size"
    key: str


class VolumeAnswer(_Message):
    """Volume ('2 dl')."""

    type: Literal["volume"] = "volume"
    value: float
    unit: str


class FractionAnswer(_Message):
    """Fraction of a piece ('puolikas')."""

    type: Literal["fraction"] = "fraction"
    value: float


class CountAnswer(_Message):
    """Count of units ('3 kpl', '2 viipaletta')."""

    type: Literal["count"] = "count"
    value: float
    unit: str


class CompanionAnswer(_Message):
    """Yes/no to a companion question."""

    type: Literal["companion"] = "companion"
    value: bool


ParsedAnswer = Annotated[
    Union[
        SelectionAnswer,
        ClarificationAnswer,
        RejectAnswer,
        WeightAnswer,
        PortionSizeAnswer,
        VolumeAnswer,
        FractionAnswer,
        CountAnswer,
        CompanionAnswer,
    ],
    Field(discriminator="type"),
]

DisambiguationAnswer = Union[SelectionAnswer, ClarificationAnswer, RejectAnswer]
PortionAnswer = Union[WeightAnswer, PortionSizeAnswer, VolumeAnswer, FractionAnswer, CountAnswer]


# ═══════════════════════════════════════════════════════════
# INTENTS
# ═══════════════════════════════════════════════════════════


class AddItemsIntent(_Message):
    """New foods mentioned."""

    type: Literal["add_items"] = "add_items"
    items: tuple[ParsedMealItem, ...]


class AnswerIntent(_Message):
    """Reply to the pending question. answer is None when it could not be parsed."""

    type: Literal["answer"] = "answer"
    answer: Optional[ParsedAnswer] = None


class CorrectionIntent(_Message):
    """'Ei vaan X' (new_text) or 'ei se' (no text: choose again)."""

    type: Literal["correction"] = "correction"
    new_text: Optional[str] = None


class UpdatePortionIntent(_Message):
    """'Olikin 150g'."""

    type: Literal["update_portion"] = "update_portion"
    grams: float


class RemovalIntent(_Message):
    """'Poista X' or LAST_ITEM."""

    type: Literal["removal"] = "removal"
    target_text: str = Field(..., min_length=1)


class DoneIntent(_Message):
    """Meal finished."""

    type: Literal["done"] = "done"


class UnclearIntent(_Message):
    """Nothing understood."""

    type: Literal["unclear"] = "unclear"


Intent = Annotated[
    Union[
        AddItemsIntent,
        AnswerIntent,
        CorrectionIntent,
        UpdatePortionIntent,
        RemovalIntent,
        DoneIntent,
        UnclearIntent,
    ],
    Field(discriminator="type"),
]
