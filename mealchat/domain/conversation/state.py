"""
Conversation state for one meal.

Explicit value passed into and returned from every turn. Nothing here
mutates; every helper returns a new state.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from mealchat.domain.conversation.items import (
    ItemState,
    ParsedItem,
    ResolvedItem,
)
from mealchat.domain.fineli.nutrients import compute_nutrients, sum_nutrients
from mealchat.domain.shared.value_objects import GRAM_UNIT_CODE


class QuestionType(str, Enum):
    """Kind of question waiting for an answer."""

    DISAMBIGUATION = "disambiguation"
    PORTION = "portion"
    NO_MATCH_RETRY = "no_match_retry"
    COMPLETION = "completion"
    COMPANION = "companion"


class QuestionOption(BaseModel):
    """Quick-reply option of a question."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    sublabel: Optional[str] = None
    value: Any = None


class PendingQuestion(BaseModel):
    """
    The single outstanding question of a conversation.

    Rendered by the client from template_key / template_params.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str
    item_id: str
    type: QuestionType
    template_key: str
    template_params: dict[str, Any] = Field(default_factory=dict)
    options: Optional[tuple[QuestionOption, ...]] = None
    retry_count: int = Field(0, ge=0)
    asked_at: int = Field(..., ge=0)


class ResolvedLineItem(BaseModel):
    """
    Meal entry emitted for a RESOLVED item.

    Carries the per-100g data and the values scaled to the portion.
    """

    model_config = ConfigDict(frozen=True)

    parsed_item_id: str
    fineli_food_id: int
    fineli_name_fi: str
    fineli_name_en: Optional[str]
    portion_grams: float
    portion_unit_code: Optional[str]
    portion_unit_label: Optional[str]
    portion_amount: float
    nutrients_per_100g: dict[str, float]
    computed_nutrients: dict[str, float]

    @staticmethod
    def from_item(item: ResolvedItem) -> "ResolvedLineItem":
        """
        Build the entry for a resolved item.

        portion_amount is counted in the reported unit: grams for 'G',
        number of units when the food has the unit, else 1.
        """
        food = item.selected_food
        return ResolvedLineItem(
            parsed_item_id=item.id,
            fineli_food_id=food.id,
            fineli_name_fi=food.name_fi,
            fineli_name_en=food.name_en,
            portion_grams=item.portion_grams,
            portion_unit_code=item.portion_unit_code,
            portion_unit_label=item.portion_unit_label,
            portion_amount=_portion_amount(item),
            nutrients_per_100g=dict(food.nutrients),
            computed_nutrients=compute_nutrients(food.nutrients, item.portion_grams),
        )


def _portion_amount(item: ResolvedItem) -> float:
    if item.portion_unit_code == GRAM_UNIT_CODE:
        return item.portion_grams
    unit = item.selected_food.find_unit(item.portion_unit_code)
    if unit is not None:
        return round(item.portion_grams / unit.mass_grams, 2)
    return 1.0


class ConversationState(BaseModel):
    """
    Per-meal conversation aggregate.

    Attributes:
        session_id: Chat session
        meal_id: Meal being logged
        items: All item values in mention order
        unresolved_queue: Ids of items still needing an answer, in asking order
        active_item_id: Item the conversation is about right now
        pending_question: At most one outstanding question
        companion_checks: Companion foods already asked about
        is_complete: User said the meal is done
        language: Conversation language
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    meal_id: str
    items: tuple[ParsedItem, ...] = ()
    unresolved_queue: tuple[str, ...] = ()
    active_item_id: Optional[str] = None
    pending_question: Optional[PendingQuestion] = None
    companion_checks: tuple[str, ...] = ()
    is_complete: bool = False
    language: Literal["fi", "en"] = "fi"

    @staticmethod
    def start(session_id: str, meal_id: str, language: Literal["fi", "en"] = "fi") -> "ConversationState":
        """Empty conversation for a meal."""
        return ConversationState(session_id=session_id, meal_id=meal_id, language=language)

    # ─── Queries ───────────────────────────────────────────

    def item_by_id(self, item_id: str) -> Optional[ParsedItem]:
        """Item with the given id, if present."""
        return next((item for item in self.items if item.id == item_id), None)

    def active_item(self) -> Optional[ParsedItem]:
        """The active item, if any."""
        if self.active_item_id is None:
            return None
        return self.item_by_id(self.active_item_id)

    def resolved_items(self) -> list[ResolvedItem]:
        """RESOLVED items in mention order."""
        return [item for item in self.items if isinstance(item, ResolvedItem)]

    def resolved_line_items(self) -> list[ResolvedLineItem]:
        """Entries for every RESOLVED item."""
        return [ResolvedLineItem.from_item(item) for item in self.resolved_items()]

    def meal_totals(self) -> dict[str, float]:
        """Sum of the computed nutrients of all resolved items."""
        return sum_nutrients(*(line.computed_nutrients for line in self.resolved_line_items()))

    # ─── Updates (return new state) ────────────────────────

    def with_changes(self, **changes: Any) -> "ConversationState":
        """Copy with fields replaced."""
        return self.model_copy(update=changes)

    def append_items(self, new_items: Sequence[ParsedItem]) -> "ConversationState":
        """Add items; unresolved ones join the queue and may become active."""
        queue = self.unresolved_queue + tuple(
            item.id for item in new_items if item.state != ItemState.RESOLVED
        )
        active = self.active_item_id
        if active is None and queue:
            active = queue[0]
        return self.with_changes(
            items=self.items + tuple(new_items),
            unresolved_queue=queue,
            active_item_id=active,
        )

    def replace_item(self, old_id: str, item: ParsedItem) -> "ConversationState":
        """
        Swap an item for a new value at the same position.

        The new value may carry a new id (full re-parse); queue and active
        pointers follow it. A new unresolved item joins the queue.
        """
        items = tuple(item if existing.id == old_id else existing for existing in self.items)
        queue = tuple(item.id if queued == old_id else queued for queued in self.unresolved_queue)
        if item.state != ItemState.RESOLVED and item.id not in queue:
            queue = queue + (item.id,)
        active = item.id if self.active_item_id == old_id else self.active_item_id
        return self.with_changes(items=items, unresolved_queue=queue, active_item_id=active)

    def remove_item(self, item_id: str) -> "ConversationState":
        """Drop an item; the next queued item becomes active if it was active."""
        queue = tuple(queued for queued in self.unresolved_queue if queued != item_id)
        active = self.active_item_id
        if active == item_id:
            active = queue[0] if queue else None
        return self.with_changes(
            items=tuple(item for item in self.items if item.id != item_id),
            unresolved_queue=queue,
            active_item_id=active,
        )

    def advance_queue(self) -> "ConversationState":
        """
        Drop resolved and removed ids from the queue and pick the active item.

        The pending question survives only while it still belongs to the
        active item. A companion question belongs to a resolved item and
        survives while nothing is left to resolve.
        """
        queue = tuple(
            item_id
            for item_id in self.unresolved_queue
            if (item := self.item_by_id(item_id)) is not None and item.state != ItemState.RESOLVED
        )
        active = queue[0] if queue else None
        pending = self.pending_question
        if pending is not None:
            if pending.type == QuestionType.COMPANION:
                keep = active is None and self.item_by_id(pending.item_id) is not None
            else:
                keep = pending.item_id == active
            if not keep:
                pending = None
        return self.with_changes(unresolved_queue=queue, active_item_id=active, pending_question=pending)

    # ─── Storage document ──────────────────────────────────

    def to_document(self) -> dict[str, Any]:
        """JSON-compatible document for the storage layer."""
        return self.model_dump(mode="json")

    @staticmethod
    def from_document(document: dict[str, Any]) -> "ConversationState":
        """Rebuild a state from a stored document."""
        return ConversationState.model_validate(document)
