"""
Item resolution state machine.

Pure transitions for one parsed food mention:

    PARSED ──resolve──────────────▶ NO_MATCH | DISAMBIGUATING | PORTIONING | RESOLVED
    DISAMBIGUATING ──apply_disambiguation──▶ PORTIONING | RESOLVED
    PORTIONING ──apply_portion────▶ RESOLVED
    any ──revert_to_parsed────────▶ PARSED

Every function returns a new item and never mutates its argument.
Pass ``now`` (ms since epoch) to make a call fully deterministic; the
same arguments then always produce an equal item, so a conversation
turn can be replayed safely.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Any, Optional, Sequence

from mealchat.domain.conversation.items import (
    DisambiguatingItem,
    ItemState,
    NoMatchItem,
    ParsedItem,
    ParsedMealItem,
    ParsedStateItem,
    PortioningItem,
    ResolvedItem,
)
from mealchat.domain.fineli.models import FineliFood
from mealchat.domain.shared.errors import (
    InvalidChoiceError,
    InvalidPortionError,
    InvalidStateError,
)
from mealchat.domain.shared.value_objects import (
    GRAM_UNIT_CODE,
    GRAM_UNIT_LABEL,
    InferredAmount,
    generate_id,
    has_known_grams,
    now_ms,
)


def create_initial_item(
    parsed: ParsedMealItem,
    *,
    now: Optional[int] = None,
    item_id: Optional[str] = None,
) -> ParsedStateItem:
    """
    Create the PARSED item for a new food mention.

    An amount of zero is stored as given; only a missing amount leaves
    inferred_amount unset. A missing unit means grams.

    Args:
        parsed: Mention from the intent parser
        now: Creation time in ms (defaults to wall clock)
        item_id: Identifier to use (defaults to a fresh one)

    Example:
        >>> item = create_initial_item(ParsedMealItem(text="kanaa", amount=120))
        >>> item.inferred_amount
        InferredAmount(value=120.0, unit='g')
    """
    timestamp = now_ms() if now is None else now
    inferred_amount = None
    if parsed.amount is not None:
        inferred_amount = InferredAmount(value=parsed.amount, unit=parsed.unit or GRAM_UNIT_LABEL)

    return ParsedStateItem(
        id=item_id or generate_id(),
        raw_text=parsed.text,
        inferred_amount=inferred_amount,
        created_at=timestamp,
        updated_at=timestamp,
    )


def resolve(
    item: ParsedItem,
    exact_matches: Sequence[FineliFood],
    all_matches: Sequence[FineliFood],
    *,
    now: Optional[int] = None,
) -> ParsedItem:
    """
    Decide the first state of a searched item.

    1. No matches at all: NO_MATCH.
    2. Exactly one exact match: that food is selected, then RESOLVED when
       the gram amount is already known, otherwise PORTIONING.
    3. Otherwise: DISAMBIGUATING over the full ranked list. A list that
       turns out to hold a single food leaves nothing to choose and is
       treated as in step 2.

    Args:
        item: PARSED item
        exact_matches: Candidates that are an unambiguous identity match
        all_matches: Full ranked candidate list (shown to the user)
        now: Transition time in ms

    Raises:
        InvalidStateError: If item is not PARSED
    """
    _require_state(item, ItemState.PARSED)
    carried = _passthrough(item, now)

    if not all_matches:
        return NoMatchItem(**carried)

    if len(exact_matches) == 1:
        return _select(carried, item.inferred_amount, exact_matches[0], candidates=(exact_matches[0],))

    candidates = _merge_candidates(all_matches, exact_matches)
    if len(candidates) == 1:
        return _select(carried, item.inferred_amount, candidates[0], candidates=candidates)

    return DisambiguatingItem(**carried, fineli_candidates=candidates)


def apply_disambiguation(
    item: ParsedItem,
    chosen: FineliFood,
    *,
    now: Optional[int] = None,
) -> ParsedItem:
    """
    Apply the user's choice among the candidates.

    Candidates are dropped: the question is answered. Uses the same
    known-grams test as resolve() to go straight to RESOLVED.

    Raises:
        InvalidStateError: If item is not DISAMBIGUATING
        InvalidChoiceError: If chosen is not one of the candidates
    """
    _require_state(item, ItemState.DISAMBIGUATING)
    assert isinstance(item, DisambiguatingItem)

    selected = next((c for c in item.fineli_candidates if c.id == chosen.id), None)
    if selected is None:
        raise InvalidChoiceError(item.id, chosen.id)

    return _select(_passthrough(item, now), item.inferred_amount, selected, candidates=())


def apply_portion(
    item: ParsedItem,
    grams: Any,
    unit_code: Optional[str] = None,
    unit_label: Optional[str] = None,
    *,
    now: Optional[int] = None,
) -> ResolvedItem:
    """
    Finish an item with a concrete gram amount.

    unit_code / unit_label describe what the user reported (e.g. 'KPL_M',
    'keskikokoinen') and default to the gram unit, so a bare number of
    grams is a complete answer.

    Raises:
        InvalidStateError: If item is not PORTIONING
        InvalidPortionError: If grams is not a finite number > 0
    """
    _require_state(item, ItemState.PORTIONING)
    assert isinstance(item, PortioningItem)

    if isinstance(grams, bool) or not isinstance(grams, Real):
        raise InvalidPortionError(grams, item_id=item.id)
    try:
        portion = float(grams)
    except OverflowError:
        raise InvalidPortionError(grams, item_id=item.id) from None
    if not math.isfinite(portion) or portion <= 0:
        raise InvalidPortionError(grams, item_id=item.id)

    return ResolvedItem(
        **_passthrough(item, now),
        selected_food=item.selected_food,
        portion_grams=portion,
        portion_unit_code=GRAM_UNIT_CODE if unit_code is None else unit_code,
        portion_unit_label=GRAM_UNIT_LABEL if unit_label is None else unit_label,
    )


def revert_to_parsed(item: ParsedItem, *, now: Optional[int] = None) -> ParsedStateItem:
    """
    Roll an item back to PARSED.

    Candidates, selected food and portion are discarded; identity, text,
    inferred amount and creation time are kept. A PARSED item is
    returned as is.
    """
    if isinstance(item, ParsedStateItem):
        return item
    return ParsedStateItem(**_passthrough(item, now))


# ═══════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════


def _require_state(item: ParsedItem, expected: ItemState) -> None:
    if item.state != expected:
        raise InvalidStateError(item.id, str(item.state), [expected.value])


def _passthrough(item: ParsedItem, now: Optional[int]) -> dict[str, Any]:
    """Identity fields plus a non-decreasing updated_at."""
    timestamp = now_ms() if now is None else now
    return {
        "id": item.id,
        "raw_text": item.raw_text,
        "inferred_amount": item.inferred_amount,
        "created_at": item.created_at,
        "updated_at": max(timestamp, item.updated_at),
    }


def _select(
    carried: dict[str, Any],
    inferred_amount: Optional[InferredAmount],
    food: FineliFood,
    candidates: tuple[FineliFood, ...],
) -> ParsedItem:
    """RESOLVED when grams are known, else PORTIONING with the food."""
    if has_known_grams(inferred_amount):
        assert inferred_amount is not None
        return ResolvedItem(
            **carried,
            selected_food=food,
            portion_grams=inferred_amount.value,
            portion_unit_code=GRAM_UNIT_CODE,
            portion_unit_label=GRAM_UNIT_LABEL,
        )
    return PortioningItem(**carried, selected_food=food, fineli_candidates=candidates)


def _merge_candidates(
    all_matches: Sequence[FineliFood],
    exact_matches: Sequence[FineliFood],
) -> tuple[FineliFood, ...]:
    """all_matches in order, then exact matches missing from it; unique by id."""
    seen: set[int] = set()
    merged: list[FineliFood] = []
    for food in (*all_matches, *exact_matches):
        if food.id not in seen:
            seen.add(food.id)
            merged.append(food)
    return tuple(merged)
