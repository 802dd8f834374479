"""
Conversation Orchestrator.

Drives every food item of one meal through the item resolution state
machine, one user turn at a time, asking one question at a time.

Design Pattern: Service Layer + Dependency Injection
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from mealchat.domain.conversation.companions import base_food_key, check_companions
from mealchat.domain.conversation.intents import (
    LAST_ITEM,
    AddItemsIntent,
    AnswerIntent,
    ClarificationAnswer,
    CompanionAnswer,
    CorrectionIntent,
    CountAnswer,
    DoneIntent,
    FractionAnswer,
    Intent,
    ParsedAnswer,
    PortionSizeAnswer,
    RejectAnswer,
    RemovalIntent,
    SelectionAnswer,
    UpdatePortionIntent,
    VolumeAnswer,
    WeightAnswer,
)
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
from mealchat.domain.conversation.ports import IFoodSearchClient, IResultRanker
from mealchat.domain.conversation.questions import (
    QuestionPrompt,
    format_added_notice,
    format_confirmation,
    format_grams,
    generate_companion_question,
    generate_completion_message,
    generate_no_match_question,
    generate_portion_question,
    generate_question,
)
from mealchat.domain.conversation.resolver import (
    apply_disambiguation,
    apply_portion,
    create_initial_item,
    resolve,
    revert_to_parsed,
)
from mealchat.domain.conversation.state import (
    ConversationState,
    PendingQuestion,
    QuestionOption,
    QuestionType,
    ResolvedLineItem,
)
from mealchat.domain.fineli.models import FineliFood
from mealchat.domain.fineli.portions import (
    ConversionMethod,
    PortionConversion,
    PortionConverter,
    find_equivalent_unit,
)
from mealchat.domain.fineli.search import (
    expand_alias,
    rank_search_results,
    select_exact_matches,
)
from mealchat.domain.shared.value_objects import GRAM_UNIT_CODE, has_known_grams, now_ms
from mealchat.infrastructure.config import ConversationSettings

logger = structlog.get_logger(__name__)

CORRECTION_HINT = "Väärin? Kerro niin korjaan."
NOT_UNDERSTOOD = "En ymmärtänyt. Mitä söit?"
NOT_UNDERSTOOD_LIST = "En ymmärtänyt. Mitä söit? Kerro ruuat luettelona."
ANSWER_NOT_UNDERSTOOD = "En ymmärtänyt vastaustasi. Voisitko yrittää uudelleen?"
AMOUNT_NOT_UNDERSTOOD = "En ymmärtänyt määrää."

# Piece units a fraction ("puolikas") refers to, in order of preference
_FRACTION_REFERENCE_UNITS = ("KPL_M", "KPL_L", "KPL_S")


class QuestionMetadata(BaseModel):
    """Quick-reply data of the question asked in a turn."""

    model_config = ConfigDict(frozen=True)

    type: str
    options: Optional[tuple[QuestionOption, ...]] = None


class TurnResult(BaseModel):
    """
    Outcome of one processed turn.

    Attributes:
        assistant_message: Finnish reply to show
        state: Conversation state after the turn
        resolved_items: Line items that became RESOLVED in this turn
        question_metadata: Options of the question asked, if any
    """

    model_config = ConfigDict(frozen=True)

    assistant_message: str
    state: ConversationState
    resolved_items: tuple[ResolvedLineItem, ...] = ()
    question_metadata: Optional[QuestionMetadata] = None


@dataclass
class _TurnContext:
    """Accumulates the effects of one turn."""

    state: ConversationState
    now: int
    messages: list[str] = field(default_factory=list)
    resolved: list[ResolvedLineItem] = field(default_factory=list)
    metadata: Optional[QuestionMetadata] = None

    def say(self, text: str) -> None:
        if text:
            self.messages.append(text)

    def emit(self, item: ParsedItem) -> None:
        if isinstance(item, ResolvedItem):
            self.resolved.append(ResolvedLineItem.from_item(item))

    def show(self, question: PendingQuestion) -> None:
        self.metadata = QuestionMetadata(type=question.type, options=question.options)

    def ask(self, prompt: QuestionPrompt) -> None:
        self.say(prompt.message)
        self.state = self.state.with_changes(pending_question=prompt.question)
        self.show(prompt.question)

    def clear_question(self) -> None:
        self.state = self.state.with_changes(pending_question=None)


class ConversationOrchestrator:
    """
    Turn engine of the meal logging conversation.

    Responsibilities:
    - Look up new food mentions and resolve them through the state machine
    - Apply the user's answers (choices, portions, skips, corrections)
    - Keep one question pending at a time and pick the next item to ask about
    - Emit line items for every item that became RESOLVED
    - Offer companion foods once the meal is complete

    Dependencies (injected via Ports/Interfaces):
    - food_search: IFoodSearchClient - Fineli food search
    - portion_converter: PortionConverter - unit to gram conversion
    - result_ranker: IResultRanker - AI re-ranking (optional)

    The orchestrator holds no conversation state between calls: the
    state is passed in and a new one returned. Callers serialise turns
    of the same meal.

    Example:
        >>> orchestrator = ConversationOrchestrator(food_search=fineli_client)
        >>> state = orchestrator.start_conversation("session_1", "meal_1")
        >>> result = await orchestrator.process(
        ...     AddItemsIntent(items=(ParsedMealItem(text="kaurapuuroa"),)),
        ...     state,
        ... )
        >>> print(result.assistant_message)
    """

    def __init__(
        self,
        food_search: IFoodSearchClient,
        portion_converter: Optional[PortionConverter] = None,
        result_ranker: Optional[IResultRanker] = None,
        settings: Optional[ConversationSettings] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            food_search: Fineli search client
            portion_converter: Portion converter (default instance if omitted)
            result_ranker: AI result ranker (optional)
            settings: Conversation tunables (defaults if omitted)
        """
        self.food_search = food_search
        self.portion_converter = portion_converter or PortionConverter()
        self.result_ranker = result_ranker
        self.settings = settings or ConversationSettings()

    def start_conversation(self, session_id: str, meal_id: str) -> ConversationState:
        """Empty conversation in the configured language."""
        return ConversationState.start(session_id, meal_id, self.settings.language)

    async def process(self, intent: Intent, state: ConversationState) -> TurnResult:
        """
        Process one classified user intent.

        Args:
            intent: Intent from the intent parser
            state: Conversation state before the turn (not modified)

        Returns:
            TurnResult with the reply and the new state

        Raises:
            ExternalServiceError: If the food search fails
        """
        ctx = _TurnContext(state=state, now=max(now_ms(), _latest_update(state)))

        if isinstance(intent, AddItemsIntent):
            await self._handle_add_items(ctx, intent)
        elif isinstance(intent, AnswerIntent):
            await self._handle_answer(ctx, intent.answer)
        elif isinstance(intent, CorrectionIntent):
            await self._handle_correction(ctx, intent)
        elif isinstance(intent, UpdatePortionIntent):
            self._handle_update_portion(ctx, intent.grams)
        elif isinstance(intent, RemovalIntent):
            self._handle_removal(ctx, intent.target_text)
        elif isinstance(intent, DoneIntent):
            self._handle_done(ctx)
        else:
            self._handle_unclear(ctx)

        self._finish_turn(ctx)

        logger.info(
            "Turn processed",
            intent=intent.type,
            meal_id=ctx.state.meal_id,
            items=len(ctx.state.items),
            queued=len(ctx.state.unresolved_queue),
            resolved=len(ctx.resolved),
            question=ctx.state.pending_question.type if ctx.state.pending_question else None,
        )

        return TurnResult(
            assistant_message=" ".join(ctx.messages).strip(),
            state=ctx.state,
            resolved_items=tuple(ctx.resolved),
            question_metadata=ctx.metadata,
        )

    # ═══════════════════════════════════════════════════════════
    # INTENT HANDLERS
    # ═══════════════════════════════════════════════════════════

    async def _handle_add_items(self, ctx: _TurnContext, intent: AddItemsIntent) -> None:
        mentions = [
            mention.model_copy(update={"text": mention.text.strip()})
            for mention in intent.items
            if mention.text.strip()
        ]
        if not mentions:
            ctx.say(NOT_UNDERSTOOD_LIST)
            return

        had_active_item = ctx.state.active_item_id is not None
        initial = [create_initial_item(mention, now=ctx.now) for mention in mentions]
        items = await asyncio.gather(*(self._lookup(item, ctx) for item in initial))

        ctx.state = ctx.state.append_items(items)
        resolved = [item for item in items if isinstance(item, ResolvedItem)]
        for item in resolved:
            ctx.emit(item)

        pending_count = len(items) - len(resolved)
        details = ", ".join(
            f"{item.selected_food.name_fi} {format_grams(item.portion_grams)}g" for item in resolved
        )
        if resolved and pending_count == 0 and len(resolved) == 1:
            item = resolved[0]
            ctx.say(f"✓ {item.selected_food.name_fi} ({format_grams(item.portion_grams)}g). {CORRECTION_HINT}")
        elif resolved and pending_count == 0:
            ctx.say(f"✓ Lisäsin: {details}. {CORRECTION_HINT}")
        elif resolved:
            ctx.say(f"✓ {details}. {CORRECTION_HINT}")
        elif len(items) == 1:
            ctx.say(f"Haen tietoja: {items[0].raw_text}.")
        else:
            ctx.say(f"Haen tietoja {len(items)} ruuasta.")

        if had_active_item:
            ctx.say(format_added_notice([item.raw_text for item in items]))
            # Re-ask the interrupted question after the notice
            ctx.clear_question()

    async def _handle_answer(self, ctx: _TurnContext, answer: Optional[ParsedAnswer]) -> None:
        pending = ctx.state.pending_question
        if pending is None:
            ctx.say(NOT_UNDERSTOOD)
            return

        if pending.type == QuestionType.COMPANION:
            await self._answer_companion(ctx, pending, answer)
            return

        item = ctx.state.item_by_id(pending.item_id)
        if item is None:
            ctx.clear_question()
            ctx.say(NOT_UNDERSTOOD)
            return

        if answer is None:
            ctx.say(ANSWER_NOT_UNDERSTOOD)
            ctx.show(pending)
            return

        if pending.type in (QuestionType.DISAMBIGUATION, QuestionType.NO_MATCH_RETRY):
            await self._answer_search_question(ctx, pending, item, answer)
        elif pending.type == QuestionType.PORTION and isinstance(item, PortioningItem):
            self._answer_portion(ctx, pending, item, answer)
        else:
            self._reask(ctx, pending, ANSWER_NOT_UNDERSTOOD)

    async def _handle_correction(self, ctx: _TurnContext, intent: CorrectionIntent) -> None:
        new_text = (intent.new_text or "").strip()

        if new_text:
            target = _find_item(ctx.state, new_text) or ctx.state.active_item()
            if target is None:
                ctx.say(NOT_UNDERSTOOD)
                return
            updated = await self._lookup(_reparse(target, _retyped(target, new_text), ctx.now), ctx)
        else:
            # "Ei se": choose again among the search results
            target = _correction_target(ctx.state)
            if target is None:
                ctx.say(NOT_UNDERSTOOD)
                return
            updated = await self._lookup(revert_to_parsed(target, now=ctx.now), ctx, choose_again=True)

        logger.info("Item corrected", item_id=target.id, state=updated.state, new_text=new_text or None)
        ctx.state = ctx.state.replace_item(target.id, updated)
        ctx.clear_question()
        self._confirm(ctx, updated)

    def _handle_update_portion(self, ctx: _TurnContext, grams: float) -> None:
        if not math.isfinite(grams) or grams <= 0:
            ctx.say(AMOUNT_NOT_UNDERSTOOD)
            return

        active = ctx.state.active_item()
        if isinstance(active, PortioningItem):
            updated: ParsedItem = apply_portion(active, grams, now=ctx.now)
            ctx.state = ctx.state.replace_item(active.id, updated)
            ctx.clear_question()
            self._confirm(ctx, updated)
            return

        resolved = ctx.state.resolved_items()
        if not resolved:
            ctx.say(NOT_UNDERSTOOD)
            return

        target = resolved[-1]
        food = target.selected_food
        reparsed = _reparse(
            target,
            ParsedMealItem(text=target.raw_text, amount=grams, unit="g"),
            ctx.now,
        )
        updated = resolve(reparsed, [food], [food], now=ctx.now)
        ctx.state = ctx.state.replace_item(target.id, updated)
        self._confirm(ctx, updated)

    def _handle_removal(self, ctx: _TurnContext, target_text: str) -> None:
        if target_text == LAST_ITEM:
            resolved = ctx.state.resolved_items()
            target: Optional[ParsedItem] = resolved[-1] if resolved else None
            if target is None and ctx.state.items:
                target = ctx.state.items[-1]
        else:
            target = _find_item(ctx.state, target_text.strip())

        if target is None:
            ctx.say("Ei poistettavia ruokia.")
            return

        name = _food_of(target).name_fi if _food_of(target) else target.raw_text
        ctx.state = ctx.state.remove_item(target.id)
        ctx.clear_question()
        logger.info("Item removed", item_id=target.id, state=target.state)
        ctx.say(f'Poistin "{name}" listalta.')

    def _handle_done(self, ctx: _TurnContext) -> None:
        ctx.state = ctx.state.with_changes(is_complete=True, pending_question=None)
        unresolved = [
            item_id
            for item_id in ctx.state.unresolved_queue
            if (item := ctx.state.item_by_id(item_id)) is not None and item.state != ItemState.RESOLVED
        ]
        if unresolved:
            ctx.say(
                f"Sinulla on vielä {len(unresolved)} kohdetta ratkaisematta. "
                "Haluatko jatkaa vai ohittaa?"
            )

    def _handle_unclear(self, ctx: _TurnContext) -> None:
        pending = ctx.state.pending_question
        if pending is None:
            ctx.say(NOT_UNDERSTOOD_LIST)
            return
        self._reask(ctx, pending, "En ymmärtänyt.")

    # ═══════════════════════════════════════════════════════════
    # ANSWERS
    # ═══════════════════════════════════════════════════════════

    async def _answer_search_question(
        self,
        ctx: _TurnContext,
        pending: PendingQuestion,
        item: ParsedItem,
        answer: ParsedAnswer,
    ) -> None:
        if isinstance(answer, RejectAnswer):
            self._skip(ctx, item)
        elif isinstance(answer, ClarificationAnswer):
            await self._clarify(ctx, pending, item, answer.text.strip())
        elif isinstance(answer, SelectionAnswer) and isinstance(item, DisambiguatingItem):
            candidates = item.fineli_candidates
            if answer.index >= len(candidates):
                ctx.say(f"Virheellinen valinta. Valitse numerolla 1–{len(candidates)}.")
                retried = pending.model_copy(update={"retry_count": pending.retry_count + 1})
                ctx.state = ctx.state.with_changes(pending_question=retried)
                ctx.show(retried)
                return

            updated = self._auto_portion(apply_disambiguation(item, candidates[answer.index], now=ctx.now), ctx.now)
            ctx.state = ctx.state.replace_item(item.id, updated)
            ctx.clear_question()
            self._confirm(ctx, updated)
        else:
            self._reask(ctx, pending, ANSWER_NOT_UNDERSTOOD)

    async def _clarify(self, ctx: _TurnContext, pending: PendingQuestion, item: ParsedItem, text: str) -> None:
        """Search again with the user's new wording."""
        updated = await self._lookup(_reparse(item, _retyped(item, text), ctx.now), ctx)
        ctx.state = ctx.state.replace_item(item.id, updated)
        ctx.clear_question()

        if not isinstance(updated, NoMatchItem):
            self._confirm(ctx, updated)
            return

        retry_count = pending.retry_count + 1
        if retry_count >= self.settings.max_no_match_retries:
            ctx.state = ctx.state.remove_item(updated.id)
            logger.info("Item skipped", item_id=updated.id, reason="no_match", retries=retry_count)
            ctx.say(f'En löytänyt "{text}" Finelistä. Ohitetaan.')
            return

        ctx.ask(generate_no_match_question(updated, retry_count, now=ctx.now))

    def _answer_portion(
        self,
        ctx: _TurnContext,
        pending: PendingQuestion,
        item: PortioningItem,
        answer: ParsedAnswer,
    ) -> None:
        conversion = self._portion_from_answer(answer, item.selected_food)
        if conversion is None:
            ctx.say(AMOUNT_NOT_UNDERSTOOD)
            ctx.ask(generate_portion_question(item, item.selected_food, pending.retry_count + 1, now=ctx.now))
            return

        updated = apply_portion(item, conversion.grams, conversion.unit_code, conversion.unit_label, now=ctx.now)
        ctx.state = ctx.state.replace_item(item.id, updated)
        ctx.clear_question()
        self._confirm(ctx, updated)

    async def _answer_companion(
        self,
        ctx: _TurnContext,
        pending: PendingQuestion,
        answer: Optional[ParsedAnswer],
    ) -> None:
        companion = str(pending.template_params.get("companion") or "")
        ctx.clear_question()
        if not companion:
            return

        ctx.state = ctx.state.with_changes(companion_checks=ctx.state.companion_checks + (companion,))
        if not (isinstance(answer, CompanionAnswer) and answer.value):
            return

        item = await self._lookup(create_initial_item(ParsedMealItem(text=companion), now=ctx.now), ctx)
        ctx.state = ctx.state.append_items([item])
        self._confirm(ctx, item)

    def _portion_from_answer(self, answer: ParsedAnswer, food: FineliFood) -> Optional[PortionConversion]:
        """Grams for a portion answer, or None when it cannot be used."""
        if isinstance(answer, WeightAnswer):
            return self.portion_converter.convert(answer.grams, None, food.units)

        if isinstance(answer, PortionSizeAnswer):
            unit = find_equivalent_unit(answer.key, food.units)
            if unit is None:
                return None
            return PortionConversion(
                grams=unit.mass_grams,
                unit_code=unit.code,
                unit_label=unit.label_fi,
                method=ConversionMethod.FINELI_UNIT,
            )

        if isinstance(answer, (VolumeAnswer, CountAnswer)):
            return self.portion_converter.convert(answer.value, answer.unit, food.units)

        if isinstance(answer, FractionAnswer):
            unit = next((u for code in _FRACTION_REFERENCE_UNITS if (u := food.find_unit(code))), None)
            if unit is None or not math.isfinite(answer.value) or answer.value <= 0:
                return None
            return PortionConversion(
                grams=unit.mass_grams * answer.value,
                unit_code=unit.code,
                unit_label=unit.label_fi,
                method=ConversionMethod.FINELI_UNIT,
            )

        return None

    # ═══════════════════════════════════════════════════════════
    # SHARED STEPS
    # ═══════════════════════════════════════════════════════════

    async def _lookup(self, item: ParsedStateItem, ctx: _TurnContext, choose_again: bool = False) -> ParsedItem:
        """
        Search, rank and resolve a PARSED item.

        With choose_again no result counts as an exact match, so the user
        picks from the list.
        """
        query = expand_alias(item.raw_text)
        results = await self.food_search.search_foods(query, ctx.state.language)

        if self.result_ranker is not None and not has_known_grams(item.inferred_amount):
            ranked = (await self.result_ranker.rank(results, item.raw_text))[: self.settings.candidate_limit]
        else:
            ranked = rank_search_results(results, query, limit=self.settings.candidate_limit)

        exact: Sequence[FineliFood] = [] if choose_again else select_exact_matches(ranked, item.raw_text)
        resolved = self._auto_portion(resolve(item, exact, ranked, now=ctx.now), ctx.now)

        logger.debug(
            "Food lookup",
            query=query,
            results=len(results),
            ranked=len(ranked),
            exact=len(exact),
            state=resolved.state,
        )
        return resolved

    def _auto_portion(self, item: ParsedItem, now: int) -> ParsedItem:
        """Finish a PORTIONING item whose parsed amount is in a convertible unit."""
        amount = item.inferred_amount
        if not isinstance(item, PortioningItem) or amount is None or amount.is_grams():
            return item

        conversion = self.portion_converter.convert(amount.value, amount.unit, item.selected_food.units)
        if conversion is None:
            return item

        logger.debug(
            "Auto portion",
            item_id=item.id,
            amount=str(amount),
            grams=conversion.grams,
            method=conversion.method,
        )
        return apply_portion(item, conversion.grams, conversion.unit_code, conversion.unit_label, now=now)

    def _confirm(self, ctx: _TurnContext, item: ParsedItem) -> None:
        if not isinstance(item, ResolvedItem):
            return
        ctx.emit(item)
        label = item.portion_unit_label if item.portion_unit_code != GRAM_UNIT_CODE else None
        ctx.say(format_confirmation(item.selected_food, item.portion_grams, label))

    def _skip(self, ctx: _TurnContext, item: ParsedItem) -> None:
        ctx.state = ctx.state.remove_item(item.id)
        ctx.clear_question()
        logger.info("Item skipped", item_id=item.id, reason="user")
        ctx.say(f'Ohitetaan "{item.raw_text}".')

    def _reask(self, ctx: _TurnContext, pending: PendingQuestion, prefix: str) -> None:
        """Ask the pending question again with an increased retry count."""
        retry_count = pending.retry_count + 1
        item = ctx.state.item_by_id(pending.item_id)

        if pending.type == QuestionType.NO_MATCH_RETRY and retry_count >= self.settings.max_no_match_retries:
            ctx.clear_question()
            if item is not None:
                self._skip(ctx, item)
            return

        prompt: Optional[QuestionPrompt] = None
        if pending.type == QuestionType.COMPANION:
            params = pending.template_params
            prompt = generate_companion_question(
                str(params.get("primary_food", "")),
                str(params.get("companion", "")),
                pending.item_id,
                retry_count,
                now=ctx.now,
            )
        elif item is not None:
            prompt = generate_question(item, retry_count, now=ctx.now)

        if prompt is None:
            ctx.clear_question()
            return

        ctx.say(prefix)
        ctx.ask(prompt)

    def _finish_turn(self, ctx: _TurnContext) -> None:
        """Advance the queue and ask whatever comes next."""
        ctx.state = ctx.state.advance_queue()
        state = ctx.state

        if state.pending_question is None and state.active_item_id is not None:
            active = state.active_item()
            prompt = generate_question(active, now=ctx.now) if active is not None else None
            if prompt is not None:
                ctx.ask(prompt)

        if ctx.state.pending_question is not None or ctx.state.unresolved_queue:
            return

        if not ctx.state.is_complete:
            if not ctx.messages:
                ctx.say(generate_completion_message())
            return

        resolved = ctx.state.resolved_items()
        suggestion = check_companions(
            [item.selected_food.name_fi for item in resolved],
            ctx.state.companion_checks,
        )
        if suggestion is None:
            ctx.say(generate_completion_message())
            return

        primary = next(item for item in resolved if item.selected_food.name_fi == suggestion.primary_food)
        ctx.ask(
            generate_companion_question(
                base_food_key(suggestion.primary_food),
                suggestion.companion,
                primary.id,
                now=ctx.now,
            )
        )


# ═══════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════


def _latest_update(state: ConversationState) -> int:
    return max((item.updated_at for item in state.items), default=0)


def _food_of(item: ParsedItem) -> Optional[FineliFood]:
    return getattr(item, "selected_food", None)


def _find_item(state: ConversationState, text: str) -> Optional[ParsedItem]:
    """Item whose text equals the given text, else one containing it (or contained)."""
    needle = text.lower()
    if not needle:
        return None
    exact = next((item for item in state.items if item.raw_text.lower() == needle), None)
    if exact is not None:
        return exact
    return next(
        (item for item in state.items if needle in item.raw_text.lower() or item.raw_text.lower() in needle),
        None,
    )


def _correction_target(state: ConversationState) -> Optional[ParsedItem]:
    """Item a bare "not that one" refers to: the active item with a food, else the last resolved."""
    active = state.active_item()
    if isinstance(active, PortioningItem):
        return active
    resolved = state.resolved_items()
    return resolved[-1] if resolved else None


def _retyped(item: ParsedItem, text: str) -> ParsedMealItem:
    """Mention with new text and the item's parsed amount."""
    amount = item.inferred_amount
    return ParsedMealItem(
        text=text,
        amount=amount.value if amount is not None else None,
        unit=amount.unit if amount is not None else None,
    )


def _reparse(item: ParsedItem, mention: ParsedMealItem, now: int) -> ParsedStateItem:
    """Fresh PARSED item for a mention, keeping the id and creation time of item."""
    fresh = create_initial_item(mention, now=now, item_id=item.id)
    return fresh.model_copy(update={"created_at": item.created_at})
