"""
Unit tests for ConversationOrchestrator.

Tests the turn engine with a mocked food search over the shared
catalogue. Every flow goes through process() only.
"""

import itertools
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from mealchat.application.conversation.orchestrator import (
    AMOUNT_NOT_UNDERSTOOD,
    ANSWER_NOT_UNDERSTOOD,
    NOT_UNDERSTOOD,
    NOT_UNDERSTOOD_LIST,
    ConversationOrchestrator,
    TurnResult,
)
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
    PortionSizeAnswer,
    RejectAnswer,
    RemovalIntent,
    SelectionAnswer,
    UnclearIntent,
    UpdatePortionIntent,
    VolumeAnswer,
    WeightAnswer,
)
from mealchat.domain.conversation.items import ItemState, ParsedMealItem
from mealchat.domain.conversation.ports import IResultRanker
from mealchat.domain.conversation.state import ConversationState, QuestionType
from mealchat.domain.fineli.models import FineliFood
from mealchat.domain.shared.errors import ExternalServiceError
from mealchat.infrastructure.config import ConversationSettings


@pytest.fixture
def orchestrator(mock_food_search: Any) -> ConversationOrchestrator:
    return ConversationOrchestrator(food_search=mock_food_search)


@pytest.fixture
def state(orchestrator: ConversationOrchestrator) -> ConversationState:
    return orchestrator.start_conversation("session_1", "meal_1")


def _add(*mentions: ParsedMealItem) -> AddItemsIntent:
    return AddItemsIntent(items=mentions)


def _answer(answer: Any = None) -> AnswerIntent:
    return AnswerIntent(answer=answer)


async def _run(
    orchestrator: ConversationOrchestrator,
    state: ConversationState,
    *intents: Any,
) -> TurnResult:
    """Process intents in order and return the last result."""
    result = None
    for intent in intents:
        result = await orchestrator.process(intent, state)
        state = result.state
    assert result is not None
    return result


# ═══════════════════════════════════════════════════════════
# ADDING ITEMS
# ═══════════════════════════════════════════════════════════


class TestAddItems:
    """Test new food mentions."""

    @pytest.mark.asyncio
    async def test_gram_amount_resolves_immediately(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(_add(ParsedMealItem(text="kanaa", amount=120, unit="g")), state)

        assert result.assistant_message == "✓ Broileri, rintafilee (120g). Väärin? Kerro niin korjaan."
        assert result.state.unresolved_queue == ()
        assert result.state.pending_question is None
        assert len(result.resolved_items) == 1
        line = result.resolved_items[0]
        assert line.fineli_food_id == 28934
        assert line.portion_grams == 120
        assert line.computed_nutrients["PROT"] == pytest.approx(27.6)

    @pytest.mark.asyncio
    async def test_single_match_asks_portion(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(_add(ParsedMealItem(text="banaani")), state)

        assert result.assistant_message == (
            "Haen tietoja: banaani. Kuinka paljon: Banaani?\n"
            "• keskikokoinen (125g)\n"
            "• tai grammoina (esim. 120g)"
        )
        item = result.state.active_item()
        assert item is not None
        assert item.state == ItemState.PORTIONING
        assert result.state.pending_question.type == QuestionType.PORTION
        assert result.question_metadata is not None
        assert [option.key for option in result.question_metadata.options] == ["KPL_M"]
        assert result.resolved_items == ()

    @pytest.mark.asyncio
    async def test_ambiguous_match_asks_disambiguation(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(_add(ParsedMealItem(text="maito")), state)

        assert result.assistant_message.startswith("Haen tietoja: maito. Löysin useita vaihtoehtoja")
        assert "1) Maito, kevyt" in result.assistant_message
        assert "2) Maito, rasvaton" in result.assistant_message
        assert result.state.active_item().state == ItemState.DISAMBIGUATING
        assert result.question_metadata.type == QuestionType.DISAMBIGUATION
        assert [option.value for option in result.question_metadata.options] == [601, 602]

    @pytest.mark.asyncio
    async def test_several_items_queue_in_order(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(
            _add(
                ParsedMealItem(text="kanaa", amount=120, unit="g"),
                ParsedMealItem(text="banaani"),
                ParsedMealItem(text="maito"),
            ),
            state,
        )

        assert result.assistant_message.startswith(
            "✓ Broileri, rintafilee 120g. Väärin? Kerro niin korjaan. Kuinka paljon: Banaani?"
        )
        banana_item, milk_item = result.state.items[1], result.state.items[2]
        assert result.state.unresolved_queue == (banana_item.id, milk_item.id)
        assert result.state.active_item_id == banana_item.id
        assert len(result.resolved_items) == 1

    @pytest.mark.asyncio
    async def test_all_resolved_lists_items(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(
            _add(
                ParsedMealItem(text="kanaa", amount=120, unit="g"),
                ParsedMealItem(text="banaani", amount=100),
            ),
            state,
        )

        assert result.assistant_message == (
            "✓ Lisäsin: Broileri, rintafilee 120g, Banaani 100g. Väärin? Kerro niin korjaan."
        )
        assert len(result.resolved_items) == 2

    @pytest.mark.asyncio
    async def test_unit_amount_is_converted(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(_add(ParsedMealItem(text="kananmuna", amount=2, unit="kpl")), state)

        assert result.resolved_items[0].portion_grams == 120
        assert result.resolved_items[0].portion_unit_code == "KPL_M"
        assert result.state.unresolved_queue == ()

    @pytest.mark.asyncio
    async def test_nothing_found_asks_for_another_name(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(_add(ParsedMealItem(text="xyz")), state)

        assert result.assistant_message == (
            'Haen tietoja: xyz. En löytänyt "xyz" Fineli-tietokannasta. Kokeile toista nimeä tai ohita.'
        )
        assert result.state.active_item().state == ItemState.NO_MATCH
        assert result.question_metadata.type == QuestionType.NO_MATCH_RETRY

    @pytest.mark.asyncio
    async def test_blank_mentions_are_not_understood(
        self, orchestrator: ConversationOrchestrator, state: ConversationState, mock_food_search: Any
    ) -> None:
        result = await orchestrator.process(_add(ParsedMealItem(text="  ")), state)

        assert result.assistant_message == NOT_UNDERSTOOD_LIST
        assert result.state.items == ()
        mock_food_search.search_foods.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_add_while_asking_re_asks_question(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        first = await orchestrator.process(_add(ParsedMealItem(text="banaani")), state)

        result = await orchestrator.process(_add(ParsedMealItem(text="kanaa", amount=120, unit="g")), first.state)

        assert result.assistant_message.startswith(
            "✓ Broileri, rintafilee (120g). Väärin? Kerro niin korjaan. Lisäsin kanaa listalle. Kuinka paljon: Banaani?"
        )
        assert result.state.active_item_id == first.state.active_item_id
        assert result.state.pending_question.type == QuestionType.PORTION
        assert result.state.pending_question.id != first.state.pending_question.id

    @pytest.mark.asyncio
    async def test_input_state_is_not_modified(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        before = state.model_copy()

        await orchestrator.process(_add(ParsedMealItem(text="banaani")), state)

        assert state == before
        assert state.items == ()


# ═══════════════════════════════════════════════════════════
# ANSWERS
# ═══════════════════════════════════════════════════════════


class TestPortionAnswers:
    """Test answers to portion questions."""

    @pytest.mark.asyncio
    async def test_portion_size(self, orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
        result = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="banaani")),
            _answer(PortionSizeAnswer(key="KPL_M")),
        )

        assert result.assistant_message == "✓ Banaani, keskikokoinen (125g)"
        assert result.state.unresolved_queue == ()
        assert result.state.active_item_id is None
        assert result.state.pending_question is None
        line = result.resolved_items[0]
        assert line.portion_unit_code == "KPL_M"
        assert line.portion_amount == 1.0

    @pytest.mark.asyncio
    async def test_weight(self, orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
        result = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="banaani")),
            _answer(WeightAnswer(grams=90)),
        )

        assert result.assistant_message == "✓ Banaani, 90g"
        assert result.resolved_items[0].portion_grams == 90

    @pytest.mark.asyncio
    async def test_fraction_of_piece(self, orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
        result = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="banaani")),
            _answer(FractionAnswer(value=0.5)),
        )

        assert result.assistant_message == "✓ Banaani, keskikokoinen (62.5g)"

    @pytest.mark.asyncio
    async def test_count(self, orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
        result = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="kananmuna")),
            _answer(CountAnswer(value=3, unit="kpl")),
        )

        assert result.resolved_items[0].portion_grams == 180
        assert result.resolved_items[0].portion_amount == 3.0

    @pytest.mark.asyncio
    async def test_unusable_amount_asks_again(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="banaani")),
            _answer(VolumeAnswer(value=2, unit="kourallinen")),
        )

        assert result.assistant_message.startswith(f"{AMOUNT_NOT_UNDERSTOOD} Kuinka paljon: Banaani?")
        assert result.state.pending_question.retry_count == 1
        assert result.resolved_items == ()

    @pytest.mark.asyncio
    async def test_unparsed_answer_keeps_question(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        first = await orchestrator.process(_add(ParsedMealItem(text="banaani")), state)

        result = await orchestrator.process(_answer(None), first.state)

        assert result.assistant_message == ANSWER_NOT_UNDERSTOOD
        assert result.state.pending_question == first.state.pending_question
        assert result.question_metadata.type == QuestionType.PORTION


class TestDisambiguationAnswers:
    """Test answers to disambiguation questions."""

    @pytest.mark.asyncio
    async def test_selection_then_volume(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        chosen = await _run(orchestrator, state, _add(ParsedMealItem(text="maito")), _answer(SelectionAnswer(index=1)))

        assert chosen.assistant_message.startswith("Kuinka paljon: Maito, rasvaton?")
        assert chosen.state.active_item().state == ItemState.PORTIONING
        assert chosen.question_metadata.type == QuestionType.PORTION

        result = await orchestrator.process(_answer(VolumeAnswer(value=2, unit="dl")), chosen.state)

        assert result.assistant_message == "✓ Maito, rasvaton, desilitra (208g)"
        assert result.resolved_items[0].fineli_food_id == 602

    @pytest.mark.asyncio
    async def test_selection_uses_parsed_amount(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="maito", amount=2, unit="dl")),
            _answer(SelectionAnswer(index=0)),
        )

        assert result.assistant_message == "✓ Maito, kevyt, desilitra (206g)"
        assert result.state.unresolved_queue == ()

    @pytest.mark.asyncio
    async def test_selection_out_of_range(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await _run(orchestrator, state, _add(ParsedMealItem(text="maito")), _answer(SelectionAnswer(index=5)))

        assert result.assistant_message == "Virheellinen valinta. Valitse numerolla 1–2."
        assert result.state.pending_question.retry_count == 1
        assert result.state.active_item().state == ItemState.DISAMBIGUATING

    @pytest.mark.asyncio
    async def test_reject_skips_item(self, orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
        result = await _run(orchestrator, state, _add(ParsedMealItem(text="maito")), _answer(RejectAnswer()))

        assert result.assistant_message == 'Ohitetaan "maito".'
        assert result.state.items == ()
        assert result.state.pending_question is None

    @pytest.mark.asyncio
    async def test_wrong_answer_type_re_asks(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await _run(orchestrator, state, _add(ParsedMealItem(text="maito")), _answer(WeightAnswer(grams=100)))

        assert result.assistant_message.startswith(f"{ANSWER_NOT_UNDERSTOOD} Löysin useita vaihtoehtoja")
        assert result.state.pending_question.retry_count == 1


class TestNoMatch:
    """Test clarification of items nothing was found for."""

    @pytest.mark.asyncio
    async def test_clarification_finds_food(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        first = await orchestrator.process(_add(ParsedMealItem(text="xyz")), state)
        item_id = first.state.active_item_id

        result = await orchestrator.process(_answer(ClarificationAnswer(text="banaani")), first.state)

        item = result.state.item_by_id(item_id)
        assert item is not None
        assert item.raw_text == "banaani"
        assert item.state == ItemState.PORTIONING
        assert result.assistant_message.startswith("Kuinka paljon: Banaani?")

    @pytest.mark.asyncio
    async def test_skipped_after_retries(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        second = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="xyz")),
            _answer(ClarificationAnswer(text="abc")),
        )

        assert second.assistant_message == 'En löytänyt "abc" myöskään. Kokeile toista nimeä tai ohita.'
        assert second.state.pending_question.retry_count == 1

        result = await orchestrator.process(_answer(ClarificationAnswer(text="qwe")), second.state)

        assert result.assistant_message == 'En löytänyt "qwe" Finelistä. Ohitetaan.'
        assert result.state.items == ()
        assert result.state.pending_question is None

    @pytest.mark.asyncio
    async def test_retry_limit_is_configurable(self, mock_food_search: Any) -> None:
        orchestrator = ConversationOrchestrator(
            food_search=mock_food_search,
            settings=ConversationSettings(max_no_match_retries=1),
        )
        state = orchestrator.start_conversation("session_1", "meal_1")

        result = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="xyz")),
            _answer(ClarificationAnswer(text="abc")),
        )

        assert result.assistant_message == 'En löytänyt "abc" Finelistä. Ohitetaan.'

    @pytest.mark.asyncio
    async def test_unclear_reply_counts_as_retry(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        once = await _run(orchestrator, state, _add(ParsedMealItem(text="xyz")), UnclearIntent())

        assert once.assistant_message.startswith('En ymmärtänyt. En löytänyt "xyz" myöskään.')

        twice = await orchestrator.process(UnclearIntent(), once.state)

        assert twice.assistant_message == 'Ohitetaan "xyz".'
        assert twice.state.items == ()


# ═══════════════════════════════════════════════════════════
# CORRECTIONS / UPDATES / REMOVAL
# ═══════════════════════════════════════════════════════════


class TestCorrections:
    """Test corrections and portion updates."""

    @pytest.mark.asyncio
    async def test_choose_again_reopens_candidates(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        added = await orchestrator.process(_add(ParsedMealItem(text="kaurapuuro", amount=250, unit="g")), state)
        assert added.assistant_message == "✓ Kaurapuuro, vesi (250g). Väärin? Kerro niin korjaan."
        item_id = added.state.items[0].id

        reopened = await orchestrator.process(CorrectionIntent(), added.state)

        assert reopened.state.item_by_id(item_id).state == ItemState.DISAMBIGUATING
        assert "2) Kaurahiutale" in reopened.assistant_message

        result = await orchestrator.process(_answer(SelectionAnswer(index=1)), reopened.state)

        assert result.assistant_message == "✓ Kaurahiutale, 250g"
        assert result.state.item_by_id(item_id).selected_food.id == 320
        assert len(result.state.items) == 1

    @pytest.mark.asyncio
    async def test_correction_with_text_replaces_active_item(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        first = await orchestrator.process(_add(ParsedMealItem(text="banaani")), state)
        item_id = first.state.active_item_id

        result = await orchestrator.process(CorrectionIntent(new_text="kananmuna"), first.state)

        item = result.state.item_by_id(item_id)
        assert item.raw_text == "kananmuna"
        assert item.selected_food.id == 1
        assert result.assistant_message.startswith("Kuinka paljon: Kananmuna, keitetty?")

    @pytest.mark.asyncio
    async def test_correction_without_anything_to_correct(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(CorrectionIntent(), state)

        assert result.assistant_message == NOT_UNDERSTOOD

    @pytest.mark.asyncio
    async def test_update_portion_of_active_item(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="banaani")),
            UpdatePortionIntent(grams=130),
        )

        assert result.assistant_message == "✓ Banaani, 130g"
        assert result.state.pending_question is None

    @pytest.mark.asyncio
    async def test_update_portion_of_last_resolved_item(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        added = await orchestrator.process(_add(ParsedMealItem(text="kanaa", amount=120, unit="g")), state)
        item_id = added.state.items[0].id

        result = await orchestrator.process(UpdatePortionIntent(grams=150), added.state)

        assert result.assistant_message == "✓ Broileri, rintafilee, 150g"
        assert result.state.item_by_id(item_id).portion_grams == 150
        assert result.resolved_items[0].portion_grams == 150

    @pytest.mark.asyncio
    async def test_update_portion_rejects_bad_amount(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await orchestrator.process(UpdatePortionIntent(grams=0), state)

        assert result.assistant_message == AMOUNT_NOT_UNDERSTOOD


class TestItemIdentity:
    """Test that re-parsed items keep their id and creation time."""

    @pytest.fixture(autouse=True)
    def ticking_clock(self, monkeypatch: pytest.MonkeyPatch) -> None:
        ticks = itertools.count(1_700_000_000_000, 1000)
        monkeypatch.setattr(
            "mealchat.application.conversation.orchestrator.now_ms",
            lambda: next(ticks),
        )

    @pytest.mark.asyncio
    async def test_update_portion_keeps_created_at(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        added = await orchestrator.process(_add(ParsedMealItem(text="kanaa", amount=120, unit="g")), state)
        original = added.state.items[0]

        result = await orchestrator.process(UpdatePortionIntent(grams=150), added.state)

        item = result.state.items[0]
        assert item.id == original.id
        assert item.created_at == original.created_at
        assert item.updated_at > original.updated_at
        assert item.portion_grams == 150

    @pytest.mark.asyncio
    async def test_text_correction_keeps_created_at(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        added = await orchestrator.process(_add(ParsedMealItem(text="banaani")), state)
        original = added.state.items[0]

        result = await orchestrator.process(CorrectionIntent(new_text="kananmuna"), added.state)

        item = result.state.items[0]
        assert item.raw_text == "kananmuna"
        assert item.id == original.id
        assert item.created_at == original.created_at
        assert item.updated_at > original.updated_at

    @pytest.mark.asyncio
    async def test_clarification_keeps_created_at(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        added = await orchestrator.process(_add(ParsedMealItem(text="xyz")), state)
        original = added.state.items[0]

        result = await orchestrator.process(_answer(ClarificationAnswer(text="banaani")), added.state)

        item = result.state.items[0]
        assert item.raw_text == "banaani"
        assert item.id == original.id
        assert item.created_at == original.created_at
        assert item.updated_at > original.updated_at


class TestRemoval:
    """Test item removal."""

    @pytest.mark.asyncio
    async def test_remove_last_item(self, orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
        added = await orchestrator.process(
            _add(ParsedMealItem(text="banaani", amount=100), ParsedMealItem(text="kanaa", amount=120, unit="g")),
            state,
        )

        result = await orchestrator.process(RemovalIntent(target_text=LAST_ITEM), added.state)

        assert result.assistant_message == 'Poistin "Broileri, rintafilee" listalta.'
        assert [item.raw_text for item in result.state.items] == ["banaani"]

    @pytest.mark.asyncio
    async def test_remove_by_text(self, orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
        added = await orchestrator.process(
            _add(ParsedMealItem(text="banaani"), ParsedMealItem(text="maito")),
            state,
        )

        result = await orchestrator.process(RemovalIntent(target_text="banaani"), added.state)

        assert result.assistant_message.startswith('Poistin "Banaani" listalta. Löysin useita vaihtoehtoja')
        assert result.state.active_item().raw_text == "maito"

    @pytest.mark.asyncio
    async def test_nothing_to_remove(self, orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
        result = await orchestrator.process(RemovalIntent(target_text=LAST_ITEM), state)

        assert result.assistant_message == "Ei poistettavia ruokia."


# ═══════════════════════════════════════════════════════════
# COMPLETION / COMPANIONS
# ═══════════════════════════════════════════════════════════


class TestCompletion:
    """Test finishing the meal and companion questions."""

    @pytest_asyncio.fixture
    async def porridge_done(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> TurnResult:
        return await _run(
            orchestrator,
            state,
            _add(ParsedMealItem(text="kaurapuuro", amount=250, unit="g")),
            DoneIntent(),
        )

    @pytest.mark.asyncio
    async def test_done_asks_companion(self, porridge_done: TurnResult) -> None:
        assert porridge_done.assistant_message == "Käytitkö maito kaurapuuro kanssa?"
        assert porridge_done.state.is_complete
        assert porridge_done.question_metadata.type == QuestionType.COMPANION
        assert [option.value for option in porridge_done.question_metadata.options] == [True, False]

    @pytest.mark.asyncio
    async def test_companion_yes_adds_item(
        self, orchestrator: ConversationOrchestrator, porridge_done: TurnResult
    ) -> None:
        result = await orchestrator.process(_answer(CompanionAnswer(value=True)), porridge_done.state)

        assert result.state.companion_checks == ("maito",)
        assert result.state.items[-1].raw_text == "maito"
        assert result.assistant_message.startswith('Löysin useita vaihtoehtoja hakusanalle "maito"')

    @pytest.mark.asyncio
    async def test_companion_no_moves_to_next(
        self, orchestrator: ConversationOrchestrator, porridge_done: TurnResult
    ) -> None:
        result = await orchestrator.process(_answer(CompanionAnswer(value=False)), porridge_done.state)

        assert result.assistant_message == "Käytitkö marja kaurapuuro kanssa?"
        assert len(result.state.items) == 1

    @pytest.mark.asyncio
    async def test_done_without_companions(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await _run(orchestrator, state, _add(ParsedMealItem(text="banaani", amount=100)), DoneIntent())

        assert result.assistant_message == "Kaikki tallennettu! Söitkö muuta tällä aterialla?"
        assert result.state.pending_question is None

    @pytest.mark.asyncio
    async def test_done_with_unresolved_items(
        self, orchestrator: ConversationOrchestrator, state: ConversationState
    ) -> None:
        result = await _run(orchestrator, state, _add(ParsedMealItem(text="banaani")), DoneIntent())

        assert result.assistant_message.startswith(
            "Sinulla on vielä 1 kohdetta ratkaisematta. Haluatko jatkaa vai ohittaa? Kuinka paljon: Banaani?"
        )
        assert result.state.pending_question.type == QuestionType.PORTION


# ═══════════════════════════════════════════════════════════
# MISC
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_answer_without_question(orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
    result = await orchestrator.process(_answer(SelectionAnswer(index=0)), state)

    assert result.assistant_message == NOT_UNDERSTOOD


@pytest.mark.asyncio
async def test_unclear_without_question(orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
    result = await orchestrator.process(UnclearIntent(), state)

    assert result.assistant_message == NOT_UNDERSTOOD_LIST


@pytest.mark.asyncio
async def test_search_uses_conversation_language(mock_food_search: Any) -> None:
    orchestrator = ConversationOrchestrator(
        food_search=mock_food_search,
        settings=ConversationSettings(language="en"),
    )
    state = orchestrator.start_conversation("session_1", "meal_1")

    await orchestrator.process(_add(ParsedMealItem(text="Muna")), state)

    assert state.language == "en"
    mock_food_search.search_foods.assert_awaited_once_with("kananmuna", "en")


@pytest.mark.asyncio
async def test_search_failure_propagates(
    orchestrator: ConversationOrchestrator, state: ConversationState, mock_food_search: Any
) -> None:
    mock_food_search.search_foods.side_effect = ExternalServiceError("Fineli search failed: timeout")

    with pytest.raises(ExternalServiceError):
        await orchestrator.process(_add(ParsedMealItem(text="banaani")), state)


class TestResultRanker:
    """Test the optional AI result ranker."""

    @pytest.fixture
    def ranker(self, milk: FineliFood, skim_milk: FineliFood) -> Any:
        ranker = AsyncMock(spec=IResultRanker)
        ranker.rank = AsyncMock(return_value=[skim_milk, milk])
        return ranker

    @pytest.mark.asyncio
    async def test_ranker_orders_candidates(
        self, mock_food_search: Any, ranker: Any, state: ConversationState
    ) -> None:
        orchestrator = ConversationOrchestrator(food_search=mock_food_search, result_ranker=ranker)

        result = await orchestrator.process(_add(ParsedMealItem(text="maito")), state)

        assert [food.id for food in result.state.active_item().fineli_candidates] == [602, 601]
        ranker.rank.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ranker_skipped_when_grams_known(
        self, mock_food_search: Any, ranker: Any, state: ConversationState
    ) -> None:
        orchestrator = ConversationOrchestrator(food_search=mock_food_search, result_ranker=ranker)

        await orchestrator.process(_add(ParsedMealItem(text="kanaa", amount=120, unit="g")), state)

        ranker.rank.assert_not_awaited()


@pytest.mark.asyncio
async def test_full_conversation(orchestrator: ConversationOrchestrator, state: ConversationState) -> None:
    result = await _run(
        orchestrator,
        state,
        _add(ParsedMealItem(text="banaani"), ParsedMealItem(text="maito")),
        _answer(PortionSizeAnswer(key="KPL_M")),
        _answer(SelectionAnswer(index=0)),
        _answer(VolumeAnswer(value=2, unit="dl")),
        DoneIntent(),
    )

    assert result.assistant_message == "Kaikki tallennettu! Söitkö muuta tällä aterialla?"
    assert result.state.unresolved_queue == ()
    assert all(item.state == ItemState.RESOLVED for item in result.state.items)
    assert [line.portion_grams for line in result.state.resolved_line_items()] == [125, 206]
    assert result.state.meal_totals()["PROT"] == pytest.approx(1.5 + 7.21)
