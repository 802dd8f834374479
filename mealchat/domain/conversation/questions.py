"""
Question templates.

Finnish messages for disambiguation, portion, no-match, completion and
companion questions. Each generator returns the message to show and the
PendingQuestion that records what was asked.
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from mealchat.domain.conversation.items import (
    DisambiguatingItem,
    NoMatchItem,
    ParsedItem,
    PortioningItem,
)
from mealchat.domain.conversation.state import (
    PendingQuestion,
    QuestionOption,
    QuestionType,
)
from mealchat.domain.fineli.models import FineliFood, FineliUnit
from mealchat.domain.shared.value_objects import generate_id, now_ms

# No-match retries before the item is skipped
MAX_NO_MATCH_RETRIES = 2

SKIP_OPTION_KEY = "ohita"

_PORTION_SIZES = (
    ("PORTS", "pieni annos", "Pieni annos"),
    ("PORTM", "normaali annos", "Normaali annos"),
    ("PORTL", "iso annos", "Iso annos"),
)
_PIECE_SIZES = (
    ("KPL_S", "pieni", "Pieni"),
    ("KPL_M", "keskikokoinen", "Keskikokoinen"),
    ("KPL_L", "iso", "Iso"),
)


class QuestionPrompt(BaseModel):
    """Message plus the question it asks."""

    model_config = ConfigDict(frozen=True)

    message: str
    question: PendingQuestion


def _question(
    item_id: str,
    question_type: QuestionType,
    params: dict,
    options: Optional[Sequence[QuestionOption]],
    retry_count: int = 0,
    now: Optional[int] = None,
) -> PendingQuestion:
    return PendingQuestion(
        id=generate_id(),
        item_id=item_id,
        type=question_type,
        template_key=question_type.value,
        template_params=params,
        options=tuple(options) if options else None,
        retry_count=retry_count,
        asked_at=now_ms() if now is None else now,
    )


def format_grams(value: float) -> str:
    """120.0 -> '120', 62.5 -> '62.5'."""
    return f"{value:g}"


# ═══════════════════════════════════════════════════════════
# DISAMBIGUATION
# ═══════════════════════════════════════════════════════════


def generate_disambiguation_question(
    item: ParsedItem,
    candidates: Sequence[FineliFood],
    retry_count: int = 0,
    *,
    now: Optional[int] = None,
) -> QuestionPrompt:
    """
    Numbered candidate list; options are keyed "1".."n" with food ids.

    Example:
        >>> prompt = generate_disambiguation_question(item, [milk, skim_milk])
        >>> prompt.question.options[0].key
        '1'
    """
    count = len(candidates)
    lines = "\n".join(f"  {i + 1}) {food.name_fi}" for i, food in enumerate(candidates))
    message = (
        f'Löysin useita vaihtoehtoja hakusanalle "{item.raw_text}":\n{lines}\n\n'
        f"Kumman tarkoitat? Vastaa numerolla 1–{count}."
    )
    options = [
        QuestionOption(key=str(i + 1), label=food.name_fi, value=food.id)
        for i, food in enumerate(candidates)
    ]
    question = _question(
        item.id,
        QuestionType.DISAMBIGUATION,
        {"raw_text": item.raw_text, "count": count},
        options,
        retry_count,
        now,
    )
    return QuestionPrompt(message=message, question=question)


# ═══════════════════════════════════════════════════════════
# PORTION
# ═══════════════════════════════════════════════════════════


def _size_options(
    units: dict[str, FineliUnit],
    sizes: tuple[tuple[str, str, str], ...],
) -> tuple[list[str], list[QuestionOption]]:
    lines: list[str] = []
    options: list[QuestionOption] = []
    for code, text, label in sizes:
        unit = units.get(code)
        if unit is None:
            continue
        grams = format_grams(unit.mass_grams)
        lines.append(f"• {text} ({grams}g)")
        options.append(
            QuestionOption(
                key=code,
                label=f"{label} ({grams}g)",
                sublabel=f"{grams}g",
                value=unit.mass_grams,
            )
        )
    return lines, options


def generate_portion_question(
    item: ParsedItem,
    food: FineliFood,
    retry_count: int = 0,
    *,
    now: Optional[int] = None,
) -> QuestionPrompt:
    """
    Ask for the amount, offering the food's own Fineli sizes.

    Preference: portion sizes (PORTS/PORTM/PORTL), then piece sizes
    (KPL_S/KPL_M/KPL_L), then volume or grams when the food has a DL
    unit, else grams only.
    """
    units = {unit.code: unit for unit in food.units}

    lines, options = _size_options(units, _PORTION_SIZES)
    if not options:
        lines, options = _size_options(units, _PIECE_SIZES)

    if options:
        lines.append("• tai grammoina (esim. 120g)")
        message = f"Kuinka paljon: {food.name_fi}?\n" + "\n".join(lines)
    elif "DL" in units:
        message = f"Kuinka paljon: {food.name_fi}?\nVastaa tilavuutena (esim. 2 dl) tai grammoina."
        options = [
            QuestionOption(key="dl", label="Desilitroina", value="dl"),
            QuestionOption(key="g", label="Grammoina", value="g"),
        ]
    else:
        message = f"Kuinka monta grammaa: {food.name_fi}?"
        options = [QuestionOption(key="g", label="Grammoina", value="g")]

    question = _question(
        item.id,
        QuestionType.PORTION,
        {"food_name": food.name_fi},
        options,
        retry_count,
        now,
    )
    return QuestionPrompt(message=message, question=question)


# ═══════════════════════════════════════════════════════════
# NO MATCH
# ═══════════════════════════════════════════════════════════


def generate_no_match_question(
    item: ParsedItem,
    retry_count: int = 0,
    *,
    now: Optional[int] = None,
) -> QuestionPrompt:
    """Ask for another name; the wording changes after the first try."""
    if retry_count > 0:
        message = f'En löytänyt "{item.raw_text}" myöskään. Kokeile toista nimeä tai ohita.'
    else:
        message = f'En löytänyt "{item.raw_text}" Fineli-tietokannasta. Kokeile toista nimeä tai ohita.'

    question = _question(
        item.id,
        QuestionType.NO_MATCH_RETRY,
        {"raw_text": item.raw_text},
        [QuestionOption(key=SKIP_OPTION_KEY, label="Ohita", value="skip")],
        retry_count,
        now,
    )
    return QuestionPrompt(message=message, question=question)


# ═══════════════════════════════════════════════════════════
# COMPANION
# ═══════════════════════════════════════════════════════════


def generate_companion_question(
    primary_food: str,
    companion: str,
    primary_item_id: str,
    retry_count: int = 0,
    *,
    now: Optional[int] = None,
) -> QuestionPrompt:
    """Yes/no question about a food commonly eaten with primary_food."""
    question = _question(
        primary_item_id,
        QuestionType.COMPANION,
        {"primary_food": primary_food, "companion": companion},
        [
            QuestionOption(key="yes", label="Kyllä", value=True),
            QuestionOption(key="no", label="Ei", value=False),
        ],
        retry_count,
        now,
    )
    return QuestionPrompt(message=f"Käytitkö {companion} {primary_food} kanssa?", question=question)


# ═══════════════════════════════════════════════════════════
# MESSAGES
# ═══════════════════════════════════════════════════════════


def generate_completion_message() -> str:
    return "Kaikki tallennettu! Söitkö muuta tällä aterialla?"


def format_confirmation(food: FineliFood, portion_grams: float, portion_label: Optional[str] = None) -> str:
    """
    One-line confirmation of a resolved item.

    Example:
        >>> format_confirmation(egg, 60, "keskikokoinen")
        '✓ Kananmuna, keskikokoinen (60g)'
    """
    grams = format_grams(round(portion_grams, 1))
    if portion_label:
        return f"✓ {food.name_fi}, {portion_label} ({grams}g)"
    return f"✓ {food.name_fi}, {grams}g"


def format_added_notice(item_texts: Sequence[str]) -> str:
    """Notice for items added while another item is being asked about."""
    if len(item_texts) == 1:
        return f"Lisäsin {item_texts[0]} listalle."
    return f"Lisäsin {', '.join(item_texts)} listalle. Palaan niihin seuraavaksi."


# ═══════════════════════════════════════════════════════════
# ROUTER
# ═══════════════════════════════════════════════════════════


def generate_question(
    item: ParsedItem,
    retry_count: int = 0,
    *,
    now: Optional[int] = None,
) -> Optional[QuestionPrompt]:
    """
    Question for an item according to its state.

    Returns None for PARSED and RESOLVED items: nothing to ask.
    """
    if isinstance(item, DisambiguatingItem):
        return generate_disambiguation_question(item, item.fineli_candidates, retry_count, now=now)
    if isinstance(item, PortioningItem):
        return generate_portion_question(item, item.selected_food, retry_count, now=now)
    if isinstance(item, NoMatchItem):
        return generate_no_match_question(item, retry_count, now=now)
    return None
