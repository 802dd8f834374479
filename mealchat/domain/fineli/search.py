"""
Search result helpers.

Heuristic ranking of Fineli search results and selection of
unambiguous identity matches.
"""

from __future__ import annotations

import re
from typing import Sequence

from mealchat.domain.fineli.models import FineliFood, FoodType

# Common Finnish food names -> Fineli naming convention
FOOD_ALIASES: dict[str, str] = {
    # Dairy
    "kevytmaito": "maito, kevyt",
    "rasvaton maito": "maito, rasvaton",
    "täysmaito": "maito, täysi",
    # Grains & bread
    "sekaleipä": "ruisleipä, ruissekaleipä",
    "graham": "sämpylä, graham",
    # Cheese varieties
    "edam": "juusto, edam",
    "emmental": "juusto, emmental",
    "kermajuusto": "juusto, kerma",
    # Meat & protein
    "porsas": "porsaanliha",
    "nauta": "naudanliha",
    "muna": "kananmuna",
    # Prepared dishes
    "kana curry": "curry, kananliha",
    "perunamuusi": "perunasose",
    "lihapullat": "lihapulla",
}

MIN_RELEVANCE_SCORE = 10
DEFAULT_RESULT_LIMIT = 5

_TRAILING_PUNCTUATION = re.compile(r"[,.]$")
_WHITESPACE = re.compile(r"\s+")


def normalize_query(text: str) -> str:
    """Lower-case, trim, drop trailing ',' or '.', collapse whitespace."""
    normalized = _TRAILING_PUNCTUATION.sub("", text.lower().strip())
    return _WHITESPACE.sub(" ", normalized).strip()


def expand_alias(text: str) -> str:
    """Fineli search term for a colloquial name ('muna' -> 'kananmuna')."""
    normalized = normalize_query(text)
    return FOOD_ALIASES.get(normalized, normalized)


def score_result(food: FineliFood, query: str) -> int:
    """Relevance of a food for an already normalized query."""
    name = food.name_fi.lower()
    primary = food.primary_name()

    score = 0
    if name == query:
        score = 100
    elif primary == query:
        score = 90
    elif primary.startswith(query):
        score += 60
    elif name.startswith(query):
        score += 50
    elif query in primary:
        score += 35
    elif query in name:
        score += 20

    words = query.split()
    if len(words) > 1:
        score += 8 * sum(1 for word in words if word in name)

    # Prefer raw ingredients over composite dishes for general queries
    if food.type == FoodType.FOOD:
        score += 10

    # Prefer shorter names (more specific foods)
    if len(name) < 40:
        score += 3
    if len(name) < 25:
        score += 2

    return score


def rank_search_results(
    results: Sequence[FineliFood],
    query: str,
    limit: int = DEFAULT_RESULT_LIMIT,
) -> list[FineliFood]:
    """
    Rank results by relevance and drop clearly irrelevant ones.

    Keeps the single best result when nothing clears the threshold.
    Ties keep search order.

    Example:
        >>> ranked = rank_search_results(results, "banaani")
        >>> assert len(ranked) <= 5
    """
    normalized = normalize_query(query)
    if not normalized:
        return list(results[:limit])

    scored = sorted(
        ((score_result(food, normalized), food) for food in results),
        key=lambda pair: pair[0],
        reverse=True,
    )
    relevant = [pair for pair in scored if pair[0] > MIN_RELEVANCE_SCORE]
    kept = relevant or scored[:1]
    return [food for _, food in kept[:limit]]


def select_exact_matches(ranked: Sequence[FineliFood], query: str) -> list[FineliFood]:
    """
    Foods that are an unambiguous identity match for the query.

    A food matches when its full or primary name equals the normalized
    query or its alias. A lone ranked result is always exact.
    """
    if len(ranked) == 1:
        return list(ranked)

    targets = {normalize_query(query), expand_alias(query)}
    return [
        food
        for food in ranked
        if food.name_fi.lower() in targets or food.primary_name() in targets
    ]
