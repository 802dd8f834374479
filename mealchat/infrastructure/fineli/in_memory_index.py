"""In-memory food index.

Provides an in-memory implementation of the IFoodSearchClient port for
tests, demos and offline use. Uses a dictionary for storage with no
external dependencies.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from mealchat.domain.fineli.mapper import FineliMapper
from mealchat.domain.fineli.models import FineliFood
from mealchat.domain.fineli.search import normalize_query

logger = structlog.get_logger(__name__)


class InMemoryFoodIndex:
    """
    In-memory implementation of IFoodSearchClient port.

    Search is a case-insensitive substring match on the food name in
    the requested language (Finnish when the food has no such name),
    returned in insertion order.

    Persistence: Data lost on process restart (in-memory only)

    Example:
        >>> index = InMemoryFoodIndex([banana, apple])
        >>> foods = await index.search_foods("banaani")
        >>> assert foods[0].id == banana.id
    """

    def __init__(self, foods: Optional[Iterable[FineliFood]] = None, max_results: int = 25) -> None:
        """
        Initialize index.

        Args:
            foods: Initial foods
            max_results: Upper bound of results per search
        """
        self._storage: Dict[int, FineliFood] = {}
        self.max_results = max_results
        for food in foods or ():
            self.add(food)

    @classmethod
    def from_payloads(cls, payloads: Iterable[Mapping[str, Any]], max_results: int = 25) -> "InMemoryFoodIndex":
        """Build an index from Fineli search API items."""
        return cls((FineliMapper.from_search_item(payload) for payload in payloads), max_results)

    def add(self, food: FineliFood) -> None:
        """Add or replace a food (keyed by Fineli id)."""
        self._storage[food.id] = food

    def get_food(self, food_id: int) -> Optional[FineliFood]:
        """Food with the given Fineli id, if indexed."""
        return self._storage.get(food_id)

    async def search_foods(self, query: str, lang: str = "fi") -> List[FineliFood]:
        """
        Search foods whose name contains the query.

        Args:
            query: Search text
            lang: Name language ("fi", "en", "sv")

        Returns:
            Matching foods, at most max_results
        """
        needle = normalize_query(query)
        if not needle:
            return []

        matches = [
            food for food in self._storage.values() if needle in food.display_name(lang).lower()
        ][: self.max_results]

        logger.debug("Index search", query=needle, lang=lang, count=len(matches))
        return matches

    def count(self) -> int:
        """Number of indexed foods."""
        return len(self._storage)

    def clear(self) -> None:
        """Remove all foods."""
        self._storage.clear()
