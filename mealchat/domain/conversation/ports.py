"""
Ports (Interfaces) for Conversation Dependencies.

Defines the interfaces of the external services the conversation
orchestrator talks to. Adapters live in the infrastructure layer.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Protocol, runtime_checkable

from mealchat.domain.fineli.models import FineliFood


@runtime_checkable
class IFoodSearchClient(Protocol):
    """
    Port for Fineli food search.

    This is an interface - implementations may query the Fineli REST
    API, a local index or a cache in front of either.
    """

    async def search_foods(self, query: str, lang: str = "fi") -> list[FineliFood]:
        """
        Search foods by name.

        Args:
            query: Search text (e.g., "kaurapuuro", "maito, kevyt")
            lang: Name language to search ("fi", "en", "sv")

        Returns:
            Matching foods, possibly empty

        Raises:
            ExternalServiceError: If the search backend fails
        """
        ...


@runtime_checkable
class IResultRanker(Protocol):
    """
    Port for re-ranking search results (e.g. with a language model).

    Optional: without a ranker the heuristic ranking is used.
    """

    async def rank(self, results: list[FineliFood], query: str) -> list[FineliFood]:
        """
        Order results by relevance to the query.

        Args:
            results: Search results to order
            query: What the user typed

        Returns:
            The most relevant foods first, possibly fewer than given
        """
        ...
