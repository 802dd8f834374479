"""
Fineli search cache with TTL support.

Caches food search results to reduce calls to the Fineli API.
"""

import time
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from mealchat.domain.conversation.ports import IFoodSearchClient
from mealchat.domain.fineli.models import FineliFood
from mealchat.domain.fineli.search import normalize_query
from mealchat.infrastructure.config import get_search_cache_ttl_seconds

logger = structlog.get_logger(__name__)


class SearchCacheEntry(BaseModel):
    """Cached search result."""

    model_config = ConfigDict(frozen=True)

    key: str
    foods: tuple[FineliFood, ...]
    expires_at: float

    def is_expired(self) -> bool:
        """Check if entry is past its expiry time."""
        return time.time() >= self.expires_at


class FoodSearchCache:
    """In-memory food search cache with TTL."""

    def __init__(self, default_ttl_seconds: Optional[int] = None) -> None:
        """Initialize cache.

        Args:
            default_ttl_seconds: Cache TTL (defaults to MEALCHAT_SEARCH_CACHE_TTL_SECONDS, 24 hours)
        """
        self.default_ttl = get_search_cache_ttl_seconds() if default_ttl_seconds is None else default_ttl_seconds
        self._cache: dict[str, SearchCacheEntry] = {}

    def _make_key(self, lang: str, query: str) -> str:
        """Generate cache key ('fi:kaurapuuro')."""
        return f"{lang}:{normalize_query(query)}"

    def get(self, query: str, lang: str = "fi") -> Optional[list[FineliFood]]:
        """Get cached results of a search.

        Args:
            query: Search text
            lang: Search language

        Returns:
            Cached foods (possibly empty) or None on miss

        Example:
            >>> cache = FoodSearchCache()
            >>> assert cache.get("maito") is None  # Cache is empty
        """
        key = self._make_key(lang, query)
        entry = self._cache.get(key)

        if entry is None:
            logger.debug("Cache miss", key=key)
            return None

        if entry.is_expired():
            logger.debug("Cache expired", key=key)
            del self._cache[key]
            return None

        logger.debug("Cache hit", key=key)
        return list(entry.foods)

    def set(self, query: str, foods: list[FineliFood], lang: str = "fi") -> None:
        """Cache search results.

        Args:
            query: Search text
            foods: Results to cache
            lang: Search language
        """
        key = self._make_key(lang, query)
        self._cache[key] = SearchCacheEntry(
            key=key,
            foods=tuple(foods),
            expires_at=time.time() + self.default_ttl,
        )
        logger.debug("Cached search", key=key, count=len(foods), ttl=self.default_ttl)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()
        logger.info("Cache cleared")

    def remove_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired()]

        for key in expired_keys:
            del self._cache[key]

        if expired_keys:
            logger.info("Removed expired entries", count=len(expired_keys))

        return len(expired_keys)

    def size(self) -> int:
        """Number of cached searches."""
        return len(self._cache)


class CachedFoodSearch:
    """
    IFoodSearchClient decorator that serves repeated searches from a cache.

    Failures of the wrapped client propagate and are not cached.

    Example:
        >>> search = CachedFoodSearch(FineliApiClient(), FoodSearchCache(3600))
        >>> foods = await search.search_foods("kaurapuuro")
    """

    def __init__(self, inner: IFoodSearchClient, cache: Optional[FoodSearchCache] = None) -> None:
        self.inner = inner
        self.cache = cache or FoodSearchCache()

    async def search_foods(self, query: str, lang: str = "fi") -> list[FineliFood]:
        cached = self.cache.get(query, lang)
        if cached is not None:
            return cached

        foods = await self.inner.search_foods(query, lang)
        self.cache.set(query, foods, lang)
        return foods
