"""In-memory TTL cache for n8n read responses."""

import time
from typing import Callable, Hashable, TypeVar

from cachetools import TTLCache
from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)

CacheKey = tuple[Hashable, ...]


class ResponseCache:
    """TTL cache keyed by ``(resource class, operation, *params)``.

    Values are pydantic models; readers always receive a deep copy so a
    caller mutating its result never alters the cached snapshot. All
    operations are synchronous, so they are atomic on the event loop.

    Each resource class has a generation that ``invalidate`` advances. A
    reader takes the generation before its request and hands it to
    ``set``; a value read across an invalidation is not stored.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        maxsize: int = 1000,
        enabled: bool = True,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.enabled = enabled
        self._entries: TTLCache[CacheKey, BaseModel] = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)
        self._generations: dict[Hashable, int] = {}

    def generation(self, resource: str) -> int:
        return self._generations.get(resource, 0)

    def get(self, key: CacheKey) -> BaseModel | None:
        if not self.enabled:
            return None
        value = self._entries.get(key)
        if value is None:
            return None
        return value.model_copy(deep=True)

    def set(self, key: CacheKey, value: M, generation: int | None = None) -> M:
        """Store ``value`` unless its resource class was invalidated since ``generation``.

        Returns:
            ``value`` unchanged, whether or not it was stored.
        """
        if not self.enabled:
            return value
        if generation is not None and generation != self.generation(key[0]):
            return value
        self._entries[key] = value.model_copy(deep=True)
        return value

    def invalidate(self, *resources: str) -> int:
        """Drop every entry belonging to the given resource classes.

        Returns:
            Number of entries removed.
        """
        for resource in resources:
            self._generations[resource] = self.generation(resource) + 1
        stale = [key for key in list(self._entries.keys()) if key and key[0] in resources]
        for key in stale:
            self._entries.pop(key, None)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
