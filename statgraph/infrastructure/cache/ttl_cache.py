"""Bounded async cache with TTL eviction."""

import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Cache with max size and TTL, shared by coroutines of one event loop."""

    def __init__(self, max_size: int = 200, ttl_seconds: float = 600):
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._entries: dict[str, tuple[T, float]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        value, stored_at = entry
        if time.monotonic() - stored_at > self._ttl:
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return value

    def set(self, key: str, value: T) -> None:
        if len(self._entries) >= self._max_size and key not in self._entries:
            oldest_key = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest_key]
        self._entries[key] = (value, time.monotonic())

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value or await *loader* and cache its result.

        Loader errors propagate and nothing is cached.
        """
        value = self.get(key)
        if value is not None:
            return value
        value = await loader()
        self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()

    @property
    def stats(self) -> dict[str, int]:
        return {"size": len(self._entries), "hits": self._hits, "misses": self._misses}
