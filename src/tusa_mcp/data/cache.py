"""Simple TTL-based caches for slow-changing upstream data."""

import asyncio
import time
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """Keyed TTL cache.

    Each key expires independently. A single async lock is shared by all keys
    so callers can double-check after acquiring it and avoid duplicate fetches.
    Arrival data never goes through here: countdowns are always fetched fresh.
    """

    def __init__(self, ttl: float = 60.0, clock=time.monotonic):
        """Initialize the cache.

        Args:
            ttl: Time-to-live in seconds for cached values.
            clock: Monotonic clock, injectable for tests.
        """
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[K, tuple[float, V]] = {}
        self._lock = asyncio.Lock()

    def get(self, key: K) -> V | None:
        """Get the cached value for a key if it hasn't expired.

        Returns:
            The cached value if valid, None if expired or not set.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: K, value: V) -> None:
        """Store a value under a key with the configured TTL."""
        self._entries[key] = (self._clock() + self._ttl, value)

    def clear(self) -> None:
        """Drop every cached entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def lock(self) -> asyncio.Lock:
        """Get the async lock for coordinating fetches."""
        return self._lock
