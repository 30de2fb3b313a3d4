"""In-memory TTL cache with an injectable clock.

Each cache instance is owned by the service that creates it; there is no
module-level cache. Tests pass a fake clock to move time forward.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar


K = TypeVar("K")
V = TypeVar("V")

Clock = Callable[[], float]


@dataclass
class CacheStats:
    """Hit/miss counters for a cache instance."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0


class TTLCache(Generic[K, V]):
    """Key/value cache whose entries expire `ttl` seconds after being set.

    Expired entries are dropped lazily on read. When `max_entries` is reached
    the least recently written entry is evicted.
    """

    def __init__(
        self,
        ttl: float,
        clock: Clock = time.monotonic,
        max_entries: int | None = None,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[K, tuple[float, V]] = OrderedDict()
        self.stats = CacheStats()

    def get(self, key: K) -> V | None:
        """Return the cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self.stats.misses += 1
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.stats.expirations += 1
            self.stats.misses += 1
            return None

        self.stats.hits += 1
        return value

    def set(self, key: K, value: V) -> None:
        """Store a value, restarting its TTL."""
        self._entries.pop(key, None)
        self._entries[key] = (self._clock() + self.ttl, value)
        if self.max_entries is not None and len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            self.stats.evictions += 1

    def invalidate(self, key: K) -> bool:
        """Drop one entry. Returns True if it was cached."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and self._clock() < entry[0]

    def __len__(self) -> int:
        return len(self._entries)
