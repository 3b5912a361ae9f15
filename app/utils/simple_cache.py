"""In-memory TTL cache with LRU eviction.

Backs the rate limiter's per-identity entries and the aggregator's page cache.
Every operation takes one re-entrant lock, so callers can compose a read and a
write under their own lock without deadlocking.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheItem(Generic[V]):
    value: V
    expires_at: float


class SimpleTTLCache(Generic[V]):
    """Bounded mapping whose entries expire ``ttl_seconds`` after their last write.

    Reads through :meth:`get` refresh recency (not expiry); :meth:`peek` reads
    without side effects. When full, the least recently used entry goes first.

    Attributes:
        ttl_seconds: Lifetime of an entry after each ``set``.
        max_entries: Capacity, or None for unbounded.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        max_entries: int | None = 1024,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._items: OrderedDict[str, CacheItem[V]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SimpleTTLCache(ttl_seconds={self.ttl_seconds}, "
            f"max_entries={self.max_entries}, size={len(self._items)})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _now(self) -> float:
        # Looked up per call so tests can patch ``time`` on this module
        return self._clock() if self._clock is not None else time.time()

    def _live(self, key: str) -> CacheItem[V] | None:
        item = self._items.get(key)
        if item is not None and self._now() > item.expires_at:
            del self._items[key]
            self._evictions += 1
            return None
        return item

    def get(self, key: str) -> V | None:
        """Return the live value for ``key`` (marking it recently used) or None."""
        with self._lock:
            item = self._live(key)
            if item is None:
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key": key[:16]})
                return None

            self._hits += 1
            self._items.move_to_end(key)
            return item.value

    def peek(self, key: str) -> V | None:
        """Return the live value for ``key`` without touching recency or stats."""
        with self._lock:
            item = self._items.get(key)
            if item is None or self._now() > item.expires_at:
                return None
            return item.value

    def set(self, key: str, value: V) -> None:
        """Store ``value`` with a fresh TTL, dropping expired then LRU entries."""
        with self._lock:
            now = self._now()
            for stale in [k for k, item in self._items.items() if now > item.expires_at]:
                del self._items[stale]
                self._evictions += 1

            self._items[key] = CacheItem(value=value, expires_at=now + self.ttl_seconds)
            self._items.move_to_end(key)

            if self.max_entries is not None:
                while len(self._items) > self.max_entries:
                    self._items.popitem(last=False)
                    self._evictions += 1

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        """Drop every entry and reset counters."""
        with self._lock:
            self._items.clear()
            self._hits = self._misses = self._evictions = 0

    def stats(self) -> dict[str, int | float | None]:
        with self._lock:
            return {
                "ttl_seconds": self.ttl_seconds,
                "max_entries": self.max_entries,
                "entries": len(self._items),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
