"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around each read-modify-write.
- Bounded: entries live in an LRU cache with a TTL, so spoofed-identity floods
  cannot grow memory without limit.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitEntry, RateLimitStatus
from app.utils.simple_cache import SimpleTTLCache


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per identity.

    Each identity's window starts at its first request (or first request after
    the previous window expired) and lasts ``window_ms``. Within a window, the
    first ``max_requests`` requests are admitted and the rest refused.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_ms: int,
        max_identities: int = 500,
        identity_ttl_ms: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            max_requests: Maximum number of admitted requests per window.
            window_ms: Size of the fixed window in milliseconds.
            max_identities: Capacity of the entry store before LRU eviction.
            identity_ttl_ms: How long an idle identity is kept. Never shorter
                than ``window_ms``; defaults to ``window_ms``.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If any limit is invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if max_identities < 1:
            raise ValueError("max_identities must be >= 1")

        self._max_requests = max_requests
        self._window_ms = window_ms
        self._clock = clock
        self._lock = threading.RLock()

        ttl_ms = max(identity_ttl_ms or window_ms, window_ms)
        self._entries: SimpleTTLCache[RateLimitEntry] = SimpleTTLCache(
            ttl_seconds=ttl_ms / 1000,
            max_entries=max_identities,
            clock=clock,
        )

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def now(self) -> float:
        return self._clock()

    def _now_ms(self) -> float:
        return self.now() * 1000

    def admit(self, identity: str) -> bool:
        """Consume one request from the identity's budget if any remains.

        Args:
            identity: Client identity (e.g., IP address or "unknown").

        Returns:
            True if the request is admitted, False if the window is exhausted.
        """
        now = self._now_ms()

        with self._lock:
            entry = self._entries.get(identity)

            if entry is None or now > entry.reset_time:
                self._entries.set(
                    identity,
                    RateLimitEntry(count=1, reset_time=now + self._window_ms),
                )
                return True

            if entry.count >= self._max_requests:
                return False

            entry.count += 1
            self._entries.set(identity, entry)
            return True

    def status(self, identity: str) -> RateLimitStatus:
        """Snapshot the identity's budget without recording a request.

        Args:
            identity: Client identity.

        Returns:
            RateLimitStatus; a full budget when no live window exists.
        """
        now = self._now_ms()

        with self._lock:
            entry = self._entries.peek(identity)
            if entry is None or now > entry.reset_time:
                return RateLimitStatus(
                    remaining=self._max_requests,
                    reset_in=self._window_ms,
                    limited=False,
                )

            return RateLimitStatus(
                remaining=max(0, self._max_requests - entry.count),
                reset_in=entry.reset_time - now,
                limited=entry.count >= self._max_requests,
            )

    def reset(self, identity: str | None = None) -> None:
        """Forget one identity, or every identity when None."""
        with self._lock:
            if identity is None:
                self._entries.clear()
            else:
                self._entries.delete(identity)
