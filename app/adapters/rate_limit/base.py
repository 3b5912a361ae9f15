"""Rate limiter interfaces.

The proxy depends on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RateLimitEntry:
    """Requests observed for one identity in its current window.

    Attributes:
        count: Admitted requests in the window.
        reset_time: Absolute time (epoch ms) at which the window expires.
    """

    count: int
    reset_time: float


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only snapshot of an identity's budget.

    Attributes:
        remaining: Requests still allowed in the current window.
        reset_in: Milliseconds until the window resets.
        limited: Whether the identity is currently refused.
    """

    remaining: int
    reset_in: float
    limited: bool

    @property
    def reset_in_seconds(self) -> int:
        """Seconds until reset, rounded up (suitable for Retry-After)."""
        return max(0, math.ceil(self.reset_in / 1000))


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @property
    @abstractmethod
    def max_requests(self) -> int:
        """Requests allowed per window."""
        raise NotImplementedError

    def now(self) -> float:
        """Current UNIX time in seconds, as seen by the limiter."""
        return time.time()

    @abstractmethod
    def admit(self, identity: str) -> bool:
        """Decide whether a request from ``identity`` may proceed.

        Records the admission as a side effect. Refusals do not mutate state.
        """
        raise NotImplementedError

    @abstractmethod
    def status(self, identity: str) -> RateLimitStatus:
        """Return the current budget for ``identity`` without mutating it."""
        raise NotImplementedError
