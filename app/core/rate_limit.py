"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- Isolated state: the limiter is built by the app factory and stored on
  ``app.state``, so every app (and every test) owns its own counters.

Rate limiting strategy:
- Fixed window per client identity (first forwarded-for hop, real-IP header,
  CDN client-IP header, else "unknown").
"""

from __future__ import annotations

import logging
import math

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.client_identity import resolve_client_identity
from app.core.config import RateLimitSettings
from app.core.errors import RateLimitAppError
from app.core.logging import hash_identity

logger = logging.getLogger(__name__)


def build_rate_limiter(rate_limit: RateLimitSettings) -> AbstractRateLimiter:
    """Create the limiter described by ``rate_limit`` settings."""

    return InMemoryFixedWindowRateLimiter(
        max_requests=rate_limit.max_requests,
        window_ms=rate_limit.window_ms,
        max_identities=rate_limit.max_identities,
        identity_ttl_ms=rate_limit.identity_ttl_ms,
    )


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""

    return request.app.state.rate_limiter


async def enforce_rate_limit(request: Request) -> str:
    """FastAPI dependency admitting the caller or raising 429.

    Consumes one request from the caller's window. The admission is not
    refunded if the client disconnects before the upstream answers.

    Args:
        request: FastAPI request.

    Returns:
        str: The resolved client identity, for downstream rate-limit headers.

    Raises:
        RateLimitAppError: When the identity has exhausted its window.
    """

    limiter = get_rate_limiter(request)
    identity = resolve_client_identity(request.headers)

    if limiter.admit(identity):
        return identity

    status = limiter.status(identity)
    reset_in_seconds = status.reset_in_seconds
    logger.info(
        "proxy.rate_limited",
        extra={
            "identity_hash": hash_identity(identity),
            "limit": limiter.max_requests,
            "retry_after_s": reset_in_seconds,
            "path": request.url.path,
        },
    )

    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message="Too many requests. Please try again later.",
        details={"retry_after": reset_in_seconds},
        reset_in_seconds=reset_in_seconds,
        reset_at=math.ceil(limiter.now() + status.reset_in / 1000),
    )
