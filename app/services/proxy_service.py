"""Upstream proxy service: credential injection, forwarding and response shaping.

The service sits between the HTTP route and the upstream adapter. Admission is
decided earlier by the rate-limit dependency; this layer:
- rebuilds the upstream query with the server-side credential appended last
- forwards the request and classifies the tagged upstream result
- maps upstream failures and transport failures to application errors
- attaches cache, rate-limit and CORS headers to successful responses
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.upstream.base import AbstractUpstreamClient, UpstreamErr
from app.core.cache_policy import build_cache_control, resolve_cache_lifetime
from app.core.config import ProxySettings
from app.core.errors import TransportAppError, UpstreamAppError, ValidationAppError
from app.core.logging import hash_identity

logger = logging.getLogger(__name__)

CREDENTIAL_PARAM = "api_key"


def build_forward_params(
    query_items: Iterable[tuple[str, str]],
    api_key: str,
) -> list[tuple[str, str]]:
    """Copy client query parameters and inject the server credential.

    Any client-supplied credential is dropped, whatever its casing; the
    configured key is always the last parameter sent.

    Args:
        query_items: Client query parameters, repeated keys allowed.
        api_key: Server-side upstream credential.

    Returns:
        Parameters in forwarding order.
    """
    params = [
        (key, value)
        for key, value in query_items
        if key.lower() != CREDENTIAL_PARAM
    ]
    params.append((CREDENTIAL_PARAM, api_key))
    return params


@dataclass(frozen=True)
class ProxyResponse:
    """JSON body and headers for a successful proxied call."""

    body: Any
    headers: dict[str, str] = field(default_factory=dict)


class ProxyService:
    """Forward catalog requests to the upstream API on behalf of clients.

    Attributes:
        upstream: Adapter performing the actual HTTP call.
        limiter: Rate limiter, read (never mutated) for informational headers.
    """

    def __init__(
        self,
        upstream: AbstractUpstreamClient,
        limiter: AbstractRateLimiter,
        *,
        api_key: str,
        proxy_settings: ProxySettings,
    ) -> None:
        self.upstream = upstream
        self.limiter = limiter
        self._api_key = api_key
        self._settings = proxy_settings

    def cors_headers(self, methods: str = "GET") -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self._settings.allow_origin,
            "Access-Control-Allow-Methods": methods,
        }

    def preflight_headers(self) -> dict[str, str]:
        """Headers answering a CORS preflight; no rate-limit interaction."""
        headers = self.cors_headers("GET, OPTIONS")
        headers["Access-Control-Allow-Headers"] = "Content-Type"
        return headers

    def _success_headers(self, path: str, identity: str) -> dict[str, str]:
        lifetime = resolve_cache_lifetime(path, default=self._settings.default_cache_seconds)
        status = self.limiter.status(identity)
        return {
            "Cache-Control": build_cache_control(
                lifetime, self._settings.stale_while_revalidate_seconds
            ),
            "X-RateLimit-Limit": str(self.limiter.max_requests),
            "X-RateLimit-Remaining": str(status.remaining),
            **self.cors_headers(),
        }

    async def forward(
        self,
        path: str,
        query_items: Iterable[tuple[str, str]],
        identity: str,
    ) -> ProxyResponse:
        """Forward one admitted GET request to the upstream API.

        Args:
            path: Upstream endpoint path (e.g. "movie/popular").
            query_items: Client query parameters.
            identity: Caller identity already admitted by the rate limiter.

        Returns:
            ProxyResponse with the upstream JSON body and response headers.

        Raises:
            UpstreamAppError: If the upstream answered with a non-success status.
            TransportAppError: If the upstream could not be reached or parsed.
            ValidationAppError: If no upstream path was given.
        """
        path = path.strip("/")
        if not path:
            raise ValidationAppError(
                code="missing_upstream_path",
                message="An upstream endpoint path is required",
            )

        params = build_forward_params(query_items, self._api_key)
        start = time.perf_counter()

        try:
            result = await self.upstream.get_json(path, params)
        except RuntimeError as exc:
            logger.error(
                "proxy.transport_error",
                extra={
                    "path": path,
                    "error_type": type(exc.__cause__ or exc).__name__,
                    "error_msg": str(exc),
                    "identity_hash": hash_identity(identity),
                },
            )
            raise TransportAppError(
                code="upstream_unreachable",
                message="Failed to connect to upstream API",
            ) from exc

        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        if isinstance(result, UpstreamErr):
            logger.warning(
                "proxy.upstream_error",
                extra={
                    "path": path,
                    "upstream_status": result.status_code,
                    "upstream_code": result.code,
                    "duration_ms": duration_ms,
                },
            )
            raise UpstreamAppError(
                code="upstream_error",
                message=result.message,
                details={"upstream_status": result.status_code},
                upstream_status=result.status_code,
                upstream_code=result.code,
            )

        logger.info(
            "proxy.forwarded",
            extra={
                "path": path,
                "status": result.status_code,
                "duration_ms": duration_ms,
                "identity_hash": hash_identity(identity),
            },
        )
        return ProxyResponse(body=result.body, headers=self._success_headers(path, identity))
