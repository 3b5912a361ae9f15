"""httpx-backed upstream client."""

from __future__ import annotations

import json
from typing import Any, Sequence

import httpx

from app.adapters.upstream.base import (
    AbstractUpstreamClient,
    UpstreamErr,
    UpstreamOk,
    UpstreamResult,
)

GENERIC_UPSTREAM_ERROR = "Failed to fetch from upstream API"


def parse_error_body(response: httpx.Response) -> UpstreamErr:
    """Normalize an upstream error response.

    TMDB reports failures as ``{"status_code": 34, "status_message": "..."}``.
    Missing fields and non-JSON bodies fall back to a generic message.
    """
    message = GENERIC_UPSTREAM_ERROR
    code: int | None = None

    try:
        payload: Any = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None

    if isinstance(payload, dict):
        raw_message = payload.get("status_message") or payload.get("message")
        if isinstance(raw_message, str) and raw_message:
            message = raw_message
        raw_code = payload.get("status_code")
        if isinstance(raw_code, int) and not isinstance(raw_code, bool):
            code = raw_code

    return UpstreamErr(status_code=response.status_code, message=message, code=code)


class HttpxUpstreamClient(AbstractUpstreamClient):
    """Fetch JSON from the upstream API over a pooled ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            base_url: Upstream API base, e.g. "https://api.themoviedb.org/3".
            timeout_seconds: Timeout applied to connect, read, write and pool.
            transport: Optional transport override (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(
        self,
        path: str,
        params: Sequence[tuple[str, str]],
    ) -> UpstreamResult:
        try:
            response = await self.client.get(self.build_url(path), params=list(params))
        except httpx.HTTPError as exc:
            raise RuntimeError(f"Upstream request failed: {type(exc).__name__}") from exc

        if not response.is_success:
            return parse_error_body(response)

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RuntimeError("Upstream returned invalid JSON") from exc

        return UpstreamOk(status_code=response.status_code, body=body)

    async def aclose(self) -> None:
        await self.client.aclose()
