"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment the settings module reads at import time and
provides a recording stand-in for the upstream catalog API.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")

# Set default env vars that all tests might need
os.environ.setdefault("TMDB_API_KEY", "server-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Callable

import httpx
import pytest

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.upstream.httpx_client import HttpxUpstreamClient
from app.core.app_factory import create_app
from app.core.config import Settings, UpstreamSettings

SERVER_KEY = "server-secret-key"
UPSTREAM_BASE = "https://upstream.test/3"


class FakeClock:
    """Deterministic clock returning UNIX seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class UpstreamRecorder:
    """Records every upstream request and answers through ``responder``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"page": 1, "results": []})
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> UpstreamRecorder:
    return UpstreamRecorder()


@pytest.fixture
def make_app(upstream: UpstreamRecorder, clock: FakeClock):
    """Build an isolated app wired to the recording upstream."""

    def _make(*, max_requests: int = 40, window_ms: int = 60_000):
        cfg = Settings(
            upstream=UpstreamSettings(api_key=SERVER_KEY, api_base_url=UPSTREAM_BASE),
        )
        limiter = InMemoryFixedWindowRateLimiter(
            max_requests=max_requests,
            window_ms=window_ms,
            clock=clock,
        )
        client = HttpxUpstreamClient(UPSTREAM_BASE, transport=upstream.transport)
        return create_app(
            cfg,
            upstream_client=client,
            rate_limiter=limiter,
            configure_logs=False,
        )

    return _make
