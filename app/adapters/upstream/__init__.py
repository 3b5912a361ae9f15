"""Upstream adapter layer - abstracts over the catalog API transport."""

from app.adapters.upstream.base import AbstractUpstreamClient, UpstreamErr, UpstreamOk, UpstreamResult
from app.adapters.upstream.factory import create_upstream_client, require_upstream_credentials
from app.adapters.upstream.httpx_client import HttpxUpstreamClient

__all__ = [
    "AbstractUpstreamClient",
    "HttpxUpstreamClient",
    "UpstreamErr",
    "UpstreamOk",
    "UpstreamResult",
    "create_upstream_client",
    "require_upstream_credentials",
]
