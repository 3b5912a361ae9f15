"""Factory for creating upstream client instances."""

from app.adapters.upstream.base import AbstractUpstreamClient
from app.adapters.upstream.httpx_client import HttpxUpstreamClient
from app.core.config import UpstreamSettings
from app.core.errors import ConfigurationAppError


def require_upstream_credentials(upstream: UpstreamSettings) -> str:
    """Return the configured upstream credential or fail.

    Raises:
        ConfigurationAppError: If TMDB_API_KEY is missing or blank.
    """
    if not upstream.api_key or not upstream.api_key.strip():
        raise ConfigurationAppError(
            code="upstream_api_key_missing",
            message="Upstream API key is not configured",
            details={"hint": "Set the TMDB_API_KEY environment variable"},
        )
    return upstream.api_key.strip()


def create_upstream_client(upstream: UpstreamSettings) -> AbstractUpstreamClient:
    """Instantiate the upstream client from settings.

    Returns:
        AbstractUpstreamClient: Configured client instance.
    """
    return HttpxUpstreamClient(
        base_url=upstream.api_base_url,
        timeout_seconds=upstream.timeout_seconds,
    )
