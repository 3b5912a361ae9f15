"""Application factory for the FastAPI app.

Centralizes app construction (configuration checks, components, middleware,
handlers, routers) so tests can build isolated apps with injected parts.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.upstream import (
    AbstractUpstreamClient,
    create_upstream_client,
    require_upstream_credentials,
)
from app.api.routes import health_router, proxy_router
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_rate_limiter
from app.services.proxy_service import ProxyService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close pooled upstream connections on shutdown."""
    yield
    await app.state.upstream_client.aclose()
    logger.info("app.shutdown")


def create_app(
    settings: Settings | None = None,
    *,
    upstream_client: AbstractUpstreamClient | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to build from; defaults to the environment-loaded ones.
        upstream_client: Upstream adapter override (tests inject mock transports).
        rate_limiter: Limiter override; a fresh in-memory limiter otherwise.
        configure_logs: Whether to (re)configure root logging.

    Returns:
        Configured app with middleware, handlers and routers.

    Raises:
        ConfigurationAppError: If the upstream credential is missing. The
            process must not start serving traffic in that state.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log)

    api_key = require_upstream_credentials(cfg.upstream)

    upstream = upstream_client or create_upstream_client(cfg.upstream)
    limiter = rate_limiter or build_rate_limiter(cfg.rate_limit)

    app = FastAPI(
        title="Movie Catalog Proxy",
        description=(
            "Same-origin proxy for the TMDB movie catalog API. Injects the "
            "server-side API key, rate limits per client, and adds HTTP "
            "caching and CORS headers."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.upstream_client = upstream
    app.state.rate_limiter = limiter
    app.state.proxy_service = ProxyService(
        upstream,
        limiter,
        api_key=api_key,
        proxy_settings=cfg.proxy,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(proxy_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.configured",
        extra={
            "upstream_base": cfg.upstream.api_base_url,
            "rate_limit_max": cfg.rate_limit.max_requests,
            "rate_limit_window_ms": cfg.rate_limit.window_ms,
        },
    )
    return app
