"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

The upstream credential is optional at the settings level so the module can be
imported anywhere; the app factory refuses to build an application without it.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_upstream_settings() -> "UpstreamSettings":
    """Build upstream settings from environment."""

    return UpstreamSettings()


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()


def _build_proxy_settings() -> "ProxySettings":
    return ProxySettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class UpstreamSettings(BaseSettings):
    """Upstream catalog API (TMDB) connection settings."""

    api_key: str | None = Field(
        None,
        description="Upstream API credential, injected server-side into every request",
    )
    api_base_url: str = Field(
        "https://api.themoviedb.org/3",
        description="Base URL requests are forwarded to",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Upper bound for a single upstream call",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="TMDB_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Per-client fixed-window rate limit."""

    max_requests: int = Field(
        40,
        description="Requests allowed per window and client identity",
        ge=1,
    )
    window_ms: int = Field(
        60000,
        description="Window length in milliseconds",
        ge=1,
    )
    max_identities: int = Field(
        500,
        description="Distinct client identities tracked before LRU eviction",
        ge=1,
    )
    identity_ttl_ms: int = Field(
        60000,
        description="How long an idle identity is remembered",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class ProxySettings(BaseSettings):
    """Response shaping for the proxy route."""

    default_cache_seconds: int = Field(
        3600,
        description="s-maxage applied when no endpoint category matches",
        ge=0,
    )
    stale_while_revalidate_seconds: int = Field(
        86400,
        description="Grace period advertised via stale-while-revalidate",
        ge=0,
    )
    allow_origin: str = Field(
        "*",
        description="Value for Access-Control-Allow-Origin",
    )

    model_config = SettingsConfigDict(
        env_prefix="PROXY_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate the log file at this size (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo correlation ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    """

    app_env: str = APP_ENV
    upstream: UpstreamSettings = Field(default_factory=_build_upstream_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    proxy: ProxySettings = Field(default_factory=_build_proxy_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
