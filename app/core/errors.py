"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses. Each error carries the
label rendered as the ``error`` field of the proxy's JSON error body.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    upstream_status: int
    endpoint: str
    page: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    label: ClassVar[str] = "Application error"
    http_status: ClassVar[int] = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.http_status


class ValidationAppError(AppError):
    """Raised when input validation fails."""

    label = "Invalid request"
    http_status = 400


class ConfigurationAppError(AppError):
    """Raised when required configuration is missing or invalid.

    Fatal at startup: the app factory raises it instead of building an
    application that would serve degraded traffic.
    """

    label = "Server configuration error"
    http_status = 500


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client identity has exhausted its window."""

    reset_in_seconds: int = 0
    reset_at: int = 0

    label = "Rate limit exceeded"
    http_status = 429


@dataclass
class UpstreamAppError(AppError):
    """Raised when the upstream API answers with a non-success status."""

    upstream_status: int = 502
    upstream_code: int | None = None

    label = "Upstream API error"

    @property
    def status_code(self) -> int:
        return self.upstream_status


class TransportAppError(AppError):
    """Raised when the upstream API cannot be reached or returns garbage."""

    label = "Network error"
    http_status = 500


class CatalogClientError(AppError):
    """Raised by the catalog client when the proxy call fails."""

    label = "Catalog request failed"
    http_status = 502


class AggregationAppError(AppError):
    """Raised when a multi-page aggregation aborts on a failed fetch."""

    label = "Aggregation failed"
    http_status = 502
