"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return the proxy's flat JSON error body
``{"error": <label>, "message": <text>, ...}`` with proper HTTP status codes.

Design:
- AppError subclasses → their own status (429, upstream status, 500, ...)
- RateLimitAppError → Retry-After and X-RateLimit-* headers, ``resetIn`` body field
- UpstreamAppError → upstream ``statusCode`` propagated in the body
- Unexpected Exception → generic 500 (safety net, nothing leaked)
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.errors import AppError, RateLimitAppError, UpstreamAppError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _error_body(exc: AppError) -> dict:
    body: dict = {"error": exc.label, "message": exc.message}
    if isinstance(exc, RateLimitAppError):
        body["resetIn"] = exc.reset_in_seconds
    elif isinstance(exc, UpstreamAppError) and exc.upstream_code is not None:
        body["statusCode"] = exc.upstream_code
    return body


def _error_headers(exc: AppError) -> dict[str, str] | None:
    if isinstance(exc, RateLimitAppError):
        return {
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(exc.reset_at),
            "Retry-After": str(exc.reset_in_seconds),
        }
    return None


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with a consistent JSON format.

    Rate limiting is expected traffic shaping and is logged at info; every
    other domain error is logged at warning. Transport and configuration
    errors are additionally logged at their source.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the error's status code, body and headers.
    """
    status_code = exc.status_code
    level = logging.INFO if isinstance(exc, RateLimitAppError) else logging.WARNING

    logger.log(
        level,
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc),
        headers=_error_headers(exc),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message; no
    exception text or stack trace reaches the client.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with a generic 500 body.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
