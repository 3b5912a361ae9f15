"""HTTP middleware: request correlation and access logging.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings as default_settings
from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger("app.access")

DURATION_HEADER = "X-Request-Duration-ms"


def _request_id_header(request: Request) -> str:
    app_settings = getattr(request.app.state, "settings", None) or default_settings
    return app_settings.log.request_id_header


async def request_id_middleware(request: Request, call_next) -> Response:
    """Tag every request/response pair with a correlation id and duration.

    An incoming ``X-Request-ID`` (name set by LOG_REQUEST_ID_HEADER) is reused,
    otherwise a UUID4 is generated. The id sits in contextvars while the
    request is served, so every log line it produces carries the same id.

    One ``http.request`` line is logged per request with method, path, status
    and duration. The query string is left out since it may hold a credential.

    Returns:
        Response: The downstream response with the request-id and duration
            headers added.
    """
    header_name = _request_id_header(request)
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault(DURATION_HEADER, f"{duration_ms:.2f}")
    return response
