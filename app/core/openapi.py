"""OpenAPI metadata and customization utilities.

Enriches the generated schema with tag descriptions and documents the
rate-limit headers returned by the proxy route. Keeps documentation concerns
out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_RATE_LIMIT_HEADERS = {
    "X-RateLimit-Limit": {
        "description": "Requests allowed per window for this client.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Remaining": {
        "description": "Requests left in the current window.",
        "schema": {"type": "integer"},
    },
    "Cache-Control": {
        "description": "Shared-cache lifetime for the endpoint category.",
        "schema": {"type": "string"},
    },
}

_TOO_MANY_REQUESTS = {
    "description": "Rate limit exceeded for this client identity.",
    "headers": {
        "Retry-After": {"schema": {"type": "integer"}},
        "X-RateLimit-Remaining": {"schema": {"type": "integer"}},
        "X-RateLimit-Reset": {"schema": {"type": "integer"}},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and proxy headers.

    - Adds tags metadata if not present
    - Documents success headers and the 429 response on the proxy GET
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Proxy",
                "description": "Rate-limited pass-through to the upstream movie catalog.",
            },
            {
                "name": "Health",
                "description": "Liveness and readiness checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith("/api/upstream"):
                continue
            operation = methods.get("get")
            if not isinstance(operation, dict):
                continue
            responses = operation.setdefault("responses", {})
            responses.setdefault("200", {}).setdefault("headers", _RATE_LIMIT_HEADERS)
            responses.setdefault("429", _TOO_MANY_REQUESTS)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
