"""Client identity resolution for rate limiting.

The identity keys the rate limiter, so it is derived from headers set by the
hosting edge. Only the first hop of a multi-value X-Forwarded-For is trusted:
values appended further down the chain can be forged by the client.
"""

from __future__ import annotations

from typing import Mapping

UNKNOWN_IDENTITY = "unknown"

# Checked in priority order
FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"
CDN_CLIENT_IP_HEADER = "cf-connecting-ip"


def resolve_client_identity(headers: Mapping[str, str]) -> str:
    """Derive the rate-limit identity from request headers.

    Args:
        headers: Request headers (any key casing).

    Returns:
        The first X-Forwarded-For entry, else X-Real-IP, else
        CF-Connecting-IP, else "unknown".

    Examples:
        >>> resolve_client_identity({"X-Forwarded-For": "1.2.3.4, 10.0.0.1"})
        '1.2.3.4'
        >>> resolve_client_identity({})
        'unknown'
    """
    normalized = {key.lower(): value for key, value in headers.items()}

    forwarded_for = normalized.get(FORWARDED_FOR_HEADER, "")
    first_hop = forwarded_for.split(",")[0].strip()
    if first_hop:
        return first_hop

    for header in (REAL_IP_HEADER, CDN_CLIENT_IP_HEADER):
        value = normalized.get(header, "").strip()
        if value:
            return value

    return UNKNOWN_IDENTITY
