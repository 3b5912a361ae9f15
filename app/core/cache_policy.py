"""HTTP cache lifetimes per upstream endpoint category."""

from __future__ import annotations

import re

CACHE_TIMES: dict[str, int] = {
    "popular": 3600,  # 1 hour
    "trending": 1800,  # 30 minutes
    "details": 86400,  # 24 hours
    "search": 3600,  # 1 hour
    "genres": 2592000,  # 30 days
}

_TRENDING_PATHS = re.compile(r"^(trending/.*|movie/(now_playing|upcoming))$")
_GENRE_PATHS = re.compile(r"^genre/")
_SEARCH_PATHS = re.compile(r"^(search|discover)/")
# Per-item resources; recommendation/similar lists change like popular lists
_DETAIL_PATHS = re.compile(r"^movie/\d+(/(?!recommendations|similar)[\w/]+)?$")


def endpoint_category(path: str) -> str | None:
    """Classify an upstream path into a cache category, or None if unknown."""
    path = path.strip("/")
    if _TRENDING_PATHS.match(path):
        return "trending"
    if _GENRE_PATHS.match(path):
        return "genres"
    if _SEARCH_PATHS.match(path):
        return "search"
    if _DETAIL_PATHS.match(path):
        return "details"
    if path.startswith("movie/"):
        return "popular"
    return None


def resolve_cache_lifetime(path: str, default: int = 3600) -> int:
    """Seconds a response for ``path`` may be cached by shared caches."""
    category = endpoint_category(path)
    if category is None:
        return default
    return CACHE_TIMES[category]


def build_cache_control(lifetime: int, stale_while_revalidate: int = 86400) -> str:
    return f"public, s-maxage={lifetime}, stale-while-revalidate={stale_while_revalidate}"
