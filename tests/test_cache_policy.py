"""Tests for per-endpoint HTTP cache lifetimes."""

import pytest

from app.core.cache_policy import (
    CACHE_TIMES,
    build_cache_control,
    endpoint_category,
    resolve_cache_lifetime,
)


@pytest.mark.parametrize(
    ("path", "category"),
    [
        ("trending/movie/day", "trending"),
        ("trending/movie/week", "trending"),
        ("movie/now_playing", "trending"),
        ("movie/upcoming", "trending"),
        ("genre/movie/list", "genres"),
        ("search/movie", "search"),
        ("discover/movie", "search"),
        ("movie/550", "details"),
        ("movie/550/videos", "details"),
        ("movie/550/watch/providers", "details"),
        ("movie/550/recommendations", "popular"),
        ("movie/550/similar", "popular"),
        ("movie/popular", "popular"),
        ("movie/top_rated", "popular"),
        ("/movie/550/", "details"),
        ("configuration", None),
        ("person/287", None),
    ],
)
def test_endpoint_category(path: str, category: str | None) -> None:
    assert endpoint_category(path) == category


def test_lifetime_uses_category_table() -> None:
    assert resolve_cache_lifetime("movie/550") == CACHE_TIMES["details"] == 86400
    assert resolve_cache_lifetime("genre/movie/list") == 2592000
    assert resolve_cache_lifetime("trending/movie/day") == 1800


def test_lifetime_falls_back_to_default() -> None:
    assert resolve_cache_lifetime("configuration") == 3600
    assert resolve_cache_lifetime("configuration", default=120) == 120


def test_build_cache_control() -> None:
    assert build_cache_control(3600) == "public, s-maxage=3600, stale-while-revalidate=86400"
    assert build_cache_control(60, 0) == "public, s-maxage=60, stale-while-revalidate=0"
