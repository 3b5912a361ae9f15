"""Translate UI search/filter state into upstream query parameters."""

from __future__ import annotations

from app.schemas.catalog import FilterState

SEARCH_ENDPOINT = "search/movie"
DISCOVER_ENDPOINT = "discover/movie"

SORT_PARAMS = {
    "popularity": "popularity.desc",
    "rating": "vote_average.desc",
    "release_date": "primary_release_date.desc",
}


def listing_endpoint(query: str) -> str:
    """Free-text queries go to search; filter-only browsing goes to discover."""
    return SEARCH_ENDPOINT if query.strip() else DISCOVER_ENDPOINT


def build_discover_params(
    query: str,
    filters: FilterState,
    page: int = 1,
) -> list[tuple[str, str]]:
    """Build query parameters for the search/discover endpoints.

    Args:
        query: Free-text search; omitted when blank.
        filters: Selected filters; unset (or zero) values are omitted.
        page: Upstream page number, clamped to at least 1.

    Returns:
        Ordered (key, value) pairs.

    Examples:
        >>> build_discover_params("", FilterState(genre=28, sort_by="rating"), 2)
        [('with_genres', '28'), ('sort_by', 'vote_average.desc'), ('page', '2')]
    """
    params: list[tuple[str, str]] = []

    if query.strip():
        params.append(("query", query.strip()))
    if filters.genre:
        params.append(("with_genres", str(filters.genre)))
    if filters.year:
        params.append(("primary_release_year", str(filters.year)))
    if filters.rating:
        params.append(("vote_average.gte", f"{filters.rating:g}"))
    if filters.sort_by:
        params.append(("sort_by", SORT_PARAMS[filters.sort_by]))

    params.append(("page", str(max(1, page))))
    return params
