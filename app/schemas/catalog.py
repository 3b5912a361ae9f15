"""Pydantic schemas for catalog listings and aggregated UI pages."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


SortOrder = Literal["popularity", "rating", "release_date"]


class FilterState(BaseModel):
    """Discover filters selected in the UI. Unset fields are not sent upstream."""

    model_config = ConfigDict(frozen=True)

    genre: int | None = Field(default=None, description="Upstream genre id.")
    year: int | None = Field(default=None, description="Primary release year.")
    rating: float | None = Field(
        default=None,
        ge=0,
        le=10,
        description="Minimum average vote.",
    )
    sort_by: SortOrder | None = Field(default=None, description="Result ordering.")


class ListingPage(BaseModel):
    """One upstream page of a paginated listing (search, discover, popular...)."""

    model_config = ConfigDict(extra="allow")

    page: int = 1
    results: list[dict[str, Any]] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


class AggregatedPage(BaseModel):
    """A UI-sized page assembled from one or more upstream pages."""

    page: int = Field(..., ge=1, description="1-based page number in UI page size.")
    results: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Results in upstream order, deduplicated by id.",
    )
    total_pages: int = Field(..., ge=0, description="UI pages reachable for this query.")
    total_results: int = Field(
        ...,
        ge=0,
        description="Matching results, capped at what upstream pagination can reach.",
    )
    upstream_total_pages: int = Field(
        default=0,
        ge=0,
        description="Page count reported by the upstream API.",
    )
