"""Re-bucket upstream listing pages into larger UI pages.

The upstream API pages search/discover results 20 at a time and refuses to go
past page 500. The UI shows 50 results per page and must not expose upstream
pagination, so each UI page is assembled from consecutive upstream pages:

    start_index          = (ui_page - 1) * 50
    start_upstream_page  = start_index // 20 + 1
    offset_in_first_page = start_index % 20

Upstream pages are fetched serially (the total page count is only known after
the first response), concatenated in page order, sliced to
``[offset, offset + 50)`` and deduplicated by ``id``, because the upstream does
not guarantee that adjacent pages never overlap. Duplicates removed from the
window are replaced by the results that follow it.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Iterable

from app.client.catalog import CatalogClient
from app.core.errors import AggregationAppError, CatalogClientError
from app.schemas.catalog import AggregatedPage, FilterState, ListingPage
from app.utils.discover_params import build_discover_params, listing_endpoint
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)

UI_PAGE_SIZE = 50
UPSTREAM_PAGE_SIZE = 20
UPSTREAM_MAX_PAGE = 500

DEFAULT_CACHE_TTL_SECONDS = 3600


def dedupe_by_id(items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep the first occurrence of each ``id``; items without one are kept."""
    seen: set[Any] = set()
    unique: list[dict[str, Any]] = []
    for item in items:
        item_id = item.get("id")
        if item_id is not None:
            if item_id in seen:
                continue
            seen.add(item_id)
        unique.append(item)
    return unique


def aggregation_cache_key(query: str, filters: FilterState, ui_page: int) -> str:
    """Composite key over the search text, every filter value and the page."""
    parts = [query, filters.genre, filters.year, filters.rating, filters.sort_by, ui_page]
    return "search-" + json.dumps(parts, separators=(",", ":"))


class _UpstreamBuffer:
    """Upstream results accumulated in page order for one aggregation."""

    def __init__(
        self,
        catalog: CatalogClient,
        *,
        query: str,
        filters: FilterState,
        start_page: int,
        max_page: int,
    ) -> None:
        self.catalog = catalog
        self.query = query
        self.filters = filters
        self.endpoint = listing_endpoint(query)
        self.next_page = start_page
        self.max_page = max_page
        self.items: list[dict[str, Any]] = []
        self.first: ListingPage | None = None
        self.exhausted = False
        self.fetched = 0

    async def fill(self, target: int) -> None:
        """Fetch pages serially until ``target`` items are buffered.

        Stops early once the upstream reports no further pages or the
        upstream page ceiling is passed.

        Raises:
            CatalogClientError: If a page cannot be fetched.
        """
        while len(self.items) < target and not self.exhausted:
            page = self.next_page
            chunk = await self.catalog.listing(
                self.endpoint,
                build_discover_params(self.query, self.filters, page),
            )
            self.fetched += 1
            if self.first is None:
                self.first = chunk
            self.items.extend(chunk.results)

            self.next_page = page + 1
            if page >= chunk.total_pages or self.next_page > self.max_page:
                self.exhausted = True


class CatalogAggregator:
    """Serve UI-sized pages of search/discover results.

    Attributes:
        catalog: Client used to reach the proxy.
        cache: TTL cache of assembled pages; a hit makes no upstream call.
    """

    def __init__(
        self,
        catalog: CatalogClient,
        cache: SimpleTTLCache[AggregatedPage] | None = None,
        *,
        ui_page_size: int = UI_PAGE_SIZE,
        upstream_page_size: int = UPSTREAM_PAGE_SIZE,
        upstream_max_page: int = UPSTREAM_MAX_PAGE,
    ) -> None:
        if ui_page_size < 1 or upstream_page_size < 1 or upstream_max_page < 1:
            raise ValueError("page sizes and max page must be >= 1")

        self.catalog = catalog
        self.cache = cache if cache is not None else SimpleTTLCache(
            ttl_seconds=DEFAULT_CACHE_TTL_SECONDS,
            max_entries=256,
        )
        self.ui_page_size = ui_page_size
        self.upstream_page_size = upstream_page_size
        self.upstream_max_page = upstream_max_page

    @property
    def max_results(self) -> int:
        """Absolute ceiling reachable through upstream pagination."""
        return self.upstream_max_page * self.upstream_page_size

    def _ui_total_pages(self, total_results: int) -> int:
        if total_results == 0:
            return 0
        return math.ceil(total_results / self.ui_page_size)

    def _ceiling_page(self, ui_page: int) -> AggregatedPage:
        return AggregatedPage(
            page=ui_page,
            results=[],
            total_pages=self._ui_total_pages(self.max_results),
            total_results=self.max_results,
            upstream_total_pages=self.upstream_max_page,
        )

    async def _collect(self, buffer: _UpstreamBuffer, offset: int) -> list[dict[str, Any]]:
        """Slice the page window out of ``buffer`` and deduplicate it.

        Duplicates dropped from the window are replaced with the results that
        follow it, so a page is only short when the upstream is exhausted.
        """
        end = offset + self.ui_page_size
        await buffer.fill(end)

        results = dedupe_by_id(buffer.items[offset:end])
        seen = {item.get("id") for item in results}
        cursor = end

        while len(results) < self.ui_page_size:
            if cursor >= len(buffer.items):
                if buffer.exhausted:
                    break
                await buffer.fill(cursor + 1)
                continue
            item = buffer.items[cursor]
            cursor += 1
            item_id = item.get("id")
            if item_id is not None and item_id in seen:
                continue
            seen.add(item_id)
            results.append(item)

        return results

    async def fetch_page(
        self,
        query: str = "",
        filters: FilterState | None = None,
        ui_page: int = 1,
    ) -> AggregatedPage:
        """Return UI page ``ui_page`` for the given search text and filters.

        Args:
            query: Free-text search; blank means filter-only discovery.
            filters: Discover filters.
            ui_page: 1-based page number in UI page size.

        Returns:
            AggregatedPage with at most ``ui_page_size`` deduplicated results.
            Pages are assembled independently, so a result pulled in to
            replace a duplicate can reappear at the top of the next page.

        Raises:
            ValueError: If ``ui_page`` is below 1.
            AggregationAppError: If any upstream fetch fails. Nothing is
                cached and no partial page is returned.
        """
        if ui_page < 1:
            raise ValueError("ui_page must be >= 1")

        filters = filters or FilterState()
        cache_key = aggregation_cache_key(query, filters, ui_page)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("aggregator.cache_hit", extra={"page": ui_page})
            return cached

        start_index = (ui_page - 1) * self.ui_page_size
        start_upstream_page = start_index // self.upstream_page_size + 1

        if start_upstream_page > self.upstream_max_page:
            logger.info(
                "aggregator.beyond_ceiling",
                extra={"page": ui_page, "start_upstream_page": start_upstream_page},
            )
            return self._ceiling_page(ui_page)

        buffer = _UpstreamBuffer(
            self.catalog,
            query=query,
            filters=filters,
            start_page=start_upstream_page,
            max_page=self.upstream_max_page,
        )

        try:
            results = await self._collect(buffer, start_index % self.upstream_page_size)
        except CatalogClientError as exc:
            logger.warning(
                "aggregator.fetch_failed",
                extra={
                    "page": ui_page,
                    "upstream_page": buffer.next_page,
                    "error_code": exc.code,
                },
            )
            raise AggregationAppError(
                code="aggregation_failed",
                message=exc.message,
                details={"page": buffer.next_page},
            ) from exc

        first = buffer.first
        upstream_total_results = first.total_results if first else 0
        total_results = min(upstream_total_results, self.max_results)

        page = AggregatedPage(
            page=ui_page,
            results=results,
            total_pages=self._ui_total_pages(total_results),
            total_results=total_results,
            upstream_total_pages=first.total_pages if first else 0,
        )

        logger.info(
            "aggregator.page_assembled",
            extra={
                "page": ui_page,
                "endpoint": buffer.endpoint,
                "upstream_pages_fetched": buffer.fetched,
                "results": len(results),
            },
        )
        self.cache.set(cache_key, page)
        return page
