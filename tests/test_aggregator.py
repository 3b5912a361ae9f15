"""Tests for re-bucketing upstream pages into UI pages."""

import httpx
import pytest

from app.client.aggregator import (
    CatalogAggregator,
    aggregation_cache_key,
    dedupe_by_id,
)
from app.client.catalog import CatalogClient
from app.core.errors import AggregationAppError, CatalogClientError
from app.schemas.catalog import FilterState


class FakeListing:
    """Paginated listing served 20 items per page, ids numbered from 0.

    ``overrides`` replaces the results of specific pages; ``fail_on`` makes a
    page answer with a proxy error.
    """

    def __init__(self, total_results: int = 1000, total_pages: int | None = None) -> None:
        self.total_results = total_results
        self.total_pages = total_pages if total_pages is not None else -(-total_results // 20)
        self.overrides: dict[int, list[dict]] = {}
        self.fail_on: set[int] = set()
        self.requests: list[httpx.Request] = []

    @property
    def pages(self) -> list[int]:
        return [int(request.url.params["page"]) for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = int(request.url.params["page"])
        if page in self.fail_on:
            return httpx.Response(
                500,
                json={"error": "Network error", "message": "Failed to connect to upstream API"},
            )

        if page in self.overrides:
            results = self.overrides[page]
        else:
            start = (page - 1) * 20
            end = min(start + 20, self.total_results)
            results = [{"id": i, "title": f"Movie {i}"} for i in range(start, max(start, end))]

        return httpx.Response(
            200,
            json={
                "page": page,
                "results": results,
                "total_pages": self.total_pages,
                "total_results": self.total_results,
            },
        )


@pytest.fixture
def listing() -> FakeListing:
    return FakeListing()


@pytest.fixture
def aggregator(listing: FakeListing) -> CatalogAggregator:
    catalog = CatalogClient("http://proxy.test", transport=httpx.MockTransport(listing.handler))
    return CatalogAggregator(catalog)


def _ids(page) -> list:
    return [item["id"] for item in page.results]


class TestPageAssembly:
    """Slicing, ordering and totals."""

    @pytest.mark.asyncio
    async def test_first_page_spans_three_upstream_pages(self, aggregator, listing):
        page = await aggregator.fetch_page()

        assert listing.pages == [1, 2, 3]
        assert _ids(page) == list(range(50))
        assert page.page == 1

    @pytest.mark.asyncio
    async def test_second_page_starts_mid_upstream_page(self, aggregator, listing):
        page = await aggregator.fetch_page(ui_page=2)

        # start_index 50 -> upstream page 3, offset 10
        assert listing.pages == [3, 4, 5]
        assert _ids(page) == list(range(50, 100))

    @pytest.mark.asyncio
    async def test_totals_are_derived_from_first_response(self, aggregator):
        page = await aggregator.fetch_page()

        assert page.total_results == 1000
        assert page.total_pages == 20
        assert page.upstream_total_pages == 50

    @pytest.mark.asyncio
    async def test_totals_are_capped_at_pagination_ceiling(self, listing, aggregator):
        listing.total_results = 250_000
        listing.total_pages = 12_500

        page = await aggregator.fetch_page()

        assert page.total_results == 10_000
        assert page.total_pages == 200
        assert page.upstream_total_pages == 12_500

    @pytest.mark.asyncio
    async def test_stops_when_upstream_is_exhausted(self, listing, aggregator):
        listing.total_results = 35
        listing.total_pages = 2

        page = await aggregator.fetch_page()

        assert listing.pages == [1, 2]
        assert _ids(page) == list(range(35))
        assert page.total_pages == 1

    @pytest.mark.asyncio
    async def test_empty_result_set(self, listing, aggregator):
        listing.total_results = 0
        listing.total_pages = 0

        page = await aggregator.fetch_page(query="zzzzzz")

        assert listing.pages == [1]
        assert page.results == []
        assert page.total_results == 0
        assert page.total_pages == 0

    @pytest.mark.asyncio
    async def test_last_reachable_page_stops_at_max_upstream_page(self, listing, aggregator):
        listing.total_results = 50_000
        listing.total_pages = 2_500

        page = await aggregator.fetch_page(ui_page=200)

        # start_index 9950 -> upstream page 498, offset 10
        assert listing.pages == [498, 499, 500]
        assert _ids(page) == list(range(9950, 10_000))

    @pytest.mark.asyncio
    async def test_page_beyond_ceiling_makes_no_upstream_call(self, aggregator, listing):
        page = await aggregator.fetch_page(ui_page=201)

        assert listing.requests == []
        assert page.results == []
        assert page.page == 201
        assert page.total_results == 10_000
        assert page.total_pages == 200

    @pytest.mark.asyncio
    async def test_rejects_page_below_one(self, aggregator, listing):
        with pytest.raises(ValueError):
            await aggregator.fetch_page(ui_page=0)

        assert listing.requests == []


class TestDeduplication:
    """Overlapping upstream pages."""

    @pytest.mark.asyncio
    async def test_duplicate_in_window_is_replaced(self, listing, aggregator):
        # Page 2 repeats the last item of page 1
        listing.overrides[2] = [{"id": 19}] + [{"id": i} for i in range(100, 119)]

        page = await aggregator.fetch_page()

        ids = _ids(page)
        assert len(ids) == 50
        assert len(set(ids)) == 50
        assert ids.count(19) == 1
        assert listing.pages == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_many_duplicates_fetch_one_more_page(self, listing, aggregator):
        listing.overrides[3] = [{"id": i} for i in range(20, 40)]

        page = await aggregator.fetch_page()

        ids = _ids(page)
        assert listing.pages == [1, 2, 3, 4]
        assert ids == list(range(40)) + list(range(60, 70))

    @pytest.mark.asyncio
    async def test_duplicates_on_exhausted_listing_leave_short_page(self, listing, aggregator):
        listing.total_results = 40
        listing.total_pages = 2
        listing.overrides[2] = [{"id": i} for i in range(20)]

        page = await aggregator.fetch_page()

        assert _ids(page) == list(range(20))

    @pytest.mark.asyncio
    async def test_replacement_item_repeats_at_top_of_next_page(self, listing, aggregator):
        # Page 2 opens with a repeat of id 0, so id 50 fills the gap on UI page 1
        listing.overrides[2] = [{"id": 0}] + [{"id": i} for i in range(21, 40)]

        first = await aggregator.fetch_page(ui_page=1)
        second = await aggregator.fetch_page(ui_page=2)

        assert _ids(first) == list(range(20)) + list(range(21, 51))
        assert _ids(second)[0] == 50
        assert len(_ids(second)) == 50

    def test_dedupe_keeps_first_occurrence_and_items_without_id(self):
        items = [{"id": 1, "v": "a"}, {"v": "x"}, {"id": 1, "v": "b"}, {"id": 2}, {"v": "y"}]

        assert dedupe_by_id(items) == [{"id": 1, "v": "a"}, {"v": "x"}, {"id": 2}, {"v": "y"}]


class TestRouting:
    """Search vs discover endpoints and filter propagation."""

    @pytest.mark.asyncio
    async def test_blank_query_uses_discover_with_filters(self, aggregator, listing):
        filters = FilterState(genre=28, year=1999, rating=7, sort_by="rating")

        await aggregator.fetch_page(query="  ", filters=filters)

        request = listing.requests[0]
        assert request.url.path == "/api/upstream/discover/movie"
        assert request.url.params["with_genres"] == "28"
        assert request.url.params["primary_release_year"] == "1999"
        assert request.url.params["vote_average.gte"] == "7"
        assert request.url.params["sort_by"] == "vote_average.desc"
        assert "query" not in request.url.params

    @pytest.mark.asyncio
    async def test_query_uses_search(self, aggregator, listing):
        await aggregator.fetch_page(query="matrix")

        request = listing.requests[0]
        assert request.url.path == "/api/upstream/search/movie"
        assert request.url.params["query"] == "matrix"


class TestCaching:
    """Page cache behavior."""

    @pytest.mark.asyncio
    async def test_cache_hit_makes_no_upstream_call(self, aggregator, listing):
        first = await aggregator.fetch_page(query="heat", ui_page=1)
        calls = len(listing.requests)

        second = await aggregator.fetch_page(query="heat", ui_page=1)

        assert second == first
        assert len(listing.requests) == calls

    @pytest.mark.asyncio
    async def test_cache_key_covers_filters_and_page(self, aggregator, listing):
        await aggregator.fetch_page(query="heat")
        calls = len(listing.requests)

        await aggregator.fetch_page(query="heat", filters=FilterState(year=1995))
        assert len(listing.requests) > calls

        calls = len(listing.requests)
        await aggregator.fetch_page(query="heat", ui_page=2)
        assert len(listing.requests) > calls

    @pytest.mark.asyncio
    async def test_failure_aborts_and_caches_nothing(self, aggregator, listing):
        listing.fail_on.add(2)

        with pytest.raises(AggregationAppError) as exc_info:
            await aggregator.fetch_page()

        assert exc_info.value.message == "Failed to connect to upstream API"
        assert exc_info.value.status_code == 502
        assert len(aggregator.cache) == 0

        listing.fail_on.clear()
        page = await aggregator.fetch_page()
        assert len(page.results) == 50

    @pytest.mark.asyncio
    async def test_ceiling_page_is_not_cached(self, aggregator):
        await aggregator.fetch_page(ui_page=500)

        assert len(aggregator.cache) == 0

    def test_cache_key_includes_every_filter(self):
        filters = FilterState(genre=28, year=1999, rating=7.5, sort_by="rating")

        key = aggregation_cache_key("matrix", filters, 3)

        assert key == 'search-["matrix",28,1999,7.5,"rating",3]'
        assert aggregation_cache_key("", FilterState(), 1) == 'search-["",null,null,null,null,1]'

    def test_cache_key_separates_query_from_filters(self):
        trailing_dash = aggregation_cache_key("a-", FilterState(genre=5), 1)
        negative_genre = aggregation_cache_key("a", FilterState(genre=-5), 1)

        assert trailing_dash != negative_genre

    @pytest.mark.asyncio
    async def test_invalid_listing_body_aborts_and_caches_nothing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"results": None, "total_pages": 3})

        catalog = CatalogClient("http://proxy.test", transport=httpx.MockTransport(handler))
        aggregator = CatalogAggregator(catalog)

        with pytest.raises(AggregationAppError) as exc_info:
            await aggregator.fetch_page()

        assert exc_info.value.status_code == 502
        assert isinstance(exc_info.value.__cause__, CatalogClientError)
        assert exc_info.value.__cause__.code == "catalog_invalid_listing"
        assert len(aggregator.cache) == 0


def test_invalid_page_sizes_rejected():
    catalog = CatalogClient("http://proxy.test")

    with pytest.raises(ValueError):
        CatalogAggregator(catalog, ui_page_size=0)
