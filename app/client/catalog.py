"""Async client for the catalog proxy.

Wraps the proxy's ``/api/upstream`` surface with one method per catalog
endpoint the front-end uses. Every call goes through the proxy (and therefore
its rate limiter); the upstream credential never appears client-side.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal, Sequence, TypeVar

import httpx
from pydantic import ValidationError

from app.core.errors import CatalogClientError
from app.schemas.catalog import ListingPage

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_API_PREFIX = "/api/upstream"

Params = Sequence[tuple[str, str]]


def _error_message(response: httpx.Response) -> str:
    """Best-effort message from a failed proxy response."""
    fallback = f"HTTP error! status: {response.status_code}"
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return fallback

    if isinstance(payload, dict):
        for key in ("message", "status_message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return json.dumps(payload)


class CatalogClient:
    """Typed access to catalog endpoints through the proxy.

    Attributes:
        client: Underlying ``httpx.AsyncClient`` rooted at the proxy origin.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        api_prefix: str = DEFAULT_API_PREFIX,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_prefix = "/" + api_prefix.strip("/")
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def fetch(self, endpoint: str, params: Params = ()) -> Any:
        """GET ``endpoint`` through the proxy and return the parsed JSON.

        Raises:
            CatalogClientError: On a non-success status, a transport failure,
                or a body that is not JSON.
        """
        url = f"{self.api_prefix}/{endpoint.strip('/')}"
        try:
            response = await self.client.get(url, params=list(params))
        except httpx.HTTPError as exc:
            logger.warning(
                "catalog.transport_error",
                extra={"endpoint": endpoint, "error_type": type(exc).__name__},
            )
            raise CatalogClientError(
                code="catalog_unreachable",
                message="Failed to reach the catalog proxy",
                details={"endpoint": endpoint},
            ) from exc

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "catalog.request_failed",
                extra={"endpoint": endpoint, "http_status": response.status_code},
            )
            raise CatalogClientError(
                code="catalog_request_failed",
                message=message,
                details={"endpoint": endpoint, "http_status": response.status_code},
            )

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CatalogClientError(
                code="catalog_invalid_json",
                message="Catalog proxy returned invalid JSON",
                details={"endpoint": endpoint},
            ) from exc

    async def safe_fetch(self, endpoint: str, params: Params = (), fallback: T | None = None) -> Any | T | None:
        """Like :meth:`fetch` but returns ``fallback`` instead of raising."""
        try:
            return await self.fetch(endpoint, params)
        except CatalogClientError as exc:
            logger.info(
                "catalog.fallback_used",
                extra={"endpoint": endpoint, "error_code": exc.code},
            )
            return fallback

    async def listing(self, endpoint: str, params: Params = ()) -> ListingPage:
        """Fetch one page of a paginated listing.

        Raises:
            CatalogClientError: On any fetch failure, or when the body is not
                a listing page.
        """
        payload = await self.fetch(endpoint, params)
        try:
            return ListingPage.model_validate(payload)
        except ValidationError as exc:
            logger.warning(
                "catalog.invalid_listing",
                extra={"endpoint": endpoint, "error_count": exc.error_count()},
            )
            raise CatalogClientError(
                code="catalog_invalid_listing",
                message="Catalog proxy returned an unexpected listing format",
                details={"endpoint": endpoint},
            ) from exc

    # Listings

    async def popular_movies(self, page: int = 1) -> ListingPage:
        return await self.listing("movie/popular", [("page", str(page))])

    async def top_rated_movies(self, page: int = 1) -> ListingPage:
        return await self.listing("movie/top_rated", [("page", str(page))])

    async def now_playing_movies(self, page: int = 1) -> ListingPage:
        return await self.listing("movie/now_playing", [("page", str(page))])

    async def upcoming_movies(self, page: int = 1) -> ListingPage:
        return await self.listing("movie/upcoming", [("page", str(page))])

    async def trending_movies(
        self,
        time_window: Literal["day", "week"] = "day",
        page: int = 1,
    ) -> ListingPage:
        return await self.listing(f"trending/movie/{time_window}", [("page", str(page))])

    async def search_movies(self, query: str, page: int = 1) -> ListingPage:
        return await self.listing("search/movie", [("query", query), ("page", str(page))])

    async def movie_recommendations(self, movie_id: int, page: int = 1) -> ListingPage:
        return await self.listing(f"movie/{movie_id}/recommendations", [("page", str(page))])

    async def similar_movies(self, movie_id: int, page: int = 1) -> ListingPage:
        return await self.listing(f"movie/{movie_id}/similar", [("page", str(page))])

    async def movie_reviews(self, movie_id: int, page: int = 1) -> ListingPage:
        return await self.listing(f"movie/{movie_id}/reviews", [("page", str(page))])

    # Per-movie resources

    async def movie_details(self, movie_id: int) -> dict[str, Any]:
        return await self.fetch(f"movie/{movie_id}")

    async def movie_videos(self, movie_id: int, language: str = "en-US") -> dict[str, Any]:
        return await self.fetch(f"movie/{movie_id}/videos", [("language", language)])

    async def movie_images(self, movie_id: int) -> dict[str, Any]:
        return await self.fetch(f"movie/{movie_id}/images")

    async def movie_release_dates(self, movie_id: int) -> dict[str, Any]:
        return await self.fetch(f"movie/{movie_id}/release_dates")

    async def movie_translations(self, movie_id: int) -> dict[str, Any]:
        return await self.fetch(f"movie/{movie_id}/translations")

    async def movie_watch_providers(self, movie_id: int) -> dict[str, Any]:
        return await self.fetch(f"movie/{movie_id}/watch/providers")

    async def movie_genres(self) -> list[dict[str, Any]]:
        payload = await self.fetch("genre/movie/list")
        return list(payload.get("genres", [])) if isinstance(payload, dict) else []
