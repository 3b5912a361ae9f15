"""Upstream catalog API interface and its tagged result type."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence, Union


@dataclass(frozen=True)
class UpstreamOk:
    """Successful upstream response with its parsed JSON body."""

    status_code: int
    body: Any


@dataclass(frozen=True)
class UpstreamErr:
    """Non-success upstream response, normalized.

    Attributes:
        status_code: HTTP status returned by the upstream.
        message: Best-effort human-readable message.
        code: The upstream's own error code, when it sent one.
    """

    status_code: int
    message: str
    code: int | None = None


UpstreamResult = Union[UpstreamOk, UpstreamErr]


class AbstractUpstreamClient(ABC):
    """Interface for clients that fetch JSON from the upstream catalog API."""

    @abstractmethod
    async def get_json(
        self,
        path: str,
        params: Sequence[tuple[str, str]],
    ) -> UpstreamResult:
        """Issue a GET for ``path`` with ``params`` and classify the response.

        Args:
            path: Endpoint path relative to the upstream base (e.g. "movie/550").
            params: Query parameters, credential included, in send order.

        Returns:
            UpstreamOk for 2xx responses, UpstreamErr otherwise.

        Raises:
            RuntimeError: If the upstream cannot be reached, times out, or a
                success response is not valid JSON.
        """
        ...

    async def aclose(self) -> None:
        """Release pooled connections."""
        return None
