from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.api.deps import get_proxy_service
from app.core.rate_limit import enforce_rate_limit
from app.services.proxy_service import ProxyService

router = APIRouter(prefix="/api/upstream", tags=["Proxy"])


@router.get("/{path:path}")
async def proxy_get(
    path: str,
    request: Request,
    identity: Annotated[str, Depends(enforce_rate_limit)],
    service: Annotated[ProxyService, Depends(get_proxy_service)],
) -> JSONResponse:
    """Forward a catalog GET to the upstream API.

    The query string is forwarded as-is except for ``api_key``, which is
    always replaced by the server-side credential. Examples:
    ``/api/upstream/movie/popular?page=2``,
    ``/api/upstream/search/movie?query=inception``.

    Returns:
        JSONResponse: Upstream JSON body with cache, rate-limit and CORS headers.

    Raises:
        RateLimitAppError: 429 when the caller's window is exhausted.
        UpstreamAppError: Upstream status propagated with a normalized body.
        TransportAppError: 500 when the upstream cannot be reached.
    """
    result = await service.forward(path, request.query_params.multi_items(), identity)
    return JSONResponse(content=result.body, headers=result.headers)


@router.options("/{path:path}")
async def proxy_preflight(
    path: str,
    service: Annotated[ProxyService, Depends(get_proxy_service)],
) -> Response:
    """Answer CORS preflight requests without consuming rate-limit quota."""
    return Response(status_code=200, headers=service.preflight_headers())
