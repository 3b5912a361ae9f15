"""FastAPI dependency providers for components built by the app factory.

Components live on ``app.state`` rather than in module globals so each
application instance (and each test) gets isolated state.
"""

from fastapi import Request

from app.services.proxy_service import ProxyService


def get_proxy_service(request: Request) -> ProxyService:
    return request.app.state.proxy_service
