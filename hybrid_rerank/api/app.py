"""
FastAPI application factory for hybrid-rerank.

Creates and configures the FastAPI application with routes and dependencies.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from hybrid_rerank import __version__
from hybrid_rerank.api.dependencies import ServiceContainer
from hybrid_rerank.core.config import Settings, get_settings
from hybrid_rerank.core.logging import clear_correlation_id, set_correlation_id

_REQUEST_ID_HEADER = "X-Request-ID"


def create_app(
    settings: Settings | None = None,
    services: ServiceContainer | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Optional settings (cached settings if omitted)
        services: Optional pre-configured service container

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Hybrid Rerank Service",
        description="Fusion of vector and full-text search results",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(_REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_correlation_id(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers[_REQUEST_ID_HEADER] = request_id
        return response

    if services is None:
        services = ServiceContainer(settings=settings or get_settings())

    configure_app_services(app, services)

    from hybrid_rerank.api.routes import router

    app.include_router(router)

    return app


def configure_app_services(app: FastAPI, services: ServiceContainer) -> None:
    """
    Configure services for an existing app.

    This allows reconfiguring services after app creation,
    useful for testing.

    Args:
        app: FastAPI application instance
        services: Service container to use
    """
    from hybrid_rerank.api.routes import get_services

    app.state.services = services

    def _get_services() -> ServiceContainer:
        return app.state.services

    app.dependency_overrides[get_services] = _get_services
