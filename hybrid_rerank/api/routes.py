"""
API routes for hybrid-rerank.

Provides endpoints for health, reranking of caller-supplied result sets,
and hybrid search over the configured backends.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status

from hybrid_rerank import __version__
from hybrid_rerank.api.dependencies import ServiceContainer
from hybrid_rerank.api.models import (
    ErrorResponse,
    HealthResponse,
    HybridSearchRequest,
    HybridSearchResponse,
    RerankerSpec,
    RerankRequest,
    RerankResponse,
)
from hybrid_rerank.rerankers import Reranker, create_reranker
from hybrid_rerank.rerankers.factory import CROSS_ENCODER
from hybrid_rerank.search.exceptions import (
    HybridSearchError,
    InvalidConfigError,
    PreconditionFailedError,
    RemoteServiceError,
    RerankAuthenticationError,
    SearchBackendError,
    SearchCancelledError,
    UnsupportedOptionError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# =============================================================================
# Error Mapping
# =============================================================================

_ERROR_STATUS: dict[type[HybridSearchError], tuple[int, str]] = {
    InvalidConfigError: (status.HTTP_400_BAD_REQUEST, "invalid_config"),
    UnsupportedOptionError: (status.HTTP_400_BAD_REQUEST, "unsupported_option"),
    PreconditionFailedError: (status.HTTP_412_PRECONDITION_FAILED, "precondition_failed"),
    RerankAuthenticationError: (status.HTTP_503_SERVICE_UNAVAILABLE, "reranker_unavailable"),
    RemoteServiceError: (status.HTTP_502_BAD_GATEWAY, "remote_service_error"),
    SearchBackendError: (status.HTTP_502_BAD_GATEWAY, "search_backend_error"),
    SearchCancelledError: (status.HTTP_504_GATEWAY_TIMEOUT, "search_cancelled"),
}

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid reranker configuration"},
    422: {"model": ErrorResponse, "description": "Validation error"},
    502: {"model": ErrorResponse, "description": "Upstream service failed"},
    503: {"model": ErrorResponse, "description": "Service unavailable"},
}


def _to_http_exception(error: HybridSearchError) -> HTTPException:
    status_code, code = _ERROR_STATUS.get(
        type(error), (status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error")
    )
    return HTTPException(status_code=status_code, detail={"error": code, "message": str(error)})


def get_services() -> ServiceContainer:
    """Get service container - injected at runtime."""
    # This is overridden by dependency injection in create_app
    msg = "Services not configured"
    raise RuntimeError(msg)


def _build_reranker(spec: RerankerSpec, services: ServiceContainer) -> Reranker:
    """Create the reranker a request asks for.

    The shared scorer is only reused when the request keeps the configured
    cross-encoder model.
    """
    settings = services.settings
    name = spec.name or settings.default_reranker
    scorer = None
    if name == CROSS_ENCODER and spec.model_name in (None, settings.cross_encoder_model):
        scorer = services.scorer
    return create_reranker(name, settings=settings, scorer=scorer, **spec.options())


# =============================================================================
# Routes
# =============================================================================


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Service health",
)
async def health(
    services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> HealthResponse:
    """Report service status and whether search backends are wired."""
    return HealthResponse(
        status="ok",
        version=__version__,
        search_configured=services.orchestrator is not None,
    )


@router.post(
    "/v1/rerank",
    response_model=RerankResponse,
    responses=_ERROR_RESPONSES,
    tags=["rerank"],
    summary="Fuse caller-supplied vector and full-text results",
)
async def rerank(
    request: RerankRequest,
    services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> RerankResponse:
    """
    Fuse two result sets with the requested reranker.

    Rows may arrive in any order; they are sorted by _distance ascending
    and _score descending before fusion. Each side must not repeat an id.
    """
    start_time = time.perf_counter()

    try:
        vector_results = request.vector_result_set()
        fts_results = request.fts_result_set()
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_result_set", "message": str(e)},
        ) from e

    try:
        reranker = _build_reranker(request.reranker, services)
        fused = await reranker.arerank(request.query, vector_results, fts_results)
    except HybridSearchError as e:
        http_error = _to_http_exception(e)
        logger.warning("Rerank failed: %s", e, extra={"status_code": http_error.status_code})
        raise http_error from e

    latency_ms = (time.perf_counter() - start_time) * 1000
    return RerankResponse.from_result_set(
        fused.head(request.limit),
        reranker=reranker.name,
        latency_ms=latency_ms,
    )


@router.post(
    "/v1/search/hybrid",
    response_model=HybridSearchResponse,
    responses={
        **_ERROR_RESPONSES,
        412: {"model": ErrorResponse, "description": "Full-text index missing"},
        504: {"model": ErrorResponse, "description": "Search timed out"},
    },
    tags=["search"],
    summary="Perform hybrid vector + full-text search",
)
async def hybrid_search(
    request: HybridSearchRequest,
    services: ServiceContainer = Depends(get_services),  # noqa: B008
) -> HybridSearchResponse:
    """
    Execute a hybrid search combining vector similarity and full-text matching.

    Both searches run concurrently; their results are fused by the
    configured reranker, or by the reranker named in the request.
    """
    if services.orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "search_not_configured",
                "message": "No vector or full-text search backend is configured",
            },
        )

    start_time = time.perf_counter()
    try:
        reranker = (
            _build_reranker(request.reranker, services)
            if request.reranker is not None
            else services.orchestrator.reranker
        )
        fused = await services.orchestrator.search(
            request.query,
            limit=request.limit,
            fts_column=request.fts_column,
            reranker=reranker,
            timeout=request.timeout_seconds,
        )
    except HybridSearchError as e:
        http_error = _to_http_exception(e)
        logger.warning("Hybrid search failed: %s", e, extra={"status_code": http_error.status_code})
        raise http_error from e

    latency_ms = (time.perf_counter() - start_time) * 1000
    return HybridSearchResponse.from_result_set(
        fused,
        reranker=reranker.name,
        latency_ms=latency_ms,
    )
