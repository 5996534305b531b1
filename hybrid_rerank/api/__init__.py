"""
API module for hybrid-rerank.

Provides FastAPI routes for reranking and hybrid search.
"""

from hybrid_rerank.api.app import configure_app_services, create_app
from hybrid_rerank.api.dependencies import ServiceContainer
from hybrid_rerank.api.models import (
    HybridSearchRequest,
    HybridSearchResponse,
    RerankerSpec,
    RerankRequest,
    RerankResponse,
)
from hybrid_rerank.api.routes import router

__all__ = [
    "create_app",
    "configure_app_services",
    "router",
    "ServiceContainer",
    "RerankRequest",
    "RerankResponse",
    "RerankerSpec",
    "HybridSearchRequest",
    "HybridSearchResponse",
]
