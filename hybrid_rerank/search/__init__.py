"""
Search module for hybrid-rerank.

Provides the shared result model, score normalization and the error
taxonomy. The orchestrator and backend adapters are imported from their
own modules:

- results.py: Row / ResultSet data model
- normalize.py: rank and min-max score normalization
- hybrid.py: HybridSearchOrchestrator (concurrent vector + full-text search)
- vector.py: Qdrant vector search adapter
- fulltext.py: Neo4j full-text search adapter
"""

from __future__ import annotations

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
from hybrid_rerank.search.normalize import NormalizeMethod, normalize, normalized_scores
from hybrid_rerank.search.results import (
    DISTANCE_COLUMN,
    RELEVANCE_COLUMN,
    SCORE_COLUMN,
    ResultSet,
    Row,
)

__all__ = [
    "Row",
    "ResultSet",
    "DISTANCE_COLUMN",
    "SCORE_COLUMN",
    "RELEVANCE_COLUMN",
    "NormalizeMethod",
    "normalize",
    "normalized_scores",
    "HybridSearchError",
    "InvalidConfigError",
    "PreconditionFailedError",
    "UnsupportedOptionError",
    "RerankAuthenticationError",
    "RemoteServiceError",
    "SearchCancelledError",
    "SearchBackendError",
]
