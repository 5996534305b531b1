"""
Rerankers for hybrid search.

Each reranker fuses a vector result set and a full-text result set into one
result set sorted by _relevance_score:

- linear.py: Weighted linear combination of normalized scores
- rrf.py: Reciprocal Rank Fusion
- cross_encoder.py: Pairwise scoring model over the merged candidates
- remote.py: Hosted rerank API (Cohere-compatible)
- factory.py: Build a reranker by name from settings
"""

from hybrid_rerank.rerankers.base import (
    Reranker,
    RerankerConfig,
    ReturnScore,
    RowFilter,
    merge_results,
)
from hybrid_rerank.rerankers.cross_encoder import (
    CrossEncoderConfig,
    CrossEncoderReranker,
    CrossEncoderScorer,
    PairwiseScorerProtocol,
)
from hybrid_rerank.rerankers.factory import RERANKER_NAMES, create_reranker
from hybrid_rerank.rerankers.linear import LinearCombinationConfig, LinearCombinationReranker
from hybrid_rerank.rerankers.remote import RemoteAPIReranker, RemoteRerankConfig
from hybrid_rerank.rerankers.rrf import ReciprocalRankConfig, ReciprocalRankFusionReranker

__all__ = [
    "Reranker",
    "RerankerConfig",
    "ReturnScore",
    "RowFilter",
    "merge_results",
    "LinearCombinationReranker",
    "LinearCombinationConfig",
    "ReciprocalRankFusionReranker",
    "ReciprocalRankConfig",
    "CrossEncoderReranker",
    "CrossEncoderConfig",
    "CrossEncoderScorer",
    "PairwiseScorerProtocol",
    "RemoteAPIReranker",
    "RemoteRerankConfig",
    "RERANKER_NAMES",
    "create_reranker",
]
