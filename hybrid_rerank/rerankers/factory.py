"""
Reranker factory.

Builds a reranker by name from Settings defaults plus per-call overrides.
Unknown names and unknown option keys fail eagerly with InvalidConfigError.
"""

from __future__ import annotations

from typing import Any

from hybrid_rerank.core.config import Settings, get_settings
from hybrid_rerank.rerankers.base import Reranker
from hybrid_rerank.rerankers.cross_encoder import CrossEncoderReranker, PairwiseScorerProtocol
from hybrid_rerank.rerankers.linear import LinearCombinationReranker
from hybrid_rerank.rerankers.remote import RemoteAPIReranker
from hybrid_rerank.rerankers.rrf import ReciprocalRankFusionReranker
from hybrid_rerank.search.exceptions import InvalidConfigError

LINEAR = "linear"
RRF = "rrf"
CROSS_ENCODER = "cross_encoder"
COHERE = "cohere"

RERANKER_NAMES = (LINEAR, RRF, CROSS_ENCODER, COHERE)


def _defaults(name: str, settings: Settings) -> dict[str, Any]:
    if name == LINEAR:
        return {
            "weight": settings.hybrid_weight,
            "fill": settings.hybrid_fill,
            "normalize": settings.hybrid_normalize,
            "return_score": settings.hybrid_return_score,
        }
    if name == RRF:
        return {"k": settings.rrf_k, "return_score": settings.hybrid_return_score}
    if name == CROSS_ENCODER:
        return {
            "model_name": settings.cross_encoder_model,
            "column": settings.rerank_column,
            "device": settings.cross_encoder_device,
            "return_score": "relevance",
        }
    api_key = settings.cohere_api_key
    return {
        "model_name": settings.cohere_model,
        "column": settings.rerank_column,
        "top_n": settings.cohere_top_n,
        "api_key": api_key.get_secret_value() if api_key is not None else None,
        "base_url": settings.cohere_base_url,
        "timeout": settings.cohere_timeout_seconds,
        "return_score": "relevance",
    }


def create_reranker(
    name: str | None = None,
    settings: Settings | None = None,
    scorer: PairwiseScorerProtocol | None = None,
    **overrides: Any,
) -> Reranker:
    """Create a reranker by name.

    Args:
        name: linear | rrf | cross_encoder | cohere (default from settings)
        settings: Settings providing defaults (cached settings if omitted)
        scorer: Shared pairwise scorer for the cross-encoder reranker
        **overrides: Option values taking precedence over settings; None
            values are ignored

    Returns:
        Configured Reranker

    Raises:
        InvalidConfigError: If name or an option is invalid
    """
    settings = settings or get_settings()
    name = name or settings.default_reranker
    if name not in RERANKER_NAMES:
        raise InvalidConfigError(
            f"Unknown reranker '{name}'. Valid options: {', '.join(RERANKER_NAMES)}"
        )

    options = _defaults(name, settings)
    for key, value in overrides.items():
        if value is None:
            continue
        if key not in options:
            raise InvalidConfigError(f"Option '{key}' is not supported by reranker '{name}'")
        options[key] = value

    try:
        if name == LINEAR:
            return LinearCombinationReranker(**options)
        if name == RRF:
            return ReciprocalRankFusionReranker(**options)
        if name == CROSS_ENCODER:
            return CrossEncoderReranker(scorer=scorer, **options)
        return RemoteAPIReranker(**options)
    except TypeError as e:
        raise InvalidConfigError(f"Invalid options for reranker '{name}': {e}") from e
