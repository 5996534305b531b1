"""
Cross-encoder reranker.

Scores each (query, candidate text) pair with a pairwise relevance model
and orders candidates by that score. The candidate pool is the merge of
the two input sets; no score arithmetic is done on the raw scores, so
only return_score="relevance" is supported.

The scoring model is a collaborator behind PairwiseScorerProtocol. The
default implementation wraps sentence-transformers' CrossEncoder, loaded
lazily on first use; device selection is left to sentence-transformers
when no device is given.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from hybrid_rerank.rerankers.base import (
    Reranker,
    RerankerConfig,
    ReturnScore,
    RowFilter,
    apply_filter,
    sort_by_relevance,
)
from hybrid_rerank.search.exceptions import InvalidConfigError
from hybrid_rerank.search.results import RELEVANCE_COLUMN, ResultSet, Row

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

_DEFAULT_MODEL = "cross-encoder/ms-marco-TinyBERT-L-6"
_DEFAULT_COLUMN = "text"
_DEFAULT_BATCH_SIZE = 32


# =============================================================================
# Scoring Model Protocol
# =============================================================================


@runtime_checkable
class PairwiseScorerProtocol(Protocol):
    """Scores (query, text) pairs; higher is more relevant.

    This is the batched form of a per-candidate ``score(query, text) ->
    float``: ``score_pairs(query, texts)[i]`` must equal what scoring
    ``(query, texts[i])`` alone would return. The reranker makes one call
    per rerank with every candidate text, so each candidate is scored
    exactly once.
    """

    def score_pairs(self, query: str, texts: Sequence[str]) -> list[float]:
        """Return one relevance score per text, aligned by index."""
        ...


class CrossEncoderScorer:
    """PairwiseScorerProtocol backed by sentence_transformers.CrossEncoder.

    The model is loaded on the first call to score_pairs().
    """

    def __init__(
        self,
        model_name: str = _DEFAULT_MODEL,
        device: str | None = None,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> None:
        self._model_name = model_name
        self._device = device
        self._batch_size = batch_size
        self._model: Any = None
        self._lock = threading.Lock()

    @property
    def model_name(self) -> str:
        """Get the model identifier."""
        return self._model_name

    def _load_model(self) -> Any:
        with self._lock:
            if self._model is None:
                from sentence_transformers import CrossEncoder

                logger.info("Loading cross-encoder model %s", self._model_name)
                self._model = CrossEncoder(self._model_name, device=self._device)
        return self._model

    def score_pairs(self, query: str, texts: Sequence[str]) -> list[float]:
        """Score every (query, text) pair in one batched prediction."""
        if not texts:
            return []
        model = self._load_model()
        scores = model.predict(
            [(query, text) for text in texts],
            batch_size=self._batch_size,
            show_progress_bar=False,
        )
        return [float(score) for score in scores]


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class CrossEncoderConfig(RerankerConfig):
    """Cross-encoder options.

    Attributes:
        model_name: Cross-encoder model identifier
        column: Text column used as the scoring input
        device: Execution target hint; None lets the model runtime choose
    """

    model_name: str = _DEFAULT_MODEL
    column: str = _DEFAULT_COLUMN
    device: str | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.column:
            raise InvalidConfigError("column must be a non-empty string")


# =============================================================================
# CrossEncoderReranker
# =============================================================================


class CrossEncoderReranker(Reranker):
    """Rerank the merged candidate pool with a pairwise scoring model.

    Usage:
        reranker = CrossEncoderReranker(column="text")
        fused = reranker.rerank("what is bm25", vector_results, fts_results)
    """

    def __init__(
        self,
        model_name: str = _DEFAULT_MODEL,
        column: str = _DEFAULT_COLUMN,
        device: str | None = None,
        return_score: ReturnScore | str = ReturnScore.RELEVANCE,
        scorer: PairwiseScorerProtocol | None = None,
    ) -> None:
        """Initialize the reranker.

        Args:
            model_name: Cross-encoder model identifier
            column: Text column used as the scoring input
            device: Execution target hint passed to the model runtime
            return_score: Must be "relevance"
            scorer: Scoring model; defaults to a lazily loaded CrossEncoderScorer

        Raises:
            UnsupportedOptionError: If return_score is "all"
            InvalidConfigError: If an option value is invalid
        """
        super().__init__(
            CrossEncoderConfig(
                return_score=return_score,  # type: ignore[arg-type]
                model_name=model_name,
                column=column,
                device=device,
            )
        )
        self._require_relevance_only()
        self._scorer = scorer or CrossEncoderScorer(model_name=model_name, device=device)

    @property
    def config(self) -> CrossEncoderConfig:
        return self._config  # type: ignore[return-value]

    def _candidate_text(self, row: Row) -> str:
        column = self.config.column
        if column not in row.payload:
            raise InvalidConfigError(
                f"Column '{column}' not found in row {row.id!r}; "
                "set column to an existing text field"
            )
        value = row.payload[column]
        return "" if value is None else str(value)

    def rerank(
        self,
        query: str,
        vector_results: ResultSet,
        fts_results: ResultSet,
        filter: RowFilter | None = None,
    ) -> ResultSet:
        """Score merged candidates with the pairwise model."""
        candidates = apply_filter(list(self.merge(vector_results, fts_results).rows), filter)
        texts = [self._candidate_text(row) for row in candidates]
        scores = self._scorer.score_pairs(query, texts)
        logger.debug("Cross-encoder scored %d candidates", len(candidates))
        fused = [
            row.with_scores({RELEVANCE_COLUMN: score})
            for row, score in zip(candidates, scores, strict=True)
        ]
        return ResultSet.fused(sort_by_relevance(fused))
