"""
Linear combination reranker.

Formula: relevance = weight * vector_norm + (1 - weight) * fts_norm

Both sides are normalized to [0, 1] (higher is better) before weighting.
A row found on only one side has the missing side scored as the fill
penalty: missing = clamp(1 - fill, 0, 1). With the default fill=1.0 the
missing side contributes 0.

Degenerate weights:
- weight=1.0 reproduces the vector-only ordering
- weight=0.0 reproduces the full-text-only ordering
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hybrid_rerank.rerankers.base import (
    Reranker,
    RerankerConfig,
    ReturnScore,
    RowFilter,
    apply_filter,
    sort_by_relevance,
)
from hybrid_rerank.search.exceptions import InvalidConfigError
from hybrid_rerank.search.normalize import NormalizeMethod, normalized_scores
from hybrid_rerank.search.results import (
    DISTANCE_COLUMN,
    RELEVANCE_COLUMN,
    SCORE_COLUMN,
    ResultSet,
    Row,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

_DEFAULT_WEIGHT = 0.7
_DEFAULT_FILL = 1.0


@dataclass(frozen=True)
class LinearCombinationConfig(RerankerConfig):
    """Linear combination options.

    Attributes:
        weight: Share of the final score given to the vector side [0, 1]
        fill: Penalty for a side where the row is missing (default: 1.0)
    """

    weight: float = _DEFAULT_WEIGHT
    fill: float = _DEFAULT_FILL

    def __post_init__(self) -> None:
        """Validate weight range on top of the shared enum checks."""
        super().__post_init__()
        if not 0.0 <= self.weight <= 1.0:
            raise InvalidConfigError(f"weight must be in [0, 1], got {self.weight}")


class LinearCombinationReranker(Reranker):
    """Weighted sum of normalized vector and full-text scores.

    Usage:
        reranker = LinearCombinationReranker(weight=0.7, fill=1.0)
        fused = reranker.rerank(query, vector_results, fts_results)
    """

    def __init__(
        self,
        weight: float = _DEFAULT_WEIGHT,
        fill: float = _DEFAULT_FILL,
        normalize: NormalizeMethod | str = NormalizeMethod.SCORE,
        return_score: ReturnScore | str = ReturnScore.RELEVANCE,
    ) -> None:
        """Initialize the reranker.

        Raises:
            InvalidConfigError: If weight is outside [0, 1] or an enum is invalid
        """
        super().__init__(
            LinearCombinationConfig(
                normalize=normalize,  # type: ignore[arg-type]
                return_score=return_score,  # type: ignore[arg-type]
                weight=weight,
                fill=fill,
            )
        )

    @property
    def config(self) -> LinearCombinationConfig:
        return self._config  # type: ignore[return-value]

    @property
    def weight(self) -> float:
        """Get the vector-side weight."""
        return self.config.weight

    @property
    def missing_side_score(self) -> float:
        """Normalized score substituted for the side a row is missing from."""
        return max(0.0, min(1.0, 1.0 - self.config.fill))

    def combine(self, vector_score: float, fts_score: float) -> float:
        """Weighted combination of two normalized scores."""
        weight = self.config.weight
        return weight * vector_score + (1.0 - weight) * fts_score

    def rerank(
        self,
        query: str,
        vector_results: ResultSet,
        fts_results: ResultSet,
        filter: RowFilter | None = None,
    ) -> ResultSet:
        """Fuse by weighted linear combination of normalized scores."""
        method = self.config.normalize
        vector_norm = dict(
            zip(vector_results.ids(), normalized_scores(vector_results, method))
        )
        fts_norm = dict(zip(fts_results.ids(), normalized_scores(fts_results, method)))

        candidates = apply_filter(
            list(self.merge(vector_results, fts_results).rows), filter
        )
        keep_all = self.config.return_score is ReturnScore.ALL
        if keep_all:
            distances = {row.id: row.get_score(DISTANCE_COLUMN) for row in vector_results}
            fts_scores = {row.id: row.get_score(SCORE_COLUMN) for row in fts_results}

        missing = self.missing_side_score
        fused: list[Row] = []
        for row in candidates:
            relevance = self.combine(
                vector_norm.get(row.id, missing),
                fts_norm.get(row.id, missing),
            )
            if keep_all:
                scores = {
                    DISTANCE_COLUMN: distances.get(row.id),
                    SCORE_COLUMN: fts_scores.get(row.id),
                    RELEVANCE_COLUMN: relevance,
                }
            else:
                scores = {RELEVANCE_COLUMN: relevance}
            fused.append(row.with_scores(scores))

        logger.debug(
            "Linear fusion of %d vector + %d fts rows -> %d candidates",
            len(vector_results),
            len(fts_results),
            len(fused),
        )
        return ResultSet.fused(sort_by_relevance(fused))
