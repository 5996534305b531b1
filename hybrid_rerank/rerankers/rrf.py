"""
Reciprocal Rank Fusion reranker.

Formula: relevance = sum(1 / (k + rank)) for each side where the row appears

Ranks are 1-based positions within each input set, so raw score scales
never enter the computation and the normalize option has no effect.
Higher k values smooth the ranking differences.
"""

from __future__ import annotations

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
from hybrid_rerank.search.results import (
    DISTANCE_COLUMN,
    RELEVANCE_COLUMN,
    SCORE_COLUMN,
    ResultSet,
    Row,
)

_DEFAULT_RRF_K = 60


@dataclass(frozen=True)
class ReciprocalRankConfig(RerankerConfig):
    """RRF options.

    Attributes:
        k: Smoothing constant added to each rank (default: 60)
    """

    k: int = _DEFAULT_RRF_K

    def __post_init__(self) -> None:
        super().__post_init__()
        if isinstance(self.k, bool) or not isinstance(self.k, int) or self.k <= 0:
            raise InvalidConfigError(f"k must be a positive integer, got {self.k!r}")


class ReciprocalRankFusionReranker(Reranker):
    """Fuse by summed reciprocal ranks."""

    def __init__(
        self,
        k: int = _DEFAULT_RRF_K,
        return_score: ReturnScore | str = ReturnScore.RELEVANCE,
    ) -> None:
        super().__init__(ReciprocalRankConfig(return_score=return_score, k=k))  # type: ignore[arg-type]

    @property
    def config(self) -> ReciprocalRankConfig:
        return self._config  # type: ignore[return-value]

    def _ranking(self, result_set: ResultSet) -> dict[str | int, int]:
        return {row.id: position + 1 for position, row in enumerate(result_set.rows)}

    def rerank(
        self,
        query: str,
        vector_results: ResultSet,
        fts_results: ResultSet,
        filter: RowFilter | None = None,
    ) -> ResultSet:
        """Fuse by reciprocal rank of each row on each side."""
        k = self.config.k
        vector_ranking = self._ranking(vector_results)
        fts_ranking = self._ranking(fts_results)
        keep_all = self.config.return_score is ReturnScore.ALL
        distances = {row.id: row.get_score(DISTANCE_COLUMN) for row in vector_results}
        fts_scores = {row.id: row.get_score(SCORE_COLUMN) for row in fts_results}

        fused: list[Row] = []
        candidates = apply_filter(list(self.merge(vector_results, fts_results).rows), filter)
        for row in candidates:
            relevance = 0.0
            if row.id in vector_ranking:
                relevance += 1.0 / (k + vector_ranking[row.id])
            if row.id in fts_ranking:
                relevance += 1.0 / (k + fts_ranking[row.id])

            scores: dict[str, float | None] = {RELEVANCE_COLUMN: relevance}
            if keep_all:
                scores = {
                    DISTANCE_COLUMN: distances.get(row.id),
                    SCORE_COLUMN: fts_scores.get(row.id),
                    RELEVANCE_COLUMN: relevance,
                }
            fused.append(row.with_scores(scores))

        return ResultSet.fused(sort_by_relevance(fused))
