"""
Unit tests for ReciprocalRankFusionReranker.

RRF Formula: relevance = sum(1 / (k + rank)), 1-based rank per side
"""

from __future__ import annotations

import pytest

from hybrid_rerank.rerankers import ReciprocalRankFusionReranker
from hybrid_rerank.search.exceptions import InvalidConfigError
from hybrid_rerank.search.results import (
    DISTANCE_COLUMN,
    RELEVANCE_COLUMN,
    SCORE_COLUMN,
    ResultSet,
)
from tests.fakes import fts_results, vector_results


class TestRRFConfig:
    """Tests for RRF configuration validation."""

    def test_default_k(self) -> None:
        """Default k is 60."""
        assert ReciprocalRankFusionReranker().config.k == 60

    @pytest.mark.parametrize("k", [0, -5, 2.5, True])
    def test_rejects_invalid_k(self, k: object) -> None:
        with pytest.raises(InvalidConfigError, match="k must be"):
            ReciprocalRankFusionReranker(k=k)  # type: ignore[arg-type]


class TestRRFScores:
    """Tests for RRF score computation."""

    def test_scenario_scores(
        self,
        scenario_vector: ResultSet,
        scenario_fts: ResultSet,
    ) -> None:
        """
        With k=60:
            id1: vector rank 1           -> 1/61
            id2: vector rank 2, fts 1    -> 1/62 + 1/61
            id3: fts rank 2              -> 1/62
        """
        fused = ReciprocalRankFusionReranker(k=60).rerank("q", scenario_vector, scenario_fts)

        relevance = {row.id: row.scores[RELEVANCE_COLUMN] for row in fused}
        assert relevance[1] == pytest.approx(1 / 61)
        assert relevance[2] == pytest.approx(1 / 62 + 1 / 61)
        assert relevance[3] == pytest.approx(1 / 62)
        assert fused.ids() == [2, 1, 3]

    def test_raw_score_scale_is_ignored(self) -> None:
        """Only positions matter, not raw magnitudes."""
        a = ReciprocalRankFusionReranker().rerank(
            "q", vector_results((1, 0.1), (2, 0.2)), fts_results((3, 100.0), (1, 1.0))
        )
        b = ReciprocalRankFusionReranker().rerank(
            "q", vector_results((1, 0.001), (2, 9.0)), fts_results((3, 2.0), (1, 1.9))
        )

        assert a.to_records() == b.to_records()

    def test_smaller_k_widens_gaps(self) -> None:
        vector = vector_results((1, 0.1), (2, 0.2))
        fts = ResultSet.full_text([])

        wide = ReciprocalRankFusionReranker(k=1).rerank("q", vector, fts).scores()
        narrow = ReciprocalRankFusionReranker(k=100).rerank("q", vector, fts).scores()

        assert wide[0] - wide[1] > narrow[0] - narrow[1]


class TestRRFOutput:
    """Tests for the fused output shape."""

    def test_relevance_only_by_default(
        self,
        scenario_vector: ResultSet,
        scenario_fts: ResultSet,
    ) -> None:
        fused = ReciprocalRankFusionReranker().rerank("q", scenario_vector, scenario_fts)

        assert all(set(row.scores) == {RELEVANCE_COLUMN} for row in fused)

    def test_all_keeps_raw_scores(
        self,
        scenario_vector: ResultSet,
        scenario_fts: ResultSet,
    ) -> None:
        fused = ReciprocalRankFusionReranker(return_score="all").rerank(
            "q", scenario_vector, scenario_fts
        )

        by_id = {row.id: row.scores for row in fused}
        assert by_id[3][DISTANCE_COLUMN] is None
        assert by_id[3][SCORE_COLUMN] == pytest.approx(2.0)
        assert by_id[1][SCORE_COLUMN] is None

    def test_no_duplicates_and_sorted(
        self,
        larger_vector: ResultSet,
        larger_fts: ResultSet,
    ) -> None:
        fused = ReciprocalRankFusionReranker().rerank("q", larger_vector, larger_fts)

        assert len(fused.ids()) == len(set(fused.ids())) == 7
        assert fused.scores() == sorted(fused.scores(), reverse=True)

    def test_filter(
        self,
        scenario_vector: ResultSet,
        scenario_fts: ResultSet,
    ) -> None:
        fused = ReciprocalRankFusionReranker().rerank(
            "q", scenario_vector, scenario_fts, filter=lambda row: row.id == 3
        )

        assert fused.ids() == [3]
