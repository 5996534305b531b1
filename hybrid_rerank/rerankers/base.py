"""
Reranker interface and shared building blocks.

Every reranker consumes the two raw result sets of a hybrid search (vector
and full-text) and produces one fused ResultSet sorted by _relevance_score
descending, with at most one row per identifier.

Interface:
- rerank(query, vector_results, fts_results, filter=None)  required
- arerank(...)                                             async, defaults
                                                           to a worker thread
- merge(vector_results, fts_results)                       provided default

Configuration is read once at construction into a frozen dataclass and is
never mutated for the lifetime of the reranker.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from hybrid_rerank.search.exceptions import InvalidConfigError, UnsupportedOptionError
from hybrid_rerank.search.normalize import NormalizeMethod, parse_normalize_method
from hybrid_rerank.search.results import RELEVANCE_COLUMN, ResultSet, Row

logger = logging.getLogger(__name__)

RowFilter = Callable[[Row], bool]


# =============================================================================
# Configuration
# =============================================================================


class ReturnScore(str, Enum):
    """Which score columns a fused result keeps."""

    RELEVANCE = "relevance"
    ALL = "all"


def parse_return_score(value: ReturnScore | str) -> ReturnScore:
    """Coerce a string to ReturnScore.

    Raises:
        InvalidConfigError: If value is not 'relevance' or 'all'
    """
    try:
        return ReturnScore(value)
    except ValueError:
        valid = ", ".join(r.value for r in ReturnScore)
        raise InvalidConfigError(
            f"Invalid return_score '{value}'. Valid options: {valid}"
        ) from None


@dataclass(frozen=True)
class RerankerConfig:
    """Options shared by all rerankers.

    Attributes:
        normalize: "score" (min-max, default) or "rank"
        return_score: "relevance" (default) or "all"
    """

    normalize: NormalizeMethod = NormalizeMethod.SCORE
    return_score: ReturnScore = ReturnScore.RELEVANCE

    def __post_init__(self) -> None:
        """Coerce and validate enum fields."""
        object.__setattr__(self, "normalize", parse_normalize_method(self.normalize))
        object.__setattr__(self, "return_score", parse_return_score(self.return_score))


# =============================================================================
# Reranker Base Class
# =============================================================================


class Reranker(ABC):
    """Base class for all fusion strategies.

    Subclasses implement rerank(); merge() and arerank() are provided.

    Usage:
        reranker = LinearCombinationReranker(weight=0.7)
        fused = reranker.rerank("what is bm25", vector_results, fts_results)
    """

    def __init__(self, config: RerankerConfig) -> None:
        self._config = config

    @property
    def config(self) -> RerankerConfig:
        """Get the immutable reranker configuration."""
        return self._config

    @property
    def name(self) -> str:
        """Short strategy name used in logs and API responses."""
        return type(self).__name__

    @abstractmethod
    def rerank(
        self,
        query: str,
        vector_results: ResultSet,
        fts_results: ResultSet,
        filter: RowFilter | None = None,
    ) -> ResultSet:
        """Fuse two result sets into one sorted by _relevance_score descending.

        Args:
            query: Original query text
            vector_results: Vector search results (_distance ascending)
            fts_results: Full-text search results (_score descending)
            filter: Optional predicate; rows for which it is False are dropped

        Returns:
            Fused ResultSet
        """

    async def arerank(
        self,
        query: str,
        vector_results: ResultSet,
        fts_results: ResultSet,
        filter: RowFilter | None = None,
    ) -> ResultSet:
        """Async rerank; runs rerank() in a worker thread by default."""
        return await asyncio.to_thread(
            self.rerank, query, vector_results, fts_results, filter
        )

    def merge(self, vector_results: ResultSet, fts_results: ResultSet) -> ResultSet:
        """Concatenate both sets and drop duplicate ids, first occurrence wins.

        Vector-side rows take priority over full-text duplicates. No scores
        are computed; the output is unscored (score_column=None) and rows
        keep whatever score columns they arrived with.
        """
        return merge_results(vector_results, fts_results)

    def _require_relevance_only(self) -> None:
        """Reject return_score='all' for rerankers that only yield relevance.

        Raises:
            UnsupportedOptionError: If return_score is 'all'
        """
        if self._config.return_score is ReturnScore.ALL:
            raise UnsupportedOptionError(
                f"{self.name} only supports return_score='relevance'"
            )


# =============================================================================
# Shared Helpers
# =============================================================================


def merge_results(vector_results: ResultSet, fts_results: ResultSet) -> ResultSet:
    """Union of two result sets by identifier, vector side first."""
    seen: set[str | int] = set()
    rows: list[Row] = []
    for row in (*vector_results.rows, *fts_results.rows):
        if row.id in seen:
            continue
        seen.add(row.id)
        rows.append(row)
    return ResultSet(rows=tuple(rows), score_column=None)


def apply_filter(rows: list[Row], filter: RowFilter | None) -> list[Row]:
    """Drop rows rejected by the predicate (no-op without one)."""
    if filter is None:
        return rows
    kept = [row for row in rows if filter(row)]
    logger.debug("Filter kept %d of %d candidates", len(kept), len(rows))
    return kept


def sort_by_relevance(rows: list[Row]) -> list[Row]:
    """Stable sort by _relevance_score descending (ties keep input order)."""
    return sorted(rows, key=lambda row: -(row.get_score(RELEVANCE_COLUMN) or 0.0))
