"""
Hybrid search orchestration.

Runs vector search and full-text search for the same query concurrently,
waits for both, and fuses the two result sets with the configured reranker.

Flow:
1. Precondition: the full-text backend must report an index on the target
   column; otherwise PreconditionFailedError before any search runs
2. A blank query yields an empty result without searching
3. Both searches start as concurrent tasks with k = limit
4. If either fails, the other is cancelled and the originating error is
   re-raised unchanged (no single-source fallback)
5. reranker.arerank(query, vector_results, fts_results, filter)
6. Fused result truncated to limit

A caller-supplied timeout or cancel_event aborts the whole search with
SearchCancelledError; no partial result is returned. Each call keeps its
result sets local, so independent searches can run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol, runtime_checkable

from hybrid_rerank.core.config import Settings, get_settings
from hybrid_rerank.rerankers import Reranker, RowFilter, create_reranker
from hybrid_rerank.search.exceptions import (
    InvalidConfigError,
    PreconditionFailedError,
    SearchCancelledError,
)
from hybrid_rerank.search.results import ResultSet

logger = logging.getLogger(__name__)


# =============================================================================
# Protocols for Duck Typing
# =============================================================================


@runtime_checkable
class VectorSearchProtocol(Protocol):
    """Vector search backend: rows sorted by _distance ascending."""

    async def search(self, query: str, k: int) -> ResultSet:
        """Execute vector similarity search."""
        ...


@runtime_checkable
class FullTextSearchProtocol(Protocol):
    """Full-text search backend: rows sorted by _score descending."""

    async def has_index(self, column: str) -> bool:
        """Check whether a full-text index exists on column."""
        ...

    async def search(self, query: str, k: int) -> ResultSet:
        """Execute full-text search."""
        ...


# =============================================================================
# HybridSearchOrchestrator
# =============================================================================


class HybridSearchOrchestrator:
    """Concurrent vector + full-text search fused by a reranker.

    Usage:
        orchestrator = HybridSearchOrchestrator(
            vector_search=qdrant_search,
            fts_search=neo4j_fulltext,
            reranker=LinearCombinationReranker(weight=0.7),
        )

        results = await orchestrator.search("hybrid retrieval", limit=10)
    """

    def __init__(
        self,
        vector_search: VectorSearchProtocol,
        fts_search: FullTextSearchProtocol,
        reranker: Reranker | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            vector_search: Vector search backend
            fts_search: Full-text search backend
            reranker: Default reranker (built from settings if omitted)
            settings: Settings for limit, timeout and full-text column
        """
        self._settings = settings or get_settings()
        self._vector_search = vector_search
        self._fts_search = fts_search
        self._reranker = reranker or create_reranker(settings=self._settings)

    @property
    def reranker(self) -> Reranker:
        """Get the default reranker."""
        return self._reranker

    async def search(
        self,
        query: str,
        *,
        limit: int | None = None,
        fts_column: str | None = None,
        filter: RowFilter | None = None,
        reranker: Reranker | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ResultSet:
        """Execute a hybrid search.

        Args:
            query: Query text sent to both backends
            limit: Rows fetched from each backend and returned after fusion
            fts_column: Column the full-text index must exist on
            filter: Optional row predicate applied before scoring
            reranker: Per-call reranker overriding the default
            timeout: Seconds before the whole search is abandoned
            cancel_event: Set by the caller to abandon the search

        Returns:
            Fused ResultSet sorted by _relevance_score descending

        Raises:
            InvalidConfigError: If limit is not positive
            PreconditionFailedError: If the full-text index is missing
            SearchCancelledError: On timeout or caller cancellation
        """
        actual_limit = limit if limit is not None else self._settings.hybrid_limit
        if actual_limit < 1:
            raise InvalidConfigError(f"limit must be >= 1, got {actual_limit}")

        effective_timeout = (
            timeout if timeout is not None else self._settings.hybrid_timeout_seconds
        )
        work = asyncio.ensure_future(
            self._execute(
                query=query,
                limit=actual_limit,
                column=fts_column or self._settings.fts_column,
                filter=filter,
                reranker=reranker or self._reranker,
            )
        )
        waiters: set[asyncio.Future] = {work}
        cancel_waiter: asyncio.Future | None = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=effective_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            pending = [task for task in waiters if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if work in done:
            return work.result()

        if cancel_waiter is not None and cancel_waiter in done:
            reason = "cancelled by caller"
        else:
            reason = f"timed out after {effective_timeout}s"
        logger.warning("Hybrid search %s", reason)
        raise SearchCancelledError(f"Hybrid search {reason}")

    async def _execute(
        self,
        query: str,
        limit: int,
        column: str,
        filter: RowFilter | None,
        reranker: Reranker,
    ) -> ResultSet:
        if not await self._fts_search.has_index(column):
            raise PreconditionFailedError(
                f"No full-text index on column '{column}'; create one before hybrid search",
                column=column,
            )

        if not query or not query.strip():
            return ResultSet.fused([])

        start_time = time.perf_counter()
        vector_results, fts_results = await self._run_searches(query, limit)
        search_ms = (time.perf_counter() - start_time) * 1000

        fused = await reranker.arerank(query, vector_results, fts_results, filter)
        total_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Hybrid search: %d vector + %d fts rows -> %d fused via %s "
            "(search %.1fms, total %.1fms)",
            len(vector_results),
            len(fts_results),
            len(fused),
            reranker.name,
            search_ms,
            total_ms,
            extra={
                "reranker": reranker.name,
                "vector_rows": len(vector_results),
                "fts_rows": len(fts_results),
                "fused_rows": len(fused),
                "search_ms": round(search_ms, 1),
                "total_ms": round(total_ms, 1),
            },
        )
        return fused.head(limit)

    async def _run_searches(self, query: str, limit: int) -> tuple[ResultSet, ResultSet]:
        """Run both searches concurrently; cancel the survivor if one fails."""
        vector_task = asyncio.ensure_future(self._vector_search.search(query, limit))
        fts_task = asyncio.ensure_future(self._fts_search.search(query, limit))
        try:
            vector_results, fts_results = await asyncio.gather(vector_task, fts_task)
        except Exception as e:
            logger.warning("Hybrid search aborted, upstream search failed: %s", e)
            raise
        finally:
            pending = [task for task in (vector_task, fts_task) if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        return vector_results, fts_results
