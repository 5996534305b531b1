"""
Unit tests for HybridSearchOrchestrator.

Covers:
- Precondition check on the full-text index before any search runs
- Concurrent execution of both searches
- Error propagation with cancellation of the surviving search
- Timeout and caller cancellation, including an in-flight remote rerank request
- Limit handling and per-call reranker overrides
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from hybrid_rerank.core.config import Settings
from hybrid_rerank.rerankers import (
    LinearCombinationReranker,
    ReciprocalRankFusionReranker,
    RemoteAPIReranker,
)
from hybrid_rerank.search.exceptions import (
    InvalidConfigError,
    PreconditionFailedError,
    SearchBackendError,
    SearchCancelledError,
)
from hybrid_rerank.search.hybrid import (
    FullTextSearchProtocol,
    HybridSearchOrchestrator,
    VectorSearchProtocol,
)
from hybrid_rerank.search.results import RELEVANCE_COLUMN, ResultSet
from tests.fakes import FakeFullTextSearch, FakeVectorSearch

# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def vector_search(scenario_vector: ResultSet) -> FakeVectorSearch:
    return FakeVectorSearch(scenario_vector)


@pytest.fixture
def fts_search(scenario_fts: ResultSet) -> FakeFullTextSearch:
    return FakeFullTextSearch(scenario_fts)


@pytest.fixture
def orchestrator(
    vector_search: FakeVectorSearch,
    fts_search: FakeFullTextSearch,
    settings: Settings,
) -> HybridSearchOrchestrator:
    return HybridSearchOrchestrator(
        vector_search=vector_search,
        fts_search=fts_search,
        settings=settings,
    )


# =============================================================================
# Test: Protocol Compliance
# =============================================================================


class TestProtocols:
    """Fakes satisfy the backend protocols."""

    def test_fake_vector_search(self) -> None:
        assert isinstance(FakeVectorSearch(), VectorSearchProtocol)

    def test_fake_fts_search(self) -> None:
        assert isinstance(FakeFullTextSearch(), FullTextSearchProtocol)


# =============================================================================
# Test: Basic Search
# =============================================================================


class TestHybridSearch:
    """Tests for the happy path."""

    def test_default_reranker_built_from_settings(
        self,
        orchestrator: HybridSearchOrchestrator,
    ) -> None:
        assert isinstance(orchestrator.reranker, LinearCombinationReranker)
        assert orchestrator.reranker.weight == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_returns_fused_results(
        self,
        orchestrator: HybridSearchOrchestrator,
    ) -> None:
        fused = await orchestrator.search("hybrid query")

        assert fused.ids() == [1, 2, 3]
        assert fused.score_column == RELEVANCE_COLUMN
        assert fused.scores() == pytest.approx([0.7, 0.3, 0.0])

    @pytest.mark.asyncio
    async def test_each_backend_queried_with_limit(
        self,
        orchestrator: HybridSearchOrchestrator,
        vector_search: FakeVectorSearch,
        fts_search: FakeFullTextSearch,
    ) -> None:
        await orchestrator.search("hybrid query", limit=5)

        assert vector_search.calls == [("hybrid query", 5)]
        assert fts_search.calls == [("hybrid query", 5)]
        assert fts_search.index_checks == ["text"]

    @pytest.mark.asyncio
    async def test_output_truncated_to_limit(
        self,
        larger_vector: ResultSet,
        larger_fts: ResultSet,
        settings: Settings,
    ) -> None:
        orchestrator = HybridSearchOrchestrator(
            FakeVectorSearch(larger_vector), FakeFullTextSearch(larger_fts), settings=settings
        )

        fused = await orchestrator.search("q", limit=3)

        assert len(fused) == 3

    @pytest.mark.asyncio
    async def test_default_limit_from_settings(
        self,
        vector_search: FakeVectorSearch,
        orchestrator: HybridSearchOrchestrator,
    ) -> None:
        await orchestrator.search("q")

        assert vector_search.calls == [("q", 10)]

    @pytest.mark.asyncio
    async def test_per_call_reranker_overrides_default(
        self,
        orchestrator: HybridSearchOrchestrator,
    ) -> None:
        fused = await orchestrator.search("q", reranker=ReciprocalRankFusionReranker(k=60))

        assert fused.ids() == [2, 1, 3]
        assert isinstance(orchestrator.reranker, LinearCombinationReranker)

    @pytest.mark.asyncio
    async def test_filter_is_forwarded(
        self,
        orchestrator: HybridSearchOrchestrator,
    ) -> None:
        fused = await orchestrator.search("q", filter=lambda row: row.id != 2)

        assert fused.ids() == [1, 3]

    @pytest.mark.asyncio
    async def test_empty_query_returns_empty(
        self,
        orchestrator: HybridSearchOrchestrator,
        vector_search: FakeVectorSearch,
        fts_search: FakeFullTextSearch,
    ) -> None:
        fused = await orchestrator.search("   ")

        assert len(fused) == 0
        assert vector_search.calls == []
        assert fts_search.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -3])
    async def test_invalid_limit(
        self,
        limit: int,
        orchestrator: HybridSearchOrchestrator,
    ) -> None:
        with pytest.raises(InvalidConfigError, match="limit"):
            await orchestrator.search("q", limit=limit)

    @pytest.mark.asyncio
    async def test_independent_searches_run_concurrently(
        self,
        orchestrator: HybridSearchOrchestrator,
    ) -> None:
        """Concurrent calls on one orchestrator do not share state."""
        first, second = await asyncio.gather(
            orchestrator.search("q", limit=1),
            orchestrator.search("q", limit=3),
        )

        assert len(first) == 1
        assert len(second) == 3


# =============================================================================
# Test: Precondition
# =============================================================================


class TestFullTextPrecondition:
    """A missing full-text index fails before any search runs."""

    @pytest.mark.asyncio
    async def test_missing_index(
        self,
        vector_search: FakeVectorSearch,
        scenario_fts: ResultSet,
        settings: Settings,
    ) -> None:
        fts_search = FakeFullTextSearch(scenario_fts, indexed_columns=set())
        orchestrator = HybridSearchOrchestrator(vector_search, fts_search, settings=settings)

        with pytest.raises(PreconditionFailedError) as exc_info:
            await orchestrator.search("q")

        assert exc_info.value.column == "text"
        assert vector_search.calls == []
        assert fts_search.calls == []

    @pytest.mark.asyncio
    async def test_missing_index_checked_before_blank_query(
        self,
        vector_search: FakeVectorSearch,
        scenario_fts: ResultSet,
        settings: Settings,
    ) -> None:
        fts_search = FakeFullTextSearch(scenario_fts, indexed_columns=set())
        orchestrator = HybridSearchOrchestrator(vector_search, fts_search, settings=settings)

        with pytest.raises(PreconditionFailedError):
            await orchestrator.search("   ")

        assert fts_search.index_checks == ["text"]

    @pytest.mark.asyncio
    async def test_column_override(
        self,
        orchestrator: HybridSearchOrchestrator,
        fts_search: FakeFullTextSearch,
    ) -> None:
        with pytest.raises(PreconditionFailedError, match="title"):
            await orchestrator.search("q", fts_column="title")

        assert fts_search.index_checks == ["title"]


# =============================================================================
# Test: Concurrency and Failure
# =============================================================================


class RendezvousVectorSearch:
    """Vector backend that only returns once the full-text search has started."""

    def __init__(self, results: ResultSet, fts_started: asyncio.Event) -> None:
        self._results = results
        self._fts_started = fts_started

    async def search(self, query: str, k: int) -> ResultSet:
        await self._fts_started.wait()
        return self._results


class SignallingFullTextSearch(FakeFullTextSearch):
    """Full-text backend that signals when its search starts."""

    def __init__(self, results: ResultSet, started: asyncio.Event) -> None:
        super().__init__(results)
        self._started = started

    async def search(self, query: str, k: int) -> ResultSet:
        self._started.set()
        return await super().search(query, k)


class TestConcurrencyAndFailure:
    """Tests for concurrent execution and error propagation."""

    @pytest.mark.asyncio
    async def test_searches_overlap(
        self,
        scenario_vector: ResultSet,
        scenario_fts: ResultSet,
        settings: Settings,
    ) -> None:
        """The vector search blocks until fts starts; sequential code would time out."""
        started = asyncio.Event()
        orchestrator = HybridSearchOrchestrator(
            RendezvousVectorSearch(scenario_vector, started),
            SignallingFullTextSearch(scenario_fts, started),
            settings=settings,
        )

        fused = await orchestrator.search("q", timeout=1.0)

        assert set(fused.ids()) == {1, 2, 3}

    @pytest.mark.asyncio
    async def test_vector_failure_cancels_fts(
        self,
        scenario_fts: ResultSet,
        settings: Settings,
    ) -> None:
        error = SearchBackendError("qdrant down")
        vector_search = FakeVectorSearch(error=error)
        fts_search = FakeFullTextSearch(scenario_fts, delay=5.0)
        orchestrator = HybridSearchOrchestrator(vector_search, fts_search, settings=settings)

        with pytest.raises(SearchBackendError) as exc_info:
            await orchestrator.search("q")

        assert exc_info.value is error
        assert fts_search.cancelled

    @pytest.mark.asyncio
    async def test_fts_failure_cancels_vector(
        self,
        scenario_vector: ResultSet,
        settings: Settings,
    ) -> None:
        vector_search = FakeVectorSearch(scenario_vector, delay=5.0)
        fts_search = FakeFullTextSearch(error=RuntimeError("neo4j timeout"))
        orchestrator = HybridSearchOrchestrator(vector_search, fts_search, settings=settings)

        with pytest.raises(RuntimeError, match="neo4j timeout"):
            await orchestrator.search("q")

        assert vector_search.cancelled


# =============================================================================
# Test: Timeout and Cancellation
# =============================================================================


class TestCancellation:
    """Tests for timeout and cancel_event handling."""

    @pytest.mark.asyncio
    async def test_timeout(
        self,
        scenario_vector: ResultSet,
        scenario_fts: ResultSet,
        settings: Settings,
    ) -> None:
        vector_search = FakeVectorSearch(scenario_vector, delay=5.0)
        orchestrator = HybridSearchOrchestrator(
            vector_search, FakeFullTextSearch(scenario_fts), settings=settings
        )

        with pytest.raises(SearchCancelledError, match="timed out"):
            await orchestrator.search("q", timeout=0.05)

        assert vector_search.cancelled

    @pytest.mark.asyncio
    async def test_timeout_from_settings(
        self,
        scenario_vector: ResultSet,
        scenario_fts: ResultSet,
        settings: Settings,
    ) -> None:
        settings = settings.model_copy(update={"hybrid_timeout_seconds": 0.05})
        orchestrator = HybridSearchOrchestrator(
            FakeVectorSearch(scenario_vector, delay=5.0),
            FakeFullTextSearch(scenario_fts),
            settings=settings,
        )

        with pytest.raises(SearchCancelledError):
            await orchestrator.search("q")

    @pytest.mark.asyncio
    async def test_cancel_event(
        self,
        scenario_vector: ResultSet,
        scenario_fts: ResultSet,
        settings: Settings,
    ) -> None:
        vector_search = FakeVectorSearch(scenario_vector, delay=5.0)
        fts_search = FakeFullTextSearch(scenario_fts, delay=5.0)
        orchestrator = HybridSearchOrchestrator(vector_search, fts_search, settings=settings)
        cancel_event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.02, cancel_event.set)

        with pytest.raises(SearchCancelledError, match="cancelled by caller"):
            await orchestrator.search("q", cancel_event=cancel_event)

        assert vector_search.cancelled
        assert fts_search.cancelled

    @pytest.mark.asyncio
    async def test_completes_before_timeout(
        self,
        orchestrator: HybridSearchOrchestrator,
    ) -> None:
        cancel_event = asyncio.Event()

        fused = await orchestrator.search("q", timeout=1.0, cancel_event=cancel_event)

        assert len(fused) == 3


class StalledRerankService:
    """Async MockTransport handler that never answers in time."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.cancelled = False

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.started.set()
        try:
            await asyncio.sleep(5.0)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return httpx.Response(200, json={"results": []})


class TestRemoteRerankCancellation:
    """The in-flight rerank request is aborted with the search."""

    @pytest.fixture
    def service(self) -> StalledRerankService:
        return StalledRerankService()

    @pytest.fixture
    def remote_orchestrator(
        self,
        service: StalledRerankService,
        vector_search: FakeVectorSearch,
        fts_search: FakeFullTextSearch,
        settings: Settings,
    ) -> HybridSearchOrchestrator:
        reranker = RemoteAPIReranker(
            api_key="test-key",
            base_url="https://rerank.test/v1",
            transport=httpx.MockTransport(service),
        )
        return HybridSearchOrchestrator(
            vector_search, fts_search, reranker=reranker, settings=settings
        )

    @pytest.mark.asyncio
    async def test_timeout_during_rerank_request(
        self,
        service: StalledRerankService,
        remote_orchestrator: HybridSearchOrchestrator,
    ) -> None:
        with pytest.raises(SearchCancelledError, match="timed out"):
            await remote_orchestrator.search("q", timeout=0.1)

        assert service.started.is_set()
        assert service.cancelled

    @pytest.mark.asyncio
    async def test_cancel_event_during_rerank_request(
        self,
        service: StalledRerankService,
        remote_orchestrator: HybridSearchOrchestrator,
    ) -> None:
        cancel_event = asyncio.Event()

        async def cancel_once_request_starts() -> None:
            await service.started.wait()
            cancel_event.set()

        trigger = asyncio.ensure_future(cancel_once_request_starts())

        with pytest.raises(SearchCancelledError, match="cancelled by caller"):
            await remote_orchestrator.search("q", timeout=5.0, cancel_event=cancel_event)

        await trigger
        assert service.cancelled
