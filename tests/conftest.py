"""
Pytest configuration and fixtures for hybrid-rerank tests.
"""

import pytest

from hybrid_rerank.core.config import Settings
from hybrid_rerank.search.results import ResultSet
from tests.fakes import fts_results, vector_results


@pytest.fixture(autouse=True)
def _no_cohere_key(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's COHERE_API_KEY out of the tests."""
    monkeypatch.delenv("COHERE_API_KEY", raising=False)


@pytest.fixture
def settings() -> Settings:
    """Provide test settings with explicit fusion defaults."""
    return Settings(
        _env_file=None,
        default_reranker="linear",
        hybrid_normalize="score",
        hybrid_return_score="relevance",
        hybrid_weight=0.7,
        hybrid_fill=1.0,
        hybrid_limit=10,
        fts_column="text",
        cohere_api_key=None,
    )


@pytest.fixture
def scenario_vector() -> ResultSet:
    """Vector side: id=1 closest, id=2 second."""
    return vector_results((1, 0.1), (2, 0.3))


@pytest.fixture
def scenario_fts() -> ResultSet:
    """Full-text side: id=2 best, id=3 second."""
    return fts_results((2, 5.0), (3, 2.0))


@pytest.fixture
def larger_vector() -> ResultSet:
    """Five vector rows, ids a-e in distance order."""
    return vector_results(("a", 0.05), ("b", 0.2), ("c", 0.4), ("d", 0.55), ("e", 0.9))


@pytest.fixture
def larger_fts() -> ResultSet:
    """Five full-text rows overlapping the vector side on c, d, e."""
    return fts_results(("e", 12.0), ("f", 9.5), ("c", 7.0), ("g", 3.0), ("d", 1.0))
