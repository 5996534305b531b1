"""
Qdrant vector search adapter.

Implements the vector side of hybrid search: embeds the query through an
injected embedder, queries Qdrant, and returns a ResultSet sorted by
_distance ascending.

Distance conversion:
- cosine / dot similarity (higher is better): _distance = 1 - score
- euclid / manhattan (score is already a distance): _distance = score

Embedding generation is not done here; the embedder is a collaborator.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from qdrant_client import AsyncQdrantClient

from hybrid_rerank.search.exceptions import SearchBackendError
from hybrid_rerank.search.results import DISTANCE_COLUMN, ResultSet, Row

logger = logging.getLogger(__name__)

_SIMILARITY_METRICS = {"cosine", "dot"}
_DISTANCE_METRICS = {"euclid", "manhattan"}


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for query embedding."""

    async def embed(self, text: str) -> list[float]:
        """Generate embedding for text."""
        ...


class QdrantVectorSearch:
    """Vector search backend over a Qdrant collection.

    Usage:
        async with QdrantVectorSearch(settings=settings, embedder=embedder) as search:
            results = await search.search("hybrid retrieval", k=10)
    """

    def __init__(
        self,
        settings: Any,
        embedder: EmbedderProtocol,
        metric: str = "cosine",
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize with Settings object and embedder.

        Args:
            settings: Settings with qdrant_url, qdrant_collection and
                      optional qdrant_api_key
            embedder: Query embedder
            metric: Collection distance metric (cosine, dot, euclid, manhattan)
            client: Pre-built client (connect() is then a no-op)

        Raises:
            ValueError: If metric is unknown
        """
        metric = metric.lower()
        if metric not in _SIMILARITY_METRICS | _DISTANCE_METRICS:
            raise ValueError(f"Unknown distance metric '{metric}'")

        self._url = settings.qdrant_url
        self._collection = settings.qdrant_collection
        api_key = getattr(settings, "qdrant_api_key", None)
        self._api_key = api_key.get_secret_value() if api_key is not None else None
        self._embedder = embedder
        self._metric = metric
        self._client = client

    @property
    def is_connected(self) -> bool:
        """Check if the client is initialized."""
        return self._client is not None

    async def connect(self) -> None:
        """Create the Qdrant client and verify connectivity.

        Raises:
            SearchBackendError: If connection fails
        """
        if self._client is not None:
            return
        try:
            self._client = AsyncQdrantClient(url=self._url, api_key=self._api_key)
            await self._client.get_collections()
        except Exception as e:
            self._client = None
            raise SearchBackendError(
                f"Failed to connect to Qdrant at {self._url}: {e}",
                cause=e,
            ) from e

    async def close(self) -> None:
        """Close the client. Idempotent."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def __aenter__(self) -> QdrantVectorSearch:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _to_distance(self, score: float) -> float:
        if self._metric in _SIMILARITY_METRICS:
            return 1.0 - float(score)
        return float(score)

    async def search(self, query: str, k: int) -> ResultSet:
        """Embed the query and return the k nearest rows.

        Raises:
            SearchBackendError: If not connected, embedding or search fails
        """
        if self._client is None:
            raise SearchBackendError("Qdrant client is not connected. Call connect() first.")

        try:
            embedding = await self._embedder.embed(query)
            response = await self._client.query_points(
                collection_name=self._collection,
                query=embedding,
                limit=k,
                with_payload=True,
            )
        except Exception as e:
            raise SearchBackendError(
                f"Vector search failed in collection '{self._collection}': {e}",
                query=query,
                cause=e,
            ) from e

        rows = [
            Row(
                id=point.id,
                payload=dict(point.payload or {}),
                scores={DISTANCE_COLUMN: self._to_distance(point.score)},
            )
            for point in response.points
        ]
        rows.sort(key=lambda row: row.scores[DISTANCE_COLUMN])
        logger.debug("Qdrant returned %d rows for k=%d", len(rows), k)
        return ResultSet.vector(rows)
