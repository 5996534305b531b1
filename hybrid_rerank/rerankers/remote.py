"""
Remote API reranker (Cohere-compatible rerank endpoint).

The merged candidate pool is sent to a hosted ranking service in one
batched request: (query, list of candidate texts). The service returns a
relevance score per candidate index; rows are sorted by that score and
truncated to top_n when set.

Error policy:
- Missing credential at construction -> RerankAuthenticationError
- HTTP 401/403                       -> RerankAuthenticationError
- Network failure, timeout, non-2xx,
  malformed body                     -> RemoteServiceError
Nothing is retried here; retry and backoff belong to the caller.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Any

import httpx

from hybrid_rerank.rerankers.base import (
    Reranker,
    RerankerConfig,
    ReturnScore,
    RowFilter,
    apply_filter,
    sort_by_relevance,
)
from hybrid_rerank.search.exceptions import (
    InvalidConfigError,
    RemoteServiceError,
    RerankAuthenticationError,
)
from hybrid_rerank.search.results import RELEVANCE_COLUMN, ResultSet, Row

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

_DEFAULT_MODEL = "rerank-english-v2.0"
_DEFAULT_COLUMN = "text"
_DEFAULT_BASE_URL = "https://api.cohere.ai/v1"
_DEFAULT_TIMEOUT = 30.0
_API_KEY_ENV = "COHERE_API_KEY"
_AUTH_STATUS_CODES = {401, 403}


@dataclass(frozen=True)
class RemoteRerankConfig(RerankerConfig):
    """Remote ranking service options.

    Attributes:
        model_name: Model name understood by the service
        column: Text column sent as the candidate document
        top_n: Optional cap on returned rows
        base_url: Service base URL (the /rerank path is appended)
        timeout: Per-request timeout in seconds
    """

    model_name: str = _DEFAULT_MODEL
    column: str = _DEFAULT_COLUMN
    top_n: int | None = None
    base_url: str = _DEFAULT_BASE_URL
    timeout: float = _DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.top_n is not None and (
            isinstance(self.top_n, bool) or not isinstance(self.top_n, int) or self.top_n <= 0
        ):
            raise InvalidConfigError(f"top_n must be a positive integer, got {self.top_n!r}")
        if self.timeout <= 0:
            raise InvalidConfigError(f"timeout must be positive, got {self.timeout}")


class RemoteAPIReranker(Reranker):
    """Rerank candidates through a hosted rerank API.

    Usage:
        reranker = RemoteAPIReranker(api_key="...", top_n=10)
        fused = reranker.rerank("what is bm25", vector_results, fts_results)

        # Cancellable variant for async callers
        fused = await reranker.arerank("what is bm25", vector_results, fts_results)
    """

    def __init__(
        self,
        model_name: str = _DEFAULT_MODEL,
        column: str = _DEFAULT_COLUMN,
        top_n: int | None = None,
        api_key: str | None = None,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: float = _DEFAULT_TIMEOUT,
        return_score: ReturnScore | str = ReturnScore.RELEVANCE,
        transport: Any | None = None,
    ) -> None:
        """Initialize the reranker.

        Args:
            model_name: Model name understood by the service
            column: Text column sent as the candidate document
            top_n: Optional cap on returned rows
            api_key: Service credential; falls back to COHERE_API_KEY
            base_url: Service base URL
            timeout: Per-request timeout in seconds
            return_score: Must be "relevance"
            transport: Optional httpx transport (sync and async), for tests

        Raises:
            RerankAuthenticationError: If no credential is available
            UnsupportedOptionError: If return_score is "all"
            InvalidConfigError: If an option value is invalid
        """
        super().__init__(
            RemoteRerankConfig(
                return_score=return_score,  # type: ignore[arg-type]
                model_name=model_name,
                column=column,
                top_n=top_n,
                base_url=base_url.rstrip("/"),
                timeout=timeout,
            )
        )
        self._require_relevance_only()

        self._api_key = api_key or os.environ.get(_API_KEY_ENV)
        if not self._api_key:
            raise RerankAuthenticationError(
                f"Remote reranker requires an API key; pass api_key or set {_API_KEY_ENV}"
            )
        self._transport = transport

    @property
    def config(self) -> RemoteRerankConfig:
        return self._config  # type: ignore[return-value]

    # -------------------------------------------------------------------------
    # Request/response helpers
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _candidates(
        self,
        vector_results: ResultSet,
        fts_results: ResultSet,
        filter: RowFilter | None,
    ) -> list[Row]:
        return apply_filter(list(self.merge(vector_results, fts_results).rows), filter)

    def _payload(self, query: str, candidates: list[Row]) -> dict[str, Any]:
        column = self.config.column
        documents = []
        for row in candidates:
            if column not in row.payload:
                raise InvalidConfigError(
                    f"Column '{column}' not found in row {row.id!r}; "
                    "set column to an existing text field"
                )
            value = row.payload[column]
            documents.append("" if value is None else str(value))

        top_n = self.config.top_n
        return {
            "model": self.config.model_name,
            "query": query,
            "documents": documents,
            "top_n": min(top_n, len(documents)) if top_n is not None else len(documents),
            "return_documents": False,
        }

    def _parse_response(
        self,
        response: httpx.Response,
        candidates: list[Row],
    ) -> ResultSet:
        if response.status_code in _AUTH_STATUS_CODES:
            raise RerankAuthenticationError(
                f"Rerank service rejected the credential (HTTP {response.status_code})"
            )
        if response.is_error:
            raise RemoteServiceError(
                f"Rerank service returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            results = response.json()["results"]
            scored: list[Row] = []
            seen: set[int] = set()
            for item in results:
                index = item["index"]
                if isinstance(index, bool) or not isinstance(index, int):
                    raise TypeError(f"index must be an integer, got {index!r}")
                if not 0 <= index < len(candidates):
                    raise IndexError(f"index {index} outside 0..{len(candidates) - 1}")
                if index in seen:
                    raise ValueError(f"index {index} returned more than once")
                seen.add(index)
                score = float(item["relevance_score"])
                if not math.isfinite(score):
                    raise ValueError(f"relevance_score for index {index} is {score}")
                scored.append(candidates[index].with_scores({RELEVANCE_COLUMN: score}))
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise RemoteServiceError(
                f"Malformed rerank response: {e}",
                status_code=response.status_code,
                cause=e,
            ) from e

        ranked = sort_by_relevance(scored)
        if self.config.top_n is not None:
            ranked = ranked[: self.config.top_n]
        return ResultSet.fused(ranked)

    # -------------------------------------------------------------------------
    # Reranker interface
    # -------------------------------------------------------------------------

    def rerank(
        self,
        query: str,
        vector_results: ResultSet,
        fts_results: ResultSet,
        filter: RowFilter | None = None,
    ) -> ResultSet:
        """Rerank with one blocking request to the service."""
        candidates = self._candidates(vector_results, fts_results, filter)
        if not candidates:
            return ResultSet.fused([])
        payload = self._payload(query, candidates)

        try:
            with httpx.Client(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
            ) as client:
                response = client.post("/rerank", json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise RemoteServiceError(f"Rerank request failed: {e}", cause=e) from e

        logger.debug(
            "Remote rerank of %d candidates",
            len(candidates),
            extra={"status_code": response.status_code},
        )
        return self._parse_response(response, candidates)

    async def arerank(
        self,
        query: str,
        vector_results: ResultSet,
        fts_results: ResultSet,
        filter: RowFilter | None = None,
    ) -> ResultSet:
        """Rerank with one async request; cancelling the task aborts it."""
        candidates = self._candidates(vector_results, fts_results, filter)
        if not candidates:
            return ResultSet.fused([])
        payload = self._payload(query, candidates)

        try:
            async with httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/rerank", json=payload, headers=self._headers()
                )
        except httpx.HTTPError as e:
            raise RemoteServiceError(f"Rerank request failed: {e}", cause=e) from e

        logger.debug(
            "Remote rerank of %d candidates",
            len(candidates),
            extra={"status_code": response.status_code},
        )
        return self._parse_response(response, candidates)
