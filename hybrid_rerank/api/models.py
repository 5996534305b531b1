"""
Pydantic models for API request/response validation.

These models define the contract for the rerank and hybrid search
endpoints. Score columns keep their underscore names on the wire
(_distance, _score, _relevance_score) via field aliases.

Enum-like options (reranker name, normalize, return_score) are plain
strings here and validated by the rerankers, so a bad value surfaces as
an invalid_config error rather than a schema error.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hybrid_rerank.search.results import (
    DISTANCE_COLUMN,
    SCORE_COLUMN,
    ResultSet,
    Row,
)


class VectorRowModel(BaseModel):
    """Row from vector search."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: str | int = Field(description="Unique row identifier")
    payload: dict[str, Any] = Field(default_factory=dict, description="Row columns")
    distance: float = Field(
        alias=DISTANCE_COLUMN,
        allow_inf_nan=False,
        description="Vector distance, lower is better",
    )


class FullTextRowModel(BaseModel):
    """Row from full-text search."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: str | int = Field(description="Unique row identifier")
    payload: dict[str, Any] = Field(default_factory=dict, description="Row columns")
    score: float = Field(
        alias=SCORE_COLUMN,
        allow_inf_nan=False,
        description="Full-text score, higher is better",
    )


class RerankerSpec(BaseModel):
    """Reranker selection and options; unset fields fall back to settings."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(
        default=None,
        description="linear | rrf | cross_encoder | cohere",
    )
    normalize: str | None = Field(default=None, description="rank | score")
    return_score: str | None = Field(default=None, description="relevance | all")
    weight: float | None = Field(default=None, description="Vector-side weight (linear)")
    fill: float | None = Field(default=None, description="Missing-side penalty (linear)")
    k: int | None = Field(default=None, description="RRF constant (rrf)")
    model_name: str | None = Field(default=None, description="Model (cross_encoder, cohere)")
    column: str | None = Field(default=None, description="Text column (cross_encoder, cohere)")
    top_n: int | None = Field(default=None, description="Row cap (cohere)")

    def options(self) -> dict[str, Any]:
        """Options explicitly set on this spec, excluding the name."""
        return self.model_dump(exclude={"name"}, exclude_none=True)


class RerankRequest(BaseModel):
    """Request model for the rerank endpoint."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(min_length=1, max_length=10000, description="Original query text")
    vector_results: list[VectorRowModel] = Field(default_factory=list)
    fts_results: list[FullTextRowModel] = Field(default_factory=list)
    reranker: RerankerSpec = Field(default_factory=RerankerSpec)
    limit: int | None = Field(default=None, ge=1, le=1000, description="Max rows returned")

    def vector_result_set(self) -> ResultSet:
        """Vector rows as a ResultSet sorted by _distance ascending."""
        rows = sorted(self.vector_results, key=lambda r: r.distance)
        return ResultSet.vector(
            Row(id=r.id, payload=dict(r.payload), scores={DISTANCE_COLUMN: r.distance})
            for r in rows
        )

    def fts_result_set(self) -> ResultSet:
        """Full-text rows as a ResultSet sorted by _score descending."""
        rows = sorted(self.fts_results, key=lambda r: -r.score)
        return ResultSet.full_text(
            Row(id=r.id, payload=dict(r.payload), scores={SCORE_COLUMN: r.score})
            for r in rows
        )


class HybridSearchRequest(BaseModel):
    """Request model for the hybrid search endpoint."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(min_length=1, max_length=10000, description="Query text")
    limit: int | None = Field(default=None, ge=1, le=1000, description="Max rows returned")
    fts_column: str | None = Field(default=None, description="Full-text indexed column")
    reranker: RerankerSpec | None = Field(default=None, description="Reranker override")
    timeout_seconds: float | None = Field(default=None, gt=0, description="Search timeout")


class FusedResultsResponse(BaseModel):
    """Fused rows: id, payload and score columns per row."""

    results: list[dict[str, Any]] = Field(default_factory=list)
    total: int = Field(description="Number of rows returned")
    reranker: str = Field(description="Reranker that produced the ordering")
    latency_ms: float = Field(description="Server-side processing time")

    @classmethod
    def from_result_set(
        cls,
        result_set: ResultSet,
        reranker: str,
        latency_ms: float,
    ) -> FusedResultsResponse:
        results = [
            {"id": row.id, "payload": row.payload, **row.scores} for row in result_set
        ]
        return cls(
            results=results,
            total=len(results),
            reranker=reranker,
            latency_ms=latency_ms,
        )


class RerankResponse(FusedResultsResponse):
    """Response model for the rerank endpoint."""


class HybridSearchResponse(FusedResultsResponse):
    """Response model for the hybrid search endpoint."""


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="ok")
    version: str = Field(description="Service version")
    search_configured: bool = Field(description="Whether search backends are wired")


class ErrorResponse(BaseModel):
    """Error body for non-2xx responses."""

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable description")
