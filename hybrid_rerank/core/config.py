"""
Configuration module for hybrid-rerank.

Uses pydantic-settings for environment-based configuration of the default
reranker, its options, the remote ranking service and the search backends.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Reranker selection:
    - default_reranker: linear | rrf | cross_encoder | cohere
    - hybrid_normalize / hybrid_return_score apply to every reranker
      that supports them
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # SERVICE CONFIGURATION
    # ===========================================
    service_host: str = Field(default="0.0.0.0", description="Bind address")
    service_port: int = Field(default=8082, description="Service port")
    log_level: str = Field(default="INFO", description="Root log level")

    # ===========================================
    # FUSION DEFAULTS
    # ===========================================
    default_reranker: str = Field(
        default="linear",
        description="Reranker used when a request does not name one",
    )
    hybrid_normalize: str = Field(
        default="score",
        description="Score normalization method: rank or score",
    )
    hybrid_return_score: str = Field(
        default="relevance",
        description="Score columns returned: relevance or all",
    )
    hybrid_weight: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Vector-side weight for linear combination",
    )
    hybrid_fill: float = Field(
        default=1.0,
        description="Missing-side penalty for linear combination",
    )
    rrf_k: int = Field(default=60, gt=0, description="Reciprocal rank fusion constant")
    hybrid_limit: int = Field(default=10, ge=1, description="Default hybrid result limit")
    hybrid_timeout_seconds: float | None = Field(
        default=None,
        description="Timeout for a whole hybrid search, None to disable",
    )
    fts_column: str = Field(
        default="text",
        description="Column the full-text index is expected on",
    )

    # ===========================================
    # CROSS-ENCODER
    # ===========================================
    cross_encoder_model: str = Field(
        default="cross-encoder/ms-marco-TinyBERT-L-6",
        description="sentence-transformers cross-encoder model",
    )
    cross_encoder_device: str | None = Field(
        default=None,
        description="Execution device hint, None for automatic selection",
    )
    rerank_column: str = Field(
        default="text",
        description="Text column scored by model-based rerankers",
    )

    # ===========================================
    # REMOTE RERANK SERVICE (Cohere-compatible)
    # ===========================================
    cohere_api_key: SecretStr | None = Field(default=None, description="Rerank API key")
    cohere_model: str = Field(default="rerank-english-v2.0", description="Rerank model")
    cohere_base_url: str = Field(
        default="https://api.cohere.ai/v1",
        description="Rerank API base URL",
    )
    cohere_timeout_seconds: float = Field(default=30.0, gt=0, description="Request timeout")
    cohere_top_n: int | None = Field(default=None, description="Cap on reranked rows")

    # ===========================================
    # QDRANT CONFIGURATION
    # ===========================================
    qdrant_url: str = Field(
        default="http://localhost:6333",
        description="Qdrant REST API URL",
    )
    qdrant_collection: str = Field(default="documents", description="Vector collection")
    qdrant_api_key: SecretStr | None = Field(default=None, description="Qdrant API key")

    # ===========================================
    # NEO4J CONFIGURATION (full-text index)
    # ===========================================
    neo4j_url: str = Field(
        default="bolt://localhost:7687",
        description="Neo4j Bolt protocol URL",
    )
    neo4j_user: str = Field(default="neo4j", description="Neo4j username")
    neo4j_password: SecretStr = Field(
        default=SecretStr("devpassword"),
        description="Neo4j password",
    )
    neo4j_database: str = Field(default="neo4j", description="Neo4j database")
    neo4j_fulltext_index: str = Field(
        default="document_text",
        description="Name of the Neo4j full-text index",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
