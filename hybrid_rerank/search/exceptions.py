"""
Custom exceptions for hybrid search and reranking.

Exception naming avoids shadowing Python builtins (ConnectionError,
TimeoutError): every error carries a domain prefix or suffix and derives
from HybridSearchError so callers can catch the whole family at once.
"""

from __future__ import annotations


class HybridSearchError(Exception):
    """Base exception for all hybrid search errors."""

    pass


class InvalidConfigError(HybridSearchError):
    """Raised for a bad configuration value.

    Covers unknown enum values (normalize, return_score, reranker name)
    and numeric fields outside their allowed range (weight, k, top_n).
    """

    pass


class PreconditionFailedError(HybridSearchError):
    """Raised when the full-text index required by hybrid search is missing."""

    def __init__(self, message: str, column: str | None = None) -> None:
        """Initialize with message and the column lacking an index.

        Args:
            message: Human-readable error description
            column: The column a full-text index was expected on
        """
        super().__init__(message)
        self.column = column


class UnsupportedOptionError(HybridSearchError):
    """Raised when a reranker is asked for an option it cannot honour.

    Example: return_score="all" on a reranker that only yields relevance.
    """

    pass


class RerankAuthenticationError(HybridSearchError):
    """Raised when the remote ranking service credential is absent or rejected."""

    pass


class RemoteServiceError(HybridSearchError):
    """Raised on network or service failure of the remote ranking service.

    Not retried internally; retry policy belongs to the caller.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with message, HTTP status and optional cause.

        Args:
            message: Human-readable error description
            status_code: HTTP status returned by the service, if any
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class SearchCancelledError(HybridSearchError):
    """Raised when a hybrid search is cancelled or exceeds its timeout."""

    pass


class SearchBackendError(HybridSearchError):
    """Raised when a vector or full-text backend fails to execute a search."""

    def __init__(
        self,
        message: str,
        query: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with message, failed query, and optional cause.

        Args:
            message: Human-readable error description
            query: The search query that failed
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.query = query
        self.cause = cause
