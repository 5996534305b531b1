"""
Neo4j full-text search adapter.

Implements the keyword side of hybrid search on a Neo4j full-text index
(Lucene BM25-style scoring). Returns a ResultSet sorted by _score
descending and reports whether the configured index covers a column so the
orchestrator can fail fast before searching.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from neo4j import AsyncGraphDatabase

from hybrid_rerank.search.exceptions import SearchBackendError
from hybrid_rerank.search.results import SCORE_COLUMN, ResultSet, Row

if TYPE_CHECKING:
    from neo4j import AsyncDriver

logger = logging.getLogger(__name__)

_INDEX_QUERY = """
SHOW FULLTEXT INDEXES
YIELD name, properties
WHERE name = $index_name
RETURN properties
"""

_SEARCH_QUERY = """
CALL db.index.fulltext.queryNodes($index_name, $query)
YIELD node, score
RETURN node, score
ORDER BY score DESC
LIMIT $k
"""

# Lucene query syntax: every special character is escaped with a backslash
_LUCENE_SPECIAL = re.compile(r'([+\-&|!(){}\[\]^"~*?:\\/])')
_LUCENE_OPERATOR = re.compile(r"\b(AND|OR|NOT)\b")


def escape_lucene_query(query: str) -> str:
    """Make free text safe for the Lucene query parser.

    Special characters are backslash-escaped and the bare operators
    AND, OR and NOT are lowercased so they match as ordinary words.
    """
    escaped = _LUCENE_SPECIAL.sub(r"\\\1", query)
    return _LUCENE_OPERATOR.sub(lambda match: match.group(1).lower(), escaped)


class Neo4jFullTextSearch:
    """Full-text search backend over a Neo4j full-text index.

    Usage:
        async with Neo4jFullTextSearch(settings=settings) as fts:
            if await fts.has_index("text"):
                results = await fts.search("hybrid retrieval", k=10)
    """

    def __init__(
        self,
        settings: Any,
        id_property: str = "id",
        driver: AsyncDriver | None = None,
        lucene_syntax: bool = False,
    ) -> None:
        """Initialize with Settings object.

        Args:
            settings: Settings with neo4j_url, neo4j_user, neo4j_password,
                      neo4j_database and neo4j_fulltext_index
            id_property: Node property holding the row identifier
            driver: Pre-built driver (connect() is then a no-op)
            lucene_syntax: Pass queries through as Lucene syntax instead of
                escaping them as plain text
        """
        self._url = settings.neo4j_url
        self._user = settings.neo4j_user
        password = settings.neo4j_password
        self._password = (
            password.get_secret_value() if hasattr(password, "get_secret_value") else password
        )
        self._database = settings.neo4j_database
        self._index_name = settings.neo4j_fulltext_index
        self._id_property = id_property
        self._driver = driver
        self._lucene_syntax = lucene_syntax

    @property
    def index_name(self) -> str:
        """Get the full-text index name."""
        return self._index_name

    async def connect(self) -> None:
        """Create driver and verify connectivity.

        Raises:
            SearchBackendError: If connection fails
        """
        if self._driver is not None:
            return
        try:
            self._driver = AsyncGraphDatabase.driver(
                self._url,
                auth=(self._user, self._password),
            )
            await self._driver.verify_connectivity()
        except Exception as e:
            self._driver = None
            raise SearchBackendError(
                f"Failed to connect to Neo4j at {self._url}: {e}",
                cause=e,
            ) from e

    async def close(self) -> None:
        """Close the driver. Safe to call when not connected."""
        if self._driver is not None:
            await self._driver.close()
            self._driver = None

    async def __aenter__(self) -> Neo4jFullTextSearch:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _ensure_connected(self) -> AsyncDriver:
        if self._driver is None:
            raise SearchBackendError(
                "Not connected to Neo4j. Call connect() first or use async context manager."
            )
        return self._driver

    async def has_index(self, column: str) -> bool:
        """Check whether the configured full-text index covers column.

        Raises:
            SearchBackendError: If the index lookup fails
        """
        driver = self._ensure_connected()
        try:
            result = await driver.execute_query(
                _INDEX_QUERY,
                parameters_={"index_name": self._index_name},
                database_=self._database,
            )
        except Exception as e:
            raise SearchBackendError(f"Full-text index lookup failed: {e}", cause=e) from e

        for record in result.records:
            if column in (record["properties"] or []):
                return True
        return False

    async def search(self, query: str, k: int) -> ResultSet:
        """Return the k best full-text matches.

        The query is escaped as plain text unless lucene_syntax was set.

        Raises:
            SearchBackendError: If the query fails or a node has no identifier
        """
        driver = self._ensure_connected()
        lucene_query = query if self._lucene_syntax else escape_lucene_query(query)
        try:
            result = await driver.execute_query(
                _SEARCH_QUERY,
                parameters_={"index_name": self._index_name, "query": lucene_query, "k": k},
                database_=self._database,
            )
        except Exception as e:
            raise SearchBackendError(
                f"Full-text search failed on index '{self._index_name}': {e}",
                query=query,
                cause=e,
            ) from e

        rows: list[Row] = []
        for record in result.records:
            properties = dict(record["node"])
            row_id = properties.pop(self._id_property, None)
            if row_id is None:
                raise SearchBackendError(
                    f"Full-text hit has no '{self._id_property}' property",
                    query=query,
                )
            rows.append(
                Row(id=row_id, payload=properties, scores={SCORE_COLUMN: float(record["score"])})
            )

        logger.debug("Neo4j full-text returned %d rows for k=%d", len(rows), k)
        return ResultSet.full_text(rows)
