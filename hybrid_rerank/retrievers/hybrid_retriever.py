"""
LangChain-compatible hybrid retriever.

Wraps a HybridSearchOrchestrator behind LangChain's BaseRetriever so fused
hybrid results can feed LCEL chains directly.

Document mapping:
- page_content: the configured text column of the row payload
- metadata: id, remaining payload columns and score columns
"""

from __future__ import annotations

import asyncio
from typing import Any

from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from pydantic import Field

from hybrid_rerank.search.results import ResultSet, Row


class HybridRetriever(BaseRetriever):
    """LangChain retriever backed by hybrid vector + full-text search.

    Attributes:
        k: Number of documents to return (default: 4)
        content_column: Payload column used as page_content (default: "text")

    Usage:
        retriever = HybridRetriever(orchestrator=orchestrator, k=5)
        docs = await retriever.ainvoke("hybrid retrieval")

        # In LCEL chain
        chain = retriever | prompt | llm
    """

    # Pydantic fields for LangChain BaseRetriever
    k: int = Field(default=4, description="Number of documents to return")
    content_column: str = Field(default="text", description="Column used as page_content")

    # Private attributes (not Pydantic fields)
    _orchestrator: Any = None

    def __init__(
        self,
        orchestrator: Any,
        k: int = 4,
        content_column: str = "text",
        **kwargs: Any,
    ) -> None:
        """Initialize retriever with a HybridSearchOrchestrator.

        Args:
            orchestrator: HybridSearchOrchestrator (or fake with async search())
            k: Number of documents to return
            content_column: Payload column used as page_content
            **kwargs: Additional arguments for BaseRetriever
        """
        super().__init__(k=k, content_column=content_column, **kwargs)
        self._orchestrator = orchestrator

    def _to_document(self, row: Row) -> Document:
        payload = dict(row.payload)
        content = payload.pop(self.content_column, "")
        metadata = {"id": row.id, **payload, **row.scores}
        return Document(page_content="" if content is None else str(content), metadata=metadata)

    def _to_documents(self, results: ResultSet) -> list[Document]:
        return [self._to_document(row) for row in results.head(self.k)]

    def _get_relevant_documents(
        self,
        query: str,
        *,
        run_manager: CallbackManagerForRetrieverRun | None = None,
    ) -> list[Document]:
        """Retrieve documents synchronously (runs the async search)."""
        if not query or not query.strip():
            return []
        return asyncio.run(self._aget_relevant_documents(query))

    async def _aget_relevant_documents(
        self,
        query: str,
        *,
        run_manager: CallbackManagerForRetrieverRun | None = None,
    ) -> list[Document]:
        """Retrieve documents via hybrid search.

        Raises:
            HybridSearchError: Propagated from the orchestrator unchanged
        """
        if not query or not query.strip():
            return []
        results = await self._orchestrator.search(query, limit=self.k)
        return self._to_documents(results)
