"""
LangChain-compatible retrievers for hybrid-rerank.

- hybrid_retriever: BaseRetriever over HybridSearchOrchestrator
"""

from hybrid_rerank.retrievers.hybrid_retriever import HybridRetriever

__all__ = ["HybridRetriever"]
