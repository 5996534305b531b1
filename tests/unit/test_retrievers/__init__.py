"""
Unit tests for LangChain retrievers.

- test_hybrid_retriever.py: HybridRetriever over the hybrid search orchestrator
"""
