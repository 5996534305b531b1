"""
hybrid-rerank: fusion of vector and full-text search results.

Combines a semantic (vector) result set and a keyword (full-text) result
set into one ordered result set with pluggable rerankers.
"""

__version__ = "0.4.3"
