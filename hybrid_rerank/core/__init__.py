"""Core configuration and logging for hybrid-rerank."""
