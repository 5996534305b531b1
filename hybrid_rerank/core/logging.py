"""Structured JSON logging for hybrid-rerank.

Every line is one JSON object:
    timestamp, level, service, correlation_id, logger, message
plus any search context passed through ``extra=`` (reranker name, row
counts per side, timings, upstream status code).

The correlation id comes from the X-Request-ID header (set by the API
middleware) and is carried in a ContextVar, so concurrent requests never
see each other's id.

Level precedence: explicit argument > HYBRID_RERANK_LOG_LEVEL > INFO.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

SERVICE_NAME = "hybrid-rerank"
PACKAGE_LOGGER = "hybrid_rerank"
LOG_LEVEL_ENV = "HYBRID_RERANK_LOG_LEVEL"

# Search context copied from LogRecord attributes when present
CONTEXT_FIELDS = (
    "reranker",
    "vector_rows",
    "fts_rows",
    "fused_rows",
    "search_ms",
    "total_ms",
    "status_code",
)

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation id to the current request context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the context correlation id ("-" when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON with search context fields."""

    def __init__(self, service_name: str = SERVICE_NAME, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def resolve_log_level(level: int | str | None = None) -> int:
    """Turn an explicit level, or HYBRID_RERANK_LOG_LEVEL, into a logging level.

    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    name = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _attach(handler: logging.Handler, service_name: str) -> logging.Handler:
    handler.setFormatter(JSONFormatter(service_name=service_name))
    handler.addFilter(CorrelationIdFilter())
    return handler


def create_file_handler(
    log_file_path: str,
    service_name: str = SERVICE_NAME,
    max_bytes: int = 10_485_760,
    backup_count: int = 5,
) -> RotatingFileHandler:
    """Rotating JSON file handler; parent directories are created."""
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=log_file_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    _attach(handler, service_name)
    return handler


def setup_structured_logging(
    log_level: int | str | None = None,
    log_file_path: str | None = None,
    logger_name: str = PACKAGE_LOGGER,
    service_name: str = SERVICE_NAME,
) -> logging.Logger:
    """Route the package logger to JSON on stdout (and optionally a file).

    Module loggers (``logging.getLogger(__name__)``) under hybrid_rerank
    propagate here. Calling again replaces the previous handlers.
    """
    level = resolve_log_level(log_level)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(_attach(logging.StreamHandler(sys.stdout), service_name))

    if log_file_path:
        try:
            logger.addHandler(create_file_handler(log_file_path, service_name))
        except PermissionError:
            logger.warning("Cannot write to %s, file logging disabled", log_file_path)

    logger.propagate = False
    return logger
