"""Observability module for logging, metrics, and tracing."""

from vault_search.observability.context import bind_operation, get_operation_context
from vault_search.observability.logging import JsonFormatter, configure_logging
from vault_search.observability.metrics import (
    INDEX_OPERATIONS,
    INDEXED_DOCUMENTS,
    SEARCH_LATENCY,
    get_metrics,
    track_latency,
)
from vault_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "INDEXED_DOCUMENTS",
    "INDEX_OPERATIONS",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "bind_operation",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_operation_context",
    "get_tracer",
    "init_tracing",
    "track_latency",
]
