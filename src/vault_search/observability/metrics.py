"""Prometheus metrics for search and indexing golden signals."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


SEARCH_LATENCY = Histogram(
    "vault_search_search_latency_seconds",
    "Search latency by search kind",
    ["kind"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

INDEXED_DOCUMENTS = Gauge(
    "vault_search_indexed_documents",
    "Number of documents currently held by the lexical index",
)

INDEX_OPERATIONS = Counter(
    "vault_search_index_operations_total",
    "Index mutations by operation and outcome",
    ["operation", "outcome"],
)


@contextmanager
def track_latency(kind: str) -> Generator[None, None, None]:
    """Observe the wall time of the wrapped block in SEARCH_LATENCY."""
    start = time.perf_counter()
    try:
        yield
    finally:
        SEARCH_LATENCY.labels(kind=kind).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Return the Prometheus exposition payload."""
    return generate_latest()
