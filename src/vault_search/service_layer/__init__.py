"""Service layer - orchestrates indexing, change tracking and searches."""

from .change_queue import ChangeEvent, ChangeKind, DebouncedChangeQueue
from .search_service import IndexReport, SearchService, build_search_service


__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "DebouncedChangeQueue",
    "IndexReport",
    "SearchService",
    "build_search_service",
]
