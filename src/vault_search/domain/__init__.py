"""Domain layer - search result value objects with no infrastructure dependencies."""

from vault_search.domain.search import (
    EngineType,
    FileItem,
    FileSubItem,
    HighlightedLine,
    LineItem,
    SearchItem,
    SearchResult,
    SearchStatus,
)


__all__ = [
    "EngineType",
    "FileItem",
    "FileSubItem",
    "HighlightedLine",
    "LineItem",
    "SearchItem",
    "SearchResult",
    "SearchStatus",
]
