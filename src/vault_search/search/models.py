"""Search data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class IndexedDocument:
    """A vault note as seen by the lexical index. Identity is ``path``."""

    path: str
    basename: str
    folder: str
    aliases: str | None = None
    content: str | None = None


@dataclass
class DocumentRef:
    """Per-path bookkeeping used to skip unchanged files on re-index."""

    id: int
    path: str
    lexical_mtime: float = 0.0
    embedding_mtime: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "lexical_mtime": self.lexical_mtime,
            "embedding_mtime": self.embedding_mtime,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentRef:
        return cls(
            id=int(data["id"]),
            path=str(data["path"]),
            lexical_mtime=float(data.get("lexical_mtime", 0.0)),
            embedding_mtime=float(data.get("embedding_mtime", 0.0)),
        )


@dataclass(frozen=True)
class Line:
    """One line of a file; ``row`` is zero-based."""

    text: str
    row: int


@dataclass(frozen=True)
class MatchedLine(Line):
    """A line plus the columns of the characters that matched the query."""

    positions: frozenset[int] = field(default_factory=frozenset)

    @property
    def first_position(self) -> int:
        return min(self.positions) if self.positions else 0


@dataclass(frozen=True)
class HighlightedContext(Line):
    """Render-ready excerpt.

    ``col`` is the first highlighted column and ``positions`` the highlighted
    columns, both relative to ``text``.
    """

    col: int = 0
    positions: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class RankedDocument:
    """Represents a scored document produced by the lexical index."""

    path: str
    score: float
    matched_terms: tuple[str, ...] = ()
    term_matches: int = 0


def split_lines(content: str) -> list[Line]:
    """Split file content into rows the same way for every caller."""
    return [Line(text=text, row=row) for row, text in enumerate(content.splitlines())]


@dataclass(frozen=True)
class QueryTerm:
    """One user word of a query plus the fine-grained variants it expands to.

    A term is satisfied by a document when any of its ``variants`` matches.
    """

    text: str
    variants: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.variants:
            object.__setattr__(self, "variants", (self.text,))
