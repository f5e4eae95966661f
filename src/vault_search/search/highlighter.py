"""Render-ready excerpts for matched lines.

Three shapes are supported:

* ``line`` - the matched line as is.
* ``paragraph`` - the block of adjacent non-blank lines around the match,
  joined with newlines.
* ``subItem`` - one compact line, left-trimmed and cropped around the first
  match, for secondary lists under a file result.

Reported columns are always offsets into the returned text.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Literal

from vault_search.search.models import HighlightedContext, Line, MatchedLine


HighlightMode = Literal["line", "paragraph", "subItem"]


def _locate(lines: Sequence[Line], row: int) -> int | None:
    if 0 <= row < len(lines) and lines[row].row == row:
        return row
    for index, line in enumerate(lines):
        if line.row == row:
            return index
    return None


def _context(text: str, row: int, positions: Iterable[int]) -> HighlightedContext:
    valid = frozenset(p for p in positions if 0 <= p < len(text))
    return HighlightedContext(text=text, row=row, col=min(valid) if valid else 0, positions=valid)


class LineHighlighter:
    """Turn ``MatchedLine`` objects into ``HighlightedContext`` excerpts."""

    def __init__(self, *, paragraph_context_lines: int = 5, sub_item_chars: int = 120, sub_item_lead: int = 16) -> None:
        self.paragraph_context_lines = paragraph_context_lines
        self.sub_item_chars = sub_item_chars
        self.sub_item_lead = sub_item_lead

    def parse(
        self,
        lines: Sequence[Line],
        matched_line: MatchedLine,
        mode: HighlightMode = "line",
        expand_context: bool = False,
    ) -> HighlightedContext:
        if mode == "paragraph":
            return self._paragraph(lines, matched_line, expand_context)
        if mode == "subItem":
            return self._sub_item(matched_line)
        return _context(matched_line.text, matched_line.row, matched_line.positions)

    def parse_all(
        self,
        lines: Sequence[Line],
        matched_lines: Iterable[MatchedLine],
        mode: HighlightMode = "line",
        expand_context: bool = False,
    ) -> list[HighlightedContext]:
        return [self.parse(lines, matched, mode, expand_context) for matched in matched_lines]

    def _paragraph(self, lines: Sequence[Line], matched_line: MatchedLine, expand_context: bool) -> HighlightedContext:
        index = _locate(lines, matched_line.row)
        if index is None or not matched_line.text.strip():
            return _context(matched_line.text, matched_line.row, matched_line.positions)

        reach = self.paragraph_context_lines if expand_context else 1
        start = index
        while start > 0 and index - start < reach and lines[start - 1].text.strip():
            start -= 1
        end = index
        while end < len(lines) - 1 and end - index < reach and lines[end + 1].text.strip():
            end += 1

        # characters (plus separators) that precede the matched line in the joined text
        offset = sum(len(lines[k].text) + 1 for k in range(start, index))
        text = "\n".join(line.text for line in lines[start : end + 1])
        return _context(text, matched_line.row, (p + offset for p in matched_line.positions))

    def _sub_item(self, matched_line: MatchedLine) -> HighlightedContext:
        stripped = matched_line.text.lstrip()
        shift = len(matched_line.text) - len(stripped)
        positions = [p - shift for p in matched_line.positions if p >= shift]

        width = self.sub_item_chars
        start = 0
        if len(stripped) > width:
            first = min(positions) if positions else 0
            start = max(0, min(first - self.sub_item_lead, len(stripped) - width))
        text = stripped[start : start + width].rstrip()
        return _context(text, matched_line.row, (p - start for p in positions))
