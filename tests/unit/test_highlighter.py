"""Unit tests for highlighted excerpts."""

import pytest

from vault_search.search.highlighter import LineHighlighter
from vault_search.search.models import Line, MatchedLine, split_lines


DOCUMENT = "\n".join(["intro", "", "a1", "a2", "match", "a4", "a5", "a6", "a7", "a8", "", "end"])


@pytest.fixture
def lines() -> list[Line]:
    return split_lines(DOCUMENT)


@pytest.fixture
def matched() -> MatchedLine:
    return MatchedLine(text="match", row=4, positions=frozenset({0, 1}))


@pytest.mark.unit
class TestLineMode:
    def test_returns_line_unchanged(self, lines, matched):
        context = LineHighlighter().parse(lines, matched, "line")
        assert context.text == "match"
        assert context.row == 4
        assert context.col == 0
        assert context.positions == frozenset({0, 1})

    def test_col_is_first_position(self, lines):
        matched = MatchedLine(text="hello world", row=0, positions=frozenset({8, 6, 10}))
        assert LineHighlighter().parse(lines, matched).col == 6

    def test_out_of_range_positions_dropped(self, lines):
        matched = MatchedLine(text="abc", row=0, positions=frozenset({1, 7}))
        assert LineHighlighter().parse(lines, matched).positions == frozenset({1})


@pytest.mark.unit
class TestParagraphMode:
    def test_expanded_paragraph_stops_at_blank_lines(self, lines, matched):
        context = LineHighlighter().parse(lines, matched, "paragraph", expand_context=True)
        assert context.text == "a1\na2\nmatch\na4\na5\na6\na7\na8"
        assert context.row == 4
        assert context.positions == frozenset({6, 7})
        assert context.col == 6

    def test_narrow_paragraph(self, lines, matched):
        context = LineHighlighter().parse(lines, matched, "paragraph")
        assert context.text == "a2\nmatch\na4"
        assert context.positions == frozenset({3, 4})

    def test_context_lines_are_configurable(self, lines, matched):
        highlighter = LineHighlighter(paragraph_context_lines=2)
        context = highlighter.parse(lines, matched, "paragraph", expand_context=True)
        assert context.text == "a1\na2\nmatch\na4\na5\na6"

    def test_unknown_row_falls_back_to_line(self, lines):
        matched = MatchedLine(text="ghost", row=99, positions=frozenset({0}))
        context = LineHighlighter().parse(lines, matched, "paragraph", expand_context=True)
        assert context.text == "ghost"

    def test_highlighted_characters_map_back(self, lines, matched):
        context = LineHighlighter().parse(lines, matched, "paragraph", expand_context=True)
        assert "".join(context.text[p] for p in sorted(context.positions)) == "ma"


@pytest.mark.unit
class TestSubItemMode:
    def test_left_trims_and_shifts(self, lines):
        matched = MatchedLine(text="    - a bullet  ", row=2, positions=frozenset({6, 7}))
        context = LineHighlighter().parse(lines, matched, "subItem")
        assert context.text == "- a bullet"
        assert context.positions == frozenset({2, 3})
        assert context.col == 2

    def test_crops_long_lines_around_first_match(self, lines):
        text = "x" * 200 + "needle" + "y" * 50
        matched = MatchedLine(text=text, row=3, positions=frozenset(range(200, 206)))
        context = LineHighlighter().parse(lines, matched, "subItem")
        assert len(context.text) == 120
        assert context.text[context.col : context.col + 6] == "needle"
        assert context.positions == frozenset(range(64, 70))

    def test_keeps_lead_before_match(self, lines):
        text = "x" * 100 + "needle" + "y" * 300
        matched = MatchedLine(text=text, row=3, positions=frozenset(range(100, 106)))
        context = LineHighlighter().parse(lines, matched, "subItem")
        assert context.col == 16
        assert context.text.startswith("x" * 16 + "needle")


@pytest.mark.unit
def test_parse_all_preserves_order(lines):
    first = MatchedLine(text="a1", row=2, positions=frozenset({0}))
    second = MatchedLine(text="end", row=11, positions=frozenset({0}))
    contexts = LineHighlighter().parse_all(lines, [second, first])
    assert [c.row for c in contexts] == [11, 2]
