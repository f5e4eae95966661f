"""Unit tests for fzf-style line matching."""

import pytest

from vault_search.search.line_matcher import LineMatcher, fold_case, score_alignment
from vault_search.search.models import Line, split_lines


def _lines(*texts: str) -> list[Line]:
    return [Line(text=text, row=row) for row, text in enumerate(texts)]


@pytest.mark.unit
class TestScoreAlignment:
    def test_requires_subsequence(self):
        assert score_alignment("xyz", "hello world") is None
        assert score_alignment("dlrow", "hello world") is None

    def test_empty_or_longer_query(self):
        assert score_alignment("", "text") is None
        assert score_alignment("abc", "ab") is None

    def test_single_alignment(self):
        score, columns = score_alignment("wrd", "hello world")
        assert columns == [6, 8, 10]
        assert score > 0

    def test_prefers_word_boundary(self):
        _, columns = score_alignment("b", "abc b")
        assert columns == [4]

    def test_earliest_of_equal_alignments(self):
        _, columns = score_alignment("a", "a a")
        assert columns == [0]

    def test_camel_case_hump_from_original(self):
        _, columns = score_alignment("fb", "foobar", "fooBar")
        assert columns == [0, 3]


@pytest.mark.unit
class TestMatchLines:
    def test_hello_world(self):
        [matched] = LineMatcher().match_lines([Line("hello world", 0)], "wrd", 10)
        assert matched.row == 0
        assert matched.positions == frozenset({6, 8, 10})
        assert matched.first_position == 6

    def test_non_matching_lines_dropped(self):
        matches = LineMatcher().match_lines(_lines("alpha", "beta", "gamma"), "ga", 10)
        assert [m.text for m in matches] == ["gamma"]

    def test_consecutive_beats_scattered(self):
        matches = LineMatcher().match_lines(_lines("axbxc", "abc"), "abc", 10)
        assert [m.row for m in matches] == [1, 0]

    def test_shorter_line_wins_ties(self):
        matches = LineMatcher().match_lines(_lines("abc and more text", "abc"), "abc", 10)
        assert [m.row for m in matches] == [1, 0]

    def test_identical_lines_keep_row_order(self):
        matches = LineMatcher().match_lines(_lines("same", "same", "same"), "sm", 10)
        assert [m.row for m in matches] == [0, 1, 2]

    def test_limit(self):
        matcher = LineMatcher()
        lines = _lines("one", "one", "one")
        assert len(matcher.match_lines(lines, "one", 2)) == 2
        assert matcher.match_lines(lines, "one", 0) == []
        assert matcher.match_lines(lines, "", 5) == []

    def test_smart_case(self):
        matcher = LineMatcher()
        lines = _lines("hello world", "Hello World")
        assert [m.row for m in matcher.match_lines(lines, "World", 10)] == [1]
        assert {m.row for m in matcher.match_lines(lines, "world", 10)} == {0, 1}

    def test_cjk_lines(self):
        lines = split_lines("第一行\n搜索引擎的笔记\n其他")
        [matched] = LineMatcher().match_lines(lines, "搜笔", 10)
        assert matched.row == 1
        assert matched.positions == frozenset({0, 5})


@pytest.mark.unit
class TestMatchTerms:
    def test_ranks_by_distinct_terms_then_occurrences(self):
        lines = _lines("gamma", "beta beta", "Alpha beta")
        matches = LineMatcher().match_terms(lines, ["beta", "alpha"], 10)
        assert [m.row for m in matches] == [2, 1]
        assert matches[0].positions == frozenset(range(0, 5)) | frozenset(range(6, 10))
        assert matches[1].positions == frozenset(range(0, 4)) | frozenset(range(5, 9))

    def test_no_terms(self):
        assert LineMatcher().match_terms(_lines("text"), [], 10) == []
        assert LineMatcher().match_terms(_lines("text"), [""], 10) == []


@pytest.mark.unit
def test_fold_case_keeps_length():
    assert fold_case("ABC") == "abc"
    assert len(fold_case("İstanbul")) == len("İstanbul")
