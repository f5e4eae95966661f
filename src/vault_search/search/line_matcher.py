"""Approximate line matching for in-file search.

``LineMatcher.match_lines`` implements fzf-style subsequence scoring: every
query character has to appear in the line in order, and the alignment that
maximises

* a fixed score per matched character,
* bonuses at word boundaries and camelCase humps (doubled for the first
  query character),
* a bonus for consecutive matches,
* an affine penalty for gaps between matches,

wins. Among equally good alignments the earliest one is reported, so the
returned positions are stable across calls.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging

from vault_search.search.models import Line, MatchedLine


logger = logging.getLogger(__name__)

SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1
BONUS_BOUNDARY = 8
BONUS_CAMEL = 7
BONUS_CONSECUTIVE = 4
BONUS_FIRST_CHAR_MULTIPLIER = 2
LENGTH_PENALTY = 0.1

_UNMATCHED = -(1 << 30)


def fold_case(text: str) -> str:
    """Lowercase ``text`` one character at a time, keeping its length."""
    folded = []
    for char in text:
        lower = char.lower()
        folded.append(lower if len(lower) == 1 else char)
    return "".join(folded)


def _char_bonus(prev: str | None, char: str) -> int:
    if not char.isalnum():
        return 0
    if prev is None or not prev.isalnum():
        return BONUS_BOUNDARY
    if prev.islower() and char.isupper():
        return BONUS_CAMEL
    if char.isdigit() and not prev.isdigit():
        return BONUS_CAMEL
    return 0


def _is_subsequence(query: str, text: str) -> bool:
    position = 0
    for char in query:
        position = text.find(char, position)
        if position < 0:
            return False
        position += 1
    return True


def score_alignment(query: str, text: str, original: str | None = None) -> tuple[int, list[int]] | None:
    """Return the best alignment score and its columns, or None if ``query`` is no subsequence.

    ``query`` and ``text`` must already be case-normalised the same way.
    Boundary and camelCase bonuses are read from ``original`` (the unfolded
    line, same length as ``text``) when given.
    """
    m, n = len(query), len(text)
    if m == 0 or m > n or not _is_subsequence(query, text):
        return None

    source = original if original is not None else text
    bonus = [_char_bonus(source[j - 1] if j else None, source[j]) for j in range(n)]
    rows: list[list[int]] = []

    first = [_UNMATCHED] * n
    for j in range(n):
        if text[j] == query[0]:
            first[j] = SCORE_MATCH + bonus[j] * BONUS_FIRST_CHAR_MULTIPLIER
    rows.append(first)

    for i in range(1, m):
        prev = rows[-1]
        current = [_UNMATCHED] * n
        gap_best = _UNMATCHED
        char = query[i]
        for j in range(1, n):
            # best score of ending the previous row at k <= j - 2, gap penalty applied
            if j >= 2:
                opened = prev[j - 2] + SCORE_GAP_START if prev[j - 2] > _UNMATCHED else _UNMATCHED
                extended = gap_best + SCORE_GAP_EXTENSION if gap_best > _UNMATCHED else _UNMATCHED
                gap_best = max(opened, extended)
            if text[j] != char:
                continue
            candidates = []
            if prev[j - 1] > _UNMATCHED:
                candidates.append(prev[j - 1] + max(bonus[j], BONUS_CONSECUTIVE))
            if gap_best > _UNMATCHED:
                candidates.append(gap_best + bonus[j])
            if candidates:
                current[j] = SCORE_MATCH + max(candidates)
        rows.append(current)

    last = rows[-1]
    best = max(last)
    if best <= _UNMATCHED:
        return None

    end = last.index(best)
    columns = [end]
    for i in range(m - 1, 0, -1):
        j = columns[-1]
        target = rows[i][j] - SCORE_MATCH
        prev = rows[i - 1]
        chosen = None
        for k in range(j):
            if prev[k] <= _UNMATCHED:
                continue
            if k == j - 1:
                step = prev[k] + max(bonus[j], BONUS_CONSECUTIVE)
            else:
                step = prev[k] + SCORE_GAP_START + SCORE_GAP_EXTENSION * (j - k - 2) + bonus[j]
            if step == target:
                chosen = k
                break
        if chosen is None:  # pragma: no cover - the recurrence guarantees a predecessor
            raise RuntimeError(f"No predecessor for column {j} of query char {i}")
        columns.append(chosen)

    columns.reverse()
    return best, columns


class LineMatcher:
    """Rank the lines of one file against a query."""

    def match_lines(self, lines: Sequence[Line], query: str, limit: int) -> list[MatchedLine]:
        """Return up to ``limit`` lines containing ``query`` as a subsequence.

        Smart case: matching ignores case unless ``query`` has an uppercase
        letter. Results are ordered by score, best first, then by row.
        """
        if not query or limit <= 0:
            return []
        case_sensitive = any(char.isupper() for char in query)
        needle = query if case_sensitive else fold_case(query)

        scored: list[tuple[float, MatchedLine]] = []
        for line in lines:
            haystack = line.text if case_sensitive else fold_case(line.text)
            try:
                result = score_alignment(needle, haystack, line.text)
            except RuntimeError:
                logger.warning("Line matcher failed on row %d", line.row, exc_info=True)
                continue
            if result is None:
                continue
            score, columns = result
            matched = MatchedLine(text=line.text, row=line.row, positions=frozenset(columns))
            scored.append((score - LENGTH_PENALTY * len(line.text), matched))

        scored.sort(key=lambda item: (-item[0], item[1].row))
        return [matched for _, matched in scored[:limit]]

    def match_terms(self, lines: Iterable[Line], terms: Sequence[str], limit: int) -> list[MatchedLine]:
        """Find lines containing any of ``terms``, case-insensitively.

        Positions cover every character of every occurrence. Lines are ranked
        by the number of distinct terms found, then by total occurrences, then
        by row.
        """
        needles = [fold_case(term) for term in dict.fromkeys(terms) if term]
        if not needles or limit <= 0:
            return []

        ranked: list[tuple[int, int, MatchedLine]] = []
        for line in lines:
            haystack = fold_case(line.text)
            positions: set[int] = set()
            found_terms = 0
            occurrences = 0
            for needle in needles:
                start = haystack.find(needle)
                if start < 0:
                    continue
                found_terms += 1
                while start >= 0:
                    occurrences += 1
                    positions.update(range(start, start + len(needle)))
                    start = haystack.find(needle, start + len(needle))
            if found_terms:
                ranked.append(
                    (found_terms, occurrences, MatchedLine(text=line.text, row=line.row, positions=frozenset(positions)))
                )

        ranked.sort(key=lambda item: (-item[0], -item[1], item[2].row))
        return [matched for _, _, matched in ranked[:limit]]
