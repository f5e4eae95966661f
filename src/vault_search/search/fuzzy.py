"""Fuzzy matching for typo-tolerant search.

Edit distance plus the budget rule used by the lexical index: terms shorter
than the fuzzy threshold are never fuzzed, longer terms may differ by
``floor(proportion * len(term))`` edits, and at least one edit is always
allowed once fuzzing applies.
"""

from __future__ import annotations

from collections.abc import Iterable
import math


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Args:
        s1: First string.
        s2: Second string.
        max_distance: If provided, return max_distance+1 early when
            distance is guaranteed to exceed this threshold.

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("", "abc")
        3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)

    if max_distance is not None and n - m > max_distance:
        return max_distance + 1

    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)

    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = j
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                prev_row[i] + 1,  # deletion
                curr_row[i - 1] + 1,  # insertion
                prev_row[i - 1] + cost,  # substitution
            )
            row_min = min(row_min, curr_row[i])

        if max_distance is not None and row_min > max_distance:
            return max_distance + 1

        prev_row, curr_row = curr_row, prev_row

    return prev_row[m]


def fuzzy_budget(term_length: int, *, proportion: float, min_length: int) -> int:
    """Return the allowed edit distance for a query term of ``term_length``.

    >>> fuzzy_budget(5, proportion=0.2, min_length=3)
    1
    >>> fuzzy_budget(12, proportion=0.2, min_length=3)
    2
    >>> fuzzy_budget(2, proportion=0.2, min_length=3)
    0
    """
    if term_length < min_length or proportion <= 0:
        return 0
    return max(1, math.floor(proportion * term_length))


def find_fuzzy_matches(
    query_term: str,
    vocabulary: Iterable[str],
    max_distance: int,
) -> list[tuple[str, int]]:
    """Find vocabulary terms within ``max_distance`` edits of ``query_term``.

    The exact term itself is not reported; callers look exact matches up
    directly.

    Returns:
        List of (matching_term, edit_distance) tuples, closest first, then
        alphabetical.
    """
    if not query_term or max_distance <= 0:
        return []

    matches: list[tuple[str, int]] = []
    query_length = len(query_term)
    for term in vocabulary:
        if term == query_term or abs(query_length - len(term)) > max_distance:
            continue
        distance = levenshtein_distance(query_term, term, max_distance)
        if distance <= max_distance:
            matches.append((term, distance))

    matches.sort(key=lambda x: (x[1], x[0]))
    return matches
