"""Statistical helpers for lexical scoring.

Kept independent of the index structures so the formulas can be unit tested
on their own.
"""

from __future__ import annotations

import math


def calculate_idf(doc_freq: int, total_docs: int) -> float:
    """Return a saturating, always-positive inverse document frequency.

    Uses the Lucene flavour of the BM25 idf, ``ln(1 + (N - df + 0.5) / (df + 0.5))``.
    It decreases monotonically with ``df`` and stays above zero even for terms
    present in every document, so common terms still count a little.
    """

    if total_docs <= 0:
        return 0.0
    df = max(0, min(doc_freq, total_docs))
    return math.log(1.0 + (total_docs - df + 0.5) / (df + 0.5))
