"""CJK word segmentation backed by jieba.

Chinese has no whitespace between words, so runs of ideographs are split with
jieba's maximum-probability segmenter (prefix dictionary DAG + dynamic
programming, HMM for unknown words). Two modes are exposed:

* coarse (``fine=False``) - jieba default mode, fewer and longer words. Used
  when indexing.
* fine (``fine=True``) - jieba search mode, which additionally emits the
  dictionary sub-words of long words. Used for queries so that short input
  still lines up with longer indexed words.
"""

from __future__ import annotations

from collections.abc import Iterator
import logging
from pathlib import Path

import jieba


logger = logging.getLogger(__name__)


class CjkSegmenter:
    """Thin wrapper around a dedicated ``jieba.Tokenizer`` instance."""

    def __init__(self, dictionary: Path | None = None) -> None:
        if dictionary is None:
            self._jieba = jieba.Tokenizer()
        else:
            self._jieba = jieba.Tokenizer(str(dictionary))
        self.dictionary = dictionary
        # Load eagerly so a broken dictionary surfaces here, not on first query
        self._jieba.initialize()

    def tokenize(self, text: str, *, fine: bool = False) -> Iterator[tuple[str, int, int]]:
        """Yield ``(word, start, end)`` offsets relative to ``text``."""
        mode = "search" if fine else "default"
        for word, start, end in self._jieba.tokenize(text, mode=mode, HMM=True):
            if word.strip():
                yield word, start, end


def load_cjk_segmenter(dictionary: Path | None = None, *, enabled: bool = True) -> CjkSegmenter | None:
    """Return a ready segmenter, or None when CJK support is unavailable.

    A missing or malformed dictionary is not fatal: the tokenizer falls back to
    treating every CJK run as a single token.
    """
    if not enabled:
        logger.info("Chinese segmentation disabled; CJK runs will be indexed as whole tokens")
        return None

    jieba.setLogLevel(logging.WARNING)
    try:
        segmenter = CjkSegmenter(dictionary)
    except (OSError, ValueError) as exc:
        logger.warning(
            "CJK dictionary unavailable (%s); tokenizer degraded to Latin-only segmentation",
            exc,
        )
        return None

    logger.debug("CJK segmenter ready (dictionary=%s)", dictionary or "bundled")
    return segmenter
