"""Script-aware analyzers for the vault search stack.

Text is split into script runs (CJK ideographs versus everything else), CJK
runs are handed to the jieba segmenter, and the resulting token stream is
lowercased and stripped of stop words.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Iterator, Sequence
from dataclasses import dataclass
import logging
import re
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from vault_search.config import Settings
    from vault_search.search.cjk import CjkSegmenter
    from vault_search.utils.assets import TokenizerAssets


logger = logging.getLogger(__name__)

SCRIPT_WORD = "word"
SCRIPT_CJK = "cjk"

# CJK Unified Ideographs, Extension A and Compatibility Ideographs
_CJK_RANGES = "\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff"
_WORD_CHAR = rf"[^\W_{_CJK_RANGES}]"
_WORD = rf"{_WORD_CHAR}+(?:'{_WORD_CHAR}+)*"
_HYPHENATED_WORD = rf"{_WORD}(?:-{_WORD})*"

_RUN_PATTERN = re.compile(rf"(?P<cjk>[{_CJK_RANGES}]+)|(?P<word>{_WORD})")
_HYPHENATED_RUN_PATTERN = re.compile(rf"(?P<cjk>[{_CJK_RANGES}]+)|(?P<word>{_HYPHENATED_WORD})")


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int
    script: str = SCRIPT_WORD

    def copy_with(self, **updates: Any) -> Token:
        data = {
            "text": self.text,
            "position": self.position,
            "start_char": self.start_char,
            "end_char": self.end_char,
            "script": self.script,
        }
        data.update(updates)
        return Token(**data)


class ScriptRunTokenizer:
    """Split text into per-script runs and segment the CJK ones.

    A word run and an adjacent CJK run never end up in the same token, so
    ``"smart-Connection用起来"`` yields Latin tokens and CJK tokens separately.
    """

    def __init__(self, *, cjk: CjkSegmenter | None = None, split_hyphens: bool = True) -> None:
        self.cjk = cjk
        self.split_hyphens = split_hyphens
        self._pattern = _RUN_PATTERN if split_hyphens else _HYPHENATED_RUN_PATTERN

    def __call__(self, text: str, *, fine: bool = False) -> Iterator[Token]:
        position = 0
        for match in self._pattern.finditer(text):
            run = match.group(0)
            offset = match.start()
            if match.lastgroup == "cjk":
                pieces = self._segment_cjk(run, fine=fine)
                script = SCRIPT_CJK
            else:
                pieces = self._segment_word(run, fine=fine)
                script = SCRIPT_WORD
            for piece, start, end in pieces:
                yield Token(
                    text=piece,
                    position=position,
                    start_char=offset + start,
                    end_char=offset + end,
                    script=script,
                )
                position += 1

    def _segment_cjk(self, run: str, *, fine: bool) -> Iterator[tuple[str, int, int]]:
        if self.cjk is None:
            yield run, 0, len(run)
            return
        yield from self.cjk.tokenize(run, fine=fine)

    def _segment_word(self, run: str, *, fine: bool) -> Iterator[tuple[str, int, int]]:
        yield run, 0, len(run)
        if not fine or "-" not in run:
            return
        start = 0
        for part in run.split("-"):
            yield part, start, start + len(part)
            start += len(part) + 1


class LowercaseFilter:
    """Filter that lowercases token text."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.script == SCRIPT_CJK or token.text.islower():
                yield token
            else:
                yield token.copy_with(text=token.text.lower())


DEFAULT_STOPWORDS_EN = [
    "a",
    "an",
    "and",
    "are",
    "as",
    "at",
    "be",
    "but",
    "by",
    "for",
    "if",
    "in",
    "into",
    "is",
    "it",
    "no",
    "not",
    "of",
    "on",
    "or",
    "such",
    "that",
    "the",
    "their",
    "then",
    "there",
    "these",
    "they",
    "this",
    "to",
    "was",
    "will",
    "with",
]

DEFAULT_STOPWORDS_ZH = [
    "的",
    "了",
    "是",
    "在",
    "和",
    "与",
    "及",
    "或",
    "也",
    "就",
    "都",
    "而",
    "着",
    "把",
    "被",
    "这",
    "那",
    "之",
    "其",
    "一个",
    "我们",
    "你们",
    "他们",
    "因为",
    "所以",
    "但是",
    "如果",
]


class ScriptStopFilter:
    """Removes stop words, with an independent vocabulary per script."""

    def __init__(
        self,
        *,
        stop_words_en: Collection[str] | None = None,
        stop_words_zh: Collection[str] | None = None,
    ) -> None:
        self.stop_words_en = frozenset(word.lower() for word in stop_words_en or ())
        self.stop_words_zh = frozenset(stop_words_zh or ())

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            vocab = self.stop_words_zh if token.script == SCRIPT_CJK else self.stop_words_en
            if token.text not in vocab:
                yield token

    def __bool__(self) -> bool:
        return bool(self.stop_words_en or self.stop_words_zh)


class Tokenizer:
    """Segment raw text into searchable terms.

    ``fine=False`` (coarse) is used for indexing; ``fine=True`` is used for
    queries and additionally emits sub-words.
    """

    def __init__(
        self,
        *,
        cjk: CjkSegmenter | None = None,
        stop_words_en: Sequence[str] | None = None,
        stop_words_zh: Sequence[str] | None = None,
        enable_stop_words_en: bool = True,
        enable_stop_words_zh: bool = False,
        split_hyphens: bool = True,
    ) -> None:
        self.run_tokenizer = ScriptRunTokenizer(cjk=cjk, split_hyphens=split_hyphens)
        self.lowercase = LowercaseFilter()

        vocab_en: Sequence[str] | None = None
        if enable_stop_words_en:
            vocab_en = stop_words_en if stop_words_en is not None else DEFAULT_STOPWORDS_EN
        vocab_zh: Sequence[str] | None = None
        if enable_stop_words_zh:
            vocab_zh = stop_words_zh if stop_words_zh is not None else DEFAULT_STOPWORDS_ZH
        self.stop_filter = ScriptStopFilter(stop_words_en=vocab_en, stop_words_zh=vocab_zh)

    @property
    def degraded(self) -> bool:
        """True when CJK runs cannot be segmented."""
        return self.run_tokenizer.cjk is None

    def analyze(self, text: str, *, fine: bool = False) -> list[Token]:
        """Return filtered tokens with character offsets into ``text``."""
        if not text:
            return []
        tokens = list(self.lowercase(self.run_tokenizer(text, fine=fine)))
        if self.stop_filter:
            filtered = list(self.stop_filter(tokens))
            # A title made only of stop words still needs to be findable
            if filtered:
                tokens = filtered
        for idx, token in enumerate(tokens):  # normalize positions post-filtering
            token.position = idx
        return tokens

    def segment(self, text: str, fine: bool = False) -> list[str]:
        """Return the token texts for ``text``; never raises."""
        try:
            return [token.text for token in self.analyze(text, fine=fine)]
        except Exception:
            logger.warning("Tokenizer failed; falling back to whitespace split", exc_info=True)
            return text.lower().split()


def build_tokenizer(settings: Settings, assets: TokenizerAssets, cjk: CjkSegmenter | None) -> Tokenizer:
    """Wire a tokenizer from settings plus loaded assets."""
    return Tokenizer(
        cjk=cjk,
        stop_words_en=sorted(assets.stop_words_en) if assets.stop_words_en is not None else None,
        stop_words_zh=sorted(assets.stop_words_zh) if assets.stop_words_zh is not None else None,
        enable_stop_words_en=settings.enable_stop_words_en,
        enable_stop_words_zh=settings.enable_stop_words_zh,
        split_hyphens=settings.split_hyphens,
    )
