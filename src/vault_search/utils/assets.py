"""Local tokenizer assets.

The assets directory may contain:

* ``jieba-dict.txt`` - a custom jieba dictionary replacing the bundled one
* ``stop-words-en.txt`` / ``stop-words-zh.txt`` - one stop word per line

Every file is optional; absence falls back to built-in defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

import anyio
from anyio import to_thread


logger = logging.getLogger(__name__)

CJK_DICTIONARY_FILE = "jieba-dict.txt"
STOP_WORDS_EN_FILE = "stop-words-en.txt"
STOP_WORDS_ZH_FILE = "stop-words-zh.txt"


@dataclass(frozen=True)
class TokenizerAssets:
    cjk_dictionary: Path | None = None
    stop_words_en: frozenset[str] | None = None
    stop_words_zh: frozenset[str] | None = None


def parse_stop_words(text: str) -> frozenset[str]:
    """Parse a line-delimited stop-word list; ``#`` starts a comment line."""
    words = set()
    for line in text.splitlines():
        word = line.strip()
        if word and not word.startswith("#"):
            words.add(word)
    return frozenset(words)


class AssetsProvider:
    """Load tokenizer assets from a directory, tolerating missing files."""

    def __init__(self, assets_dir: Path | None) -> None:
        self.assets_dir = assets_dir

    async def load(self) -> TokenizerAssets:
        if self.assets_dir is None:
            return TokenizerAssets()

        dictionary = self.assets_dir / CJK_DICTIONARY_FILE
        has_dictionary = await to_thread.run_sync(dictionary.is_file)
        assets = TokenizerAssets(
            cjk_dictionary=dictionary if has_dictionary else None,
            stop_words_en=await self._read_stop_words(self.assets_dir / STOP_WORDS_EN_FILE),
            stop_words_zh=await self._read_stop_words(self.assets_dir / STOP_WORDS_ZH_FILE),
        )
        logger.debug(
            "Loaded tokenizer assets from %s (dictionary=%s, en=%s, zh=%s)",
            self.assets_dir,
            assets.cjk_dictionary is not None,
            assets.stop_words_en is not None,
            assets.stop_words_zh is not None,
        )
        return assets

    async def _read_stop_words(self, path: Path) -> frozenset[str] | None:
        try:
            async with await anyio.open_file(path, encoding="utf-8") as f:
                text = await f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read stop words from %s: %s; using defaults", path, exc)
            return None
        return parse_stop_words(text)
