"""Unit tests for tokenizer assets."""

import pytest

from vault_search.utils.assets import (
    CJK_DICTIONARY_FILE,
    STOP_WORDS_EN_FILE,
    STOP_WORDS_ZH_FILE,
    AssetsProvider,
    TokenizerAssets,
    parse_stop_words,
)


@pytest.mark.unit
def test_parse_stop_words():
    text = "# English stop words\nthe\n  and  \n\n#not-a-word\nthe\n"
    assert parse_stop_words(text) == frozenset({"the", "and"})


@pytest.mark.unit
class TestAssetsProvider:
    @pytest.mark.asyncio
    async def test_no_directory(self):
        assert await AssetsProvider(None).load() == TokenizerAssets()

    @pytest.mark.asyncio
    async def test_empty_directory(self, tmp_path):
        assert await AssetsProvider(tmp_path).load() == TokenizerAssets()

    @pytest.mark.asyncio
    async def test_loads_every_file(self, tmp_path):
        (tmp_path / CJK_DICTIONARY_FILE).write_text("搜索引擎 10 n\n", encoding="utf-8")
        (tmp_path / STOP_WORDS_EN_FILE).write_text("foo\nbar\n", encoding="utf-8")
        (tmp_path / STOP_WORDS_ZH_FILE).write_text("的\n了\n", encoding="utf-8")

        assets = await AssetsProvider(tmp_path).load()

        assert assets.cjk_dictionary == tmp_path / CJK_DICTIONARY_FILE
        assert assets.stop_words_en == frozenset({"foo", "bar"})
        assert assets.stop_words_zh == frozenset({"的", "了"})

    @pytest.mark.asyncio
    async def test_undecodable_list_falls_back(self, tmp_path, caplog):
        (tmp_path / STOP_WORDS_EN_FILE).write_bytes(b"\xff\xfe\xfa")

        assets = await AssetsProvider(tmp_path).load()

        assert assets.stop_words_en is None
        assert "Failed to read stop words" in caplog.text
