"""Unit tests for query parsing."""

import pytest

from vault_search.search.analyzers import Tokenizer
from vault_search.search.models import QueryTerm
from vault_search.search.query import QueryProcessor


@pytest.mark.unit
class TestParse:
    def test_lowercases_and_deduplicates(self, latin_tokenizer):
        processor = QueryProcessor(latin_tokenizer)
        assert processor.parse("Alpha beta ALPHA") == ["alpha", "beta"]

    def test_drops_stop_words(self, latin_tokenizer):
        processor = QueryProcessor(latin_tokenizer)
        assert processor.parse("the alpha") == ["alpha"]

    def test_blank_query(self, latin_tokenizer):
        processor = QueryProcessor(latin_tokenizer)
        assert processor.parse("") == []
        assert processor.parse("   \t") == []

    def test_fine_mode_keeps_sub_words(self, tokenizer):
        processor = QueryProcessor(tokenizer)
        terms = processor.parse("中国科学院")
        assert "中国科学院" in terms
        assert "科学院" in terms


@pytest.mark.unit
class TestParseTerms:
    def test_one_group_per_word(self, latin_tokenizer):
        processor = QueryProcessor(latin_tokenizer)
        assert processor.parse_terms("alpha beta alpha") == [QueryTerm("alpha"), QueryTerm("beta")]

    def test_hyphenated_word_groups_its_parts(self):
        processor = QueryProcessor(Tokenizer(cjk=None, split_hyphens=False))
        [term] = processor.parse_terms("smart-connection")
        assert term.text == "smart-connection"
        assert term.variants == ("smart-connection", "smart", "connection")

    def test_cjk_word_groups_its_sub_words(self, tokenizer):
        processor = QueryProcessor(tokenizer)
        terms = processor.parse_terms("中国科学院 notes")
        assert [term.text for term in terms][-1] == "notes"
        cjk_variants = {variant for term in terms[:-1] for variant in term.variants}
        assert "科学院" in cjk_variants or "中国科学院" in cjk_variants

    def test_blank_query(self, latin_tokenizer):
        assert QueryProcessor(latin_tokenizer).parse_terms(" ") == []


@pytest.mark.unit
class TestNormalizeInFile:
    def test_removes_all_whitespace(self):
        assert QueryProcessor.normalize_in_file(" he llo\tw　orld\n") == "helloworld"

    def test_default_variants(self):
        assert QueryTerm("word").variants == ("word",)
