"""Unit tests for scoring statistics."""

import pytest

from vault_search.search.stats import calculate_idf


@pytest.mark.unit
class TestCalculateIdf:
    def test_rare_terms_weigh_more(self):
        assert calculate_idf(1, 100) > calculate_idf(10, 100) > calculate_idf(90, 100)

    def test_always_positive(self):
        assert calculate_idf(100, 100) > 0
        assert calculate_idf(2, 2) > 0

    def test_saturates(self):
        # doubling the corpus adds far less than doubling the weight
        assert calculate_idf(1, 2000) < 2 * calculate_idf(1, 1000)

    def test_empty_corpus(self):
        assert calculate_idf(0, 0) == 0.0

    def test_doc_freq_clamped_to_corpus(self):
        assert calculate_idf(50, 10) == calculate_idf(10, 10)
