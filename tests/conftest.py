"""Shared test fixtures and configuration."""

import os

import pytest

from vault_search.search.analyzers import Tokenizer
from vault_search.search.cjk import CjkSegmenter, load_cjk_segmenter
from vault_search.search.index import DocumentIndex
from vault_search.search.models import IndexedDocument


# Complete test environment that overrides ALL possible config values
TEST_ENV = {
    "VAULT_SEARCH_LOG_LEVEL": "info",
    "VAULT_SEARCH_LOG_JSON": "false",
    "VAULT_SEARCH_ENABLE_STOP_WORDS_EN": "true",
    "VAULT_SEARCH_ENABLE_STOP_WORDS_ZH": "false",
    "VAULT_SEARCH_ENABLE_CHINESE_PATCH": "true",
    "VAULT_SEARCH_SPLIT_HYPHENS": "true",
    "VAULT_SEARCH_MIN_TERM_LENGTH_FOR_PREFIX": "3",
    "VAULT_SEARCH_MIN_TERM_LENGTH_FOR_PREFIX_SEARCH": "2",
    "VAULT_SEARCH_FUZZY_PROPORTION": "0.2",
    # No debounce delay so change events apply on the next loop iteration
    "VAULT_SEARCH_DEBOUNCE_SECONDS": "0",
    "VAULT_SEARCH_EXCLUDE_EXTENSIONS": "",
}

_UNSET_ENV = (
    "VAULT_SEARCH_VAULT_ROOT",
    "VAULT_SEARCH_ASSETS_DIR",
    "VAULT_SEARCH_SNAPSHOT_PATH",
)

for key, value in TEST_ENV.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Pin configuration to test defaults and keep ``.env`` files out of reach."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    for key in _UNSET_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(scope="session")
def cjk_segmenter() -> CjkSegmenter:
    """jieba with its bundled dictionary; loading takes a moment so share it."""
    segmenter = load_cjk_segmenter()
    assert segmenter is not None
    return segmenter


@pytest.fixture
def tokenizer(cjk_segmenter) -> Tokenizer:
    return Tokenizer(cjk=cjk_segmenter)


@pytest.fixture
def latin_tokenizer() -> Tokenizer:
    """Tokenizer in degraded mode: every CJK run stays whole."""
    return Tokenizer(cjk=None)


@pytest.fixture
def sample_documents() -> list[IndexedDocument]:
    return [
        IndexedDocument(path="a.md", basename="Projects", folder="", content="alpha beta"),
        IndexedDocument(path="b.md", basename="Notes", folder="", content="beta gamma"),
    ]


@pytest.fixture
def sample_index(latin_tokenizer, sample_documents) -> DocumentIndex:
    index = DocumentIndex(latin_tokenizer)
    index.reindex_all(sample_documents)
    return index
