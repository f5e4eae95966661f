"""Turn free-text queries into index terms."""

from __future__ import annotations

import re

from vault_search.search.analyzers import Tokenizer
from vault_search.search.models import QueryTerm


_WHITESPACE = re.compile(r"\s+")


class QueryProcessor:
    """Tokenize queries exactly like documents, but in fine mode."""

    def __init__(self, tokenizer: Tokenizer) -> None:
        self.tokenizer = tokenizer

    def parse(self, query: str) -> list[str]:
        """Fine-mode tokens of ``query``, duplicates removed, order kept."""
        query = query.strip()
        if not query:
            return []
        return list(dict.fromkeys(self.tokenizer.segment(query, fine=True)))

    def parse_terms(self, query: str) -> list[QueryTerm]:
        """Group the fine-mode tokens of ``query`` under each coarse word.

        ``"搜索引擎 notes"`` becomes ``[QueryTerm("搜索引擎", ("搜索", "索引", "引擎",
        "搜索引擎")), QueryTerm("notes")]`` so that AND is evaluated per word the
        user typed rather than per sub-word.
        """
        query = query.strip()
        if not query:
            return []

        groups: dict[str, QueryTerm] = {}
        for token in self.tokenizer.segment(query, fine=False):
            if token in groups:
                continue
            fine = self.tokenizer.segment(token, fine=True)
            variants = tuple(dict.fromkeys([*fine, token]))
            groups[token] = QueryTerm(text=token, variants=variants)
        return list(groups.values())

    @staticmethod
    def normalize_in_file(query: str) -> str:
        """Drop every whitespace character for in-file fuzzy matching."""
        return _WHITESPACE.sub("", query)
