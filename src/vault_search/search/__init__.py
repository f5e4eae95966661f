"""
Lexical search engine package.

This package provides the pure-Python search core:
- analyzers / cjk: Script-aware tokenizer backed by jieba for CJK text
- schema: Weighted document fields
- index: Multi-field inverted index with AND/OR, prefix and fuzzy matching
- stats / fuzzy: Scoring statistics and edit-distance helpers
- snapshot: Versioned JSON persistence of the index
- query: Query parsing
- line_matcher / highlighter: In-file fuzzy line matching and excerpts
"""
