"""In-memory multi-field inverted index for vault notes.

Postings are kept per field as ``field -> term -> {doc_id: tf}``; a forward
map ``doc_id -> field -> term -> tf`` lets a document's postings be removed
without scanning the vocabulary.

Scoring is BM25F-flavoured without length normalisation. For one query term
``t`` and document ``d``::

    relevance(t, d) = idf(t) * sum over fields f of weight(f) * max_m(factor(m) * tf(m, f, d))

where ``m`` ranges over indexed terms matched by ``t`` (exactly, by prefix or
within the fuzzy budget) and ``factor`` is 1.0, 0.5 and ``0.25 / distance``
respectively. ``idf(t)`` is computed from the number of documents matched by
``t`` at any tier.

Relevance is unbounded, so a prefix hit repeated often enough (or found in a
heavily weighted field) could outgrow an exact hit. Each term therefore
contributes ``band(tier) + relevance / (1 + relevance)``: exact matches land in
``(2, 3)``, prefix-only matches in ``(1, 2)`` and fuzzy-only matches in
``(0, 1)``. For any single term an exact match outranks a prefix-only match,
which outranks a fuzzy-only match, whatever the term frequencies and weights.
A document's score is the sum over query terms.
"""

from __future__ import annotations

import bisect
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
import re
from typing import Any, Literal

from vault_search.search.analyzers import Tokenizer
from vault_search.search.fuzzy import find_fuzzy_matches, fuzzy_budget
from vault_search.search.models import DocumentRef, IndexedDocument, QueryTerm, RankedDocument
from vault_search.search.schema import Schema, create_vault_schema
from vault_search.search.snapshot import SnapshotError
from vault_search.search.stats import calculate_idf


logger = logging.getLogger(__name__)

QueryMode = Literal["and", "or"]

EXACT_FACTOR = 1.0
PREFIX_FACTOR = 0.5
FUZZY_FACTOR = 0.25

TIER_EXACT = 0
TIER_PREFIX = 1
TIER_FUZZY = 2
_TIER_BANDS = {TIER_EXACT: 2.0, TIER_PREFIX: 1.0, TIER_FUZZY: 0.0}

_HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)
_HEADING_TAIL = re.compile(r"\s+#+\s*$")


def extract_headings(markdown: str) -> str:
    """Return all markdown heading texts, one per line."""
    headings: list[str] = []
    for match in _HEADING_PATTERN.finditer(markdown):
        cleaned = _HEADING_TAIL.sub("", match.group(2)).strip()
        if cleaned:
            headings.append(cleaned)
    return "\n".join(headings)


def _tier_of(factor: float) -> int:
    if factor >= EXACT_FACTOR:
        return TIER_EXACT
    if factor >= PREFIX_FACTOR:
        return TIER_PREFIX
    return TIER_FUZZY


@dataclass(frozen=True)
class IndexStats:
    documents: int
    terms: int


@dataclass
class _IndexState:
    """Everything a rebuild replaces in one assignment."""

    postings: dict[str, dict[str, dict[int, int]]] = field(default_factory=dict)
    forward: dict[int, dict[str, dict[str, int]]] = field(default_factory=dict)
    refs: dict[str, DocumentRef] = field(default_factory=dict)
    paths: dict[int, str] = field(default_factory=dict)

    def add(self, doc_id: int, field_terms: dict[str, dict[str, int]]) -> None:
        self.forward[doc_id] = field_terms
        for field_name, terms in field_terms.items():
            field_postings = self.postings.setdefault(field_name, {})
            for term, tf in terms.items():
                field_postings.setdefault(term, {})[doc_id] = tf

    def discard(self, doc_id: int) -> None:
        for field_name, terms in self.forward.pop(doc_id, {}).items():
            field_postings = self.postings.get(field_name, {})
            for term in terms:
                docs = field_postings.get(term)
                if docs is None:
                    continue
                docs.pop(doc_id, None)
                if not docs:
                    del field_postings[term]


class DocumentIndex:
    """Weighted inverted index with AND/OR, prefix and fuzzy evaluation."""

    def __init__(
        self,
        tokenizer: Tokenizer,
        *,
        schema: Schema | None = None,
        min_term_length_for_prefix_search: int = 2,
        min_term_length_for_prefix: int = 3,
        fuzzy_proportion: float = 0.2,
    ) -> None:
        self.tokenizer = tokenizer
        self.schema = schema or create_vault_schema()
        self.min_term_length_for_prefix_search = min_term_length_for_prefix_search
        self.min_term_length_for_prefix = min_term_length_for_prefix
        self.fuzzy_proportion = fuzzy_proportion
        self._state = _IndexState()
        self._next_id = 0
        self._vocabulary: list[str] | None = None
        self._ready = False

    @property
    def ready(self) -> bool:
        """False until the first ``reindex_all`` or ``restore`` completes."""
        return self._ready

    def __len__(self) -> int:
        return len(self._state.refs)

    def __contains__(self, path: object) -> bool:
        return path in self._state.refs

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def reindex_all(
        self,
        documents: Iterable[IndexedDocument],
        mtimes: Mapping[str, float] | None = None,
    ) -> int:
        """Replace the whole index with ``documents``.

        The new postings are built aside and swapped in at the end. Paths that
        were already indexed keep their ids.
        """
        mtimes = mtimes or {}
        previous = self._state.refs
        staged = _IndexState()
        for document in documents:
            known = previous.get(document.path) or staged.refs.get(document.path)
            doc_id = known.id if known is not None else self._allocate_id()
            if document.path in staged.refs:
                staged.discard(doc_id)
            staged.add(doc_id, self._analyze(document))
            staged.paths[doc_id] = document.path
            staged.refs[document.path] = DocumentRef(
                id=doc_id,
                path=document.path,
                lexical_mtime=mtimes.get(document.path, 0.0),
                embedding_mtime=known.embedding_mtime if known is not None else 0.0,
            )

        self._state = staged
        self._vocabulary = None
        self._ready = True
        logger.debug("Reindexed %d documents", len(staged.refs))
        return len(staged.refs)

    def upsert(self, document: IndexedDocument, mtime: float | None = None) -> DocumentRef:
        """Index ``document``, replacing any postings previously held for its path."""
        field_terms = self._analyze(document)
        state = self._state
        ref = state.refs.get(document.path)
        if ref is None:
            ref = DocumentRef(id=self._allocate_id(), path=document.path)
            state.refs[document.path] = ref
            state.paths[ref.id] = document.path
        else:
            state.discard(ref.id)
        state.add(ref.id, field_terms)
        if mtime is not None:
            ref.lexical_mtime = mtime
        self._vocabulary = None
        return ref

    def remove(self, path: str) -> bool:
        """Drop ``path`` from the index. Unknown paths are ignored."""
        state = self._state
        ref = state.refs.pop(path, None)
        if ref is None:
            return False
        state.discard(ref.id)
        state.paths.pop(ref.id, None)
        self._vocabulary = None
        return True

    def _allocate_id(self) -> int:
        doc_id = self._next_id
        self._next_id += 1
        return doc_id

    def _analyze(self, document: IndexedDocument) -> dict[str, dict[str, int]]:
        values = {
            "basename": document.basename,
            "folder": document.folder,
            "aliases": document.aliases or "",
            "headings": extract_headings(document.content or ""),
            "content": document.content or "",
        }
        field_terms: dict[str, dict[str, int]] = {}
        for schema_field in self.schema:
            text = values.get(schema_field.name, "")
            if not text:
                continue
            counts = Counter(self.tokenizer.segment(text, fine=False))
            if counts:
                field_terms[schema_field.name] = dict(counts)
        return field_terms

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def refs(self) -> list[DocumentRef]:
        return sorted(self._state.refs.values(), key=lambda ref: ref.path)

    def get_ref(self, path: str) -> DocumentRef | None:
        return self._state.refs.get(path)

    def stats(self) -> IndexStats:
        return IndexStats(documents=len(self._state.refs), terms=len(self._get_vocabulary()))

    def _get_vocabulary(self) -> list[str]:
        if self._vocabulary is None:
            terms: set[str] = set()
            for field_postings in self._state.postings.values():
                terms.update(field_postings)
            self._vocabulary = sorted(terms)
        return self._vocabulary

    def expand_term(self, term: str) -> dict[str, float]:
        """Return the indexed terms matched by ``term`` with their match factor."""
        vocabulary = self._get_vocabulary()
        matches: dict[str, float] = {}

        if len(term) >= self.min_term_length_for_prefix_search:
            start = bisect.bisect_left(vocabulary, term)
            for candidate in vocabulary[start:]:
                if not candidate.startswith(term):
                    break
                matches[candidate] = PREFIX_FACTOR

        budget = fuzzy_budget(
            len(term),
            proportion=self.fuzzy_proportion,
            min_length=self.min_term_length_for_prefix,
        )
        if budget:
            for candidate, distance in find_fuzzy_matches(term, vocabulary, budget):
                factor = FUZZY_FACTOR / distance
                if factor > matches.get(candidate, 0.0):
                    matches[candidate] = factor

        index = bisect.bisect_left(vocabulary, term)
        if index < len(vocabulary) and vocabulary[index] == term:
            matches[term] = EXACT_FACTOR
        return matches

    def _score_variant(self, term: str) -> tuple[dict[int, float], dict[int, set[str]]]:
        """Score one query variant; returns per-document banded scores and matched terms."""
        expansions = self.expand_term(term)
        if not expansions:
            return {}, {}

        raw: dict[int, float] = {}
        tiers: dict[int, int] = {}
        matched: dict[int, set[str]] = {}
        for field_name, field_postings in self._state.postings.items():
            best: dict[int, float] = {}
            for indexed_term, factor in expansions.items():
                docs = field_postings.get(indexed_term)
                if not docs:
                    continue
                tier = _tier_of(factor)
                for doc_id, tf in docs.items():
                    value = factor * tf
                    if value > best.get(doc_id, 0.0):
                        best[doc_id] = value
                    if tier < tiers.get(doc_id, TIER_FUZZY + 1):
                        tiers[doc_id] = tier
                    matched.setdefault(doc_id, set()).add(indexed_term)
            weight = self.schema.get_boost(field_name)
            for doc_id, value in best.items():
                raw[doc_id] = raw.get(doc_id, 0.0) + weight * value

        idf = calculate_idf(len(raw), len(self._state.refs))
        scores = {}
        for doc_id, value in raw.items():
            relevance = idf * value
            scores[doc_id] = _TIER_BANDS[tiers[doc_id]] + relevance / (1.0 + relevance)
        return scores, matched

    def query(
        self,
        terms: Sequence[QueryTerm | str],
        mode: QueryMode = "or",
        limit: int | None = None,
    ) -> list[RankedDocument]:
        """Rank documents for ``terms``.

        Ordering is ``(-score, -matched query terms, path)``. An index that was
        never built answers with an empty list.
        """
        if not self._ready or not self._state.refs:
            return []
        groups = [QueryTerm(term) if isinstance(term, str) else term for term in terms]
        groups = [group for group in groups if group.text]
        if not groups:
            return []

        scores: dict[int, float] = {}
        term_matches: dict[int, int] = {}
        matched_terms: dict[int, set[str]] = {}
        qualified: set[int] | None = None

        for group in groups:
            group_scores: dict[int, float] = {}
            for variant in dict.fromkeys(group.variants):
                variant_scores, variant_matches = self._score_variant(variant)
                for doc_id, value in variant_scores.items():
                    if value > group_scores.get(doc_id, -1.0):
                        group_scores[doc_id] = value
                for doc_id, found in variant_matches.items():
                    matched_terms.setdefault(doc_id, set()).update(found)

            for doc_id, value in group_scores.items():
                scores[doc_id] = scores.get(doc_id, 0.0) + value
                term_matches[doc_id] = term_matches.get(doc_id, 0) + 1

            if mode == "and":
                matched_ids = set(group_scores)
                qualified = matched_ids if qualified is None else qualified & matched_ids
                if not qualified:
                    return []

        candidates = qualified if mode == "and" and qualified is not None else set(scores)
        paths = self._state.paths
        ranked = sorted(
            (
                RankedDocument(
                    path=paths[doc_id],
                    score=scores[doc_id],
                    matched_terms=tuple(sorted(matched_terms.get(doc_id, ()))),
                    term_matches=term_matches[doc_id],
                )
                for doc_id in candidates
            ),
            key=lambda doc: (-doc.score, -doc.term_matches, doc.path),
        )
        if limit is not None:
            ranked = ranked[: max(limit, 0)]
        return ranked

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_snapshot(self) -> dict[str, Any]:
        """Serialize postings and refs to plain JSON-compatible data."""
        state = self._state
        return {
            "schema": self.schema.to_dict(),
            "next_id": self._next_id,
            "refs": [ref.to_dict() for ref in self.refs()],
            "postings": {
                field_name: {
                    term: {str(doc_id): tf for doc_id, tf in docs.items()}
                    for term, docs in sorted(field_postings.items())
                }
                for field_name, field_postings in state.postings.items()
            },
        }

    def restore(self, payload: Mapping[str, Any]) -> int:
        """Load a snapshot produced by ``to_snapshot`` without re-tokenizing.

        Raises:
            SnapshotError: when the payload is malformed or was built for a
                different set of fields.
        """
        try:
            stored_fields = [f["name"] for f in payload["schema"]["fields"]]
            if sorted(stored_fields) != sorted(self.schema.field_names):
                raise SnapshotError(f"Snapshot fields {stored_fields} do not match {self.schema.field_names}")

            state = _IndexState()
            for raw_ref in payload["refs"]:
                ref = DocumentRef.from_dict(raw_ref)
                state.refs[ref.path] = ref
                state.paths[ref.id] = ref.path
                state.forward[ref.id] = {}

            for field_name, field_postings in payload["postings"].items():
                for term, docs in field_postings.items():
                    for raw_id, tf in docs.items():
                        doc_id = int(raw_id)
                        if doc_id not in state.paths:
                            raise SnapshotError(f"Posting for '{term}' references unknown document {doc_id}")
                        state.postings.setdefault(field_name, {}).setdefault(term, {})[doc_id] = int(tf)
                        state.forward[doc_id].setdefault(field_name, {})[term] = int(tf)

            highest = max(state.paths, default=-1)
            next_id = max(int(payload.get("next_id", 0)), highest + 1)
        except SnapshotError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SnapshotError(f"Malformed index snapshot: {exc}") from exc

        self._state = state
        self._next_id = max(self._next_id, next_id)
        self._vocabulary = None
        self._ready = True
        return len(state.refs)
