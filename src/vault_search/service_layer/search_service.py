"""Search service orchestration layer.

Owns the async edges of the system (vault reads, snapshot persistence,
change events) and hands already-loaded data to the synchronous search core.
Index mutations are serialized through one lock; queries run synchronously,
so they never observe a half-applied mutation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from functools import partial
import logging
from pathlib import Path
from typing import Literal

from anyio import to_thread

from vault_search.adapters.vault_repository import FileSystemVault, UnsupportedContentError, VaultRepository
from vault_search.config import Settings
from vault_search.domain.search import FileItem, FileSubItem, HighlightedLine, LineItem, SearchResult
from vault_search.observability import INDEX_OPERATIONS, INDEXED_DOCUMENTS, bind_operation, create_span, track_latency
from vault_search.search.analyzers import build_tokenizer
from vault_search.search.cjk import load_cjk_segmenter
from vault_search.search.highlighter import LineHighlighter
from vault_search.search.index import DocumentIndex, QueryMode
from vault_search.search.line_matcher import LineMatcher
from vault_search.search.models import HighlightedContext, Line, MatchedLine, RankedDocument
from vault_search.search.query import QueryProcessor
from vault_search.search.schema import create_vault_schema
from vault_search.search.snapshot import IndexSnapshotStore, SnapshotError
from vault_search.service_layer.change_queue import ChangeEvent, ChangeKind, DebouncedChangeQueue
from vault_search.utils.assets import AssetsProvider
from vault_search.utils.file_types import FileType, get_file_type


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexReport:
    """Summary of a startup or rebuild."""

    source: Literal["snapshot", "vault"]
    documents: int
    updated: int = 0
    removed: int = 0
    failed: int = 0
    superseded: bool = False


def _highlighted_line(context: HighlightedContext) -> HighlightedLine:
    return HighlightedLine(text=context.text, row=context.row, col=context.col, positions=sorted(context.positions))


class SearchService:
    """High-level search API over one vault."""

    def __init__(
        self,
        *,
        settings: Settings,
        vault: VaultRepository,
        index: DocumentIndex,
        query_processor: QueryProcessor,
        line_matcher: LineMatcher,
        highlighter: LineHighlighter,
        snapshot_store: IndexSnapshotStore | None = None,
    ) -> None:
        self.settings = settings
        self.vault = vault
        self.index = index
        self.query_processor = query_processor
        self.line_matcher = line_matcher
        self.highlighter = highlighter
        self.snapshot_store = snapshot_store
        self.change_queue = DebouncedChangeQueue(self.apply_change, delay=settings.debounce_seconds)
        self._lock = asyncio.Lock()
        self._generation = 0
        # path -> (version, kind) of the latest change event applied or in flight
        self._changes: dict[str, tuple[int, ChangeKind]] = {}

    @property
    def ready(self) -> bool:
        return self.index.ready

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> IndexReport:
        """Restore the persisted snapshot and catch up with the vault, or rebuild."""
        bind_operation("initialize")
        with create_span("vault_search.initialize"):
            payload = await self._load_snapshot()
            if payload is not None:
                try:
                    async with self._lock:
                        restored = self.index.restore(payload)
                except SnapshotError as exc:
                    logger.warning("Discarding index snapshot: %s; rebuilding from the vault", exc)
                    INDEX_OPERATIONS.labels(operation="restore", outcome="invalid").inc()
                else:
                    INDEX_OPERATIONS.labels(operation="restore", outcome="ok").inc()
                    logger.info("Restored %d documents from snapshot", restored)
                    report = await self._reconcile()
                    if report.updated or report.removed:
                        await self.save_snapshot()
                    return report
            return await self.reindex_all()

    async def _load_snapshot(self) -> dict | None:
        if self.snapshot_store is None:
            return None
        try:
            return await self.snapshot_store.load()
        except SnapshotError as exc:
            logger.warning("Index snapshot unusable: %s; rebuilding from the vault", exc)
        except OSError as exc:
            logger.warning("Failed to read index snapshot %s: %s", self.snapshot_store.path, exc)
        INDEX_OPERATIONS.labels(operation="restore", outcome="invalid").inc()
        return None

    async def reindex_all(self) -> IndexReport:
        """Read the whole vault and replace the index.

        A newer call supersedes a running one; the superseded run commits
        nothing. Change events applied while the vault was being read are
        replayed on top of the rebuilt index.
        """
        self._generation += 1
        generation = self._generation
        with create_span("vault_search.reindex_all"):
            seen = dict(self._changes)
            report = await self.vault.read_all_documents()
            async with self._lock:
                if generation != self._generation:
                    logger.info("Reindex superseded by a newer request; discarding %d documents", len(report.documents))
                    INDEX_OPERATIONS.labels(operation="reindex_all", outcome="superseded").inc()
                    return IndexReport(source="vault", documents=len(self.index), superseded=True)
                count = self.index.reindex_all(report.documents, report.mtimes)
                replay = [
                    ChangeEvent(path=path, kind=kind)
                    for path, (version, kind) in self._changes.items()
                    if seen.get(path) != (version, kind)
                ]

            if replay:
                logger.info("Replaying %d change events that raced the rebuild", len(replay))
                for event in replay:
                    await self.apply_change(event)
                count = len(self.index)

        INDEXED_DOCUMENTS.set(count)
        INDEX_OPERATIONS.labels(operation="reindex_all", outcome="ok").inc()
        if report.failed:
            logger.warning("Indexed %d documents, %d could not be read", count, report.failed)
        else:
            logger.info("Indexed %d documents", count)
        await self.save_snapshot()
        return IndexReport(source="vault", documents=count, updated=count, failed=report.failed)

    async def _reconcile(self) -> IndexReport:
        """Upsert notes newer than the snapshot and drop notes that disappeared."""
        paths = await self.vault.list_paths()
        known = {ref.path: ref for ref in self.index.refs()}
        updated = failed = removed = 0

        for path in paths:
            mtime = await self.vault.mtime(path)
            ref = known.get(path)
            if mtime is None or (ref is not None and mtime <= ref.lexical_mtime):
                continue
            try:
                document = await self.vault.read_document(path)
            except (OSError, UnsupportedContentError) as exc:
                logger.warning("Skipping %s: %s", path, exc)
                failed += 1
                continue
            async with self._lock:
                self.index.upsert(document, mtime)
            updated += 1

        for path in sorted(set(known) - set(paths)):
            async with self._lock:
                if self.index.remove(path):
                    removed += 1

        INDEXED_DOCUMENTS.set(len(self.index))
        logger.info(
            "Snapshot reconciled: %d documents, %d updated, %d removed, %d failed",
            len(self.index),
            updated,
            removed,
            failed,
        )
        return IndexReport(source="snapshot", documents=len(self.index), updated=updated, removed=removed, failed=failed)

    async def save_snapshot(self) -> Path | None:
        if self.snapshot_store is None or not self.index.ready:
            return None
        payload = self.index.to_snapshot()
        try:
            return await self.snapshot_store.save(payload)
        except OSError as exc:
            logger.warning("Failed to persist index snapshot to %s: %s", self.snapshot_store.path, exc)
            return None

    # ------------------------------------------------------------------
    # Change events
    # ------------------------------------------------------------------

    def notify_change(self, path: str, kind: ChangeKind | str) -> None:
        """Queue a file event; it is applied once the path has been quiet for a while."""
        if get_file_type(path) is not FileType.PLAIN_TEXT:
            return
        self.change_queue.push(path, kind)

    async def apply_change(self, event: ChangeEvent) -> None:
        """Apply one (debounced) file event to the index.

        A read that finishes after a newer event for the same path has been
        applied is dropped.
        """
        version = self._record_change(event)
        if event.kind is ChangeKind.DELETED:
            async with self._lock:
                removed = self.index.remove(event.path)
            INDEX_OPERATIONS.labels(operation="remove", outcome="ok" if removed else "noop").inc()
        else:
            try:
                document = await self.vault.read_document(event.path)
                mtime = await self.vault.mtime(event.path)
            except (OSError, UnsupportedContentError) as exc:
                logger.warning("Could not re-index %s: %s", event.path, exc)
                INDEX_OPERATIONS.labels(operation="upsert", outcome="error").inc()
                return
            async with self._lock:
                stale = self._changes[event.path][0] != version
                if not stale:
                    self.index.upsert(document, mtime)
            if stale:
                logger.debug("Dropping stale read of %s; a newer event superseded it", event.path)
                INDEX_OPERATIONS.labels(operation="upsert", outcome="stale").inc()
                return
            INDEX_OPERATIONS.labels(operation="upsert", outcome="ok").inc()
        INDEXED_DOCUMENTS.set(len(self.index))
        logger.debug("Applied %s event for %s", event.kind.value, event.path)

    def _record_change(self, event: ChangeEvent) -> int:
        version = self._changes.get(event.path, (0, event.kind))[0] + 1
        self._changes[event.path] = (version, event.kind)
        return version

    async def close(self) -> None:
        """Flush pending change events and persist the index."""
        await self.change_queue.close()
        await self.save_snapshot()

    # ------------------------------------------------------------------
    # Synchronous query API
    # ------------------------------------------------------------------

    def search_files(self, query: str, mode: QueryMode = "and", limit: int | None = None) -> list[RankedDocument]:
        """Rank vault notes for ``query``."""
        terms = self.query_processor.parse_terms(query)
        return self.index.query(terms, mode, limit if limit is not None else self.settings.max_item_results)

    def search_lines(self, lines: Sequence[Line], query: str, limit: int) -> list[MatchedLine]:
        """Lines containing any query term, best first."""
        return self.line_matcher.match_terms(lines, self.query_processor.parse(query), limit)

    def fzf_match(self, query: str, lines: Sequence[Line]) -> list[MatchedLine]:
        """Fuzzy subsequence match over ``lines``; whitespace in ``query`` is ignored."""
        return self.line_matcher.match_lines(
            lines,
            self.query_processor.normalize_in_file(query),
            self.settings.max_line_results,
        )

    # ------------------------------------------------------------------
    # Result-building API
    # ------------------------------------------------------------------

    async def search_in_vault(self, query: str) -> SearchResult:
        """Files matching every word of ``query``."""
        bind_operation("search_in_vault")
        if not query.strip():
            return SearchResult()
        if not self.index.ready:
            return SearchResult.not_ready()

        with track_latency("vault"), create_span("vault_search.search_in_vault", attributes={"query.length": len(query)}):
            try:
                ranked = self.search_files(query, "and")
            except Exception:
                logger.exception("Vault search failed for %r", query)
                return SearchResult()

        logger.debug("Vault search for %r matched %d files", query, len(ranked))
        return SearchResult(
            items=[FileItem(path=doc.path, matched_terms=list(doc.matched_terms)) for doc in ranked],
        )

    async def get_file_sub_items(
        self,
        path: str,
        query: str,
        matched_terms: Sequence[str] = (),
    ) -> list[FileSubItem]:
        """Matching lines of one file, for display under its vault result.

        ``matched_terms`` (from a ``FileItem``) widens the search to the
        indexed words a prefix or fuzzy query actually hit.
        """
        bind_operation("get_file_sub_items")
        if get_file_type(path) is not FileType.PLAIN_TEXT:
            logger.warning("File type of %s is not supported for sub-items", path)
            return []
        try:
            lines = await self.vault.read_lines(path)
        except UnsupportedContentError as exc:
            logger.warning("%s", exc)
            return []
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return []

        with track_latency("sub_items"):
            terms = [*self.query_processor.parse(query), *matched_terms]
            matched = self.line_matcher.match_terms(lines, terms, self.settings.max_sub_items)
            contexts = self.highlighter.parse_all(lines, matched, "subItem", False)
        return [
            FileSubItem(text=ctx.text, row=ctx.row, col=ctx.col, positions=sorted(ctx.positions)) for ctx in contexts
        ]

    async def search_in_file(self, path: str, query: str) -> SearchResult:
        """Fuzzy line search inside one file."""
        bind_operation("search_in_file")
        if not query or not query.strip():
            return SearchResult(curr_path=path)
        if get_file_type(path) is not FileType.PLAIN_TEXT:
            return SearchResult.unsupported(path)
        try:
            lines = await self.vault.read_lines(path)
        except UnsupportedContentError:
            return SearchResult.unsupported(path)
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return SearchResult(curr_path=path)

        with track_latency("file"), create_span("vault_search.search_in_file", attributes={"lines": len(lines)}):
            matched = self.fzf_match(query, lines)
            items = [
                LineItem(
                    line=_highlighted_line(self.highlighter.parse(lines, line, "line", False)),
                    context=self.highlighter.parse(lines, line, "paragraph", True).text,
                )
                for line in matched
            ]
        return SearchResult(curr_path=path, items=items)


async def build_search_service(settings: Settings, vault: VaultRepository | None = None) -> SearchService:
    """Compose every component from ``settings``."""
    if vault is None:
        if settings.vault_root is None:
            raise ValueError("vault_root must be configured (VAULT_SEARCH_VAULT_ROOT)")
        vault = FileSystemVault(settings.vault_root, exclude_extensions=settings.get_exclude_extensions())

    assets = await AssetsProvider(settings.assets_dir).load()
    # dictionary loading is CPU bound and takes a second or two
    cjk = await to_thread.run_sync(
        partial(load_cjk_segmenter, assets.cjk_dictionary, enabled=settings.enable_chinese_patch)
    )
    tokenizer = build_tokenizer(settings, assets, cjk)
    index = DocumentIndex(
        tokenizer,
        schema=create_vault_schema(settings.document_weights()),
        min_term_length_for_prefix_search=settings.min_term_length_for_prefix_search,
        min_term_length_for_prefix=settings.min_term_length_for_prefix,
        fuzzy_proportion=settings.fuzzy_proportion,
    )
    snapshot_path = settings.resolve_snapshot_path()
    return SearchService(
        settings=settings,
        vault=vault,
        index=index,
        query_processor=QueryProcessor(tokenizer),
        line_matcher=LineMatcher(),
        highlighter=LineHighlighter(
            paragraph_context_lines=settings.paragraph_context_lines,
            sub_item_chars=settings.sub_item_chars,
        ),
        snapshot_store=IndexSnapshotStore(snapshot_path) if snapshot_path is not None else None,
    )
