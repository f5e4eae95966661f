"""Filesystem access to a vault of notes."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path, PurePosixPath
from typing import Protocol

import anyio
from anyio import to_thread

from vault_search.search.models import IndexedDocument, Line, split_lines
from vault_search.utils.file_types import (
    PLAIN_TEXT_EXTENSIONS,
    FileType,
    get_basename,
    get_extension,
    get_file_type,
    get_folder_path,
)
from vault_search.utils.front_matter import collect_aliases, parse_front_matter


logger = logging.getLogger(__name__)

IGNORED_DIRS = frozenset({".obsidian", ".git", ".vscode", ".trash", ".vault-search"})


class PathOutsideVaultError(OSError):
    """Raised when a path is absolute or climbs out of the vault root."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Path escapes the vault: {path}")
        self.path = path


class UnsupportedContentError(Exception):
    """Raised when a file is not plain text."""

    def __init__(self, path: str, file_type: FileType) -> None:
        super().__init__(f"{path} is not a plain-text file ({file_type.value})")
        self.path = path
        self.file_type = file_type


@dataclass(frozen=True)
class ReadFailure:
    path: str
    error: str


@dataclass(frozen=True)
class ReadReport:
    """Outcome of a full vault read."""

    documents: tuple[IndexedDocument, ...] = ()
    mtimes: dict[str, float] = field(default_factory=dict)
    failures: tuple[ReadFailure, ...] = ()

    @property
    def failed(self) -> int:
        return len(self.failures)


class VaultRepository(Protocol):
    """What the search service needs from the host file layer."""

    async def read_all_documents(self) -> ReadReport: ...

    async def read_document(self, path: str) -> IndexedDocument: ...

    async def read_lines(self, path: str) -> list[Line]: ...

    async def list_paths(self) -> list[str]: ...

    async def mtime(self, path: str) -> float | None: ...


def build_document(path: str, raw: str) -> IndexedDocument:
    """Split ``raw`` into the indexed fields of the note at ``path``."""
    metadata, body = parse_front_matter(raw)
    return IndexedDocument(
        path=path,
        basename=get_basename(path),
        folder=get_folder_path(path),
        aliases=collect_aliases(metadata),
        content=body,
    )


class FileSystemVault:
    """A vault rooted at a local directory. Paths are vault-relative and use ``/``."""

    def __init__(self, root: Path, *, exclude_extensions: Iterable[str] = ()) -> None:
        self.root = Path(root)
        self.exclude_extensions = frozenset(ext.lower().lstrip(".") for ext in exclude_extensions)

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise PathOutsideVaultError(path)
        return self.root.joinpath(*relative.parts)

    def _is_indexable(self, path: str) -> bool:
        extension = get_extension(path)
        return extension in PLAIN_TEXT_EXTENSIONS and extension not in self.exclude_extensions

    def _walk(self) -> list[str]:
        paths: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
            relative_dir = Path(dirpath).relative_to(self.root)
            for filename in sorted(filenames):
                path = (relative_dir / filename).as_posix()
                if self._is_indexable(path):
                    paths.append(path)
        return paths

    async def list_paths(self) -> list[str]:
        """Return every indexable note path, sorted."""
        return await to_thread.run_sync(self._walk)

    async def mtime(self, path: str) -> float | None:
        try:
            stat = await to_thread.run_sync(self._resolve(path).stat)
        except OSError:
            return None
        return stat.st_mtime

    async def _read_text(self, path: str) -> str:
        file_type = get_file_type(path)
        if file_type is not FileType.PLAIN_TEXT:
            raise UnsupportedContentError(path, file_type)
        try:
            async with await anyio.open_file(self._resolve(path), encoding="utf-8") as f:
                return await f.read()
        except UnicodeDecodeError as exc:
            raise UnsupportedContentError(path, FileType.OTHER) from exc

    async def read_document(self, path: str) -> IndexedDocument:
        """Read one note and split off its front matter.

        Raises:
            UnsupportedContentError: if the file is not plain text.
            OSError: if the file cannot be read.
        """
        return build_document(path, await self._read_text(path))

    async def read_lines(self, path: str) -> list[Line]:
        """Read the raw rows of a file, front matter included."""
        return split_lines(await self._read_text(path))

    async def read_all_documents(self) -> ReadReport:
        """Read every note; unreadable files are reported, not raised."""
        documents: list[IndexedDocument] = []
        mtimes: dict[str, float] = {}
        failures: list[ReadFailure] = []
        for path in await self.list_paths():
            try:
                document = await self.read_document(path)
                stat = await to_thread.run_sync(self._resolve(path).stat)
            except (OSError, UnsupportedContentError) as exc:
                logger.warning("Skipping %s: %s", path, exc)
                failures.append(ReadFailure(path=path, error=str(exc)))
                continue
            documents.append(document)
            mtimes[path] = stat.st_mtime
        return ReadReport(documents=tuple(documents), mtimes=mtimes, failures=tuple(failures))


class FakeVault:
    """In-memory vault for tests: ``{path: content}`` plus explicit mtimes."""

    def __init__(self, files: dict[str, str] | None = None, mtimes: dict[str, float] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.mtimes: dict[str, float] = {path: 1.0 for path in self.files}
        self.mtimes.update(mtimes or {})
        self.unreadable: set[str] = set()

    def write(self, path: str, content: str, mtime: float | None = None) -> None:
        self.files[path] = content
        self.mtimes[path] = mtime if mtime is not None else self.mtimes.get(path, 0.0) + 1.0

    def delete(self, path: str) -> None:
        self.files.pop(path, None)
        self.mtimes.pop(path, None)

    async def _read_text(self, path: str) -> str:
        file_type = get_file_type(path)
        if file_type is not FileType.PLAIN_TEXT:
            raise UnsupportedContentError(path, file_type)
        if path in self.unreadable:
            raise PermissionError(f"Permission denied: {path}")
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    async def list_paths(self) -> list[str]:
        return sorted(path for path in self.files if get_file_type(path) is FileType.PLAIN_TEXT)

    async def mtime(self, path: str) -> float | None:
        return self.mtimes.get(path) if path in self.files else None

    async def read_document(self, path: str) -> IndexedDocument:
        return build_document(path, await self._read_text(path))

    async def read_lines(self, path: str) -> list[Line]:
        return split_lines(await self._read_text(path))

    async def read_all_documents(self) -> ReadReport:
        documents: list[IndexedDocument] = []
        failures: list[ReadFailure] = []
        for path in await self.list_paths():
            try:
                documents.append(await self.read_document(path))
            except (OSError, UnsupportedContentError) as exc:
                failures.append(ReadFailure(path=path, error=str(exc)))
        return ReadReport(
            documents=tuple(documents),
            mtimes={doc.path: self.mtimes[doc.path] for doc in documents},
            failures=tuple(failures),
        )
