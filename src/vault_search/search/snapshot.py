"""Persistence of index snapshots as minified JSON.

A snapshot is the payload returned by ``DocumentIndex.to_snapshot`` wrapped
with a version tag. Snapshots written by another version are rejected with
``SnapshotError``; callers rebuild the index from the vault instead.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any

import anyio
from anyio import to_thread
import orjson


logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "vault-search/1"


class SnapshotError(ValueError):
    """Raised when a persisted snapshot cannot be used."""


class IndexSnapshotStore:
    """Read and write one snapshot file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def tmp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    async def exists(self) -> bool:
        return await to_thread.run_sync(self.path.exists)

    async def load(self) -> dict[str, Any] | None:
        """Return the stored index payload, or None when no snapshot exists.

        Raises:
            SnapshotError: if the file is undecodable or carries another version.
        """
        if not await self.exists():
            return None
        async with await anyio.open_file(self.path, "rb") as fp:
            raw = await fp.read()
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise SnapshotError(f"Snapshot {self.path} is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise SnapshotError(f"Snapshot {self.path} has an unexpected top-level type")
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise SnapshotError(f"Unsupported snapshot version {version!r} (expected {SNAPSHOT_VERSION!r})")
        index = data.get("index")
        if not isinstance(index, dict):
            raise SnapshotError(f"Snapshot {self.path} has no index payload")
        return index

    async def save(self, index_payload: dict[str, Any]) -> Path:
        """Atomically replace the snapshot file."""
        payload = {
            "version": SNAPSHOT_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "index": index_payload,
        }
        await to_thread.run_sync(lambda: self.path.parent.mkdir(parents=True, exist_ok=True))
        tmp_path = self.tmp_path
        async with await anyio.open_file(tmp_path, "wb") as fp:
            await fp.write(orjson.dumps(payload))
        await to_thread.run_sync(tmp_path.replace, self.path)
        logger.debug("Saved index snapshot to %s", self.path)
        return self.path

    async def clear(self) -> None:
        if await self.exists():
            await to_thread.run_sync(self.path.unlink)
