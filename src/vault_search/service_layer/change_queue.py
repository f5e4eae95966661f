"""Per-path coalescing of file-change events.

Bursts of edits to the same note collapse into one re-index: every event
(re)arms a timer for its path and only the last event of a burst reaches the
handler, ``delay`` seconds after the burst ends.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
import logging


logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    ADDED = "added"
    CHANGED = "changed"
    DELETED = "deleted"


@dataclass(frozen=True)
class ChangeEvent:
    path: str
    kind: ChangeKind


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class DebouncedChangeQueue:
    """Debounce change events per path and hand them to ``handler``.

    Must be used from inside a running event loop.
    """

    def __init__(self, handler: ChangeHandler, *, delay: float = 3.0) -> None:
        self.handler = handler
        self.delay = delay
        self._pending: dict[str, ChangeEvent] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> dict[str, ChangeEvent]:
        return dict(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def push(self, path: str, kind: ChangeKind | str) -> None:
        """Record an event for ``path``; a later event for the same path replaces it."""
        if self._closed:
            logger.debug("Change queue closed; dropping %s event for %s", kind, path)
            return
        event = ChangeEvent(path=path, kind=ChangeKind(kind))
        loop = asyncio.get_running_loop()
        timer = self._timers.pop(path, None)
        if timer is not None:
            timer.cancel()
        # re-insert so flush() follows the order of the latest events
        self._pending.pop(path, None)
        self._pending[path] = event
        self._timers[path] = loop.call_later(self.delay, self._fire, path)

    def _fire(self, path: str) -> None:
        self._timers.pop(path, None)
        event = self._pending.pop(path, None)
        if event is None:
            return
        task = asyncio.get_running_loop().create_task(self._dispatch(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, event: ChangeEvent) -> None:
        try:
            await self.handler(event)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Failed to apply %s event for %s", event.kind.value, event.path)

    async def flush(self) -> int:
        """Dispatch every pending event now and wait for in-flight handlers."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        events = list(self._pending.values())
        self._pending.clear()
        for event in events:
            await self._dispatch(event)
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return len(events)

    async def close(self) -> None:
        """Apply what is pending, then refuse further events."""
        await self.flush()
        self._closed = True
