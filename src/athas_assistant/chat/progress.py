"""Per-request progress channel for streamed chat.

The loop pushes without ever waiting on the consumer. Progress events are
buffered up to a bound; past it the oldest progress event is dropped.
Terminal events (final, error) are never dropped, and nothing is accepted
after one has been pushed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Event type constants
EVENT_PROGRESS = "progress"
EVENT_FINAL = "final"
EVENT_ERROR = "error"
_TERMINAL_EVENTS = frozenset({EVENT_FINAL, EVENT_ERROR})


@dataclass(frozen=True)
class ProgressEvent:
    """One event pushed to the caller."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    @property
    def is_terminal(self) -> bool:
        return self.kind in _TERMINAL_EVENTS

    def to_dict(self) -> dict[str, Any]:
        return {**self.payload, "event": self.kind, "timestamp": self.timestamp}


class ProgressChannel:
    """One-directional event channel alive for a single chat request."""

    def __init__(self, max_progress: int = 32) -> None:
        """Initialize the channel.

        Args:
            max_progress: Progress events buffered before the oldest is dropped
        """
        self._buffer: deque[ProgressEvent] = deque()
        self._max_progress = max_progress
        self._progress_count = 0
        self._ready = asyncio.Event()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        """True once a terminal event has been pushed."""
        return self._closed

    def progress(self, message: str, **data: Any) -> None:
        """Report what the loop is doing right now."""
        self._push(ProgressEvent(EVENT_PROGRESS, {"message": message, **data}))

    def final(self, **payload: Any) -> None:
        """Report the completed result. Ends the channel."""
        self._push(ProgressEvent(EVENT_FINAL, payload))

    def error(self, message: str, **payload: Any) -> None:
        """Report a terminal failure. Ends the channel."""
        self._push(ProgressEvent(EVENT_ERROR, {"error": message, **payload}))

    def _push(self, event: ProgressEvent) -> None:
        if self._closed:
            logger.debug(f"Ignoring {event.kind} event on closed channel")
            return

        if event.kind == EVENT_PROGRESS:
            if self._max_progress <= 0:
                self.dropped += 1
                return
            if self._progress_count >= self._max_progress:
                self._drop_oldest_progress()
            self._progress_count += 1
        else:
            self._closed = True

        self._buffer.append(event)
        self._ready.set()

    def _drop_oldest_progress(self) -> None:
        for index, queued in enumerate(self._buffer):
            if queued.kind == EVENT_PROGRESS:
                del self._buffer[index]
                self._progress_count -= 1
                self.dropped += 1
                logger.debug(f"Dropped progress event ({self.dropped} total)")
                return

    def pending(self) -> int:
        return len(self._buffer)

    async def get(self) -> ProgressEvent:
        """Wait for the next event."""
        while not self._buffer:
            self._ready.clear()
            await self._ready.wait()
        event = self._buffer.popleft()
        if event.kind == EVENT_PROGRESS:
            self._progress_count -= 1
        return event

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events until and including the terminal one."""
        while True:
            event = await self.get()
            yield event
            if event.is_terminal:
                return
