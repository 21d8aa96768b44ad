# src/streaming/emitter.py
"""Ordered push-stream of events, framed as ``data: <json>\\n\\n``.

Frames leave in emission order, one frame per event. Nothing is emitted
after a terminal (complete or error) event.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any, AsyncIterator, Awaitable, Callable

from docreview.streaming.events import TERMINAL_EVENTS, BaseEvent, ErrorEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


def encode_frame(event: BaseEvent) -> str:
    """Single-line UTF-8 JSON in a ``data:`` frame."""
    return f"data: {json.dumps(event.to_wire(), ensure_ascii=False)}\n\n"


class StreamEmitter:
    """Queue of events between a run segment and its consumer."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self._terminated = False
        self.emitted = 0
        self.last_event: BaseEvent | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminated(self) -> bool:
        """A terminal event has been emitted."""
        return self._terminated

    def emit(self, event: BaseEvent) -> None:
        """Enqueue ``event`` for delivery. Dropped once closed or terminated."""
        if self._closed or self._terminated:
            logger.debug("Dropping %s event after end of stream", event.type)
            return
        if isinstance(event, TERMINAL_EVENTS):
            self._terminated = True
        self._queue.put_nowait(event)
        self.emitted += 1
        self.last_event = event

    def close(self) -> None:
        """End the stream after the events already queued."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def events(self) -> AsyncIterator[BaseEvent]:
        """Yield events in emission order until the stream is closed."""
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    async def frames(
        self, exclude: tuple[type[BaseEvent], ...] = (),
    ) -> AsyncIterator[str]:
        """Frames of the events, skipping instances of ``exclude``."""
        async for event in self.events():
            if not isinstance(event, exclude):
                yield encode_frame(event)


async def stream_run(
    run: Callable[[], Awaitable[Any]],
    emitter: StreamEmitter,
    file_id: str = "",
    exclude: tuple[type[BaseEvent], ...] = (),
) -> AsyncIterator[str]:
    """Drive one run segment as a task and yield its frames.

    Events of the ``exclude`` types are consumed but not framed.
    An exception escaping the segment becomes an error frame unless a
    terminal event was already sent. If the consumer stops early, the
    segment task is cancelled.
    """

    async def _drive() -> None:
        try:
            await run()
        except Exception as e:
            if not emitter.terminated:
                logger.error("Run segment failed: %s", e, exc_info=True)
                emitter.emit(
                    ErrorEvent(file_id=file_id, message="Analysis failed", error=str(e))
                )
        finally:
            emitter.close()

    task = asyncio.create_task(_drive())
    try:
        async for frame in emitter.frames(exclude):
            yield frame
    finally:
        if not task.done():
            logger.info("Stream consumer went away; cancelling run segment")
            task.cancel()
        with suppress(asyncio.CancelledError):
            await task
