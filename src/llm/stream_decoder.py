# src/llm/stream_decoder.py
"""Incremental decoding of line-delimited chat-completion event streams.

Wire format: ``data: <json>`` lines, terminated by ``data: [DONE]``.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class LineDecoder:
    """Split an arbitrarily chunked byte stream into complete text lines.

    The partial trailing line is kept across ``feed`` calls; ``flush`` returns
    it once the stream has ended. Multi-byte UTF-8 sequences split across
    chunks are reassembled.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._pending

    def feed(self, chunk: bytes | str) -> list[str]:
        """Consume a chunk and return every line it completes."""
        text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
        if not text:
            return []
        buffer = self._pending + text
        lines = buffer.split("\n")
        self._pending = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> list[str]:
        """Return the remaining partial line, if any, and reset."""
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        tail = tail.rstrip("\r")
        return [tail] if tail else []


@dataclass
class StreamEvent:
    """One decoded ``data:`` event from the provider."""

    delta: str = ""
    usage: dict[str, Any] | None = None
    done: bool = False


@dataclass
class StreamAccumulator:
    """Collects content deltas and the last reported usage of one stream."""

    parts: list[str] = field(default_factory=list)
    usage: dict[str, Any] | None = None
    done: bool = False

    @property
    def content(self) -> str:
        return "".join(self.parts)

    def apply(self, event: StreamEvent) -> None:
        if event.usage is not None:
            self.usage = event.usage
        if event.delta:
            self.parts.append(event.delta)
        if event.done:
            self.done = True


def parse_event_line(line: str) -> StreamEvent | None:
    """Decode one line of the stream.

    Returns None for lines that carry no event (blank lines, comments, other
    fields) and for malformed ``data:`` payloads, which are logged and
    dropped.
    """
    stripped = line.strip()
    if not stripped.startswith(DATA_PREFIX):
        return None
    payload = stripped[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return StreamEvent(done=True)
    if not payload:
        return None

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.warning("Dropping unparsable stream line: %s", exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Dropping stream line with unexpected payload type %s", type(data).__name__)
        return None

    event = StreamEvent()
    usage = data.get("usage")
    if isinstance(usage, dict):
        event.usage = usage

    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0]
        delta = first.get("delta") if isinstance(first, dict) else None
        if isinstance(delta, dict):
            content = delta.get("content")
            if isinstance(content, str):
                event.delta = content
    elif choices is not None and not isinstance(choices, list):
        logger.warning("Dropping stream line with malformed 'choices'")
        return None
    return event


def iter_events(lines: list[str]) -> Iterator[StreamEvent]:
    """Decode a batch of complete lines, skipping non-events."""
    for line in lines:
        event = parse_event_line(line)
        if event is not None:
            yield event
