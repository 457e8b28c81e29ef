"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Incremental frame parser for streamed responses.

Bytes arrive in arbitrary chunks; the parser keeps the unconsumed residue in
a carry buffer and emits events only for frames that are complete. One
parser instance belongs to one response stream and is not safe for
concurrent `push` calls.
"""

from __future__ import annotations

from ..types import (
    ErrorEvent,
    StreamEvent,
    TextEvent,
    ThinkingEvent,
    ToolCallEvent,
)
from ..wire.frame import FRAME_HEADER_SIZE, decompress_payload, read_header
from .extract import extract_content
from .upstream import parse_upstream_error


class CarryBuffer:
    """
    Owned byte arena with a read cursor.

    Consumed bytes stay in place until `compact()` drops them, so frame
    boundaries can be found without copying the residue on every read.
    """

    __slots__ = ("_data", "_cursor")

    def __init__(self) -> None:
        self._data = bytearray()
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._data) - self._cursor

    def append(self, chunk: bytes) -> None:
        self._data += chunk

    def peek_header(self) -> tuple[int, int] | None:
        """Read `(flags, length)` at the cursor without consuming anything."""
        return read_header(self._data, self._cursor)

    def take(self, size: int) -> bytes:
        """Return and consume the next `size` bytes."""
        end = self._cursor + size
        out = bytes(self._data[self._cursor : end])
        self._cursor = end
        return out

    def compact(self) -> None:
        """Drop the already-consumed prefix."""
        if self._cursor:
            del self._data[: self._cursor]
            self._cursor = 0

    def clear(self) -> None:
        self._data.clear()
        self._cursor = 0


def payload_events(payload: bytes) -> list[StreamEvent]:
    """Classify one decompressed frame payload into stream events."""
    error = parse_upstream_error(payload)
    if error is not None:
        return [ErrorEvent(error)]

    content = extract_content(payload)
    events: list[StreamEvent] = []
    if content.tool_call is not None:
        events.append(ToolCallEvent(content.tool_call))
    if content.text:
        events.append(TextEvent(content.text))
    if content.thinking:
        events.append(ThinkingEvent(content.thinking))
    return events


class StreamingFrameParser:
    """
    Reassemble frames from chunks and emit content events.

    Usage::

        parser = StreamingFrameParser()
        for chunk in response_chunks:
            for event in parser.push(chunk):
                handle(event)
        if parser.has_partial():
            ...  # stream ended inside a frame
    """

    def __init__(self) -> None:
        self._buffer = CarryBuffer()

    def push(self, chunk: bytes) -> list[StreamEvent]:
        """Feed one chunk; return events for every frame it completed, in order."""
        self._buffer.append(chunk)
        events: list[StreamEvent] = []

        try:
            while True:
                header = self._buffer.peek_header()
                if header is None:
                    break
                flags, length = header
                if len(self._buffer) < FRAME_HEADER_SIZE + length:
                    break

                frame = self._buffer.take(FRAME_HEADER_SIZE + length)
                payload = decompress_payload(frame[FRAME_HEADER_SIZE:], flags)
                frame_events = payload_events(payload)
                events.extend(frame_events)
                if any(isinstance(event, ErrorEvent) for event in frame_events):
                    break
        finally:
            self._buffer.compact()

        return events

    def has_partial(self) -> bool:
        """True when unconsumed bytes remain (a truncated frame at stream end)."""
        return len(self._buffer) > 0

    def reset(self) -> None:
        self._buffer.clear()
