"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Length-prefixed frame envelope.

Layout: byte 0 is the flag byte (0 = plain, 1/2/3 = gzip), bytes 1-4 are the
big-endian payload length, and the payload follows. A payload that starts
with `{` is a JSON error body and is never decompressed, even when the flag
byte claims compression.
"""

from __future__ import annotations

import gzip
import logging
import struct
import zlib
from collections.abc import Iterator
from dataclasses import dataclass

from .schema import COMPRESSED_FLAGS, CompressFlag

logger = logging.getLogger("protobridge.wire")

FRAME_HEADER_SIZE = 5
_HEADER = struct.Struct(">BI")
_JSON_OPEN = 0x7B


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One complete frame.

    Attributes:
        flags: Flag byte as received.
        length: Declared payload length (bytes on the wire).
        payload: Payload after any decompression.
        consumed: Total bytes of the input the frame occupied.
    """

    flags: int
    length: int
    payload: bytes
    consumed: int


def read_header(buffer: bytes | bytearray | memoryview, offset: int = 0) -> tuple[int, int] | None:
    """Return `(flags, length)` from the 5-byte header at `offset`, or None if short."""
    if len(buffer) - offset < FRAME_HEADER_SIZE:
        return None
    flags, length = _HEADER.unpack_from(buffer, offset)
    return flags, length


def looks_like_json(payload: bytes) -> bool:
    return len(payload) > 0 and payload[0] == _JSON_OPEN


def _gunzip(payload: bytes) -> bytes | None:
    try:
        return gzip.decompress(payload)
    except (OSError, EOFError, zlib.error) as e:
        logger.debug("gzip decompression failed: %s", e)
        return None


def wrap_frame(payload: bytes, compress: bool = False) -> bytes:
    """Wrap `payload` in a frame, gzip-compressing it first when asked."""
    body = bytes(payload)
    flags = CompressFlag.NONE
    if compress:
        body = gzip.compress(body)
        flags = CompressFlag.GZIP
    return _HEADER.pack(int(flags), len(body)) + body


def decompress_payload(payload: bytes, flags: int) -> bytes:
    """
    Apply the frame decompression rule to one payload.

    JSON-looking payloads and uncompressed flags pass through untouched; a
    compressed payload that fails to inflate yields empty bytes.
    """
    if looks_like_json(payload) or flags not in COMPRESSED_FLAGS:
        return bytes(payload)
    inflated = _gunzip(payload)
    return inflated if inflated is not None else b""


def parse_frame(buffer: bytes | bytearray | memoryview, offset: int = 0) -> Frame | None:
    """
    Parse the frame starting at `offset`.

    Returns None when fewer than `5 + length` bytes are available. When a
    compressed payload cannot be inflated the raw bytes are returned instead.
    """
    header = read_header(buffer, offset)
    if header is None:
        return None
    flags, length = header
    start = offset + FRAME_HEADER_SIZE
    end = start + length
    if len(buffer) < end:
        return None

    payload = bytes(buffer[start:end])
    if flags in COMPRESSED_FLAGS and not looks_like_json(payload):
        inflated = _gunzip(payload)
        if inflated is not None:
            payload = inflated

    return Frame(flags=flags, length=length, payload=payload, consumed=FRAME_HEADER_SIZE + length)


def iter_frames(buffer: bytes) -> Iterator[Frame]:
    """Yield every complete frame in `buffer`; a trailing partial frame is ignored."""
    offset = 0
    while offset < len(buffer):
        frame = parse_frame(buffer, offset)
        if frame is None:
            return
        offset += frame.consumed
        yield frame
