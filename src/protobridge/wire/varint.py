"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Base-128 varint codec.

Values are treated as unsigned 32-bit integers. Decoding reads at most five
bytes; a varint whose fifth byte still carries the continuation bit is
truncated to what was read rather than rejected.
"""

from __future__ import annotations

from .results import Decoded, DecodeFailure

MAX_VARINT_BYTES = 5
UINT32_MASK = 0xFFFFFFFF


def encode_varint(value: int) -> bytes:
    """Encode one unsigned integer as little-endian 7-bit groups."""
    val = value & UINT32_MASK
    out = bytearray()
    while val >= 0x80:
        out.append((val & 0x7F) | 0x80)
        val >>= 7
    out.append(val)
    return bytes(out)


def read_varint(buffer: bytes, offset: int) -> Decoded[int] | DecodeFailure:
    """Decode one varint at `offset`, reporting an unterminated tail as incomplete."""
    result = 0
    shift = 0
    pos = offset
    end = len(buffer)

    while pos < end and pos - offset < MAX_VARINT_BYTES:
        byte = buffer[pos]
        result |= (byte & 0x7F) << shift
        pos += 1
        if not byte & 0x80:
            return Decoded(result & UINT32_MASK, pos)
        shift += 7

    if pos - offset == MAX_VARINT_BYTES:
        # TODO: confirm with captured traffic whether 64-bit varints ever
        # appear upstream; until then the 32-bit cap is kept as-is.
        return Decoded(result & UINT32_MASK, pos)
    return DecodeFailure("incomplete", offset)


def decode_varint(buffer: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode one varint and return `(value, new_offset)`.

    When the buffer ends before a terminating byte the offset is returned
    unchanged (with value 0); callers treat an unmoved offset as incomplete.
    """
    step = read_varint(buffer, offset)
    if isinstance(step, DecodeFailure):
        return 0, offset
    return step.value, step.offset

