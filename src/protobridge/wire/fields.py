"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Tagged-field codec and decoded message container.

Encoding writes `varint(field_number << 3 | wire_type)` followed by the value.
Decoding is fail-closed: a length-delimited or fixed-width value that would
run past the end of the buffer stops the decode instead of producing a
partial field, and nothing in this module raises on malformed input.
"""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass
from enum import IntEnum

from .results import Decoded, DecodeFailure
from .schema import WireType, expected_wire_type
from .varint import encode_varint, read_varint

FieldScalar = int | bytes

_FIXED_WIDTH = {WireType.FIXED32: 4, WireType.FIXED64: 8}
_FIXED_FORMAT = {WireType.FIXED32: "<I", WireType.FIXED64: "<Q"}


@dataclass(frozen=True, slots=True)
class Field:
    """One decoded field occurrence. `value` is None for unknown wire types."""

    number: int
    wire_type: int
    value: FieldScalar | None


@dataclass(frozen=True, slots=True)
class FieldValue:
    """Value half of a field occurrence stored inside `DecodedMessage`."""

    wire_type: int
    value: FieldScalar


def encode_field(
    field_number: int,
    wire_type: int,
    value: int | str | bytes | bytearray,
) -> bytes:
    """
    Encode one tagged field.

    VARINT values are integers (booleans become 0/1). LEN values accept text
    (UTF-8 encoded) or raw bytes. FIXED32/FIXED64 accept an integer packed
    little-endian, or bytes already of the right width.
    """
    tag = encode_varint((field_number << 3) | int(wire_type))

    if wire_type == WireType.VARINT:
        return tag + encode_varint(int(value))  # type: ignore[arg-type]

    if wire_type == WireType.LEN:
        if isinstance(value, str):
            data = value.encode("utf-8")
        elif isinstance(value, (bytes, bytearray)):
            data = bytes(value)
        else:
            data = b""
        return tag + encode_varint(len(data)) + data

    if wire_type in _FIXED_WIDTH:
        width = _FIXED_WIDTH[WireType(wire_type)]
        if isinstance(value, (bytes, bytearray)):
            data = bytes(value)[:width].ljust(width, b"\x00")
        else:
            mask = (1 << (width * 8)) - 1
            data = struct.pack(_FIXED_FORMAT[WireType(wire_type)], int(value) & mask)
        return tag + data

    return b""


def encode_schema_field(field: IntEnum, value: int | str | bytes | bytearray) -> bytes:
    """Encode a schema field using the wire type recorded for it."""
    return encode_field(int(field), expected_wire_type(field), value)


def read_field(buffer: bytes, offset: int) -> Decoded[Field] | DecodeFailure:
    """Decode one field at `offset` with an explicit success/failure result."""
    if offset >= len(buffer):
        return DecodeFailure("incomplete", offset)

    tag_step = read_varint(buffer, offset)
    if isinstance(tag_step, DecodeFailure):
        return tag_step

    field_number = tag_step.value >> 3
    wire_type = tag_step.value & 0x07
    pos = tag_step.offset

    if field_number == 0:
        return DecodeFailure("invalid_tag", offset)

    if wire_type == WireType.VARINT:
        value_step = read_varint(buffer, pos)
        if isinstance(value_step, DecodeFailure):
            return DecodeFailure("truncated", offset)
        return Decoded(Field(field_number, wire_type, value_step.value), value_step.offset)

    if wire_type == WireType.LEN:
        length_step = read_varint(buffer, pos)
        if isinstance(length_step, DecodeFailure):
            return DecodeFailure("truncated", offset)
        start = length_step.offset
        end = start + length_step.value
        if end > len(buffer):
            return DecodeFailure("truncated", offset)
        return Decoded(Field(field_number, wire_type, bytes(buffer[start:end])), end)

    if wire_type in _FIXED_WIDTH:
        end = pos + _FIXED_WIDTH[WireType(wire_type)]
        if end > len(buffer):
            return DecodeFailure("truncated", offset)
        return Decoded(Field(field_number, wire_type, bytes(buffer[pos:end])), end)

    # Group wire types (3/4) and reserved values carry no length information.
    return Decoded(Field(field_number, wire_type, None), pos)


def decode_field(buffer: bytes, offset: int = 0) -> tuple[Field | None, int]:
    """
    Decode one field and return `(field, new_offset)`.

    On any failure the result is `(None, len(buffer))`, an end sentinel that
    tells loops to stop without reading further.
    """
    step = read_field(buffer, offset)
    if isinstance(step, DecodeFailure):
        return None, len(buffer)
    return step.value, step.offset


class DecodedMessage:
    """
    Ordered multimap of field number to decoded occurrences.

    Repeated occurrences are kept in arrival order. Use `get_optional` for
    fields that are singular on the wire and `get_repeated` for lists; the
    typed getters additionally check the wire type and decode the payload.
    """

    __slots__ = ("_fields", "failure")

    def __init__(self) -> None:
        self._fields: dict[int, list[FieldValue]] = {}
        self.failure: DecodeFailure | None = None

    def add(self, field: Field) -> None:
        if field.value is None:
            return
        self._fields.setdefault(field.number, []).append(
            FieldValue(field.wire_type, field.value)
        )

    @property
    def truncated(self) -> bool:
        """True when decoding stopped at malformed bytes rather than clean end."""
        return self.failure is not None

    def __contains__(self, field_number: object) -> bool:
        return isinstance(field_number, int) and field_number in self._fields

    def __iter__(self) -> Iterator[int]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def field_numbers(self) -> list[int]:
        return list(self._fields)

    def get_optional(self, field_number: int) -> FieldValue | None:
        """First occurrence of a field, or None."""
        rows = self._fields.get(int(field_number))
        return rows[0] if rows else None

    def get_repeated(self, field_number: int) -> list[FieldValue]:
        """All occurrences of a field in arrival order."""
        return list(self._fields.get(int(field_number), ()))

    def _first_of(self, field_number: int, wire_type: WireType) -> FieldValue | None:
        if isinstance(field_number, IntEnum) and expected_wire_type(field_number) != wire_type:
            return None
        row = self.get_optional(field_number)
        if row is None or row.wire_type != wire_type:
            return None
        return row

    def get_bytes(self, field_number: int) -> bytes | None:
        row = self._first_of(field_number, WireType.LEN)
        return row.value if row is not None else None  # type: ignore[return-value]

    def get_text(self, field_number: int) -> str | None:
        raw = self.get_bytes(field_number)
        if raw is None:
            return None
        return raw.decode("utf-8", errors="replace")

    def get_int(self, field_number: int) -> int | None:
        row = self._first_of(field_number, WireType.VARINT)
        return row.value if row is not None else None  # type: ignore[return-value]

    def get_bool(self, field_number: int) -> bool | None:
        value = self.get_int(field_number)
        return None if value is None else value != 0

    def get_message(self, field_number: int) -> "DecodedMessage | None":
        """Decode the first LEN occurrence of a field as a nested message."""
        raw = self.get_bytes(field_number)
        if raw is None:
            return None
        return decode_message(raw)

    def get_messages(self, field_number: int) -> list["DecodedMessage"]:
        return [
            decode_message(row.value)  # type: ignore[arg-type]
            for row in self.get_repeated(field_number)
            if row.wire_type == WireType.LEN
        ]

    def to_dict(self) -> dict[int, list[FieldValue]]:
        return {number: list(rows) for number, rows in self._fields.items()}

    def __repr__(self) -> str:
        return f"DecodedMessage(fields={sorted(self._fields)})"


def decode_message(buffer: bytes) -> DecodedMessage:
    """
    Decode every field in `buffer`.

    Never raises. A malformed tail truncates the result: fields before the
    failure are kept, the failing field and everything after it are dropped.
    """
    message = DecodedMessage()
    pos = 0
    end = len(buffer)

    while pos < end:
        step = read_field(buffer, pos)
        if isinstance(step, DecodeFailure):
            message.failure = step
            break
        if step.value.value is None:
            # Unknown wire type: the value length is unknowable, stop here.
            message.failure = DecodeFailure("unknown_wire_type", pos)
            break
        message.add(step.value)
        pos = step.offset

    return message
