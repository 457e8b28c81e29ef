"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Schema-less protobuf wire codec and frame envelope.
"""

from .fields import (
    DecodedMessage,
    Field,
    FieldValue,
    decode_field,
    decode_message,
    encode_field,
    encode_schema_field,
    read_field,
)
from .frame import (
    FRAME_HEADER_SIZE,
    Frame,
    decompress_payload,
    iter_frames,
    parse_frame,
    read_header,
    wrap_frame,
)
from .results import Decoded, DecodeFailure
from .schema import CompressFlag, Role, ThinkingLevel, UnifiedMode, WireType
from .varint import decode_varint, encode_varint, read_varint

__all__ = [
    "WireType",
    "Role",
    "UnifiedMode",
    "ThinkingLevel",
    "CompressFlag",
    "Decoded",
    "DecodeFailure",
    "encode_varint",
    "decode_varint",
    "read_varint",
    "Field",
    "FieldValue",
    "DecodedMessage",
    "encode_field",
    "encode_schema_field",
    "read_field",
    "decode_field",
    "decode_message",
    "FRAME_HEADER_SIZE",
    "Frame",
    "read_header",
    "wrap_frame",
    "parse_frame",
    "decompress_payload",
    "iter_frames",
]
