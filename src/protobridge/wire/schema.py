"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Field-number tables for the chat protocol messages.

There is no compiled schema: each message type is an `IntEnum` of field
numbers, and `FIELD_WIRE_TYPES` maps every member to the wire type the
backend uses for it. Typed accessors on `DecodedMessage` consult this table so
that a field present with an unexpected wire type reads as absent.
"""

from __future__ import annotations

from enum import IntEnum


class WireType(IntEnum):
    VARINT = 0
    FIXED64 = 1
    LEN = 2
    FIXED32 = 5


class Role(IntEnum):
    USER = 1
    ASSISTANT = 2


class UnifiedMode(IntEnum):
    CHAT = 1
    AGENT = 2


class ThinkingLevel(IntEnum):
    UNSPECIFIED = 0
    MEDIUM = 1
    HIGH = 2


class CompressFlag(IntEnum):
    """Frame flag byte values. Every non-zero value means gzip."""

    NONE = 0x00
    GZIP = 0x01
    GZIP_ALT = 0x02
    GZIP_BOTH = 0x03


COMPRESSED_FLAGS = frozenset(
    {CompressFlag.GZIP, CompressFlag.GZIP_ALT, CompressFlag.GZIP_BOTH}
)

UNIFIED_MODE_NAMES: dict[UnifiedMode, str] = {
    UnifiedMode.CHAT: "Ask",
    UnifiedMode.AGENT: "Agent",
}


# ---------------------------------------------------------------------------
# Outbound messages
# ---------------------------------------------------------------------------


class RequestEnvelope(IntEnum):
    REQUEST = 1


class ChatRequest(IntEnum):
    MESSAGES = 1
    UNKNOWN_2 = 2
    INSTRUCTION = 3
    UNKNOWN_4 = 4
    MODEL = 5
    WEB_TOOL = 8
    UNKNOWN_13 = 13
    SETTING = 15
    UNKNOWN_19 = 19
    CONVERSATION_ID = 23
    METADATA = 26
    IS_AGENTIC = 27
    SUPPORTED_TOOLS = 29
    MESSAGE_IDS = 30
    MCP_TOOLS = 34
    LARGE_CONTEXT = 35
    UNKNOWN_38 = 38
    UNIFIED_MODE = 46
    UNKNOWN_47 = 47
    SHOULD_DISABLE_TOOLS = 48
    THINKING_LEVEL = 49
    UNKNOWN_51 = 51
    UNKNOWN_53 = 53
    UNIFIED_MODE_NAME = 54


class ConversationMessage(IntEnum):
    CONTENT = 1
    ROLE = 2
    ID = 13
    TOOL_RESULTS = 18
    IS_AGENTIC = 29
    UNIFIED_MODE = 47
    SUPPORTED_TOOLS = 51


class ToolResultField(IntEnum):
    CALL_ID = 1
    NAME = 2
    INDEX = 3
    RAW_ARGS = 5
    RESULT = 8


class ModelField(IntEnum):
    NAME = 1
    EMPTY = 4


class InstructionField(IntEnum):
    TEXT = 1


class SettingField(IntEnum):
    PATH = 1
    UNKNOWN_3 = 3
    UNKNOWN_6 = 6
    UNKNOWN_8 = 8
    UNKNOWN_9 = 9


class SettingUnknown6Field(IntEnum):
    FIELD_1 = 1
    FIELD_2 = 2


class MetadataField(IntEnum):
    PLATFORM = 1
    ARCH = 2
    VERSION = 3
    CWD = 4
    TIMESTAMP = 5


class MessageIdField(IntEnum):
    ID = 1
    SUMMARY = 2
    ROLE = 3


class McpToolField(IntEnum):
    NAME = 1
    DESC = 2
    PARAMS = 3
    SERVER = 4


# ---------------------------------------------------------------------------
# Inbound messages
# ---------------------------------------------------------------------------


class ResponseEnvelope(IntEnum):
    TOOL_CALL = 1
    RESPONSE = 2


class ToolCallField(IntEnum):
    ID = 3
    NAME = 9
    RAW_ARGS = 10
    IS_LAST = 11
    MCP_PARAMS = 27


class McpParamsField(IntEnum):
    TOOLS_LIST = 1


class McpNestedToolField(IntEnum):
    NAME = 1
    PARAMS = 3


class ChatResponseField(IntEnum):
    TEXT = 1
    THINKING = 25


class ThinkingField(IntEnum):
    TEXT = 1


def _table(
    message: type[IntEnum],
    varints: tuple[IntEnum, ...] = (),
) -> dict[IntEnum, WireType]:
    # Everything not listed as a varint is length-delimited.
    return {
        member: (WireType.VARINT if member in varints else WireType.LEN)
        for member in message
    }


FIELD_WIRE_TYPES: dict[type[IntEnum], dict[IntEnum, WireType]] = {
    RequestEnvelope: _table(RequestEnvelope),
    ChatRequest: _table(
        ChatRequest,
        (
            ChatRequest.UNKNOWN_2,
            ChatRequest.UNKNOWN_4,
            ChatRequest.UNKNOWN_13,
            ChatRequest.UNKNOWN_19,
            ChatRequest.IS_AGENTIC,
            ChatRequest.LARGE_CONTEXT,
            ChatRequest.UNKNOWN_38,
            ChatRequest.UNIFIED_MODE,
            ChatRequest.SHOULD_DISABLE_TOOLS,
            ChatRequest.THINKING_LEVEL,
            ChatRequest.UNKNOWN_51,
            ChatRequest.UNKNOWN_53,
        ),
    ),
    ConversationMessage: _table(
        ConversationMessage,
        (
            ConversationMessage.ROLE,
            ConversationMessage.IS_AGENTIC,
            ConversationMessage.UNIFIED_MODE,
        ),
    ),
    ToolResultField: _table(ToolResultField, (ToolResultField.INDEX,)),
    ModelField: _table(ModelField),
    InstructionField: _table(InstructionField),
    SettingField: _table(
        SettingField, (SettingField.UNKNOWN_8, SettingField.UNKNOWN_9)
    ),
    SettingUnknown6Field: _table(SettingUnknown6Field),
    MetadataField: _table(MetadataField),
    MessageIdField: _table(MessageIdField, (MessageIdField.ROLE,)),
    McpToolField: _table(McpToolField),
    ResponseEnvelope: _table(ResponseEnvelope),
    ToolCallField: _table(ToolCallField, (ToolCallField.IS_LAST,)),
    McpParamsField: _table(McpParamsField),
    McpNestedToolField: _table(McpNestedToolField),
    ChatResponseField: _table(ChatResponseField),
    ThinkingField: _table(ThinkingField),
}


def expected_wire_type(field: IntEnum) -> WireType:
    """Return the wire type a schema field is encoded with."""
    return FIELD_WIRE_TYPES[type(field)][field]
