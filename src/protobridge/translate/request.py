"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Outbound chat request builder.

Composes one `RequestEnvelope` message from ordered turns, tool declarations
and an optional reasoning-effort hint, then frames it for an HTTP POST body.
Most numbered fields below carry fixed values the backend requires to accept
the request; they are independent of the conversation content.
"""

from __future__ import annotations

import json
import os
import platform
import sys
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from ..types import ChatTurn, ToolDeclaration, ToolResult, Turn
from ..wire.fields import encode_schema_field
from ..wire.frame import wrap_frame
from ..wire.schema import (
    UNIFIED_MODE_NAMES,
    ChatRequest,
    ConversationMessage,
    InstructionField,
    McpToolField,
    MessageIdField,
    MetadataField,
    ModelField,
    RequestEnvelope,
    Role,
    SettingField,
    SettingUnknown6Field,
    ThinkingLevel,
    ToolResultField,
    UnifiedMode,
)
from ..wire.varint import encode_varint

REQUEST_CONTENT_TYPE = "application/connect+proto"
SETTING_PATH = "cursor\\aisettings"
MCP_TOOL_SERVER = "custom"

IdFactory = Callable[[], str]


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class AgentMode:
    """
    Mode fields that must always be toggled together.

    The backend misbehaves when the agentic marker, supported-tools marker,
    unified mode and its display name disagree, so they are derived from a
    single flag here and nowhere else.
    """

    agentic: bool

    @property
    def is_agentic(self) -> int:
        return 1 if self.agentic else 0

    @property
    def unified_mode(self) -> UnifiedMode:
        return UnifiedMode.AGENT if self.agentic else UnifiedMode.CHAT

    @property
    def unified_mode_name(self) -> str:
        return UNIFIED_MODE_NAMES[self.unified_mode]

    @property
    def supported_tools(self) -> bytes | None:
        return encode_varint(1) if self.agentic else None

    @property
    def should_disable_tools(self) -> int:
        return 0 if self.agentic else 1


def thinking_level_for(reasoning_effort: str | None) -> ThinkingLevel:
    """Map a reasoning-effort hint onto the three-valued thinking level."""
    if reasoning_effort == "medium":
        return ThinkingLevel.MEDIUM
    if reasoning_effort == "high":
        return ThinkingLevel.HIGH
    return ThinkingLevel.UNSPECIFIED


def encode_tool_result(result: ToolResult) -> bytes:
    return b"".join(
        (
            encode_schema_field(ToolResultField.CALL_ID, result.tool_call_id or ""),
            encode_schema_field(ToolResultField.NAME, result.name or ""),
            encode_schema_field(ToolResultField.INDEX, result.index or 0),
            encode_schema_field(ToolResultField.RAW_ARGS, result.raw_args or "{}"),
        )
    )


def encode_conversation_message(turn: ChatTurn) -> bytes:
    mode = AgentMode(turn.has_tools)
    parts = [
        encode_schema_field(ConversationMessage.CONTENT, turn.content),
        encode_schema_field(ConversationMessage.ROLE, int(turn.role)),
        encode_schema_field(ConversationMessage.ID, turn.message_id),
    ]
    parts.extend(
        encode_schema_field(ConversationMessage.TOOL_RESULTS, encode_tool_result(result))
        for result in turn.tool_results
    )
    parts.append(encode_schema_field(ConversationMessage.IS_AGENTIC, mode.is_agentic))
    parts.append(
        encode_schema_field(ConversationMessage.UNIFIED_MODE, int(mode.unified_mode))
    )
    if turn.is_last and mode.supported_tools is not None:
        parts.append(
            encode_schema_field(ConversationMessage.SUPPORTED_TOOLS, mode.supported_tools)
        )
    return b"".join(parts)


def encode_instruction(text: str) -> bytes:
    return encode_schema_field(InstructionField.TEXT, text) if text else b""


def encode_model(model_name: str) -> bytes:
    return encode_schema_field(ModelField.NAME, model_name) + encode_schema_field(
        ModelField.EMPTY, b""
    )


def encode_setting() -> bytes:
    unknown6 = encode_schema_field(SettingUnknown6Field.FIELD_1, b"") + encode_schema_field(
        SettingUnknown6Field.FIELD_2, b""
    )
    return b"".join(
        (
            encode_schema_field(SettingField.PATH, SETTING_PATH),
            encode_schema_field(SettingField.UNKNOWN_3, b""),
            encode_schema_field(SettingField.UNKNOWN_6, unknown6),
            encode_schema_field(SettingField.UNKNOWN_8, 1),
            encode_schema_field(SettingField.UNKNOWN_9, 1),
        )
    )


def encode_metadata(now: datetime | None = None) -> bytes:
    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    try:
        cwd = os.getcwd()
    except OSError:
        cwd = "/"
    return b"".join(
        (
            encode_schema_field(MetadataField.PLATFORM, sys.platform or "linux"),
            encode_schema_field(MetadataField.ARCH, platform.machine() or "x64"),
            encode_schema_field(MetadataField.VERSION, f"v{platform.python_version()}"),
            encode_schema_field(MetadataField.CWD, cwd or "/"),
            encode_schema_field(
                MetadataField.TIMESTAMP,
                stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            ),
        )
    )


def encode_message_id(message_id: str, role: Role, summary_id: str | None = None) -> bytes:
    parts = [encode_schema_field(MessageIdField.ID, message_id)]
    if summary_id:
        parts.append(encode_schema_field(MessageIdField.SUMMARY, summary_id))
    parts.append(encode_schema_field(MessageIdField.ROLE, int(role)))
    return b"".join(parts)


def encode_mcp_tool(tool: ToolDeclaration) -> bytes:
    parts: list[bytes] = []
    if tool.name:
        parts.append(encode_schema_field(McpToolField.NAME, tool.name))
    if tool.description:
        parts.append(encode_schema_field(McpToolField.DESC, tool.description))
    if tool.parameters:
        parts.append(
            encode_schema_field(
                McpToolField.PARAMS,
                json.dumps(tool.parameters, separators=(",", ":"), ensure_ascii=False),
            )
        )
    parts.append(encode_schema_field(McpToolField.SERVER, MCP_TOOL_SERVER))
    return b"".join(parts)


def prepare_turns(
    turns: Sequence[Turn],
    *,
    has_tools: bool,
    id_factory: IdFactory = _new_id,
) -> list[ChatTurn]:
    """Assign fresh message ids and flag the final turn."""
    last = len(turns) - 1
    return [
        ChatTurn(
            role=Role.USER if turn.role == "user" else Role.ASSISTANT,
            content=turn.content,
            message_id=id_factory(),
            is_last=i == last,
            has_tools=has_tools,
            tool_results=list(turn.tool_results),
        )
        for i, turn in enumerate(turns)
    ]


def encode_request(
    turns: Sequence[Turn],
    model_name: str,
    tools: Sequence[ToolDeclaration] = (),
    reasoning_effort: str | None = None,
    *,
    id_factory: IdFactory = _new_id,
    now: datetime | None = None,
) -> bytes:
    """Encode the `ChatRequest` body (without the outer envelope)."""
    mode = AgentMode(len(tools) > 0)
    chat_turns = prepare_turns(turns, has_tools=mode.agentic, id_factory=id_factory)

    parts: list[bytes] = [
        encode_schema_field(ChatRequest.MESSAGES, encode_conversation_message(turn))
        for turn in chat_turns
    ]
    parts += [
        encode_schema_field(ChatRequest.UNKNOWN_2, 1),
        encode_schema_field(ChatRequest.INSTRUCTION, encode_instruction("")),
        encode_schema_field(ChatRequest.UNKNOWN_4, 1),
        encode_schema_field(ChatRequest.MODEL, encode_model(model_name)),
        encode_schema_field(ChatRequest.WEB_TOOL, ""),
        encode_schema_field(ChatRequest.UNKNOWN_13, 1),
        encode_schema_field(ChatRequest.SETTING, encode_setting()),
        encode_schema_field(ChatRequest.UNKNOWN_19, 1),
        encode_schema_field(ChatRequest.CONVERSATION_ID, id_factory()),
        encode_schema_field(ChatRequest.METADATA, encode_metadata(now)),
        encode_schema_field(ChatRequest.IS_AGENTIC, mode.is_agentic),
    ]
    if mode.supported_tools is not None:
        parts.append(encode_schema_field(ChatRequest.SUPPORTED_TOOLS, mode.supported_tools))
    parts += [
        encode_schema_field(
            ChatRequest.MESSAGE_IDS, encode_message_id(turn.message_id, turn.role)
        )
        for turn in chat_turns
    ]
    parts += [encode_schema_field(ChatRequest.MCP_TOOLS, encode_mcp_tool(tool)) for tool in tools]
    parts += [
        encode_schema_field(ChatRequest.LARGE_CONTEXT, 0),
        encode_schema_field(ChatRequest.UNKNOWN_38, 0),
        encode_schema_field(ChatRequest.UNIFIED_MODE, int(mode.unified_mode)),
        encode_schema_field(ChatRequest.UNKNOWN_47, ""),
        encode_schema_field(ChatRequest.SHOULD_DISABLE_TOOLS, mode.should_disable_tools),
        encode_schema_field(ChatRequest.THINKING_LEVEL, int(thinking_level_for(reasoning_effort))),
        encode_schema_field(ChatRequest.UNKNOWN_51, 0),
        encode_schema_field(ChatRequest.UNKNOWN_53, 1),
        encode_schema_field(ChatRequest.UNIFIED_MODE_NAME, mode.unified_mode_name),
    ]
    return b"".join(parts)


def build_chat_request(
    turns: Sequence[Turn],
    model_name: str,
    tools: Sequence[ToolDeclaration] = (),
    reasoning_effort: str | None = None,
    **kwargs,
) -> bytes:
    """Encode the request and wrap it in the top-level envelope field."""
    return encode_schema_field(
        RequestEnvelope.REQUEST,
        encode_request(turns, model_name, tools, reasoning_effort, **kwargs),
    )


def generate_request_body(
    turns: Sequence[Turn],
    model_name: str,
    tools: Sequence[ToolDeclaration] = (),
    reasoning_effort: str | None = None,
    **kwargs,
) -> bytes:
    """Framed request body ready for POST. Requests are never compressed."""
    return wrap_frame(
        build_chat_request(turns, model_name, tools, reasoning_effort, **kwargs),
        compress=False,
    )
