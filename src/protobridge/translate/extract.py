"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Inbound response extraction.

A decoded response envelope carries either a tool call (field 1) or a chat
response (field 2). Missing or malformed pieces resolve to None; extraction
never raises.
"""

from __future__ import annotations

from ..types import ExtractedContent, ToolInvocation
from ..wire.fields import DecodedMessage, decode_message
from ..wire.schema import (
    ChatResponseField,
    McpNestedToolField,
    McpParamsField,
    ResponseEnvelope,
    ThinkingField,
    ToolCallField,
)

def _nested_tool(tool_call: DecodedMessage) -> DecodedMessage | None:
    """Resolve `mcp_params.tools_list[0]` when present."""
    params = tool_call.get_message(ToolCallField.MCP_PARAMS)
    if params is None:
        return None
    tools = params.get_messages(McpParamsField.TOOLS_LIST)
    return tools[0] if tools else None


def extract_tool_call(tool_call: DecodedMessage) -> ToolInvocation | None:
    """
    Read one tool call chunk.

    The id keeps only its first line. Arguments come from the nested tool
    params when present (whose name also overrides the top-level name), then
    from the flat raw-args field; otherwise they stay empty. A call without
    both id and name is dropped.
    """
    full_id = tool_call.get_text(ToolCallField.ID) or ""
    call_id = full_id.split("\n", 1)[0]
    name = tool_call.get_text(ToolCallField.NAME) or ""
    is_last = bool(tool_call.get_bool(ToolCallField.IS_LAST))
    arguments = ""

    nested = _nested_tool(tool_call)
    if nested is not None:
        nested_name = nested.get_text(McpNestedToolField.NAME)
        if nested_name is not None:
            name = nested_name
        arguments = nested.get_text(McpNestedToolField.PARAMS) or ""

    if not arguments:
        arguments = tool_call.get_text(ToolCallField.RAW_ARGS) or ""

    if not call_id or not name:
        return None
    return ToolInvocation(
        id=call_id,
        name=name,
        arguments=arguments,
        is_last=is_last,
    )


def extract_text_and_thinking(response: DecodedMessage) -> tuple[str | None, str | None]:
    text = response.get_text(ChatResponseField.TEXT)
    thinking = None
    thinking_msg = response.get_message(ChatResponseField.THINKING)
    if thinking_msg is not None:
        thinking = thinking_msg.get_text(ThinkingField.TEXT)
    return text, thinking


def extract_message(envelope: DecodedMessage) -> ExtractedContent:
    """Extract content from an already decoded response envelope."""
    tool_call_msg = envelope.get_message(ResponseEnvelope.TOOL_CALL)
    if tool_call_msg is not None:
        tool_call = extract_tool_call(tool_call_msg)
        if tool_call is not None:
            return ExtractedContent(tool_call=tool_call)

    response_msg = envelope.get_message(ResponseEnvelope.RESPONSE)
    if response_msg is not None:
        text, thinking = extract_text_and_thinking(response_msg)
        if text or thinking:
            return ExtractedContent(text=text, thinking=thinking)

    return ExtractedContent()


def extract_content(payload: bytes) -> ExtractedContent:
    """Decode one response payload and extract text, thinking or a tool call."""
    return extract_message(decode_message(payload))
