"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Generic chat-completion request body -> ordered conversation turns.

The backend only knows user and assistant turns, so system prompts become
prefixed user turns and tool outputs are accumulated and attached to the
next user/assistant turn.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..types import ToolDeclaration, ToolResult, Turn

logger = logging.getLogger("protobridge.translate")

SYSTEM_PREFIX = "[System Instructions]\n"


class ContentPart(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "text"
    text: str | None = None


class FunctionCall(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    arguments: str = "{}"


class ToolCallModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    type: str = "function"
    function: FunctionCall = Field(default_factory=FunctionCall)


class ChatMessage(BaseModel):
    """One message of a chat-completions request body."""

    model_config = ConfigDict(extra="allow")

    role: str
    content: str | list[ContentPart] | None = None
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolCallModel] | None = None


class ChatCompletionRequest(BaseModel):
    """Chat-completions request body accepted by the gateway."""

    model_config = ConfigDict(extra="allow")

    model: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    tools: list[dict[str, Any]] | None = None
    reasoning_effort: str | None = None
    stream: bool = False


def content_text(content: str | list[ContentPart] | None) -> str:
    """Flatten string or text-part content into plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return "".join(part.text for part in content if part.type == "text" and part.text)


def convert_messages(messages: list[ChatMessage] | list[dict[str, Any]]) -> list[Turn]:
    """Translate chat messages into backend turns, attaching pending tool results."""
    rows = [
        message if isinstance(message, ChatMessage) else ChatMessage.model_validate(message)
        for message in messages
    ]
    turns: list[Turn] = []
    pending: list[ToolResult] = []

    for message in rows:
        text = content_text(message.content)

        if message.role == "system":
            turns.append(Turn(role="user", content=f"{SYSTEM_PREFIX}{text}"))
            continue

        if message.role == "tool":
            pending.append(
                ToolResult(
                    tool_call_id=message.tool_call_id or "",
                    name=message.name or "tool",
                    index=len(pending),
                    raw_args=text,
                )
            )
            continue

        if message.role in ("user", "assistant"):
            if message.role == "assistant" and message.tool_calls:
                # The backend only sees tool calls through the results that
                # follow them; the turn itself is still kept.
                turns.append(Turn(role="assistant", content=text, tool_results=pending))
                pending = []
            elif text or pending:
                turns.append(Turn(role=message.role, content=text, tool_results=pending))  # type: ignore[arg-type]
                pending = []
            continue

        logger.debug("Unknown message role %r, skipping", message.role)

    return turns


def parse_tool_declarations(tools: list[dict[str, Any]] | None) -> list[ToolDeclaration]:
    """Accept OpenAI `{"function": {...}}` or Anthropic `input_schema` tool shapes."""
    out: list[ToolDeclaration] = []
    for tool in tools or []:
        if not isinstance(tool, dict):
            continue
        function = tool.get("function") if isinstance(tool.get("function"), dict) else {}
        name = function.get("name") or tool.get("name") or ""
        description = function.get("description") or tool.get("description") or ""
        parameters = function.get("parameters") or tool.get("input_schema") or {}
        out.append(
            ToolDeclaration(
                name=name if isinstance(name, str) else "",
                description=description if isinstance(description, str) else "",
                parameters=parameters if isinstance(parameters, dict) else {},
            )
        )
    return out
