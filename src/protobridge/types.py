"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module defines the provider-agnostic types that flow through the bridge:
conversation turns going out, extracted content and stream events coming in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

from .wire.schema import Role

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]

TurnRole = Literal["user", "assistant"]


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Result of one earlier tool call, attached to the following turn."""

    tool_call_id: str = ""
    name: str = ""
    index: int = 0
    raw_args: str = "{}"


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    """
    Tool call returned by the backend.

    Arguments stay a JSON string; chunks of one call share an `id` and the
    last chunk has `is_last` set. A chunk without arguments keeps `""` so it
    can be told apart from one that sent `"{}"`.
    """

    id: str
    name: str
    arguments: str = ""
    is_last: bool = False

    def to_openai(self) -> dict[str, Any]:
        """Whole call; missing arguments render as `"{}"`."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments or "{}"},
        }

    def to_delta(self, index: int) -> dict[str, Any]:
        """Streaming fragment; arguments are sent as received."""
        return {
            "index": index,
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True, slots=True)
class Turn:
    """Normalized conversation turn produced from a generic chat request."""

    role: TurnRole
    content: str = ""
    tool_results: list[ToolResult] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ChatTurn:
    """Turn as it is written to the wire, with its generated message id."""

    role: Role
    content: str
    message_id: str
    is_last: bool
    has_tools: bool
    tool_results: list[ToolResult] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ToolDeclaration:
    """Tool offered to the backend."""

    name: str
    description: str = ""
    parameters: JSONObject = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ExtractedContent:
    """Content pulled from one decoded response message. All fields optional."""

    text: str | None = None
    thinking: str | None = None
    tool_call: ToolInvocation | None = None

    @property
    def empty(self) -> bool:
        return self.text is None and self.thinking is None and self.tool_call is None


@dataclass(frozen=True, slots=True)
class UpstreamError:
    """Backend error translated into a caller-facing status and error type."""

    status: int
    error_type: str
    message: str
    code: str = "unknown"

    def to_body(self) -> dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }


@dataclass(frozen=True, slots=True)
class TextEvent:
    """Stream event carrying assistant text."""

    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True, slots=True)
class ThinkingEvent:
    """Stream event carrying reasoning text."""

    text: str
    type: Literal["thinking"] = "thinking"


@dataclass(frozen=True, slots=True)
class ToolCallEvent:
    """Stream event carrying one tool-call chunk."""

    tool_call: ToolInvocation
    type: Literal["tool_call"] = "tool_call"


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """Stream event carrying a backend error."""

    error: UpstreamError
    type: Literal["error"] = "error"

    @property
    def status(self) -> int:
        return self.error.status

    @property
    def error_type(self) -> str:
        return self.error.error_type

    @property
    def message(self) -> str:
        return self.error.message


StreamEvent: TypeAlias = TextEvent | ThinkingEvent | ToolCallEvent | ErrorEvent


@dataclass(frozen=True, slots=True)
class GatewayResponse:
    """
    Transport-neutral HTTP response produced by the transformer.

    `body` is a JSON-ready dict for `application/json` responses and SSE text
    for `text/event-stream` responses.
    """

    status: int
    body: dict[str, Any] | str
    media_type: str = "application/json"
    headers: dict[str, str] = field(default_factory=dict)
