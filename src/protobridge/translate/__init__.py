"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request building, response extraction and chat-completion rendering.
"""

from .conversation import (
    ChatCompletionRequest,
    ChatMessage,
    content_text,
    convert_messages,
    parse_tool_declarations,
)
from .extract import extract_content, extract_message, extract_tool_call
from .request import (
    REQUEST_CONTENT_TYPE,
    AgentMode,
    build_chat_request,
    encode_request,
    generate_request_body,
    thinking_level_for,
)
from .stream import StreamingFrameParser, payload_events
from .transform import (
    SSE_DONE,
    TRUNCATED_STREAM_ERROR,
    CompletionStream,
    ToolCallAccumulator,
    build_completion,
    connection_error,
    connection_error_response,
    error_response,
    http_error_response,
    transform_to_completion,
    transform_to_sse,
)
from .upstream import map_upstream_error, parse_upstream_error

__all__ = [
    "AgentMode",
    "ChatCompletionRequest",
    "ChatMessage",
    "CompletionStream",
    "REQUEST_CONTENT_TYPE",
    "SSE_DONE",
    "TRUNCATED_STREAM_ERROR",
    "StreamingFrameParser",
    "ToolCallAccumulator",
    "build_chat_request",
    "build_completion",
    "connection_error",
    "connection_error_response",
    "content_text",
    "convert_messages",
    "encode_request",
    "error_response",
    "extract_content",
    "extract_message",
    "extract_tool_call",
    "generate_request_body",
    "http_error_response",
    "map_upstream_error",
    "parse_tool_declarations",
    "parse_upstream_error",
    "payload_events",
    "thinking_level_for",
    "transform_to_completion",
    "transform_to_sse",
]
