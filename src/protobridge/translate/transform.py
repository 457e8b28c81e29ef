"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Render extracted content as chat-completion responses.

Two shapes are produced: a single `chat.completion` object for buffered
responses, and `chat.completion.chunk` server-sent events for streams. Backend
JSON errors become typed error responses instead of completions.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

from ..types import (
    ErrorEvent,
    GatewayResponse,
    StreamEvent,
    TextEvent,
    ThinkingEvent,
    ToolCallEvent,
    ToolInvocation,
    UpstreamError,
)
from .stream import StreamingFrameParser

logger = logging.getLogger("protobridge.translate")

SSE_DONE = "data: [DONE]\n\n"
SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}
ZERO_USAGE = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
TRUNCATED_STREAM_ERROR = UpstreamError(
    502, "api_error", "Upstream stream ended inside a frame", "truncated"
)


def new_response_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def sse_data(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def error_response(error: UpstreamError) -> GatewayResponse:
    return GatewayResponse(status=error.status, body=error.to_body())


def http_error_response(status: int, text: str) -> GatewayResponse:
    """Upstream answered with a non-200 status."""
    return error_response(
        UpstreamError(status, "invalid_request_error", f"[{status}]: {text or 'Unknown error'}", "")
    )


def connection_error(message: str) -> UpstreamError:
    return UpstreamError(500, "connection_error", message, "")


def connection_error_response(message: str) -> GatewayResponse:
    return error_response(connection_error(message))


@dataclass(slots=True)
class _ToolCallState:
    call: ToolInvocation
    index: int
    arguments: str
    is_last: bool


class ToolCallAccumulator:
    """
    Merge tool-call chunks that share an id.

    Arguments concatenate in arrival order, and each call keeps the index of
    its first appearance.
    """

    def __init__(self) -> None:
        self._calls: dict[str, _ToolCallState] = {}
        self._finalized: list[str] = []

    def __len__(self) -> int:
        return len(self._calls)

    def add(self, call: ToolInvocation) -> tuple[int, bool]:
        """Record one chunk; return `(index, is_new_call)`."""
        state = self._calls.get(call.id)
        is_new = state is None
        if state is None:
            state = _ToolCallState(call, len(self._calls), call.arguments, call.is_last)
            self._calls[call.id] = state
        else:
            if call.arguments:
                state.arguments += call.arguments
            state.is_last = call.is_last
        if call.is_last and call.id not in self._finalized:
            self._finalized.append(call.id)
        return state.index, is_new

    def calls(self) -> list[ToolInvocation]:
        """Finished calls first, then any still open, as whole invocations."""
        order = self._finalized + [key for key in self._calls if key not in self._finalized]
        out = []
        for key in order:
            state = self._calls[key]
            out.append(
                ToolInvocation(
                    id=state.call.id,
                    name=state.call.name,
                    arguments=state.arguments,
                    is_last=state.is_last,
                )
            )
        return out


def collect_events(buffer: bytes) -> tuple[list[StreamEvent], bool]:
    """Parse a fully buffered body; return events and whether a partial frame trailed."""
    parser = StreamingFrameParser()
    events = parser.push(buffer)
    return events, parser.has_partial()


def build_completion(
    events: list[StreamEvent],
    model: str,
    *,
    response_id: str | None = None,
    created: int | None = None,
) -> dict[str, Any]:
    text_parts: list[str] = []
    thinking_parts: list[str] = []
    tools = ToolCallAccumulator()

    for event in events:
        if isinstance(event, TextEvent):
            text_parts.append(event.text)
        elif isinstance(event, ThinkingEvent):
            thinking_parts.append(event.text)
        elif isinstance(event, ToolCallEvent):
            tools.add(event.tool_call)

    message: dict[str, Any] = {"role": "assistant", "content": "".join(text_parts)}
    if thinking_parts:
        message["reasoning_content"] = "".join(thinking_parts)
    tool_calls = tools.calls()
    if tool_calls:
        message["tool_calls"] = [call.to_openai() for call in tool_calls]

    return {
        "id": response_id or new_response_id(),
        "object": "chat.completion",
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": "tool_calls" if tool_calls else "stop",
            }
        ],
        "usage": dict(ZERO_USAGE),
    }


def transform_to_completion(buffer: bytes, model: str) -> GatewayResponse:
    """Buffered body -> one completion object, or the first backend error."""
    events, partial = collect_events(buffer)
    for event in events:
        if isinstance(event, ErrorEvent):
            return error_response(event.error)
    if partial:
        logger.warning("Response body ended inside a frame; trailing bytes ignored")
    return GatewayResponse(status=200, body=build_completion(events, model))


class CompletionStream:
    """
    Incremental renderer of stream events as `chat.completion.chunk` SSE lines.

    Owns one `StreamingFrameParser`. Once a backend error is seen it is
    recorded in `error` and further input is ignored; the caller decides
    whether to answer with a plain error response (nothing sent yet) or with
    `error_chunk()`.
    """

    def __init__(
        self,
        model: str,
        *,
        response_id: str | None = None,
        created: int | None = None,
    ) -> None:
        self.model = model
        self.response_id = response_id or new_response_id()
        self.created = created if created is not None else int(time.time())
        self.error: UpstreamError | None = None
        self._parser = StreamingFrameParser()
        self._tools = ToolCallAccumulator()
        self._role_sent = False

    @property
    def truncated(self) -> bool:
        return self._parser.has_partial()

    def _chunk(self, delta: dict[str, Any], finish_reason: str | None = None) -> dict[str, Any]:
        return {
            "id": self.response_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }

    def _with_role(self, delta: dict[str, Any]) -> dict[str, Any]:
        if self._role_sent:
            return delta
        self._role_sent = True
        return {"role": "assistant", **delta}

    def render(self, event: StreamEvent) -> list[dict[str, Any]]:
        """Render one event as zero or more chunk payloads."""
        if isinstance(event, TextEvent):
            return [self._chunk(self._with_role({"content": event.text}))]
        if isinstance(event, ThinkingEvent):
            return [self._chunk(self._with_role({"reasoning_content": event.text}))]
        if isinstance(event, ToolCallEvent):
            call = event.tool_call
            index, is_new = self._tools.add(call)
            if not is_new and not call.arguments:
                return []
            out = []
            if not self._role_sent:
                out.append(self._chunk(self._with_role({"content": ""})))
            out.append(self._chunk({"tool_calls": [call.to_delta(index)]}))
            return out
        return []

    def feed(self, chunk: bytes) -> list[str]:
        """Push raw bytes; return SSE lines for the content events they completed."""
        if self.error is not None:
            return []
        lines: list[str] = []
        for event in self._parser.push(chunk):
            if isinstance(event, ErrorEvent):
                self.error = event.error
                break
            lines.extend(sse_data(payload) for payload in self.render(event))
        return lines

    def error_chunk(self, error: UpstreamError | None = None) -> str:
        target = error or self.error
        if target is None:
            return ""
        return sse_data(target.to_body())

    def finish(self) -> list[str]:
        """Closing lines: an empty role delta if nothing was sent, the final chunk, then `[DONE]`."""
        lines: list[str] = []
        if not self._role_sent:
            lines.append(sse_data(self._chunk(self._with_role({"content": ""}))))
        final = self._chunk({}, "tool_calls" if len(self._tools) else "stop")
        final["usage"] = dict(ZERO_USAGE)
        lines.append(sse_data(final))
        lines.append(SSE_DONE)
        return lines


def transform_to_sse(buffer: bytes, model: str) -> GatewayResponse:
    """Buffered body -> full SSE text, or a single error response on backend error."""
    stream = CompletionStream(model)
    lines = stream.feed(buffer)
    if stream.error is not None:
        return error_response(stream.error)
    if stream.truncated:
        logger.warning("Response body ended inside a frame; trailing bytes ignored")
    lines.extend(stream.finish())
    return GatewayResponse(
        status=200,
        body="".join(lines),
        media_type="text/event-stream",
        headers=dict(SSE_HEADERS),
    )
