from __future__ import annotations

import json

from protobridge.translate import StreamingFrameParser
from protobridge.types import ErrorEvent, TextEvent, ThinkingEvent, ToolCallEvent
from protobridge.wire import encode_schema_field, wrap_frame
from protobridge.wire.schema import (
    ChatResponseField,
    ResponseEnvelope,
    ThinkingField,
    ToolCallField,
)


def text_frame(text: str, compress: bool = False) -> bytes:
    body = encode_schema_field(ChatResponseField.TEXT, text)
    return wrap_frame(encode_schema_field(ResponseEnvelope.RESPONSE, body), compress=compress)


def thinking_frame(text: str) -> bytes:
    body = encode_schema_field(ChatResponseField.THINKING, encode_schema_field(ThinkingField.TEXT, text))
    return wrap_frame(encode_schema_field(ResponseEnvelope.RESPONSE, body))


def tool_frame(call_id: str, name: str, args: str, is_last: bool) -> bytes:
    body = (
        encode_schema_field(ToolCallField.ID, call_id)
        + encode_schema_field(ToolCallField.NAME, name)
        + encode_schema_field(ToolCallField.RAW_ARGS, args)
        + encode_schema_field(ToolCallField.IS_LAST, int(is_last))
    )
    return wrap_frame(encode_schema_field(ResponseEnvelope.TOOL_CALL, body))


def error_frame(code: str = "resource_exhausted", message: str = "Rate limit exceeded") -> bytes:
    return wrap_frame(json.dumps({"error": {"code": code, "message": message}}).encode("utf-8"))


def test_partial_frame_waits_for_remainder():
    frame = text_frame("Hello")
    parser = StreamingFrameParser()

    assert parser.push(frame[:3]) == []
    assert parser.has_partial() is True

    events = parser.push(frame[3:])
    assert events == [TextEvent("Hello")]
    assert parser.has_partial() is False


def test_header_only_prefix_consumes_nothing():
    frame = text_frame("Hello")
    parser = StreamingFrameParser()
    assert parser.push(frame[:7]) == []
    assert parser.push(frame[7:]) == [TextEvent("Hello")]


def test_chunk_boundaries_do_not_change_events():
    stream = (
        thinking_frame("plan")
        + text_frame("Hel", compress=True)
        + text_frame("lo")
        + tool_frame("call_1", "ls", '{"p":', False)
        + tool_frame("call_1", "ls", '"."}', True)
    )
    expected = StreamingFrameParser().push(stream)
    assert len(expected) == 5

    for size in (1, 2, 3, 5, 7, 64):
        parser = StreamingFrameParser()
        events = []
        for start in range(0, len(stream), size):
            events.extend(parser.push(stream[start : start + size]))
        assert events == expected
        assert parser.has_partial() is False


def test_thinking_only_frame_emits_only_thinking():
    events = StreamingFrameParser().push(thinking_frame("deep thought"))
    assert events == [ThinkingEvent("deep thought")]


def test_tool_call_event_comes_from_tool_frame():
    [event] = StreamingFrameParser().push(tool_frame("call_1\nextra", "ls", "{}", True))
    assert isinstance(event, ToolCallEvent)
    assert event.tool_call.id == "call_1"
    assert event.tool_call.is_last is True


def test_error_frame_stops_the_push():
    parser = StreamingFrameParser()
    events = parser.push(text_frame("before") + error_frame() + text_frame("after"))
    assert events[0] == TextEvent("before")
    assert isinstance(events[1], ErrorEvent)
    assert events[1].status == 429
    assert events[1].error_type == "rate_limit_error"
    assert len(events) == 2


def test_unknown_error_code_maps_to_api_error():
    [event] = StreamingFrameParser().push(error_frame(code="internal", message="boom"))
    assert event.status == 502
    assert event.error_type == "api_error"
    assert event.message == "boom"


def test_compressed_flag_on_json_payload_is_ignored():
    body = json.dumps({"error": {"code": "resource_exhausted", "message": "slow down"}}).encode()
    framed = bytes([0x01]) + len(body).to_bytes(4, "big") + body
    [event] = StreamingFrameParser().push(framed)
    assert isinstance(event, ErrorEvent)
    assert event.message == "slow down"


def test_undecodable_frames_are_skipped():
    garbage = bytes([0x01, 0, 0, 0, 4]) + b"\x00\x01\x02\x03"
    parser = StreamingFrameParser()
    assert parser.push(garbage + text_frame("ok")) == [TextEvent("ok")]


def test_reset_discards_partial_bytes():
    parser = StreamingFrameParser()
    parser.push(text_frame("x")[:4])
    parser.reset()
    assert parser.has_partial() is False


def test_deeply_nested_error_body_is_not_an_error():
    nested = b'{"error":' + b"[" * 100000 + b"]" * 100000 + b"}"
    parser = StreamingFrameParser()
    assert parser.push(text_frame("before") + wrap_frame(nested)) == [TextEvent("before")]
    assert parser.has_partial() is False
