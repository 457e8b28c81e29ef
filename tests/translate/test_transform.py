from __future__ import annotations

import json

from protobridge.translate import (
    SSE_DONE,
    CompletionStream,
    connection_error_response,
    http_error_response,
    map_upstream_error,
    transform_to_completion,
    transform_to_sse,
)
from protobridge.wire import encode_schema_field, wrap_frame
from protobridge.wire.schema import (
    ChatResponseField,
    ResponseEnvelope,
    ThinkingField,
    ToolCallField,
)

RATE_LIMIT_BODY = b'{"error":{"code":"resource_exhausted","message":"Rate limit exceeded"}}'


def text_frame(text: str) -> bytes:
    return wrap_frame(
        encode_schema_field(ResponseEnvelope.RESPONSE, encode_schema_field(ChatResponseField.TEXT, text))
    )


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


def sse_payloads(lines):
    out = []
    for line in lines:
        assert line.startswith("data: ") and line.endswith("\n\n")
        data = line[len("data: ") : -2]
        out.append(data if data == "[DONE]" else json.loads(data))
    return out


def test_rate_limit_body_maps_to_429():
    response = transform_to_completion(wrap_frame(RATE_LIMIT_BODY), "gpt-5")
    assert response.status == 429
    assert response.body["error"]["type"] == "rate_limit_error"
    assert response.body["error"]["message"] == "Rate limit exceeded"


def test_error_message_prefers_debug_details():
    error = map_upstream_error(
        {
            "error": {
                "code": "permission_denied",
                "message": "outer",
                "details": [{"debug": {"error": "ERROR_UNAUTHORIZED", "details": {"title": "Bad token"}}}],
            }
        }
    )
    assert error.status == 502
    assert error.message == "Bad token"
    assert error.code == "ERROR_UNAUTHORIZED"


def test_completion_concatenates_text_and_thinking():
    buffer = thinking_frame("step 1. ") + thinking_frame("step 2.") + text_frame("Hello") + text_frame(" world")
    response = transform_to_completion(buffer, "gpt-5")
    assert response.status == 200
    body = response.body
    assert body["object"] == "chat.completion"
    assert body["id"].startswith("chatcmpl-")
    assert body["model"] == "gpt-5"
    message = body["choices"][0]["message"]
    assert message == {"role": "assistant", "content": "Hello world", "reasoning_content": "step 1. step 2."}
    assert body["choices"][0]["finish_reason"] == "stop"
    assert body["usage"] == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def test_completion_merges_tool_call_chunks():
    buffer = (
        tool_frame("call_a", "read", '{"path":', False)
        + tool_frame("call_b", "ls", "{}", True)
        + tool_frame("call_a", "read", '"x"}', True)
    )
    body = transform_to_completion(buffer, "m").body
    choice = body["choices"][0]
    assert choice["finish_reason"] == "tool_calls"
    assert choice["message"]["content"] == ""
    calls = choice["message"]["tool_calls"]
    assert [c["id"] for c in calls] == ["call_b", "call_a"]
    assert calls[1]["function"] == {"name": "read", "arguments": '{"path":"x"}'}
    assert calls[0]["type"] == "function"


def test_completion_arguments_stay_valid_json_after_empty_closing_chunk():
    buffer = tool_frame("call_a", "read", '{"p":1}', False) + tool_frame("call_a", "read", "", True)
    [call] = transform_to_completion(buffer, "m").body["choices"][0]["message"]["tool_calls"]
    assert json.loads(call["function"]["arguments"]) == {"p": 1}

    body = transform_to_completion(tool_frame("call_b", "ls", "", True), "m").body
    [call] = body["choices"][0]["message"]["tool_calls"]
    assert call["function"]["arguments"] == "{}"


def test_completion_ignores_trailing_partial_frame():
    buffer = text_frame("ok") + bytes([0, 0, 0, 0, 100]) + b"short"
    response = transform_to_completion(buffer, "m")
    assert response.status == 200
    assert response.body["choices"][0]["message"]["content"] == "ok"

    assert transform_to_completion(b"\x00\x00\x00", "m").status == 200


def test_sse_text_stream_shape():
    response = transform_to_sse(text_frame("Hel") + text_frame("lo"), "m")
    assert response.status == 200
    assert response.media_type == "text/event-stream"
    payloads = sse_payloads([part + "\n\n" for part in response.body.split("\n\n") if part])
    assert payloads[-1] == "[DONE]"
    assert payloads[0]["choices"][0]["delta"] == {"role": "assistant", "content": "Hel"}
    assert payloads[1]["choices"][0]["delta"] == {"content": "lo"}
    final = payloads[-2]
    assert final["choices"][0] == {"index": 0, "delta": {}, "finish_reason": "stop"}
    assert final["usage"]["total_tokens"] == 0
    assert len({p["id"] for p in payloads[:-1]}) == 1


def test_sse_error_before_output_returns_error_response():
    response = transform_to_sse(wrap_frame(RATE_LIMIT_BODY), "m")
    assert response.status == 429
    assert response.media_type == "application/json"


def test_stream_thinking_only_delta():
    stream = CompletionStream("m", response_id="chatcmpl-x", created=1)
    lines = stream.feed(thinking_frame("musing"))
    [payload] = sse_payloads(lines)
    assert payload["choices"][0]["delta"] == {"role": "assistant", "reasoning_content": "musing"}
    assert payload["object"] == "chat.completion.chunk"
    assert payload["created"] == 1

    closing = sse_payloads(stream.finish())
    assert len(closing) == 2
    assert closing[0]["choices"][0] == {"index": 0, "delta": {}, "finish_reason": "stop"}
    assert closing[-1] == "[DONE]"


def test_stream_tool_call_deltas_keep_indices():
    stream = CompletionStream("m")
    lines = stream.feed(tool_frame("call_a", "read", '{"p":', False))
    lines += stream.feed(tool_frame("call_b", "ls", "{}", True))
    lines += stream.feed(tool_frame("call_a", "read", "1}", True))
    lines += stream.feed(tool_frame("call_a", "read", "", True))
    payloads = sse_payloads(lines)

    assert payloads[0]["choices"][0]["delta"] == {"role": "assistant", "content": ""}
    tool_deltas = [p["choices"][0]["delta"]["tool_calls"][0] for p in payloads[1:]]
    assert [(d["index"], d["id"], d["function"]["arguments"]) for d in tool_deltas] == [
        (0, "call_a", '{"p":'),
        (1, "call_b", "{}"),
        (0, "call_a", "1}"),
    ]
    final = sse_payloads(stream.finish())[-2]
    assert final["choices"][0]["finish_reason"] == "tool_calls"


def test_stream_records_mid_stream_error():
    stream = CompletionStream("m")
    lines = stream.feed(text_frame("partial answer") + wrap_frame(RATE_LIMIT_BODY) + text_frame("dropped"))
    assert len(lines) == 1
    assert stream.error is not None
    assert stream.error.status == 429
    assert stream.feed(text_frame("more")) == []
    assert json.loads(stream.error_chunk()[len("data: ") :]) == {
        "error": {"message": "Rate limit exceeded", "type": "rate_limit_error", "code": "unknown"}
    }


def test_stream_reports_truncation():
    stream = CompletionStream("m")
    stream.feed(text_frame("abc")[:6])
    assert stream.truncated is True


def test_http_and_connection_error_responses():
    response = http_error_response(401, "unauthorized")
    assert response.status == 401
    assert response.body["error"]["message"] == "[401]: unauthorized"
    assert response.body["error"]["type"] == "invalid_request_error"

    response = connection_error_response("refused")
    assert response.status == 500
    assert response.body["error"]["type"] == "connection_error"
    assert SSE_DONE == "data: [DONE]\n\n"


def test_deeply_nested_error_body_still_completes():
    nested = b'{"error":' + b"[" * 100000 + b"]" * 100000 + b"}"
    response = transform_to_completion(text_frame("ok") + wrap_frame(nested), "m")
    assert response.status == 200
    assert response.body["choices"][0]["message"]["content"] == "ok"
