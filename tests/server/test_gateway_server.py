from __future__ import annotations

import json

from fastapi.testclient import TestClient

from protobridge.client import BridgeClient
from protobridge.server import GatewayServer, GatewayServerConfig, create_gateway_server
from protobridge.settings import BridgeSettings
from protobridge.wire import encode_schema_field, wrap_frame
from protobridge.wire.schema import ChatResponseField, ResponseEnvelope


def text_frame(text: str) -> bytes:
    return wrap_frame(
        encode_schema_field(ResponseEnvelope.RESPONSE, encode_schema_field(ChatResponseField.TEXT, text))
    )


class FakeStream:
    def __init__(self, chunks):
        self.status = 200
        self._chunks = list(chunks)

    def read(self, size):
        return self._chunks.pop(0) if self._chunks else b""

    def close(self):
        pass


def make_server(settings: BridgeSettings | None = None, **client_kwargs) -> GatewayServer:
    settings = settings or BridgeSettings(access_token="tok", machine_id="mid", models=("alpha", "beta"))
    return GatewayServer(BridgeClient(settings, **client_kwargs))


def test_health_reports_upstream_configuration():
    client = TestClient(make_server().app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["upstream_configured"] is True


def test_models_lists_configured_catalog():
    client = TestClient(make_server().app)
    data = client.get("/v1/models").json()
    assert data["object"] == "list"
    assert [row["id"] for row in data["data"]] == ["alpha", "beta"]


def test_chat_completion_json():
    server = make_server(post=lambda request: (200, text_frame("Hi there")))
    response = TestClient(server.app).post(
        "/v1/chat/completions",
        json={"model": "alpha", "messages": [{"role": "user", "content": "hello"}]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["choices"][0]["message"]["content"] == "Hi there"
    assert body["model"] == "alpha"


def test_chat_completion_stream():
    server = make_server(open_stream=lambda request: FakeStream([text_frame("a"), text_frame("b")]))
    response = TestClient(server.app).post(
        "/v1/chat/completions",
        json={"model": "alpha", "stream": True, "messages": [{"role": "user", "content": "hello"}]},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = [line[len("data: ") :] for line in response.text.split("\n\n") if line]
    assert events[-1] == "[DONE]"
    contents = [json.loads(e)["choices"][0]["delta"].get("content") for e in events[:-1]]
    assert contents[:2] == ["a", "b"]


def test_upstream_rate_limit_status_is_forwarded():
    body = b'{"error":{"code":"resource_exhausted","message":"Rate limit exceeded"}}'
    server = make_server(post=lambda request: (200, wrap_frame(body)))
    response = TestClient(server.app).post(
        "/v1/chat/completions", json={"messages": [{"role": "user", "content": "x"}]}
    )
    assert response.status_code == 429
    assert response.json()["error"]["type"] == "rate_limit_error"


def test_invalid_requests_are_rejected():
    client = TestClient(make_server().app)
    response = client.post(
        "/v1/chat/completions", content=b"not json", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400

    response = client.post("/v1/chat/completions", json={"messages": []})
    assert response.status_code == 400
    assert response.json()["error"]["type"] == "invalid_request_error"

    response = client.post("/v1/chat/completions", json={"messages": "nope"})
    assert response.status_code == 400


def test_missing_credentials_return_401():
    server = make_server(BridgeSettings(), post=lambda request: (200, b""))
    response = TestClient(server.app).post(
        "/v1/chat/completions", json={"messages": [{"role": "user", "content": "x"}]}
    )
    assert response.status_code == 401
    assert response.json()["error"]["type"] == "authentication_error"


def test_custom_paths_and_factory():
    config = GatewayServerConfig(chat_path="/chat", enable_health=False)
    server = create_gateway_server(
        client=BridgeClient(
            BridgeSettings(access_token="t", machine_id="m"),
            post=lambda request: (200, text_frame("ok")),
        ),
        config=config,
    )
    client = TestClient(server.app)
    assert client.get("/health").status_code == 404
    response = client.post("/chat", json={"messages": [{"role": "user", "content": "x"}]})
    assert response.json()["choices"][0]["message"]["content"] == "ok"
