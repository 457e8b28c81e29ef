"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Chat-completions gateway built on FastAPI.

Accepts OpenAI-style chat requests, forwards them upstream through a
`BridgeClient` and answers with a JSON completion or an SSE stream.

Endpoints:
- ``GET /health``: liveness and upstream configuration state
- ``GET /v1/models``: configured model catalog
- ``POST /v1/chat/completions``: buffered or streamed completion
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi import Request as FastAPIRequest
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
import uvicorn
from pydantic import ValidationError

from ..client.transport import BridgeClient
from ..errors import BridgeConfigurationError
from ..settings import BridgeSettings
from ..translate.conversation import ChatCompletionRequest
from ..translate.transform import SSE_HEADERS
from ..types import GatewayResponse, UpstreamError

logger = logging.getLogger("protobridge.server")


@dataclass
class GatewayServerConfig:
    """
    Configuration for the gateway server.

    Attributes:
        name: Application title.
        version: Application version string.
        host: Bind host for uvicorn.
        port: Bind port for uvicorn.
        cors_origins: List of allowed CORS origins.
        chat_path: Chat-completions endpoint path.
        models_path: Model catalog endpoint path.
        health_path: Health endpoint path.
        enable_health: Whether to expose the health endpoint.
    """

    name: str = "protobridge-gateway"
    version: str = "0.1.0"
    host: str = "127.0.0.1"
    port: int = 8317
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    chat_path: str = "/v1/chat/completions"
    models_path: str = "/v1/models"
    health_path: str = "/health"
    enable_health: bool = True


def _error_payload(status: int, error_type: str, message: str) -> GatewayResponse:
    return GatewayResponse(
        status=status,
        body=UpstreamError(status, error_type, message, "").to_body(),
    )


class GatewayServer:
    """
    Gateway exposing a `BridgeClient` over HTTP.

    Usage::

        server = GatewayServer(BridgeClient(BridgeSettings.from_env()))
        server.run()

    For tests::

        from fastapi.testclient import TestClient
        client = TestClient(server.app)
    """

    def __init__(
        self,
        client: BridgeClient,
        *,
        config: GatewayServerConfig | None = None,
        app: Any | None = None,
    ) -> None:
        self._client = client
        self._config = config or GatewayServerConfig()
        self._app = app or self._create_app()
        if app is not None:
            self.mount(app)

    @property
    def app(self):
        """The FastAPI application instance."""
        return self._app

    @property
    def config(self) -> GatewayServerConfig:
        return self._config

    @property
    def settings(self) -> BridgeSettings:
        return self._client.settings

    def _to_http(self, response: GatewayResponse) -> Response:
        if isinstance(response.body, dict):
            return JSONResponse(
                response.body,
                status_code=response.status,
                headers=response.headers or None,
            )
        return Response(
            response.body,
            status_code=response.status,
            media_type=response.media_type,
            headers=response.headers or None,
        )

    def _create_router(self):
        """Build an APIRouter containing gateway routes."""
        router = APIRouter()

        if self._config.enable_health:

            @router.get(self._config.health_path)
            async def health():
                return {
                    "status": "ok",
                    "server": self._config.name,
                    "version": self._config.version,
                    "upstream_configured": self.settings.credentials() is not None,
                }

        @router.get(self._config.models_path)
        async def list_models():
            created = int(time.time())
            return {
                "object": "list",
                "data": [
                    {"id": model, "object": "model", "created": created, "owned_by": "upstream"}
                    for model in self.settings.models
                ],
            }

        @router.post(self._config.chat_path)
        async def chat_completions(request: FastAPIRequest):
            try:
                body = await request.json()
            except ValueError:
                return self._to_http(
                    _error_payload(400, "invalid_request_error", "Request body is not valid JSON")
                )

            try:
                chat_request = ChatCompletionRequest.model_validate(body)
            except ValidationError as e:
                return self._to_http(
                    _error_payload(400, "invalid_request_error", f"Invalid request: {e}")
                )
            if not chat_request.messages:
                return self._to_http(
                    _error_payload(400, "invalid_request_error", "messages must not be empty")
                )

            try:
                result = await self._client.complete(chat_request)
            except BridgeConfigurationError as e:
                logger.warning("Rejected chat request: %s", e)
                return self._to_http(_error_payload(401, "authentication_error", str(e)))

            if isinstance(result, GatewayResponse):
                return self._to_http(result)
            return StreamingResponse(
                result,
                media_type="text/event-stream",
                headers={**SSE_HEADERS, "X-Accel-Buffering": "no"},
            )

        return router

    def _create_app(self):
        """Build the FastAPI application with gateway routes."""
        app = FastAPI(
            title=self._config.name,
            version=self._config.version,
            description="Chat-completions gateway over a protobuf streaming backend",
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        app.include_router(self._create_router())
        return app

    def mount(self, app: Any) -> Any:
        """Mount gateway routes into an existing FastAPI app."""
        app.include_router(self._create_router())
        return app

    def run(self, **kwargs: Any) -> None:
        """
        Start the gateway using uvicorn.

        Args:
            **kwargs: Additional arguments passed to ``uvicorn.run()``.
        """
        uvicorn.run(
            self._app,
            host=kwargs.pop("host", self._config.host),
            port=kwargs.pop("port", self._config.port),
            **kwargs,
        )


def create_gateway_server(
    *,
    settings: BridgeSettings | None = None,
    client: BridgeClient | None = None,
    config: GatewayServerConfig | None = None,
    app: Any | None = None,
) -> GatewayServer:
    """
    Convenience constructor.

    Callers can pass either a ready client or settings to build one from.
    """
    if settings is not None and client is not None:
        raise ValueError("Pass either 'settings' or 'client', not both")
    return GatewayServer(client or BridgeClient(settings), config=config, app=app)
