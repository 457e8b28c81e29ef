"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

protobridge: OpenAI-style chat completions over a length-prefixed protobuf
streaming backend.

Quick start::

    from protobridge import BridgeSettings, create_gateway_server

    server = create_gateway_server(settings=BridgeSettings.from_env())
    server.run()  # starts on http://127.0.0.1:8317
"""

from .client import BridgeClient, generate_checksum
from .errors import BridgeConfigurationError, BridgeError, UpstreamTransportError
from .server import GatewayServer, GatewayServerConfig, create_gateway_server
from .settings import BridgeCredentials, BridgeSettings
from .translate import (
    ChatCompletionRequest,
    CompletionStream,
    StreamingFrameParser,
    convert_messages,
    extract_content,
    generate_request_body,
    transform_to_completion,
    transform_to_sse,
)
from .types import (
    ErrorEvent,
    ExtractedContent,
    GatewayResponse,
    StreamEvent,
    TextEvent,
    ThinkingEvent,
    ToolCallEvent,
    ToolInvocation,
    UpstreamError,
)

__all__ = [
    "BridgeClient",
    "BridgeConfigurationError",
    "BridgeCredentials",
    "BridgeError",
    "BridgeSettings",
    "ChatCompletionRequest",
    "CompletionStream",
    "ErrorEvent",
    "ExtractedContent",
    "GatewayResponse",
    "GatewayServer",
    "GatewayServerConfig",
    "StreamEvent",
    "StreamingFrameParser",
    "TextEvent",
    "ThinkingEvent",
    "ToolCallEvent",
    "ToolInvocation",
    "UpstreamError",
    "UpstreamTransportError",
    "convert_messages",
    "create_gateway_server",
    "extract_content",
    "generate_checksum",
    "generate_request_body",
    "transform_to_completion",
    "transform_to_sse",
]
