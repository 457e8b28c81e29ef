"""
Gateway server package.

Contains the FastAPI app wiring for the chat-completions endpoint.
"""

from .runtime import GatewayServer, GatewayServerConfig, create_gateway_server

__all__ = [
    "GatewayServer",
    "GatewayServerConfig",
    "create_gateway_server",
]
