"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Upstream client: identity headers, checksum and HTTP transport.
"""

from .policy import build_connect_headers, generate_checksum, normalize_access_token
from .transport import (
    BridgeClient,
    UpstreamRequest,
    UpstreamStream,
    http_open_stream,
    http_post,
)

__all__ = [
    "BridgeClient",
    "UpstreamRequest",
    "UpstreamStream",
    "build_connect_headers",
    "generate_checksum",
    "http_open_stream",
    "http_post",
    "normalize_access_token",
]
