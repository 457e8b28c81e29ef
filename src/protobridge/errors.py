"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error hierarchy for the bridge edges.

Codec, extraction and parsing code never raise; these exceptions only appear
at the configuration and HTTP transport boundaries.
"""

from __future__ import annotations


class BridgeError(RuntimeError):
    """Base bridge error."""


class BridgeConfigurationError(BridgeError):
    """Raised when credentials or settings needed for a request are missing."""


class UpstreamTransportError(BridgeError):
    """Raised when the upstream HTTP call cannot be completed."""
