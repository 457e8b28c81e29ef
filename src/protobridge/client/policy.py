"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request identity headers and the time-based checksum the backend expects.
"""

from __future__ import annotations

import base64
import hashlib
import platform
import sys
import time
import uuid

from ..errors import BridgeConfigurationError
from ..settings import BridgeCredentials, BridgeSettings
from ..translate.request import REQUEST_CONTENT_TYPE

CHECKSUM_SEED = 165


def normalize_access_token(access_token: str) -> str:
    """Strip an optional `<prefix>::` from stored tokens."""
    _, sep, tail = access_token.partition("::")
    return tail if sep else access_token


def _client_os() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def _client_arch() -> str:
    return "aarch64" if platform.machine().lower() in ("arm64", "aarch64") else "x64"


def _timezone_name() -> str:
    name = time.tzname[0] if time.tzname else ""
    return name or "UTC"


def generate_checksum(machine_id: str, now_ms: int | None = None) -> str:
    """
    Build the `x-cursor-checksum` header value.

    The current time in coarse units (milliseconds // 1e6) is written as six
    big-endian bytes, scrambled with a rolling XOR key seeded at 165, encoded as
    unpadded URL-safe base64 (eight characters) and suffixed with the machine id.
    """
    if not machine_id:
        raise BridgeConfigurationError("Machine ID is required for upstream requests")
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    timestamp = now_ms // 1_000_000
    scrambled = bytearray((timestamp & 0xFFFFFFFFFFFF).to_bytes(6, "big"))
    key = CHECKSUM_SEED
    for i, value in enumerate(scrambled):
        scrambled[i] = ((value ^ key) + (i % 256)) & 0xFF
        key = scrambled[i]

    encoded = base64.urlsafe_b64encode(bytes(scrambled)).rstrip(b"=").decode("ascii")
    return f"{encoded}{machine_id}"


def build_base_headers(
    credentials: BridgeCredentials,
    settings: BridgeSettings,
) -> dict[str, str]:
    token = normalize_access_token(credentials.access_token)
    if not token:
        raise BridgeConfigurationError("Access token is empty after parsing")
    if not credentials.machine_id:
        raise BridgeConfigurationError("Machine ID is required for upstream requests")

    token_hash = hashlib.sha256(token.encode("utf-8")).hexdigest()
    return {
        "authorization": f"Bearer {token}",
        "x-amzn-trace-id": f"Root={uuid.uuid4()}",
        "x-client-key": token_hash,
        "x-cursor-checksum": generate_checksum(credentials.machine_id),
        "x-cursor-client-version": settings.client_version,
        "x-cursor-client-type": "ide",
        "x-cursor-client-os": _client_os(),
        "x-cursor-client-arch": _client_arch(),
        "x-cursor-client-device-type": "desktop",
        "x-cursor-config-version": str(uuid.uuid4()),
        "x-cursor-timezone": _timezone_name(),
        "x-ghost-mode": "true" if credentials.ghost_mode else "false",
        "x-request-id": str(uuid.uuid4()),
        "x-session-id": token_hash[:36],
    }


def build_connect_headers(
    credentials: BridgeCredentials,
    settings: BridgeSettings,
) -> dict[str, str]:
    """Headers for the streaming chat POST."""
    return {
        **build_base_headers(credentials, settings),
        "connect-accept-encoding": "gzip",
        "connect-protocol-version": "1",
        "content-type": REQUEST_CONTENT_TYPE,
        "user-agent": settings.user_agent,
    }
