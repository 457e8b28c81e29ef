from __future__ import annotations

import hashlib
import re

import pytest

from protobridge.client import build_connect_headers, generate_checksum, normalize_access_token
from protobridge.errors import BridgeConfigurationError
from protobridge.settings import BridgeCredentials, BridgeSettings


def test_normalize_access_token_strips_prefix():
    assert normalize_access_token("user_01::eyJtoken") == "eyJtoken"
    assert normalize_access_token("plain") == "plain"


def test_checksum_known_value_at_epoch():
    assert generate_checksum("machine", now_ms=0) == "paaoq6-0machine"


def test_checksum_format():
    checksum = generate_checksum("abc123", now_ms=1_760_000_000_000)
    assert re.fullmatch(r"[A-Za-z0-9_-]{8}abc123", checksum)


def test_checksum_is_stable_within_a_time_bucket():
    assert generate_checksum("m", now_ms=5_000_000) == generate_checksum("m", now_ms=5_999_999)
    assert generate_checksum("m", now_ms=5_000_000) != generate_checksum("m", now_ms=6_000_000)


def test_checksum_requires_machine_id():
    with pytest.raises(BridgeConfigurationError):
        generate_checksum("")


def test_connect_headers():
    settings = BridgeSettings(client_version="9.9.9", user_agent="ua/1")
    headers = build_connect_headers(
        BridgeCredentials(access_token="prefix::secret", machine_id="mid", ghost_mode=False),
        settings,
    )
    token_hash = hashlib.sha256(b"secret").hexdigest()
    assert headers["authorization"] == "Bearer secret"
    assert headers["content-type"] == "application/connect+proto"
    assert headers["connect-protocol-version"] == "1"
    assert headers["connect-accept-encoding"] == "gzip"
    assert headers["user-agent"] == "ua/1"
    assert headers["x-cursor-client-version"] == "9.9.9"
    assert headers["x-client-key"] == token_hash
    assert headers["x-session-id"] == token_hash[:36]
    assert headers["x-ghost-mode"] == "false"
    assert headers["x-cursor-checksum"].endswith("mid")
    assert headers["x-amzn-trace-id"].startswith("Root=")


def test_connect_headers_reject_empty_token():
    with pytest.raises(BridgeConfigurationError):
        build_connect_headers(BridgeCredentials(access_token="prefix::", machine_id="m"), BridgeSettings())
