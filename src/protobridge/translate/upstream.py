"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Backend JSON error payload classification.
"""

from __future__ import annotations

import json
from typing import Any

from ..types import UpstreamError

RATE_LIMIT_CODE = "resource_exhausted"
RATE_LIMIT_STATUS = 429
GENERIC_STATUS = 502
DEFAULT_MESSAGE = "API Error"


def _dig(value: Any, *path: Any) -> Any:
    for key in path:
        if isinstance(key, int):
            if not isinstance(value, list) or len(value) <= key:
                return None
        elif not isinstance(value, dict):
            return None
        value = value[key] if isinstance(key, int) else value.get(key)
    return value


def _first_str(*values: Any) -> str | None:
    for value in values:
        if isinstance(value, str) and value:
            return value
    return None


def map_upstream_error(body: dict[str, Any]) -> UpstreamError:
    """
    Translate a parsed `{"error": {...}}` body into status and error type.

    `resource_exhausted` becomes a 429 rate-limit error; every other code is
    reported as a generic upstream `api_error`.
    """
    error = body.get("error") if isinstance(body.get("error"), dict) else {}
    debug = _dig(error, "details", 0, "debug")
    message = (
        _first_str(
            _dig(debug, "details", "title"),
            _dig(debug, "details", "detail"),
            error.get("message"),
        )
        or DEFAULT_MESSAGE
    )
    code = _first_str(_dig(debug, "error")) or "unknown"

    if error.get("code") == RATE_LIMIT_CODE:
        return UpstreamError(RATE_LIMIT_STATUS, "rate_limit_error", message, code)
    return UpstreamError(GENERIC_STATUS, "api_error", message, code)


def parse_upstream_error(payload: bytes) -> UpstreamError | None:
    """Return the mapped error when `payload` is a JSON error body, else None."""
    if not payload.startswith(b"{") or b'"error"' not in payload:
        return None
    try:
        body = json.loads(payload.decode("utf-8", errors="replace"))
    except (ValueError, RecursionError):
        return None
    if not isinstance(body, dict) or "error" not in body:
        return None
    return map_upstream_error(body)
