"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Bridge runtime settings and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MODELS: tuple[str, ...] = (
    "claude-4.5-sonnet",
    "claude-4.5-opus",
    "claude-4.5-haiku",
    "composer-1",
    "gpt-5",
    "gpt-5.3-codex",
    "gemini-2.5-pro",
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True, slots=True)
class BridgeCredentials:
    """Backend credentials supplied by the calling layer."""

    access_token: str
    machine_id: str
    ghost_mode: bool = True


@dataclass(frozen=True, slots=True)
class BridgeSettings:
    """Explicit settings used by the upstream client and gateway server."""

    base_url: str = "https://api2.cursor.sh"
    chat_path: str = "/aiserver.v1.AiService/StreamChat"
    access_token: str | None = None
    machine_id: str | None = None
    ghost_mode: bool = True

    client_version: str = "2.3.41"
    user_agent: str = "connect-es/1.6.1"
    timeout_s: float = 120.0
    read_chunk_size: int = 16384

    default_model: str = "gpt-5.3-codex"
    models: tuple[str, ...] = DEFAULT_MODELS

    @property
    def chat_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.chat_path}"

    def credentials(self) -> BridgeCredentials | None:
        """Return credentials when both token and machine id are configured."""
        if not self.access_token or not self.machine_id:
            return None
        return BridgeCredentials(
            access_token=self.access_token,
            machine_id=self.machine_id,
            ghost_mode=self.ghost_mode,
        )

    @staticmethod
    def from_env() -> "BridgeSettings":
        """Load settings from environment variables."""
        return BridgeSettings(
            base_url=os.getenv("PROTOBRIDGE_BASE_URL", "https://api2.cursor.sh"),
            chat_path=os.getenv(
                "PROTOBRIDGE_CHAT_PATH", "/aiserver.v1.AiService/StreamChat"
            ),
            access_token=os.getenv("PROTOBRIDGE_ACCESS_TOKEN"),
            machine_id=os.getenv("PROTOBRIDGE_MACHINE_ID"),
            ghost_mode=_env_bool("PROTOBRIDGE_GHOST_MODE", True),
            client_version=os.getenv("PROTOBRIDGE_CLIENT_VERSION", "2.3.41"),
            user_agent=os.getenv("PROTOBRIDGE_USER_AGENT", "connect-es/1.6.1"),
            timeout_s=float(os.getenv("PROTOBRIDGE_TIMEOUT_S", "120")),
            read_chunk_size=int(os.getenv("PROTOBRIDGE_READ_CHUNK_SIZE", "16384")),
            default_model=os.getenv("PROTOBRIDGE_DEFAULT_MODEL", "gpt-5.3-codex"),
            models=_env_list("PROTOBRIDGE_MODELS", DEFAULT_MODELS),
        )
