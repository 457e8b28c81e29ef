from __future__ import annotations

from protobridge.settings import DEFAULT_MODELS, BridgeSettings


def test_from_env_reads_prefixed_variables(monkeypatch):
    monkeypatch.setenv("PROTOBRIDGE_BASE_URL", "https://example.test/")
    monkeypatch.setenv("PROTOBRIDGE_ACCESS_TOKEN", "tok")
    monkeypatch.setenv("PROTOBRIDGE_MACHINE_ID", "mid")
    monkeypatch.setenv("PROTOBRIDGE_GHOST_MODE", "false")
    monkeypatch.setenv("PROTOBRIDGE_TIMEOUT_S", "5")
    monkeypatch.setenv("PROTOBRIDGE_MODELS", "a, b,,c")

    settings = BridgeSettings.from_env()

    assert settings.chat_url == "https://example.test/aiserver.v1.AiService/StreamChat"
    assert settings.timeout_s == 5.0
    assert settings.models == ("a", "b", "c")
    creds = settings.credentials()
    assert creds is not None
    assert (creds.access_token, creds.machine_id, creds.ghost_mode) == ("tok", "mid", False)


def test_defaults_without_environment(monkeypatch):
    for name in ("PROTOBRIDGE_ACCESS_TOKEN", "PROTOBRIDGE_MACHINE_ID", "PROTOBRIDGE_MODELS"):
        monkeypatch.delenv(name, raising=False)
    settings = BridgeSettings.from_env()
    assert settings.credentials() is None
    assert settings.models == DEFAULT_MODELS
    assert settings.ghost_mode is True
