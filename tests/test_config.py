from __future__ import annotations

from diastudio.config import DEFAULT_REPLICATE_MODEL, load_settings


def test_defaults(monkeypatch):
    for k in (
        "DIASTUDIO_PROVIDER",
        "REPLICATE_API_TOKEN",
        "DIASTUDIO_REPLICATE_MODEL",
        "DIASTUDIO_STRICT_PARAMS",
        "DIASTUDIO_PORT",
        "DIASTUDIO_READ_TIMEOUT",
    ):
        monkeypatch.delenv(k, raising=False)
    s = load_settings()
    assert s.provider == "replicate"
    assert s.replicate_model == DEFAULT_REPLICATE_MODEL
    assert s.strict_params is False
    assert s.port == 8000
    assert s.timeout == (10.0, 300.0)


def test_env_overrides_and_garbage(monkeypatch):
    monkeypatch.setenv("DIASTUDIO_PROVIDER", " STUB ")
    monkeypatch.setenv("DIASTUDIO_STRICT_PARAMS", "yes")
    monkeypatch.setenv("DIASTUDIO_PORT", "not-a-port")
    monkeypatch.setenv("DIASTUDIO_READ_TIMEOUT", "42")
    monkeypatch.setenv("DIASTUDIO_REPLICATE_API_BASE", "https://example.test/v1/")
    s = load_settings()
    assert s.provider == "stub"
    assert s.strict_params is True
    assert s.port == 8000
    assert s.read_timeout_s == 42.0
    assert s.replicate_api_base == "https://example.test/v1"
