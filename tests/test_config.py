import pytest

from botgate.config import DEFAULT_DECISION_ENDPOINT, Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BOTGATE_SERVER_KEY", "DATADOME_SERVER_KEY", "SERVER_KEY", "DECISION_TIMEOUT_MS"):
        monkeypatch.delenv(name, raising=False)
    s = Settings(_env_file=None)
    assert s.SERVER_KEY == ""
    assert s.DECISION_ENDPOINT == DEFAULT_DECISION_ENDPOINT
    assert s.DECISION_TIMEOUT_MS == 500
    assert s.decision_timeout_s == 0.5
    assert s.MANIFEST_HEADER == "x-datadome-headers"
    assert s.REJECTED_COOKIE_DOMAIN == ".vercel.app"
    assert s.bypass_prefixes() == ["/healthz", "/metrics"]


def test_server_key_env_aliases(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BOTGATE_SERVER_KEY", raising=False)
    monkeypatch.setenv("DATADOME_SERVER_KEY", "dd-key")
    assert Settings(_env_file=None).SERVER_KEY == "dd-key"

    monkeypatch.setenv("BOTGATE_SERVER_KEY", "bg-key")
    assert Settings(_env_file=None).SERVER_KEY == "bg-key"


def test_timeout_and_prefixes_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DECISION_TIMEOUT_MS", "250")
    monkeypatch.setenv("BYPASS_PATH_PREFIXES", " /status , ,/internal")
    s = Settings(_env_file=None)
    assert s.decision_timeout_s == 0.25
    assert s.bypass_prefixes() == ["/status", "/internal"]


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, DECISION_TIMEOUT_MS=0)
