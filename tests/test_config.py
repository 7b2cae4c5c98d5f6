"""
Settings tests: environment parsing and validation.
"""

import pytest
from pydantic import ValidationError

from chest.config import Settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    # Keep a developer's .env out of these tests
    monkeypatch.chdir(tmp_path)
    for name in ("RELAY_URLS", "EVENT_KINDS", "DATABASE_URL", "LOG_LEVEL", "BIND_PORT"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings()
    assert settings.database_url == "sqlite:///./events.db"
    assert settings.bind_host == "127.0.0.1"
    assert settings.bind_port == 8080
    assert settings.max_secondary_sessions == 256
    assert 1 in settings.event_kinds


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RELAY_URLS", '["wss://relay.a", "ws://localhost:7777"]')
    monkeypatch.setenv("EVENT_KINDS", "[1, 7]")
    monkeypatch.setenv("BIND_PORT", "9000")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings()
    assert settings.relay_urls == ["wss://relay.a", "ws://localhost:7777"]
    assert settings.event_kinds == [1, 7]
    assert settings.bind_port == 9000
    assert settings.log_level == "DEBUG"


def test_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text('DATABASE_URL=sqlite:///./other.db\nDYNAMIC_EXPANSION=false\n')
    settings = Settings()
    assert settings.database_url == "sqlite:///./other.db"
    assert settings.dynamic_expansion is False


@pytest.mark.parametrize("overrides", [
    {"relay_urls": ["https://relay.a"]},
    {"event_kinds": []},
    {"event_kinds": [1, -1]},
    {"max_secondary_sessions": 0},
    {"reconnect_base_delay": 5.0, "reconnect_max_delay": 1.0},
])
def test_invalid_settings(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_public_view_hides_storage():
    view = Settings(relay_urls=["wss://relay.a"]).public_view()
    assert view["relay_urls"] == ["wss://relay.a"]
    assert "database_url" not in view
