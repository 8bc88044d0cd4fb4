"""Unit tests for settings and provider mode resolution."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from guestchat.config import Settings, effective_chatbot_provider, get_settings, reset_settings_cache


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("CHATBOT_PROVIDER", raising=False)
    cfg = Settings(_env_file=None)

    assert cfg.auto_start_delay_seconds == 2.0
    assert cfg.autosave_message_interval == 10
    assert cfg.autosave_interval_seconds == 300.0
    assert cfg.existence_check_attempts == 2
    assert cfg.chatbot_provider == "real"


def test_env_overrides_and_trailing_slash(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "https://api.example.com/api/")
    monkeypatch.setenv("AUTO_START_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("ONBOARDING_MODE", "true")
    cfg = Settings(_env_file=None)

    assert cfg.api_base_url == "https://api.example.com/api"
    assert cfg.auto_start_delay_seconds == 0.5
    assert cfg.onboarding_mode is True


def test_checkpoint_path_expands_user(monkeypatch) -> None:
    monkeypatch.setenv("CHECKPOINT_DIR", "~/somewhere")
    cfg = Settings(_env_file=None)

    assert "~" not in str(cfg.checkpoint_path)


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, auto_start_delay_seconds=-1)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, autosave_message_interval=0)


def test_production_real_backend_requires_token() -> None:
    with pytest.raises(ValidationError, match="API_TOKEN"):
        Settings(_env_file=None, environment="production", chatbot_provider="real", api_token="")

    cfg = Settings(_env_file=None, environment="production", chatbot_provider="real", api_token="t")
    assert cfg.api_token == "t"
    Settings(_env_file=None, environment="production", chatbot_provider="fake", api_token="")


def test_get_settings_is_cached_until_reset(monkeypatch) -> None:
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    reset_settings_cache()
    assert get_settings() is not first
    assert get_settings().log_level == "DEBUG"


@pytest.mark.parametrize(
    ("provider", "use_fake", "expected"),
    [
        ("real", False, "real"),
        ("real", True, "fake"),
        ("fake", False, "fake"),
        ("off", True, "off"),
        ("REAL", False, "real"),
        ("bogus", False, "real"),
    ],
)
def test_effective_chatbot_provider(provider, use_fake, expected) -> None:
    cfg = SimpleNamespace(chatbot_provider=provider, use_fake_providers=use_fake)
    assert effective_chatbot_provider(cfg) == expected
