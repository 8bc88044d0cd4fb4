"""Application settings using Pydantic."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from guestchat.config.provider_modes import effective_chatbot_provider


class Settings(BaseSettings):
    """Client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = Field(
        default=os.getenv("ENVIRONMENT", "development"),
        description="Deployment environment (development|test|production)",
    )

    # Chatbot backend
    api_base_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL of the backend API; campaign chatbot paths are appended to it.",
    )
    api_token: str = Field(
        default="",
        description="Bearer token for authenticated requests (empty = no Authorization header).",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to every chatbot request.",
    )
    chatbot_provider: Literal["real", "fake", "off"] = Field(
        default="real",
        description=(
            "Chatbot backend mode: real=call the HTTP API, "
            "fake=deterministic in-memory backend, off=disable."
        ),
    )
    use_fake_providers: bool = Field(
        default=False,
        description=(
            "Convenience switch: treat the chatbot backend as fake in dev/tests. "
            "Overrides chatbot_provider=real (off still disables)."
        ),
    )

    # Session orchestration
    onboarding_mode: bool = Field(
        default=False,
        description="Check for a completed interview before looking for a resumable one.",
    )
    auto_start_delay_seconds: float = Field(
        default=2.0,
        description="Delay before a new conversation is started when none can be resumed.",
    )
    autosave_message_interval: int = Field(
        default=10,
        description="Signal an auto-save after this many messages since the last signal.",
    )
    autosave_interval_seconds: float = Field(
        default=300.0,
        description="Signal an auto-save when this much time passed since the last signal.",
    )
    existence_check_attempts: int = Field(
        default=2,
        description="Attempts for the two startup lookups (mutating calls never retry).",
    )
    checkpoint_dir: str = Field(
        default=str(Path("~/.guestchat/checkpoints")),
        description="Directory holding local progress/paused checkpoints.",
    )

    # Fake backend tuning
    fake_ready_after_messages: int = Field(
        default=6,
        description="User messages after which the fake backend reports ready_for_completion.",
    )

    @field_validator("auto_start_delay_seconds", "autosave_interval_seconds", "request_timeout_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Durations must be >= 0")
        return v

    @field_validator("autosave_message_interval", "existence_check_attempts", "fake_ready_after_messages")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Counts must be >= 1")
        return v

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_token_for_production(self) -> "Settings":
        """Real backends in production must be called with credentials."""
        provider = effective_chatbot_provider(self)
        if self.environment == "production" and provider == "real" and not self.api_token:
            raise ValueError(
                "API_TOKEN is required when ENVIRONMENT=production and CHATBOT_PROVIDER=real."
            )
        return self

    # Observability
    log_level: str = "INFO"
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (true) or human-readable console lines (false).",
    )

    @property
    def checkpoint_path(self) -> Path:
        return Path(self.checkpoint_dir).expanduser()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Lazily construct Settings so tests and CLIs can set env vars before first access.
    return Settings()


def reset_settings_cache() -> None:
    get_settings.cache_clear()


class _SettingsProxy:
    """Lazy proxy for Settings.

    This avoids eager settings instantiation at import time, which can make tests
    order-dependent when env vars are changed during `pytest_configure()`.
    """

    def __getattr__(self, name: str) -> Any:
        return getattr(get_settings(), name)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<SettingsProxy {get_settings()!r}>"


settings = _SettingsProxy()
