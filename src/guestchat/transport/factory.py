"""Factory for chatbot clients (real vs fake)."""

from __future__ import annotations

from typing import Protocol

from guestchat.config.provider_modes import effective_chatbot_provider
from guestchat.observability.logging import get_logger
from guestchat.transport.client import ChatbotClient
from guestchat.transport.errors import ConfigurationError
from guestchat.transport.fake import FakeChatbotBackend

logger = get_logger("guestchat.transport.factory")


class _ChatbotSettings(Protocol):
    chatbot_provider: str
    use_fake_providers: bool
    api_base_url: str
    api_token: str
    request_timeout_seconds: float
    fake_ready_after_messages: int


def get_chatbot_client(
    settings: _ChatbotSettings,
    *,
    fake_backend: FakeChatbotBackend | None = None,
) -> ChatbotClient:
    """Return a client wired to the real API, or to a deterministic fake in fake mode."""

    mode = effective_chatbot_provider(settings)
    if mode == "off":
        raise ConfigurationError("Chatbot backend is disabled (CHATBOT_PROVIDER=off)")

    if mode == "fake" or fake_backend is not None:
        backend = fake_backend or FakeChatbotBackend(
            ready_after_messages=settings.fake_ready_after_messages
        )
        logger.info("chatbot_client_fake")
        return ChatbotClient(
            base_url=settings.api_base_url,
            api_token=settings.api_token,
            timeout=settings.request_timeout_seconds,
            transport=backend.transport(),
        )

    return ChatbotClient(
        base_url=settings.api_base_url,
        api_token=settings.api_token,
        timeout=settings.request_timeout_seconds,
    )


__all__ = ["get_chatbot_client", "ChatbotClient", "FakeChatbotBackend"]
