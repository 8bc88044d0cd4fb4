"""Unit tests for chatbot client construction."""

from __future__ import annotations

import pytest

from guestchat.config import Settings
from guestchat.transport.errors import ConfigurationError
from guestchat.transport.factory import get_chatbot_client
from guestchat.transport.fake import FAKE_WELCOME, FakeChatbotBackend


def test_off_provider_is_rejected() -> None:
    cfg = Settings(_env_file=None, chatbot_provider="off")

    with pytest.raises(ConfigurationError):
        get_chatbot_client(cfg)


@pytest.mark.anyio
async def test_fake_provider_routes_to_in_memory_backend() -> None:
    cfg = Settings(_env_file=None, chatbot_provider="real", use_fake_providers=True)
    backend = FakeChatbotBackend()

    async with get_chatbot_client(cfg, fake_backend=backend) as client:
        started = await client.start("camp-1")

    assert started.initial_message == FAKE_WELCOME
    assert backend.calls("start")[0]["campaign_id"] == "camp-1"


def test_real_provider_uses_configured_base_url() -> None:
    cfg = Settings(_env_file=None, chatbot_provider="real", api_base_url="http://localhost:9000/api/")

    client = get_chatbot_client(cfg)

    assert client.base_url == "http://localhost:9000/api"
