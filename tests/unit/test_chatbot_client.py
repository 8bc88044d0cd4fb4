"""Unit tests for the chatbot HTTP client contract."""

from __future__ import annotations

import json

import httpx
import pytest

from guestchat.transport.client import ChatbotClient
from guestchat.transport.errors import (
    ChatbotRequestError,
    ConversationAlreadyCompleteError,
    ConversationNotFoundError,
)


def _client(handler, token: str = "secret") -> ChatbotClient:
    return ChatbotClient(
        base_url="http://test/api/", api_token=token, transport=httpx.MockTransport(handler)
    )


@pytest.mark.anyio
async def test_send_message_posts_json_with_bearer_token() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.raw_path.decode()
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "bot_message": "Tell me more",
                "progress": 20,
                "phase": "background",
                "keywords_found": ["growth", "marketing"],
                "ready_for_completion": False,
                "unexpected": "kept",
            },
        )

    async with _client(handler) as client:
        response = await client.send_message("camp 1", "conv-9", "hello")

    assert seen["method"] == "POST"
    assert seen["path"] == "/api/campaigns/camp%201/chatbot/message"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"] == {"conversation_id": "conv-9", "message": "hello"}
    assert response.bot_message == "Tell me more"
    assert response.keywords_found_count == 2
    assert response.model_extra == {"unexpected": "kept"}


@pytest.mark.anyio
async def test_no_authorization_header_without_token() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"conversation_id": "c1"})

    async with _client(handler, token="") as client:
        await client.start("camp-1")

    assert seen["auth"] is None


@pytest.mark.anyio
async def test_pause_and_summary_use_query_parameter() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, dict(request.url.params)))
        return httpx.Response(200, json={"status": "ok"})

    async with _client(handler) as client:
        ack = await client.pause("camp-1", "conv-1")
        summary = await client.summary("camp-1", "conv-1")

    assert seen == [
        ("POST", "/api/campaigns/camp-1/chatbot/pause", {"conversation_id": "conv-1"}),
        ("GET", "/api/campaigns/camp-1/chatbot/summary", {"conversation_id": "conv-1"}),
    ]
    assert ack == {"status": "ok"}
    assert summary == {"status": "ok"}


@pytest.mark.anyio
async def test_resume_without_id_sends_empty_body() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"conversation_id": "c1", "messages": []})

    async with _client(handler) as client:
        response = await client.resume("camp-1")

    assert seen["body"] == {}
    assert response.conversation_id == "c1"


@pytest.mark.anyio
async def test_existence_checks_return_none_on_404() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "nothing"})

    async with _client(handler) as client:
        assert await client.latest_completed("camp-1") is None
        assert await client.latest_conversation("camp-1") is None


@pytest.mark.anyio
async def test_existence_check_server_error_raises_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "db down"})

    async with _client(handler) as client:
        with pytest.raises(ChatbotRequestError) as excinfo:
            await client.latest_conversation("camp-1")

    assert excinfo.value.status_code == 500


@pytest.mark.anyio
async def test_error_responses_are_typed() -> None:
    responses = iter(
        [
            httpx.Response(404, json={"detail": "Conversation not found"}),
            httpx.Response(400, json={"error": "conversation_already_complete"}),
            httpx.Response(500, text="Internal Server Error"),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    async with _client(handler) as client:
        with pytest.raises(ConversationNotFoundError):
            await client.send_message("camp-1", "c1", "hi")
        with pytest.raises(ConversationAlreadyCompleteError):
            await client.resume("camp-1", "c1")
        with pytest.raises(ChatbotRequestError) as excinfo:
            await client.complete("camp-1", "c1")

    assert excinfo.value.detail == "Internal Server Error"


@pytest.mark.anyio
async def test_network_failure_becomes_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(ChatbotRequestError) as excinfo:
            await client.start("camp-1")

    assert excinfo.value.operation == "start"
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.anyio
async def test_unexpected_payload_becomes_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"initial_message": "no id here"})

    async with _client(handler) as client:
        with pytest.raises(ChatbotRequestError, match="unexpected payload"):
            await client.start("camp-1")


@pytest.mark.anyio
async def test_invalid_json_becomes_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    async with _client(handler) as client:
        with pytest.raises(ChatbotRequestError, match="invalid JSON"):
            await client.restart("camp-1")
