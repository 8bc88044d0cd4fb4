"""HTTP client for the campaign chatbot API."""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from guestchat.observability.logging import get_logger
from guestchat.transport.errors import (
    ChatbotRequestError,
    ConversationNotFoundError,
    error_from_response,
)
from guestchat.transport.schemas import (
    CompletedLookup,
    CompleteResponse,
    LatestConversation,
    RestartResponse,
    ResumeResponse,
    SendMessageResponse,
    StartResponse,
    SummaryPayload,
)

logger = get_logger("guestchat.transport.client")

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_CHATBOT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class ChatbotClient:
    """Authenticated JSON-over-HTTP client for ``/campaigns/{id}/chatbot/*``.

    Every call funnels through :meth:`request`. Non-ok responses are turned into
    typed :class:`~guestchat.transport.errors.ChatbotError` subclasses, so callers
    branch on the error class (or its ``kind``) rather than on response text.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_token: str = "",
        timeout: float | httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout if timeout is not None else DEFAULT_CHATBOT_TIMEOUT,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "ChatbotClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -- generic request --------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        operation: str = "request",
    ) -> httpx.Response:
        """Send one request; network failures become ``ChatbotRequestError``."""
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            logger.warning(
                "chatbot_request_failed",
                operation=operation,
                path=path,
                error_type=type(exc).__name__,
            )
            raise ChatbotRequestError(
                f"{operation} failed: {exc}", operation=operation
            ) from exc

        logger.debug(
            "chatbot_response",
            operation=operation,
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return response

    async def _call(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self.request(method, path, json=json, params=params, operation=operation)
        if not response.is_success:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text[:500]
            error = error_from_response(response.status_code, body, operation=operation)
            logger.info(
                "chatbot_error_response",
                operation=operation,
                status_code=response.status_code,
                kind=error.kind.value,
            )
            raise error
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ChatbotRequestError(
                f"{operation} returned invalid JSON",
                status_code=response.status_code,
                operation=operation,
            ) from exc

    @staticmethod
    def _parse(model: type[ModelT], data: Any, *, operation: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ChatbotRequestError(
                f"{operation} returned an unexpected payload",
                detail=exc.errors(),
                operation=operation,
            ) from exc

    @staticmethod
    def _path(campaign_id: str, endpoint: str) -> str:
        return f"/campaigns/{quote(campaign_id, safe='')}/chatbot/{endpoint}"

    # -- existence checks -------------------------------------------------------

    async def latest_completed(self, campaign_id: str) -> CompletedLookup | None:
        """Latest completed conversation for the campaign, or ``None`` on 404."""
        try:
            data = await self._call(
                "GET", self._path(campaign_id, "latest-completed"), operation="latest_completed"
            )
        except ConversationNotFoundError:
            return None
        return self._parse(CompletedLookup, data, operation="latest_completed")

    async def latest_conversation(self, campaign_id: str) -> LatestConversation | None:
        """Latest resumable conversation for the campaign, or ``None`` on 404."""
        try:
            data = await self._call("GET", self._path(campaign_id, "latest"), operation="latest")
        except ConversationNotFoundError:
            return None
        if not data:
            return None
        return self._parse(LatestConversation, data, operation="latest")

    # -- conversation lifecycle -------------------------------------------------

    async def start(self, campaign_id: str) -> StartResponse:
        data = await self._call("POST", self._path(campaign_id, "start"), json={}, operation="start")
        return self._parse(StartResponse, data, operation="start")

    async def send_message(
        self, campaign_id: str, conversation_id: str, message: str
    ) -> SendMessageResponse:
        data = await self._call(
            "POST",
            self._path(campaign_id, "message"),
            json={"conversation_id": conversation_id, "message": message},
            operation="send_message",
        )
        return self._parse(SendMessageResponse, data, operation="send_message")

    async def resume(self, campaign_id: str, conversation_id: str | None = None) -> ResumeResponse:
        body = {"conversation_id": conversation_id} if conversation_id else {}
        data = await self._call("POST", self._path(campaign_id, "resume"), json=body, operation="resume")
        return self._parse(ResumeResponse, data, operation="resume")

    async def complete(self, campaign_id: str, conversation_id: str) -> CompleteResponse:
        data = await self._call(
            "POST",
            self._path(campaign_id, "complete"),
            json={"conversation_id": conversation_id},
            operation="complete",
        )
        return self._parse(CompleteResponse, data, operation="complete")

    async def pause(self, campaign_id: str, conversation_id: str) -> dict[str, Any]:
        data = await self._call(
            "POST",
            self._path(campaign_id, "pause"),
            params={"conversation_id": conversation_id},
            operation="pause",
        )
        return data if isinstance(data, dict) else {"result": data}

    async def restart(self, campaign_id: str) -> RestartResponse:
        data = await self._call("POST", self._path(campaign_id, "restart"), json={}, operation="restart")
        return self._parse(RestartResponse, data, operation="restart")

    async def summary(self, campaign_id: str, conversation_id: str) -> SummaryPayload:
        data = await self._call(
            "GET",
            self._path(campaign_id, "summary"),
            params={"conversation_id": conversation_id},
            operation="summary",
        )
        return data if isinstance(data, dict) else {"summary": data}
