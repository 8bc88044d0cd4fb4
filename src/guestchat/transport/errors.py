"""Typed chatbot transport errors.

The backend signals three different situations through non-ok responses and the
orchestrator must branch on them without reading prose, so the transport layer
classifies every failure exactly once into a ``ChatbotErrorKind``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ChatbotErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_COMPLETE = "already_complete"
    OTHER = "other"


ALREADY_COMPLETE_CODES = frozenset({"conversation_already_complete", "already_complete"})
# Older backends only describe the condition in `detail`.
_ALREADY_COMPLETE_PHRASES = ("already complete", "has been completed")
# A 404 from these calls means "no such conversation" whatever the body says.
NOT_FOUND_OPERATIONS = frozenset({"send_message", "latest", "latest_completed"})


class ChatbotError(Exception):
    """Base class for failed chatbot requests."""

    kind: ChatbotErrorKind = ChatbotErrorKind.OTHER

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: Any = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.operation = operation


class ConversationNotFoundError(ChatbotError):
    """The conversation (or lookup target) does not exist on the backend."""

    kind = ChatbotErrorKind.NOT_FOUND


class ConversationAlreadyCompleteError(ChatbotError):
    """The backend refused the call because the conversation is finished."""

    kind = ChatbotErrorKind.ALREADY_COMPLETE


class ChatbotRequestError(ChatbotError):
    """Transient or operational failure (non-ok response or network error)."""

    kind = ChatbotErrorKind.OTHER


class ConfigurationError(Exception):
    """The chatbot backend cannot be built from the current settings."""


_ERROR_TYPES: dict[ChatbotErrorKind, type[ChatbotError]] = {
    ChatbotErrorKind.NOT_FOUND: ConversationNotFoundError,
    ChatbotErrorKind.ALREADY_COMPLETE: ConversationAlreadyCompleteError,
    ChatbotErrorKind.OTHER: ChatbotRequestError,
}


def _detail_text(detail: Any) -> str:
    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict):
        for key in ("detail", "message"):
            value = detail.get(key)
            if isinstance(value, str):
                return value
    return ""


def classify_error(
    status_code: int, body: Any, *, operation: str | None = None
) -> ChatbotErrorKind:
    """Map a non-ok response onto the error taxonomy.

    An already-complete marker in the body wins over the status code, so a
    resume rejected with 404 "has been completed" still routes to the completed
    branch. Operations in ``NOT_FOUND_OPERATIONS`` keep 404 as ``not_found``.
    """

    if status_code == 404 and operation in NOT_FOUND_OPERATIONS:
        return ChatbotErrorKind.NOT_FOUND

    if isinstance(body, dict):
        detail = body.get("detail")
        codes = [body.get("error"), body.get("code")]
        if isinstance(detail, dict):
            codes.extend([detail.get("error"), detail.get("code")])
        if any(isinstance(c, str) and c.lower() in ALREADY_COMPLETE_CODES for c in codes):
            return ChatbotErrorKind.ALREADY_COMPLETE
        text = _detail_text(detail).lower()
        if any(phrase in text for phrase in _ALREADY_COMPLETE_PHRASES):
            return ChatbotErrorKind.ALREADY_COMPLETE

    if status_code == 404:
        return ChatbotErrorKind.NOT_FOUND
    return ChatbotErrorKind.OTHER


def error_from_response(status_code: int, body: Any, *, operation: str) -> ChatbotError:
    """Build the typed exception for a failed response."""

    kind = classify_error(status_code, body, operation=operation)
    detail = body.get("detail", body) if isinstance(body, dict) else body
    message = _detail_text(detail) or f"{operation} failed with HTTP {status_code}"
    return _ERROR_TYPES[kind](
        message,
        status_code=status_code,
        detail=detail,
        operation=operation,
    )


__all__ = [
    "ChatbotErrorKind",
    "ChatbotError",
    "ConversationNotFoundError",
    "ConversationAlreadyCompleteError",
    "ChatbotRequestError",
    "ConfigurationError",
    "classify_error",
    "NOT_FOUND_OPERATIONS",
    "error_from_response",
]
