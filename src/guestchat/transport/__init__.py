"""Chatbot transport: HTTP client, typed errors, wire schemas and a fake backend."""

from guestchat.transport.client import ChatbotClient
from guestchat.transport.errors import (
    ChatbotError,
    ChatbotErrorKind,
    ChatbotRequestError,
    ConfigurationError,
    ConversationAlreadyCompleteError,
    ConversationNotFoundError,
)
from guestchat.transport.factory import get_chatbot_client
from guestchat.transport.fake import FakeChatbotBackend

__all__ = [
    "ChatbotClient",
    "ChatbotError",
    "ChatbotErrorKind",
    "ChatbotRequestError",
    "ConfigurationError",
    "ConversationAlreadyCompleteError",
    "ConversationNotFoundError",
    "FakeChatbotBackend",
    "get_chatbot_client",
]
