"""Pydantic models for the chatbot wire payloads.

Only the fields the session orchestrator reads are declared; anything else the
backend sends is kept (``extra="allow"``) so callers can still inspect it.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")


class KeywordBuckets(_Payload):
    explicit: List[str] = Field(default_factory=list)
    implicit: List[str] = Field(default_factory=list)
    contextual: List[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.explicit) + len(self.implicit) + len(self.contextual)


class ExtractedData(_Payload):
    keywords: Optional[KeywordBuckets] = None
    entities: Optional[Dict[str, List[str]]] = None


class CompletedLookup(_Payload):
    found: bool = False
    conversation_id: Optional[str] = None


class LatestConversation(_Payload):
    conversation_id: Optional[str] = None
    is_complete: bool = False


class StartResponse(_Payload):
    conversation_id: str
    initial_message: Optional[str] = None


class SendMessageResponse(_Payload):
    bot_message: str = ""
    quick_replies: Optional[List[str]] = None
    progress: Optional[int] = None
    phase: Optional[str] = None
    keywords_found: Optional[int | List[str]] = None
    ready_for_completion: bool = False
    extracted_data: Optional[ExtractedData] = None

    @property
    def keywords_found_count(self) -> int:
        if isinstance(self.keywords_found, list):
            return len(self.keywords_found)
        return self.keywords_found or 0


class ResumedMessage(_Payload):
    type: str = "bot"
    content: str = ""
    timestamp: Optional[datetime] = None


class ResumeResponse(_Payload):
    conversation_id: Optional[str] = None
    is_complete: bool = False
    messages: List[ResumedMessage] = Field(default_factory=list)
    progress: Optional[int] = None
    phase: Optional[str] = None
    extracted_data: Optional[ExtractedData] = None
    already_active: bool = False
    message_count: Optional[int] = None


class CompleteResponse(_Payload):
    keywords_extracted: Optional[int] = None


class RestartResponse(StartResponse):
    pass


SummaryPayload = Dict[str, Any]
