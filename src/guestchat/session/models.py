"""Session state for a single guest interview."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from guestchat.transport.schemas import SendMessageResponse

DEFAULT_PHASE = "introduction"

WELCOME_FALLBACK = (
    "Hi! I'm here to help you create your podcast guest profile for PipelineCast. "
    "Don't worry about getting everything perfect - you'll be able to edit your media kit "
    "after I generate it for you. Let's start with your name - what should I call you?"
)


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


class MessageStatus(str, Enum):
    """Delivery state of a message.

    User messages are appended as PENDING before the request is sent, then
    flipped in place to CONFIRMED or FAILED. Bot messages are always CONFIRMED.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class StartupState(str, Enum):
    """Startup resolution states; the last three are mutually exclusive outcomes."""

    CHECKING_COMPLETED = "checking_completed"
    CHECKING_RESUMABLE = "checking_resumable"
    ALREADY_COMPLETE = "already_complete"
    RESUMING = "resuming"
    IDLE_READY = "idle_ready"

    @property
    def is_resolved(self) -> bool:
        return self in (StartupState.ALREADY_COMPLETE, StartupState.RESUMING, StartupState.IDLE_READY)


class ResumeOutcome(str, Enum):
    RESUMED = "resumed"
    ALREADY_COMPLETE = "already_complete"
    FAILED = "failed"
    STALE = "stale"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    id: str
    text: str
    sender: Sender
    timestamp: datetime = field(default_factory=utc_now)
    quick_replies: Optional[List[str]] = None
    status: MessageStatus = MessageStatus.CONFIRMED

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(
            id=f"user-{uuid4().hex[:12]}",
            text=text,
            sender=Sender.USER,
            status=MessageStatus.PENDING,
        )

    @classmethod
    def bot(cls, text: str, quick_replies: Optional[List[str]] = None) -> "Message":
        return cls(id=f"bot-{uuid4().hex[:12]}", text=text, sender=Sender.BOT, quick_replies=quick_replies)

    @property
    def is_user(self) -> bool:
        return self.sender == Sender.USER


@dataclass
class ConversationSession:
    """Client-side mirror of one server-side conversation.

    The orchestrator is the only writer; everything else reads.
    ``epoch`` increments whenever the session adopts a new identity so late
    responses for an older identity can be recognised and dropped.
    """

    campaign_id: str
    conversation_id: Optional[str] = None
    messages: List[Message] = field(default_factory=list)
    progress: int = 0
    phase: str = DEFAULT_PHASE
    keywords_count: int = 0
    is_complete: bool = False
    connection_status: ConnectionStatus = ConnectionStatus.CONNECTING
    epoch: int = 0

    @property
    def last_bot_message(self) -> Optional[Message]:
        for message in reversed(self.messages):
            if message.sender == Sender.BOT:
                return message
        return None

    @property
    def current_quick_replies(self) -> List[str]:
        """Quick replies offered by the most recent bot message only."""
        last = self.last_bot_message
        return list(last.quick_replies or []) if last else []

    def adopt(self, conversation_id: str, messages: List[Message]) -> None:
        """Switch to a (new) server identity, replacing the message log."""
        self.conversation_id = conversation_id
        self.messages = messages
        self.epoch += 1

    def reset(self) -> None:
        """Discard everything learned about the current conversation."""
        self.conversation_id = None
        self.messages = []
        self.progress = 0
        self.phase = DEFAULT_PHASE
        self.keywords_count = 0
        self.is_complete = False
        self.epoch += 1


def clamp_progress(value: int) -> int:
    return max(0, min(100, int(value)))


@dataclass
class SendResult:
    """What a successful (or discarded) send produced.

    ``ready_for_completion`` is reported to the caller only; it never marks the
    session complete.
    """

    user_message: Message
    bot_message: Optional[Message] = None
    ready_for_completion: bool = False
    autosave_triggered: bool = False
    stale: bool = False
    response: Optional[SendMessageResponse] = None
