"""User-facing notices ("toasts") raised by the session orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Literal

from guestchat.observability.logging import get_logger

logger = get_logger("guestchat.notifications")

NoticeVariant = Literal["default", "destructive"]


@dataclass(frozen=True)
class Notice:
    title: str
    description: str
    variant: NoticeVariant = "default"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


NoticeSink = Callable[[Notice], None]


def log_notice(notice: Notice) -> None:
    """Default sink: notices become structured log lines."""
    log = logger.warning if notice.is_error else logger.info
    log("notice", title=notice.title, description=notice.description, variant=notice.variant)


class NoticeCollector:
    """Sink that keeps every notice, for presentation layers that poll."""

    def __init__(self) -> None:
        self.notices: List[Notice] = []

    def __call__(self, notice: Notice) -> None:
        self.notices.append(notice)

    @property
    def titles(self) -> List[str]:
        return [n.title for n in self.notices]

    def clear(self) -> None:
        self.notices.clear()


# Notice texts shown to the guest.
CONNECTION_ERROR = Notice(
    "Connection Error", "Unable to start conversation. Please try again.", "destructive"
)
MESSAGE_ERROR = Notice("Message Error", "Failed to send message. Please try again.", "destructive")
RESUMED = Notice("Conversation resumed", "Welcome back! Let's continue where we left off.")
RESUME_FAILED = Notice(
    "Resume Failed", "Could not resume previous conversation. Starting new one.", "destructive"
)
RESTARTED = Notice(
    "New Conversation Started", "Let's start fresh! Your previous responses have been saved."
)
RESTART_FAILED = Notice(
    "Restart Failed", "Unable to restart the conversation. Please try again.", "destructive"
)


def continuing_notice(message_count: int) -> Notice:
    return Notice("Continuing conversation", f"{message_count} messages loaded")


def completed_notice(keywords_extracted: int) -> Notice:
    return Notice(
        "Profile Complete!",
        f"Successfully extracted {keywords_extracted} keywords and generated your media kit.",
    )


def paused_notice(message_count: int) -> Notice:
    return Notice("Conversation Paused", f"{message_count} messages saved. You can resume anytime.")
