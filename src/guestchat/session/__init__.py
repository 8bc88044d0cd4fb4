"""Interview session state and its orchestrator."""

from guestchat.session.checkpoints import (
    CheckpointStore,
    PausedCheckpoint,
    ProgressCheckpoint,
    paused_key,
    progress_key,
)
from guestchat.session.models import (
    ConnectionStatus,
    ConversationSession,
    Message,
    MessageStatus,
    ResumeOutcome,
    SendResult,
    Sender,
    StartupState,
)
from guestchat.session.operations import Operation, OperationStatus, OperationTracker
from guestchat.session.orchestrator import (
    ConversationClosedError,
    ConversationOrchestrator,
    NoActiveConversationError,
    PreconditionError,
)
from guestchat.session.scheduler import ScheduledTask, TaskState

__all__ = [
    "CheckpointStore",
    "ConnectionStatus",
    "ConversationClosedError",
    "ConversationOrchestrator",
    "ConversationSession",
    "Message",
    "MessageStatus",
    "NoActiveConversationError",
    "Operation",
    "OperationStatus",
    "OperationTracker",
    "PausedCheckpoint",
    "PreconditionError",
    "ProgressCheckpoint",
    "ResumeOutcome",
    "ScheduledTask",
    "SendResult",
    "Sender",
    "StartupState",
    "TaskState",
    "paused_key",
    "progress_key",
]
