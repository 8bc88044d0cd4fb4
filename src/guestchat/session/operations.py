"""Per-operation pending/error status so a UI can disable controls individually."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, Optional

from guestchat.transport.errors import ChatbotErrorKind


class Operation(str, Enum):
    START = "start"
    SEND = "send"
    RESUME = "resume"
    COMPLETE = "complete"
    PAUSE = "pause"
    RESTART = "restart"
    SUMMARY = "summary"


# Operations that count towards the aggregate "busy" flag.
LOADING_OPERATIONS = frozenset(
    {Operation.SEND, Operation.START, Operation.COMPLETE, Operation.PAUSE, Operation.RESTART}
)


@dataclass
class OperationStatus:
    pending: bool = False
    error: Optional[str] = None
    error_kind: Optional[ChatbotErrorKind] = None
    calls: int = 0

    @property
    def failed(self) -> bool:
        return self.error is not None


class OperationTracker:
    def __init__(self) -> None:
        self._statuses: Dict[Operation, OperationStatus] = {op: OperationStatus() for op in Operation}

    def get(self, operation: Operation) -> OperationStatus:
        return self._statuses[operation]

    def snapshot(self) -> Dict[str, OperationStatus]:
        return {op.value: OperationStatus(**vars(st)) for op, st in self._statuses.items()}

    @property
    def is_loading(self) -> bool:
        return any(self._statuses[op].pending for op in LOADING_OPERATIONS)

    def record_error(self, operation: Operation, exc: BaseException) -> None:
        status = self._statuses[operation]
        status.error = str(exc) or type(exc).__name__
        status.error_kind = getattr(exc, "kind", None)

    @asynccontextmanager
    async def track(self, operation: Operation) -> AsyncIterator[OperationStatus]:
        status = self._statuses[operation]
        status.pending = True
        status.error = None
        status.error_kind = None
        status.calls += 1
        try:
            yield status
        except Exception as exc:
            self.record_error(operation, exc)
            raise
        finally:
            status.pending = False
