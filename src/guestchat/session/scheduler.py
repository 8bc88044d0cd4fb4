"""Cancellable single-shot scheduled task owned by an orchestrator instance."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from guestchat.observability.logging import get_logger

logger = get_logger("guestchat.session.scheduler")


class TaskState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    FIRED = "fired"


class ScheduledTask:
    """Run ``callback`` once after ``delay`` seconds unless cancelled first.

    ``should_run`` is evaluated when the delay elapses, not when the task is
    armed, so the callback only runs against the state current at fire time.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Awaitable[None]],
        *,
        should_run: Callable[[], bool] = lambda: True,
        name: str = "scheduled-task",
    ) -> None:
        self.delay = delay
        self.name = name
        self._callback = callback
        self._should_run = should_run
        self._task: Optional[asyncio.Task[None]] = None
        self.state = TaskState.IDLE
        self.error: Optional[BaseException] = None

    @property
    def pending(self) -> bool:
        return self.state == TaskState.PENDING

    def start(self) -> "ScheduledTask":
        if self._task is not None:
            raise RuntimeError(f"{self.name} was already started")
        self.state = TaskState.PENDING
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self

    def cancel(self) -> bool:
        """Cancel before firing; returns False once the callback has begun."""
        if self.state != TaskState.PENDING:
            return False
        self.state = TaskState.CANCELLED
        if self._task is not None:
            self._task.cancel()
        logger.debug("scheduled_task_cancelled", task=self.name)
        return True

    async def wait(self) -> None:
        """Wait for the task to finish (fire, skip or cancel)."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        if self.state != TaskState.PENDING:
            return
        if not self._should_run():
            self.state = TaskState.SKIPPED
            logger.info("scheduled_task_skipped", task=self.name)
            return
        self.state = TaskState.FIRED
        try:
            await self._callback()
        except Exception as exc:
            self.error = exc
            logger.warning("scheduled_task_failed", task=self.name, error=str(exc))
