"""Conversation session orchestrator.

Owns the lifecycle of one guest's interview for one campaign:

1. ``initialize()`` runs the two startup lookups (latest completed, latest
   resumable) concurrently, waits for both, and resolves to exactly one of
   ``ALREADY_COMPLETE``, ``RESUMING`` or ``IDLE_READY``.
2. From ``IDLE_READY`` a new conversation is started after a short,
   cancellable delay, unless a conversation appears in the meantime.
3. Afterwards every public operation performs one backend call and applies a
   deterministic state transition, keeping local checkpoints in step.

Responses are tagged with the session epoch they were issued against; a
response that arrives after the session switched identity is discarded.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, List, Optional

import anyio

from guestchat.notifications import (
    CONNECTION_ERROR,
    MESSAGE_ERROR,
    RESTART_FAILED,
    RESTARTED,
    RESUME_FAILED,
    RESUMED,
    Notice,
    NoticeSink,
    completed_notice,
    continuing_notice,
    log_notice,
    paused_notice,
)
from guestchat.observability.logging import bind_session_context, get_logger
from guestchat.retry import AsyncRetryConfig, async_with_retry
from guestchat.session.checkpoints import CheckpointStore, PausedCheckpoint, ProgressCheckpoint
from guestchat.session.models import (
    DEFAULT_PHASE,
    WELCOME_FALLBACK,
    ConnectionStatus,
    ConversationSession,
    Message,
    MessageStatus,
    ResumeOutcome,
    SendResult,
    Sender,
    StartupState,
    clamp_progress,
    utc_now,
)
from guestchat.session.operations import Operation, OperationStatus, OperationTracker
from guestchat.session.scheduler import ScheduledTask
from guestchat.transport.client import ChatbotClient
from guestchat.transport.errors import (
    ChatbotError,
    ChatbotRequestError,
    ConversationAlreadyCompleteError,
    ConversationNotFoundError,
)
from guestchat.transport.schemas import (
    CompletedLookup,
    CompleteResponse,
    LatestConversation,
    ResumeResponse,
)

logger = get_logger(__name__)

StateListener = Callable[[ConversationSession], None]


class PreconditionError(RuntimeError):
    """An operation was invoked in a state where it is not allowed."""


class NoActiveConversationError(PreconditionError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"No active conversation: cannot {operation}")


class ConversationClosedError(PreconditionError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"Conversation is complete: cannot {operation}")


class ConversationOrchestrator:
    """Drives one campaign's interview session against the chatbot backend."""

    def __init__(
        self,
        campaign_id: str,
        client: ChatbotClient,
        *,
        checkpoints: CheckpointStore,
        onboarding: bool = False,
        auto_start_delay: float = 2.0,
        autosave_message_interval: int = 10,
        autosave_interval_seconds: float = 300.0,
        existence_check_attempts: int = 2,
        notify: NoticeSink | None = None,
        clock: Callable[[], float] = time.monotonic,
        owns_client: bool = False,
    ) -> None:
        if not campaign_id:
            raise ValueError("campaign_id is required")
        self.campaign_id = campaign_id
        self.onboarding = onboarding
        self.auto_start_delay = auto_start_delay
        self.autosave_message_interval = autosave_message_interval
        self.autosave_interval_seconds = autosave_interval_seconds
        self._client = client
        self._checkpoints = checkpoints
        self._notify_sink = notify or log_notice
        self._clock = clock
        self._owns_client = owns_client
        self._lookup_retry = AsyncRetryConfig(
            attempts=existence_check_attempts,
            backoff_seconds=0.5,
            retry_on=(ChatbotRequestError,),
        )

        self._session = ConversationSession(campaign_id=campaign_id)
        self._ops = OperationTracker()
        self._startup_state: Optional[StartupState] = None
        self._auto_start: Optional[ScheduledTask] = None
        self._listeners: List[StateListener] = []
        self._resumed = False
        self._closed = False

        self._messages_since_autosave = 0
        self._last_autosave_at = clock()
        self.autosave_count = 0

    @classmethod
    def from_settings(
        cls,
        campaign_id: str,
        *,
        onboarding: bool | None = None,
        client: ChatbotClient | None = None,
        notify: NoticeSink | None = None,
        config: Any = None,
    ) -> "ConversationOrchestrator":
        """Build an orchestrator (and, unless given, its client) from settings."""
        from guestchat.config import settings as default_settings
        from guestchat.transport.factory import get_chatbot_client

        cfg = config or default_settings
        return cls(
            campaign_id,
            client or get_chatbot_client(cfg),
            checkpoints=CheckpointStore(cfg.checkpoint_path),
            onboarding=cfg.onboarding_mode if onboarding is None else onboarding,
            auto_start_delay=cfg.auto_start_delay_seconds,
            autosave_message_interval=cfg.autosave_message_interval,
            autosave_interval_seconds=cfg.autosave_interval_seconds,
            existence_check_attempts=cfg.existence_check_attempts,
            notify=notify,
            owns_client=client is None,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def session(self) -> ConversationSession:
        return self._session

    @property
    def conversation_id(self) -> Optional[str]:
        return self._session.conversation_id

    @property
    def messages(self) -> List[Message]:
        return list(self._session.messages)

    @property
    def progress(self) -> int:
        return self._session.progress

    @property
    def phase(self) -> str:
        return self._session.phase

    @property
    def keywords_count(self) -> int:
        return self._session.keywords_count

    @property
    def is_complete(self) -> bool:
        return self._session.is_complete

    @property
    def connection_status(self) -> ConnectionStatus:
        return self._session.connection_status

    @property
    def startup_state(self) -> Optional[StartupState]:
        return self._startup_state

    @property
    def current_quick_replies(self) -> List[str]:
        return self._session.current_quick_replies

    @property
    def is_resumed(self) -> bool:
        return self._resumed

    @property
    def is_loading(self) -> bool:
        return self._ops.is_loading

    @property
    def auto_start_task(self) -> Optional[ScheduledTask]:
        return self._auto_start

    def operation_status(self, operation: Operation) -> OperationStatus:
        return self._ops.get(operation)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` after every state change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "ConversationOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.aclose()

    async def aclose(self) -> None:
        """Cancel the pending auto-start and release the client if we own it."""
        if self._closed:
            return
        self._closed = True
        self._cancel_auto_start()
        if self._owns_client:
            await self._client.aclose()

    async def initialize(self) -> StartupState:
        """Resolve the startup mode: already complete, resume, or start fresh."""
        self._ensure_open()
        bind_session_context(self.campaign_id)
        self._session.connection_status = ConnectionStatus.CONNECTING
        self._startup_state = (
            StartupState.CHECKING_COMPLETED if self.onboarding else StartupState.CHECKING_RESUMABLE
        )
        self._changed()

        # Both lookups run concurrently; the decision waits for both.
        completed, latest = await asyncio.gather(self._lookup_completed(), self._lookup_latest())

        if self.onboarding and completed is not None and completed.found:
            self._mark_complete()
            return self._resolve(StartupState.ALREADY_COMPLETE, reason="completed_lookup")

        self._startup_state = StartupState.CHECKING_RESUMABLE
        if latest is None:
            self._session.connection_status = ConnectionStatus.CONNECTED
            self._changed()
            self._maybe_arm_auto_start()
            return self._resolve(StartupState.IDLE_READY, reason="no_resumable")

        if latest.is_complete:
            self._mark_complete()
            return self._resolve(StartupState.ALREADY_COMPLETE, reason="latest_is_complete")

        self._startup_state = StartupState.RESUMING
        outcome = await self.resume_conversation(latest.conversation_id)
        if outcome == ResumeOutcome.ALREADY_COMPLETE:
            return self._resolve(StartupState.ALREADY_COMPLETE, reason="resume_reported_complete")
        if outcome == ResumeOutcome.RESUMED:
            return self._resolve(StartupState.RESUMING, reason="resumed")
        self._maybe_arm_auto_start()
        return self._resolve(StartupState.IDLE_READY, reason=f"resume_{outcome.value}")

    def _resolve(self, state: StartupState, *, reason: str) -> StartupState:
        self._startup_state = state
        logger.info(
            "startup_resolved",
            state=state.value,
            reason=reason,
            onboarding=self.onboarding,
            message_count=len(self._session.messages),
        )
        self._changed()
        return state

    async def _lookup_completed(self) -> Optional[CompletedLookup]:
        if not self.onboarding:
            return None
        try:
            return await async_with_retry(
                lambda: self._client.latest_completed(self.campaign_id), self._lookup_retry
            )
        except ChatbotError as exc:
            logger.warning("completed_lookup_failed", error=str(exc), status_code=exc.status_code)
            return None

    async def _lookup_latest(self) -> Optional[LatestConversation]:
        try:
            return await async_with_retry(
                lambda: self._client.latest_conversation(self.campaign_id), self._lookup_retry
            )
        except ChatbotError as exc:
            logger.warning("resumable_lookup_failed", error=str(exc), status_code=exc.status_code)
            return None

    # ------------------------------------------------------------------
    # Auto-start
    # ------------------------------------------------------------------

    def _auto_start_allowed(self) -> bool:
        return (
            not self._closed
            and self._session.conversation_id is None
            and self._session.connection_status == ConnectionStatus.CONNECTED
            and not self._session.is_complete
        )

    def _maybe_arm_auto_start(self) -> None:
        if not self._auto_start_allowed():
            return
        if self._auto_start is not None and self._auto_start.pending:
            return
        self._auto_start = ScheduledTask(
            self.auto_start_delay,
            self._auto_start_fire,
            should_run=self._auto_start_allowed,
            name=f"auto-start:{self.campaign_id}",
        ).start()
        logger.info("auto_start_armed", delay_seconds=self.auto_start_delay)

    async def _auto_start_fire(self) -> None:
        logger.info("auto_start_fired")
        await self.start_conversation()

    def _cancel_auto_start(self) -> None:
        if self._auto_start is not None:
            self._auto_start.cancel()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def start_conversation(self) -> Optional[str]:
        """Create a conversation; returns its id, or None if the reply arrived stale."""
        self._ensure_open()
        if self._session.is_complete:
            raise ConversationClosedError("start a conversation")

        epoch = self._session.epoch
        async with self._ops.track(Operation.START):
            try:
                response = await self._client.start(self.campaign_id)
            except ChatbotError:
                self._session.connection_status = ConnectionStatus.ERROR
                self._notify(CONNECTION_ERROR)
                self._changed()
                raise

        if self._is_stale(epoch, "start"):
            return None

        self._adopt_fresh(response.conversation_id, response.initial_message)
        logger.info("conversation_started", conversation_id=response.conversation_id)
        self._changed()
        return response.conversation_id

    async def send_message(self, text: str) -> SendResult:
        """Append the guest's message optimistically, then the bot's reply.

        Raises ``ConversationNotFoundError`` when the backend no longer knows the
        conversation (terminal), ``ChatbotRequestError`` for retryable failures.
        The user's message stays in the log in both cases, marked FAILED.
        """
        self._ensure_open()
        if not text or not text.strip():
            raise ValueError("Message text must not be empty")
        if self._session.is_complete:
            raise ConversationClosedError("send a message")
        conversation_id = self._session.conversation_id
        if conversation_id is None:
            raise NoActiveConversationError("send a message")

        epoch = self._session.epoch
        user_message = Message.user(text)
        self._session.messages.append(user_message)
        self._changed()

        async with self._ops.track(Operation.SEND):
            try:
                response = await self._client.send_message(self.campaign_id, conversation_id, text)
            except ConversationNotFoundError:
                user_message.status = MessageStatus.FAILED
                logger.warning("conversation_gone", conversation_id=conversation_id)
                self._changed()
                raise
            except ChatbotError:
                user_message.status = MessageStatus.FAILED
                self._notify(MESSAGE_ERROR)
                self._changed()
                raise

        if self._is_stale(epoch, "send_message"):
            return SendResult(user_message=user_message, stale=True, response=response)

        user_message.status = MessageStatus.CONFIRMED
        bot_message = Message.bot(response.bot_message, response.quick_replies)
        self._session.messages.append(bot_message)
        self._messages_since_autosave += 2

        if response.progress is not None:
            self._session.progress = clamp_progress(response.progress)
        if response.phase:
            self._session.phase = response.phase
        self._session.keywords_count += response.keywords_found_count

        await self._save_progress()
        autosave = self._autosave_due()
        if autosave:
            self._signal_autosave()

        logger.info(
            "message_sent",
            progress=self._session.progress,
            phase=self._session.phase,
            ready_for_completion=response.ready_for_completion,
        )
        self._changed()
        return SendResult(
            user_message=user_message,
            bot_message=bot_message,
            ready_for_completion=response.ready_for_completion,
            autosave_triggered=autosave,
            response=response,
        )

    async def resume_conversation(self, conversation_id: Optional[str] = None) -> ResumeOutcome:
        """Reload a conversation from the backend.

        Never raises for backend failures: "already complete" routes to the
        completed state, any other failure leaves the session connected so a
        new conversation can still be started. A completed session stays
        completed; only a restart leaves it.
        """
        self._ensure_open()
        if self._session.is_complete:
            raise ConversationClosedError("resume the conversation")
        epoch = self._session.epoch
        async with self._ops.track(Operation.RESUME):
            try:
                response = await self._client.resume(self.campaign_id, conversation_id)
            except ConversationAlreadyCompleteError:
                logger.info("resume_already_complete", requested_id=conversation_id)
                if self._is_stale(epoch, "resume"):
                    return ResumeOutcome.STALE
                self._mark_complete()
                return ResumeOutcome.ALREADY_COMPLETE
            except ChatbotError as exc:
                self._ops.record_error(Operation.RESUME, exc)
                return self._resume_failed(epoch, exc)

            if self._is_stale(epoch, "resume"):
                return ResumeOutcome.STALE
            if response.is_complete:
                self._mark_complete()
                return ResumeOutcome.ALREADY_COMPLETE

            resolved_id = response.conversation_id or conversation_id
            if not resolved_id:
                exc = ChatbotRequestError("resume returned no conversation id", operation="resume")
                self._ops.record_error(Operation.RESUME, exc)
                return self._resume_failed(epoch, exc)

            await self._apply_resume(resolved_id, response)
        return ResumeOutcome.RESUMED

    def _resume_failed(self, epoch: int, exc: ChatbotError) -> ResumeOutcome:
        logger.warning("resume_failed", error=str(exc), status_code=exc.status_code)
        if self._is_stale(epoch, "resume"):
            return ResumeOutcome.STALE
        self._session.connection_status = ConnectionStatus.CONNECTED
        self._notify(RESUME_FAILED)
        self._changed()
        self._maybe_arm_auto_start()
        return ResumeOutcome.FAILED

    async def _apply_resume(self, conversation_id: str, response: ResumeResponse) -> None:
        messages = [
            Message(
                id=f"msg-{index}-{conversation_id}",
                text=item.content,
                sender=Sender.USER if item.type == "user" else Sender.BOT,
                timestamp=item.timestamp or utc_now(),
            )
            for index, item in enumerate(response.messages)
        ]
        session = self._session
        session.adopt(conversation_id, messages)
        session.progress = clamp_progress(response.progress or 0)
        session.phase = response.phase or DEFAULT_PHASE
        keywords = response.extracted_data.keywords if response.extracted_data else None
        session.keywords_count = keywords.total if keywords else 0
        session.connection_status = ConnectionStatus.CONNECTED
        self._resumed = True
        self._messages_since_autosave = 0
        self._cancel_auto_start()
        bind_session_context(self.campaign_id, conversation_id)
        await self._save_progress()

        if response.already_active:
            count = response.message_count if response.message_count is not None else len(messages)
            self._notify(continuing_notice(count))
        else:
            self._notify(RESUMED)
        logger.info(
            "conversation_resumed",
            conversation_id=conversation_id,
            message_count=len(messages),
            progress=session.progress,
        )
        self._changed()

    async def complete_conversation(self) -> CompleteResponse:
        """Finish the interview; the session becomes immutable until a restart."""
        self._ensure_open()
        if self._session.is_complete:
            raise ConversationClosedError("complete the conversation")
        conversation_id = self._session.conversation_id
        if conversation_id is None:
            raise NoActiveConversationError("complete the conversation")

        epoch = self._session.epoch
        async with self._ops.track(Operation.COMPLETE):
            response = await self._client.complete(self.campaign_id, conversation_id)

        if self._is_stale(epoch, "complete"):
            return response

        self._mark_complete()
        await self._write(self._checkpoints.clear_progress, self.campaign_id)
        extracted = (
            response.keywords_extracted
            if response.keywords_extracted is not None
            else self._session.keywords_count
        )
        self._notify(completed_notice(extracted))
        logger.info("conversation_completed", keywords_extracted=extracted)
        return response

    async def pause_conversation(self) -> dict[str, Any]:
        """Pause on the backend and record a paused checkpoint; messages are untouched."""
        self._ensure_open()
        if self._session.is_complete:
            raise ConversationClosedError("pause the conversation")
        conversation_id = self._session.conversation_id
        if conversation_id is None:
            raise NoActiveConversationError("pause the conversation")

        epoch = self._session.epoch
        async with self._ops.track(Operation.PAUSE):
            ack = await self._client.pause(self.campaign_id, conversation_id)

        if self._is_stale(epoch, "pause"):
            return ack

        message_count = len(self._session.messages)
        paused = PausedCheckpoint(
            conversation_id=conversation_id,
            message_count=message_count,
            progress=self._session.progress,
        )
        await self._write(self._checkpoints.save_paused, self.campaign_id, paused)
        self._notify(paused_notice(message_count))
        logger.info("conversation_paused", message_count=message_count)
        return ack

    async def restart_conversation(self) -> str:
        """Discard everything local and begin a brand-new conversation.

        The only way out of a completed session.
        """
        self._ensure_open()
        previous_id = self._session.conversation_id
        async with self._ops.track(Operation.RESTART):
            try:
                response = await self._client.restart(self.campaign_id)
            except ChatbotError:
                self._notify(RESTART_FAILED)
                raise

        self._session.reset()
        self._resumed = False
        self._adopt_fresh(response.conversation_id, response.initial_message)
        await self._write(self._checkpoints.clear_all, self.campaign_id)
        self._notify(RESTARTED)
        logger.info(
            "conversation_restarted",
            previous_conversation_id=previous_id,
            conversation_id=response.conversation_id,
        )
        self._changed()
        return response.conversation_id

    async def get_summary(self) -> Optional[dict[str, Any]]:
        """Fetch the backend summary; None when there is no conversation or the call fails."""
        self._ensure_open()
        conversation_id = self._session.conversation_id
        if conversation_id is None:
            return None
        async with self._ops.track(Operation.SUMMARY):
            try:
                return await self._client.summary(self.campaign_id, conversation_id)
            except ChatbotError as exc:
                self._ops.record_error(Operation.SUMMARY, exc)
                logger.warning("summary_failed", error=str(exc), status_code=exc.status_code)
                return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Orchestrator is closed")

    def _is_stale(self, epoch: int, operation: str) -> bool:
        if epoch == self._session.epoch:
            return False
        logger.warning(
            "stale_response_discarded",
            operation=operation,
            issued_epoch=epoch,
            current_epoch=self._session.epoch,
        )
        return True

    def _adopt_fresh(self, conversation_id: str, initial_message: Optional[str]) -> None:
        self._session.adopt(conversation_id, [Message.bot(initial_message or WELCOME_FALLBACK)])
        self._session.connection_status = ConnectionStatus.CONNECTED
        self._messages_since_autosave = 0
        self._cancel_auto_start()
        bind_session_context(self.campaign_id, conversation_id)

    def _mark_complete(self) -> None:
        self._session.is_complete = True
        self._session.connection_status = ConnectionStatus.CONNECTED
        self._cancel_auto_start()
        self._changed()

    async def _save_progress(self) -> None:
        checkpoint = ProgressCheckpoint(
            conversation_id=self._session.conversation_id,
            progress=self._session.progress,
            phase=self._session.phase,
        )
        await self._write(self._checkpoints.save_progress, self.campaign_id, checkpoint)

    async def _write(self, fn: Callable[..., Any], *args: Any) -> None:
        # Checkpoint files are written on a worker thread; the in-memory transition is already applied.
        await anyio.to_thread.run_sync(fn, *args)

    def _autosave_due(self) -> bool:
        return (
            self._messages_since_autosave >= self.autosave_message_interval
            or self._clock() - self._last_autosave_at > self.autosave_interval_seconds
        )

    def _signal_autosave(self) -> None:
        # Durability comes from the checkpoint written after every reply; this only
        # keeps the cadence downstream cues rely on.
        self._last_autosave_at = self._clock()
        self._messages_since_autosave = 0
        self.autosave_count += 1
        logger.info("autosave_triggered", autosave_count=self.autosave_count)

    def _notify(self, notice: Notice) -> None:
        self._notify_sink(notice)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self._session)
