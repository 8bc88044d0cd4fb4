"""Deterministic in-memory chatbot backend for offline runs and tests.

``FakeChatbotBackend`` is an ``httpx.MockTransport`` handler implementing the
same nine endpoints as the real service, so the production ``ChatbotClient``
code path (URL building, auth headers, error classification) is exercised
unchanged.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

_ROUTE = re.compile(r"/campaigns/(?P<campaign>[^/]+)/chatbot/(?P<endpoint>[a-z-]+)$")

PHASES = ("introduction", "background", "expertise", "topics", "audience", "wrap_up")

FAKE_WELCOME = "Welcome! Let's build your guest profile. What should I call you?"

_QUESTIONS = {
    "introduction": ("Nice to meet you! What do you do today?", ["Founder", "Executive", "Consultant"]),
    "background": ("How did you get into that line of work?", None),
    "expertise": ("Which topics could you talk about for an hour?", None),
    "topics": ("Any stories or results you like to share on air?", None),
    "audience": ("Who is the ideal listener for your episodes?", ["Founders", "Operators", "Investors"]),
    "wrap_up": ("Thanks! Does this summary look right to you?", ["Looks good", "Needs changes"]),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class FakeConversation:
    conversation_id: str
    campaign_id: str
    messages: List[Dict[str, Any]] = field(default_factory=list)
    progress: int = 0
    phase: str = "introduction"
    keywords: Dict[str, List[str]] = field(
        default_factory=lambda: {"explicit": [], "implicit": [], "contextual": []}
    )
    user_turns: int = 0
    is_complete: bool = False
    paused: bool = False

    @property
    def keyword_total(self) -> int:
        return sum(len(v) for v in self.keywords.values())


@dataclass
class _InjectedFailure:
    status_code: int
    body: Any


class FakeChatbotBackend:
    """Minimal stand-in for the chatbot service with deterministic outputs."""

    def __init__(self, *, ready_after_messages: int = 6, progress_step: int = 15) -> None:
        self.ready_after_messages = ready_after_messages
        self.progress_step = progress_step
        self.conversations: Dict[str, FakeConversation] = {}
        self.requests: List[Dict[str, Any]] = []
        self._order: List[str] = []
        self._counter = 0
        self._failures: Dict[str, List[_InjectedFailure]] = {}

    # -- test hooks -------------------------------------------------------------

    def fail_next(self, endpoint: str, status_code: int = 500, body: Any = None) -> None:
        """Make the next call to ``endpoint`` fail with the given response."""
        payload = body if body is not None else {"detail": "Injected failure"}
        self._failures.setdefault(endpoint, []).append(_InjectedFailure(status_code, payload))

    def seed_conversation(self, campaign_id: str, **overrides: Any) -> FakeConversation:
        """Create a conversation without going through ``start``."""
        conv = self._new_conversation(campaign_id)
        for key, value in overrides.items():
            setattr(conv, key, value)
        return conv

    def calls(self, endpoint: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["endpoint"] == endpoint]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    # -- dispatch ---------------------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        match = _ROUTE.search(request.url.path)
        if match is None:
            return httpx.Response(404, json={"detail": "Not Found"})

        campaign_id = match.group("campaign")
        endpoint = match.group("endpoint")
        body: Dict[str, Any] = {}
        if request.content:
            try:
                body = json.loads(request.content)
            except ValueError:
                return httpx.Response(422, json={"detail": "Invalid JSON body"})
        params = dict(request.url.params)
        self.requests.append(
            {
                "method": request.method,
                "endpoint": endpoint,
                "campaign_id": campaign_id,
                "body": body,
                "params": params,
                "authorization": request.headers.get("Authorization"),
            }
        )

        pending = self._failures.get(endpoint)
        if pending:
            failure = pending.pop(0)
            return httpx.Response(failure.status_code, json=failure.body)

        handler = getattr(self, "_handle_" + endpoint.replace("-", "_"), None)
        if handler is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        return handler(campaign_id, body, params)

    # -- helpers ----------------------------------------------------------------

    def _new_conversation(self, campaign_id: str) -> FakeConversation:
        self._counter += 1
        conv = FakeConversation(conversation_id=f"conv-{self._counter}", campaign_id=campaign_id)
        conv.messages.append({"type": "bot", "content": FAKE_WELCOME, "timestamp": _now()})
        self.conversations[conv.conversation_id] = conv
        self._order.append(conv.conversation_id)
        return conv

    def _latest(self, campaign_id: str, *, complete: Optional[bool] = None) -> Optional[FakeConversation]:
        for conversation_id in reversed(self._order):
            conv = self.conversations[conversation_id]
            if conv.campaign_id != campaign_id:
                continue
            if complete is None or conv.is_complete == complete:
                return conv
        return None

    def _lookup(self, campaign_id: str, conversation_id: Any) -> Optional[FakeConversation]:
        conv = self.conversations.get(str(conversation_id)) if conversation_id else None
        if conv is None or conv.campaign_id != campaign_id:
            return None
        return conv

    @staticmethod
    def _not_found(detail: str = "Conversation not found") -> httpx.Response:
        return httpx.Response(404, json={"detail": detail})

    @staticmethod
    def _already_complete() -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "error": "conversation_already_complete",
                "detail": "Conversation has been completed",
            },
        )

    # -- endpoints --------------------------------------------------------------

    def _handle_latest_completed(self, campaign_id: str, _body: Dict[str, Any], _params: Dict[str, str]) -> httpx.Response:
        conv = self._latest(campaign_id, complete=True)
        if conv is None:
            return self._not_found("No completed conversation")
        return httpx.Response(
            200,
            json={"found": True, "conversation_id": conv.conversation_id, "progress": conv.progress},
        )

    def _handle_latest(self, campaign_id: str, _body: Dict[str, Any], _params: Dict[str, str]) -> httpx.Response:
        conv = self._latest(campaign_id)
        if conv is None:
            return self._not_found("No conversation for campaign")
        return httpx.Response(
            200,
            json={
                "conversation_id": conv.conversation_id,
                "is_complete": conv.is_complete,
                "progress": conv.progress,
                "phase": conv.phase,
                "message_count": len(conv.messages),
            },
        )

    def _handle_start(self, campaign_id: str, _body: Dict[str, Any], _params: Dict[str, str]) -> httpx.Response:
        conv = self._new_conversation(campaign_id)
        return httpx.Response(
            200, json={"conversation_id": conv.conversation_id, "initial_message": FAKE_WELCOME}
        )

    def _handle_restart(self, campaign_id: str, body: Dict[str, Any], params: Dict[str, str]) -> httpx.Response:
        return self._handle_start(campaign_id, body, params)

    def _handle_message(self, campaign_id: str, body: Dict[str, Any], _params: Dict[str, str]) -> httpx.Response:
        conv = self._lookup(campaign_id, body.get("conversation_id"))
        if conv is None or conv.is_complete:
            return self._not_found()
        text = str(body.get("message", ""))
        conv.paused = False
        conv.user_turns += 1
        conv.messages.append({"type": "user", "content": text, "timestamp": _now()})

        found = [w.strip(".,!?").lower() for w in text.split() if len(w.strip(".,!?")) >= 6]
        new_keywords = [w for w in found if w not in conv.keywords["explicit"]]
        conv.keywords["explicit"].extend(new_keywords)

        conv.progress = min(100, conv.progress + self.progress_step)
        conv.phase = PHASES[min(conv.user_turns, len(PHASES) - 1)]
        question, quick_replies = _QUESTIONS[conv.phase]
        conv.messages.append({"type": "bot", "content": question, "timestamp": _now()})

        payload: Dict[str, Any] = {
            "bot_message": question,
            "progress": conv.progress,
            "phase": conv.phase,
            "keywords_found": len(new_keywords),
            "ready_for_completion": conv.user_turns >= self.ready_after_messages,
        }
        if quick_replies:
            payload["quick_replies"] = list(quick_replies)
        return httpx.Response(200, json=payload)

    def _handle_resume(self, campaign_id: str, body: Dict[str, Any], _params: Dict[str, str]) -> httpx.Response:
        requested = body.get("conversation_id")
        if requested:
            conv = self._lookup(campaign_id, requested)
        else:
            conv = self._latest(campaign_id, complete=False)
        if conv is None:
            return self._not_found()
        if conv.is_complete:
            return self._already_complete()
        already_active = not conv.paused
        conv.paused = False
        return httpx.Response(
            200,
            json={
                "conversation_id": conv.conversation_id,
                "is_complete": False,
                "messages": list(conv.messages),
                "progress": conv.progress,
                "phase": conv.phase,
                "extracted_data": {"keywords": conv.keywords},
                "already_active": already_active,
                "message_count": len(conv.messages),
            },
        )

    def _handle_complete(self, campaign_id: str, body: Dict[str, Any], _params: Dict[str, str]) -> httpx.Response:
        conv = self._lookup(campaign_id, body.get("conversation_id"))
        if conv is None:
            return self._not_found()
        conv.is_complete = True
        conv.progress = 100
        return httpx.Response(200, json={"keywords_extracted": conv.keyword_total})

    def _handle_pause(self, campaign_id: str, _body: Dict[str, Any], params: Dict[str, str]) -> httpx.Response:
        conv = self._lookup(campaign_id, params.get("conversation_id"))
        if conv is None:
            return self._not_found()
        if conv.is_complete:
            return self._already_complete()
        conv.paused = True
        return httpx.Response(200, json={"status": "paused", "conversation_id": conv.conversation_id})

    def _handle_summary(self, campaign_id: str, _body: Dict[str, Any], params: Dict[str, str]) -> httpx.Response:
        conv = self._lookup(campaign_id, params.get("conversation_id"))
        if conv is None:
            return self._not_found()
        return httpx.Response(
            200,
            json={
                "conversation_id": conv.conversation_id,
                "progress": conv.progress,
                "phase": conv.phase,
                "message_count": len(conv.messages),
                "keywords": conv.keywords,
                "is_complete": conv.is_complete,
            },
        )
