"""Local checkpoints keyed by campaign id.

These are a best-effort cache used for UX hints ("resumed - N messages"); the
backend is always authoritative. Writes never raise: a failed write is logged
and the caller carries on. The store is synchronous; the session orchestrator
runs its writes on a worker thread so they never hold up the event loop.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from guestchat.observability.logging import get_logger

logger = get_logger("guestchat.session.checkpoints")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _Checkpoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProgressCheckpoint(_Checkpoint):
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    progress: int = 0
    phase: str = "introduction"
    last_saved: datetime = Field(default_factory=_utc_now, alias="lastSaved")


class PausedCheckpoint(_Checkpoint):
    conversation_id: str = Field(alias="conversationId")
    paused_at: datetime = Field(default_factory=_utc_now, alias="pausedAt")
    message_count: int = Field(default=0, alias="messageCount")
    progress: int = 0


def progress_key(campaign_id: str) -> str:
    return f"chat-progress-{campaign_id}"


def paused_key(campaign_id: str) -> str:
    return f"chat-paused-{campaign_id}"


class CheckpointStore:
    """Filesystem-backed key/value store, one JSON document per key."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base = Path(base_dir).expanduser()
        self._lock = threading.Lock()

    @property
    def base_dir(self) -> Path:
        return self._base

    # -- raw key/value ----------------------------------------------------------

    def get(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        try:
            if not path.exists():
                return None
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError):
            logger.warning("checkpoint_read_failed", key=key, exc_info=True)
            return None
        return data if isinstance(data, dict) else None

    def set(self, key: str, value: dict[str, Any]) -> bool:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with self._lock:
                path.parent.mkdir(parents=True, exist_ok=True)
                with tmp_path.open("w", encoding="utf-8") as handle:
                    handle.write(json.dumps(value, sort_keys=True))
                tmp_path.replace(path)
        except OSError:
            logger.warning("checkpoint_write_failed", key=key, exc_info=True)
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError:
            logger.warning("checkpoint_delete_failed", key=key, exc_info=True)
            return False
        return True

    def _path(self, key: str) -> Path:
        return self._base / f"{quote(key, safe='')}.json"

    # -- typed records ----------------------------------------------------------

    def save_progress(self, campaign_id: str, checkpoint: ProgressCheckpoint) -> bool:
        return self.set(progress_key(campaign_id), checkpoint.to_json())

    def load_progress(self, campaign_id: str) -> ProgressCheckpoint | None:
        return self._load(progress_key(campaign_id), ProgressCheckpoint)

    def clear_progress(self, campaign_id: str) -> bool:
        return self.delete(progress_key(campaign_id))

    def save_paused(self, campaign_id: str, checkpoint: PausedCheckpoint) -> bool:
        return self.set(paused_key(campaign_id), checkpoint.to_json())

    def load_paused(self, campaign_id: str) -> PausedCheckpoint | None:
        return self._load(paused_key(campaign_id), PausedCheckpoint)

    def clear_paused(self, campaign_id: str) -> bool:
        return self.delete(paused_key(campaign_id))

    def clear_all(self, campaign_id: str) -> None:
        self.clear_progress(campaign_id)
        self.clear_paused(campaign_id)

    def _load(self, key: str, model: type[_Checkpoint]) -> Any:
        data = self.get(key)
        if data is None:
            return None
        try:
            return model.model_validate(data)
        except ValidationError:
            logger.warning("checkpoint_invalid", key=key)
            return None
