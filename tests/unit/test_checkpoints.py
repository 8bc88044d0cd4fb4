"""Unit tests for local session checkpoints."""

from __future__ import annotations

import json

from guestchat.session.checkpoints import (
    CheckpointStore,
    PausedCheckpoint,
    ProgressCheckpoint,
    paused_key,
    progress_key,
)


def test_keys_are_scoped_by_campaign() -> None:
    assert progress_key("abc") == "chat-progress-abc"
    assert paused_key("abc") == "chat-paused-abc"


def test_progress_checkpoint_serializes_camel_case(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    store.save_progress(
        "camp-1", ProgressCheckpoint(conversation_id="conv-1", progress=40, phase="expertise")
    )

    raw = json.loads((tmp_path / "chat-progress-camp-1.json").read_text())
    assert raw["conversationId"] == "conv-1"
    assert raw["progress"] == 40
    assert raw["phase"] == "expertise"
    assert "lastSaved" in raw

    loaded = store.load_progress("camp-1")
    assert loaded is not None
    assert loaded.conversation_id == "conv-1"
    assert loaded.progress == 40


def test_paused_checkpoint_and_clear_all(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    store.save_progress("camp-1", ProgressCheckpoint(conversation_id="conv-1"))
    store.save_paused("camp-1", PausedCheckpoint(conversation_id="conv-1", message_count=7, progress=55))

    paused = store.load_paused("camp-1")
    assert paused is not None
    assert paused.message_count == 7
    assert paused.to_json()["messageCount"] == 7

    store.clear_all("camp-1")
    assert store.load_progress("camp-1") is None
    assert store.load_paused("camp-1") is None


def test_campaigns_do_not_share_checkpoints(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    store.save_progress("camp-1", ProgressCheckpoint(conversation_id="a"))

    assert store.load_progress("camp-2") is None


def test_corrupt_or_invalid_files_read_as_missing(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    (tmp_path / "chat-progress-camp-1.json").write_text("{not json")
    (tmp_path / "chat-paused-camp-1.json").write_text(json.dumps({"progress": 3}))

    assert store.load_progress("camp-1") is None
    # conversationId is required for a paused checkpoint
    assert store.load_paused("camp-1") is None


def test_write_failure_is_reported_not_raised(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file")
    store = CheckpointStore(blocker)

    assert store.save_progress("camp-1", ProgressCheckpoint()) is False
    assert store.load_progress("camp-1") is None


def test_unsafe_keys_stay_inside_base_dir(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    assert store.set("../escape", {"a": 1}) is True
    assert store.get("../escape") == {"a": 1}
    assert not (tmp_path.parent / "escape.json").exists()
