"""Unit tests for the guestchat CLI."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from guestchat.cli.chat import run_chat
from guestchat.cli.main import cli
from guestchat.config import Settings, get_settings
from guestchat.session.checkpoints import CheckpointStore, ProgressCheckpoint
from guestchat.transport.fake import FAKE_WELCOME


def test_version_flag() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "guestchat" in result.output


def test_config_show_prints_table() -> None:
    result = CliRunner().invoke(cli, ["config", "show"])

    assert result.exit_code == 0
    assert "guestchat Configuration" in result.output
    assert "fake" in result.output
    assert "not set" in result.output


def test_checkpoints_show_and_clear() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["checkpoints", "show", "camp-1"])
    assert result.exit_code == 0
    assert "No checkpoints for campaign camp-1" in result.output

    store = CheckpointStore(get_settings().checkpoint_path)
    store.save_progress("camp-1", ProgressCheckpoint(conversation_id="conv-42", progress=35))

    result = runner.invoke(cli, ["checkpoints", "show", "camp-1"])
    assert result.exit_code == 0
    assert "Progress checkpoint" in result.output
    assert "conv-42" in result.output

    result = runner.invoke(cli, ["checkpoints", "clear", "camp-1"])
    assert result.exit_code == 0
    assert store.load_progress("camp-1") is None


def test_chat_session_with_fake_backend(monkeypatch) -> None:
    monkeypatch.setenv("AUTO_START_DELAY_SECONDS", "0")

    result = CliRunner().invoke(
        cli, ["chat", "camp-1", "--fake"], input="Hello from a marketing founder\n/pause\n"
    )

    assert result.exit_code == 0, result.output
    assert FAKE_WELCOME in result.output
    assert "Conversation Paused" in result.output
    paused = CheckpointStore(get_settings().checkpoint_path).load_paused("camp-1")
    assert paused is not None
    assert paused.message_count == 3


@pytest.mark.anyio
async def test_run_chat_stops_on_end_of_input(tmp_path) -> None:
    cfg = Settings(
        _env_file=None,
        chatbot_provider="fake",
        auto_start_delay_seconds=0,
        checkpoint_dir=str(tmp_path),
    )
    lines = iter(["/status", "tell me about podcasts"])

    await run_chat("camp-1", onboarding=False, cfg=cfg, read_line=lambda: next(lines, None))

    saved = CheckpointStore(tmp_path).load_progress("camp-1")
    assert saved is not None
    assert saved.conversation_id == "conv-1"
    assert saved.phase == "background"


def test_chat_reports_disabled_backend(monkeypatch) -> None:
    monkeypatch.setenv("CHATBOT_PROVIDER", "off")

    result = CliRunner().invoke(cli, ["chat", "camp-1"])

    assert result.exit_code != 0
    assert "disabled" in result.output


def test_summary_for_unknown_conversation_fails() -> None:
    result = CliRunner().invoke(cli, ["summary", "camp-1", "conv-404", "--fake"])

    assert result.exit_code != 0
    assert "Summary unavailable" in result.output
