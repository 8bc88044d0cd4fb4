"""Unit tests for structured logging helpers."""

from __future__ import annotations

import json
import logging

import structlog

from guestchat.observability.logging import (
    _add_session_context,
    bind_session_context,
    configure_logging,
    get_logger,
    get_session_context,
)


def test_session_context_is_added_to_events() -> None:
    bind_session_context("camp-1", "conv-7")

    event = _add_session_context(logging.getLogger("t"), "info", {"event": "x"})

    assert event["campaign_id"] == "camp-1"
    assert event["conversation_id"] == "conv-7"
    assert get_session_context() == ("camp-1", "conv-7")


def test_explicit_fields_win_over_context() -> None:
    bind_session_context("camp-1")

    event = _add_session_context(logging.getLogger("t"), "info", {"campaign_id": "other"})

    assert event["campaign_id"] == "other"
    assert "conversation_id" not in event


def test_configure_logging_renders_json(caplog) -> None:
    configure_logging("INFO", json_output=True)
    try:
        bind_session_context("camp-9", "conv-1")
        with caplog.at_level(logging.INFO):
            get_logger("guestchat.test").info("message_sent", progress=10)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["event"] == "message_sent"
        assert payload["level"] == "info"
        assert payload["progress"] == 10
        assert payload["campaign_id"] == "camp-9"
        assert payload["conversation_id"] == "conv-1"
    finally:
        structlog.reset_defaults()
