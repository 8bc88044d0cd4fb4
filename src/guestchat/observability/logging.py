from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, MutableMapping

import structlog

campaign_id_var: ContextVar[str] = ContextVar("campaign_id", default="")
conversation_id_var: ContextVar[str] = ContextVar("conversation_id", default="")


def _add_session_context(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    campaign_id = campaign_id_var.get("")
    if campaign_id:
        event_dict.setdefault("campaign_id", campaign_id)
    conversation_id = conversation_id_var.get("")
    if conversation_id:
        event_dict.setdefault("conversation_id", conversation_id)
    return event_dict


def configure_logging(level: str = "INFO", *, json_output: bool = True) -> None:
    """Configure structlog with JSON (or console) output and contextvar support."""

    timestamper = structlog.processors.TimeStamper(fmt="iso")
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            _add_session_context,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a configured structlog logger."""

    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)


def bind_session_context(campaign_id: str, conversation_id: str | None = None) -> None:
    """Attach campaign/conversation identifiers to every log line in this context."""

    campaign_id_var.set(campaign_id)
    conversation_id_var.set(conversation_id or "")


def get_session_context() -> tuple[str, str]:
    """Return the (campaign_id, conversation_id) pair bound in this context."""

    return campaign_id_var.get(""), conversation_id_var.get("")


logger = get_logger("guestchat")
