"""guestchat observability module - structured logging.

Usage:
    from guestchat.observability import get_logger

    logger = get_logger(__name__)
    logger.info("message_sent", conversation_id=conversation_id)
"""

from __future__ import annotations

from guestchat.observability.logging import (
    bind_session_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "bind_session_context",
    "configure_logging",
    "get_logger",
    "init_observability",
]

_OBSERVABILITY_INITIALIZED = False


def init_observability() -> None:
    """Initialize logging for the process (idempotent).

    This is intentionally *not* executed on import so `guestchat` can be used as a
    library without mutating global logging configuration.
    """
    global _OBSERVABILITY_INITIALIZED
    if _OBSERVABILITY_INITIALIZED:
        return
    from guestchat.config import settings

    configure_logging(settings.log_level, json_output=settings.log_json)
    _OBSERVABILITY_INITIALIZED = True
