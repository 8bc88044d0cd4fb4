"""Effective chatbot provider mode.

`chatbot_provider` is the source of truth; `use_fake_providers=True` turns
"real" into "fake" but never re-enables "off".
"""

from __future__ import annotations

from typing import Any, Literal

ProviderMode = Literal["real", "fake", "off"]

_MODES = ("real", "fake", "off")


def effective_chatbot_provider(settings: Any) -> ProviderMode:
    mode = str(getattr(settings, "chatbot_provider", "real")).lower()
    if mode not in _MODES:
        mode = "real"
    if mode == "real" and getattr(settings, "use_fake_providers", False) is True:
        return "fake"
    return mode  # type: ignore[return-value]
