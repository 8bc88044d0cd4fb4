"""guestchat configuration module."""

from guestchat.config.provider_modes import ProviderMode, effective_chatbot_provider
from guestchat.config.settings import Settings, get_settings, reset_settings_cache, settings

__all__ = [
    "settings",
    "Settings",
    "get_settings",
    "reset_settings_cache",
    "ProviderMode",
    "effective_chatbot_provider",
]
