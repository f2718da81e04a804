"""Configuration package."""

from finance_assistant.config.settings import (
    AssistantSettings,
    BackendSettings,
    GeminiSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AssistantSettings",
    "BackendSettings",
    "GeminiSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
