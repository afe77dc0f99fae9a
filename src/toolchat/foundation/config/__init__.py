"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    AgentSettings,
    LoggingSettings,
    RetrySettings,
    StructuredSettings,
    ToolchatSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "AgentSettings",
    "LoggingSettings",
    "RetrySettings",
    "StructuredSettings",
    "ToolchatSettings",
    "clear_settings_cache",
    "get_settings",
]
