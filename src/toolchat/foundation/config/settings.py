"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from toolchat.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.retry.max_retries
    3
    >>> settings.logging.level
    'INFO'

    # Or with environment variables:
    # TOOLCHAT_RETRY_MAX_RETRIES=5
    # TOOLCHAT_AGENT_MAX_TURNS=20
    # TOOLCHAT_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, NonNegativeFloat, PositiveFloat, PositiveInt, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrySettings(BaseSettings):
    """Default retry and self-correction configuration for tool dispatch."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLCHAT_RETRY_",
        extra="ignore",
    )

    max_retries: Annotated[int, Field(ge=0, le=20)] = 3
    initial_delay: NonNegativeFloat = Field(default=0.1, description="Wait before the first retry, in seconds")
    backoff_multiplier: PositiveFloat = Field(default=2.0, description="Factor applied to the delay after each wait")
    max_delay: PositiveFloat = Field(default=30.0, description="Upper bound on a single wait, in seconds")


class AgentSettings(BaseSettings):
    """Orchestration loop configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLCHAT_AGENT_",
        extra="ignore",
    )

    max_turns: PositiveInt | None = Field(default=None, description="Turn ceiling; unset means unbounded")
    concurrent_tools: bool = Field(default=False, description="Dispatch calls of one turn concurrently")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLCHAT_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class StructuredSettings(BaseSettings):
    """Synthetic formatter tool used to force structured output."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLCHAT_STRUCTURED_",
        extra="ignore",
    )

    tool_name: str = Field(default="formatter", pattern=r"^[A-Za-z_][A-Za-z0-9_-]*$")
    tool_description: str = Field(default="Must be called to provide structured output", min_length=1)


class ToolchatSettings(BaseSettings):
    """Root settings for toolchat.

    Loads configuration from environment variables with TOOLCHAT_ prefix.
    Supports nested configuration and .env files.

    Example environment variables:
        TOOLCHAT_DEBUG=true
        TOOLCHAT_RETRY_INITIAL_DELAY=0.5
        TOOLCHAT_AGENT_CONCURRENT_TOOLS=true
        TOOLCHAT_LOG_FORMAT=json
        TOOLCHAT_STRUCTURED_TOOL_NAME=respond
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLCHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Enable debug mode")

    retry: RetrySettings = Field(default_factory=RetrySettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    structured: StructuredSettings = Field(default_factory=StructuredSettings)

    @computed_field
    @property
    def effective_log_level(self) -> str:
        """DEBUG when debug mode is on, otherwise the configured level."""
        return "DEBUG" if self.debug else self.logging.level


@lru_cache(maxsize=1)
def get_settings() -> ToolchatSettings:
    """Get the global settings instance (cached)."""
    return ToolchatSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
