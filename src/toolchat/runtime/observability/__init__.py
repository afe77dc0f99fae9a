"""Observability: structured logging with scoped context."""

from .logging import (
    BoundLogger,
    CaptureRenderer,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    LogRenderer,
    NoOpRenderer,
    configure_from_settings,
    configure_logging,
    get_logger,
    log_context,
    use_renderer,
)

__all__ = [
    "BoundLogger",
    "LogEntry",
    "LogRenderer",
    "ConsoleRenderer",
    "JsonRenderer",
    "NoOpRenderer",
    "CaptureRenderer",
    "configure_logging",
    "configure_from_settings",
    "use_renderer",
    "get_logger",
    "log_context",
]
