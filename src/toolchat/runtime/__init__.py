"""Runtime - Execution flow, control, and monitoring.

Contains: agents, retry, observability.
"""

from __future__ import annotations

__all__ = [
    # Agents
    "Agent", "AgentConfig", "CorrectingDispatcher", "request_correction",
    # Retry
    "Backoff", "ExponentialBackoff", "RetryPolicy", "NO_RETRY",
    # Observability
    "BoundLogger", "get_logger", "configure_logging", "configure_from_settings", "log_context",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("Agent", "AgentConfig", "CorrectingDispatcher", "request_correction"):
        from . import agents
        return getattr(agents, name)

    if name in ("Backoff", "ExponentialBackoff", "RetryPolicy", "NO_RETRY"):
        from . import retry
        return getattr(retry, name)

    if name in ("BoundLogger", "get_logger", "configure_logging", "configure_from_settings", "log_context"):
        from . import observability
        return getattr(observability, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
