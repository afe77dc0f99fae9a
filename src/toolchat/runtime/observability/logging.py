"""Structured logging for orchestration runs with context propagation.

- Bound context (run id, turn, tool name, call id) on every entry
- Human-readable console output for development, JSON lines for production
- Scoped context via ``log_context`` that follows async tasks

Quick Start:
    >>> from toolchat.runtime.observability import get_logger, configure_logging
    >>>
    >>> configure_logging(format="console")  # or "json" for production
    >>> log = get_logger("toolchat.agent")
    >>> log.info("model invoked", turn=1)
    >>>
    >>> log = log.bind_tool("calculator", "call_1")
    >>> log.info("tool succeeded")
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

import orjson

from toolchat.foundation.errors import JsonDict, JsonValue

if TYPE_CHECKING:
    from toolchat.foundation.config import LoggingSettings

# Scoped context (persists across awaits, copied into child tasks)
_log_context: ContextVar[JsonDict] = ContextVar("log_context", default={})


# ─────────────────────────────────────────────────────────────────────────────
# Core Logger
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class BoundLogger:
    """Structured logger with bound context.

    Immutable: bind() returns a new logger with merged context.
    Level and renderer default to the global configuration at emit time.

    Example:
        >>> log = BoundLogger(context={"logger": "agent"})
        >>> log.info("turn started", turn=2)
        # => 10:30:45.123 [info] turn started logger="agent" turn=2
    """

    context: JsonDict = field(default_factory=dict)
    _renderer: LogRenderer | None = None
    _level: int | None = None

    def bind(self, **kw: JsonValue) -> BoundLogger:
        """Copy with ``kw`` merged over the bound context."""
        return BoundLogger(context={**self.context, **kw}, _renderer=self._renderer, _level=self._level)

    def bind_tool(self, name: str, call_id: str, **kw: JsonValue) -> BoundLogger:
        """Bind tool dispatch context."""
        return self.bind(tool=name, call_id=call_id, **kw)

    def unbind(self, *keys: str) -> BoundLogger:
        """Copy without the given keys."""
        return BoundLogger(
            context={k: v for k, v in self.context.items() if k not in keys},
            _renderer=self._renderer,
            _level=self._level,
        )

    def is_enabled_for(self, level: int) -> bool:
        return level >= (self._level if self._level is not None else _config.level)

    def _log(self, level: int, event: str, **kw: JsonValue) -> None:
        if not self.is_enabled_for(level):
            return
        # Merge contexts: scoped -> bound -> call-site
        merged = {**_log_context.get(), **self.context, **kw}
        entry = LogEntry(timestamp=time.time(), level=_level_name(level), event=event, context=merged)
        (self._renderer or _config.renderer).render(entry)

    def debug(self, event: str, **kw: JsonValue) -> None:
        self._log(logging.DEBUG, event, **kw)

    def info(self, event: str, **kw: JsonValue) -> None:
        self._log(logging.INFO, event, **kw)

    def warning(self, event: str, **kw: JsonValue) -> None:
        self._log(logging.WARNING, event, **kw)

    def error(self, event: str, **kw: JsonValue) -> None:
        self._log(logging.ERROR, event, **kw)

    def exception(self, event: str, **kw: JsonValue) -> None:
        """Log error with the active exception's traceback."""
        kw["exc_info"] = traceback.format_exc()
        self._log(logging.ERROR, event, **kw)


@dataclass(slots=True)
class LogEntry:
    """Log entry with all merged context."""

    timestamp: float
    level: str
    event: str
    context: JsonDict

    @property
    def ts_iso(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def ts_human(self) -> str:
        """HH:MM:SS.mmm"""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    """Anything that can emit a LogEntry."""

    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class ConsoleRenderer:
    """One line per entry for development terminals.

        12:00:01.250 [info] model responded logger="toolchat.agent" tool_calls=2 turn=1

    Colors follow the output's TTY status unless forced with ``colors``.
    """

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None
    show_timestamp: bool = True

    def __post_init__(self) -> None:
        if self.colors is None:
            isatty = getattr(self.output, "isatty", None)
            self.colors = bool(isatty and isatty())

    def render(self, entry: LogEntry) -> None:
        context = dict(entry.context)
        trace = context.pop("exc_info", None)

        words = [self._paint(entry.ts_human, "dim")] if self.show_timestamp else []
        words.append(self._paint(f"[{entry.level}]", _LEVEL_STYLE.get(entry.level, "dim")))
        words.append(self._paint(entry.event, "bold"))
        words.extend(f"{self._paint(k, 'cyan')}={self._value(v)}" for k, v in sorted(context.items()))

        print(" ".join(words), file=self.output)
        if trace is not None:
            print(self._paint(str(trace), "red"), file=self.output)

    def _paint(self, text: str, style: str) -> str:
        return f"\033[{_SGR[style]}m{text}\033[0m" if self.colors else text

    def _value(self, v: object) -> str:
        if isinstance(v, str):
            return self._paint(f'"{v}"', "yellow")
        if isinstance(v, bool):
            return self._paint("true" if v else "false", "blue")
        if isinstance(v, (int, float)):
            return self._paint(str(v), "blue")
        if isinstance(v, (dict, list, tuple)):
            return self._paint(f"<{len(v)} items>", "dim")
        return repr(v)


@dataclass(slots=True)
class JsonRenderer:
    """JSON Lines output for log aggregation, one object per line."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        data = {"timestamp": entry.ts_iso, "level": entry.level, "event": entry.event, **entry.context}
        print(orjson.dumps(data, default=str, option=orjson.OPT_NON_STR_KEYS).decode(), file=self.output)


@dataclass(slots=True)
class NoOpRenderer:
    """Drops every entry."""

    def render(self, entry: LogEntry) -> None:
        pass


@dataclass(slots=True)
class CaptureRenderer:
    """Keeps entries in memory so tests can assert on emitted events."""

    entries: list[LogEntry] = field(default_factory=list)

    def render(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self, level: str | None = None) -> list[str]:
        return [e.event for e in self.entries if level is None or e.level == level]

    def clear(self) -> None:
        self.entries.clear()


# ─────────────────────────────────────────────────────────────────────────────
# Global Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class _LogConfig:
    renderer: LogRenderer = field(default_factory=ConsoleRenderer)
    level: int = logging.INFO


_config = _LogConfig()


def configure_logging(
    format: str = "console",  # noqa: A002 - shadows builtin but matches settings field
    level: str = "INFO",
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
) -> LogRenderer:
    """Install the process-wide renderer and minimum level.

    Args:
        format: "console", "json" or "none"
        level: Minimum level name; unknown names fall back to INFO
        output: Stream to write to (stderr for console, stdout for json)
        colors: Console colors; None follows the stream's TTY status

    Returns:
        The installed renderer
    """
    renderer: LogRenderer
    match format:
        case "console":
            renderer = ConsoleRenderer(output=output or sys.stderr, colors=colors)
        case "json":
            renderer = JsonRenderer(output=output or sys.stdout)
        case "none":
            renderer = NoOpRenderer()
        case _:
            raise ValueError(f"Unknown format: {format!r}, expected console, json or none")

    _config.level = getattr(logging, level.upper(), logging.INFO)
    _config.renderer = renderer
    return renderer


def configure_from_settings(settings: LoggingSettings | None = None, *, output: TextIO | None = None) -> LogRenderer:
    """Configure logging from ``TOOLCHAT_LOG_*`` settings."""
    if settings is None:
        from toolchat.foundation.config import get_settings
        root = get_settings()
        return configure_logging(root.logging.format, root.effective_log_level, output=output)
    return configure_logging(settings.format, settings.level, output=output)


def use_renderer(renderer: LogRenderer, level: str | None = None) -> LogRenderer:
    """Install a custom renderer (e.g. CaptureRenderer in tests)."""
    _config.renderer = renderer
    if level is not None:
        _config.level = getattr(logging, level.upper(), logging.INFO)
    return renderer


def get_logger(name: str | None = None, **initial_context: JsonValue) -> BoundLogger:
    """Logger bound to ``logger=name`` plus any ``initial_context``."""
    ctx = dict(initial_context)
    if name:
        ctx["logger"] = name
    return BoundLogger(context=ctx)


class log_context:
    """Adds keys to every entry logged inside the block, including from child tasks.

    Example:
        >>> with log_context(run_id="r-1"):
        ...     log.info("processing")  # includes run_id
        >>> log.info("done")  # no longer includes it
    """

    __slots__ = ("_ctx", "_token")

    def __init__(self, **kw: JsonValue) -> None:
        self._ctx: JsonDict = dict(kw)
        self._token: Token[JsonDict] | None = None

    def __enter__(self) -> log_context:
        self._token = _log_context.set({**_log_context.get(), **self._ctx})
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

# ANSI SGR parameters
_SGR = {"bold": "1", "dim": "2", "red": "31", "green": "32", "yellow": "33", "blue": "34", "cyan": "36"}

_LEVEL_STYLE = {"debug": "dim", "info": "green", "warning": "yellow", "error": "red", "critical": "red"}


def _level_name(level: int) -> str:
    return logging.getLevelName(level).lower()
