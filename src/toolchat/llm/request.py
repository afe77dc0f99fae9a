"""Request envelope: the unit of exchange sent to a model.

Immutable once constructed. ``clone`` produces a new value with overrides,
so a retry or a forced sub-request can never corrupt the caller's request.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from toolchat.foundation.core import Message, Tool, UserMessage
from toolchat.foundation.errors import DuplicateToolError

from .tool_usage import AUTO, ToolUsage


@dataclass(frozen=True, slots=True)
class Request:
    """History, offered tools, tool-usage policy and generation parameters.

    Attributes:
        history: Conversation so far, oldest first
        system: Preamble injected once per request
        tools: Tools offered to the model (unique by name)
        tool_usage: Auto (default) or Forced(tool_name)
        max_tokens: Generation cap, None leaves it to the transport
        temperature: Sampling temperature, None leaves it to the transport

    Example:
        >>> req = Request.of("What is 15 + 27?", system="You are a calculator")
        >>> req.clone(temperature=0.0).temperature
        0.0
        >>> req.temperature is None
        True
    """

    history: tuple[Message, ...] = ()
    system: str | None = None
    tools: tuple[Tool, ...] = ()
    tool_usage: ToolUsage = field(default=AUTO)
    max_tokens: int | None = None
    temperature: float | None = None

    def __post_init__(self) -> None:
        # Frozen: normalize sequences through object.__setattr__
        if not isinstance(self.history, tuple):
            object.__setattr__(self, "history", tuple(self.history))
        if not isinstance(self.tools, tuple):
            object.__setattr__(self, "tools", tuple(self.tools))

        seen: set[str] = set()
        for tool in self.tools:
            if tool.name in seen:
                raise DuplicateToolError(f"Tool '{tool.name}' offered more than once")
            seen.add(tool.name)

        self.tool_usage.validate_against(self.tools)
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")

    @classmethod
    def of(cls, prompt: str, **kwargs: Any) -> Request:
        """Single user-message request."""
        return cls(history=(UserMessage(content=prompt),), **kwargs)

    def clone(self, **overrides: Any) -> Request:
        """New request with ``overrides`` applied; ``self`` is untouched."""
        return dataclasses.replace(self, **overrides)

    def with_history(self, history: Sequence[Message]) -> Request:
        return self.clone(history=tuple(history))

    @property
    def tool_names(self) -> tuple[str, ...]:
        return tuple(t.name for t in self.tools)
