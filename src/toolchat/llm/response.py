"""Response envelope and the ChatModel contract.

Tool calls are derived from the messages, never stored separately.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from toolchat.foundation.core import AssistantMessage, Message, ToolCall, tool_calls_of

if TYPE_CHECKING:
    from .request import Request


@dataclass(frozen=True, slots=True)
class Response:
    """Ordered messages emitted by one model turn (or one agent run)."""

    messages: tuple[Message, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.messages, tuple):
            object.__setattr__(self, "messages", tuple(self.messages))

    @classmethod
    def of(cls, *messages: Message) -> Response:
        return cls(messages)

    @property
    def tool_calls(self) -> tuple[ToolCall, ...]:
        """Tool calls in emission order."""
        return tool_calls_of(self.messages)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @property
    def text(self) -> str | None:
        """Content of the last assistant text message, if any."""
        for message in reversed(self.messages):
            if isinstance(message, AssistantMessage):
                return message.content
        return None

    def append(self, *messages: Message) -> Response:
        """New response with ``messages`` appended."""
        return Response((*self.messages, *messages))

    def __len__(self) -> int:
        return len(self.messages)


@runtime_checkable
class ChatModel(Protocol):
    """Anything that turns a Request into a Response.

    Provider transports, the structured-output wrapper and the Agent all
    satisfy it, so they compose freely. Transports must honor a forced
    tool-usage policy or fail loudly.
    """

    async def invoke(self, request: Request) -> Response: ...
