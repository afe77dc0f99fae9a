"""Conversation message model.

A message is one of six frozen variants discriminated by ``kind``:

    user         UserMessage        role=user
    assistant    AssistantMessage   role=assistant
    system       SystemMessage      role=system
    tool_call    ToolCallMessage    role=assistant
    tool_result  ToolResultMessage  role=tool
    tool_error   ToolErrorMessage   role=tool

History is an immutable tuple of messages. ``extend_history`` is the only
way to grow it and always returns a new tuple.

Example:
    >>> call = ToolCall(id="call_1", name="calculator", args={"op": "add", "a": 1, "b": 2})
    >>> history = (UserMessage(content="What is 1 + 2?"),)
    >>> history = extend_history(history, ToolCallMessage(tool_call=call))
    >>> [m.kind for m in history]
    ['user', 'tool_call']
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from enum import StrEnum
from typing import Annotated, ClassVar, Literal, Union, assert_never

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from toolchat.foundation import codec
from toolchat.foundation.errors import ErrorCode, JsonDict, JsonValue, UncorrelatedToolResult


class MessageKind(StrEnum):
    """Discriminator for the message variants."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    TOOL_ERROR = "tool_error"


class MessageRole(StrEnum):
    """Role of the message sender, as seen by the model."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


def new_tool_call_id() -> str:
    """Generate a correlation id for transports that do not supply one."""
    return f"call_{uuid.uuid4().hex[:24]}"


class ToolCall(BaseModel):
    """A model-issued request to execute a named tool.

    Attributes:
        id: Correlation handle linking the call to its result (mandatory)
        name: Name of the tool to execute
        args: Arguments, shaped by the tool's input schema
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1)]
    name: Annotated[str, Field(min_length=1)]
    args: JsonDict = Field(default_factory=dict)

    def with_args(self, args: JsonDict) -> ToolCall:
        """Return a new call with replaced arguments, keeping id and name."""
        return ToolCall(id=self.id, name=self.name, args=args)


class _BaseMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    role: ClassVar[MessageRole]


class UserMessage(_BaseMessage):
    kind: Literal["user"] = "user"
    role: ClassVar[MessageRole] = MessageRole.USER
    content: str


class AssistantMessage(_BaseMessage):
    kind: Literal["assistant"] = "assistant"
    role: ClassVar[MessageRole] = MessageRole.ASSISTANT
    content: str


class SystemMessage(_BaseMessage):
    """Preamble injected once per request."""

    kind: Literal["system"] = "system"
    role: ClassVar[MessageRole] = MessageRole.SYSTEM
    content: str


class ToolCallMessage(_BaseMessage):
    """The model requesting execution of ``tool_call``."""

    kind: Literal["tool_call"] = "tool_call"
    role: ClassVar[MessageRole] = MessageRole.ASSISTANT
    tool_call: ToolCall


class ToolResultMessage(_BaseMessage):
    """Output of a successfully executed tool, correlated to its call."""

    kind: Literal["tool_result"] = "tool_result"
    role: ClassVar[MessageRole] = MessageRole.TOOL
    tool_call: ToolCall
    result: JsonValue = None


class ToolErrorMessage(_BaseMessage):
    """A failed tool execution, rendered so the model can react to it."""

    kind: Literal["tool_error"] = "tool_error"
    role: ClassVar[MessageRole] = MessageRole.TOOL
    tool_call: ToolCall
    error: Annotated[str, Field(min_length=1)]
    code: ErrorCode = ErrorCode.UNKNOWN


Message = Annotated[
    Union[UserMessage, AssistantMessage, SystemMessage, ToolCallMessage, ToolResultMessage, ToolErrorMessage],
    Field(discriminator="kind"),
]
History = tuple[Message, ...]

MessageAdapter: TypeAdapter[Message] = TypeAdapter(Message)
HistoryAdapter: TypeAdapter[History] = TypeAdapter(History)


# ─────────────────────────────────────────────────────────────────────────────
# Classification
# ─────────────────────────────────────────────────────────────────────────────

def is_tool_call(message: Message) -> bool:
    return message.kind == MessageKind.TOOL_CALL


def is_tool_outcome(message: Message) -> bool:
    """Whether the message reports a tool result or a tool error."""
    return message.kind in (MessageKind.TOOL_RESULT, MessageKind.TOOL_ERROR)


def is_text(message: Message) -> bool:
    return message.kind in (MessageKind.USER, MessageKind.ASSISTANT, MessageKind.SYSTEM)


def message_text(message: Message) -> str:
    """Render any message as plain text (logs, transcripts)."""
    match message:
        case UserMessage(content=content) | AssistantMessage(content=content) | SystemMessage(content=content):
            return content
        case ToolCallMessage(tool_call=call):
            return f"{call.name}({codec.dumps(call.args)})"
        case ToolResultMessage(result=result):
            return result if isinstance(result, str) else codec.dumps(result)
        case ToolErrorMessage(error=error):
            return error
        case _:
            assert_never(message)


# ─────────────────────────────────────────────────────────────────────────────
# History
# ─────────────────────────────────────────────────────────────────────────────

def extend_history(history: Iterable[Message], *messages: Message) -> History:
    """Append messages, returning a new tuple. Prior entries are untouched."""
    return (*history, *messages)


def tool_calls_of(messages: Iterable[Message]) -> tuple[ToolCall, ...]:
    """Tool calls requested in ``messages``, in emission order."""
    return tuple(m.tool_call for m in messages if isinstance(m, ToolCallMessage))


def check_correlation(history: Iterable[Message]) -> None:
    """Verify every tool outcome references a tool call emitted before it.

    Raises:
        UncorrelatedToolResult: On the first outcome without a matching call
    """
    seen: set[str] = set()
    for message in history:
        if isinstance(message, ToolCallMessage):
            seen.add(message.tool_call.id)
        elif isinstance(message, (ToolResultMessage, ToolErrorMessage)) and message.tool_call.id not in seen:
            raise UncorrelatedToolResult(
                f"{message.kind} for '{message.tool_call.name}' references unknown call id {message.tool_call.id!r}"
            )
