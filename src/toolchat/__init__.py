"""toolchat - Conversation and tool-call orchestration for language models.

Drives the multi-turn exchange between a model, a set of callable tools and an
optional output schema: model call, tool dispatch with bounded retry and
model-driven self-correction, result injection, repeat until the model stops
calling tools. Structured output is obtained by forcing a single synthetic
tool call.

Provider transports are not included: anything with
``async invoke(Request) -> Response`` is a model.

Quick Start:
    >>> from toolchat import Agent, Request, tool
    >>>
    >>> @tool(description="Perform basic arithmetic on two numbers")
    ... def calculator(op: str, a: float, b: float) -> dict[str, float]:
    ...     ops = {"add": a + b, "sub": a - b, "mul": a * b}
    ...     return {"result": ops[op]}
    >>>
    >>> agent = Agent(transport, [calculator])
    >>> history = await agent.run(Request.of("What is 15 + 27?"))

Structured Output:
    >>> from pydantic import BaseModel
    >>> from toolchat import Invoker
    >>>
    >>> class Booking(BaseModel):
    ...     name: str
    ...     guests: int
    >>>
    >>> invoker = Invoker.for_type(transport, Booking)
    >>> booking = await invoker.parse("Table for two, name Ada", Booking)

Testing:
    >>> from toolchat.foundation.testing import ScriptedModel, MockTool, tool_call_response, text_response
"""

from __future__ import annotations

__version__ = "0.1.0"

# Messages & tools
from .foundation.core import (
    AssistantMessage,
    BaseTool,
    EmptyParams,
    FunctionTool,
    History,
    Message,
    MessageRole,
    SystemMessage,
    Tool,
    Toolbox,
    ToolCall,
    ToolCallMessage,
    ToolErrorMessage,
    ToolMetadata,
    ToolResultMessage,
    UserMessage,
    extend_history,
    tool,
)

# Errors
from .foundation.errors import (
    CorrectionFailure,
    DuplicateToolError,
    Err,
    ErrorCode,
    InvalidToolUsage,
    MaxTurnsExceeded,
    ModelInvocationError,
    NoForcedCallProduced,
    Ok,
    Result,
    RetryExhausted,
    ToolchatError,
    ToolError,
    ToolExecutionError,
    ToolNotFound,
)

# Config
from .foundation.config import ToolchatSettings, get_settings

# Model envelope & structured output
from .llm import (
    AutoToolUsage,
    ChatModel,
    ForcedToolUsage,
    Invoker,
    Request,
    Response,
    StructuredOutputModel,
    ToolUsage,
    auto,
    force,
)

# Orchestration
from .runtime.agents import Agent, AgentConfig
from .runtime.retry import RetryPolicy

# Observability
from .runtime.observability import configure_logging, get_logger

__all__ = [
    "__version__",
    # Messages & tools
    "Message", "MessageRole", "UserMessage", "AssistantMessage", "SystemMessage",
    "ToolCallMessage", "ToolResultMessage", "ToolErrorMessage", "ToolCall", "History", "extend_history",
    "Tool", "BaseTool", "ToolMetadata", "EmptyParams", "FunctionTool", "tool", "Toolbox",
    # Errors
    "ErrorCode", "ToolError", "ToolchatError", "ModelInvocationError", "ToolNotFound",
    "ToolExecutionError", "RetryExhausted", "NoForcedCallProduced", "CorrectionFailure",
    "MaxTurnsExceeded", "InvalidToolUsage", "DuplicateToolError", "Result", "Ok", "Err",
    # Config
    "ToolchatSettings", "get_settings",
    # Model envelope
    "Request", "Response", "ChatModel", "ToolUsage", "AutoToolUsage", "ForcedToolUsage", "auto", "force",
    "StructuredOutputModel", "Invoker",
    # Orchestration
    "Agent", "AgentConfig", "RetryPolicy",
    # Observability
    "configure_logging", "get_logger",
]
