"""Core conversation and tool abstractions.

- Message model: six frozen message kinds, ToolCall, History helpers
- Tool: the capability protocol every callable unit satisfies
- BaseTool / ToolMetadata: typed tool base class
- @tool decorator / FunctionTool: build tools from functions
- Toolbox: immutable name-keyed tool collection
"""

from .base import BaseTool, EmptyParams, Tool, ToolMetadata, to_json_value
from .decorator import FunctionTool, tool
from .messages import (
    AssistantMessage,
    History,
    HistoryAdapter,
    Message,
    MessageAdapter,
    MessageKind,
    MessageRole,
    SystemMessage,
    ToolCall,
    ToolCallMessage,
    ToolErrorMessage,
    ToolResultMessage,
    UserMessage,
    check_correlation,
    extend_history,
    is_text,
    is_tool_call,
    is_tool_outcome,
    message_text,
    new_tool_call_id,
    tool_calls_of,
)
from .toolbox import Toolbox

__all__ = [
    # Messages
    "Message", "MessageAdapter", "MessageKind", "MessageRole", "History", "HistoryAdapter",
    "UserMessage", "AssistantMessage", "SystemMessage", "ToolCallMessage", "ToolResultMessage",
    "ToolErrorMessage", "ToolCall", "new_tool_call_id", "message_text",
    "is_tool_call", "is_tool_outcome", "is_text",
    "extend_history", "tool_calls_of", "check_correlation",
    # Tools
    "Tool", "BaseTool", "ToolMetadata", "EmptyParams", "to_json_value",
    "tool", "FunctionTool", "Toolbox",
]
