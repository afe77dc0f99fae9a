"""Model-facing envelope: requests, responses, tool-usage policy, structured output."""

from .invoker import Invoker
from .request import Request
from .response import ChatModel, Response
from .structured import FormatterTool, StructuredOutputModel
from .tool_usage import AUTO, AutoToolUsage, ForcedToolUsage, ToolUsage, ToolUsageType, auto, force

__all__ = [
    "Request",
    "Response",
    "ChatModel",
    "ToolUsage",
    "ToolUsageType",
    "AutoToolUsage",
    "ForcedToolUsage",
    "AUTO",
    "auto",
    "force",
    "FormatterTool",
    "StructuredOutputModel",
    "Invoker",
]
