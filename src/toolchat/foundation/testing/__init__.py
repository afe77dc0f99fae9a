"""Testing utilities: scripted models, mock tools and response builders."""

from .mock import (
    Invocation,
    MockTool,
    ScriptedModel,
    ScriptExhausted,
    text_response,
    tool_call_response,
    tool_calls_response,
)

__all__ = [
    "ScriptedModel",
    "ScriptExhausted",
    "MockTool",
    "Invocation",
    "text_response",
    "tool_call_response",
    "tool_calls_response",
]
