"""Foundation - Core building blocks for toolchat.

Contains: message model, tool abstractions, error handling, JSON codec,
testing doubles, config.
"""

from __future__ import annotations

__all__ = [
    # Core
    "Tool", "BaseTool", "ToolMetadata", "EmptyParams", "tool", "FunctionTool", "Toolbox",
    "Message", "UserMessage", "AssistantMessage", "SystemMessage",
    "ToolCallMessage", "ToolResultMessage", "ToolErrorMessage", "ToolCall", "History",
    "extend_history", "tool_calls_of", "check_correlation", "message_text",
    # Errors
    "ErrorCode", "ToolError", "classify_exception", "Result", "Ok", "Err",
    "ToolchatError", "ModelInvocationError", "ToolNotFound", "ToolExecutionError", "RetryExhausted",
    "NoForcedCallProduced", "CorrectionFailure", "MaxTurnsExceeded",
    # Testing
    "ScriptedModel", "ScriptExhausted", "MockTool", "Invocation",
    "text_response", "tool_call_response", "tool_calls_response",
    # Config
    "ToolchatSettings", "get_settings", "clear_settings_cache",
    "RetrySettings", "AgentSettings", "LoggingSettings", "StructuredSettings",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("Tool", "BaseTool", "ToolMetadata", "EmptyParams", "tool", "FunctionTool", "Toolbox",
                "Message", "UserMessage", "AssistantMessage", "SystemMessage",
                "ToolCallMessage", "ToolResultMessage", "ToolErrorMessage", "ToolCall", "History",
                "extend_history", "tool_calls_of", "check_correlation", "message_text"):
        from . import core
        return getattr(core, name)

    if name in ("ErrorCode", "ToolError", "classify_exception", "Result", "Ok", "Err",
                "ToolchatError", "ModelInvocationError", "ToolNotFound", "ToolExecutionError", "RetryExhausted",
                "NoForcedCallProduced", "CorrectionFailure", "MaxTurnsExceeded"):
        from . import errors
        return getattr(errors, name)

    if name in ("ScriptedModel", "ScriptExhausted", "MockTool", "Invocation",
                "text_response", "tool_call_response", "tool_calls_response"):
        from . import testing
        return getattr(testing, name)

    if name in ("ToolchatSettings", "get_settings", "clear_settings_cache",
                "RetrySettings", "AgentSettings", "LoggingSettings", "StructuredSettings"):
        from . import config
        return getattr(config, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
