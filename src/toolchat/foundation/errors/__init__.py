"""Unified error handling for toolchat.

- ErrorCode: Standard error codes for tool failures
- ToolError: Structured tool error rendered for the model
- ToolchatError and subclasses: the orchestration exception taxonomy
- Result/Ok/Err: Monadic error handling for non-raising paths
"""

from .errors import (
    CorrectionFailure,
    DuplicateToolError,
    ErrorCode,
    InvalidToolUsage,
    MaxTurnsExceeded,
    ModelInvocationError,
    NoForcedCallProduced,
    RetryExhausted,
    ToolchatError,
    ToolError,
    ToolExecutionError,
    ToolNotFound,
    UncorrelatedToolResult,
    classify_exception,
    format_validation_error,
)
from .result import Err, Ok, Result
from .types import JsonDict, JsonPrimitive, JsonSchema, JsonValue

__all__ = [
    # Core errors
    "ErrorCode", "ToolError", "classify_exception", "format_validation_error",
    # Taxonomy
    "ToolchatError", "ModelInvocationError", "ToolNotFound", "ToolExecutionError", "RetryExhausted",
    "NoForcedCallProduced", "CorrectionFailure", "MaxTurnsExceeded", "InvalidToolUsage",
    "DuplicateToolError", "UncorrelatedToolResult",
    # Result monad
    "Result", "Ok", "Err",
    # JSON aliases
    "JsonDict", "JsonPrimitive", "JsonSchema", "JsonValue",
]
