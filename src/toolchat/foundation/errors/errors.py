"""Standardized error handling for tool orchestration.

Provides error codes, structured tool errors rendered for model feedback, and
the exception taxonomy of the orchestration engine:

- ModelInvocationError: transport failure, fatal for the run
- ToolNotFound: dispatch-time, fatal for one call
- ToolExecutionError: a tool's run failed, retryable
- RetryExhausted: bounded retries spent, carries the last execution error
- NoForcedCallProduced: transport ignored a forced-tool policy
- CorrectionFailure: a self-correction round-trip failed
- MaxTurnsExceeded: the conversation hit its configured turn ceiling
"""

from __future__ import annotations

import traceback
from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, field_validator

if TYPE_CHECKING:
    from toolchat.foundation.core.messages import ToolCall


class ErrorCode(StrEnum):
    """Standard error codes for tool and orchestration failures.

    Used for programmatic error handling and for the error messages
    fed back to the model.
    """
    RATE_LIMITED = "RATE_LIMITED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_PARAMS = "INVALID_PARAMS"
    PARSE_ERROR = "PARSE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    UNKNOWN = "UNKNOWN"


# Flattened pattern -> code mapping, checked in insertion order
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "connection": ErrorCode.NETWORK_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "rate": ErrorCode.RATE_LIMITED,
    "permission": ErrorCode.PERMISSION_DENIED,
    "forbidden": ErrorCode.PERMISSION_DENIED,
    "parse": ErrorCode.PARSE_ERROR,
    "json": ErrorCode.PARSE_ERROR,
    "decode": ErrorCode.PARSE_ERROR,
    "validation": ErrorCode.INVALID_PARAMS,
    "value": ErrorCode.INVALID_PARAMS,
    "typeerror": ErrorCode.INVALID_PARAMS,
    "keyerror": ErrorCode.INVALID_PARAMS,
    "notfound": ErrorCode.NOT_FOUND,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES)


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.EXTERNAL_SERVICE_ERROR


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map exception to error code via pattern matching on name/message."""
    if isinstance(exc, ValidationError):
        return ErrorCode.INVALID_PARAMS
    if isinstance(exc, TimeoutError):
        return ErrorCode.TIMEOUT
    return _classify_cached(f"{type(exc).__name__} {exc}")


def format_validation_error(exc: ValidationError, *, tool_name: str | None = None) -> str:
    """Flatten a pydantic ValidationError into one line per offending field."""
    lines = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"{loc}: {err['msg']}")
    prefix = f"Invalid parameters for '{tool_name}'" if tool_name else "Invalid parameters"
    return f"{prefix}: " + "; ".join(lines)


class ToolError(BaseModel):
    """Structured error response for tool failures.

    Attributes:
        tool_name: Name of the tool that failed
        message: Human-readable error message
        code: Machine-readable error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        details: Optional detailed information (e.g., stack trace)
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "Tool Error",
            "description": "Structured error from tool execution",
            "examples": [{
                "tool_name": "calculator",
                "message": "division by zero",
                "code": "INVALID_PARAMS",
                "recoverable": True,
            }],
        },
    )

    tool_name: Annotated[str, Field(min_length=1, description="Name of the tool that produced the error")]
    message: Annotated[str, Field(min_length=1, description="Human-readable error message")]
    code: ErrorCode = Field(default=ErrorCode.UNKNOWN, description="Machine-readable error classification")
    recoverable: bool = Field(default=True, description="Whether retry might succeed")
    details: str | None = Field(default=None, description="Optional detailed error info (e.g., stack trace)")

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: str | Exception) -> str:
        """Accept Exception objects and extract message."""
        if isinstance(v, Exception):
            return str(v) or type(v).__name__
        return v

    @computed_field
    @property
    def severity(self) -> str:
        """Error severity level for logging/display."""
        if self.code in (ErrorCode.RATE_LIMITED, ErrorCode.TIMEOUT):
            return "warning"
        if self.code is ErrorCode.PERMISSION_DENIED:
            return "critical"
        return "error"

    @classmethod
    def from_exception(
        cls,
        tool_name: str,
        exc: Exception,
        context: str = "",
        *,
        recoverable: bool = True,
        include_trace: bool = False,
    ) -> Self:
        """Create from exception with auto-classification."""
        message = str(exc) or type(exc).__name__
        return cls(
            tool_name=tool_name,
            message=f"{context}: {message}" if context else message,
            code=classify_exception(exc),
            recoverable=recoverable,
            details=traceback.format_exc() if include_trace else None,
        )

    def render(self) -> str:
        """Format error for model consumption."""
        parts = [f"Tool Error ({self.tool_name}) [{self.code}]: {self.message}"]
        if self.details:
            parts.append(f"\n\nDetails:\n{self.details}")
        return "".join(parts)

    __str__ = render


# ─────────────────────────────────────────────────────────────────────────────
# Exception taxonomy
# ─────────────────────────────────────────────────────────────────────────────


class ToolchatError(Exception):
    """Base class for all orchestration errors."""

    code: ErrorCode = ErrorCode.UNKNOWN


class ModelInvocationError(ToolchatError):
    """The model transport failed. Fatal for the whole run, never retried."""

    code = ErrorCode.EXTERNAL_SERVICE_ERROR


class ToolNotFound(ToolchatError, LookupError):
    """No tool with the requested name exists in the toolbox."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"tool not found: {name}")


class DuplicateToolError(ToolchatError, ValueError):
    """Two tools with the same name were offered together."""

    code = ErrorCode.INVALID_PARAMS


class InvalidToolUsage(ToolchatError, ValueError):
    """A forced tool-usage policy names a tool the request does not carry."""

    code = ErrorCode.INVALID_PARAMS


class UncorrelatedToolResult(ToolchatError, ValueError):
    """A tool result or error references a call absent from the history."""

    code = ErrorCode.INVALID_PARAMS


class ToolExecutionError(ToolchatError):
    """Exception wrapping a ToolError raised by a tool's run."""

    __slots__ = ("error",)

    def __init__(self, error: ToolError) -> None:
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> ErrorCode:  # type: ignore[override]
        return self.error.code

    @classmethod
    def create(cls, tool_name: str, message: str, code: ErrorCode = ErrorCode.UNKNOWN, *, recoverable: bool = True) -> Self:
        return cls(ToolError(tool_name=tool_name, message=message, code=code, recoverable=recoverable))

    @classmethod
    def from_exc(cls, tool_name: str, exc: Exception, context: str = "") -> Self:
        """Fast path: create from exception without trace."""
        return cls(ToolError.from_exception(tool_name, exc, context))


class RetryExhausted(ToolchatError):
    """All execution attempts for one tool call failed.

    Carries the last concrete execution error for diagnostics.
    """

    code = ErrorCode.RETRY_EXHAUSTED

    def __init__(self, tool_call: ToolCall, last_error: ToolExecutionError, attempts: int) -> None:
        self.tool_call = tool_call
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"tool call failed after {attempts} attempts: {last_error}")


class NoForcedCallProduced(ToolchatError):
    """The transport returned no tool call despite a forced-tool policy."""

    code = ErrorCode.EXTERNAL_SERVICE_ERROR

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"no tool call found in response: model did not follow forced tool usage of '{tool_name}'")


class CorrectionFailure(ToolchatError):
    """The self-correction round-trip for a failed tool call did not yield arguments."""

    code = ErrorCode.PARSE_ERROR

    def __init__(self, tool_name: str, reason: str) -> None:
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"failed to get corrected parameters for '{tool_name}': {reason}")


class MaxTurnsExceeded(ToolchatError):
    """The model kept calling tools past the configured turn ceiling."""

    code = ErrorCode.RETRY_EXHAUSTED

    def __init__(self, max_turns: int) -> None:
        self.max_turns = max_turns
        super().__init__(f"conversation exceeded {max_turns} turns without a final answer")
