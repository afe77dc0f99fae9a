"""Core tool abstractions: the Tool protocol, BaseTool and ToolMetadata.

Anything exposing a name, a description, opaque input/output JSON schemas and
an async ``run(args)`` is a tool. BaseTool is the typed way to build one:
subclass it with a pydantic parameter schema and implement ``_run``.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from toolchat.foundation.errors import (
    ErrorCode,
    JsonDict,
    JsonSchema,
    JsonValue,
    ToolExecutionError,
    format_validation_error,
)


@runtime_checkable
class Tool(Protocol):
    """Capability interface every callable unit implements.

    Schemas are opaque to the orchestration engine, which only forwards them
    to the model transport. ``run`` fails with ToolExecutionError.
    """

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def input_schema(self) -> JsonSchema: ...

    @property
    def output_schema(self) -> JsonSchema: ...

    async def run(self, args: JsonDict) -> JsonValue: ...


class ToolMetadata(BaseModel):
    """Metadata describing a tool.

    Attributes:
        name: Unique identifier (snake_case, e.g., "web_search")
        description: What the tool does (shown to the model for selection)
        category: Grouping category (e.g., "math", "booking")
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    description: str = Field(..., min_length=10)
    category: str = Field(default="general")


class EmptyParams(BaseModel):
    """Default parameter schema for tools with no inputs."""


TParams = TypeVar("TParams", bound=BaseModel)

_JSON: TypeAdapter[Any] = TypeAdapter(Any)


def to_json_value(value: object) -> JsonValue:
    """Convert tool output (pydantic models included) into plain JSON data."""
    return _JSON.dump_python(value, mode="json")


class BaseTool(ABC, Generic[TParams]):
    """Abstract base class for typed tools.

    Subclasses must:
    - Define ``metadata`` class variable with ToolMetadata
    - Define ``params_schema`` class variable with the pydantic model type
    - Implement ``_run(params)``

    Optional:
    - ``output_type`` to advertise an output schema
    - ``_async_run(params)`` for a native async implementation

    Example:
        >>> class AddParams(BaseModel):
        ...     a: int
        ...     b: int
        ...
        >>> class AddTool(BaseTool[AddParams]):
        ...     metadata = ToolMetadata(name="add", description="Add two integers")
        ...     params_schema = AddParams
        ...
        ...     def _run(self, params: AddParams) -> int:
        ...         return params.a + params.b
        ...
        >>> await AddTool().run({"a": 1, "b": 2})
        3
    """

    metadata: ClassVar[ToolMetadata]
    params_schema: ClassVar[type[BaseModel]]
    output_type: ClassVar[Any] = None

    # ─────────────────────────────────────────────────────────────────
    # Tool protocol
    # ─────────────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def description(self) -> str:
        return self.metadata.description

    @property
    def input_schema(self) -> JsonSchema:
        return self.params_schema.model_json_schema()

    @property
    def output_schema(self) -> JsonSchema:
        if self.output_type is None:
            return {}
        return TypeAdapter(self.output_type).json_schema()

    # ─────────────────────────────────────────────────────────────────
    # Error Handling
    # ─────────────────────────────────────────────────────────────────

    def _error(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, *, recoverable: bool = True) -> ToolExecutionError:
        """Build a ToolExecutionError for this tool. Callers raise it."""
        return ToolExecutionError.create(self.name, message, code, recoverable=recoverable)

    # ─────────────────────────────────────────────────────────────────
    # Core Execution
    # ─────────────────────────────────────────────────────────────────

    @abstractmethod
    def _run(self, params: TParams) -> Any:
        """Execute the tool synchronously. Return JSON-compatible data or a pydantic model."""
        ...

    async def _async_run(self, params: TParams) -> Any:
        """Execute the tool asynchronously.

        Default implementation runs ``_run`` in a worker thread. Override for
        native async implementations.
        """
        return await asyncio.to_thread(self._run, params)

    def validate_args(self, args: JsonDict) -> TParams:
        """Validate raw arguments against ``params_schema``.

        Raises:
            ToolExecutionError: With INVALID_PARAMS, listing the offending fields
        """
        try:
            return self.params_schema.model_validate(args)  # type: ignore[return-value]
        except ValidationError as e:
            raise ToolExecutionError.create(
                self.name, format_validation_error(e, tool_name=self.name), ErrorCode.INVALID_PARAMS
            ) from e

    async def run(self, args: JsonDict) -> JsonValue:
        """Validate, execute and serialize.

        Every failure surfaces as ToolExecutionError; cancellation propagates.
        """
        params = self.validate_args(args)
        try:
            result = await self._async_run(params)
        except ToolExecutionError:
            raise
        except Exception as e:
            raise ToolExecutionError.from_exc(self.name, e) from e
        return to_json_value(result)

    async def acall(self, **kwargs: Any) -> JsonValue:
        """Invoke with keyword arguments."""
        return await self.run(kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
