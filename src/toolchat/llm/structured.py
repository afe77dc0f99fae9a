"""Structured output by forcing a single synthetic tool call.

A model that only emits text or tool calls can still be made to return an
arbitrary schema: offer it exactly one "formatter" tool whose input schema is
the target schema, force the call, and take the call's arguments as the value.

StructuredOutputModel satisfies ChatModel, so it can sit anywhere a model can.

Example:
    >>> class Weather(BaseModel):
    ...     city: str
    ...     celsius: float
    ...
    >>> structured = StructuredOutputModel.for_type(Weather, transport)
    >>> await structured.extract(Request.of("Weather in Oslo?"))
    {'city': 'Oslo', 'celsius': 4.5}
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from toolchat.foundation import codec
from toolchat.foundation.config import get_settings
from toolchat.foundation.core import AssistantMessage
from toolchat.foundation.errors import (
    JsonDict,
    JsonSchema,
    JsonValue,
    ModelInvocationError,
    NoForcedCallProduced,
    ToolchatError,
)
from toolchat.runtime.observability import get_logger

from .request import Request
from .response import ChatModel, Response
from .tool_usage import force

log = get_logger("toolchat.structured")


class FormatterTool:
    """Synthetic tool whose arguments are the desired structured value.

    Input and output schema are both the target schema; ``run`` echoes its
    arguments back unchanged.
    """

    __slots__ = ("_name", "_description", "_schema")

    def __init__(self, schema: JsonSchema, *, name: str, description: str) -> None:
        self._name = name
        self._description = description
        self._schema = schema

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def input_schema(self) -> JsonSchema:
        return self._schema

    @property
    def output_schema(self) -> JsonSchema:
        return self._schema

    async def run(self, args: JsonDict) -> JsonValue:
        return args

    def __repr__(self) -> str:
        return f"FormatterTool(name={self._name!r})"


class StructuredOutputModel:
    """Model facade that forces every invocation through a formatter tool.

    The caller's tools and tool-usage policy are discarded; its history,
    system preamble and generation parameters are kept.
    """

    __slots__ = ("_model", "_formatter")

    def __init__(
        self,
        schema: JsonSchema,
        model: ChatModel,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> None:
        if name is None or description is None:
            defaults = get_settings().structured
            name = name or defaults.tool_name
            description = description or defaults.tool_description
        self._model = model
        self._formatter = FormatterTool(schema, name=name, description=description)

    @classmethod
    def for_type(cls, target: Any, model: ChatModel, **kwargs: Any) -> StructuredOutputModel:
        """Build the target schema from a Python type (pydantic model, TypedDict, dataclass...)."""
        return cls(TypeAdapter(target).json_schema(), model, **kwargs)

    @property
    def model(self) -> ChatModel:
        """The underlying model."""
        return self._model

    @property
    def formatter(self) -> FormatterTool:
        return self._formatter

    @property
    def schema(self) -> JsonSchema:
        return self._formatter.input_schema

    def forced_request(self, request: Request) -> Request:
        """The caller's request rewritten to force the formatter tool."""
        return request.clone(tools=(self._formatter,), tool_usage=force(self._formatter.name))

    async def extract(self, request: Request) -> JsonValue:
        """Run one forced round-trip and return the raw structured payload.

        Raises:
            ModelInvocationError: The underlying transport failed
            NoForcedCallProduced: The response carried no tool call
        """
        name = self._formatter.name
        try:
            response = await self._model.invoke(self.forced_request(request))
        except ToolchatError:
            raise
        except Exception as e:
            raise ModelInvocationError(f"structured output request failed: {e}") from e

        calls = response.tool_calls
        if not calls:
            raise NoForcedCallProduced(name)
        if len(calls) > 1:
            log.warning("extra forced calls discarded", tool=name, discarded=len(calls) - 1)
        call = calls[0]
        if call.name != name:
            log.warning("forced call name mismatch", expected=name, received=call.name)
        return await self._formatter.run(call.args)

    async def invoke(self, request: Request) -> Response:
        """ChatModel entry point: the payload as a single JSON assistant message."""
        payload = await self.extract(request)
        return Response.of(AssistantMessage(content=codec.dumps(payload)))

    def __repr__(self) -> str:
        return f"StructuredOutputModel(tool={self._formatter.name!r}, model={self._model!r})"
