"""One-shot structured invocation.

Exactly one forced round-trip per call: no loop, no retry, no self-correction.
Callers that need resilience should run an Agent with a single-tool toolbox.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import TypeAdapter

from toolchat.foundation.core import Message, UserMessage
from toolchat.foundation.errors import JsonSchema, JsonValue

from .request import Request
from .response import ChatModel
from .structured import StructuredOutputModel

T = TypeVar("T")


class Invoker:
    """Thin composition over a StructuredOutputModel.

    Example:
        >>> invoker = Invoker.for_type(transport, Booking)
        >>> booking = await invoker.parse("Book a table for two at 7pm", Booking)
    """

    __slots__ = ("_structured", "_system", "_max_tokens", "_temperature")

    def __init__(
        self,
        structured: StructuredOutputModel,
        *,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> None:
        self._structured = structured
        self._system = system
        self._max_tokens = max_tokens
        self._temperature = temperature

    @classmethod
    def for_schema(cls, model: ChatModel, schema: JsonSchema, **kwargs: Any) -> Invoker:
        return cls(StructuredOutputModel(schema, model), **kwargs)

    @classmethod
    def for_type(cls, model: ChatModel, target: Any, **kwargs: Any) -> Invoker:
        return cls(StructuredOutputModel.for_type(target, model), **kwargs)

    @property
    def structured(self) -> StructuredOutputModel:
        return self._structured

    def build_request(self, history: Sequence[Message] | str) -> Request:
        """Bare request from a message history (a string becomes one user message)."""
        messages = (UserMessage(content=history),) if isinstance(history, str) else tuple(history)
        return Request(
            history=messages,
            system=self._system,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )

    async def invoke(self, history: Sequence[Message] | str) -> JsonValue:
        """Return the raw structured payload.

        Raises:
            ModelInvocationError: The transport failed
            NoForcedCallProduced: The transport ignored the forced policy
        """
        return await self._structured.extract(self.build_request(history))

    async def parse(self, history: Sequence[Message] | str, target: type[T]) -> T:
        """Invoke and validate the payload into ``target``.

        Raises:
            pydantic.ValidationError: The payload does not fit ``target``
        """
        payload = await self.invoke(history)
        return TypeAdapter(target).validate_python(payload)
