"""Decorator-based tool definition for plain functions.

Turns a sync or async function into a BaseTool. The parameter schema comes
from the signature, its type hints and the Google-style ``Args:`` block of
the docstring; the output schema comes from the return annotation.

Example:
    >>> @tool(description="Perform basic arithmetic on two numbers", category="math")
    ... def calculator(op: str, a: float, b: float) -> dict[str, float]:
    ...     '''Calculate.
    ...
    ...     Args:
    ...         op: One of add, sub, mul, div
    ...         a: Left operand
    ...         b: Right operand
    ...     '''
    ...     return {"result": a + b}
    ...
    >>> await calculator.run({"op": "add", "a": 15, "b": 27})
    {'result': 42.0}
"""

from __future__ import annotations

import asyncio
import inspect
import re
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, ParamSpec, TypeVar, get_type_hints, overload

from pydantic import BaseModel, Field, create_model

from .base import BaseTool, ToolMetadata

if TYPE_CHECKING:
    from collections.abc import Awaitable

P = ParamSpec("P")
T = TypeVar("T")

_ARGS_HEADERS = frozenset({"args", "arguments", "parameters"})
_ARG_LINE = re.compile(r"^\*{0,2}(?P<name>\w+)\s*(?:\([^)]*\))?\s*:\s*(?P<desc>.*)$")
_MIN_DESCRIPTION = 10


# ─────────────────────────────────────────────────────────────────────────────
# Signature introspection
# ─────────────────────────────────────────────────────────────────────────────


def _docstring_args(doc: str | None) -> dict[str, str]:
    """Per-parameter descriptions from the ``Args:`` block, continuation lines joined."""
    if not doc:
        return {}
    described: dict[str, list[str]] = {}
    in_args = False
    arg_indent: int | None = None
    current: list[str] | None = None

    for raw in inspect.cleandoc(doc).splitlines():
        line = raw.strip()
        if not line:
            continue
        indent = len(raw) - len(raw.lstrip())
        if indent == 0:
            in_args = line.endswith(":") and line[:-1].strip().lower() in _ARGS_HEADERS
            arg_indent = current = None
            continue
        if not in_args:
            continue
        if arg_indent is None:
            arg_indent = indent
        arg = _ARG_LINE.match(line) if indent == arg_indent else None
        if arg:
            current = described.setdefault(arg["name"], [])
            current.append(arg["desc"])
        elif current is not None:
            current.append(line)

    return {name: " ".join(" ".join(parts).split()) for name, parts in described.items()}


def _params_model(func: Callable[..., Any], model_name: str) -> type[BaseModel]:
    """Pydantic model mirroring the keyword-callable parameters of ``func``.

    Unannotated parameters are typed as ``str``.
    """
    hints = get_type_hints(func)
    docs = _docstring_args(func.__doc__)
    fields: dict[str, Any] = {}

    for param in inspect.signature(func).parameters.values():
        if param.name in ("self", "cls") or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        default = ... if param.default is param.empty else param.default
        description = docs.get(param.name, f"Parameter: {param.name}")
        fields[param.name] = (hints.get(param.name, str), Field(default, description=description))

    return create_model(model_name, **fields)  # type: ignore[call-overload, no-any-return]


def _return_type(func: Callable[..., Any]) -> Any:
    """Return annotation, or None when absent or ``-> None``."""
    ret = get_type_hints(func).get("return")
    return None if ret is None or ret is type(None) else ret


def _summary(doc: str | None) -> str | None:
    if not doc:
        return None
    return inspect.cleandoc(doc).partition("\n")[0].strip() or None


def _snake(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", "_", name).lower()


def _pascal(name: str) -> str:
    return name.title().replace("_", "")


# ─────────────────────────────────────────────────────────────────────────────
# FunctionTool
# ─────────────────────────────────────────────────────────────────────────────


class FunctionTool(BaseTool[BaseModel]):
    """BaseTool over a sync or async function.

    Sync functions run in a worker thread so they never block the event loop.
    """

    __slots__ = ("_func", "_is_async")

    def __init__(
        self,
        func: Callable[..., Any] | Callable[..., Awaitable[Any]],
        metadata: ToolMetadata,
        params_schema: type[BaseModel],
        output_type: Any = None,
    ) -> None:
        self._func = func
        self._is_async = inspect.iscoroutinefunction(func)
        # metadata/params_schema/output_type are ClassVars on BaseTool:
        # one subclass per wrapped function
        cls = type(self)
        self.__class__ = type(
            f"{cls.__name__}_{metadata.name}",
            (cls,),
            {"metadata": metadata, "params_schema": params_schema, "output_type": output_type},
        )

    @property
    def func(self) -> Callable[..., Any]:
        """The undecorated function."""
        return self._func

    def _kwargs(self, params: BaseModel) -> dict[str, Any]:
        # getattr keeps nested models as models; model_dump() would flatten them
        return {name: getattr(params, name) for name in type(params).model_fields}

    def _run(self, params: BaseModel) -> Any:
        result = self._func(**self._kwargs(params))
        return asyncio.run(result) if self._is_async else result

    async def _async_run(self, params: BaseModel) -> Any:
        if self._is_async:
            return await self._func(**self._kwargs(params))
        return await asyncio.to_thread(self._func, **self._kwargs(params))


# ─────────────────────────────────────────────────────────────────────────────
# @tool
# ─────────────────────────────────────────────────────────────────────────────


@overload
def tool(func: Callable[P, T]) -> FunctionTool: ...


@overload
def tool(
    *,
    name: str | None = None,
    description: str | None = None,
    category: str = "general",
) -> Callable[[Callable[P, T]], FunctionTool]: ...


def tool(
    func: Callable[P, T] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
    category: str = "general",
) -> FunctionTool | Callable[[Callable[P, T]], FunctionTool]:
    """Wrap a function as a tool, bare (``@tool``) or configured (``@tool(...)``).

    Args:
        func: Function being decorated when used without parentheses
        name: Tool name; defaults to the function name in snake_case
        description: Defaults to the docstring summary line
        category: Free-form grouping label

    Descriptions shorter than ten characters are padded.
    """
    def wrap(fn: Callable[P, T]) -> FunctionTool:
        tool_name = name or _snake(fn.__name__)
        summary = description or _summary(fn.__doc__) or f"Execute {tool_name}"
        if len(summary) < _MIN_DESCRIPTION:
            summary = f"{summary} - automatically generated tool"

        wrapped = FunctionTool(
            fn,
            ToolMetadata(name=tool_name, description=summary, category=category),
            _params_model(fn, f"{_pascal(tool_name)}Params"),
            _return_type(fn),
        )
        wraps(fn)(wrapped)
        return wrapped

    return wrap if func is None else wrap(func)
