"""Read-only, name-keyed tool collection.

A Toolbox is built once and never changes. Duplicate names are rejected at
construction so dispatch by name is always unambiguous.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from toolchat.foundation.errors import DuplicateToolError, ToolNotFound

from .base import Tool


class Toolbox:
    """Immutable set of tools keyed by name.

    Example:
        >>> box = Toolbox([calculator, weather])
        >>> box.lookup("calculator").name
        'calculator'
        >>> "missing" in box
        False
    """

    __slots__ = ("_tools",)

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        registry: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in registry:
                raise DuplicateToolError(f"Tool '{tool.name}' offered more than once")
            registry[tool.name] = tool
        self._tools = registry

    @classmethod
    def of(cls, *tools: Tool) -> Toolbox:
        return cls(tools)

    def lookup(self, name: str) -> Tool:
        """Get tool by name.

        Raises:
            ToolNotFound: If no tool carries that name
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFound(name) from None

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._tools)

    @property
    def tools(self) -> tuple[Tool, ...]:
        """Tools in insertion order."""
        return tuple(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __repr__(self) -> str:
        return f"Toolbox({list(self._tools)!r})"
