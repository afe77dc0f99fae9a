"""Tool-usage policy consulted by the orchestration layer and transports.

Closed variant:
- AutoToolUsage: the model chooses freely among provided tools (zero or more calls)
- ForcedToolUsage: the model must call exactly the named tool
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import TYPE_CHECKING, Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from toolchat.foundation.errors import InvalidToolUsage

if TYPE_CHECKING:
    from toolchat.foundation.core import Tool


class ToolUsageType(StrEnum):
    AUTO = "auto"
    FORCED = "forced"


class AutoToolUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["auto"] = "auto"

    def validate_against(self, tools: Iterable[Tool]) -> None:
        """Auto is valid for any tool set, including an empty one."""


class ForcedToolUsage(BaseModel):
    """Compels the model to emit exactly one call to ``tool_name``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["forced"] = "forced"
    tool_name: Annotated[str, Field(min_length=1)]

    def validate_against(self, tools: Iterable[Tool]) -> None:
        """Raises InvalidToolUsage if the forced tool is not offered."""
        if not any(t.name == self.tool_name for t in tools):
            raise InvalidToolUsage(f"forced tool '{self.tool_name}' is not among the request's tools")


ToolUsage = Annotated[Union[AutoToolUsage, ForcedToolUsage], Field(discriminator="type")]

AUTO = AutoToolUsage()


def auto() -> AutoToolUsage:
    return AUTO


def force(tool_name: str) -> ForcedToolUsage:
    return ForcedToolUsage(tool_name=tool_name)
