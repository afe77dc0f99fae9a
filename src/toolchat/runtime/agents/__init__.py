"""Agents: the orchestration loop and its retrying, self-correcting dispatcher."""

from .agent import Agent, AgentConfig
from .correction import (
    DEFAULT_CORRECTION_PROMPT,
    DEFAULT_CORRECTION_TOOL,
    DEFAULT_CORRECTION_TOOL_DESCRIPTION,
    CorrectingDispatcher,
    build_correction_prompt,
    execute_tool,
    request_correction,
)

__all__ = [
    "Agent",
    "AgentConfig",
    "CorrectingDispatcher",
    "DEFAULT_CORRECTION_PROMPT",
    "DEFAULT_CORRECTION_TOOL",
    "DEFAULT_CORRECTION_TOOL_DESCRIPTION",
    "build_correction_prompt",
    "execute_tool",
    "request_correction",
]
