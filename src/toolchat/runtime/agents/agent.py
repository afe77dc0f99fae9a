"""The orchestration engine: model call, tool dispatch, result injection, repeat.

States per run::

    AwaitingModel -> Dispatching(calls) -> AwaitingModel -> ... -> Done

Each turn sends the caller's request with the agent's toolbox and an Auto
policy, and a history of the caller's messages followed by everything the run
has emitted so far. The run ends when the model answers without tool calls.

Failures local to one tool call (unknown tool, exhausted retries) become
ToolErrorMessages the model sees on the next turn. Model transport failures
are fatal for the run. Cancellation always propagates.

Example:
    >>> agent = Agent(transport, [calculator], config=AgentConfig(max_turns=8))
    >>> history = await agent.run(Request.of("What is 15 + 27?"))
    >>> [m.kind for m in history]
    ['user', 'tool_call', 'tool_result', 'assistant']
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from toolchat.foundation.core import (
    History,
    Message,
    Tool,
    Toolbox,
    ToolCall,
    ToolErrorMessage,
    ToolResultMessage,
    extend_history,
)
from toolchat.foundation.errors import (
    ErrorCode,
    MaxTurnsExceeded,
    ModelInvocationError,
    RetryExhausted,
    ToolchatError,
    ToolError,
    ToolNotFound,
)
from toolchat.llm import AUTO, ChatModel, Request, Response
from toolchat.runtime.observability import get_logger, log_context
from toolchat.runtime.retry import RetryPolicy

from .correction import (
    DEFAULT_CORRECTION_PROMPT,
    DEFAULT_CORRECTION_TOOL,
    DEFAULT_CORRECTION_TOOL_DESCRIPTION,
    CorrectingDispatcher,
)

if TYPE_CHECKING:
    from toolchat.foundation.config import ToolchatSettings

log = get_logger("toolchat.agent")

ToolOutcome = ToolResultMessage | ToolErrorMessage


class AgentConfig(BaseModel):
    """Immutable agent configuration, passed explicitly at construction.

    Attributes:
        retry: Retry and self-correction policy for tool calls
        max_turns: Ceiling on model invocations per run (None = unbounded)
        concurrent_tools: Dispatch the calls of one turn concurrently
        correction_prompt: Template with {tool_name}, {error} and {args}
        correction_tool_name: Name of the formatter tool forced during correction
        correction_tool_description: Description of that formatter tool
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    max_turns: PositiveInt | None = None
    concurrent_tools: bool = False
    correction_prompt: str = DEFAULT_CORRECTION_PROMPT
    correction_tool_name: str = Field(default=DEFAULT_CORRECTION_TOOL, pattern=r"^[A-Za-z_][A-Za-z0-9_-]*$")
    correction_tool_description: str = Field(default=DEFAULT_CORRECTION_TOOL_DESCRIPTION, min_length=1)

    @classmethod
    def from_settings(cls, settings: ToolchatSettings | None = None) -> AgentConfig:
        """Defaults from ``TOOLCHAT_RETRY_*``, ``TOOLCHAT_AGENT_*`` and ``TOOLCHAT_STRUCTURED_*``."""
        if settings is None:
            from toolchat.foundation.config import get_settings
            settings = get_settings()
        return cls(
            retry=RetryPolicy.from_settings(settings.retry),
            max_turns=settings.agent.max_turns,
            concurrent_tools=settings.agent.concurrent_tools,
            correction_tool_name=settings.structured.tool_name,
            correction_tool_description=settings.structured.tool_description,
        )


class Agent:
    """Turn-taking loop over a model and a toolbox.

    Satisfies ChatModel, so an Agent can itself be wrapped or nested.
    """

    __slots__ = ("_model", "_toolbox", "_config", "_dispatcher")

    def __init__(
        self,
        model: ChatModel,
        tools: Toolbox | Iterable[Tool] = (),
        *,
        config: AgentConfig | None = None,
    ) -> None:
        self._model = model
        self._toolbox = tools if isinstance(tools, Toolbox) else Toolbox(tools)
        self._config = config or AgentConfig()
        self._dispatcher = CorrectingDispatcher(
            model,
            self._config.retry,
            template=self._config.correction_prompt,
            tool_name=self._config.correction_tool_name,
            tool_description=self._config.correction_tool_description,
        )

    @property
    def model(self) -> ChatModel:
        return self._model

    @property
    def toolbox(self) -> Toolbox:
        return self._toolbox

    @property
    def config(self) -> AgentConfig:
        return self._config

    # ─────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────

    async def invoke(self, request: Request) -> Response:
        """Run to completion and return every message emitted during the run.

        If the model calls no tool on the first turn, the transport's response
        is returned as-is.

        Raises:
            ModelInvocationError: The model transport failed
            MaxTurnsExceeded: ``max_turns`` was reached while tools were still called
        """
        run_id = uuid.uuid4().hex[:12]
        with log_context(run_id=run_id):
            return await self._loop(request)

    async def run(self, request: Request) -> History:
        """Caller history followed by every message the run emitted."""
        response = await self.invoke(request)
        return extend_history(request.history, *response.messages)

    async def call_tool(self, tool_call: ToolCall) -> ToolResultMessage:
        """Look up and execute one call with retries and self-correction.

        Raises:
            ToolNotFound: No tool with that name in the toolbox
            RetryExhausted: Every attempt failed
        """
        tool = self._toolbox.lookup(tool_call.name)
        return await self._dispatcher.dispatch(tool, tool_call)

    # ─────────────────────────────────────────────────────────────────
    # State machine
    # ─────────────────────────────────────────────────────────────────

    async def _loop(self, request: Request) -> Response:
        emitted: History = ()
        max_turns = self._config.max_turns
        turn = 0

        while True:
            turn += 1
            with log_context(turn=turn):
                response = await self._await_model(self._turn_request(request, emitted))
                if not response.has_tool_calls:
                    log.debug("run finished", emitted=len(emitted) + len(response))
                    return response if not emitted else Response(extend_history(emitted, *response.messages))

                if max_turns is not None and turn >= max_turns:
                    log.error("turn ceiling reached", max_turns=max_turns, pending_calls=len(response.tool_calls))
                    raise MaxTurnsExceeded(max_turns)

                outcomes = await self._dispatch_all(response.tool_calls)
                emitted = extend_history(emitted, *response.messages, *outcomes)

    def _turn_request(self, request: Request, emitted: Sequence[Message]) -> Request:
        # Caller history, never a previous turn's tool-augmented request
        return request.clone(
            history=extend_history(request.history, *emitted),
            tools=self._toolbox.tools,
            tool_usage=AUTO,
        )

    async def _await_model(self, request: Request) -> Response:
        log.debug("invoking model", history=len(request.history), tools=len(request.tools))
        try:
            response = await self._model.invoke(request)
        except ToolchatError:
            raise
        except Exception as e:
            log.error("model invocation failed", error=str(e))
            raise ModelInvocationError(f"model invocation failed: {e}") from e
        log.debug("model responded", messages=len(response), tool_calls=len(response.tool_calls))
        return response

    async def _dispatch_all(self, calls: Sequence[ToolCall]) -> tuple[ToolOutcome, ...]:
        """Outcomes in emission order, whether dispatched sequentially or concurrently."""
        if self._config.concurrent_tools and len(calls) > 1:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(self._dispatch(call)) for call in calls]
            return tuple(task.result() for task in tasks)
        return tuple([await self._dispatch(call) for call in calls])

    async def _dispatch(self, call: ToolCall) -> ToolOutcome:
        log.info("dispatching tool", tool=call.name, call_id=call.id)
        try:
            return await self.call_tool(call)
        except ToolNotFound as e:
            log.warning("unknown tool requested", tool=call.name, call_id=call.id)
            error = ToolError(tool_name=call.name, message=str(e), code=ErrorCode.NOT_FOUND, recoverable=False)
            return ToolErrorMessage(tool_call=call, error=error.render(), code=error.code)
        except RetryExhausted as e:
            last = e.last_error.error
            error = last.model_copy(update={
                "message": f"{last.message} (failed after {e.attempts} attempts)",
                "recoverable": False,
            })
            return ToolErrorMessage(tool_call=call, error=error.render(), code=error.code)
