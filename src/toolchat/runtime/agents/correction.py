"""Bounded retry with model-driven self-correction for one tool call.

When a tool rejects its arguments, the model is asked for corrected ones
through a forced structured-output round-trip against the tool's input schema.
The correction exchange is isolated: a single synthetic user message naming
the tool, the exact error and the failed arguments, nothing from the main
conversation.

Per call, with ``max_retries = N``:

    run -> fail -> wait -> correct -> run -> ... -> RetryExhausted

at most N+1 executions, N waits and N correction round-trips.
"""

from __future__ import annotations

import asyncio

from toolchat.foundation import codec
from toolchat.foundation.core import Tool, ToolCall, ToolResultMessage, UserMessage, to_json_value
from toolchat.foundation.errors import (
    CorrectionFailure,
    Err,
    JsonDict,
    Ok,
    Result,
    RetryExhausted,
    ToolchatError,
    ToolExecutionError,
)
from toolchat.llm import ChatModel, Request, StructuredOutputModel
from toolchat.runtime.observability import get_logger
from toolchat.runtime.retry import RetryPolicy

log = get_logger("toolchat.correction")

DEFAULT_CORRECTION_PROMPT = (
    "The tool '{tool_name}' failed with the following error:\n\n"
    "{error}\n\n"
    "It was called with these parameters:\n\n"
    "{args}\n\n"
    "Provide corrected parameters for '{tool_name}' that satisfy its input schema."
)

DEFAULT_CORRECTION_TOOL = "formatter"
DEFAULT_CORRECTION_TOOL_DESCRIPTION = "Must be called to provide structured output"


def build_correction_prompt(
    tool_name: str,
    error: str,
    args: JsonDict,
    template: str = DEFAULT_CORRECTION_PROMPT,
) -> UserMessage:
    """The single user message sent to obtain corrected arguments."""
    return UserMessage(content=template.format(tool_name=tool_name, error=error, args=codec.pretty(args)))


async def request_correction(
    model: ChatModel,
    tool: Tool,
    tool_call: ToolCall,
    error: ToolExecutionError,
    *,
    template: str = DEFAULT_CORRECTION_PROMPT,
    tool_name: str = DEFAULT_CORRECTION_TOOL,
    tool_description: str = DEFAULT_CORRECTION_TOOL_DESCRIPTION,
) -> Result[JsonDict, CorrectionFailure]:
    """Ask ``model`` for corrected arguments for a failed call.

    Never raises for model-side problems: transport errors, a missing forced
    call, or a non-object payload come back as ``Err(CorrectionFailure)``.
    Cancellation propagates. The forced round-trip offers one tool named
    ``tool_name`` whose input schema is the failing tool's.
    """
    structured = StructuredOutputModel(tool.input_schema, model, name=tool_name, description=tool_description)
    prompt = build_correction_prompt(tool.name, error.error.render(), tool_call.args, template)
    try:
        payload = await structured.extract(Request(history=(prompt,)))
    except ToolchatError as e:
        return Err(CorrectionFailure(tool.name, str(e)))
    if not isinstance(payload, dict):
        return Err(CorrectionFailure(tool.name, f"expected an object, got {type(payload).__name__}"))
    return Ok(payload)


async def execute_tool(tool: Tool, tool_call: ToolCall) -> ToolResultMessage:
    """Run ``tool`` once. Any failure surfaces as ToolExecutionError."""
    try:
        result = to_json_value(await tool.run(tool_call.args))
    except ToolExecutionError:
        raise
    except Exception as e:
        raise ToolExecutionError.from_exc(tool.name, e) from e
    return ToolResultMessage(tool_call=tool_call, result=result)


class CorrectingDispatcher:
    """Executes tool calls reliably, using ``model`` as the correction oracle.

    ``model`` must be the underlying model, never the Agent wrapping it.
    """

    __slots__ = ("_model", "_policy", "_template", "_tool_name", "_tool_description")

    def __init__(
        self,
        model: ChatModel,
        policy: RetryPolicy,
        *,
        template: str = DEFAULT_CORRECTION_PROMPT,
        tool_name: str = DEFAULT_CORRECTION_TOOL,
        tool_description: str = DEFAULT_CORRECTION_TOOL_DESCRIPTION,
    ) -> None:
        self._model = model
        self._policy = policy
        self._template = template
        self._tool_name = tool_name
        self._tool_description = tool_description

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def dispatch(self, tool: Tool, tool_call: ToolCall) -> ToolResultMessage:
        """Execute with bounded retries.

        The caller's ``tool_call`` is never modified; corrected arguments live
        in a loop-local call sharing its id and name.

        Raises:
            RetryExhausted: Every attempt failed; carries the last execution error
            asyncio.CancelledError: Cancelled, including during a backoff wait
        """
        call = tool_call
        tlog = log.bind_tool(tool.name, call.id)
        attempt = 0

        while True:
            try:
                message = await execute_tool(tool, call)
            except ToolExecutionError as e:
                last_error = e
            else:
                if attempt:
                    tlog.info("tool succeeded after retries", attempts=attempt + 1)
                return message

            if not self._policy.should_retry(attempt):
                tlog.error("retries exhausted", attempts=attempt + 1, code=last_error.code, error=str(last_error))
                raise RetryExhausted(call, last_error, attempt + 1) from last_error

            delay = self._policy.delay(attempt)
            tlog.warning("tool failed, retry scheduled", attempt=attempt + 1, delay=delay, code=last_error.code, error=str(last_error))
            if self._policy.on_retry is not None:
                self._policy.on_retry(attempt, str(last_error), delay)
            await asyncio.sleep(delay)

            correction = await request_correction(
                self._model,
                tool,
                call,
                last_error,
                template=self._template,
                tool_name=self._tool_name,
                tool_description=self._tool_description,
            )
            match correction:
                case Ok(args):
                    tlog.info("arguments corrected", attempt=attempt + 1)
                    call = call.with_args(args)
                case Err(failure):
                    tlog.warning("correction failed, keeping arguments", attempt=attempt + 1, reason=failure.reason)
            attempt += 1
