"""Tests for retry policies, backoff and the correcting dispatcher."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from toolchat.foundation.core import ToolCall, ToolResultMessage, UserMessage
from toolchat.foundation.errors import (
    CorrectionFailure,
    Err,
    ErrorCode,
    Ok,
    RetryExhausted,
    ToolExecutionError,
)
from toolchat.foundation.testing import MockTool, ScriptedModel, text_response, tool_call_response
from toolchat.runtime.agents import (
    DEFAULT_CORRECTION_PROMPT,
    CorrectingDispatcher,
    build_correction_prompt,
    execute_tool,
    request_correction,
)
from toolchat.runtime.retry import NO_RETRY, Backoff, ExponentialBackoff, RetryPolicy


# ─────────────────────────────────────────────────────────────────────────────
# Backoff
# ─────────────────────────────────────────────────────────────────────────────


class TestExponentialBackoff:
    def test_growth_and_cap(self) -> None:
        backoff = ExponentialBackoff(base=1.0, max_delay=5.0, multiplier=2.0)
        assert [backoff.delay(i) for i in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_jitter_bounds(self) -> None:
        backoff = ExponentialBackoff(base=1.0, jitter=True)
        for _ in range(50):
            assert 0.5 <= backoff.delay(0) <= 1.5

    def test_protocol(self) -> None:
        assert isinstance(ExponentialBackoff(), Backoff)


# ─────────────────────────────────────────────────────────────────────────────
# RetryPolicy
# ─────────────────────────────────────────────────────────────────────────────


class TestRetryPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.delay(0) == pytest.approx(0.1)
        assert not policy.is_disabled

    def test_delays(self) -> None:
        policy = RetryPolicy(max_retries=3, initial_delay=0.5, backoff_multiplier=3.0, max_delay=2.0)
        assert [policy.delay(i) for i in range(3)] == [0.5, 1.5, 2.0]

    def test_should_retry(self) -> None:
        policy = RetryPolicy(max_retries=2)
        assert [policy.should_retry(i) for i in range(4)] == [True, True, False, False]

    def test_no_retry(self) -> None:
        assert NO_RETRY.is_disabled
        assert not NO_RETRY.should_retry(0)

    def test_validation(self) -> None:
        with pytest.raises(ValidationError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValidationError):
            RetryPolicy(initial_delay=-0.1)
        with pytest.raises(ValidationError):
            RetryPolicy(backoff_multiplier=0)
        with pytest.raises(ValidationError):
            RetryPolicy(unknown=True)  # type: ignore[call-arg]

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            RetryPolicy().max_retries = 5  # type: ignore[misc]

    def test_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLCHAT_RETRY_MAX_RETRIES", "5")
        monkeypatch.setenv("TOOLCHAT_RETRY_INITIAL_DELAY", "0.25")
        policy = RetryPolicy.from_settings()
        assert policy.max_retries == 5
        assert policy.initial_delay == 0.25

    def test_callback_not_serialized(self) -> None:
        policy = RetryPolicy(on_retry=lambda a, e, d: None)
        assert "on_retry" not in policy.model_dump()


# ─────────────────────────────────────────────────────────────────────────────
# Correction round-trip
# ─────────────────────────────────────────────────────────────────────────────


def _failure(tool: str = "picky", message: str = "x must be positive") -> ToolExecutionError:
    return ToolExecutionError.create(tool, message, ErrorCode.INVALID_PARAMS)


class TestCorrectionPrompt:
    def test_contents(self) -> None:
        prompt = build_correction_prompt("picky", "x must be positive", {"x": -1})
        assert isinstance(prompt, UserMessage)
        assert "'picky'" in prompt.content
        assert "x must be positive" in prompt.content
        assert '"x": -1' in prompt.content

    def test_default_template_placeholders(self) -> None:
        for placeholder in ("{tool_name}", "{error}", "{args}"):
            assert placeholder in DEFAULT_CORRECTION_PROMPT


class TestRequestCorrection:
    @pytest.mark.asyncio
    async def test_ok(self) -> None:
        picky = MockTool("picky", input_schema={"type": "object", "properties": {"x": {"type": "integer"}}})
        model = ScriptedModel(tool_call_response("formatter", {"x": 3}))
        call = ToolCall(id="c1", name="picky", args={"x": -1})

        result = await request_correction(model, picky, call, _failure())

        assert result == Ok({"x": 3})
        forced = model.last_request
        assert forced is not None
        assert forced.tools[0].input_schema == picky.input_schema
        assert "Tool Error (picky) [INVALID_PARAMS]: x must be positive" in forced.history[0].content

    @pytest.mark.asyncio
    async def test_missing_forced_call(self) -> None:
        model = ScriptedModel(text_response("no"))
        result = await request_correction(model, MockTool("picky"), ToolCall(id="c", name="picky", args={}), _failure())
        match result:
            case Err(CorrectionFailure(tool_name=name)):
                assert name == "picky"
            case _:
                pytest.fail(f"expected Err(CorrectionFailure), got {result!r}")

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        model = ScriptedModel(ConnectionError("down"))
        result = await request_correction(model, MockTool("picky"), ToolCall(id="c", name="picky", args={}), _failure())
        assert result.is_err()
        assert "down" in result.unwrap_err().reason


# ─────────────────────────────────────────────────────────────────────────────
# Dispatcher
# ─────────────────────────────────────────────────────────────────────────────


class TestExecuteTool:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        echo = MockTool("echo", return_value={"ok": 1})
        call = ToolCall(id="c", name="echo", args={"a": 1})
        message = await execute_tool(echo, call)
        assert message == ToolResultMessage(tool_call=call, result={"ok": 1})

    @pytest.mark.asyncio
    async def test_plain_exception_wrapped(self) -> None:
        class RawTool:
            name = "raw"
            description = "Raises a plain exception"
            input_schema: dict = {"type": "object"}
            output_schema: dict = {}

            async def run(self, args: dict) -> None:
                raise KeyError("city")

        with pytest.raises(ToolExecutionError) as info:
            await execute_tool(RawTool(), ToolCall(id="c", name="raw", args={}))
        assert info.value.code == ErrorCode.INVALID_PARAMS
        assert isinstance(info.value.__cause__, KeyError)


class TestCorrectingDispatcher:
    @pytest.mark.asyncio
    async def test_first_try(self, fast_retry: RetryPolicy) -> None:
        echo = MockTool("echo", return_value="hi")
        model = ScriptedModel()
        message = await CorrectingDispatcher(model, fast_retry).dispatch(echo, ToolCall(id="c", name="echo", args={}))
        assert message.result == "hi"
        assert model.call_count == 0

    @pytest.mark.asyncio
    async def test_bounded_attempts(self) -> None:
        broken = MockTool("broken", error_code=ErrorCode.TIMEOUT)
        model = ScriptedModel(on_forced=tool_call_response("formatter", {"retry": True}))
        policy = RetryPolicy(max_retries=2, initial_delay=0.0)

        with pytest.raises(RetryExhausted) as info:
            await CorrectingDispatcher(model, policy).dispatch(broken, ToolCall(id="c", name="broken", args={}))

        assert broken.call_count == 3
        assert len(model.forced_requests) == 2
        assert info.value.attempts == 3
        assert info.value.last_error.code == ErrorCode.TIMEOUT
        assert info.value.tool_call.args == {"retry": True}
        assert isinstance(info.value.__cause__, ToolExecutionError)

    @pytest.mark.asyncio
    async def test_caller_call_untouched(self, fast_retry: RetryPolicy) -> None:
        picky = MockTool("picky", side_effect=lambda args: args["x"] if args["x"] > 0 else 1 / 0)
        model = ScriptedModel(on_forced=tool_call_response("formatter", {"x": 5}))
        call = ToolCall(id="c", name="picky", args={"x": 0})

        message = await CorrectingDispatcher(model, fast_retry).dispatch(picky, call)

        assert call.args == {"x": 0}
        assert message.tool_call.id == "c"
        assert message.result == 5

    @pytest.mark.asyncio
    async def test_zero_retries(self) -> None:
        broken = MockTool("broken", raises=RuntimeError("once"))
        model = ScriptedModel()
        with pytest.raises(RetryExhausted) as info:
            await CorrectingDispatcher(model, NO_RETRY).dispatch(broken, ToolCall(id="c", name="broken", args={}))
        assert info.value.attempts == 1
        assert model.call_count == 0
