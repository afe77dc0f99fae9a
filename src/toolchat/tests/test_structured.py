"""Tests for the forced single-tool structured output wrapper and the one-shot invoker."""

from __future__ import annotations

import pytest
from pydantic import BaseModel, ValidationError

from toolchat.foundation import codec
from toolchat.foundation.config import clear_settings_cache
from toolchat.foundation.core import AssistantMessage, SystemMessage, UserMessage
from toolchat.foundation.errors import ModelInvocationError, NoForcedCallProduced
from toolchat.foundation.testing import (
    MockTool,
    ScriptedModel,
    text_response,
    tool_call_response,
    tool_calls_response,
)
from toolchat.llm import ChatModel, ForcedToolUsage, FormatterTool, Invoker, Request, StructuredOutputModel, force
from toolchat.runtime.observability import CaptureRenderer

SCHEMA = {"type": "object", "properties": {"a": {"type": "integer"}}, "required": ["a"]}


class Booking(BaseModel):
    name: str
    guests: int


# ─────────────────────────────────────────────────────────────────────────────
# FormatterTool
# ─────────────────────────────────────────────────────────────────────────────


class TestFormatterTool:
    @pytest.mark.asyncio
    async def test_identity(self) -> None:
        formatter = FormatterTool(SCHEMA, name="formatter", description="Must be called")
        args = {"a": 1, "nested": {"b": [1, 2]}}
        assert await formatter.run(args) == args

    def test_schemas_are_target(self) -> None:
        formatter = FormatterTool(SCHEMA, name="formatter", description="Must be called")
        assert formatter.input_schema == SCHEMA
        assert formatter.output_schema == SCHEMA


# ─────────────────────────────────────────────────────────────────────────────
# StructuredOutputModel
# ─────────────────────────────────────────────────────────────────────────────


class TestStructuredOutputModel:
    def test_defaults_from_settings(self) -> None:
        structured = StructuredOutputModel(SCHEMA, ScriptedModel())
        assert structured.formatter.name == "formatter"
        assert structured.formatter.description == "Must be called to provide structured output"
        assert isinstance(structured, ChatModel)

    def test_name_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLCHAT_STRUCTURED_TOOL_NAME", "respond")
        clear_settings_cache()
        assert StructuredOutputModel(SCHEMA, ScriptedModel()).formatter.name == "respond"

    @pytest.mark.asyncio
    async def test_extracts_first_call_payload(self) -> None:
        model = ScriptedModel(tool_call_response("formatter", {"a": 1}))
        assert await StructuredOutputModel(SCHEMA, model).extract(Request.of("give me a")) == {"a": 1}

    @pytest.mark.asyncio
    async def test_invoke_returns_single_json_message(self) -> None:
        model = ScriptedModel(tool_call_response("formatter", {"a": 1}))
        response = await StructuredOutputModel(SCHEMA, model).invoke(Request.of("give me a"))
        assert len(response.messages) == 1
        message = response.messages[0]
        assert isinstance(message, AssistantMessage)
        assert codec.loads(message.content) == {"a": 1}
        assert response.tool_calls == ()

    @pytest.mark.asyncio
    async def test_forced_request_shape(self) -> None:
        model = ScriptedModel(tool_call_response("formatter", {"a": 1}))
        caller = Request(
            history=(SystemMessage(content="ctx"), UserMessage(content="q")),
            system="be terse",
            tools=(MockTool("calculator"),),
            tool_usage=force("calculator"),
            max_tokens=128,
            temperature=0.0,
        )
        await StructuredOutputModel(SCHEMA, model).extract(caller)

        sent = model.last_request
        assert sent is not None
        assert sent.history == caller.history
        assert sent.tool_names == ("formatter",)
        assert sent.tool_usage == ForcedToolUsage(tool_name="formatter")
        assert sent.tools[0].input_schema == SCHEMA
        assert (sent.system, sent.max_tokens, sent.temperature) == ("be terse", 128, 0.0)
        # Caller request untouched
        assert caller.tool_names == ("calculator",)

    @pytest.mark.asyncio
    async def test_no_tool_call_is_contract_violation(self) -> None:
        model = ScriptedModel(text_response("I'd rather chat"))
        with pytest.raises(NoForcedCallProduced) as info:
            await StructuredOutputModel(SCHEMA, model).extract(Request.of("q"))
        assert info.value.tool_name == "formatter"

    @pytest.mark.asyncio
    async def test_extra_calls_discarded_with_warning(self, captured_logs: CaptureRenderer) -> None:
        model = ScriptedModel(tool_calls_response(("formatter", {"a": 1}), ("formatter", {"a": 2})))
        assert await StructuredOutputModel(SCHEMA, model).extract(Request.of("q")) == {"a": 1}
        assert "extra forced calls discarded" in captured_logs.events("warning")

    @pytest.mark.asyncio
    async def test_transport_failure_wrapped(self) -> None:
        model = ScriptedModel(ConnectionError("provider down"))
        with pytest.raises(ModelInvocationError, match="provider down") as info:
            await StructuredOutputModel(SCHEMA, model).extract(Request.of("q"))
        assert isinstance(info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_for_type(self) -> None:
        model = ScriptedModel(tool_call_response("formatter", {"name": "Ada", "guests": 2}))
        structured = StructuredOutputModel.for_type(Booking, model)
        assert set(structured.schema["properties"]) == {"name", "guests"}
        assert await structured.extract(Request.of("book")) == {"name": "Ada", "guests": 2}

    @pytest.mark.asyncio
    async def test_wrapper_composes_under_wrapper_as_model(self) -> None:
        # The outer wrapper sees the inner wrapper's plain-text answer
        inner = StructuredOutputModel(SCHEMA, ScriptedModel(tool_call_response("formatter", {"a": 1})))
        outer = StructuredOutputModel(SCHEMA, inner)
        with pytest.raises(NoForcedCallProduced):
            await outer.extract(Request.of("q"))


# ─────────────────────────────────────────────────────────────────────────────
# Invoker
# ─────────────────────────────────────────────────────────────────────────────


class TestInvoker:
    @pytest.mark.asyncio
    async def test_single_round_trip(self) -> None:
        model = ScriptedModel(tool_call_response("formatter", {"a": 7}))
        invoker = Invoker.for_schema(model, SCHEMA)
        assert await invoker.invoke([UserMessage(content="seven")]) == {"a": 7}
        assert model.call_count == 1

    @pytest.mark.asyncio
    async def test_string_history_and_parameters(self) -> None:
        model = ScriptedModel(tool_call_response("formatter", {"a": 7}))
        invoker = Invoker.for_schema(model, SCHEMA, system="extract", temperature=0.0)
        await invoker.invoke("seven")
        sent = model.last_request
        assert sent is not None
        assert sent.history == (UserMessage(content="seven"),)
        assert (sent.system, sent.temperature) == ("extract", 0.0)

    @pytest.mark.asyncio
    async def test_parse(self) -> None:
        model = ScriptedModel(tool_call_response("formatter", {"name": "Ada", "guests": 2}))
        booking = await Invoker.for_type(model, Booking).parse("table for two", Booking)
        assert booking == Booking(name="Ada", guests=2)

    @pytest.mark.asyncio
    async def test_parse_rejects_bad_payload(self) -> None:
        model = ScriptedModel(tool_call_response("formatter", {"name": "Ada"}))
        with pytest.raises(ValidationError):
            await Invoker.for_type(model, Booking).parse("table", Booking)

    @pytest.mark.asyncio
    async def test_no_retry_on_failure(self) -> None:
        model = ScriptedModel(text_response("nope"), tool_call_response("formatter", {"a": 1}))
        with pytest.raises(NoForcedCallProduced):
            await Invoker.for_schema(model, SCHEMA).invoke("q")
        assert model.call_count == 1
        assert model.remaining == 1
