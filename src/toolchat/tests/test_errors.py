"""Tests for the Result monad, ToolError rendering and exception classification.

Validates:
- Functor and monad laws
- Pattern matching on Ok/Err
- Error classification and model-facing rendering
"""

from __future__ import annotations

from typing import Callable

import pytest
from pydantic import BaseModel, ValidationError

from toolchat.foundation.core import ToolCall
from toolchat.foundation.errors import (
    CorrectionFailure,
    Err,
    ErrorCode,
    ModelInvocationError,
    Ok,
    Result,
    RetryExhausted,
    ToolchatError,
    ToolError,
    ToolExecutionError,
    ToolNotFound,
    classify_exception,
    format_validation_error,
)


# ═════════════════════════════════════════════════════════════════════════════
# Result - Functor & Monad Laws
# ═════════════════════════════════════════════════════════════════════════════


def test_functor_identity() -> None:
    """Functor law: fmap id = id"""
    assert Ok(42).map(lambda x: x) == Ok(42)
    assert Err("fail").map(lambda x: x) == Err("fail")


def test_functor_composition() -> None:
    f: Callable[[int], int] = lambda x: x + 1
    g: Callable[[int], int] = lambda x: x * 2
    result: Result[int, str] = Ok(5)
    assert result.map(lambda x: f(g(x))) == result.map(g).map(f)


def test_monad_left_identity() -> None:
    f: Callable[[int], Result[int, str]] = lambda x: Ok(x * 2)
    assert Ok(42).flat_map(f) == f(42)


def test_monad_right_identity() -> None:
    m: Result[int, str] = Ok(42)
    assert m.flat_map(lambda x: Ok(x)) == m


def test_monad_associativity() -> None:
    m: Result[int, str] = Ok(5)
    f: Callable[[int], Result[int, str]] = lambda x: Ok(x + 1)
    g: Callable[[int], Result[int, str]] = lambda x: Ok(x * 2)
    assert m.flat_map(f).flat_map(g) == m.flat_map(lambda x: f(x).flat_map(g))


# ═════════════════════════════════════════════════════════════════════════════
# Result - Operations
# ═════════════════════════════════════════════════════════════════════════════


class TestResult:
    def test_ok_accessors(self) -> None:
        result: Result[int, str] = Ok(42)
        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 42
        assert result.ok() == 42
        assert result.err() is None
        assert result.unwrap_or(0) == 42

    def test_err_accessors(self) -> None:
        result: Result[int, str] = Err("failed")
        assert result.is_err()
        assert result.unwrap_err() == "failed"
        assert result.ok() is None
        assert result.unwrap_or(0) == 0

    def test_unwrap_wrong_variant_raises(self) -> None:
        with pytest.raises(RuntimeError, match="unwrap\\(\\) on Err"):
            Err("boom").unwrap()
        with pytest.raises(RuntimeError, match="unwrap_err\\(\\) on Ok"):
            Ok(1).unwrap_err()

    def test_err_short_circuits(self) -> None:
        calls: list[int] = []
        result: Result[int, str] = Err("stop")
        assert result.map(calls.append).flat_map(lambda x: Ok(x)) == Err("stop")
        assert calls == []

    def test_map_err(self) -> None:
        assert Err("low").map_err(str.upper) == Err("LOW")
        assert Ok(1).map_err(str.upper) == Ok(1)

    def test_variants_are_distinct(self) -> None:
        assert Ok("x") != Err("x")
        assert len({Ok(1), Ok(1), Err(1)}) == 2

    def test_pattern_matching(self) -> None:
        def describe(result: Result[int, str]) -> str:
            match result:
                case Ok(value):
                    return f"ok {value}"
                case Err(error):
                    return f"err {error}"
            return "unreachable"

        assert describe(Ok(3)) == "ok 3"
        assert describe(Err("bad")) == "err bad"

    def test_repr(self) -> None:
        assert repr(Ok(1)) == "Ok(1)"
        assert repr(Err("e")) == "Err('e')"


# ═════════════════════════════════════════════════════════════════════════════
# ToolError
# ═════════════════════════════════════════════════════════════════════════════


class TestToolError:
    def test_render(self) -> None:
        error = ToolError(tool_name="calculator", message="division by zero", code=ErrorCode.INVALID_PARAMS)
        assert error.render() == "Tool Error (calculator) [INVALID_PARAMS]: division by zero"
        assert str(error) == error.render()

    def test_render_with_details(self) -> None:
        error = ToolError(tool_name="calc", message="bad", details="trace here")
        assert error.render().endswith("\n\nDetails:\ntrace here")

    def test_message_from_exception(self) -> None:
        assert ToolError(tool_name="t", message=KeyError("k")).message == "'k'"  # type: ignore[arg-type]

    def test_from_exception_context(self) -> None:
        error = ToolError.from_exception("fetch", ConnectionError("refused"), "GET /forecast")
        assert error.message == "GET /forecast: refused"
        assert error.code == ErrorCode.NETWORK_ERROR

    def test_empty_message_uses_type_name(self) -> None:
        assert ToolError.from_exception("t", RuntimeError()).message == "RuntimeError"

    def test_severity(self) -> None:
        assert ToolError(tool_name="t", message="m", code=ErrorCode.TIMEOUT).severity == "warning"
        assert ToolError(tool_name="t", message="m", code=ErrorCode.PERMISSION_DENIED).severity == "critical"
        assert ToolError(tool_name="t", message="m").severity == "error"

    def test_frozen(self) -> None:
        error = ToolError(tool_name="t", message="m")
        with pytest.raises(ValidationError):
            error.message = "changed"  # type: ignore[misc]


class TestClassification:
    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (TimeoutError("slow"), ErrorCode.TIMEOUT),
            (ConnectionError("connection reset"), ErrorCode.NETWORK_ERROR),
            (PermissionError("forbidden"), ErrorCode.PERMISSION_DENIED),
            (ValueError("bad op"), ErrorCode.INVALID_PARAMS),
            (KeyError("missing"), ErrorCode.INVALID_PARAMS),
            (RuntimeError("rate limit hit"), ErrorCode.RATE_LIMITED),
            (RuntimeError("boom"), ErrorCode.EXTERNAL_SERVICE_ERROR),
        ],
    )
    def test_classify(self, exc: Exception, code: ErrorCode) -> None:
        assert classify_exception(exc) == code

    def test_validation_error(self) -> None:
        class Params(BaseModel):
            a: int

        with pytest.raises(ValidationError) as info:
            Params(a="x")  # type: ignore[arg-type]
        assert classify_exception(info.value) == ErrorCode.INVALID_PARAMS
        text = format_validation_error(info.value, tool_name="add")
        assert text.startswith("Invalid parameters for 'add': a: ")


# ═════════════════════════════════════════════════════════════════════════════
# Exception taxonomy
# ═════════════════════════════════════════════════════════════════════════════


class TestTaxonomy:
    def test_tool_execution_error_carries_tool_error(self) -> None:
        err = ToolExecutionError.create("calc", "bad input", ErrorCode.INVALID_PARAMS)
        assert err.code == ErrorCode.INVALID_PARAMS
        assert err.error.tool_name == "calc"
        assert str(err) == "bad input"
        assert isinstance(err, ToolchatError)

    def test_tool_not_found_is_lookup_error(self) -> None:
        err = ToolNotFound("weather")
        assert isinstance(err, LookupError)
        assert err.name == "weather"
        assert err.code == ErrorCode.NOT_FOUND

    def test_retry_exhausted(self) -> None:
        last = ToolExecutionError.create("calc", "still failing")
        err = RetryExhausted(ToolCall(id="c1", name="calc", args={}), last, 4)
        assert err.attempts == 4
        assert err.last_error is last
        assert "4 attempts" in str(err)
        assert err.code == ErrorCode.RETRY_EXHAUSTED

    def test_correction_failure(self) -> None:
        err = CorrectionFailure("calc", "no tool call")
        assert err.reason == "no tool call"
        assert "calc" in str(err)

    def test_codes_on_classes(self) -> None:
        assert ModelInvocationError("x").code == ErrorCode.EXTERNAL_SERVICE_ERROR
