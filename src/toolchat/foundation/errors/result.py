"""Ok/Err values for operations whose failure is an expected outcome.

Used where the caller must branch on failure rather than unwind, e.g. a
self-correction round-trip that may not yield arguments:

    >>> match await request_correction(model, tool, call, error):
    ...     case Ok(args):
    ...         call = call.with_args(args)
    ...     case Err(failure):
    ...         log.warning("correction failed", reason=failure.reason)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Literal, NoReturn, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


@dataclass(frozen=True, slots=True, repr=False)
class Ok(Generic[T]):
    """Success carrying ``value``."""

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise RuntimeError(f"Called unwrap_err() on Ok value: {self.value!r}")

    def unwrap_or(self, default: object) -> T:
        return self.value

    def ok(self) -> T:
        return self.value

    def err(self) -> None:
        return None

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[[object], object]) -> Ok[T]:
        return self

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True, repr=False)
class Err(Generic[E]):
    """Failure carrying ``error``. Every transformation but map_err passes it through."""

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> NoReturn:
        raise RuntimeError(f"Called unwrap() on Err value: {self.error!r}")

    def unwrap_err(self) -> E:
        return self.error

    def unwrap_or(self, default: U) -> U:
        return default

    def ok(self) -> None:
        return None

    def err(self) -> E:
        return self.error

    def map(self, f: Callable[[object], object]) -> Err[E]:
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        return Err(f(self.error))

    def flat_map(self, f: Callable[[object], object]) -> Err[E]:
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]
