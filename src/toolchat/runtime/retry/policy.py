"""Retry policy configuration for tool dispatch.

An explicit immutable value handed to the Agent at construction. There are no
package-level mutable defaults: ``RetryPolicy.from_settings()`` reads the
environment once, everything else is passed in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Callable

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, PositiveFloat, computed_field

from .backoff import Backoff, ExponentialBackoff

if TYPE_CHECKING:
    from toolchat.foundation.config import RetrySettings


class RetryPolicy(BaseModel):
    """Bounded retry with exponential backoff for failed tool calls.

    With ``max_retries = N`` a failing call is executed at most N+1 times,
    with N waits and N self-correction round-trips in between.

    Attributes:
        max_retries: Retry attempts after the first execution (0 = no retries)
        initial_delay: Wait before the first retry, in seconds
        backoff_multiplier: Factor applied to the wait after each retry
        max_delay: Upper bound on a single wait
        on_retry: Optional callback ``(attempt, error_message, delay)``

    Example:
        >>> policy = RetryPolicy(max_retries=2, initial_delay=0.5)
        >>> [policy.delay(i) for i in range(3)]
        [0.5, 1.0, 2.0]
    """

    model_config = ConfigDict(
        frozen=True,
        validate_default=True,
        extra="forbid",
        json_schema_extra={
            "title": "Retry Policy",
            "description": "Retry and self-correction behavior for tool dispatch",
            "examples": [{"max_retries": 3, "initial_delay": 0.1, "backoff_multiplier": 2.0}],
        },
    )

    max_retries: Annotated[int, Field(ge=0, le=20)] = 3
    initial_delay: NonNegativeFloat = 0.1
    backoff_multiplier: PositiveFloat = 2.0
    max_delay: PositiveFloat = 30.0
    on_retry: Callable[[int, str, float], None] | None = Field(default=None, exclude=True, repr=False)

    @computed_field
    @property
    def is_disabled(self) -> bool:
        return self.max_retries == 0

    @property
    def backoff(self) -> Backoff:
        return ExponentialBackoff(
            base=self.initial_delay,
            max_delay=self.max_delay,
            multiplier=self.backoff_multiplier,
        )

    def delay(self, attempt: int) -> float:
        """Wait before retry ``attempt`` (0-indexed)."""
        return self.backoff.delay(attempt)

    def should_retry(self, attempt: int) -> bool:
        """Whether a retry is left after ``attempt`` failed retries."""
        return attempt < self.max_retries

    @classmethod
    def from_settings(cls, settings: RetrySettings | None = None) -> RetryPolicy:
        if settings is None:
            from toolchat.foundation.config import get_settings
            settings = get_settings().retry
        return cls(
            max_retries=settings.max_retries,
            initial_delay=settings.initial_delay,
            backoff_multiplier=settings.backoff_multiplier,
            max_delay=settings.max_delay,
        )


NO_RETRY = RetryPolicy(max_retries=0)
