"""Shared fixtures: silent logging, fresh settings, fast retry policies."""

from __future__ import annotations

import pytest

from toolchat.foundation.config import clear_settings_cache
from toolchat.runtime.observability import CaptureRenderer, configure_logging, use_renderer
from toolchat.runtime.retry import RetryPolicy


@pytest.fixture(autouse=True)
def quiet_logging() -> object:
    configure_logging(format="none")
    yield
    configure_logging(format="none")


@pytest.fixture(autouse=True)
def fresh_settings() -> object:
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def captured_logs() -> CaptureRenderer:
    return use_renderer(CaptureRenderer(), level="DEBUG")  # type: ignore[return-value]


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Three retries with no real waiting."""
    return RetryPolicy(max_retries=3, initial_delay=0.0)
