"""Retry policies for tool dispatch.

Example:
    >>> from toolchat.runtime.retry import RetryPolicy
    >>> agent = Agent(model, tools, config=AgentConfig(retry=RetryPolicy(max_retries=2)))
"""

from .backoff import Backoff, ExponentialBackoff
from .policy import NO_RETRY, RetryPolicy

__all__ = [
    "Backoff",
    "ExponentialBackoff",
    "RetryPolicy",
    "NO_RETRY",
]
