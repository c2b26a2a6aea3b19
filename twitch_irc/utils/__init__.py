"""Utility functions package for the Twitch IRC client.

Exposed functions:
    retry_async: Retries a transient-failure-prone coroutine with backoff.
    format_duration: Formats time durations into human-readable strings.
"""

from .helpers import format_duration
from .retry import RetryExhaustedError, retry_async

__all__ = ["format_duration", "retry_async", "RetryExhaustedError"]
