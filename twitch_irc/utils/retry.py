"""Retry utilities for asynchronous operations using Tenacity."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import RETRY_MAX_BACKOFF_SECONDS
from ..errors.internal import NetworkError

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """Exception raised when all retry attempts have been exhausted."""

    def __init__(
        self, message: str, attempts: int, final_exception: BaseException | None = None
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.final_exception = final_exception


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    *,
    retry_on: tuple[type[BaseException], ...] = (NetworkError,),
    wait_multiplier: float = 1.0,
    max_backoff: float = RETRY_MAX_BACKOFF_SECONDS,
) -> T:
    """Retry an asynchronous operation with exponential backoff using Tenacity.

    Only exceptions listed in ``retry_on`` trigger another attempt; any other
    exception propagates unchanged on the first occurrence.

    Args:
        operation: Zero-argument coroutine factory.
        max_attempts: Maximum number of attempts.
        retry_on: Exception types considered transient.
        wait_multiplier: Exponential backoff multiplier (0 disables waiting).
        max_backoff: Upper bound for a single wait in seconds.

    Returns:
        The result from operation if successful.

    Raises:
        RetryExhaustedError: If every attempt failed with a transient error.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=wait_multiplier, max=max_backoff),
        retry=retry_if_exception_type(retry_on),
    )

    try:
        return await retrying(operation)
    except RetryError as e:
        final = e.last_attempt.exception()
        raise RetryExhaustedError(
            f"Operation failed after {max_attempts} attempts",
            attempts=max_attempts,
            final_exception=final,
        ) from final
