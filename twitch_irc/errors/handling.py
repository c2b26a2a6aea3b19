from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp

from ..logging_config import log_structured_error
from .internal import (
    ChannelLookupError,
    ConfigError,
    InternalError,
    MissingCredentialError,
    NetworkError,
    OAuthError,
    ParsingError,
)

T = TypeVar("T")


def classify_error(error: BaseException) -> str:
    """Map an exception onto the error category used in structured logs."""
    if isinstance(error, MissingCredentialError | ConfigError):
        return "config"
    if isinstance(error, ChannelLookupError):
        return "lookup"
    if isinstance(error, NetworkError | OSError | ConnectionError):
        return "network"
    if isinstance(error, OAuthError):
        return "auth"
    if isinstance(error, ParsingError):
        return "parsing"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"


def log_error(
    message: str, error: Exception, context: dict[str, Any] | None = None
) -> None:
    """Logs an error message with the associated exception details.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    log_structured_error(
        error_type=classify_error(error),
        message=f"{message}: {str(error)}",
        exception=error,
        context=context,
    )


async def handle_api_error(operation: Callable[[], Awaitable[T]], context: str) -> T:
    """Run an HTTP operation and translate failures into InternalError subclasses.

    Args:
        operation: The async API operation to execute.
        context: Descriptive context for the operation (e.g., "Helix GET users").

    Returns:
        The result of the operation if successful.

    Raises:
        NetworkError: Connectivity problems (retryable).
        OAuthError: HTTP 401.
        ParsingError: Other 4xx responses or undecodable bodies.
        InternalError: Anything else.
    """
    try:
        return await operation()
    except InternalError:
        raise
    except (aiohttp.ClientError, ValueError, RuntimeError, OSError) as e:
        error_context: dict[str, Any] = {"operation": context, "timestamp": time.time()}
        status = getattr(e, "status", None)
        if status is not None:
            error_context["http_status"] = status

        log_error(f"API operation failed in {context}", e, context=error_context)

        if isinstance(e, aiohttp.ClientResponseError):
            if e.status == 401:
                raise OAuthError(
                    f"Authentication failed in {context}. Token may be expired or invalid. Error: {str(e)}"
                ) from e
            if 400 <= e.status < 500:
                raise ParsingError(
                    f"Client error in {context} (HTTP {e.status}). Error: {str(e)}"
                ) from e
            raise NetworkError(
                f"Server error in {context} (HTTP {e.status}). Error: {str(e)}"
            ) from e
        if isinstance(e, aiohttp.ClientError | OSError | ConnectionError):
            raise NetworkError(
                f"Network connectivity issue in {context}. Check internet connection and DNS resolution. Error: {str(e)}"
            ) from e
        if isinstance(e, ValueError):
            raise ParsingError(f"Unreadable response in {context}. Error: {str(e)}") from e
        raise InternalError(
            f"Unexpected error in {context}. Error: {str(e)}"
        ) from e
