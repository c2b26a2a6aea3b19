"""Centralized internal error hierarchy.

These exceptions provide semantic categories for retry logic and for the
connection machinery. Only raise these inside application/network
boundaries; raw aiohttp / websockets errors are wrapped instead.

Classes:
  InternalError           – Base for all internal errors.
  NetworkError            – Transient network/IO issues (safe to retry).
  OAuthError              – Authentication / authorization related failures.
  ParsingError            – Response parsing / schema validation issues.
  ChannelLookupError      – A channel name could not be resolved.
  MissingCredentialError  – No chat credential available at handshake time.
  TransportError          – The transport failed to open a connection.
  ConfigError             – Invalid configuration file or environment.
"""

from __future__ import annotations

from collections.abc import Mapping


class InternalError(Exception):
    """Base class for all internal application errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class NetworkError(InternalError):
    """Exception raised for network or transport layer errors.

    This includes issues such as connection timeouts, resets, or other
    transient network failures that may be retried.
    """


class OAuthError(InternalError):
    """Exception raised for OAuth authentication or authorization failures.

    These errors indicate issues with credentials, tokens, or permissions
    that are not suitable for automatic retry.
    """


class ParsingError(InternalError):
    """Exception raised for response parsing or schema validation errors."""


class ChannelLookupError(InternalError):
    """Raised when a channel name cannot be resolved to a channel identity.

    Facade operations raise it synchronously to their caller before any
    command is sent or any membership state changes.
    """

    def __init__(
        self, name: str, message: str | None = None, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message or f"Unknown channel: {name}", data=data)
        self.name = name


class MissingCredentialError(InternalError):
    """No chat credential was available when the handshake needed one.

    This is a configuration error: the connection attempt is abandoned
    gracefully and not retried. It is logged and recorded on the client,
    never raised out of a transport event handler.
    """


class TransportError(NetworkError):
    """The transport could not open (or write to) its connection."""


class ConfigError(InternalError):
    """The client configuration file or environment is invalid."""


__all__ = [
    "InternalError",
    "NetworkError",
    "OAuthError",
    "ParsingError",
    "ChannelLookupError",
    "MissingCredentialError",
    "TransportError",
    "ConfigError",
]
