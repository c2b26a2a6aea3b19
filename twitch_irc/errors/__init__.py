"""Error hierarchy and error logging helpers."""

from .handling import classify_error, handle_api_error, log_error  # noqa: F401
from .internal import (  # noqa: F401
    ChannelLookupError,
    ConfigError,
    InternalError,
    MissingCredentialError,
    NetworkError,
    OAuthError,
    ParsingError,
    TransportError,
)

__all__ = [
    "ChannelLookupError",
    "ConfigError",
    "InternalError",
    "MissingCredentialError",
    "NetworkError",
    "OAuthError",
    "ParsingError",
    "TransportError",
    "classify_error",
    "handle_api_error",
    "log_error",
]
