"""Chat collaborators: transport, channel directories and their protocols."""

from .channel_resolver import HelixChannelDirectory, LoginChannelDirectory  # noqa: F401
from .protocols import (  # noqa: F401
    ChannelDirectory,
    CredentialSource,
    LineDispatcher,
    Transport,
    TransportListener,
)
from .websocket_transport import WebSocketTransport  # noqa: F401

__all__ = [
    "ChannelDirectory",
    "CredentialSource",
    "HelixChannelDirectory",
    "LineDispatcher",
    "LoginChannelDirectory",
    "Transport",
    "TransportListener",
    "WebSocketTransport",
]
