"""Persistent Twitch chat client over IRC-on-WebSocket."""

from .irc import (  # noqa: F401
    Channel,
    ConnectionState,
    Credential,
    IRCDispatcher,
    TwitchChatClient,
    encode_command,
)

__version__ = "0.1.0"

__all__ = [
    "Channel",
    "ConnectionState",
    "Credential",
    "IRCDispatcher",
    "TwitchChatClient",
    "encode_command",
]
