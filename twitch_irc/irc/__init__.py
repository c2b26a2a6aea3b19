"""IRC subsystem package.

Contains the command encoder, the connection state machine, membership
tracking, line parsing/dispatch and the public client facade for Twitch
chat.
"""

from .client import TwitchChatClient  # noqa: F401
from .command import Command, encode_command  # noqa: F401
from .connection import ConnectionAttempt, IRCConnection  # noqa: F401
from .dispatcher import IRCDispatcher  # noqa: F401
from .membership import ChannelMembership  # noqa: F401
from .models import Channel, ConnectionState, Credential  # noqa: F401
from .parser import IRCMessage, PrivMsg, build_privmsg, parse_irc_message  # noqa: F401

__all__ = [
    "Channel",
    "ChannelMembership",
    "Command",
    "ConnectionAttempt",
    "ConnectionState",
    "Credential",
    "IRCConnection",
    "IRCDispatcher",
    "IRCMessage",
    "PrivMsg",
    "TwitchChatClient",
    "build_privmsg",
    "encode_command",
    "parse_irc_message",
]
