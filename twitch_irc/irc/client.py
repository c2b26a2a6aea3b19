"""Public chat client facade."""

from __future__ import annotations

import logging
from typing import Any

from ..chat.protocols import ChannelDirectory, CredentialSource, LineDispatcher, Transport
from ..constants import (
    IRC_CHANNEL_PREFIX,
    IRC_TRAILING_PREFIX,
    WHISPER_COMMAND,
    WHISPER_TARGET_CHANNEL,
)
from ..errors.internal import InternalError
from ..logs.logger import logger
from .connection import IRCConnection, StateListener
from .dispatcher import IRCDispatcher
from .membership import ChannelMembership
from .models import Channel, ConnectionState


class TwitchChatClient:
    """Persistent Twitch chat client.

    Wraps one :class:`IRCConnection` and resolves every channel name through
    the channel directory before acting on it. Lookup failures
    (``ChannelLookupError``) are the only errors the channel operations
    raise; commands issued outside the connected window are dropped.

    Example:
        >>> client = TwitchChatClient(transport, credentials, directory)
        >>> await client.connect()
        >>> await client.join_channel("SomeStreamer")
        >>> await client.send_message("somestreamer", "hello chat")
    """

    def __init__(
        self,
        transport: Transport,
        credentials: CredentialSource,
        directory: ChannelDirectory,
        dispatcher: LineDispatcher | None = None,
        **connection_options: Any,
    ) -> None:
        self._directory = directory
        self.dispatcher = dispatcher if dispatcher is not None else IRCDispatcher()
        self.connection = IRCConnection(
            transport,
            credentials,
            self.dispatcher,
            context=self,
            membership=ChannelMembership(),
            **connection_options,
        )

    # ---- state ----
    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    @property
    def channels(self) -> tuple[Channel, ...]:
        return self.connection.membership.snapshot()

    @property
    def username(self) -> str | None:
        return self.connection.username

    @property
    def last_error(self) -> InternalError | None:
        return self.connection.last_error

    def add_state_listener(self, listener: StateListener) -> None:
        self.connection.add_state_listener(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        self.connection.remove_state_listener(listener)

    def get_connection_stats(self) -> dict[str, Any]:
        return self.connection.get_connection_stats()

    # ---- lifecycle ----
    async def connect(self) -> bool:
        return await self.connection.connect()

    async def disconnect(self) -> bool:
        return await self.connection.disconnect()

    async def reconnect(self) -> None:
        await self.connection.reconnect()

    async def shutdown(self) -> None:
        await self.connection.shutdown()

    async def __aenter__(self) -> TwitchChatClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    # ---- channels ----
    async def join_channel(self, name: str) -> bool:
        """Join a channel unless it is already part of the membership.

        Returns:
            bool: True if the channel was added.

        Raises:
            ChannelLookupError: If the name cannot be resolved.
        """
        channel = await self._directory.resolve(name)
        return await self.connection.join(channel)

    async def part_channel(self, name: str) -> bool:
        """Leave a channel if it is part of the membership.

        Returns:
            bool: True if the channel was removed.

        Raises:
            ChannelLookupError: If the name cannot be resolved.
        """
        channel = await self._directory.resolve(name)
        return await self.connection.part(channel)

    async def send_message(self, channel_name: str, text: str) -> bool:
        """Send a chat message to a channel, joined or not."""
        channel = await self._directory.resolve(channel_name)
        sent = await self.connection.send_command(
            "privmsg", channel.irc_name, f"{IRC_TRAILING_PREFIX}{text}"
        )
        logger.log_event(
            "irc",
            "message_sent" if sent else "message_dropped",
            level=logging.DEBUG,
            user=self.username,
            channel=channel.name,
        )
        return sent

    async def send_private_message(self, channel_name: str, text: str) -> bool:
        """Whisper the owner of a channel.

        Whispers travel as a chat command through the system channel; the
        recipient is the resolved channel's login.
        """
        channel = await self._directory.resolve(channel_name)
        sent = await self.connection.send_command(
            "privmsg",
            f"{IRC_CHANNEL_PREFIX}{WHISPER_TARGET_CHANNEL}",
            f"{IRC_TRAILING_PREFIX}{WHISPER_COMMAND}",
            channel.name,
            text,
        )
        logger.log_event(
            "irc",
            "whisper_sent" if sent else "whisper_dropped",
            level=logging.DEBUG,
            user=self.username,
            recipient=channel.name,
        )
        return sent
