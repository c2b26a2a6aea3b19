"""Protocol definitions for the collaborators of the chat connection.

The connection depends only on these interfaces, so the websocket
transport, the credential source and the channel directory can be swapped
(tests use in-memory doubles).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from ..irc.models import Channel, Credential


class TransportListener(Protocol):
    """Receives transport lifecycle and message notifications, in order."""

    async def on_opened(self, headers: Mapping[str, str]) -> None:
        """The connection is open and ready for writes."""
        ...

    async def on_text_line(self, line: str) -> None:
        """One inbound protocol line, without terminator."""
        ...

    async def on_closed(self, server_initiated: bool) -> None:
        """The connection is closed; no further notifications follow."""
        ...


class Transport(Protocol):
    """Bidirectional text-line channel."""

    def set_listener(self, listener: TransportListener) -> None:
        """Register the receiver of lifecycle notifications."""
        ...

    async def connect(self) -> None:
        """Open the connection; ``on_opened`` follows on success.

        Raises:
            TransportError: If the connection cannot be opened.
        """
        ...

    async def disconnect(self) -> None:
        """Close the connection; ``on_closed`` follows."""
        ...

    async def send(self, line: str) -> None:
        """Write one protocol line; framing is the transport's concern."""
        ...


class CredentialSource(Protocol):
    async def get_chat_credential(self) -> Credential | None:
        """Return the chat login, or None when none is configured."""
        ...


class ChannelDirectory(Protocol):
    async def resolve(self, name: str) -> Channel:
        """Resolve a human readable channel name.

        Raises:
            ChannelLookupError: If the name is unknown or cannot be resolved.
        """
        ...


class LineDispatcher(Protocol):
    def dispatch(self, raw_line: str, context: Any) -> Any:
        """Parse and distribute one inbound line; may return an awaitable."""
        ...
