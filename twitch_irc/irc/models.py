"""Shared IRC data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    DISCONNECTING = auto()
    RECONNECTING = auto()


@dataclass(frozen=True, slots=True)
class Credential:
    """Chat login handed out by a credential source for one handshake."""

    token: str
    username: str

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, token='***')"


@dataclass(frozen=True, slots=True)
class Channel:
    """A resolved channel identity.

    Equality and hashing use ``id`` only: two lookups that differ in case or
    formatting of the name but resolve to the same identity are the same
    channel.
    """

    id: str
    name: str = field(compare=False)
    display_name: str | None = field(default=None, compare=False)

    @property
    def irc_name(self) -> str:
        return f"#{self.name}"


def normalize_channel_name(name: str) -> str:
    """Strip whitespace and the leading ``#`` and lowercase a channel name."""
    return name.strip().lstrip("#").strip().lower()
