"""Channel membership tracking."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .models import Channel


class ChannelMembership:
    """Ordered, duplicate-free record of the channels the client wants joined.

    The record outlives individual connections: it is replayed after every
    successful authentication. It is not synchronized on its own; the
    connection's lock serializes access.
    """

    def __init__(self, channels: Iterable[Channel] = ()) -> None:
        self._channels: list[Channel] = []
        for channel in channels:
            self.add(channel)

    def add(self, channel: Channel) -> bool:
        if channel in self._channels:
            return False
        self._channels.append(channel)
        return True

    def remove(self, channel: Channel) -> bool:
        try:
            self._channels.remove(channel)
        except ValueError:
            return False
        return True

    def snapshot(self) -> tuple[Channel, ...]:
        return tuple(self._channels)

    def __contains__(self, channel: object) -> bool:
        return channel in self._channels

    def __iter__(self) -> Iterator[Channel]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._channels)

    def __repr__(self) -> str:
        names = ", ".join(c.irc_name for c in self._channels)
        return f"ChannelMembership([{names}])"
