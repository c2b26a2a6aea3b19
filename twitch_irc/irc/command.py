"""Outbound command encoding."""

from __future__ import annotations

from dataclasses import dataclass


def encode_command(verb: str, *args: str) -> str:
    """Encode a verb and its arguments into one protocol line.

    The verb is upper-cased and the arguments are joined with single spaces.
    No terminator is appended and argument content is not escaped; callers
    add channel and trailing markers themselves.

    >>> encode_command("privmsg", "#foo", "hello world")
    'PRIVMSG #foo hello world'
    """
    verb = verb.upper()
    if not args:
        return verb
    return f"{verb} {' '.join(args)}"


@dataclass(frozen=True, slots=True)
class Command:
    verb: str
    args: tuple[str, ...] = ()

    @classmethod
    def of(cls, verb: str, *args: str) -> Command:
        return cls(verb, tuple(args))

    def encode(self) -> str:
        return encode_command(self.verb, *self.args)

    def __str__(self) -> str:
        return self.encode()
