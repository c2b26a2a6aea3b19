"""IRC message parsing utilities."""

from __future__ import annotations

from dataclasses import dataclass, field

_TAG_ESCAPES = {":": ";", "s": " ", "\\": "\\", "r": "\r", "n": "\n"}


@dataclass
class IRCMessage:
    raw: str
    prefix: str | None
    command: str | None
    params: str
    tags: dict[str, str] = field(default_factory=dict)
    middle: list[str] = field(default_factory=list)
    trailing: str | None = None

    @property
    def nick(self) -> str | None:
        if not self.prefix:
            return None
        return self.prefix.split("!", 1)[0]

    @property
    def channel(self) -> str | None:
        for param in self.middle:
            if param.startswith("#"):
                return param[1:].lower()
        return None


def parse_irc_message(raw_line: str) -> IRCMessage:
    tags: dict[str, str] = {}
    prefix: str | None = None
    command: str | None = None
    trailing: str | None = None

    original = raw_line
    raw_line = raw_line.rstrip("\r\n")

    if raw_line.startswith("@"):
        if " " in raw_line:
            tags_part, raw_line = raw_line.split(" ", 1)
        else:
            tags_part, raw_line = raw_line, ""
        tags = _parse_tags(tags_part[1:])

    if raw_line.startswith(":"):
        remainder = raw_line[1:]
        if " " in remainder:
            prefix, raw_line = remainder.split(" ", 1)
        else:  # malformed; treat whole remainder as prefix and leave rest empty
            prefix = remainder
            raw_line = ""

    if raw_line.startswith(":"):
        raw_line, trailing = "", raw_line[1:]
    elif " :" in raw_line:
        raw_line, trailing = raw_line.split(" :", 1)

    parts = raw_line.split()
    middle: list[str] = []
    if parts:
        command = parts[0].upper()
        middle = parts[1:]

    params = " ".join(middle)
    if trailing is not None:
        params = f"{params} {trailing}" if params else trailing

    return IRCMessage(
        raw=original,
        prefix=prefix,
        command=command,
        params=params,
        tags=tags,
        middle=middle,
        trailing=trailing,
    )


def _unescape_tag_value(value: str) -> str:
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        out.append(_TAG_ESCAPES.get(nxt, nxt))
    return "".join(out)


def _parse_tags(raw_tags: str) -> dict[str, str]:
    tags: dict[str, str] = {}
    for tag in raw_tags.split(";"):
        if not tag:
            continue
        if "=" in tag:
            k, v = tag.split("=", 1)
        else:
            k, v = tag, ""
        tags[k] = _unescape_tag_value(v)
    return tags


@dataclass
class PrivMsg:
    author: str
    channel: str
    message: str
    tags: dict[str, str]


def build_privmsg(parsed: IRCMessage) -> PrivMsg | None:
    if parsed.command != "PRIVMSG":
        return None
    channel = parsed.channel
    if channel is None or parsed.trailing is None:
        return None
    return PrivMsg(
        author=parsed.nick or "?",
        channel=channel,
        message=parsed.trailing,
        tags=parsed.tags,
    )
