"""Inbound line dispatch."""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from ..logs.logger import logger
from .parser import IRCMessage, build_privmsg, parse_irc_message

LineListener = Callable[[IRCMessage, Any], Any]
MessageHandler = Callable[[str, str, str], Any]

ANY_COMMAND = "*"


class IRCDispatcher:
    """Parses raw lines and routes them to listeners registered per command.

    Listeners receive ``(message, context)`` where ``context`` is whatever the
    connection passed along (the chat client). ``set_message_handler`` is a
    shortcut for chat messages, called with ``(author, channel, text)``.
    Listeners may be plain callables or coroutines; their failures are
    logged and never reach the connection.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[LineListener]] = defaultdict(list)
        self.message_handler: MessageHandler | None = None

    def add_listener(self, command: str, listener: LineListener) -> None:
        self._listeners[command.upper()].append(listener)

    def remove_listener(self, command: str, listener: LineListener) -> None:
        listeners = self._listeners.get(command.upper(), [])
        if listener in listeners:
            listeners.remove(listener)

    def set_message_handler(self, handler: MessageHandler | None) -> None:
        self.message_handler = handler

    async def dispatch(self, raw_line: str, context: Any = None) -> None:
        parsed = parse_irc_message(raw_line)
        user = getattr(context, "username", None)
        logger.log_event("irc", "raw", level=logging.DEBUG, user=user, raw=raw_line)
        if not parsed.command:
            return
        for listener in (
            *self._listeners.get(parsed.command, ()),
            *self._listeners.get(ANY_COMMAND, ()),
        ):
            await self._invoke(listener, user, parsed, context)
        if parsed.command == "PRIVMSG":
            await self._handle_privmsg(parsed, user)

    async def _handle_privmsg(self, parsed: IRCMessage, user: str | None) -> None:
        priv = build_privmsg(parsed)
        if priv is None or self.message_handler is None:
            return
        await self._invoke(
            self.message_handler, user, priv.author, priv.channel, priv.message
        )

    @staticmethod
    async def _invoke(handler: Callable[..., Any], user: str | None, *args: Any) -> None:
        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "listener_error",
                level=logging.ERROR,
                user=user,
                error=str(e),
                error_type=type(e).__name__,
            )
