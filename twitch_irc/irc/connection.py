"""Connection lifecycle state machine for Twitch chat."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Coroutine, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..chat.protocols import CredentialSource, LineDispatcher, Transport
from ..constants import (
    IRC_CAPABILITIES,
    IRC_OAUTH_PREFIX,
    IRC_PING_TOKEN,
    IRC_TRAILING_PREFIX,
    IRC_WELCOME_TEMPLATE,
    TWITCH_IRC_SERVER_NAME,
)
from ..errors.handling import log_error
from ..errors.internal import (
    InternalError,
    MissingCredentialError,
    OAuthError,
    TransportError,
)
from ..logs.logger import logger
from ..utils.helpers import format_duration
from .command import Command
from .membership import ChannelMembership
from .models import Channel, ConnectionState, Credential

StateListener = Callable[[ConnectionState, ConnectionState], Any]

# NOTICE texts the server sends right before dropping a bad login.
AUTH_FAILURE_NOTICES = (
    "Login authentication failed",
    "Improperly formatted auth",
)

_SENDABLE_STATES = (ConnectionState.CONNECTED, ConnectionState.CONNECTING)


@dataclass
class ConnectionAttempt:
    """Context of one connect attempt, from transport open to close."""

    number: int
    reconnect: bool = False
    started_at: float = field(default_factory=time.time)
    credential: Credential | None = None

    @property
    def username(self) -> str | None:
        return self.credential.username.lower() if self.credential else None

    def welcome_line(self, server: str) -> str | None:
        if self.username is None:
            return None
        return IRC_WELCOME_TEMPLATE.format(server=server, username=self.username)


def _oauth_token(token: str) -> str:
    return token if token.startswith(IRC_OAUTH_PREFIX) else f"{IRC_OAUTH_PREFIX}{token}"


class IRCConnection:
    """Owns the transport and drives the connection lifecycle.

    States move DISCONNECTED -> CONNECTING -> CONNECTED on the way up and
    CONNECTED -> DISCONNECTING -> DISCONNECTED on an intentional shutdown.
    A close that was not asked for moves to RECONNECTING and schedules a
    fresh attempt on the event loop, which re-authenticates and re-joins
    every channel in the membership record.

    All state and membership mutations happen under one ``asyncio.Lock``.
    Transport calls that may wait on the network (connect, disconnect) are
    made outside of it so transport notifications can always be handled.
    """

    def __init__(
        self,
        transport: Transport,
        credentials: CredentialSource,
        dispatcher: LineDispatcher,
        *,
        context: Any = None,
        membership: ChannelMembership | None = None,
        server_name: str = TWITCH_IRC_SERVER_NAME,
        capabilities: Iterable[str] = IRC_CAPABILITIES,
    ) -> None:
        self._transport = transport
        self._credentials = credentials
        self._dispatcher = dispatcher
        self._context = context if context is not None else self
        self.membership = membership if membership is not None else ChannelMembership()
        self.server_name = server_name
        self.capabilities = tuple(capabilities)

        self._state = ConnectionState.DISCONNECTED
        self._lock = asyncio.Lock()
        self._attempt: ConnectionAttempt | None = None
        self._state_listeners: list[StateListener] = []
        self._scheduled: asyncio.Task[None] | None = None
        self._connect_after_close = False

        self.last_error: InternalError | None = None
        self.attempt_count = 0
        self.reconnect_count = 0
        self.connected_since: float | None = None
        self.last_server_activity = 0.0
        self.last_ping_from_server = 0.0

        transport.set_listener(self)

    # ---- observable state ----
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def username(self) -> str | None:
        return self._attempt.username if self._attempt else None

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        if listener in self._state_listeners:
            self._state_listeners.remove(listener)

    def _set_state(self, new_state: ConnectionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.log_event(
            "irc",
            "state_change",
            level=logging.DEBUG,
            user=self.username,
            old_state=old_state.name,
            new_state=new_state.name,
        )
        for listener in list(self._state_listeners):
            try:
                listener(old_state, new_state)
            except Exception as e:  # noqa: BLE001
                logger.log_event(
                    "irc",
                    "state_listener_error",
                    level=logging.ERROR,
                    user=self.username,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    # ---- lifecycle ----
    async def connect(self) -> bool:
        """Start a connection attempt if currently disconnected.

        Returns:
            bool: True if an attempt was started.
        """
        async with self._lock:
            if self._state is not ConnectionState.DISCONNECTED:
                logger.log_event(
                    "irc",
                    "connect_ignored",
                    level=logging.DEBUG,
                    user=self.username,
                    state=self._state.name,
                )
                return False
            self._begin_attempt(reconnect=False)
        await self._open_transport()
        return True

    async def disconnect(self) -> bool:
        """Close the connection if currently connected.

        Returns:
            bool: True if a close was requested.
        """
        async with self._lock:
            if self._state is not ConnectionState.CONNECTED:
                logger.log_event(
                    "irc",
                    "disconnect_ignored",
                    level=logging.DEBUG,
                    user=self.username,
                    state=self._state.name,
                )
                return False
            logger.log_event("irc", "disconnect_start", user=self.username)
            self._set_state(ConnectionState.DISCONNECTING)
        await self._transport.disconnect()
        return True

    async def reconnect(self) -> None:
        """Disconnect, then connect.

        When the close is still in flight the connect is deferred until the
        transport reports it closed.
        """
        await self.disconnect()
        async with self._lock:
            if self._state is ConnectionState.DISCONNECTING:
                self._connect_after_close = True
                return
        await self.connect()

    async def shutdown(self) -> None:
        """Disconnect for good and cancel any scheduled reconnect."""
        self._connect_after_close = False
        task = self._scheduled
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        async with self._lock:
            if self._state is ConnectionState.RECONNECTING:
                self._attempt = None
                self._set_state(ConnectionState.DISCONNECTED)
                return
            if self._state not in _SENDABLE_STATES:
                return
            logger.log_event("irc", "disconnect_start", user=self.username)
            self._set_state(ConnectionState.DISCONNECTING)
        await self._transport.disconnect()

    async def wait_scheduled(self) -> None:
        """Wait for a scheduled reconnect or deferred connect to finish."""
        while (task := self._scheduled) is not None and not task.done():
            await asyncio.wait({task})

    def _begin_attempt(self, *, reconnect: bool) -> None:
        self.attempt_count += 1
        self._attempt = ConnectionAttempt(number=self.attempt_count, reconnect=reconnect)
        self._set_state(ConnectionState.CONNECTING)

    async def _open_transport(self) -> None:
        attempt = self._attempt
        logger.log_event(
            "irc",
            "connect_start",
            attempt=attempt.number if attempt else None,
            reconnect=bool(attempt and attempt.reconnect),
        )
        try:
            await self._transport.connect()
        except asyncio.CancelledError:
            await self._abandon_attempt(attempt)
            raise
        except Exception as e:  # noqa: BLE001
            error = e if isinstance(e, TransportError) else TransportError(str(e))
            log_error(
                "Chat transport failed to open",
                error,
                context={"attempt": attempt.number if attempt else None},
            )
            await self._abandon_attempt(attempt, error)

    async def _abandon_attempt(
        self, attempt: ConnectionAttempt | None, error: InternalError | None = None
    ) -> None:
        """Settle in DISCONNECTED after the transport never opened.

        No close notification follows a failed open, so a shutdown requested
        meanwhile (DISCONNECTING) is completed here as well.
        """
        async with self._lock:
            if self._attempt is not attempt or self._state not in (
                ConnectionState.CONNECTING,
                ConnectionState.DISCONNECTING,
            ):
                return
            if error is not None:
                self.last_error = error
            self._attempt = None
            self._set_state(ConnectionState.DISCONNECTED)

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        self._scheduled = asyncio.get_running_loop().create_task(coro)

    async def _reconnect_after_drop(self) -> None:
        async with self._lock:
            if self._state is not ConnectionState.RECONNECTING:
                return
            self._begin_attempt(reconnect=True)
        await self._open_transport()

    async def _connect_deferred(self) -> None:
        await self.connect()

    # ---- outbound ----
    async def send_command(self, verb: str, *args: str) -> bool:
        async with self._lock:
            return await self._send(Command.of(verb, *args))

    async def _send(self, command: Command) -> bool:
        if self._state not in _SENDABLE_STATES:
            logger.log_event(
                "irc",
                "send_dropped",
                level=logging.DEBUG,
                user=self.username,
                verb=command.verb.upper(),
                state=self._state.name,
            )
            return False
        try:
            await self._transport.send(command.encode())
        except TransportError as e:
            logger.log_event(
                "irc",
                "send_failed",
                level=logging.WARNING,
                user=self.username,
                verb=command.verb.upper(),
                error=str(e),
            )
            return False
        return True

    async def join(self, channel: Channel) -> bool:
        """Record and join ``channel``; False if it was already a member."""
        async with self._lock:
            if channel in self.membership:
                logger.log_event(
                    "irc",
                    "join_already_member",
                    level=logging.DEBUG,
                    user=self.username,
                    channel=channel.name,
                )
                return False
            sent = await self._send(Command.of("join", channel.irc_name))
            self.membership.add(channel)
        logger.log_event(
            "irc",
            "join" if sent else "join_deferred",
            level=logging.INFO if sent else logging.DEBUG,
            user=self.username,
            channel=channel.name,
        )
        return True

    async def part(self, channel: Channel) -> bool:
        """Leave and forget ``channel``; False if it was not a member."""
        async with self._lock:
            if channel not in self.membership:
                logger.log_event(
                    "irc",
                    "part_not_member",
                    level=logging.DEBUG,
                    user=self.username,
                    channel=channel.name,
                )
                return False
            sent = await self._send(Command.of("part", channel.irc_name))
            self.membership.remove(channel)
        logger.log_event(
            "irc",
            "part" if sent else "part_deferred",
            level=logging.INFO if sent else logging.DEBUG,
            user=self.username,
            channel=channel.name,
        )
        return True

    # ---- transport notifications ----
    async def on_opened(self, headers: Mapping[str, str]) -> None:
        async with self._lock:
            abandon = await self._handshake(headers)
        if abandon:
            await self._transport.disconnect()

    async def _handshake(self, headers: Mapping[str, str]) -> bool:
        """Negotiate capabilities and log in; True if the transport must close."""
        attempt = self._attempt
        if self._state is ConnectionState.DISCONNECTING:
            # Shut down while the transport was still opening.
            return True
        if self._state is not ConnectionState.CONNECTING or attempt is None:
            logger.log_event(
                "irc",
                "opened_unexpected",
                level=logging.WARNING,
                state=self._state.name,
            )
            return False
        logger.log_event(
            "irc",
            "transport_opened",
            level=logging.DEBUG,
            attempt=attempt.number,
            headers=len(headers),
        )
        for capability in self.capabilities:
            await self._send(Command.of("cap req", f"{IRC_TRAILING_PREFIX}{capability}"))
        credential = await self._fetch_credential(attempt)
        if credential is None:
            self._set_state(ConnectionState.DISCONNECTING)
            return True
        await self._authenticate(attempt, credential)
        return False

    async def _fetch_credential(self, attempt: ConnectionAttempt) -> Credential | None:
        try:
            credential = await self._credentials.get_chat_credential()
        except Exception as e:  # noqa: BLE001
            log_error("Credential source failed", e, context={"attempt": attempt.number})
            credential = None
        if credential is None:
            error = MissingCredentialError(
                "No chat credential available; connection attempt abandoned"
            )
            self.last_error = error
            log_error(
                "Chat authentication impossible",
                error,
                context={"attempt": attempt.number},
            )
        return credential

    async def _authenticate(
        self, attempt: ConnectionAttempt, credential: Credential
    ) -> None:
        attempt.credential = credential
        await self._send(Command.of("pass", _oauth_token(credential.token)))
        await self._send(Command.of("nick", attempt.username or ""))
        for channel in self.membership:
            await self._send(Command.of("join", channel.irc_name))
        logger.log_event(
            "irc",
            "auth_sent",
            level=logging.DEBUG,
            user=attempt.username,
            rejoin_count=len(self.membership),
        )

    async def on_text_line(self, line: str) -> None:
        self.last_server_activity = time.time()
        # Keep-alives carry the token as the command; chat text mentioning it is not one.
        if line.startswith(IRC_PING_TOKEN):
            await self._handle_ping(line)
            return
        abandon = False
        async with self._lock:
            attempt = self._attempt
            welcome = attempt.welcome_line(self.server_name) if attempt else None
            if welcome is not None and welcome in line:
                if self._state is ConnectionState.CONNECTING:
                    self._on_welcome(attempt)
                return
            if self._state is ConnectionState.CONNECTING:
                abandon = self._check_auth_failure(line)
                if not abandon:
                    logger.log_event(
                        "irc",
                        "line_before_welcome",
                        level=logging.DEBUG,
                        user=self.username,
                        raw=line,
                    )
            forward = self._state is ConnectionState.CONNECTED
        if abandon:
            await self._transport.disconnect()
        elif forward:
            await self._dispatch(line)

    async def _handle_ping(self, line: str) -> None:
        payload = line.split(":", 1)[1] if ":" in line else self.server_name
        async with self._lock:
            await self._send(Command.of("pong", f"{IRC_TRAILING_PREFIX}{payload}"))
        self.last_ping_from_server = time.time()
        logger.log_event(
            "irc", "ping_answered", level=logging.DEBUG, user=self.username
        )

    def _on_welcome(self, attempt: ConnectionAttempt | None) -> None:
        self.connected_since = time.time()
        self.last_error = None
        self._set_state(ConnectionState.CONNECTED)
        logger.log_event(
            "irc",
            "connect_success",
            user=self.username,
            attempt=attempt.number if attempt else None,
            channels=len(self.membership),
        )

    def _check_auth_failure(self, line: str) -> bool:
        if " NOTICE " not in line or not any(n in line for n in AUTH_FAILURE_NOTICES):
            return False
        error = OAuthError("Chat login rejected by server", data={"notice": line})
        self.last_error = error
        log_error("Chat authentication failed", error, context={"user": self.username})
        self._set_state(ConnectionState.DISCONNECTING)
        return True

    async def _dispatch(self, line: str) -> None:
        try:
            result = self._dispatcher.dispatch(line, self._context)
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "dispatch_error",
                level=logging.ERROR,
                user=self.username,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def on_closed(self, server_initiated: bool) -> None:
        async with self._lock:
            user = self.username
            self._attempt = None
            self.connected_since = None
            if self._state is ConnectionState.DISCONNECTING:
                self._set_state(ConnectionState.DISCONNECTED)
                logger.log_event("irc", "disconnected", user=user)
                if self._connect_after_close:
                    self._connect_after_close = False
                    self._schedule(self._connect_deferred())
                return
            if self._state in (ConnectionState.DISCONNECTED, ConnectionState.RECONNECTING):
                return
            self.reconnect_count += 1
            logger.log_event(
                "irc",
                "connection_lost",
                level=logging.WARNING,
                user=user,
                server_initiated=server_initiated,
                state=self._state.name,
            )
            self._set_state(ConnectionState.RECONNECTING)
            self._schedule(self._reconnect_after_drop())

    # ---- health ----
    def get_connection_stats(self) -> dict[str, Any]:
        now = time.time()
        uptime = now - self.connected_since if self.connected_since else None
        return {
            "state": self._state.name,
            "username": self.username,
            "channels": [c.name for c in self.membership],
            "attempts": self.attempt_count,
            "reconnects": self.reconnect_count,
            "uptime": format_duration(uptime),
            "seconds_since_activity": (
                now - self.last_server_activity if self.last_server_activity else None
            ),
            "seconds_since_ping": (
                now - self.last_ping_from_server if self.last_ping_from_server else None
            ),
            "last_error": str(self.last_error) if self.last_error else None,
        }
