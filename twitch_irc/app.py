"""Application wiring: build a client from configuration and keep it running."""

from __future__ import annotations

import asyncio
import logging
import signal

import aiohttp

from .auth_token.source import StaticCredentialSource
from .chat.channel_resolver import HelixChannelDirectory, LoginChannelDirectory
from .chat.protocols import ChannelDirectory
from .chat.websocket_transport import WebSocketTransport
from .config.model import ClientConfig
from .errors.handling import log_error
from .errors.internal import ChannelLookupError
from .irc.client import TwitchChatClient
from .irc.models import ConnectionState
from .logs.logger import logger


def build_directory(
    config: ClientConfig, session: aiohttp.ClientSession | None
) -> ChannelDirectory:
    if session is not None and config.has_helix_access:
        return HelixChannelDirectory(
            session,
            config.client_id or "",
            config.access_token or "",
        )
    return LoginChannelDirectory()


def build_client(
    config: ClientConfig, session: aiohttp.ClientSession | None = None
) -> TwitchChatClient:
    client = TwitchChatClient(
        WebSocketTransport(config.server_url),
        StaticCredentialSource.from_config(config),
        build_directory(config, session),
    )

    def log_chat(author: str, channel: str, message: str) -> None:
        logger.log_event(
            "chat",
            "privmsg",
            user=client.username,
            channel=channel,
            human=f"{author}: {message}",
        )

    client.dispatcher.set_message_handler(log_chat)
    return client


async def join_configured_channels(client: TwitchChatClient, channels: list[str]) -> int:
    """Join every configured channel, skipping names that do not resolve."""
    joined = 0
    for name in channels:
        try:
            if await client.join_channel(name):
                joined += 1
        except ChannelLookupError as e:
            log_error("Skipping configured channel", e, context={"channel": name})
    return joined


def install_signal_handlers(stop_event: asyncio.Event) -> None:  # pragma: no cover
    """Set stop_event on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()

    def handler(signum: int) -> None:
        if stop_event.is_set():
            return
        logging.warning(f"🛑 Signal received - initiating shutdown (signal={signum})")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handler, sig)
        except (NotImplementedError, RuntimeError):
            signal.signal(sig, lambda signum, _frame: handler(signum))


async def run_client(config: ClientConfig, stop_event: asyncio.Event) -> None:
    """Connect, join the configured channels and run until stop_event is set."""
    async with aiohttp.ClientSession() as session:
        client = build_client(config, session)

        def on_state(old: ConnectionState, new: ConnectionState) -> None:
            logger.log_event(
                "app",
                "state",
                level=logging.DEBUG,
                old_state=old.name,
                new_state=new.name,
            )

        client.add_state_listener(on_state)
        async with client:
            # Recorded while disconnected, joined during the login handshake.
            joined = await join_configured_channels(client, config.channels)
            await client.connect()
            logger.log_event("app", "running", user=config.username, channels=joined)
            await stop_event.wait()
            logger.log_event("app", "stats", level=logging.DEBUG, **client.get_connection_stats())
