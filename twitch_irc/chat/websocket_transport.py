"""WebSocket transport carrying IRC lines to and from Twitch."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Mapping
from typing import Any

import websockets
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    WebSocketException,
)

from ..constants import (
    IRC_LINE_TERMINATOR,
    TRANSPORT_CLOSE_TIMEOUT_SECONDS,
    TRANSPORT_CONNECT_TIMEOUT_SECONDS,
    TWITCH_IRC_WS_URL,
)
from ..errors.internal import TransportError
from .protocols import TransportListener


class WebSocketTransport:
    """Line-oriented transport over one websocket connection.

    ``connect`` opens the socket and starts a reader task which delivers, in
    order, ``on_opened``, one ``on_text_line`` per inbound line and a final
    ``on_closed``. Every outbound line goes out as its own text frame.

    Attributes:
        url (str): WebSocket endpoint.
        ws: Active websocket connection, or None.
    """

    def __init__(
        self,
        url: str = TWITCH_IRC_WS_URL,
        *,
        connect_timeout: float = TRANSPORT_CONNECT_TIMEOUT_SECONDS,
        close_timeout: float = TRANSPORT_CLOSE_TIMEOUT_SECONDS,
    ) -> None:
        self.url = url
        self.connect_timeout = connect_timeout
        self.close_timeout = close_timeout
        self.ws: Any = None
        self._listener: TransportListener | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._closing = False

    def set_listener(self, listener: TransportListener) -> None:
        self._listener = listener

    @property
    def is_open(self) -> bool:
        return self.ws is not None

    async def connect(self) -> None:
        if self._listener is None:
            raise TransportError("No listener registered on transport")
        if self.ws is not None:
            raise TransportError("WebSocket already open", data={"url": self.url})
        logging.info(f"🔌 Connecting to WebSocket at {self.url}")
        try:
            ws = await asyncio.wait_for(
                websockets.connect(self.url, ping_interval=None),
                timeout=self.connect_timeout,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportError(
                f"WebSocket connection failed: {str(e)}", data={"url": self.url}
            ) from e
        self.ws = ws
        self._closing = False
        logging.info("🔌 WebSocket connected successfully")
        self._reader_task = asyncio.create_task(self._run(ws, self._listener))

    async def disconnect(self) -> None:
        ws = self.ws
        if ws is None:
            return
        self._closing = True
        await self._close_ws(ws)

    async def send(self, line: str) -> None:
        ws = self.ws
        if ws is None:
            raise TransportError("WebSocket is not open")
        try:
            await ws.send(line)
        except ConnectionClosed as e:
            raise TransportError(f"WebSocket closed while sending: {str(e)}") from e

    async def _run(self, ws: Any, listener: TransportListener) -> None:
        try:
            await listener.on_opened(self._response_headers(ws))
            async for message in ws:
                for line in self._split_lines(message):
                    await listener.on_text_line(line)
        except ConnectionClosedError as e:
            logging.warning(f"⚠️ WebSocket closed with error: {str(e)}")
        except Exception as e:  # noqa: BLE001
            logging.error(f"❌ WebSocket reader failed: {type(e).__name__}: {str(e)}")
            await self._close_ws(ws)
        if self.ws is ws:
            self.ws = None
        server_initiated = not self._closing
        logging.info(f"🔌 WebSocket closed (server_initiated={server_initiated})")
        await listener.on_closed(server_initiated)

    async def _close_ws(self, ws: Any) -> None:
        try:
            await asyncio.wait_for(ws.close(code=1000), timeout=self.close_timeout)
        except (OSError, TimeoutError, WebSocketException) as e:
            logging.warning(f"⚠️ WebSocket close error: {str(e)}")

    @staticmethod
    def _split_lines(message: str | bytes) -> Iterator[str]:
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        for line in message.split(IRC_LINE_TERMINATOR):
            line = line.strip("\r\n")
            if line:
                yield line

    @staticmethod
    def _response_headers(ws: Any) -> Mapping[str, str]:
        response = getattr(ws, "response", None)
        headers = getattr(response, "headers", None) or getattr(
            ws, "response_headers", None
        )
        if headers is None:
            return {}
        if hasattr(headers, "raw_items"):
            return dict(headers.raw_items())
        return dict(headers)
