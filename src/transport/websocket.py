"""Implementation of the Transport using an aiohttp websocket client"""

import asyncio
import logging
from typing import Optional, Self

import aiohttp

from src.api.messages import ClientIntent, HeartbeatIntent, decode_frame, encode_intent
from src.core.config import ClientSettings
from src.core.exceptions import ProtocolError, SerializationError, TransportError
from src.transport.base import TransportListener

logger = logging.getLogger(__name__)


class WebSocketTransport:
    """
    One websocket connection per `connect` call.
    ----

    * frames are read and handed to the listener one by one, in arrival order
    * `send` only encodes and queues; a single writer task sends the frames in that same order
    * a heartbeat is sent every `heartbeat_interval` seconds while the connection is open
    """

    def __init__(
        self, url: str, heartbeat_interval: float = 5.0, connect_timeout: float = 10.0
    ) -> None:
        self.url = url
        self.heartbeat_interval = heartbeat_interval
        self.connect_timeout = connect_timeout
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._outbox: Optional[asyncio.Queue[str]] = None
        self._close_notified = True

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> Self:
        return cls(
            url=settings.server_url,
            heartbeat_interval=settings.heartbeat_interval,
            connect_timeout=settings.connect_timeout,
        )

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def send(self, intent: ClientIntent) -> bool:
        if not self.is_open or self._outbox is None:
            logger.error("WebSocket is not connected. Dropping %r message.", intent.type)
            return False
        try:
            frame = encode_intent(intent)
        except SerializationError as exc:
            logger.error("Failed to convert message to JSON: %s", exc)
            return False
        logger.debug("Queued frame: %s", frame)
        self._outbox.put_nowait(frame)
        return True

    async def connect(self, listener: TransportListener) -> None:
        """
        Open the connection and serve it until it closes.
        ----

        Raises TransportError when the connection cannot be established (the listener is not notified).
        Once established, the listener gets on_open, then every decoded message, then on_close exactly once.
        """
        if self._ws is not None:
            raise TransportError("Transport is already connected.")

        async with aiohttp.ClientSession() as http:
            try:
                ws = await asyncio.wait_for(
                    http.ws_connect(self.url), timeout=self.connect_timeout
                )
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
                raise TransportError(f"Could not connect to {self.url}: {exc!r}") from exc
            await self._serve(ws, listener)

    async def close(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()

    # -- Internal helpers --
    async def _serve(
        self, ws: aiohttp.ClientWebSocketResponse, listener: TransportListener
    ) -> None:
        self._ws = ws
        self._outbox = asyncio.Queue()
        self._close_notified = False
        logger.info("WebSocket connection established: %s", self.url)

        writer = asyncio.create_task(self._write_frames(ws, self._outbox))
        heartbeat = asyncio.create_task(self._send_heartbeats())
        try:
            listener.on_open()
            await self._read_frames(ws, listener)
        finally:
            heartbeat.cancel()
            writer.cancel()
            await asyncio.gather(heartbeat, writer, return_exceptions=True)
            self._ws = None
            self._outbox = None
            if not ws.closed:
                await ws.close()
            logger.info("WebSocket connection closed")
            self._notify_closed(listener)

    async def _read_frames(
        self, ws: aiohttp.ClientWebSocketResponse, listener: TransportListener
    ) -> None:
        async for frame in ws:
            if frame.type == aiohttp.WSMsgType.TEXT:
                self._dispatch(frame.data, listener)
            elif frame.type == aiohttp.WSMsgType.BINARY:
                logger.error("Received non-string data: %r", frame.data)
            elif frame.type == aiohttp.WSMsgType.ERROR:
                logger.error("WebSocket error: %s", ws.exception())
                break

    def _dispatch(self, raw: str, listener: TransportListener) -> None:
        """Malformed frames are dropped, the connection stays up."""
        try:
            message = decode_frame(raw)
        except ProtocolError as exc:
            logger.warning("Failed to parse server message: %s Raw data: %r", exc, raw)
            return
        logger.debug("Received %r message", message.type)
        listener.on_message(message)

    async def _write_frames(
        self, ws: aiohttp.ClientWebSocketResponse, outbox: asyncio.Queue[str]
    ) -> None:
        while True:
            frame = await outbox.get()
            try:
                await ws.send_str(frame)
            except (aiohttp.ClientError, ConnectionError) as exc:
                # the reader sees the broken connection and ends the session
                logger.error("Failed to send message: %s", exc)
                return

    async def _send_heartbeats(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            if self.is_open:
                logger.debug("Sending heartbeat")
                self.send(HeartbeatIntent())

    def _notify_closed(self, listener: TransportListener) -> None:
        """Close can be observed more than once (error + close). The listener hears about it once."""
        if self._close_notified:
            return
        self._close_notified = True
        listener.on_close()
