"""Streaming news ingestion.

StreamIngestor owns one websocket session: it connects, then for every frame
decodes a StreamEvent, writes it to the StreamBuffer and hands it to the
registered handler, strictly one message at a time.

State machine::

    IDLE -> CONNECTING -> STREAMING -> CLOSED (stop requested)
                      \\-> FAILED (any other error, raised to the caller)

Setting the ``stop`` event passed to ``run`` is the only graceful exit.
Reconnection is not attempted here; see ``news_archive.stream.reconnect``.
"""

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

from pydantic import ValidationError
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus, InvalidURI

from news_archive.models.stream import StreamEvent
from news_archive.stream.buffer import StreamBuffer, StreamBufferError

DEFAULT_MAX_MESSAGE_SIZE = 1000 << 16

TOO_MANY_CONNECTIONS_MESSAGE = (
    "server reports too many connections, wait before reconnecting or disconnect other sessions"
)
SERVER_UNAVAILABLE_MESSAGE = "server unavailable, delay before attempting reconnect"


class StreamError(Exception):
    """Base exception for stream ingestion errors."""


class ServerError(StreamError):
    """Server refused the session; ``message`` says how to back off."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"server returned unexpected error: {code} - {message}")


class StreamConnectError(StreamError):
    """Raised when the websocket cannot be opened."""


class StreamReadError(StreamError):
    """Raised when reading a frame fails, including oversized frames."""


class StreamDecodeError(StreamError):
    """Raised when a frame is not a valid stream event."""


class HandlerError(StreamError):
    """Raised when the message handler rejects an event."""


class IngestorState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"


class MessageHandler(Protocol):
    """Business logic receiving each buffered event.

    ``handle`` may be a plain or a coroutine function. Raising rejects the
    event and ends the session.
    """

    def handle(self, event: StreamEvent) -> Awaitable[None] | None: ...


Connector = Callable[..., Awaitable[ClientConnection]]


class StreamIngestor:
    """Single websocket session feeding a StreamBuffer and a handler."""

    def __init__(
        self,
        url: str,
        handler: MessageHandler,
        buffer: StreamBuffer | None = None,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
        auto_clear: bool = False,
        additional_headers: dict[str, str] | None = None,
        connector: Connector = connect,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize stream ingestor.

        Args:
            url: Websocket URL, including the token query parameter.
            handler: Receives every event after it is buffered.
            buffer: Event buffer. Defaults to one with no backends enabled.
            max_message_size: Largest frame accepted, in bytes.
            auto_clear: Drop each event from every buffer backend, disk
                included, once the handler accepted it.
            additional_headers: Extra handshake headers.
            connector: Coroutine opening the connection. Defaults to
                ``websockets.asyncio.client.connect``.
            logger: Logger for session events. Defaults to the module logger.

        Raises:
            ValueError: If handler is None.
        """
        if handler is None:
            msg = "websocket message handler must not be None"
            raise ValueError(msg)

        self.url = url
        self.handler = handler
        self.buffer = buffer if buffer is not None else StreamBuffer()
        self.max_message_size = max_message_size
        self.auto_clear = auto_clear
        self.additional_headers = additional_headers or {}
        self._connector = connector
        self.log = logger or logging.getLogger(__name__)

        self.state = IngestorState.IDLE
        self.messages_received = 0

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Connect and ingest until ``stop`` is set or an error occurs.

        Args:
            stop: Event that ends the session cleanly when set.

        Raises:
            ServerError: Handshake answered with 429, 500 or 503.
            StreamConnectError: Any other dial or handshake failure.
            StreamReadError: Reading a frame failed.
            StreamDecodeError: A frame could not be decoded.
            HandlerError: The handler raised.
            StreamError: The buffer could not store an event.
        """
        self.state = IngestorState.CONNECTING
        try:
            websocket = await self._connect()
        except BaseException:
            self.state = IngestorState.FAILED
            raise

        self.state = IngestorState.STREAMING
        self.log.info("Connected to news stream")

        try:
            await self._stream(websocket, stop)
        except BaseException:
            self.state = IngestorState.FAILED
            raise
        finally:
            await websocket.close()

        self.state = IngestorState.CLOSED
        self.log.info("News stream closed after %d messages", self.messages_received)

    async def _connect(self) -> ClientConnection:
        try:
            return await self._connector(
                self.url,
                additional_headers=self.additional_headers,
                max_size=self.max_message_size,
            )
        except InvalidStatus as e:
            code = e.response.status_code
            if code == 429:
                raise ServerError(code, TOO_MANY_CONNECTIONS_MESSAGE) from e
            if code in (500, 503):
                raise ServerError(code, SERVER_UNAVAILABLE_MESSAGE) from e
            raise StreamConnectError(f"websocket handshake rejected with status {code}") from e
        except (InvalidHandshake, InvalidURI, OSError) as e:
            raise StreamConnectError(f"websocket dial error: {e}") from e

    async def _receive(self, websocket: ClientConnection, stop: asyncio.Event | None) -> Any:
        """Wait for the next frame, or return None once ``stop`` is set."""
        if stop is None:
            return await websocket.recv()
        if stop.is_set():
            return None

        recv = asyncio.ensure_future(websocket.recv())
        stopped = asyncio.ensure_future(stop.wait())
        try:
            await asyncio.wait({recv, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
            if not recv.done():
                recv.cancel()

        if recv.done() and not recv.cancelled():
            return recv.result()

        with contextlib.suppress(asyncio.CancelledError):
            await recv
        return None

    async def _stream(self, websocket: ClientConnection, stop: asyncio.Event | None) -> None:
        while True:
            try:
                message = await self._receive(websocket, stop)
            except ConnectionClosed as e:
                raise StreamReadError(f"websocket read message error: {e}") from e

            if message is None:
                self.log.info("Stop requested; closing news stream")
                return

            self.messages_received += 1

            try:
                event = StreamEvent.model_validate_json(message)
            except ValidationError as e:
                raise StreamDecodeError(f"websocket message decode error: {e}") from e

            await self._dispatch(event)

    async def _dispatch(self, event: StreamEvent) -> None:
        try:
            self.buffer.put(event)
        except (StreamBufferError, OSError) as e:
            raise StreamError(f"buffer write error for event {event.id}: {e}") from e

        self.log.debug("Buffered event %d (%s)", event.id, event.data.action)

        try:
            await self._handle(event)
        except Exception as e:
            raise HandlerError(f"handle message error: {e}") from e

        if self.auto_clear:
            self.buffer.acknowledge(event)

    async def _handle(self, event: StreamEvent) -> None:
        result = self.handler.handle(event)
        if inspect.isawaitable(result):
            await result

    async def replay(self) -> int:
        """Hand every event still in the buffer to the handler.

        Intended for startup, before ``run``, so events buffered by a crashed
        session are processed.

        Returns:
            Number of events replayed.

        Raises:
            HandlerError: If the handler rejects an event.
        """
        events = self.buffer.entries()
        for event in events:
            try:
                await self._handle(event)
            except Exception as e:
                raise HandlerError(f"replay of event {event.id} failed: {e}") from e
            if self.auto_clear:
                self.buffer.acknowledge(event)

        if events:
            self.log.info("Replayed %d buffered events", len(events))
        return len(events)
