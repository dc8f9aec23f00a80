from __future__ import annotations
from typing import Optional, Sequence

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from shared.config import DEFAULT_ORIGIN
from shared.message import Message, decode, encode
from shared.log import get_logger

logger = get_logger(__name__)


class TransportError(Exception):
    """Base class for WebSocket transport failures."""
    pass


class ConnectError(TransportError):
    """The socket could not be opened."""
    pass


class EndpointConsumedError(TransportError):
    """connect() was called twice on a single-use endpoint."""
    pass


class SendError(TransportError):
    """A frame could not be written."""
    pass


class ReadError(TransportError):
    """The connection broke while reading."""
    pass


class EndOfStream(TransportError):
    """The peer closed the connection cleanly."""
    pass


class TransportSession:
    """
    RTM WebSocket connection.

    Owns one socket opened against a single-use endpoint and moves decoded
    Messages across it. One reader and one writer at a time.
    """

    def __init__(
        self,
        url: str,
        origin: str = DEFAULT_ORIGIN,
        subprotocols: Optional[Sequence[str]] = None,
        open_timeout: float = 10.0,
    ) -> None:
        self.url = url
        self.origin = origin
        self.subprotocols = list(subprotocols) if subprotocols else None
        self.open_timeout = open_timeout
        self.websocket: Optional[websockets.ClientConnection] = None
        self._consumed = False
        self._closed = False

    async def connect(self) -> None:
        """Connect to the RTM endpoint; the URL is used at most once"""
        if self._consumed:
            raise EndpointConsumedError("session endpoint has already been used")
        self._consumed = True
        try:
            self.websocket = await websockets.connect(
                self.url,
                origin=self.origin,
                subprotocols=self.subprotocols,
                open_timeout=self.open_timeout,
                ping_interval=None,  # liveness is the application-level ping
            )
        except Exception as e:
            raise ConnectError(f"Could not connect to {self.url}: {e}") from e
        logger.debug("Connected to %s", self.url)

    async def receive(self) -> Message:
        """
        Wait for the next frame and decode it.

        Raises:
            EndOfStream: the peer closed the connection normally
            ReadError: the connection dropped abnormally
            MalformedMessageError: the frame was not a valid message
        """
        assert self.websocket is not None
        try:
            raw = await self.websocket.recv()
        except ConnectionClosedOK as e:
            raise EndOfStream() from e
        except ConnectionClosed as e:
            raise ReadError(f"Connection lost: {e}") from e
        return decode(raw)

    async def send(self, message: Message) -> None:
        """Encode and write one message; failures surface as SendError"""
        if self.websocket is None or self._closed:
            raise SendError("Connection not established.")
        try:
            await self.websocket.send(encode(message))
        except Exception as e:
            raise SendError(f"Error sending {message.type}: {e}") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.websocket is not None:
            try:
                await self.websocket.close(code=1000)
            except Exception as e:
                logger.error(f"Error closing connection: {e}")

    @property
    def closed(self) -> bool:
        return self._closed
