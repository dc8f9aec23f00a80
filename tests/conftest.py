import asyncio
import io
from typing import Iterable, List, Optional

import pytest
from rich.console import Console

from shared.message import Message
from lsh.ws_client import SendError


class FakeTransport:
    """In-memory stand-in for TransportSession.

    `frames` are returned by receive() in order; exception instances in the
    list are raised instead. Once the list runs out receive() blocks until
    more frames are pushed.
    """

    def __init__(self, frames: Iterable[object] = (), fail_sends: int = 0, connect_error: Optional[Exception] = None) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self.incoming.put_nowait(frame)
        self.fail_sends = fail_sends
        self.connect_error = connect_error
        self.sent: List[Message] = []
        self.send_attempts = 0
        self.connected = False
        self.close_calls = 0

    def push(self, frame: object) -> None:
        self.incoming.put_nowait(frame)

    async def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def receive(self) -> Message:
        frame = await self.incoming.get()
        if isinstance(frame, BaseException):
            raise frame
        return frame

    async def send(self, message: Message) -> None:
        self.send_attempts += 1
        if self.fail_sends:
            self.fail_sends -= 1
            raise SendError("socket is gone")
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def fake_transport():
    # Returned as a factory so the queue is built inside the test's event loop
    return FakeTransport


@pytest.fixture
def console_output():
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None, force_terminal=False)
    return console, buffer
