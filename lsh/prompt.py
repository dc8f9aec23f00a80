from __future__ import annotations
import itertools
from typing import Awaitable, Callable, Optional

from aioconsole import ainput

from shared.message import ChatMessage
from shared.log import get_logger
from .session import CloseReason, Session

logger = get_logger(__name__)

HELP = "<channel> <text> to send, /help, /quit"

Reader = Callable[[str], Awaitable[str]]


class Prompt:
    """Interactive input: turns typed lines into outbound chat messages."""

    def __init__(self, session: Session, reader: Optional[Reader] = None) -> None:
        self.session = session
        self.reader = reader or ainput
        self._ids = itertools.count(1)

    async def run(self) -> None:
        while not self.session.closed:
            try:
                line = (await self.reader(": ")).strip()
            except EOFError:
                logger.debug("stdin closed; prompt stopped")
                return
            if not line:
                continue
            if line in {"/quit", "/exit"}:
                self.session.request_quit(CloseReason.INTERRUPTED)
                return
            if line == "/help":
                self.session.console.print(HELP)
                continue
            channel, _, text = line.partition(" ")
            text = text.strip()
            if channel.startswith("/") or not text:
                self.session.console.print(f"Usage: {HELP}")
                continue
            self.session.enqueue(ChatMessage(channel=channel, text=text, id=next(self._ids)))
