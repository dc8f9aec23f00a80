from __future__ import annotations
import asyncio
from contextlib import suppress
from typing import Optional

from shared.message import Message, Ping
from shared.log import get_logger

logger = get_logger(__name__)


class KeepaliveTimer:
    """Enqueue one Ping every `interval` seconds until stopped."""

    def __init__(self, interval: float, outbound: "asyncio.Queue[Message]") -> None:
        self.interval = interval
        self.outbound = outbound
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("keepalive timer already started")
        self._task = asyncio.create_task(self._run(), name="keepalive")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            self.outbound.put_nowait(Ping())
            logger.debug("Keepalive tick %d", self.ticks)

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        logger.debug("Keepalive stopped after %d ticks", self.ticks)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped
