#!/usr/bin/env python3
"""
lsh RTM session loop.

One Session owns the socket for its whole life:

    STARTING -> RUNNING -> CLOSING -> CLOSED

A reader task feeds decoded messages into the inbound queue, the keepalive
timer and the prompt feed the outbound queue, and the loop in `_run_loop`
is the single place that calls `send()`.
"""

from __future__ import annotations
import asyncio
from contextlib import suppress
from enum import Enum
from typing import Optional, Protocol, Set

from rich.console import Console

from shared.config import ClientConfig
from shared.message import MalformedMessageError, Message
from shared.log import get_logger, log_lsh_message
from .interpreter import interpret
from .keepalive import KeepaliveTimer
from .ws_client import EndOfStream, ReadError, SendError

logger = get_logger(__name__)


class SessionState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    CLOSING = "closing"
    CLOSED = "closed"


class CloseReason(str, Enum):
    END_OF_STREAM = "end_of_stream"   # peer closed cleanly
    READ_ERROR = "read_error"         # connection broke under the reader
    SEND_FAILURES = "send_failures"   # too many consecutive send failures
    INTERRUPTED = "interrupted"       # signal or /quit

    @property
    def is_error(self) -> bool:
        return self in (CloseReason.READ_ERROR, CloseReason.SEND_FAILURES)


class Transport(Protocol):
    async def connect(self) -> None: ...
    async def receive(self) -> Message: ...
    async def send(self, message: Message) -> None: ...
    async def close(self) -> None: ...


class Session:
    """
    Live RTM session: transport, queues, keepalive timer and state.

    Use `enqueue()` for outbound traffic and `request_quit()` to end the
    session from outside the loop.
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[ClientConfig] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.transport = transport
        self.config = config or ClientConfig()
        self.console = console or Console()
        self.state = SessionState.STARTING
        self.close_reason: Optional[CloseReason] = None
        self.inbound: asyncio.Queue[Message] = asyncio.Queue(maxsize=self.config.inbound_queue_size)
        self.outbound: asyncio.Queue[Message] = asyncio.Queue()
        self.keepalive = KeepaliveTimer(self.config.keepalive_interval, self.outbound)
        self.sent_count = 0
        self.failed_sends = 0
        self._consecutive_failures = 0
        self._quit = asyncio.Event()
        self._reader: Optional[asyncio.Task] = None
        self._pending: Optional[Message] = None
        self._retries: Set[asyncio.Task] = set()

    # ========================================
    #           PUBLIC API
    # ========================================

    async def run(self) -> CloseReason:
        """
        Open the transport and run until a terminal event.

        Raises ConnectError if the socket cannot be opened; every later
        failure is handled here and reported through the returned reason.
        """
        logger.info("Trying to connect websocket...")
        await self.transport.connect()

        self._reader = asyncio.create_task(self._read_loop(), name="rtm-reader")
        self.keepalive.start()
        self.state = SessionState.RUNNING
        logger.info("Session running")

        try:
            await self._run_loop()
        finally:
            await self._shutdown()

        assert self.close_reason is not None
        return self.close_reason

    def enqueue(self, message: Message) -> None:
        """Queue an outbound message; dropped once the session is closing"""
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            log_lsh_message(logger, "debug", "Session closing; dropping outbound message", message=message)
            return
        self.outbound.put_nowait(message)

    def request_quit(self, reason: CloseReason) -> None:
        """Signal the loop to close. The first reason wins."""
        if self.close_reason is None:
            self.close_reason = reason
        self._quit.set()

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    # ========================================
    #           TASKS
    # ========================================

    async def _read_loop(self) -> None:
        logger.info("Listen...")
        while True:
            try:
                message = await self.transport.receive()
            except EndOfStream:
                logger.info("Connection closed by peer")
                self.request_quit(CloseReason.END_OF_STREAM)
                return
            except ReadError as e:
                logger.error("Read failed: %s", e)
                self.request_quit(CloseReason.READ_ERROR)
                return
            except MalformedMessageError as e:
                logger.warning("Failed to decode inbound frame: %s", e)
                continue
            except Exception as e:
                logger.exception("Unexpected error while reading: %s", e)
                self.request_quit(CloseReason.READ_ERROR)
                return
            # Held until queued so teardown can still interpret it
            self._pending = message
            await self.inbound.put(message)
            self._pending = None

    async def _run_loop(self) -> None:
        inbound_get: Optional[asyncio.Task] = None
        outbound_get: Optional[asyncio.Task] = None
        quit_wait = asyncio.create_task(self._quit.wait())
        try:
            while True:
                if inbound_get is None:
                    inbound_get = asyncio.create_task(self.inbound.get())
                if outbound_get is None:
                    outbound_get = asyncio.create_task(self.outbound.get())

                done, _ = await asyncio.wait(
                    {inbound_get, outbound_get, quit_wait},
                    return_when=asyncio.FIRST_COMPLETED,
                )

                # Quit is checked first so a busy queue can never starve it
                if quit_wait in done:
                    return
                if inbound_get in done:
                    message = inbound_get.result()
                    inbound_get = None
                    self._dispatch(message)
                if outbound_get in done:
                    message = outbound_get.result()
                    outbound_get = None
                    await self._send(message)
        finally:
            self.state = SessionState.CLOSING
            if inbound_get is not None and inbound_get.done() and not inbound_get.cancelled():
                self._dispatch(inbound_get.result())
                inbound_get = None
            for task in (inbound_get, outbound_get, quit_wait):
                if task is not None:
                    task.cancel()

    def _drain_inbound(self) -> None:
        while True:
            try:
                message = self.inbound.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._dispatch(message)

    def _dispatch(self, message: Message) -> None:
        log_lsh_message(logger, "debug", "Received message", message=message)
        try:
            replies = interpret(message, self.console)
        except Exception as e:
            log_lsh_message(logger, "error", f"Failed to interpret message: {e}", message=message)
            return
        for reply in replies:
            self.enqueue(reply)

    async def _send(self, message: Message) -> None:
        log_lsh_message(logger, "info", "Send message", message=message)
        try:
            await self.transport.send(message)
        except SendError as e:
            self._on_send_failure(message, e)
            return
        self._consecutive_failures = 0
        self.sent_count += 1

    def _on_send_failure(self, message: Message, error: SendError) -> None:
        self.failed_sends += 1
        self._consecutive_failures += 1
        attempt = self._consecutive_failures
        log_lsh_message(logger, "warning", f"Message send failed: {error}", message=message, attempt=attempt)

        limit = self.config.max_send_retries
        if limit and attempt >= limit:
            logger.error("Giving up after %d consecutive send failures", attempt)
            self.request_quit(CloseReason.SEND_FAILURES)
            return

        delay = min(self.config.retry_backoff * (2 ** (attempt - 1)), self.config.retry_backoff_max)
        if delay <= 0:
            self.outbound.put_nowait(message)
            return
        task = asyncio.create_task(self._requeue_later(message, delay))
        self._retries.add(task)
        task.add_done_callback(self._retries.discard)

    async def _requeue_later(self, message: Message, delay: float) -> None:
        await asyncio.sleep(delay)
        self.enqueue(message)

    # ========================================
    #           TEARDOWN
    # ========================================

    async def _shutdown(self) -> None:
        self.state = SessionState.CLOSING
        if self.close_reason is None:
            # Loop left through an exception or cancellation
            self.close_reason = CloseReason.INTERRUPTED

        for task in list(self._retries):
            task.cancel()
        self._retries.clear()

        # Stop reading before the final drain so nothing taken off the wire is lost
        if self._reader is not None:
            self._reader.cancel()
            with suppress(asyncio.CancelledError):
                await self._reader
        self._drain_inbound()
        if self._pending is not None:
            pending, self._pending = self._pending, None
            self._dispatch(pending)

        await self.keepalive.stop()

        await self.transport.close()

        discarded = self.outbound.qsize()
        if discarded:
            logger.debug("Discarding %d queued outbound message(s)", discarded)

        self.state = SessionState.CLOSED
        self.console.print("Quit")
        logger.info("Quit (%s)", self.close_reason.value)
