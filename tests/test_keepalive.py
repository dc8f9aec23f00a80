import asyncio

import pytest

from shared.message import Ping
from lsh.keepalive import KeepaliveTimer


@pytest.mark.asyncio
async def test_timer_enqueues_pings_until_stopped():
    outbound: asyncio.Queue = asyncio.Queue()
    timer = KeepaliveTimer(0.05, outbound)
    timer.start()
    await asyncio.sleep(0.18)
    await timer.stop()

    ticks = timer.ticks
    assert ticks >= 2
    assert outbound.qsize() == ticks
    assert all(isinstance(outbound.get_nowait(), Ping) for _ in range(ticks))

    await asyncio.sleep(0.12)
    assert timer.ticks == ticks
    assert outbound.empty()


@pytest.mark.asyncio
async def test_first_tick_waits_one_interval():
    outbound: asyncio.Queue = asyncio.Queue()
    timer = KeepaliveTimer(0.2, outbound)
    timer.start()
    await asyncio.sleep(0.05)
    assert outbound.empty()
    await timer.stop()


@pytest.mark.asyncio
async def test_stop_is_idempotent():
    timer = KeepaliveTimer(0.05, asyncio.Queue())
    timer.start()
    assert timer.running
    await timer.stop()
    await timer.stop()
    assert timer.stopped
    assert not timer.running


@pytest.mark.asyncio
async def test_stop_before_start():
    timer = KeepaliveTimer(0.05, asyncio.Queue())
    await timer.stop()
    assert timer.stopped


@pytest.mark.asyncio
async def test_start_twice_is_rejected():
    timer = KeepaliveTimer(0.05, asyncio.Queue())
    timer.start()
    with pytest.raises(RuntimeError):
        timer.start()
    await timer.stop()
