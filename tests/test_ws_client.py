import json

import pytest
import websockets

from shared.message import ChatMessage, Greeting, MalformedMessageError, Ping
from lsh.ws_client import (
    ConnectError,
    EndOfStream,
    EndpointConsumedError,
    ReadError,
    SendError,
    TransportSession,
)


def url_of(server) -> str:
    port = server.sockets[0].getsockname()[1]
    return f"ws://127.0.0.1:{port}"


@pytest.mark.asyncio
async def test_round_trip_and_orderly_close():
    seen = {}

    async def handler(ws):
        seen["origin"] = ws.request.headers.get("Origin")
        await ws.send(json.dumps({"type": "hello"}))
        seen["frame"] = await ws.recv()
        await ws.close(code=1000)

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        transport = TransportSession(url_of(server))
        await transport.connect()

        assert await transport.receive() == Greeting()
        await transport.send(Ping())
        with pytest.raises(EndOfStream):
            await transport.receive()

        await transport.close()
        await transport.close()
        assert transport.closed

    assert seen["origin"] == "http://localhost/"
    assert seen["frame"] == '{"type":"ping"}'


@pytest.mark.asyncio
async def test_origin_is_configurable():
    seen = {}

    async def handler(ws):
        seen["origin"] = ws.request.headers.get("Origin")

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        transport = TransportSession(url_of(server), origin="https://lsh.example")
        await transport.connect()
        await transport.close()

    assert seen["origin"] == "https://lsh.example"


@pytest.mark.asyncio
async def test_malformed_frame_does_not_end_stream():
    async def handler(ws):
        await ws.send("definitely not json")
        await ws.send(json.dumps({"type": "message", "user": "bob", "text": "hi", "channel": "C1"}))
        await ws.wait_closed()

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        transport = TransportSession(url_of(server))
        await transport.connect()
        with pytest.raises(MalformedMessageError):
            await transport.receive()
        assert await transport.receive() == ChatMessage(user="bob", text="hi", channel="C1")
        await transport.close()


@pytest.mark.asyncio
async def test_abnormal_close_is_read_error():
    async def handler(ws):
        await ws.close(code=1011, reason="server blew up")

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        transport = TransportSession(url_of(server))
        await transport.connect()
        with pytest.raises(ReadError):
            await transport.receive()
        await transport.close()


@pytest.mark.asyncio
async def test_endpoint_is_single_use():
    async def handler(ws):
        await ws.wait_closed()

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        transport = TransportSession(url_of(server))
        await transport.connect()
        with pytest.raises(EndpointConsumedError):
            await transport.connect()
        await transport.close()


@pytest.mark.asyncio
async def test_connect_failure_is_connect_error():
    async def handler(ws):
        pass

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        url = url_of(server)
    # Server is gone; the port now refuses connections
    transport = TransportSession(url, open_timeout=2.0)
    with pytest.raises(ConnectError):
        await transport.connect()


@pytest.mark.asyncio
async def test_send_after_close_fails():
    async def handler(ws):
        await ws.wait_closed()

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        transport = TransportSession(url_of(server))
        await transport.connect()
        await transport.close()
        with pytest.raises(SendError):
            await transport.send(Ping())


@pytest.mark.asyncio
async def test_send_before_connect_fails():
    transport = TransportSession("ws://127.0.0.1:9")
    with pytest.raises(SendError):
        await transport.send(Ping())
