import asyncio
import contextlib

import pytest

from aquarius.context_router import ContextRouter
from aquarius.flex_buffer import FlexBuffer
from aquarius.package_processor import PackageProcessor
from aquarius.session import Session
from aquarius.session_service import SessionService


@contextlib.asynccontextmanager
async def serving(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        server.close()


def _buffer(data):
    buffer = FlexBuffer()
    buffer.save(data)
    return buffer


def test_default_service():
    session = Session()
    assert type(session.service) is SessionService
    with pytest.raises(ConnectionError):
        session.remote_address()


@pytest.mark.asyncio
async def test_send_packet_writes_frames():
    received = asyncio.get_running_loop().create_future()
    expected = b"".join(frame.data() for frame in PackageProcessor().write(1001, _buffer(b"hi")))

    async def handler(reader, writer):
        received.set_result(await reader.readexactly(len(expected)))
        writer.close()

    async with serving(handler) as port:
        service = SessionService()
        await service.connect("127.0.0.1", port)
        session = Session(service)
        try:
            written = await session.send_packet(1001, _buffer(b"hi"))
            data = await asyncio.wait_for(received, 5)
        finally:
            session.shutdown()

    assert written == len(expected)
    assert data == expected
    assert data == b"\x07" + (1001).to_bytes(4, "little") + b"hi"


@pytest.mark.asyncio
async def test_send_packet_unconnected_writes_nothing():
    session = Session()
    assert await session.send_packet(1001, _buffer(b"data")) == 0


@pytest.mark.asyncio
async def test_send_packet_rejects_bad_protocol():
    session = Session()
    with pytest.raises(ValueError):
        await session.send_packet(-1, _buffer(b"data"))


@pytest.mark.asyncio
async def test_start_dispatches_packet_and_shuts_down_at_eof():
    proto = 900001
    captured = []
    ContextRouter.instance().register(proto, lambda buffer, session: captured.append((buffer.data(), session)))

    loop = asyncio.get_running_loop()
    done = loop.create_future()

    async def handler(reader, writer):
        service = SessionService()
        service.attach(reader, writer)
        session = Session(service)
        await session.start()
        done.set_result(session)

    frame = PackageProcessor().write(proto, _buffer(b"hello"))[0].data()

    async with serving(handler) as port:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(frame)
        await writer.drain()
        await asyncio.sleep(0.2)
        writer.close()
        session = await asyncio.wait_for(done, 5)
        for _ in range(5):
            await asyncio.sleep(0)

    assert captured == [(b"hello", session)]
    with pytest.raises(ConnectionError):
        session.remote_address()


@pytest.mark.asyncio
async def test_async_connect_bad_address_returns_quietly():
    session = Session()
    assert await session.async_connect("not-an-address", "1") is None
    assert not session.service.connected


@pytest.mark.asyncio
async def test_async_connect_runs_until_peer_closes():
    async def closer(reader, writer):
        await asyncio.sleep(0.1)
        writer.close()

    async with serving(closer) as port:
        session = Session()
        await asyncio.wait_for(session.async_connect("127.0.0.1", str(port)), 5)

    assert not session.service.connected
    with pytest.raises(ConnectionError):
        session.remote_port()