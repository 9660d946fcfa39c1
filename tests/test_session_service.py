import asyncio
import contextlib
import socket
import ssl

import pytest

from aquarius.flex_buffer import FlexBuffer
from aquarius.session_service import SessionService, SslSessionService


@contextlib.asynccontextmanager
async def serving(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        server.close()


async def _idle(reader, writer):
    await reader.read()
    writer.close()


@pytest.mark.asyncio
async def test_connect_reports_peer():
    async with serving(_idle) as port:
        service = SessionService()
        await service.connect("127.0.0.1", str(port))
        try:
            assert service.connected
            assert service.remote_address() == "127.0.0.1"
            assert service.remote_port() == port
            assert service.remote_address_u() == 0x7F000001
        finally:
            service.shutdown()


@pytest.mark.asyncio
async def test_port_is_read_like_atoi():
    async with serving(_idle) as port:
        service = SessionService()
        await service.connect("127.0.0.1", f"{port}xyz")
        try:
            assert service.remote_port() == port
        finally:
            service.shutdown()


@pytest.mark.asyncio
async def test_connect_rejects_host_name():
    service = SessionService()
    with pytest.raises(ValueError):
        await service.connect("localhost", "80")
    assert not service.connected


@pytest.mark.asyncio
async def test_write_and_read_round_trip():
    async def echo(reader, writer):
        data = await reader.read(100)
        writer.write(data)
        await writer.drain()
        await reader.read()
        writer.close()

    async with serving(echo) as port:
        service = SessionService()
        await service.connect("127.0.0.1", port)
        try:
            out = FlexBuffer()
            out.save(b"ping pong")
            assert await service.write_some(out) == len(b"ping pong")

            incoming = FlexBuffer()
            count = await asyncio.wait_for(service.read_some(incoming), 5)
            assert len(incoming) == 0
            incoming.commit(count)
            assert incoming.data() == b"ping pong"
        finally:
            service.shutdown()


@pytest.mark.asyncio
async def test_read_at_eof_raises():
    async def closer(reader, writer):
        writer.close()

    async with serving(closer) as port:
        service = SessionService()
        await service.connect("127.0.0.1", port)
        try:
            with pytest.raises(EOFError):
                await asyncio.wait_for(service.read_some(FlexBuffer()), 5)
        finally:
            service.shutdown()


@pytest.mark.asyncio
async def test_socket_options_take_effect():
    async with serving(_idle) as port:
        service = SessionService()
        await service.connect("127.0.0.1", port)
        try:
            sock = service._writer.get_extra_info("socket")
            assert service.keep_alive(True) is True
            assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE) != 0
            assert service.set_nodelay(True) is True
            assert sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) != 0
            assert service.set_nodelay(False) is True
            assert sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) == 0
        finally:
            service.shutdown()


@pytest.mark.asyncio
async def test_start_sets_options():
    async with serving(_idle) as port:
        service = SessionService()
        await service.connect("127.0.0.1", port)
        try:
            await service.start()
            assert service.remote_address() == "127.0.0.1"
            assert service.remote_port() == port
            sock = service._writer.get_extra_info("socket")
            assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE) != 0
            assert sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) != 0
        finally:
            service.shutdown()


def test_unconnected_service():
    service = SessionService()
    assert service.keep_alive(True) is False
    assert service.set_nodelay(True) is False
    with pytest.raises(ConnectionError):
        service.remote_address()
    with pytest.raises(ConnectionError):
        service.remote_port()


@pytest.mark.asyncio
async def test_shutdown_detaches_and_is_idempotent():
    async with serving(_idle) as port:
        service = SessionService()
        await service.connect("127.0.0.1", port)
        service.shutdown()
        service.shutdown()
        assert not service.connected
        with pytest.raises(ConnectionError):
            await service.write_some(FlexBuffer())


def test_ssl_service_keeps_given_context():
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    service = SslSessionService(False, context)
    assert service.server is False
    assert service.ssl_context is context


def test_ssl_service_builds_context_from_default_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    service = SslSessionService(True)
    assert service.server is True
    assert service.connected is False
    with pytest.raises(FileNotFoundError):
        service.ssl_context


@pytest.mark.asyncio
async def test_ssl_connect_to_plain_server_fails():
    async def closer(reader, writer):
        writer.close()

    async with serving(closer) as port:
        service = SslSessionService(False, ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT))
        with pytest.raises(OSError):
            await asyncio.wait_for(service.connect("127.0.0.1", port), 5)
        assert not service.connected