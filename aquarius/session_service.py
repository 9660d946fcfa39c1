"""Stream operations of one connection, plain or over TLS."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
import socket
import ssl
from typing import Any

from aquarius.flex_buffer import FlexBuffer
from aquarius.ssl_factory import create_client_context, create_server_context

_log = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _port_number(port: str | int) -> int:
    """Read a port the way a C ``atoi`` would, wrapped to 16 bits."""
    match = _LEADING_INT.match(str(port))
    value = int(match.group(1)) if match else 0
    return value & 0xFFFF


class SessionService:
    """Reads, writes and inspects one TCP connection."""

    def __init__(self) -> None:
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def connected(self) -> bool:
        """Whether a connection is attached and not closing."""
        return self._writer is not None and not self._writer.is_closing()

    def _streams(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        if self._reader is None or self._writer is None:
            raise ConnectionError("session is not connected")
        return self._reader, self._writer

    def attach(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Take over an established connection."""
        self._reader = reader
        self._writer = writer

    def _connect_options(self, host: str) -> dict[str, Any]:
        return {}

    async def connect(self, host: str, port: str | int) -> None:
        """Connect to the IP address ``host`` on ``port``.

        Raises ValueError when ``host`` is not an IP address and OSError
        when the connection fails.
        """
        address = str(ipaddress.ip_address(host))
        reader, writer = await asyncio.open_connection(
            address, _port_number(port), **self._connect_options(address)
        )
        self.attach(reader, writer)

    async def read_some(self, buffer: FlexBuffer) -> int:
        """Read into the free room of ``buffer`` without committing; return the count.

        Raises EOFError when the peer has closed the connection.
        """
        reader, _ = self._streams()
        with buffer.writable() as room:
            size = len(room)
        if size == 0:
            raise BufferError("no room left in buffer")
        data = await reader.read(size)
        if not data:
            raise EOFError("connection closed by peer")
        with buffer.writable() as room:
            room[:len(data)] = data
        return len(data)

    async def write_some(self, buffer: FlexBuffer) -> int:
        """Write the stored bytes of ``buffer`` and return how many were written."""
        _, writer = self._streams()
        data = buffer.data()
        writer.write(data)
        await writer.drain()
        return len(data)

    async def _handshake(self) -> None:
        """Plain connections need no handshake."""

    async def start(self) -> None:
        """Prepare the connection for reading: handshake, keep-alive and no delay."""
        _log.info(
            "start success at %s:%s, async read establish",
            self.remote_address(),
            self.remote_port(),
        )
        await self._handshake()
        self.keep_alive(True)
        self.set_nodelay(True)

    def _set_option(self, level: int, option: int, value: bool) -> bool:
        if self._writer is None:
            return False
        sock = self._writer.get_extra_info("socket")
        if sock is None:
            return False
        try:
            sock.setsockopt(level, option, int(value))
        except OSError:
            return False
        return True

    def keep_alive(self, value: bool) -> bool:
        """Turn TCP keep-alive on or off; return whether it took effect."""
        done = self._set_option(socket.SOL_SOCKET, socket.SO_KEEPALIVE, value)
        _log.info("set keep alive :%s", value)
        return done

    def set_nodelay(self, enable: bool) -> bool:
        """Turn Nagle's algorithm off or on; return whether it took effect."""
        done = self._set_option(socket.IPPROTO_TCP, socket.TCP_NODELAY, enable)
        _log.info("set nodelay :%s", enable)
        return done

    def _peer(self) -> tuple[Any, ...]:
        _, writer = self._streams()
        peer = writer.get_extra_info("peername")
        if peer is None:
            raise ConnectionError("remote endpoint is unknown")
        return peer

    def remote_address(self) -> str:
        """The peer's IP address as text."""
        return str(self._peer()[0])

    def remote_address_u(self) -> int:
        """The peer's IPv4 address as an unsigned integer.

        Raises ValueError when the peer is not an IPv4 address.
        """
        return int(ipaddress.IPv4Address(self.remote_address()))

    def remote_port(self) -> int:
        """The peer's port."""
        return int(self._peer()[1])

    def shutdown(self) -> None:
        """Close the connection; does nothing when none is attached."""
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is not None:
            writer.close()


class SslSessionService(SessionService):
    """A session service whose connection runs over TLS.

    ``server`` selects the side of the handshake. Without ``ssl_context``
    the context is built on first use from the default certificate directory.
    """

    def __init__(self, server: bool, ssl_context: ssl.SSLContext | None = None) -> None:
        super().__init__()
        self.server = server
        self._ssl_context = ssl_context

    @property
    def ssl_context(self) -> ssl.SSLContext:
        """The TLS context used for this connection."""
        if self._ssl_context is None:
            self._ssl_context = create_server_context() if self.server else create_client_context()
        return self._ssl_context

    def _connect_options(self, host: str) -> dict[str, Any]:
        return {"ssl": self.ssl_context, "server_hostname": host}

    async def _handshake(self) -> None:
        """Upgrade a plain connection to TLS; an encrypted one is left as is."""
        _, writer = self._streams()
        if writer.get_extra_info("sslcontext") is not None:
            return
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        hostname = None if self.server else self.remote_address()
        transport = await loop.start_tls(
            writer.transport,
            protocol,
            self.ssl_context,
            server_side=self.server,
            server_hostname=hostname,
        )
        protocol.connection_made(transport)
        self.attach(reader, asyncio.StreamWriter(transport, protocol, reader, loop))