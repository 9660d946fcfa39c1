"""Listening endpoint that hands out accepted connections one at a time."""

from __future__ import annotations

import asyncio
from typing import Any

_ANY_V4 = "0.0.0.0"

Connection = tuple[asyncio.StreamReader, asyncio.StreamWriter]


class AsyncAcceptor:
    """Accepts TCP connections on an IPv4 port.

    Connections that arrive are queued until :meth:`accept` takes them.
    Closing the acceptor wakes every pending accept with
    ConnectionAbortedError.
    """

    def __init__(self, port: int, reuse_addr: bool = True) -> None:
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        self._port = port
        self.reuse_addr = reuse_addr
        self._server: asyncio.AbstractServer | None = None
        self._queue: asyncio.Queue[Connection | None] | None = None
        self._closed = False

    @property
    def port(self) -> int:
        """The port asked for, or the port actually bound once open."""
        return self._port

    @property
    def is_open(self) -> bool:
        """Whether the acceptor listens for connections."""
        return self._server is not None and not self._closed

    async def open(self) -> None:
        """Bind and start listening.

        Raises RuntimeError when already open, ConnectionAbortedError when
        closed, and OSError when the port cannot be bound.
        """
        if self._closed:
            raise ConnectionAbortedError("acceptor is closed")
        if self._server is not None:
            raise RuntimeError("acceptor is already open")
        self._queue = asyncio.Queue()
        self._server = await asyncio.start_server(
            self._on_connect, _ANY_V4, self._port, reuse_address=self.reuse_addr
        )
        self._port = self._server.sockets[0].getsockname()[1]

    def _on_connect(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        if self._closed or self._queue is None:
            writer.close()
            return
        self._queue.put_nowait((reader, writer))

    async def accept(self) -> Connection:
        """Wait for the next connection and return its reader and writer.

        Raises ConnectionAbortedError when the acceptor is not open or is
        closed while waiting.
        """
        if self._queue is None or self._closed:
            raise ConnectionAbortedError("acceptor is not open")
        item = await self._queue.get()
        if item is None:
            self._queue.put_nowait(None)
            raise ConnectionAbortedError("acceptor is closed")
        return item

    def close(self) -> None:
        """Stop listening and drop connections not yet accepted."""
        if self._closed:
            return
        self._closed = True
        if self._server is not None:
            self._server.close()
        if self._queue is not None:
            while not self._queue.empty():
                item = self._queue.get_nowait()
                if item is not None:
                    item[1].close()
            self._queue.put_nowait(None)

    async def __aenter__(self) -> AsyncAcceptor:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()