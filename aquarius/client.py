"""TCP client that connects one session and sends requests over it."""

from __future__ import annotations

import asyncio
import logging
import ssl
import threading
from typing import Any, Awaitable, Callable

from aquarius.flex_buffer import FlexBuffer
from aquarius.session import Session
from aquarius.session_service import SessionService, SslSessionService

_log = logging.getLogger(__name__)


class Client:
    """Connects to ``host``:``port`` and exchanges packets on its own event loop.

    The connection is started when the client is made and proceeds once
    :meth:`run` is called; :meth:`run` returns when no work is left or
    after :meth:`stop`.
    """

    def __init__(
        self,
        host: str,
        port: str | int,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._loop = asyncio.new_event_loop()
        self._lock = threading.Lock()
        service = SessionService() if ssl_context is None else SslSessionService(False, ssl_context)
        self._session = Session(service)
        self._connected = threading.Event()
        self._attempted = asyncio.Event()
        self._stopping = False
        self._tasks: set[asyncio.Task[Any]] = set()
        self._spawn(self._connect)

    def run(self) -> None:
        """Run the client's work to its end, then release the loop."""
        try:
            self._loop.run_until_complete(self._drain())
        finally:
            with self._lock:
                self._loop.close()

    def stop(self) -> None:
        """Close the connection and cancel the client's work."""
        with self._lock:
            if self._loop.is_closed():
                return
            self._loop.call_soon_threadsafe(self._stop_in_loop)

    def send_request(self, request: Any) -> None:
        """Send ``request`` as packet ``type(request).NUMBER`` once connected."""
        buffer = request.to_binary()
        proto = type(request).NUMBER
        self._spawn(lambda: self._send(proto, buffer))

    def wait_connected(self, timeout: float | None = None) -> bool:
        """Wait for the connection; return whether it was made."""
        return self._connected.wait(timeout)

    def remote_address(self) -> str:
        """The server's IP address as text."""
        return self._session.remote_address()

    def remote_address_u(self) -> int:
        """The server's IPv4 address as an unsigned integer."""
        return self._session.remote_address_u()

    def remote_port(self) -> int:
        """The server's port."""
        return self._session.remote_port()

    def _spawn(self, factory: Callable[[], Awaitable[Any]]) -> None:
        with self._lock:
            if self._loop.is_closed():
                _log.error("client is no longer running")
                return
            self._loop.call_soon_threadsafe(self._start_task, factory)

    def _start_task(self, factory: Callable[[], Awaitable[Any]]) -> None:
        if self._stopping:
            return
        task = self._loop.create_task(factory())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            _log.error("client task failed - %s", task.exception())

    def _stop_in_loop(self) -> None:
        self._stopping = True
        self._session.shutdown()
        for task in list(self._tasks):
            task.cancel()

    async def _drain(self) -> None:
        while True:
            await asyncio.sleep(0)
            pending = {task for task in self._tasks if not task.done()}
            if not pending:
                break
            await asyncio.wait(pending)
        await asyncio.sleep(0)

    async def _connect(self) -> None:
        try:
            await self._session.service.connect(self._host, self._port)
        except (OSError, ValueError) as exc:
            _log.error("connect to %s:%s failed - %s", self._host, self._port, exc)
            self._attempted.set()
            return
        self._connected.set()
        self._attempted.set()
        await self._session.start()

    async def _send(self, proto: int, buffer: FlexBuffer) -> None:
        await self._attempted.wait()
        if not self._connected.is_set():
            _log.error("request %d dropped: not connected", proto)
            return
        await self._session.send_packet(proto, buffer)