"""TCP server: accepts connections and runs a session for each."""

from __future__ import annotations

import asyncio
import logging
import signal
import ssl
import threading
from typing import Any

from aquarius.acceptor import AsyncAcceptor
from aquarius.io_pool import IoServicePool
from aquarius.session import Session
from aquarius.session_service import SessionService, SslSessionService

_log = logging.getLogger(__name__)


class Server:
    """Serves sessions on ``port``, plain or over TLS when ``ssl_context`` is given.

    :meth:`run` blocks until :meth:`stop`; run from the main thread it
    also stops on SIGINT and SIGTERM.
    """

    def __init__(
        self,
        port: int,
        pool_size: int,
        name: str = "",
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self.name = name
        self._ssl_context = ssl_context
        self._pool = IoServicePool(pool_size)
        self._loop = self._pool.get_io_service()
        self._acceptor = AsyncAcceptor(port)
        self._sessions: set[Session] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._ready = threading.Event()
        self._open_error: OSError | None = None
        self._serve_task = self._loop.create_task(self._serve())

    def wait_ready(self, timeout: float | None = None) -> int:
        """Wait until the server listens and return its port.

        Raises TimeoutError if it does not listen in time, and the bind
        error if it could not listen.
        """
        if not self._ready.wait(timeout):
            raise TimeoutError("server is not listening")
        if self._open_error is not None:
            raise self._open_error
        return self._acceptor.port

    def run(self) -> None:
        """Serve until stopped, then release the loops."""
        _log.info("[server] %s server is started!", self.name)
        previous = self._install_signals()
        try:
            self._pool.run()
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)
            self._pool.close()

    def stop(self) -> None:
        """Close the acceptor and the sessions and stop serving."""
        try:
            self._loop.call_soon_threadsafe(self._close)
        except RuntimeError:
            pass
        self._pool.stop()

    def _install_signals(self) -> dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            return {}
        return {
            signum: signal.signal(signum, self._on_signal)
            for signum in (signal.SIGINT, signal.SIGTERM)
        }

    def _on_signal(self, signum: int, frame: Any) -> None:
        self.stop()
        _log.info("[server] %s server is stop! result: success, signal: %d", self.name, signum)

    def _close(self) -> None:
        self._acceptor.close()
        for session in list(self._sessions):
            session.shutdown()

    def _make_service(self) -> SessionService:
        if self._ssl_context is None:
            return SessionService()
        return SslSessionService(True, self._ssl_context)

    async def _serve(self) -> None:
        try:
            await self._acceptor.open()
        except OSError as exc:
            _log.error("[server] %s cannot listen - %s", self.name, exc)
            self._open_error = exc
            self._ready.set()
            return
        self._ready.set()

        while True:
            try:
                reader, writer = await self._acceptor.accept()
            except ConnectionAbortedError:
                return
            service = self._make_service()
            service.attach(reader, writer)
            session = Session(service)
            self._sessions.add(session)
            task = asyncio.get_running_loop().create_task(session.start())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            task.add_done_callback(lambda _, s=session: self._sessions.discard(s))