"""A pool of event loops, each run on its own thread."""

from __future__ import annotations

import asyncio
import threading


class IoServicePool:
    """Event loops handed out round-robin and run together by :meth:`run`.

    Once stopped, :meth:`run` returns at once; loops are released by
    :meth:`close`.
    """

    def __init__(self, pool_size: int) -> None:
        if pool_size <= 0:
            raise RuntimeError(f"io_service_pool size is {pool_size}")
        self._loops = [asyncio.new_event_loop() for _ in range(pool_size)]
        self._next = 0
        self._lock = threading.Lock()
        self._running: set[asyncio.AbstractEventLoop] = set()
        self._stopped = False
        self._closed = False

    def __len__(self) -> int:
        return len(self._loops)

    def run(self) -> None:
        """Run every loop on its own thread until :meth:`stop`; block until then."""
        if self._closed:
            raise RuntimeError("io service pool is closed")
        threads = [
            threading.Thread(target=self._work, args=(loop,), name=f"io-service-{number}")
            for number, loop in enumerate(self._loops)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    def _work(self, loop: asyncio.AbstractEventLoop) -> None:
        with self._lock:
            if self._stopped:
                return
            self._running.add(loop)
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            with self._lock:
                self._running.discard(loop)
            asyncio.set_event_loop(None)

    def stop(self) -> None:
        """Make every running loop return; later runs return at once."""
        with self._lock:
            self._stopped = True
            for loop in self._running:
                loop.call_soon_threadsafe(loop.stop)

    def get_io_service(self) -> asyncio.AbstractEventLoop:
        """The next loop in turn."""
        loop = self._loops[self._next]
        self._next = (self._next + 1) % len(self._loops)
        return loop

    def close(self) -> None:
        """Cancel what is left on the loops and close them."""
        if self._closed:
            return
        self._closed = True
        for loop in self._loops:
            if loop.is_closed():
                continue
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()