"""One connection that frames outgoing packets and dispatches incoming ones."""

from __future__ import annotations

import logging

from aquarius.flex_buffer import FlexBuffer
from aquarius.package_processor import PackageProcessor
from aquarius.session_service import SessionService

_log = logging.getLogger(__name__)


class Session:
    """Drives a session service: reads frames, reassembles packets, sends packets.

    Every read is taken as one frame; a packet completed by it is handed to
    the context router together with this session.
    """

    def __init__(self, service: SessionService | None = None) -> None:
        self.service = service if service is not None else SessionService()
        self.processor = PackageProcessor()
        self._read_buffer = FlexBuffer(PackageProcessor.PACKAGE_LIMIT)

    def remote_address(self) -> str:
        """The peer's IP address as text."""
        return self.service.remote_address()

    def remote_address_u(self) -> int:
        """The peer's IPv4 address as an unsigned integer."""
        return self.service.remote_address_u()

    def remote_port(self) -> int:
        """The peer's port."""
        return self.service.remote_port()

    async def start(self) -> None:
        """Prepare the connection and read messages until it closes."""
        try:
            await self.service.start()
        except OSError as exc:
            _log.error("session start failed - %s", exc)
            self.shutdown()
            return
        await self._read_messages()

    async def async_connect(self, host: str, port: str | int) -> None:
        """Connect to ``host`` and ``port``, then run as :meth:`start` does.

        A failed connection is logged and ends the call quietly.
        """
        try:
            await self.service.connect(host, port)
        except (OSError, ValueError) as exc:
            _log.error("connect to %s:%s failed - %s", host, port, exc)
            return
        await self.start()

    async def send_packet(self, proto: int, buffer: FlexBuffer) -> int:
        """Send ``buffer`` as packet ``proto``; return the bytes written.

        Sending stops at the first frame that fails to be written.
        """
        written = 0
        for frame in self.processor.write(proto, buffer):
            try:
                written += await self.service.write_some(frame)
            except OSError as exc:
                _log.error("async write is failed! maybe %s", exc)
                break
        return written

    def shutdown(self) -> None:
        """Close the connection."""
        self.service.shutdown()

    async def _read_messages(self) -> None:
        buffer = self._read_buffer
        while True:
            try:
                count = await self.service.read_some(buffer)
            except EOFError:
                self.shutdown()
                return
            except OSError as exc:
                _log.error("on read some occur error - %s", exc)
                self.shutdown()
                return

            buffer.commit(count)
            try:
                self.processor.read(buffer, self)
            except ValueError as exc:
                _log.error("dropped malformed frame - %s", exc)
                buffer.consume(len(buffer))
            buffer.normalize()