"""Framing of packets into chunks on the wire and reassembly on receipt."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any

from aquarius.context_router import invoke_context
from aquarius.flex_buffer import FlexBuffer

_FLAG_SIZE = 1
_PROTO_SIZE = 4
_HEADER_SIZE = _FLAG_SIZE + _PROTO_SIZE
_SEQ_BITS = 6
_MAX_CHUNKS = (1 << _SEQ_BITS) - 1


class Mvcc(enum.IntEnum):
    """Role of a chunk, kept in the two low bits of the flag byte."""

    HEADER = 0x0
    PACKAGE = 0x1
    COMPLETE = 0x2
    NORMAL = 0x3


@dataclass
class Block:
    """One received chunk and its position in the packet."""

    seq: int
    data: bytes


@dataclass
class Sequence:
    """Chunks of one packet received so far."""

    total: int = 0
    has_complete: bool = False
    buffers: list[Block] = field(default_factory=list)

    def check_complete(self) -> bool:
        """Whether as many chunks arrived as the first one announced."""
        return self.total == len(self.buffers)


class PackageProcessor:
    """Splits outgoing packets into frames and joins incoming frames.

    A frame is a flag byte (chunk number or chunk count in the high six
    bits, :class:`Mvcc` role in the low two), the protocol number as four
    little-endian bytes, and at most ``PACKAGE_LIMIT`` bytes of body.
    """

    PACKAGE_LIMIT = 4096

    def __init__(self) -> None:
        self.sequences: dict[int, Sequence] = {}

    def read(self, buffer: FlexBuffer, session: Any) -> bytes | None:
        """Take one frame from ``buffer``.

        When the frame ends a packet, the joined body is handed to the
        context router for ``session`` and returned; otherwise None.
        Raises ValueError when ``buffer`` holds less than a frame header.
        """
        if len(buffer) < _HEADER_SIZE:
            raise ValueError(f"frame needs {_HEADER_SIZE} header bytes, got {len(buffer)}")

        flag = buffer.load(_FLAG_SIZE)[0]
        req_id = int.from_bytes(buffer.load(_PROTO_SIZE), "little")
        body = buffer.load(len(buffer))

        seq = flag >> 2
        role = Mvcc(flag & 0x3)
        pack = self.sequences.setdefault(req_id, Sequence())

        if role in (Mvcc.HEADER, Mvcc.NORMAL):
            pack.total = seq
            pack.buffers.append(Block(0, body))
        else:
            pack.buffers.append(Block(seq, body))

        if role not in (Mvcc.NORMAL, Mvcc.COMPLETE):
            return None

        pack.has_complete = True
        del self.sequences[req_id]

        payload = b"".join(block.data for block in sorted(pack.buffers, key=attrgetter("seq")))
        complete = FlexBuffer()
        complete.save(payload)
        invoke_context(req_id, complete, session)
        return payload

    def write(self, proto: int, buffer: FlexBuffer) -> list[FlexBuffer]:
        """Split the stored bytes of ``buffer`` into frames for ``proto``.

        ``buffer`` is left untouched. Raises ValueError when ``proto`` does
        not fit in four bytes or the packet needs more chunks than the flag
        byte can number.
        """
        if not 0 <= proto <= 0xFFFFFFFF:
            raise ValueError(f"protocol number out of range: {proto}")

        data = buffer.data()
        chunks = [data[pos:pos + self.PACKAGE_LIMIT] for pos in range(0, len(data), self.PACKAGE_LIMIT)]
        count = len(chunks)
        if count > _MAX_CHUNKS:
            raise ValueError(f"packet of {len(data)} bytes needs {count} chunks, at most {_MAX_CHUNKS} allowed")

        proto_bytes = proto.to_bytes(_PROTO_SIZE, "little")
        frames = []
        for index, chunk in enumerate(chunks):
            if count == 1:
                flag = (1 << 2) | Mvcc.NORMAL
            elif index == 0:
                flag = (count << 2) | Mvcc.HEADER
            elif index == count - 1:
                flag = (index << 2) | Mvcc.COMPLETE
            else:
                flag = (index << 2) | Mvcc.PACKAGE
            frame = FlexBuffer()
            frame.save(bytes([flag]) + proto_bytes + chunk)
            frames.append(frame)
        return frames