"""Growable byte buffer with separate read and write positions."""

from __future__ import annotations

import enum


class SeekDir(enum.Enum):
    """Origin of a relative seek."""

    BEG = "beg"
    CUR = "cur"
    END = "end"


class OpenMode(enum.Enum):
    """Which position a seek moves.

    ``IN`` moves the put position (where incoming bytes are stored);
    ``OUT`` moves the get position (where stored bytes are taken from).
    """

    IN = "in"
    OUT = "out"


class FlexBuffer:
    """A byte buffer that stores at a put position and takes from a get position."""

    CAPACITY = 512
    WATER_LINE = 32

    def __init__(self, capacity: int = CAPACITY) -> None:
        self._buffer = bytearray(capacity)
        self._pptr = 0
        self._gptr = 0
        self._pcount = capacity
        self._start = 0
        self._has_success = True

    def __len__(self) -> int:
        return self._pptr - self._gptr

    def __bytes__(self) -> bytes:
        return self.data()

    def __copy__(self) -> FlexBuffer:
        other = FlexBuffer.__new__(FlexBuffer)
        other.__dict__.update(self.__dict__)
        other._buffer = bytearray(self._buffer)
        return other

    def __repr__(self) -> str:
        return f"FlexBuffer(size={len(self)}, active={self.active()})"

    def active(self) -> int:
        """Room left for storing bytes before the buffer must grow."""
        return self._pcount

    def data(self) -> bytes:
        """The bytes stored and not yet taken."""
        return bytes(self._buffer[self._gptr:self._pptr])

    def writable(self) -> memoryview:
        """A view of the free room at the put position."""
        return memoryview(self._buffer)[self._pptr:self._pptr + max(self._pcount, 0)]

    def commit(self, count: int) -> None:
        """Mark ``count`` bytes at the put position as stored."""
        self._pptr += count
        self._pcount -= count

    def consume(self, count: int) -> None:
        """Drop ``count`` bytes from the get position."""
        self._gptr += count

    def normalize(self) -> None:
        """Move the stored bytes to the front of the buffer."""
        if self._pptr == 0:
            return
        size = len(self)
        self._buffer[0:size] = self._buffer[self._gptr:self._pptr]
        self._pptr -= self._gptr
        self._pcount += self._gptr
        self._gptr = 0

    def ensure(self) -> None:
        """Grow by one capacity step when free room falls to the water line."""
        if self.active() > self.WATER_LINE:
            return
        self._buffer.extend(bytes(self.CAPACITY))
        self._pcount += self.CAPACITY

    def save(self, data: bytes | bytearray | memoryview) -> None:
        """Store ``data`` at the put position, growing the buffer if needed."""
        size = len(data)
        if self._pcount < size:
            grow = max(self.CAPACITY, size)
            self._buffer.extend(bytes(grow))
            self._pcount += grow
        end = self._pptr + size
        if end > len(self._buffer):
            self._buffer.extend(bytes(end - len(self._buffer)))
        self._buffer[self._pptr:end] = data
        self.commit(size)

    def load(self, size: int) -> bytes:
        """Take ``size`` bytes from the get position.

        Raises ValueError when fewer bytes are stored.
        """
        if len(self) < size:
            raise ValueError(f"cannot load {size} bytes, only {len(self)} stored")
        chunk = bytes(self._buffer[self._gptr:self._gptr + size])
        self.consume(size)
        return chunk

    def seekoff(self, off: int, direction: SeekDir, mode: OpenMode) -> int:
        """Move a position relative to ``direction`` and return it.

        Raises ValueError when the new position lies outside the allowed range.
        """
        if direction is SeekDir.BEG:
            base = 0
        elif direction is SeekDir.CUR:
            base = self._pptr if mode is OpenMode.IN else self._gptr
        elif direction is SeekDir.END:
            base = len(self._buffer)
        else:
            raise ValueError(f"invalid seek direction: {direction!r}")

        off += base
        if off < 0:
            raise ValueError(f"seek to negative position {off}")
        if mode is OpenMode.IN:
            if off > len(self._buffer):
                raise ValueError(f"seek past end of buffer: {off}")
            self._pptr = off
        elif mode is OpenMode.OUT:
            if off > self._pptr:
                raise ValueError(f"seek past stored data: {off}")
            self._gptr = off
        return off

    def seekpos(self, pos: int, mode: OpenMode) -> int:
        """Set a position absolutely and return it.

        An ``IN`` position past the end is clamped to the last byte; an
        ``OUT`` position past the stored data raises ValueError.
        """
        if pos < 0:
            raise ValueError(f"seek to negative position {pos}")
        if mode is OpenMode.IN:
            if pos > len(self._buffer):
                pos = len(self._buffer) - 1
            self._pptr = pos
        elif mode is OpenMode.OUT:
            if pos > self._pptr:
                raise ValueError(f"seek past stored data: {pos}")
            self._gptr = pos
        else:
            raise ValueError(f"invalid open mode: {mode!r}")
        return pos

    def start(self) -> bool:
        """Remember the get position as a rollback mark.

        Returns False when a mark is already set.
        """
        if self._start != 0:
            return False
        self._start = self.seekoff(0, SeekDir.CUR, OpenMode.OUT)
        return True

    def close(self) -> None:
        """Roll back to the mark if the transaction failed."""
        if self._has_success:
            return
        self.seekpos(self._start, OpenMode.OUT)
        self._start = 0

    def failed(self) -> None:
        """Mark the current transaction as failed."""
        self._has_success = False

    def success(self) -> bool:
        """Whether no failure has been marked."""
        return self._has_success