"""Growable in-memory byte stream with the seek semantics of the unpacker."""

from __future__ import annotations

import io
import os
import struct

_U16 = struct.Struct("<H")


class MemStream:
    """A byte buffer with a read/write position."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytearray(data)
        self._pos = 0

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> MemStream:
        """Load the whole content of a file into a new stream."""
        with open(path, "rb") as handle:
            return cls(handle.read())

    def read_byte(self) -> int | None:
        """Return the next byte, or None at the end of the stream."""
        if self._pos >= len(self._data):
            return None
        value = self._data[self._pos]
        self._pos += 1
        return value

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; fewer are returned near the end."""
        if size < 0:
            raise ValueError("size must not be negative")
        available = max(len(self._data) - self._pos, 0)
        size = min(size, available)
        chunk = bytes(self._data[self._pos:self._pos + size])
        self._pos += size
        return chunk

    def write(self, data: bytes) -> int:
        """Write bytes at the position, growing the stream as needed."""
        end = self._pos + len(data)
        if self._pos > len(self._data):
            self._data.extend(bytes(self._pos - len(self._data)))
        self._data[self._pos:end] = data
        self._pos = end
        return len(data)

    def write_u16(self, value: int) -> int:
        """Write a little-endian unsigned 16-bit value."""
        return self.write(_U16.pack(value & 0xFFFF))

    def seek(self, pos: int, whence: int = io.SEEK_SET) -> int:
        """Move the position.

        With SEEK_END the offset counts backwards from the end. Landing past
        the end, or before the start from the end, moves the position and
        then raises EOFError.
        """
        size = len(self._data)
        if whence == io.SEEK_SET:
            target = pos
        elif whence == io.SEEK_CUR:
            target = self._pos + pos
        elif whence == io.SEEK_END:
            target = size - pos
            if target < 0:
                self._pos = 0
                raise EOFError("seek before the start of the stream")
            self._pos = target
            return target
        else:
            raise ValueError(f"invalid whence: {whence}")
        if target < 0:
            raise ValueError("negative seek position")
        self._pos = target
        if target > size:
            raise EOFError("seek past the end of the stream")
        return target

    def tell(self) -> int:
        return self._pos

    def reset(self) -> None:
        """Empty the stream and rewind it."""
        self._data.clear()
        self._pos = 0

    def getvalue(self) -> bytes:
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)