"""
Sequential, seekable little-endian reader over any binary source.

The cursor only needs ``read``, ``seek`` and ``tell`` from its source, so an
open file, an ``io.BytesIO`` or an ``mmap`` all work.
"""

from __future__ import annotations

import io
import os
import struct
from typing import BinaryIO, Union

from gguf_inspector.errors import GGUFIOError, SeekOutOfRangeError, TruncatedError

_U8 = struct.Struct("<B")
_I8 = struct.Struct("<b")
_U16 = struct.Struct("<H")
_I16 = struct.Struct("<h")
_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")
_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")
_F32 = struct.Struct("<f")
_F64 = struct.Struct("<d")


class ByteCursor:
    """Owns the position state over one byte source. Not thread-safe."""

    __slots__ = ("_src", "_length", "_pos")

    def __init__(self, source: BinaryIO):
        self._src = source
        try:
            source.seek(0, os.SEEK_END)
            self._length: int = source.tell()
            source.seek(0, os.SEEK_SET)
        except (OSError, ValueError) as e:
            raise GGUFIOError(f"Byte source is not seekable: {e}") from e
        self._pos = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "ByteCursor":
        """Build a cursor over an in-memory buffer."""
        return cls(io.BytesIO(bytes(data)))

    @property
    def length(self) -> int:
        return self._length

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return max(0, self._length - self._pos)

    def seek(self, offset: int) -> None:
        """Move to an absolute offset; ``offset == length`` is allowed (EOF)."""
        if offset < 0 or offset > self._length:
            raise SeekOutOfRangeError(offset, self._length)
        try:
            self._src.seek(offset, os.SEEK_SET)
        except (OSError, ValueError) as e:
            raise GGUFIOError(f"Seek to {offset} failed: {e}") from e
        self._pos = offset

    def _read(self, n: int) -> bytes:
        try:
            data = self._src.read(n)
        except (OSError, ValueError) as e:
            raise GGUFIOError(f"Read of {n} bytes at {self._pos} failed: {e}") from e
        self._pos += len(data)
        return data

    def read_exact(self, n: int) -> bytes:
        """Read exactly ``n`` bytes or raise ``TruncatedError`` without consuming."""
        if n < 0:
            raise ValueError("negative read size")
        available = self.remaining
        if n > available:
            raise TruncatedError(n, available, position=self._pos)
        data = self._read(n)
        if len(data) != n:
            raise TruncatedError(n, len(data), position=self._pos - len(data))
        return data

    def read_up_to(self, n: int) -> bytes:
        """Read at most ``n`` bytes; returns fewer at EOF."""
        return self._read(min(max(n, 0), self.remaining))

    def read_u8(self) -> int:
        return _U8.unpack(self.read_exact(1))[0]

    def read_i8(self) -> int:
        return _I8.unpack(self.read_exact(1))[0]

    def read_u16(self) -> int:
        return _U16.unpack(self.read_exact(2))[0]

    def read_i16(self) -> int:
        return _I16.unpack(self.read_exact(2))[0]

    def read_u32(self) -> int:
        return _U32.unpack(self.read_exact(4))[0]

    def read_i32(self) -> int:
        return _I32.unpack(self.read_exact(4))[0]

    def read_u64(self) -> int:
        return _U64.unpack(self.read_exact(8))[0]

    def read_i64(self) -> int:
        return _I64.unpack(self.read_exact(8))[0]

    def read_f32(self) -> float:
        return _F32.unpack(self.read_exact(4))[0]

    def read_f64(self) -> float:
        return _F64.unpack(self.read_exact(8))[0]

    def read_bool(self) -> bool:
        return self.read_exact(1)[0] != 0

    def read_string(self) -> str:
        """Read a u64 length-prefixed string, replacing invalid UTF-8."""
        length = self.read_u64()
        return self.read_exact(length).decode("utf-8", "replace")


def as_cursor(source: Union["ByteCursor", bytes, bytearray, memoryview, BinaryIO]) -> ByteCursor:
    """Coerce the accepted byte source kinds into a cursor."""
    if isinstance(source, ByteCursor):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return ByteCursor.from_bytes(bytes(source))
    return ByteCursor(source)

