"""
Zero-copy local file reader using mmap, exposed through a ByteCursor.
"""

from __future__ import annotations

import io
import mmap
import os
from dataclasses import dataclass
from typing import Optional

from gguf_inspector.errors import GGUFIOError
from gguf_inspector.io.cursor import ByteCursor


@dataclass
class LocalFileSource:
    """Local file source with zero-copy memory mapping.

    Attributes:
        path: Path to the local file.
    """

    path: str

    def open(self) -> "MappedFile":
        """Open and memory-map the file read-only."""
        return MappedFile(self.path)


class MappedFile:
    """Context manager that wraps an mmapped file and exposes a ByteCursor."""

    __slots__ = ("_fd", "_m", "_cursor", "size", "path")

    def __init__(self, path: str):
        self.path = path
        self._fd: Optional[int] = None
        self._m: Optional[mmap.mmap] = None
        self._cursor: Optional[ByteCursor] = None
        self.size: int = 0

    def __enter__(self) -> "MappedFile":
        try:
            self._fd = os.open(self.path, os.O_RDONLY)
            self.size = os.fstat(self._fd).st_size
            # mmap refuses empty files; those get an empty in-memory cursor instead
            if self.size:
                self._m = mmap.mmap(self._fd, self.size, access=mmap.ACCESS_READ)
        except OSError as e:
            self._close()
            raise GGUFIOError(f"Cannot open {self.path}: {e.strerror or e}") from e
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._close()

    def _close(self) -> None:
        self._cursor = None
        if self._m is not None:
            self._m.close()
            self._m = None
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def cursor(self) -> ByteCursor:
        """The cursor over this file. Parsing and previews share its position."""
        if self._fd is None:
            raise RuntimeError("MappedFile is not entered")
        if self._cursor is None:
            self._cursor = ByteCursor(self._m if self._m is not None else io.BytesIO(b""))
        return self._cursor
