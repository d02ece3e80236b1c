"""
Exception hierarchy shared by the GGUF decoding core.
"""

from __future__ import annotations


class GGUFError(Exception):
    """Base class for every decode failure raised by the core."""


class GGUFIOError(GGUFError):
    """Raised when the underlying byte source fails to open, read or seek."""


class TruncatedError(GGUFError):
    """Raised when fewer bytes remain than a read requires."""

    def __init__(self, expected: int, available: int, *, position: int | None = None):
        self.expected = expected
        self.available = available
        self.position = position
        where = f" at offset {position}" if position is not None else ""
        super().__init__(
            f"Truncated input{where}: expected {expected} bytes, {available} available"
        )


class BadMagicError(GGUFError):
    """Raised when the file does not start with the GGUF signature."""

    def __init__(self, found: bytes):
        self.found = bytes(found)
        super().__init__(f"Invalid magic {self.found!r}; not a GGUF file")


class SeekOutOfRangeError(GGUFError):
    """Raised when seeking past the end of the byte source."""

    def __init__(self, offset: int, length: int):
        self.offset = offset
        self.length = length
        super().__init__(f"Seek to offset {offset} outside source of {length} bytes")


class TooDeepError(GGUFError):
    """Raised when metadata arrays nest beyond the configured bound."""

    def __init__(self, depth: int, max_depth: int):
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(f"Array nesting depth {depth} exceeds maximum of {max_depth}")


class TensorNotFoundError(GGUFError):
    """Raised when a tensor name is absent from the tensor table."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tensor not found: {name!r}")
