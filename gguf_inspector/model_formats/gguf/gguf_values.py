# gguf_inspector/model_formats/gguf/gguf_values.py
"""
Typed metadata values: the GGUF tag enumeration, the tagged value union and
the recursive decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Tuple

from gguf_inspector.config import DEFAULT_MAX_ARRAY_DEPTH
from gguf_inspector.errors import TooDeepError, TruncatedError
from gguf_inspector.io.cursor import ByteCursor


class ValueType(IntEnum):
    """GGUF metadata value type tags."""

    UINT8 = 0
    INT8 = 1
    UINT16 = 2
    INT16 = 3
    UINT32 = 4
    INT32 = 5
    FLOAT32 = 6
    BOOL = 7
    STRING = 8
    ARRAY = 9
    UINT64 = 10
    INT64 = 11
    FLOAT64 = 12
    # Placeholder for tags this decoder does not know; never read from disk
    UNKNOWN = -1


INTEGER_TYPES = frozenset(
    {
        ValueType.UINT8,
        ValueType.INT8,
        ValueType.UINT16,
        ValueType.INT16,
        ValueType.UINT32,
        ValueType.INT32,
        ValueType.UINT64,
        ValueType.INT64,
    }
)
FLOAT_TYPES = frozenset({ValueType.FLOAT32, ValueType.FLOAT64})

# tag -> (byte width, primitive reader)
SCALAR_CODECS: Dict[ValueType, Tuple[int, Callable[[ByteCursor], Any]]] = {
    ValueType.UINT8: (1, ByteCursor.read_u8),
    ValueType.INT8: (1, ByteCursor.read_i8),
    ValueType.UINT16: (2, ByteCursor.read_u16),
    ValueType.INT16: (2, ByteCursor.read_i16),
    ValueType.UINT32: (4, ByteCursor.read_u32),
    ValueType.INT32: (4, ByteCursor.read_i32),
    ValueType.FLOAT32: (4, ByteCursor.read_f32),
    ValueType.BOOL: (1, ByteCursor.read_bool),
    ValueType.UINT64: (8, ByteCursor.read_u64),
    ValueType.INT64: (8, ByteCursor.read_i64),
    ValueType.FLOAT64: (8, ByteCursor.read_f64),
}

_PY_TYPES: Dict[ValueType, type] = {
    **{t: int for t in INTEGER_TYPES},
    **{t: float for t in FLOAT_TYPES},
    ValueType.BOOL: bool,
    ValueType.STRING: str,
    ValueType.ARRAY: tuple,
    ValueType.UNKNOWN: int,
}


def value_type_name(tag: int) -> str:
    """Readable name for a raw tag, e.g. ``UINT32`` or ``UNKNOWN(255)``."""
    try:
        vt = ValueType(tag)
    except ValueError:
        return f"UNKNOWN({tag})"
    return vt.name if vt is not ValueType.UNKNOWN else "UNKNOWN"


@dataclass(frozen=True)
class MetadataValue:
    """One decoded metadata value.

    ``value`` always has the Python type matching ``type``: ``int`` for integer
    tags, ``float`` for float tags, ``bool``, ``str``, a ``tuple`` of
    ``MetadataValue`` for arrays, and the raw tag number for ``UNKNOWN``.
    ``element_type`` is set for arrays only.
    """

    type: ValueType
    value: Any
    element_type: Optional[ValueType] = None

    def __post_init__(self) -> None:
        expected = _PY_TYPES[self.type]
        # bool is an int subclass; keep the two apart
        ok = isinstance(self.value, expected) and (
            expected is bool or not isinstance(self.value, bool)
        )
        if not ok:
            raise TypeError(
                f"{self.type.name} value must be {expected.__name__}, "
                f"got {type(self.value).__name__}"
            )
        if (self.type is ValueType.ARRAY) != (self.element_type is not None):
            raise TypeError("element_type is required for arrays and only for arrays")

    @classmethod
    def unknown(cls, tag: int) -> "MetadataValue":
        return cls(ValueType.UNKNOWN, int(tag))

    @property
    def is_unknown(self) -> bool:
        return self.type is ValueType.UNKNOWN

    @property
    def raw_tag(self) -> Optional[int]:
        """The unrecognized on-disk tag carried by a placeholder."""
        return self.value if self.is_unknown else None

    @property
    def type_name(self) -> str:
        if self.type is ValueType.ARRAY:
            return f"ARRAY[{self.element_type.name}]"
        if self.is_unknown:
            return f"UNKNOWN({self.value})"
        return self.type.name

    def to_python(self) -> Any:
        """Recursively unwrap into plain Python values."""
        if self.type is ValueType.ARRAY:
            return [v.to_python() for v in self.value]
        return self.value

    def as_int(self) -> Optional[int]:
        """Integer view of the value, or None if it has none."""
        if self.type in INTEGER_TYPES:
            return self.value
        if self.type is ValueType.STRING:
            try:
                return int(self.value.strip())
            except ValueError:
                return None
        return None

    def as_str(self) -> Optional[str]:
        return self.value if self.type is ValueType.STRING else None

    def __str__(self) -> str:
        if self.type in FLOAT_TYPES:
            return f"{self.value:.6f}"
        if self.type is ValueType.BOOL:
            return "true" if self.value else "false"
        if self.type is ValueType.ARRAY:
            return "[" + ", ".join(str(v) for v in self.value) + "]"
        if self.is_unknown:
            return f"<unknown type {self.value}>"
        return str(self.value)


def decode_value(
    cursor: ByteCursor,
    tag: int,
    *,
    max_depth: int = DEFAULT_MAX_ARRAY_DEPTH,
    _depth: int = 0,
) -> MetadataValue:
    """Decode one value of type ``tag`` at the cursor position.

    Unknown tags consume nothing and decode to ``MetadataValue.unknown(tag)``.
    Arrays deeper than ``max_depth`` raise ``TooDeepError``.
    """
    try:
        vt = ValueType(tag)
    except ValueError:
        return MetadataValue.unknown(tag)
    if vt is ValueType.UNKNOWN:
        return MetadataValue.unknown(tag)

    codec = SCALAR_CODECS.get(vt)
    if codec is not None:
        _, read = codec
        return MetadataValue(vt, read(cursor))
    if vt is ValueType.STRING:
        return MetadataValue(vt, cursor.read_string())

    # ARRAY
    depth = _depth + 1
    if depth > max_depth:
        raise TooDeepError(depth, max_depth)
    elem_tag = cursor.read_u32()
    count = cursor.read_u64()
    try:
        elem_type = ValueType(elem_tag)
    except ValueError:
        # element width is unknowable, so the payload cannot be walked
        return MetadataValue.unknown(elem_tag)
    if count > cursor.remaining:
        # every element occupies at least one byte
        raise TruncatedError(count, cursor.remaining, position=cursor.position)
    items = tuple(
        decode_value(cursor, elem_type, max_depth=max_depth, _depth=depth)
        for _ in range(count)
    )
    return MetadataValue(vt, items, element_type=elem_type)
