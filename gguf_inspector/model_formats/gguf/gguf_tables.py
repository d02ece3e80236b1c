# gguf_inspector/model_formats/gguf/gguf_tables.py
"""
Metadata key/value table and tensor descriptor table decoders.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from gguf_inspector.config import DEFAULT_MAX_ARRAY_DEPTH
from gguf_inspector.io.cursor import ByteCursor
from gguf_inspector.model_formats.gguf.gguf import TensorDescriptor
from gguf_inspector.model_formats.gguf.gguf_values import MetadataValue, decode_value


def decode_metadata(
    cursor: ByteCursor, count: int, *, max_depth: int = DEFAULT_MAX_ARRAY_DEPTH
) -> Dict[str, MetadataValue]:
    """Decode exactly ``count`` entries; later duplicate keys win."""
    table: Dict[str, MetadataValue] = {}
    for _ in range(count):
        key = cursor.read_string()
        tag = cursor.read_u32()
        table[key] = decode_value(cursor, tag, max_depth=max_depth)
    return table


def decode_tensor(cursor: ByteCursor) -> TensorDescriptor:
    name = cursor.read_string()
    n_dims = cursor.read_u32()
    dims: List[int] = [cursor.read_u64() for _ in range(n_dims)]
    storage_type = cursor.read_u32()
    offset = cursor.read_u64()
    return TensorDescriptor(name=name, dims=tuple(dims), storage_type=storage_type, offset=offset)


def decode_tensors(cursor: ByteCursor, count: int) -> Tuple[TensorDescriptor, ...]:
    """Decode exactly ``count`` descriptors in declaration order."""
    return tuple(decode_tensor(cursor) for _ in range(count))
