# gguf_inspector/model_formats/gguf/gguf_versions.py
"""
Version-aware GGUF header decoding.

Two header layouts exist:

* stream (version >= 3): ``magic | u32 version | u64 tensor_count |
  u64 metadata_count``, 24 bytes.
* legacy (version < 3): the 8-byte count field is the older fixed counts
  slot, ``u32 tensor_count | u32 metadata_count``, 16 bytes.

Only the magic is validated; an unfamiliar version still decodes using the
layout its number selects.
"""

from __future__ import annotations

import struct

from gguf_inspector.errors import BadMagicError
from gguf_inspector.io.cursor import ByteCursor
from gguf_inspector.model_formats.gguf.gguf import GGUF_MAGIC, FileHeader

STREAM_LAYOUT_MIN_VERSION = 3
KNOWN_VERSIONS = frozenset({1, 2, 3})

LAYOUT_STREAM = "stream"
LAYOUT_LEGACY = "legacy"

_LEGACY_COUNTS = struct.Struct("<II")


def layout_for_version(version: int) -> str:
    return LAYOUT_STREAM if version >= STREAM_LAYOUT_MIN_VERSION else LAYOUT_LEGACY


def decode_header(cursor: ByteCursor) -> FileHeader:
    """Decode the fixed header at the cursor position.

    The magic is read on its own so that a foreign file is rejected with
    ``BadMagicError`` before anything else is consumed.
    """
    start = cursor.position
    magic = cursor.read_exact(len(GGUF_MAGIC))
    if magic != GGUF_MAGIC:
        raise BadMagicError(magic)
    version = cursor.read_u32()
    counts_slot = cursor.read_exact(8)

    layout = layout_for_version(version)
    if layout == LAYOUT_STREAM:
        (tensor_count,) = struct.unpack("<Q", counts_slot)
        metadata_count = cursor.read_u64()
    else:
        tensor_count, metadata_count = _LEGACY_COUNTS.unpack(counts_slot)

    return FileHeader(
        magic=magic,
        version=version,
        tensor_count=tensor_count,
        metadata_count=metadata_count,
        layout=layout,
        header_size=cursor.position - start,
    )
