# gguf_inspector/model_formats/gguf/gguf_quantization.py
"""
GGML tensor storage types and the preview decoder registry.

Each registry entry describes one storage unit (a scalar or a quantized
block): its byte size, how many preview values it yields, and a decode
function. The plain scalar types (floats and the I8 to I64 integers) and
the packed-nibble Q4_0 preview block are exact; the other registered
schemes are labeled approximations, and anything else degrades to raw-byte
placeholders.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from gguf_inspector.config import DEFAULT_PREVIEW_LIMIT

if TYPE_CHECKING:
    from gguf_inspector.io.cursor import ByteCursor
    from gguf_inspector.model_formats.gguf.gguf import TensorDescriptor


class GGMLType(IntEnum):
    """GGML tensor types, including quantization."""

    F32 = 0
    F16 = 1
    Q4_0 = 2
    Q4_1 = 3
    # 4 and 5 (Q4_2, Q4_3) were removed upstream
    Q5_0 = 6
    Q5_1 = 7
    Q8_0 = 8
    Q8_1 = 9
    Q2_K = 10
    Q3_K = 11
    Q4_K = 12
    Q5_K = 13
    Q6_K = 14
    Q8_K = 15
    IQ2_XXS = 16
    IQ2_XS = 17
    IQ3_XXS = 18
    IQ1_S = 19
    IQ4_NL = 20
    IQ3_S = 21
    IQ2_S = 22
    IQ4_XS = 23
    I8 = 24
    I16 = 25
    I32 = 26
    I64 = 27
    F64 = 28
    IQ1_M = 29
    BF16 = 30
    TQ1_0 = 34
    TQ2_0 = 35
    MXFP4 = 39


# On-disk (bytes per block, elements per block) as written by ggml
GGML_BLOCK_SIZES: Dict[int, Tuple[int, int]] = {
    GGMLType.F32: (4, 1),
    GGMLType.F16: (2, 1),
    GGMLType.Q4_0: (18, 32),
    GGMLType.Q4_1: (20, 32),
    GGMLType.Q5_0: (22, 32),
    GGMLType.Q5_1: (24, 32),
    GGMLType.Q8_0: (34, 32),
    GGMLType.Q8_1: (36, 32),
    GGMLType.Q2_K: (84, 256),
    GGMLType.Q3_K: (110, 256),
    GGMLType.Q4_K: (144, 256),
    GGMLType.Q5_K: (176, 256),
    GGMLType.Q6_K: (210, 256),
    GGMLType.Q8_K: (292, 256),
    GGMLType.IQ2_XXS: (66, 256),
    GGMLType.IQ2_XS: (74, 256),
    GGMLType.IQ3_XXS: (98, 256),
    GGMLType.IQ1_S: (50, 256),
    GGMLType.IQ4_NL: (18, 32),
    GGMLType.IQ3_S: (110, 256),
    GGMLType.IQ2_S: (82, 256),
    GGMLType.IQ4_XS: (136, 256),
    GGMLType.I8: (1, 1),
    GGMLType.I16: (2, 1),
    GGMLType.I32: (4, 1),
    GGMLType.I64: (8, 1),
    GGMLType.F64: (8, 1),
    GGMLType.IQ1_M: (56, 256),
    GGMLType.BF16: (2, 1),
    GGMLType.TQ1_0: (54, 256),
    GGMLType.TQ2_0: (66, 256),
    GGMLType.MXFP4: (17, 32),
}


def ggml_type_name(tag: int) -> str:
    try:
        return GGMLType(tag).name
    except ValueError:
        return f"UNKNOWN({tag})"


def bits_per_weight(tag: int) -> Optional[float]:
    sizes = GGML_BLOCK_SIZES.get(tag)
    if sizes is None:
        return None
    type_size, block_size = sizes
    return type_size * 8 / block_size


# ----------------------------------------------------------------------------
# Preview values
# ----------------------------------------------------------------------------


class PreviewKind(str, Enum):
    EXACT = "exact"
    APPROXIMATE = "approximate"
    UNSUPPORTED = "unsupported"
    RAW = "raw"


@dataclass(frozen=True)
class PreviewValue:
    """One preview entry. ``value`` is None for unsupported and raw entries."""

    index: int
    kind: PreviewKind
    value: Optional[float] = None
    raw: bytes = b""

    @property
    def hex(self) -> str:
        return self.raw.hex(" ")

    def __str__(self) -> str:
        if self.kind is PreviewKind.RAW:
            return self.hex
        if self.kind is PreviewKind.UNSUPPORTED:
            return f"<unsupported: {self.raw.hex()}>"
        text = str(self.value) if isinstance(self.value, int) else f"{self.value:.6f}"
        return f"~{text}" if self.kind is PreviewKind.APPROXIMATE else text


# ----------------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------------

DecodeFn = Callable[[bytes], Optional[List[float]]]


@dataclass(frozen=True)
class QuantCodec:
    """Preview decoder for one storage unit.

    Attributes:
        name: Display name of the scheme.
        unit_size: Bytes per storage unit (scalar or block).
        values_per_unit: Preview values produced from one unit.
        decode: Unit bytes -> values, or None when the scheme is unsupported.
        exact: Whether decoded values are bit-exact or an approximation.
    """

    name: str
    unit_size: int
    values_per_unit: int
    decode: DecodeFn
    exact: bool = True

    @property
    def kind(self) -> PreviewKind:
        return PreviewKind.EXACT if self.exact else PreviewKind.APPROXIMATE


_F32 = struct.Struct("<f")
_F16 = struct.Struct("<e")
_F64 = struct.Struct("<d")
_INTS = {size: struct.Struct(fmt) for size, fmt in ((1, "<b"), (2, "<h"), (4, "<i"), (8, "<q"))}
_Q8_0 = struct.Struct("<e32b")
_Q4_1_HEAD = struct.Struct("<ee")

# Q4_0 preview block: f32 scale + 12 code bytes; the first 4 code bytes are previewed
Q4_0_BLOCK_BYTES = 16
Q4_0_PREVIEW_VALUES = 8
Q4_0_ZERO_POINT = 8


def _decode_f32(unit: bytes) -> List[float]:
    return [_F32.unpack(unit)[0]]


def _decode_f16(unit: bytes) -> List[float]:
    return [_F16.unpack(unit)[0]]


def _decode_bf16(unit: bytes) -> List[float]:
    return [_F32.unpack(b"\x00\x00" + unit)[0]]


def _decode_f64(unit: bytes) -> List[float]:
    return [_F64.unpack(unit)[0]]


def _decode_int(unit: bytes) -> List[float]:
    return [_INTS[len(unit)].unpack(unit)[0]]


def _decode_q4_0(block: bytes) -> List[float]:
    (scale,) = _F32.unpack_from(block, 0)
    out: List[float] = []
    for byte in block[4 : 4 + Q4_0_PREVIEW_VALUES // 2]:
        out.append(scale * ((byte & 0x0F) - Q4_0_ZERO_POINT))
        out.append(scale * ((byte >> 4) - Q4_0_ZERO_POINT))
    return out


def _decode_q8_0(block: bytes) -> List[float]:
    scale, *codes = _Q8_0.unpack(block)
    return [scale * q for q in codes]


def _decode_q4_1(block: bytes) -> List[float]:
    scale, minimum = _Q4_1_HEAD.unpack_from(block, 0)
    qs = block[4:20]
    low = [scale * (b & 0x0F) + minimum for b in qs]
    high = [scale * (b >> 4) + minimum for b in qs]
    return low + high


def _decode_unsupported(unit: bytes) -> None:
    return None


UNSUPPORTED = QuantCodec("unsupported", 4, 1, _decode_unsupported, exact=False)

_REGISTRY: Dict[int, QuantCodec] = {}


def register(tag: int, codec: QuantCodec) -> None:
    """Add or replace the preview decoder for a storage tag."""
    if codec.unit_size <= 0 or codec.values_per_unit <= 0:
        raise ValueError("unit_size and values_per_unit must be positive")
    _REGISTRY[int(tag)] = codec


def lookup(tag: int) -> QuantCodec:
    """Decoder for ``tag``; unknown and unregistered tags get ``UNSUPPORTED``."""
    return _REGISTRY.get(int(tag), UNSUPPORTED)


register(GGMLType.F32, QuantCodec("F32", 4, 1, _decode_f32))
register(GGMLType.F16, QuantCodec("F16", 2, 1, _decode_f16))
register(GGMLType.BF16, QuantCodec("BF16", 2, 1, _decode_bf16))
register(GGMLType.F64, QuantCodec("F64", 8, 1, _decode_f64))
register(GGMLType.I8, QuantCodec("I8", 1, 1, _decode_int))
register(GGMLType.I16, QuantCodec("I16", 2, 1, _decode_int))
register(GGMLType.I32, QuantCodec("I32", 4, 1, _decode_int))
register(GGMLType.I64, QuantCodec("I64", 8, 1, _decode_int))
register(GGMLType.Q4_0, QuantCodec("Q4_0", Q4_0_BLOCK_BYTES, Q4_0_PREVIEW_VALUES, _decode_q4_0))
register(GGMLType.Q8_0, QuantCodec("Q8_0", 34, 32, _decode_q8_0, exact=False))
register(GGMLType.Q4_1, QuantCodec("Q4_1", 20, 32, _decode_q4_1, exact=False))


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def preview(
    cursor: "ByteCursor",
    descriptor: "TensorDescriptor",
    *,
    data_offset: int,
    max_elements: int,
    raw: bool = False,
    limit: int = DEFAULT_PREVIEW_LIMIT,
) -> List[PreviewValue]:
    """Decode a bounded window from the start of a tensor's data.

    Returns at most ``min(max_elements, n_elements, limit)`` values; fewer when
    the file ends first. In raw mode one hex entry is returned per storage
    unit instead, bounded the same way. A tensor starting past EOF raises
    ``SeekOutOfRangeError``.
    """
    codec = lookup(descriptor.storage_type)
    bound = max(0, min(max_elements, limit))
    total_units = _ceil_div(descriptor.n_elements, codec.values_per_unit)
    if raw:
        wanted = min(bound, total_units)
        units = wanted
    else:
        wanted = min(bound, descriptor.n_elements)
        units = _ceil_div(wanted, codec.values_per_unit)
    if wanted == 0:
        return []

    cursor.seek(data_offset + descriptor.offset)
    buf = cursor.read_up_to(units * codec.unit_size)
    size = codec.unit_size

    out: List[PreviewValue] = []
    for u in range(len(buf) // size):
        chunk = bytes(buf[u * size : (u + 1) * size])
        if raw:
            out.append(PreviewValue(u, PreviewKind.RAW, raw=chunk))
            continue
        decoded = codec.decode(chunk)
        if decoded is None:
            out.append(PreviewValue(len(out), PreviewKind.UNSUPPORTED, raw=chunk))
        else:
            base = len(out)
            out.extend(
                PreviewValue(base + i, codec.kind, value=v) for i, v in enumerate(decoded)
            )
        if len(out) >= wanted:
            break
    return out[:wanted]
