"""
In-memory GGUF builders shared by the test modules.
"""

from __future__ import annotations

import struct
from typing import Iterable, List, Sequence, Tuple

import pytest

from gguf_inspector.model_formats.gguf.gguf_values import ValueType

SCALAR_FORMATS = {
    ValueType.UINT8: "<B",
    ValueType.INT8: "<b",
    ValueType.UINT16: "<H",
    ValueType.INT16: "<h",
    ValueType.UINT32: "<I",
    ValueType.INT32: "<i",
    ValueType.FLOAT32: "<f",
    ValueType.BOOL: "<?",
    ValueType.UINT64: "<Q",
    ValueType.INT64: "<q",
    ValueType.FLOAT64: "<d",
}


def gguf_string(s: str | bytes) -> bytes:
    raw = s.encode("utf-8") if isinstance(s, str) else s
    return struct.pack("<Q", len(raw)) + raw


def encode_value(tag: int, value) -> bytes:
    """Payload bytes for ``value`` (without the leading type tag)."""
    if tag in SCALAR_FORMATS:
        return struct.pack(SCALAR_FORMATS[ValueType(tag)], value)
    if tag == ValueType.STRING:
        return gguf_string(value)
    if tag == ValueType.ARRAY:
        elem_tag, items = value
        body = b"".join(encode_value(elem_tag, v) for v in items)
        return struct.pack("<IQ", elem_tag, len(items)) + body
    raise ValueError(f"cannot encode tag {tag}")


def kv(key: str, tag: int, value=None, *, payload: bytes | None = None) -> bytes:
    body = encode_value(tag, value) if payload is None else payload
    return gguf_string(key) + struct.pack("<I", tag) + body


def tensor_info(name: str, dims: Sequence[int], ggml_type: int, offset: int) -> bytes:
    out = gguf_string(name) + struct.pack("<I", len(dims))
    out += b"".join(struct.pack("<Q", d) for d in dims)
    return out + struct.pack("<IQ", ggml_type, offset)


def header(version: int, n_tensors: int, n_kv: int) -> bytes:
    if version >= 3:
        return b"GGUF" + struct.pack("<IQQ", version, n_tensors, n_kv)
    return b"GGUF" + struct.pack("<III", version, n_tensors, n_kv)


def build_gguf(
    kvs: Iterable[bytes] = (),
    tensors: Iterable[bytes] = (),
    data: bytes = b"",
    *,
    version: int = 3,
    alignment: int = 32,
) -> bytes:
    """Assemble a file: header, metadata, tensor table, padding, data region."""
    kvs = list(kvs)
    tensors = list(tensors)
    out = header(version, len(tensors), len(kvs)) + b"".join(kvs) + b"".join(tensors)
    pad = (-len(out)) % alignment
    return out + b"\x00" * pad + data


def data_start(blob_without_data: bytes, alignment: int = 32) -> int:
    return len(blob_without_data) + (-len(blob_without_data)) % alignment


def f32s(values: Iterable[float]) -> bytes:
    values = list(values)
    return struct.pack(f"<{len(values)}f", *values)


def pack_nibbles(codes: Sequence[int]) -> bytes:
    """Two 4-bit codes per byte, low nibble first."""
    padded: List[int] = list(codes) + [0] * (len(codes) % 2)
    return bytes(padded[i] | (padded[i + 1] << 4) for i in range(0, len(padded), 2))


def q4_0_block(scale: float, codes: Sequence[int]) -> bytes:
    body = pack_nibbles(codes)
    return struct.pack("<f", scale) + body + b"\x00" * (12 - len(body))


@pytest.fixture
def write_gguf(tmp_path):
    """Write bytes to a temporary .gguf file and return its path."""

    def _write(blob: bytes, name: str = "model.gguf") -> str:
        path = tmp_path / name
        path.write_bytes(blob)
        return str(path)

    return _write


def simple_model_blob() -> Tuple[bytes, List[float]]:
    """A llama-flavoured file with one 2x3 F32 tensor at data offset 0."""
    values = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    blob = build_gguf(
        kvs=[
            kv("general.architecture", ValueType.STRING, "llama"),
            kv("general.alignment", ValueType.UINT32, 32),
            kv("llama.block_count", ValueType.UINT32, 2),
        ],
        tensors=[tensor_info("blk.0.ffn.weight", [2, 3], 0, 0)],
        data=f32s(values),
    )
    return blob, values
