"""
Tests for the byte cursor primitives.
"""

import io
import struct

import pytest

from gguf_inspector.errors import GGUFIOError, SeekOutOfRangeError, TruncatedError
from gguf_inspector.io.cursor import ByteCursor, as_cursor


def test_little_endian_primitives():
    data = (
        struct.pack("<B", 0xFE)
        + struct.pack("<b", -2)
        + struct.pack("<H", 0x1234)
        + struct.pack("<h", -300)
        + struct.pack("<I", 0xDEADBEEF)
        + struct.pack("<i", -70000)
        + struct.pack("<Q", 2**63 + 5)
        + struct.pack("<q", -(2**40))
        + struct.pack("<f", 1.5)
        + struct.pack("<d", -0.125)
    )
    c = ByteCursor.from_bytes(data)
    assert c.read_u8() == 0xFE
    assert c.read_i8() == -2
    assert c.read_u16() == 0x1234
    assert c.read_i16() == -300
    assert c.read_u32() == 0xDEADBEEF
    assert c.read_i32() == -70000
    assert c.read_u64() == 2**63 + 5
    assert c.read_i64() == -(2**40)
    assert c.read_f32() == 1.5
    assert c.read_f64() == -0.125
    assert c.remaining == 0


def test_read_exact_reports_expected_and_available():
    c = ByteCursor.from_bytes(b"abc")
    c.read_exact(1)
    with pytest.raises(TruncatedError) as excinfo:
        c.read_exact(5)
    assert excinfo.value.expected == 5
    assert excinfo.value.available == 2
    assert excinfo.value.position == 1
    # nothing consumed by the failed read
    assert c.position == 1
    assert c.read_exact(2) == b"bc"


def test_truncated_primitive():
    c = ByteCursor.from_bytes(b"\x01\x02\x03")
    with pytest.raises(TruncatedError) as excinfo:
        c.read_u32()
    assert (excinfo.value.expected, excinfo.value.available) == (4, 3)


def test_seek_bounds():
    c = ByteCursor.from_bytes(b"0123456789")
    c.seek(10)
    assert c.remaining == 0
    c.seek(4)
    assert c.read_exact(2) == b"45"
    with pytest.raises(SeekOutOfRangeError) as excinfo:
        c.seek(11)
    assert excinfo.value.offset == 11
    assert excinfo.value.length == 10
    with pytest.raises(SeekOutOfRangeError):
        c.seek(-1)


def test_read_up_to_stops_at_eof():
    c = ByteCursor.from_bytes(b"xyz")
    c.seek(1)
    assert c.read_up_to(100) == b"yz"
    assert c.read_up_to(4) == b""


def test_read_string_replaces_invalid_utf8():
    raw = b"ok\xff\xfe!"
    c = ByteCursor.from_bytes(struct.pack("<Q", len(raw)) + raw)
    assert c.read_string() == "ok\ufffd\ufffd!"


def test_read_string_length_beyond_eof():
    c = ByteCursor.from_bytes(struct.pack("<Q", 2**40) + b"short")
    with pytest.raises(TruncatedError) as excinfo:
        c.read_string()
    assert excinfo.value.expected == 2**40
    assert excinfo.value.available == 5


def test_file_object_source(tmp_path):
    p = tmp_path / "blob.bin"
    p.write_bytes(struct.pack("<I", 7))
    with open(p, "rb") as f:
        c = as_cursor(f)
        assert c.length == 4
        assert c.read_u32() == 7


class _BrokenSource(io.BytesIO):
    def read(self, *args):
        raise OSError("device not ready")


def test_io_failures_are_wrapped():
    c = ByteCursor(_BrokenSource(b"\x00" * 8))
    with pytest.raises(GGUFIOError):
        c.read_u32()


def test_as_cursor_passthrough():
    c = ByteCursor.from_bytes(b"")
    assert as_cursor(c) is c
    assert as_cursor(bytearray(b"ab")).length == 2
