"""
Tests for the parse session, metadata/tensor tables and tensor lookup.
"""

import struct

import pytest

from conftest import build_gguf, data_start, header, kv, tensor_info
from gguf_inspector.config import DecoderConfig
from gguf_inspector.errors import TensorNotFoundError, TooDeepError, TruncatedError
from gguf_inspector.io.cursor import ByteCursor
from gguf_inspector.model_formats.gguf.gguf_parser import (
    ParseSession,
    ParseStage,
    find_tensor,
    parse,
    require_tensor,
)
from gguf_inspector.model_formats.gguf.gguf_tables import decode_metadata, decode_tensors
from gguf_inspector.model_formats.gguf.gguf_values import MetadataValue, ValueType


def test_single_architecture_entry():
    blob = header(3, 0, 1) + kv("general.architecture", ValueType.STRING, "test")
    model = parse(blob)
    assert dict(model.metadata) == {
        "general.architecture": MetadataValue(ValueType.STRING, "test")
    }
    assert model.tensors == ()
    assert model.architecture == "test"


def test_unknown_type_entry_does_not_block_the_next():
    blob = (
        header(3, 0, 2)
        + kv("future.key", 255, payload=b"")
        + kv("general.name", ValueType.STRING, "tiny")
    )
    model = parse(blob)
    first = model.metadata["future.key"]
    assert first.is_unknown and first.raw_tag == 255
    assert model.metadata["general.name"].value == "tiny"
    assert list(model.metadata) == ["future.key", "general.name"]


def test_duplicate_keys_overwrite():
    blob = header(3, 0, 3) + b"".join(
        [
            kv("a", ValueType.UINT8, 1),
            kv("b", ValueType.UINT8, 2),
            kv("a", ValueType.UINT8, 3),
        ]
    )
    table = decode_metadata(ByteCursor.from_bytes(blob[24:]), 3)
    assert {k: v.value for k, v in table.items()} == {"a": 3, "b": 2}


def test_metadata_stops_after_count():
    body = kv("a", ValueType.UINT8, 1) + kv("b", ValueType.UINT8, 2)
    c = ByteCursor.from_bytes(body)
    table = decode_metadata(c, 1)
    assert list(table) == ["a"]
    assert c.remaining == len(kv("b", ValueType.UINT8, 2))


def test_truncated_metadata_fails_whole_stage():
    blob = header(3, 0, 2) + kv("a", ValueType.UINT32, 1) + kv("b", ValueType.UINT32, 2)[:-1]
    session = ParseSession(blob)
    with pytest.raises(TruncatedError):
        session.run()
    assert session.stage is ParseStage.FAILED
    assert session.failed_after is ParseStage.HEADER_DECODED
    assert isinstance(session.error, TruncatedError)


def test_metadata_depth_limit_from_config():
    nested = struct.pack("<IQ", ValueType.ARRAY, 1) + struct.pack("<IQ", ValueType.UINT8, 0)
    blob = header(3, 0, 1) + kv("deep", ValueType.ARRAY, payload=nested)
    assert parse(blob).metadata["deep"].to_python() == [[]]
    with pytest.raises(TooDeepError):
        parse(blob, DecoderConfig(max_array_depth=1))


def test_tensor_table_declaration_order():
    body = tensor_info("b.weight", [4, 2], 0, 64) + tensor_info("a.weight", [3], 1, 0)
    tensors = decode_tensors(ByteCursor.from_bytes(body), 2)
    assert [t.name for t in tensors] == ["b.weight", "a.weight"]
    assert tensors[0].dims == (4, 2)
    assert tensors[0].n_elements == 8
    assert tensors[0].type_name == "F32"
    assert tensors[1].offset == 0


def test_session_reaches_ready_and_runs_once():
    session = ParseSession(build_gguf(kvs=[kv("x", ValueType.INT32, -1)]))
    model = session.run()
    assert session.stage is ParseStage.READY
    assert model.header.metadata_count == 1
    with pytest.raises(RuntimeError):
        session.run()


def test_legacy_version_file_parses():
    blob = build_gguf(
        kvs=[kv("general.architecture", ValueType.STRING, "llama")],
        tensors=[tensor_info("w.weight", [2], 0, 0)],
        version=2,
    )
    model = parse(blob)
    assert model.header.layout == "legacy"
    assert model.tensors[0].name == "w.weight"


def test_data_offset_uses_declared_alignment():
    kvs = [kv("general.alignment", ValueType.UINT32, 64)]
    tensors = [tensor_info("t", [1], 0, 0)]
    model = parse(build_gguf(kvs=kvs, tensors=tensors, alignment=64))
    prefix = header(3, 1, 1) + b"".join(kvs) + b"".join(tensors)
    assert model.alignment == 64
    assert model.tensor_table_end == len(prefix)
    assert model.data_offset == data_start(prefix, 64)


def test_invalid_alignment_falls_back_to_default():
    model = parse(build_gguf(kvs=[kv("general.alignment", ValueType.UINT32, 48)]))
    assert model.alignment == 32


def test_find_tensor_returns_first_match():
    blob = build_gguf(
        tensors=[
            tensor_info("dup", [1], 0, 0),
            tensor_info("dup", [2], 0, 32),
        ]
    )
    model = parse(blob)
    assert find_tensor(model, "dup").dims == (1,)
    assert find_tensor(model, "missing") is None
    with pytest.raises(TensorNotFoundError) as excinfo:
        require_tensor(model, "missing")
    assert excinfo.value.name == "missing"


def test_parsed_model_is_read_only():
    model = parse(build_gguf(kvs=[kv("k", ValueType.UINT8, 1)]))
    with pytest.raises(TypeError):
        model.metadata["k"] = MetadataValue(ValueType.UINT8, 2)
    with pytest.raises(AttributeError):
        model.alignment = 8
