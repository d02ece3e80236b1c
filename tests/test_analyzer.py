"""
Tests for the validation analyzer and its report.
"""

import json
import struct

from conftest import build_gguf, header, kv, simple_model_blob, tensor_info
from gguf_inspector.analysis.gguf_analyzer import GGUFAnalyzer
from gguf_inspector.model_formats.gguf.gguf_values import ValueType
from gguf_inspector.reporting.json_reporter import to_json_dict, write_json


def test_well_formed_file_passes(write_gguf):
    blob, _ = simple_model_blob()
    rep = GGUFAnalyzer(write_gguf(blob)).run()
    failed = [f.name for f in rep.findings if not f.ok]
    assert failed == []
    assert rep.ok
    assert rep.stages_run == ["structure", "rules"]
    assert rep.metadata["architecture"] == "llama"
    assert rep.metadata["estimated_parameters"] == 2 * 110_000_000
    bounds = rep.group("tensor_bounds")
    assert [f.check for f in bounds] == ["blk.0.ffn.weight"]
    assert bounds[0].context["end"] - bounds[0].context["start"] == 24


def test_stage_selection(write_gguf):
    blob, _ = simple_model_blob()
    rep = GGUFAnalyzer(write_gguf(blob)).run(stages=["rules"])
    assert rep.stages_run == ["rules"]
    assert rep.group("structural_integrity") == []
    assert rep.group("kv_rules")


def test_bad_magic_is_reported_in_reason_matrix(write_gguf):
    rep = GGUFAnalyzer(write_gguf(b"NOPE" + b"\x00" * 20)).run()
    assert not rep.ok
    assert rep.findings[0].name == "parse"
    assert rep.reason_matrix[0].target == "gguf header"
    assert "BadMagicError" in rep.reason_matrix[0].reason
    assert rep.stages_run == []


def test_truncated_tensor_table_names_section(write_gguf):
    blob = header(3, 1, 0) + tensor_info("t", [4], 0, 0)[:-3]
    rep = GGUFAnalyzer(write_gguf(blob)).run()
    assert rep.reason_matrix[0].target == "gguf tensor table"
    assert "TruncatedError" in rep.reason_matrix[0].reason


def test_tensor_past_eof_and_overlap_fail(write_gguf):
    blob = build_gguf(
        kvs=[kv("general.architecture", ValueType.STRING, "llama")],
        tensors=[
            tensor_info("a.weight", [4], 0, 0),
            tensor_info("b.weight", [4], 0, 8),
            tensor_info("c.weight", [1024], 0, 32),
        ],
        data=b"\x00" * 48,
    )
    rep = GGUFAnalyzer(write_gguf(blob)).run()
    by_name = {f.name: f for f in rep.findings}
    assert by_name["tensor_bounds:a.weight"].ok
    assert not by_name["tensor_bounds:c.weight"].ok
    assert not by_name["structural_integrity:tensor_non_overlap"].ok
    assert "a.weight / b.weight" in by_name["structural_integrity:tensor_non_overlap"].details


def test_rules_flag_wrong_types_and_unknown_values(write_gguf):
    blob = build_gguf(
        kvs=[
            kv("general.architecture", ValueType.STRING, "llama"),
            kv("llama.block_count", ValueType.STRING, "32"),
            kv("llama.context_length", ValueType.UINT32, 0),
            kv("vendor.future", 77, payload=b""),
        ]
    )
    rep = GGUFAnalyzer(write_gguf(blob)).run()
    by_name = {f.name: f for f in rep.findings}
    assert not by_name["kv_rules:llama.block_count"].ok
    assert "expected UINT32" in by_name["kv_rules:llama.block_count"].details
    assert "below minimum" in by_name["kv_rules:llama.context_length"].details
    assert by_name["kv_rules:general.architecture"].ok
    assert not by_name["kv_unknown:vendor.future"].ok
    assert "77" in by_name["kv_unknown:vendor.future"].details


def test_missing_required_architecture(write_gguf):
    rep = GGUFAnalyzer(write_gguf(build_gguf())).run(stages=["rules"])
    finding = rep.group("kv_rules")[0]
    assert finding.check == "general.architecture"
    assert not finding.ok


def test_unknown_version_is_flagged_but_parsed(write_gguf):
    blob = b"GGUF" + struct.pack("<IQQ", 7, 0, 0)
    rep = GGUFAnalyzer(write_gguf(blob)).run(stages=["structure"])
    by_name = {f.name: f for f in rep.findings}
    assert not by_name["structural_integrity:magic_version"].ok
    assert rep.metadata["version"] == 7


def test_json_report(write_gguf, tmp_path):
    blob, _ = simple_model_blob()
    rep = GGUFAnalyzer(write_gguf(blob)).run()
    out = tmp_path / "report.json"
    write_json(rep, str(out))
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data == to_json_dict(rep)
    assert data["ok"] is True
    assert data["format"] == "gguf"
