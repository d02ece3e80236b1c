# gguf_inspector/analysis/gguf_analyzer.py
"""
GGUF analyzer: structural verification, key conformance and reason matrix.
"""

from __future__ import annotations

from collections import Counter
from typing import List, Optional, Tuple

from loguru import logger

from gguf_inspector.analysis.analyzer import Analyzer
from gguf_inspector.analysis.base import AnalysisReport
from gguf_inspector.errors import GGUFError
from gguf_inspector.io.cursor import ByteCursor
from gguf_inspector.model_formats.gguf.gguf import ParsedModel
from gguf_inspector.model_formats.gguf.gguf_params import estimate_parameters
from gguf_inspector.model_formats.gguf.gguf_parser import ParseSession, ParseStage
from gguf_inspector.model_formats.gguf.gguf_rules import check_metadata
from gguf_inspector.model_formats.gguf.gguf_versions import KNOWN_VERSIONS

# Which part of the file was being decoded when a session failed in a given stage
FAILED_SECTION = {
    ParseStage.START: "gguf header",
    ParseStage.HEADER_DECODED: "gguf metadata",
    ParseStage.METADATA_DECODED: "gguf tensor table",
}


class GGUFAnalyzer(Analyzer):
    """Analyzer implementation for GGUF files."""

    stages = ("structure", "rules")

    model: Optional[ParsedModel] = None

    def get_format_name(self) -> str:
        return "gguf"

    def _prepare(self, cursor: ByteCursor, report: AnalysisReport) -> bool:
        session = ParseSession(cursor, self.config)
        try:
            self.model = session.run()
        except GGUFError as e:
            section = FAILED_SECTION.get(session.failed_after, "gguf")
            logger.info(
                "Parse of {path} failed in {section}: {error}",
                path=self.path,
                section=section,
                error=e,
            )
            report.add("parse", False, f"GGUF parse error: {e}")
            report.add_reason(section, f"{type(e).__name__}: {e}")
            return False

        model = self.model
        report.metadata.update(
            {
                "version": model.version,
                "header_layout": model.header.layout,
                "architecture": model.architecture or "unknown",
                "metadata_count": model.header.metadata_count,
                "tensor_count": model.header.tensor_count,
                "alignment": model.alignment,
                "data_offset": model.data_offset,
                "estimated_parameters": estimate_parameters(model),
            }
        )
        return True

    def _run_stage(self, stage: str, report: AnalysisReport) -> None:
        if stage == "structure":
            self._check_structure(report)
        elif stage == "rules":
            self._check_rules(report)
        else:
            raise ValueError(f"Unknown stage {stage!r}")

    def _check_structure(self, report: AnalysisReport) -> None:
        model = self.model
        file_size = model.file_size
        header = model.header

        report.add(
            "structural_integrity:magic_version",
            header.version in KNOWN_VERSIONS,
            f"GGUF v{header.version} ({header.layout} header)",
        )
        report.add("structural_integrity:GGUF_Header", True, f"Region: [0, {header.header_size})")
        report.add(
            "structural_integrity:KV_Store",
            True,
            f"Count: {header.metadata_count}",
        )
        report.add(
            "structural_integrity:Tensor_Info",
            True,
            f"Region ends at {model.tensor_table_end} (Count: {header.tensor_count})",
        )

        declared = model.get("general.alignment")
        declared_ok = declared is None or declared.as_int() == model.alignment
        report.add(
            "structural_integrity:alignment_power_of_two",
            declared_ok,
            f"alignment={model.alignment}"
            + ("" if declared_ok else f" (declared {declared} ignored)"),
        )
        report.add(
            "structural_integrity:data_offset_bounds",
            model.data_offset <= file_size,
            f"Region: [{model.data_offset}, {file_size})",
        )

        extents: List[Tuple[str, int, int]] = []
        for ti in model.tensors:
            start = model.absolute_offset(ti)
            span = ti.byte_span
            if span is None:
                report.add(
                    f"tensor_bounds:{ti.name}",
                    False,
                    "unknown storage type; extent cannot be computed",
                    start=start,
                    end="N/A",
                    type=ti.type_name,
                    dims=str(list(ti.dims)),
                )
                continue
            end = start + span
            extents.append((ti.name, start, end))
            report.add(
                f"tensor_bounds:{ti.name}",
                end <= file_size,
                "" if end <= file_size else f"extends {end - file_size} bytes past EOF",
                start=start,
                end=end,
                type=ti.type_name,
                dims=str(list(ti.dims)),
            )

        extents.sort(key=lambda e: e[1])
        overlaps = [
            f"{a[0]} / {b[0]}" for a, b in zip(extents, extents[1:]) if a[2] > b[1]
        ]
        report.add(
            "structural_integrity:tensor_non_overlap",
            not overlaps,
            "no overlapping tensor data regions" if not overlaps else "; ".join(overlaps[:5]),
        )

        profile = Counter(ti.type_name for ti in model.tensors)
        if profile:
            report.add(
                "structural_integrity:quantization_profile",
                True,
                ", ".join(f"{qt}: {count}" for qt, count in sorted(profile.items())),
            )

    def _check_rules(self, report: AnalysisReport) -> None:
        model = self.model
        for key, problems in sorted(check_metadata(model.metadata).items()):
            report.add(f"kv_rules:{key}", not problems, "; ".join(problems) or "conforms")
        for key, value in model.metadata.items():
            if value.is_unknown:
                report.add(
                    f"kv_unknown:{key}",
                    False,
                    f"unrecognized value type tag {value.raw_tag}",
                )
