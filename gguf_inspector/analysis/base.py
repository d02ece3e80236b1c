# gguf_inspector/analysis/base.py
"""
Validation report models and "reason matrix" support.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Finding:
    """Single check result."""

    name: str  # "<group>:<check>", e.g. "tensor_bounds:token_embd.weight"
    ok: bool
    details: str = ""
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def group(self) -> str:
        return self.name.split(":", 1)[0] if ":" in self.name else ""

    @property
    def check(self) -> str:
        return self.name.split(":", 1)[-1]


@dataclass
class ReasonEntry:
    """Explains why a decode stage failed."""

    target: str  # e.g. "gguf header", "gguf metadata"
    reason: str


@dataclass
class AnalysisReport:
    """Aggregate validation report with a reason matrix."""

    file_path: str
    file_size: int
    format: str
    metadata: Dict[str, Any]
    findings: List[Finding] = field(default_factory=list)
    reason_matrix: List[ReasonEntry] = field(default_factory=list)
    stages_run: List[str] = field(default_factory=list)

    def add(self, name: str, ok: bool, details: str = "", **context: Any) -> None:
        self.findings.append(Finding(name=name, ok=ok, details=details, context=context))

    def add_reason(self, target: str, reason: str) -> None:
        self.reason_matrix.append(ReasonEntry(target=target, reason=reason))

    def group(self, name: str) -> List[Finding]:
        return [f for f in self.findings if f.group == name]

    @property
    def ok(self) -> bool:
        return all(f.ok for f in self.findings) if self.findings else True
