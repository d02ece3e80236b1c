# gguf_inspector/reporting/console.py
"""
Rich console rendering for parsed models, previews and validation reports.
"""
from __future__ import annotations

from collections import defaultdict
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gguf_inspector.analysis.base import AnalysisReport, Finding
from gguf_inspector.model_formats.gguf.gguf import ParsedModel, TensorDescriptor
from gguf_inspector.model_formats.gguf.gguf_quantization import (
    PreviewKind,
    PreviewValue,
    bits_per_weight,
)

console = Console()

MAX_VALUE_WIDTH = 70

STATUS = {True: "[green]PASS[/green]", False: "[bold red]FAIL[/bold red]"}


def _truncate(text: str, width: int = MAX_VALUE_WIDTH) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def render_summary(path: str, model: ParsedModel, parameters: int) -> None:
    """One-screen overview of a model file."""
    first_type = model.tensors[0].type_name if model.tensors else "unknown"
    title = f"GGUF | {escape(model.architecture or 'unknown')} | v{model.version}"
    t = Table(title=title, box=box.SIMPLE_HEAVY)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("Path", escape(path))
    t.add_row("Size (bytes)", str(model.file_size))
    t.add_row("Parameters (est.)", f"{parameters:,}")
    t.add_row("Tensors", str(len(model.tensors)))
    t.add_row("First tensor type", first_type)
    t.add_row("Metadata", f"{model.header.metadata_count} pairs")
    t.add_row("Header layout", model.header.layout)
    t.add_row("Data offset", str(model.data_offset))
    console.print(t)


def render_info(model: ParsedModel) -> None:
    """Full metadata table followed by the tensor table."""
    console.print(
        f"[bold]GGUF v{model.version}[/bold] | {model.header.tensor_count} tensors "
        f"| {model.header.metadata_count} metadata KV"
    )
    mt = Table(title="Metadata", box=box.ROUNDED, title_style="bold magenta")
    mt.add_column("Key", style="cyan", no_wrap=True)
    mt.add_column("Type", style="yellow")
    mt.add_column("Value")
    for key, value in model.metadata.items():
        style = "[red]" if value.is_unknown else ""
        text = escape(_truncate(str(value)))
        mt.add_row(escape(key), escape(value.type_name), f"{style}{text}")
    console.print(mt)

    tt = Table(title="Tensors", box=box.ROUNDED, title_style="bold magenta")
    tt.add_column("Index", justify="right", style="dim")
    tt.add_column("Tensor Name", style="cyan", no_wrap=True)
    tt.add_column("Shape", style="green")
    tt.add_column("GGML Type", style="yellow")
    tt.add_column("Bits/Weight", justify="right")
    tt.add_column("Offset", justify="right")
    for index, ti in enumerate(model.tensors):
        bpw = bits_per_weight(ti.storage_type)
        tt.add_row(
            str(index),
            escape(ti.name),
            ti.shape_str,
            ti.type_name,
            f"{bpw:.2f}" if bpw is not None else "?",
            str(ti.offset),
        )
    console.print(tt)


def render_preview(
    descriptor: TensorDescriptor, values: Sequence[PreviewValue], requested: int
) -> None:
    console.print(
        f"Tensor : [cyan]{escape(descriptor.name)}[/cyan] | Shape : {descriptor.shape_str} "
        f"| Type : [yellow]{descriptor.type_name}[/yellow]"
    )
    t = Table(box=box.SIMPLE, show_header=True)
    t.add_column("#", justify="right", style="dim")
    t.add_column("Value")
    t.add_column("Kind", style="dim")
    for pv in values:
        text = str(pv)
        if pv.kind is PreviewKind.UNSUPPORTED:
            text = f"[red]{text}[/red]"
        elif pv.kind is PreviewKind.APPROXIMATE:
            text = f"[yellow]{text}[/yellow]"
        t.add_row(str(pv.index), text, pv.kind.value)
    console.print(t)
    if len(values) < requested:
        console.print("[dim]... (reached end of tensor)[/dim]")


def _render_generic_table(
    title: str, findings: List[Finding], *, custom_sort_order: Optional[List[str]] = None
) -> None:
    """Generic renderer for finding groups, with optional custom sorting."""
    table = Table(title=title, box=box.ROUNDED, show_lines=False, title_style="bold magenta")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Check", style="cyan", no_wrap=True)
    table.add_column("Details", style="white")

    if custom_sort_order:
        sort_map = {name: i for i, name in enumerate(custom_sort_order)}
        findings = sorted(findings, key=lambda f: sort_map.get(f.check, 999))
    else:
        findings = sorted(findings, key=lambda f: f.name)

    for f in findings:
        check_name = f.check.replace("_", " ").title()
        if check_name == "Kv Store":
            check_name = "KV Store"
        table.add_row(STATUS[f.ok], escape(check_name), escape(f.details))

    console.print(table)


def _render_tensor_bounds_table(title: str, findings: List[Finding]) -> None:
    table = Table(title=title, box=box.ROUNDED, show_lines=False, title_style="bold magenta")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Tensor Name", style="cyan", no_wrap=True)
    table.add_column("Start Address", justify="right", style="white")
    table.add_column("End Address", justify="right", style="white")
    table.add_column("GGML Type", justify="left", style="yellow")
    table.add_column("Dimensions", justify="left", style="green")

    for f in sorted(findings, key=lambda f: f.context.get("start", 0)):
        ctx = f.context
        table.add_row(
            STATUS[f.ok],
            escape(f.check),
            str(ctx.get("start", "N/A")),
            str(ctx.get("end", "N/A")),
            escape(str(ctx.get("type", "N/A"))),
            escape(str(ctx.get("dims", "N/A"))),
        )

    console.print(table)


def _render_kv_table(title: str, findings: List[Finding]) -> None:
    table = Table(title=title, box=box.ROUNDED, show_lines=False, title_style="bold magenta")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Details", style="white")
    for f in sorted(findings, key=lambda f: f.check):
        table.add_row(STATUS[f.ok], escape(f.check), escape(f.details))
    console.print(table)


def _render_reason_matrix(rep: AnalysisReport) -> None:
    if not rep.reason_matrix:
        return
    rt = Table(
        title="Reason Matrix (Decode Failure Explanations)",
        box=box.SIMPLE_HEAVY,
        show_lines=False,
    )
    rt.add_column("Section", style="bold")
    rt.add_column("Reason")
    for entry in rep.reason_matrix:
        rt.add_row(escape(entry.target), escape(entry.reason))
    console.print(rt)


def render_report(rep: AnalysisReport) -> None:
    """Renders the validation report as grouped tables."""
    t = Table(title="GGUF Validation Summary", box=box.SIMPLE_HEAVY)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("Path", escape(rep.file_path))
    t.add_row("Size (bytes)", str(rep.file_size))
    t.add_row("Format", rep.format)
    for k, v in rep.metadata.items():
        t.add_row(escape(k), escape(str(v)))
    console.print(t)

    groups = defaultdict(list)
    for f in rep.findings:
        groups[f.group or "general"].append(f)

    integrity_sort_order = [
        "magic_version",
        "GGUF_Header",
        "KV_Store",
        "Tensor_Info",
        "alignment_power_of_two",
        "data_offset_bounds",
        "tensor_non_overlap",
        "quantization_profile",
    ]

    if "general" in groups:
        _render_generic_table("Parse", groups["general"])
    if "structural_integrity" in groups:
        _render_generic_table(
            "Structural Integrity Checks",
            groups["structural_integrity"],
            custom_sort_order=integrity_sort_order,
        )
    if "tensor_bounds" in groups:
        _render_tensor_bounds_table("Tensor Bounds Checks", groups["tensor_bounds"])
    if "kv_rules" in groups:
        _render_kv_table("Known Key Conformance", groups["kv_rules"])
    if "kv_unknown" in groups:
        _render_kv_table("Unrecognized Value Types", groups["kv_unknown"])

    _render_reason_matrix(rep)
