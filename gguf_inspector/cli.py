# gguf_inspector/cli.py
"""
cli.py

Rich console CLI over the GGUF decoder:
- summary:  architecture, version, estimated parameters, counts.
- info:     full metadata and tensor tables.
- show:     bounded preview of one tensor's values.
- validate: structural and key-conformance checks with a reason matrix.
- version:  show the package version.
"""
from __future__ import annotations

import argparse
import os
from typing import List, Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from gguf_inspector import __version__
from gguf_inspector.analysis.gguf_analyzer import GGUFAnalyzer
from gguf_inspector.config import DEFAULT_MAX_ARRAY_DEPTH, DecoderConfig
from gguf_inspector.errors import GGUFError, TensorNotFoundError
from gguf_inspector.io.file_reader import LocalFileSource
from gguf_inspector.logging import configure_logging
from gguf_inspector.model_formats.gguf.gguf_params import estimate_parameters
from gguf_inspector.model_formats.gguf.gguf_parser import parse, preview_tensor, require_tensor
from gguf_inspector.observability import Timer
from gguf_inspector.reporting import console as reporter
from gguf_inspector.reporting.json_reporter import write_json

console = Console()

AVAILABLE_STAGES: List[str] = list(GGUFAnalyzer.stages)


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", help="Enable debug logging")
    common.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help=f"Maximum metadata array nesting depth (default: {DEFAULT_MAX_ARRAY_DEPTH})",
    )

    p = argparse.ArgumentParser(
        prog="ggufi",
        description="GGUF model container inspector.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    sub = p.add_subparsers(dest="cmd", title="Available Commands", metavar="<command>")

    sp = sub.add_parser("summary", parents=[common], help="One-screen overview of a .gguf file")
    sp.add_argument("path", help="Path to model file (.gguf)")

    sp = sub.add_parser("info", parents=[common], help="List all metadata and tensors")
    sp.add_argument("path", help="Path to model file (.gguf)")

    sp = sub.add_parser("show", parents=[common], help="Preview the values of one tensor")
    sp.add_argument("path", help="Path to model file (.gguf)")
    sp.add_argument("tensor", help="Tensor name")
    sp.add_argument("--head", type=int, default=None, help="Number of values to show")
    sp.add_argument("--raw", action="store_true", help="Show raw bytes per storage unit")

    sp = sub.add_parser("validate", parents=[common], help="Check structure and known keys")
    sp.add_argument("path", help="Path to model file (.gguf)")
    sp.add_argument("--json-out", type=str, default=None, help="Write JSON report to this path")
    sp.add_argument(
        "--stage",
        nargs="+",
        choices=AVAILABLE_STAGES,
        metavar="STAGE",
        help=(
            f"Run only specific validation stages. Defaults to all stages.\n"
            f"Available stages: {', '.join(AVAILABLE_STAGES)}."
        ),
    )

    sub.add_parser("version", help="Show the version of gguf-inspector")

    return p


def _run_model_command(args: argparse.Namespace, config: DecoderConfig) -> int:
    with LocalFileSource(args.path).open() as mf:
        cursor = mf.cursor()
        with Timer("parse") as t_parse:
            model = parse(cursor, config)
        logger.debug("Parsed {path} in {ms:.2f}ms", path=args.path, ms=t_parse.duration_ms)

        if args.cmd == "summary":
            reporter.render_summary(args.path, model, estimate_parameters(model))
        elif args.cmd == "info":
            reporter.render_info(model)
        elif args.cmd == "show":
            descriptor = require_tensor(model, args.tensor)
            head = config.default_head if args.head is None else args.head
            values = preview_tensor(cursor, model, descriptor, head, raw=args.raw, config=config)
            reporter.render_preview(descriptor, values, min(head, config.preview_limit))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 1

    if args.cmd == "version":
        console.print(f"gguf-inspector version {__version__}")
        return 0

    configure_logging(debug=args.debug)
    if not os.path.exists(args.path):
        console.print(f"[red]File not found:[/red] {escape(args.path)}")
        return 2

    try:
        config = DecoderConfig().with_overrides(max_array_depth=args.max_depth)
    except ValueError as e:
        console.print(f"[red]Invalid option:[/red] {escape(str(e))}")
        return 1

    if args.cmd == "validate":
        try:
            rep = GGUFAnalyzer(args.path, config).run(stages=args.stage)
        except GGUFError as e:
            console.print(f"[red]{type(e).__name__}:[/red] {escape(str(e))}")
            return 2
        console.print(
            Panel(
                f"[bold]Result:[/bold] {'[green]OK[/green]' if rep.ok else '[red]FAILED[/red]'}",
                style="bold cyan",
            )
        )
        reporter.render_report(rep)
        if args.json_out:
            write_json(rep, args.json_out)
            console.print(f"[dim]Wrote JSON report → {escape(args.json_out)}[/dim]")
        return 0 if rep.ok else 2

    try:
        return _run_model_command(args, config)
    except TensorNotFoundError as e:
        console.print(f"[red]Tensor not found:[/red] {escape(e.name)}")
        return 2
    except GGUFError as e:
        logger.debug("Decode failure: {error!r}", error=e)
        console.print(f"[red]{type(e).__name__}:[/red] {escape(str(e))}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
