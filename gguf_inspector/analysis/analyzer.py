# gguf_inspector/analysis/analyzer.py
"""
Base Analyzer class to handle common file operations.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from loguru import logger

from gguf_inspector.analysis.base import AnalysisReport
from gguf_inspector.config import DecoderConfig
from gguf_inspector.io.cursor import ByteCursor
from gguf_inspector.io.file_reader import LocalFileSource
from gguf_inspector.observability import Timer


class Analyzer(ABC):
    """Abstract base class for file format analyzers."""

    #: Stages a subclass knows how to run, in execution order.
    stages: Sequence[str] = ()

    def __init__(self, path: str, config: DecoderConfig | None = None):
        self.path = path
        self.src = LocalFileSource(path)
        self.config = config or DecoderConfig()

    def run(self, stages: List[str] | None = None) -> AnalysisReport:
        """
        Orchestrates the analysis process, running only the specified stages.

        Args:
            stages: Stages to run (e.g. ["structure"]); all known stages when None.
        """
        selected = [s for s in self.stages if stages is None or s in stages]
        with self.src.open() as mf:
            report = AnalysisReport(
                file_path=self.path,
                file_size=mf.size,
                format=self.get_format_name(),
                metadata={},
            )
            with Timer("parse") as t_parse:
                ready = self._prepare(mf.cursor(), report)
            logger.debug("{path} parsed in {ms:.2f}ms", path=self.path, ms=t_parse.duration_ms)
            if not ready:
                return report

            for stage in selected:
                with Timer(stage) as t_stage:
                    self._run_stage(stage, report)
                report.stages_run.append(stage)
                logger.debug(
                    "{format} stage {stage} completed in {ms:.2f}ms",
                    format=self.get_format_name().upper(),
                    stage=stage,
                    ms=t_stage.duration_ms,
                )
            return report

    @abstractmethod
    def _prepare(self, cursor: ByteCursor, report: AnalysisReport) -> bool:
        """Decode the file; return False (after recording why) if stages cannot run."""
        raise NotImplementedError

    @abstractmethod
    def _run_stage(self, stage: str, report: AnalysisReport) -> None:
        """Populate ``report`` with the findings of one stage."""
        raise NotImplementedError

    @abstractmethod
    def get_format_name(self) -> str:
        """Return the string name of the format (e.g., 'gguf')."""
        raise NotImplementedError
