# gguf_inspector/model_formats/gguf/gguf_parser.py
"""
Parse session and the public decoding operations.

A session walks the file strictly in order::

    START -> HEADER_DECODED -> METADATA_DECODED -> TENSORS_DECODED -> READY

Any ``GGUFError`` moves it to ``FAILED`` and is re-raised; no partial model is
produced.
"""

from __future__ import annotations

from enum import Enum
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

from gguf_inspector.config import DecoderConfig
from gguf_inspector.errors import GGUFError, TensorNotFoundError
from gguf_inspector.io.cursor import ByteCursor, as_cursor
from gguf_inspector.model_formats.gguf.gguf import (
    DEFAULT_ALIGNMENT,
    FileHeader,
    ParsedModel,
    TensorDescriptor,
)
from gguf_inspector.model_formats.gguf.gguf_quantization import PreviewValue, preview
from gguf_inspector.model_formats.gguf.gguf_tables import decode_metadata, decode_tensors
from gguf_inspector.model_formats.gguf.gguf_values import INTEGER_TYPES, MetadataValue
from gguf_inspector.model_formats.gguf.gguf_versions import decode_header

ByteSource = Union[ByteCursor, bytes, bytearray, memoryview, BinaryIO]


class ParseStage(str, Enum):
    START = "start"
    HEADER_DECODED = "header_decoded"
    METADATA_DECODED = "metadata_decoded"
    TENSORS_DECODED = "tensors_decoded"
    READY = "ready"
    FAILED = "failed"


def _align_up(x: int, a: int) -> int:
    return (x + (a - 1)) // a * a


def resolve_alignment(metadata: Dict[str, MetadataValue]) -> int:
    """``general.alignment`` when it is a positive power of two, else 32."""
    v = metadata.get("general.alignment")
    n = v.value if v is not None and v.type in INTEGER_TYPES else None
    if n is not None and n > 0 and (n & (n - 1)) == 0:
        return n
    return DEFAULT_ALIGNMENT


class ParseSession:
    """One linear decode over one cursor."""

    def __init__(self, source: ByteSource, config: Optional[DecoderConfig] = None):
        self.cursor = as_cursor(source)
        self.config = config or DecoderConfig()
        self.stage = ParseStage.START
        self.error: Optional[GGUFError] = None
        self.failed_after: Optional[ParseStage] = None
        self.header: Optional[FileHeader] = None
        self.metadata: Dict[str, MetadataValue] = {}
        self.tensors: Tuple[TensorDescriptor, ...] = ()

    def run(self) -> ParsedModel:
        if self.stage is not ParseStage.START:
            raise RuntimeError(f"ParseSession already ran (stage={self.stage.value})")
        try:
            self.cursor.seek(0)
            self.header = decode_header(self.cursor)
            self.stage = ParseStage.HEADER_DECODED

            self.metadata = decode_metadata(
                self.cursor,
                self.header.metadata_count,
                max_depth=self.config.max_array_depth,
            )
            self.stage = ParseStage.METADATA_DECODED

            self.tensors = decode_tensors(self.cursor, self.header.tensor_count)
            self.stage = ParseStage.TENSORS_DECODED
        except GGUFError as e:
            self.error = e
            self.failed_after = self.stage
            self.stage = ParseStage.FAILED
            raise

        table_end = self.cursor.position
        alignment = resolve_alignment(self.metadata)
        model = ParsedModel(
            header=self.header,
            metadata=self.metadata,
            tensors=self.tensors,
            alignment=alignment,
            tensor_table_end=table_end,
            data_offset=_align_up(table_end, alignment),
            file_size=self.cursor.length,
        )
        self.stage = ParseStage.READY
        return model


def parse(source: ByteSource, config: Optional[DecoderConfig] = None) -> ParsedModel:
    """Decode header, metadata and tensor descriptors from ``source``."""
    return ParseSession(source, config).run()


def find_tensor(model: ParsedModel, name: str) -> Optional[TensorDescriptor]:
    """First descriptor named ``name``, or None."""
    for t in model.tensors:
        if t.name == name:
            return t
    return None


def require_tensor(model: ParsedModel, name: str) -> TensorDescriptor:
    t = find_tensor(model, name)
    if t is None:
        raise TensorNotFoundError(name)
    return t


def preview_tensor(
    source: ByteSource,
    model: ParsedModel,
    descriptor: Union[TensorDescriptor, str],
    max_elements: Optional[int] = None,
    raw: bool = False,
    config: Optional[DecoderConfig] = None,
) -> List[PreviewValue]:
    """Bounded decoded sample of a tensor's data.

    ``descriptor`` may be a name, in which case a missing tensor raises
    ``TensorNotFoundError``.
    """
    config = config or DecoderConfig()
    if isinstance(descriptor, str):
        descriptor = require_tensor(model, descriptor)
    return preview(
        as_cursor(source),
        descriptor,
        data_offset=model.data_offset,
        max_elements=config.default_head if max_elements is None else max_elements,
        raw=raw,
        limit=config.preview_limit,
    )
