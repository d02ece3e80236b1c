# gguf_inspector/model_formats/gguf/gguf.py
"""
GGUF shared structures: header, tensor descriptors and the parsed model.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from gguf_inspector.model_formats.gguf.gguf_quantization import (
    GGML_BLOCK_SIZES,
    ggml_type_name,
)
from gguf_inspector.model_formats.gguf.gguf_values import MetadataValue

GGUF_MAGIC = b"GGUF"
DEFAULT_ALIGNMENT = 32


@dataclass(frozen=True)
class FileHeader:
    magic: bytes
    version: int
    tensor_count: int
    metadata_count: int
    layout: str  # "stream" (v3+) or "legacy"
    header_size: int


@dataclass(frozen=True)
class TensorDescriptor:
    name: str
    dims: Tuple[int, ...]  # outer-to-inner, as declared on disk
    storage_type: int  # raw GGML tag; may be outside GGMLType
    offset: int  # relative to the tensor-data region

    @property
    def n_elements(self) -> int:
        """Total element count; a tensor without dims is a scalar."""
        return math.prod(self.dims)

    @property
    def type_name(self) -> str:
        return ggml_type_name(self.storage_type)

    @property
    def byte_span(self) -> Optional[int]:
        """On-disk size from GGML block sizes, or None for unknown types."""
        sizes = GGML_BLOCK_SIZES.get(self.storage_type)
        if sizes is None:
            return None
        type_size, block_size = sizes
        return -(-self.n_elements // block_size) * type_size

    @property
    def shape_str(self) -> str:
        return "x".join(str(d) for d in self.dims) or "scalar"


@dataclass(frozen=True)
class ParsedModel:
    """Complete result of one parse session. Never mutated after construction."""

    header: FileHeader
    metadata: Mapping[str, MetadataValue]
    tensors: Tuple[TensorDescriptor, ...]
    alignment: int
    tensor_table_end: int
    data_offset: int  # absolute offset of the tensor-data region
    file_size: int

    def __post_init__(self) -> None:
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "tensors", tuple(self.tensors))

    @property
    def version(self) -> int:
        return self.header.version

    @property
    def architecture(self) -> Optional[str]:
        v = self.metadata.get("general.architecture")
        return v.as_str() if v is not None else None

    def get(self, key: str) -> Optional[MetadataValue]:
        return self.metadata.get(key)

    def absolute_offset(self, descriptor: TensorDescriptor) -> int:
        return self.data_offset + descriptor.offset

    def tensor_in_bounds(self, descriptor: TensorDescriptor) -> Optional[bool]:
        """Whether the tensor's extent fits the file; None when its size is unknown."""
        span = descriptor.byte_span
        if span is None:
            return None
        return self.absolute_offset(descriptor) + span <= self.file_size
