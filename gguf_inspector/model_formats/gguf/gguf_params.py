"""
Best-effort parameter count estimate. Not authoritative.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from gguf_inspector.model_formats.gguf.gguf import ParsedModel, TensorDescriptor
from gguf_inspector.model_formats.gguf.gguf_values import MetadataValue

PARAMETER_COUNT_KEY = "general.parameter_count"
FALLBACK_BLOCK_COUNT_KEY = "llama.block_count"
PARAMS_PER_BLOCK = 110_000_000
WEIGHT_MARKERS = (".weight", ".bias")


def _metadata_int(metadata: Mapping[str, MetadataValue], key: str) -> Optional[int]:
    v = metadata.get(key)
    if v is None:
        return None
    n = v.as_int()
    return n if n is not None and n >= 0 else None


def _block_count(metadata: Mapping[str, MetadataValue]) -> Optional[int]:
    arch = metadata.get("general.architecture")
    arch_name = arch.as_str() if arch is not None else None
    if arch_name:
        n = _metadata_int(metadata, f"{arch_name}.block_count")
        if n is not None:
            return n
    return _metadata_int(metadata, FALLBACK_BLOCK_COUNT_KEY)


def estimate_from_tables(
    metadata: Mapping[str, MetadataValue], tensors: Iterable[TensorDescriptor]
) -> int:
    """Explicit count, then block count x constant, then summed weight/bias sizes."""
    explicit = _metadata_int(metadata, PARAMETER_COUNT_KEY)
    if explicit is not None:
        return explicit
    blocks = _block_count(metadata)
    if blocks is not None:
        return blocks * PARAMS_PER_BLOCK
    return sum(
        t.n_elements for t in tensors if any(marker in t.name for marker in WEIGHT_MARKERS)
    )


def estimate_parameters(model: ParsedModel) -> int:
    return estimate_from_tables(model.metadata, model.tensors)
