# gguf_inspector/__init__.py
"""
gguf_inspector
==============

Pure-Python, read-only decoder for GGUF model containers: header, typed
metadata, tensor descriptors and bounded dequantized tensor previews, with a
rich console CLI on top.
"""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

from gguf_inspector.config import DecoderConfig
from gguf_inspector.errors import (
    BadMagicError,
    GGUFError,
    GGUFIOError,
    SeekOutOfRangeError,
    TensorNotFoundError,
    TooDeepError,
    TruncatedError,
)
from gguf_inspector.io.cursor import ByteCursor
from gguf_inspector.model_formats.gguf.gguf import FileHeader, ParsedModel, TensorDescriptor
from gguf_inspector.model_formats.gguf.gguf_params import estimate_parameters
from gguf_inspector.model_formats.gguf.gguf_parser import (
    find_tensor,
    parse,
    preview_tensor,
    require_tensor,
)
from gguf_inspector.model_formats.gguf.gguf_quantization import PreviewKind, PreviewValue
from gguf_inspector.model_formats.gguf.gguf_values import MetadataValue, ValueType

__all__ = [
    "__version__",
    "BadMagicError",
    "ByteCursor",
    "DecoderConfig",
    "FileHeader",
    "GGUFError",
    "GGUFIOError",
    "MetadataValue",
    "ParsedModel",
    "PreviewKind",
    "PreviewValue",
    "SeekOutOfRangeError",
    "TensorDescriptor",
    "TensorNotFoundError",
    "TooDeepError",
    "TruncatedError",
    "ValueType",
    "estimate_parameters",
    "find_tensor",
    "parse",
    "preview_tensor",
    "require_tensor",
]

try:
    # Read version dynamically from installed package metadata
    __version__: str = _pkg_version("gguf-inspector")
except PackageNotFoundError:  # pragma: no cover - fallback for development environments
    __version__ = "0.0.0-dev"
