"""
Decoder limits. Defaults are conservative; the CLI overrides them from flags.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

DEFAULT_MAX_ARRAY_DEPTH = 8
DEFAULT_PREVIEW_LIMIT = 256
DEFAULT_HEAD = 16


@dataclass(frozen=True)
class DecoderConfig:
    """Bounds applied while decoding a single file.

    Attributes:
        max_array_depth: Deepest metadata array nesting accepted before
            ``TooDeepError`` is raised. A flat array has depth 1.
        preview_limit: Hard cap on decoded values returned by a preview,
            regardless of the requested element count.
        default_head: Element count used when a caller does not ask for one.
    """

    max_array_depth: int = DEFAULT_MAX_ARRAY_DEPTH
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    default_head: int = DEFAULT_HEAD

    def __post_init__(self) -> None:
        if self.max_array_depth < 0:
            raise ValueError("max_array_depth must be >= 0")
        if self.preview_limit < 0:
            raise ValueError("preview_limit must be >= 0")

    def with_overrides(self, **changes) -> "DecoderConfig":
        """Return a copy with the non-None ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
