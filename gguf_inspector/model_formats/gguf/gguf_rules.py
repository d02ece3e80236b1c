"""
Well-known GGUF metadata keys and their conformance rules.
This file acts as a Python-based rule registry for the GGUF format.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping

from gguf_inspector.model_formats.gguf.gguf_values import MetadataValue, ValueType

# Expected type and constraints for known keys. "{arch}" is expanded with
# general.architecture before lookup.
KNOWN_KEYS: Dict[str, Dict[str, Any]] = {
    # General
    "general.architecture": {"type": ValueType.STRING, "pattern": r"^[a-z0-9_-]+$", "required": True},
    "general.alignment": {"type": ValueType.UINT32, "min": 8, "multiple_of": 8},
    "general.quantization_version": {"type": ValueType.UINT32, "min": 1},
    "general.file_type": {"type": ValueType.UINT32},
    "general.name": {"type": ValueType.STRING},
    "general.parameter_count": {"type": ValueType.UINT64},
    # Per-architecture hyperparameters
    "{arch}.context_length": {"type": ValueType.UINT32, "min": 1},
    "{arch}.embedding_length": {"type": ValueType.UINT32, "min": 1},
    "{arch}.block_count": {"type": ValueType.UINT32, "min": 1},
    "{arch}.feed_forward_length": {"type": ValueType.UINT32, "min": 1},
    "{arch}.attention.head_count": {"type": ValueType.UINT32, "min": 1},
    "{arch}.attention.head_count_kv": {"type": ValueType.UINT32, "min": 1},
    "{arch}.rope.dimension_count": {"type": ValueType.UINT32, "min": 1},
    "{arch}.attention.layer_norm_rms_epsilon": {"type": ValueType.FLOAT32, "min": 1e-9, "max": 1e-2},
    "{arch}.expert_count": {"type": ValueType.UINT32, "min": 1},
    "{arch}.expert_used_count": {"type": ValueType.UINT32, "min": 1},
    # Tokenizer
    "tokenizer.ggml.model": {"type": ValueType.STRING},
    "tokenizer.ggml.tokens": {"type": ValueType.ARRAY, "element_type": ValueType.STRING},
    "tokenizer.ggml.scores": {"type": ValueType.ARRAY, "element_type": ValueType.FLOAT32},
    "tokenizer.ggml.merges": {"type": ValueType.ARRAY, "element_type": ValueType.STRING},
    "tokenizer.ggml.bos_token_id": {"type": ValueType.UINT32},
    "tokenizer.ggml.eos_token_id": {"type": ValueType.UINT32},
    "tokenizer.chat_template": {"type": ValueType.STRING},
}


def rules_for(architecture: str | None) -> Dict[str, Dict[str, Any]]:
    """KNOWN_KEYS with the architecture placeholder filled in."""
    out: Dict[str, Dict[str, Any]] = {}
    for key, rule in KNOWN_KEYS.items():
        if "{arch}" in key:
            if not architecture:
                continue
            key = key.replace("{arch}", architecture)
        out[key] = rule
    return out


def check_key(key: str, value: MetadataValue, rule: Mapping[str, Any]) -> List[str]:
    """Violations of ``rule`` by ``value``; empty when it conforms."""
    problems: List[str] = []
    expected = rule["type"]
    if value.type is not expected:
        problems.append(f"expected {expected.name}, found {value.type_name}")
        return problems
    want_elem = rule.get("element_type")
    if want_elem is not None and value.element_type is not want_elem:
        problems.append(f"expected ARRAY[{want_elem.name}], found {value.type_name}")
    v = value.value
    if "min" in rule and v < rule["min"]:
        problems.append(f"{v} below minimum {rule['min']}")
    if "max" in rule and v > rule["max"]:
        problems.append(f"{v} above maximum {rule['max']}")
    if "multiple_of" in rule and v % rule["multiple_of"] != 0:
        problems.append(f"{v} not a multiple of {rule['multiple_of']}")
    if "pattern" in rule and not re.match(rule["pattern"], v):
        problems.append(f"{v!r} does not match {rule['pattern']}")
    return problems


def check_metadata(metadata: Mapping[str, MetadataValue]) -> Dict[str, List[str]]:
    """Per-key violations for every known key, including missing required ones."""
    arch_value = metadata.get("general.architecture")
    architecture = arch_value.as_str() if arch_value is not None else None
    results: Dict[str, List[str]] = {}
    for key, rule in rules_for(architecture).items():
        value = metadata.get(key)
        if value is None:
            if rule.get("required"):
                results[key] = ["required key is missing"]
            continue
        results[key] = check_key(key, value, rule)
    return results
