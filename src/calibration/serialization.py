"""
Vector text codec used for persisted calibration ranges.

    vector := "(" x "," y "," z ")"
    block  := "[" vector ("," vector)* "]"

Floats are written with repr() so they parse back bit-exact, including
inf / -inf. Whitespace is ignored when reading.
"""

import re
from typing import List

import numpy as np

from src.drivers.glove_source import NUM_AXES

_BLOCKS_RE = re.compile(r"(?:\[[^\[\]]*\])+")
_BLOCK_RE = re.compile(r"\[([^\[\]]*)\]")
_VECTORS_RE = re.compile(r"\([^()]*\)(?:,\([^()]*\))*")
_VECTOR_RE = re.compile(r"\(([^()]*)\)")


class SerializationError(ValueError):
    """Malformed serialized vector data."""


def _compact(text: str) -> str:
    return re.sub(r"\s+", "", text)


def serialize_vector(values) -> str:
    return "(" + ",".join(repr(float(v)) for v in values) + ")"


def serialize_vectors(values: np.ndarray) -> str:
    return "[" + ",".join(serialize_vector(v) for v in values) + "]"


def split_blocks(text: str) -> List[str]:
    """Return the contents of each top-level [...] block."""
    if not isinstance(text, str):
        raise SerializationError(f"expected str, got {type(text).__name__}")
    compact = _compact(text)
    if not _BLOCKS_RE.fullmatch(compact):
        raise SerializationError(f"not a sequence of [...] blocks: {text!r}")
    return _BLOCK_RE.findall(compact)


def deserialize_vectors(block: str) -> np.ndarray:
    """Parse the inside of one block into an [N, 3] array."""
    body = _compact(block)
    if not body:
        return np.zeros((0, NUM_AXES))
    if not _VECTORS_RE.fullmatch(body):
        raise SerializationError(f"malformed vector block: {block!r}")

    vectors = []
    for match in _VECTOR_RE.findall(body):
        parts = match.split(",")
        if len(parts) != NUM_AXES:
            raise SerializationError(f"expected {NUM_AXES} components, got {match!r}")
        try:
            vectors.append([float(p) for p in parts])
        except ValueError as e:
            raise SerializationError(f"bad component in {match!r}") from e
    return np.array(vectors, dtype=np.float64)
