"""
Sensor Range

Per-finger minimum / maximum 3-axis sensor observations of a glove, and the
derived range (max - min). Used both as the persisted "last known"
calibration and as the live range built up during a check or a
calibration sequence.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np

from src.calibration.serialization import (
    SerializationError,
    deserialize_vectors,
    serialize_vectors,
    split_blocks,
)
from src.calibration.types import FLEXION_AXIS, SampleLike, to_sample_array, zero_sample
from src.platform.logging_utils import get_logger

logger = get_logger(__name__)


class SensorRange:
    """
    Minimum / maximum sensor values of a glove, one [x, y, z] row per finger.

    The arrays are owned exclusively by this instance: everything passed in
    is copied, and the accessors hand out copies.

    Usage:
        live = SensorRange.for_calibration()
        for sample in samples:
            live.check_for_extremes(sample)
        stored = live.serialize()
    """

    def __init__(
        self,
        min_values: Optional[SampleLike] = None,
        max_values: Optional[SampleLike] = None,
    ):
        self._min = zero_sample() if min_values is None else to_sample_array(min_values)
        self._max = zero_sample() if max_values is None else to_sample_array(max_values)

    @classmethod
    def for_calibration(cls) -> "SensorRange":
        """
        Scratch range whose min is +inf and max is -inf, so the first real
        sample wins both comparisons.
        """
        result = cls()
        result._min.fill(np.inf)
        result._max.fill(-np.inf)
        return result

    @property
    def min_values(self) -> np.ndarray:
        return self._min.copy()

    @property
    def max_values(self) -> np.ndarray:
        return self._max.copy()

    @property
    def range(self) -> np.ndarray:
        """max - min per finger / axis."""
        return self._max - self._min

    @property
    def is_scratch(self) -> bool:
        """True while no sample has been observed on a for_calibration() range."""
        return bool(np.isinf(self._min).all() and np.isinf(self._max).all())

    def update(self, min_values: SampleLike, max_values: SampleLike) -> None:
        """Replace both extremes wholesale."""
        new_min = to_sample_array(min_values)
        new_max = to_sample_array(max_values)
        self._min = new_min
        self._max = new_max

    def check_for_extremes(self, sample: SampleLike) -> None:
        """Widen min / max wherever the sample lies outside them."""
        values = to_sample_array(sample)
        np.minimum(self._min, values, out=self._min)
        np.maximum(self._max, values, out=self._max)

    def copy(self) -> "SensorRange":
        return SensorRange(self._min, self._max)

    def __deepcopy__(self, memo) -> "SensorRange":
        return self.copy()

    def __copy__(self) -> "SensorRange":
        return self.copy()

    def __eq__(self, other) -> bool:
        if not isinstance(other, SensorRange):
            return NotImplemented
        return np.array_equal(self._min, other._min) and np.array_equal(self._max, other._max)

    def __repr__(self) -> str:
        return f"SensorRange(flexion={self.to_string(y_only=True)!r})"

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def serialize(self) -> str:
        """Min block followed by max block."""
        return serialize_vectors(self._min) + serialize_vectors(self._max)

    @classmethod
    def try_deserialize(cls, text: str) -> Optional["SensorRange"]:
        """Parse serialize() output, or return None if it is malformed."""
        try:
            blocks = split_blocks(text)
            if len(blocks) != 2:
                raise SerializationError(f"expected 2 blocks, got {len(blocks)}")
            return cls(deserialize_vectors(blocks[0]), deserialize_vectors(blocks[1]))
        except ValueError as e:
            logger.error(f"Could not deserialize sensor range: {e}")
        return None

    @classmethod
    def deserialize(cls, text: str) -> "SensorRange":
        """
        Parse serialize() output. Never raises: malformed input is logged
        and a zeroed range is returned.

        A zeroed range cannot be told apart from a real one; use
        try_deserialize() or load() where that matters.
        """
        result = cls.try_deserialize(text)
        return result if result is not None else cls()

    @classmethod
    def load(cls, path: Union[str, Path]) -> Optional["SensorRange"]:
        """
        Read a range stored with save().

        Returns:
            The range, or None if the file is missing, unreadable or malformed
        """
        try:
            text = Path(path).read_text()
        except OSError as e:
            logger.warning(f"No stored sensor range at {path}: {e}")
            return None
        return cls.try_deserialize(text)

    def save(self, path: Union[str, Path]) -> None:
        Path(path).write_text(self.serialize())

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def to_string(self, y_only: bool = True) -> str:
        """Flexion limits per finger, e.g. "[0.0 .. 1.5][0.1 .. 1.6]..."."""
        axes = [FLEXION_AXIS] if y_only else range(self._min.shape[1])
        parts = []
        for f in range(self._min.shape[0]):
            lo = ", ".join(f"{self._min[f, a]:g}" for a in axes)
            hi = ", ".join(f"{self._max[f, a]:g}" for a in axes)
            parts.append(f"[{lo} .. {hi}]")
        return "".join(parts)

    def range_string(self, y_only: bool = True) -> str:
        rng = self.range
        if y_only:
            return ", ".join(f"{v:g}" for v in rng[:, FLEXION_AXIS])
        return ", ".join("(" + ", ".join(f"{v:g}" for v in row) + ")" for row in rng)


def copy_range(value: Optional[SensorRange]) -> Optional[SensorRange]:
    """Deep copy that passes None through."""
    return value.copy() if value is not None else None
