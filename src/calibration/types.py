"""
Shared value types for glove calibration.
"""

from enum import IntEnum
from typing import NamedTuple, Sequence, Union

import numpy as np

from src.drivers.glove_source import NUM_AXES, NUM_FINGERS


class Vec3(NamedTuple):
    """One sensor reading for one finger at one instant."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Finger(IntEnum):
    THUMB = 0
    INDEX = 1
    MIDDLE = 2
    RING = 3
    PINKY = 4


FLEXION_AXIS = 1    # "y"
ABDUCTION_AXIS = 2  # "z"

SampleLike = Union[np.ndarray, Sequence[Vec3], Sequence[Sequence[float]]]


def to_sample_array(values: SampleLike) -> np.ndarray:
    """
    Copy a 5-finger sample into a fresh [5, 3] float64 array.

    Raises:
        ValueError: if the input is not 5x3 numeric data.
    """
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValueError(f"sample is not numeric: {e}") from e
    if arr.shape != (NUM_FINGERS, NUM_AXES):
        raise ValueError(f"sample must be [{NUM_FINGERS}, {NUM_AXES}], got {arr.shape}")
    return arr


def zero_sample() -> np.ndarray:
    return np.zeros((NUM_FINGERS, NUM_AXES))
