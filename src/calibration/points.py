"""
Calibration sample buffer.

Bounded FIFO of staged samples with running min / max extremes, so a
"current range" view is available in O(1) at any time.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List, Optional

import numpy as np

from src.calibration.sensor_range import SensorRange
from src.calibration.types import SampleLike, to_sample_array, zero_sample


@dataclass(frozen=True, eq=False)
class CalDataPoint:
    """One [5, 3] sample tagged with the sequence stage that produced it."""
    stage: int
    values: np.ndarray

    def to_log_data(self, delim: str = "\t") -> str:
        """Stage followed by x/y/z per finger, fingers separated by a double delimiter."""
        fingers = [delim.join(repr(float(v)) for v in row) for row in self.values]
        return str(self.stage) + delim * 2 + (delim * 2).join(fingers) + delim * 2


class CalibrationPoints:
    """
    Ring buffer of calibration samples.

    The oldest point is evicted once `max_data_points` is reached. The
    running extremes are updated on every add and cover every sample added
    since the last reset, evicted ones included.
    """

    DEFAULT_MAX_POINTS = 6000  # 60 s at 100 Hz

    def __init__(self, max_data_points: int = DEFAULT_MAX_POINTS):
        if max_data_points < 1:
            raise ValueError("max_data_points must be >= 1")
        self.max_data_points = max_data_points
        self._points: Deque[CalDataPoint] = deque(maxlen=max_data_points)
        self._min: Optional[np.ndarray] = None
        self._max: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[CalDataPoint]:
        return iter(self._points)

    @property
    def data_points(self) -> List[CalDataPoint]:
        return list(self._points)

    def add_sample(self, values: SampleLike, stage: int = -1) -> CalDataPoint:
        sample = to_sample_array(values)
        sample.setflags(write=False)
        point = CalDataPoint(stage=stage, values=sample)
        self._points.append(point)

        if self._min is None:
            self._min = sample.copy()
            self._max = sample.copy()
        else:
            np.minimum(self._min, sample, out=self._min)
            np.maximum(self._max, sample, out=self._max)
        return point

    def reset(self) -> None:
        self._points.clear()
        self._min = None
        self._max = None

    @property
    def minimum_values(self) -> np.ndarray:
        return zero_sample() if self._min is None else self._min.copy()

    @property
    def maximum_values(self) -> np.ndarray:
        return zero_sample() if self._max is None else self._max.copy()

    @property
    def sensor_range(self) -> np.ndarray:
        return self.maximum_values - self.minimum_values

    def get_as_range(self) -> SensorRange:
        return SensorRange(self.minimum_values, self.maximum_values)

    def as_array(self) -> np.ndarray:
        """All buffered samples as an [N, 5, 3] array."""
        if not self._points:
            return np.zeros((0,) + zero_sample().shape)
        return np.stack([p.values for p in self._points])

    def smoothed(self, period: int) -> np.ndarray:
        """
        Linear weighted moving average over the buffer, [N, 5, 3].

        The newest sample in each window gets weight `period`, the oldest
        weight 1. The first period-1 outputs average over what is available.
        """
        data = self.as_array()
        if period <= 1 or len(data) == 0:
            return data

        out = np.empty_like(data)
        for i in range(len(data)):
            window = data[max(0, i - period + 1):i + 1]
            weights = np.arange(1, len(window) + 1, dtype=np.float64)
            out[i] = np.tensordot(weights, window, axes=1) / weights.sum()
        return out
