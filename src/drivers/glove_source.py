"""
Glove Sample Sources

Device-facing side of the calibration subsystem. The calibration code never
talks to hardware; it asks a GloveSampleSource for "the latest 5x3
calibration sample, or None this tick" and for the device identity
(family + handedness).

Sample layout (one row per finger, thumb first):
    [[x, y, z],   # thumb   - y: flexion, z: abduction
     [x, y, z],   # index
     [x, y, z],   # middle
     [x, y, z],   # ring
     [x, y, z]]   # pinky

SenseGlove-family devices report angles in radians; Nova-family devices
report raw sensor units (roughly two orders of magnitude larger).
"""

from abc import ABC, abstractmethod
from collections import deque
from enum import Enum
from typing import Deque, Iterable, Optional

import numpy as np

from src.platform.logging_utils import get_logger

logger = get_logger(__name__)

NUM_FINGERS = 5
NUM_AXES = 3


class DeviceKind(str, Enum):
    """Physical glove family. Each family carries its own thresholds."""
    UNKNOWN = "unknown"
    SENSEGLOVE = "senseglove"
    NOVA = "nova"


class GloveSampleSource(ABC):
    """Abstract capability the calibration core consumes."""

    @abstractmethod
    def get_calibration_values(self) -> Optional[np.ndarray]:
        """Latest [5, 3] calibration sample, or None if none is available."""
        pass

    @property
    @abstractmethod
    def device_kind(self) -> DeviceKind:
        """Glove family."""
        pass

    @property
    @abstractmethod
    def is_right(self) -> bool:
        """True for a right-hand glove."""
        pass

    @property
    def device_id(self) -> str:
        return f"{self.device_kind.value}-{'R' if self.is_right else 'L'}"

    @property
    def is_connected(self) -> bool:
        return True


class SimulatedGlove(GloveSampleSource):
    """
    Replays scripted samples, one per get_calibration_values() call.

    Returns None once the script is exhausted unless `hold_last` is set,
    in which case the final sample is repeated. Useful for tests and for
    running the calibration flow without hardware.

    Usage:
        glove = SimulatedGlove.open_close(DeviceKind.SENSEGLOVE, flex_min=0.0, flex_max=1.6)
        sample = glove.get_calibration_values()
    """

    def __init__(
        self,
        samples: Optional[Iterable] = None,
        device_kind: DeviceKind = DeviceKind.SENSEGLOVE,
        is_right: bool = True,
        device_id: Optional[str] = None,
        hold_last: bool = False,
    ):
        self._device_kind = DeviceKind(device_kind)
        self._is_right = is_right
        self._device_id = device_id
        self.hold_last = hold_last
        self.connected = True

        self._queue: Deque[np.ndarray] = deque()
        self._last: Optional[np.ndarray] = None
        for sample in samples or []:
            self.feed(sample)

    @property
    def device_kind(self) -> DeviceKind:
        return self._device_kind

    @property
    def is_right(self) -> bool:
        return self._is_right

    @property
    def device_id(self) -> str:
        return self._device_id or super().device_id

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def pending(self) -> int:
        """Number of scripted samples not yet delivered."""
        return len(self._queue)

    def feed(self, sample) -> None:
        """Append one [5, 3] sample to the script."""
        arr = np.array(sample, dtype=np.float64)
        if arr.shape != (NUM_FINGERS, NUM_AXES):
            raise ValueError(f"sample must be [{NUM_FINGERS}, {NUM_AXES}], got {arr.shape}")
        self._queue.append(arr)

    def get_calibration_values(self) -> Optional[np.ndarray]:
        if not self.connected:
            return None
        if self._queue:
            self._last = self._queue.popleft()
            return self._last.copy()
        if self.hold_last and self._last is not None:
            return self._last.copy()
        return None

    @classmethod
    def open_close(
        cls,
        device_kind: DeviceKind = DeviceKind.SENSEGLOVE,
        flex_min: float = 0.0,
        flex_max: float = 1.6,
        abduction: float = 0.0,
        cycles: int = 3,
        ticks_per_cycle: int = 60,
        noise_std: float = 0.0,
        is_right: bool = True,
        seed: Optional[int] = None,
    ) -> "SimulatedGlove":
        """
        Generate a glove that opens and closes all fingers sinusoidally.

        Flexion (y) sweeps [flex_min, flex_max]; thumb abduction (z) stays
        at `abduction`. Optional Gaussian noise mimics sensor jitter.
        """
        rng = np.random.default_rng(seed)
        total = max(1, cycles * ticks_per_cycle)
        phase = np.linspace(0.0, 2 * np.pi * cycles, total, endpoint=False)
        closure = 0.5 - 0.5 * np.cos(phase)

        samples = np.zeros((total, NUM_FINGERS, NUM_AXES))
        samples[:, :, 1] = (flex_min + closure * (flex_max - flex_min))[:, None]
        samples[:, 0, 2] = abduction
        if noise_std > 0:
            samples += rng.normal(0.0, noise_std, samples.shape)

        logger.debug(f"Generated {total} open/close samples for {DeviceKind(device_kind).value}")
        return cls(list(samples), device_kind=device_kind, is_right=is_right)
