"""
Hand profiles and the profile compiler registry.

A HandProfile maps raw glove sensor values onto usable finger closure.
The calibration core treats the mapping as opaque: it hands a SensorRange
to a ProfileCompiler keyed by device family and gets a profile back, or
None when the family is not supported.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import numpy as np

from src.calibration.sensor_range import SensorRange
from src.calibration.types import ABDUCTION_AXIS, FLEXION_AXIS, Finger, SampleLike, to_sample_array
from src.drivers.glove_source import NUM_FINGERS, DeviceKind
from src.platform.logging_utils import get_logger

logger = get_logger(__name__)

# Flexion span below which a finger is considered uncalibrated
_MIN_SPAN = 1e-9


@dataclass
class HandProfile:
    """
    Sensor-to-closure interpolation parameters for one hand.

    Closure 0 = fully extended, 1 = fully flexed.
    """
    is_right: bool
    device_kind: Optional[DeviceKind] = None

    # Flexion sensor value at full extension / full flexion, per finger
    flexion_open: np.ndarray = field(default_factory=lambda: np.zeros(NUM_FINGERS))
    flexion_closed: np.ndarray = field(default_factory=lambda: np.ones(NUM_FINGERS))

    # Thumb abduction sensor limits
    thumb_abduction_min: float = 0.0
    thumb_abduction_max: float = 1.0

    @classmethod
    def default(cls, is_right: bool) -> "HandProfile":
        """Uncalibrated profile, used whenever compilation is not possible."""
        return cls(is_right=is_right)

    @property
    def is_default(self) -> bool:
        return self.device_kind is None

    def finger_closure(self, sample: SampleLike) -> np.ndarray:
        """Closure [0, 1] for [thumb, index, middle, ring, pinky]."""
        values = to_sample_array(sample)[:, FLEXION_AXIS]
        span = self.flexion_closed - self.flexion_open
        safe_span = np.where(np.abs(span) > _MIN_SPAN, span, 1.0)
        closure = np.where(np.abs(span) > _MIN_SPAN, (values - self.flexion_open) / safe_span, 0.0)
        return np.clip(closure, 0.0, 1.0)

    def thumb_abduction(self, sample: SampleLike) -> float:
        """Thumb abduction [0, 1]."""
        value = to_sample_array(sample)[Finger.THUMB, ABDUCTION_AXIS]
        span = self.thumb_abduction_max - self.thumb_abduction_min
        if abs(span) <= _MIN_SPAN:
            return 0.0
        return float(np.clip((value - self.thumb_abduction_min) / span, 0.0, 1.0))


CompileFn = Callable[[SensorRange, bool], HandProfile]


def _compile_senseglove(sensor_range: SensorRange, is_right: bool) -> HandProfile:
    # Exoskeleton angles: flexion increases when closing the hand
    mins = sensor_range.min_values
    maxs = sensor_range.max_values
    return HandProfile(
        is_right=is_right,
        device_kind=DeviceKind.SENSEGLOVE,
        flexion_open=mins[:, FLEXION_AXIS],
        flexion_closed=maxs[:, FLEXION_AXIS],
        thumb_abduction_min=float(mins[Finger.THUMB, ABDUCTION_AXIS]),
        thumb_abduction_max=float(maxs[Finger.THUMB, ABDUCTION_AXIS]),
    )


def _compile_nova(sensor_range: SensorRange, is_right: bool) -> HandProfile:
    # Strain sensors: raw value drops as the finger bends
    mins = sensor_range.min_values
    maxs = sensor_range.max_values
    return HandProfile(
        is_right=is_right,
        device_kind=DeviceKind.NOVA,
        flexion_open=maxs[:, FLEXION_AXIS],
        flexion_closed=mins[:, FLEXION_AXIS],
        thumb_abduction_min=float(mins[Finger.THUMB, ABDUCTION_AXIS]),
        thumb_abduction_max=float(maxs[Finger.THUMB, ABDUCTION_AXIS]),
    )


class ProfileCompiler:
    """
    Registry of per-family compile functions.

    Usage:
        compiler = default_compiler()
        profile = compiler.compile(sensor_range, DeviceKind.NOVA, is_right=True)
        if profile is None:
            profile = HandProfile.default(True)
    """

    def __init__(self):
        self._compilers: Dict[DeviceKind, CompileFn] = {}

    def register(self, device_kind: DeviceKind, compile_fn: CompileFn) -> None:
        self._compilers[DeviceKind(device_kind)] = compile_fn

    def supports(self, device_kind: DeviceKind) -> bool:
        return device_kind in self._compilers

    def compile(self, sensor_range: SensorRange, device_kind: DeviceKind, is_right: bool) -> Optional[HandProfile]:
        """Compile a profile, or None if the family is not supported."""
        compile_fn = self._compilers.get(device_kind)
        if compile_fn is None:
            logger.warning(f"No profile compiler for device kind {device_kind!r}")
            return None
        return compile_fn(sensor_range, is_right)


def default_compiler() -> ProfileCompiler:
    compiler = ProfileCompiler()
    compiler.register(DeviceKind.SENSEGLOVE, _compile_senseglove)
    compiler.register(DeviceKind.NOVA, _compile_nova)
    return compiler
