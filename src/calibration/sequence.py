"""
Calibration Sequences

Collect live samples from a glove until a stopping condition is met, then
compile a SensorRange and a HandProfile from them. A sequence must be fed
update(delta_time) once per tick by its host.

Strategies:
===========

QUICK:  Open and close the hand for a while. Auto-completes once the
        user has moved a minimum amount and kept moving for
        `auto_end_time` seconds, or when the user confirms. Keeps a live
        range and a preview profile up to date on every sample.

GUIDED: Make a fixed list of poses, confirming each one:
        IDLE -> HANDS_FLAT -> THUMBS_UP -> FIST -> DONE
        Completes once the last pose is confirmed. No timers.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Union

import numpy as np

from src.calibration.check import moved_minimum
from src.calibration.points import CalibrationPoints
from src.calibration.profiles import HandProfile, ProfileCompiler, default_compiler
from src.calibration.sensor_range import SensorRange
from src.calibration.types import SampleLike, to_sample_array
from src.core.config_loader import CalibrationConfig
from src.drivers.glove_source import DeviceKind, GloveSampleSource
from src.platform.logging_utils import get_logger

logger = get_logger(__name__)


class CalibrationType(str, Enum):
    QUICK = "quick"
    GUIDED = "guided"


class GuidedStage(IntEnum):
    IDLE = 0
    HANDS_FLAT = 1
    THUMBS_UP = 2
    FIST = 3
    DONE = 4


GUIDED_INSTRUCTIONS = {
    GuidedStage.IDLE: "Get ready to calibrate your hand.",
    GuidedStage.HANDS_FLAT: "Place your hand flat, with your fingers extended and together.",
    GuidedStage.THUMBS_UP: "Make a thumbs up.",
    GuidedStage.FIST: "Make a fist, with your thumb wrapped around your fingers.",
    GuidedStage.DONE: "Calibration completed!",
}


@dataclass
class QuickState:
    """Strategy payload of a quick calibration."""
    auto_end_after: float
    smoothing_samples: int = 0
    sensor_range: SensorRange = field(default_factory=SensorRange.for_calibration)
    preview_profile: Optional[HandProfile] = None
    can_animate: bool = False
    moved_time: float = 0.0


@dataclass
class GuidedState:
    """Strategy payload of a guided calibration."""
    stage: GuidedStage = GuidedStage.IDLE


SequenceState = Union[QuickState, GuidedState]


class CalibrationSequence:
    """
    A calibration sequence over one linked glove.

    Usage:
        sequence = CalibrationSequence.quick(glove)
        while not sequence.completed:
            sequence.update(dt)
        sensor_range = sequence.compile_range()
        profile = sequence.compile_profile(glove.device_kind, glove.is_right) \
            or HandProfile.default(glove.is_right)
    """

    def __init__(
        self,
        glove: Optional[GloveSampleSource],
        state: SequenceState,
        config: Optional[CalibrationConfig] = None,
        compiler: Optional[ProfileCompiler] = None,
    ):
        self.config = config or CalibrationConfig()
        self.compiler = compiler or default_compiler()
        self._glove = glove
        self._state = state

        self.points = CalibrationPoints(self.config.buffer.max_data_points)
        self.elapsed_time = 0.0
        self.manual_completed = False

        self.reset()

    @classmethod
    def quick(
        cls,
        glove: Optional[GloveSampleSource],
        auto_end_after: Optional[float] = None,
        config: Optional[CalibrationConfig] = None,
        compiler: Optional[ProfileCompiler] = None,
    ) -> "CalibrationSequence":
        config = config or CalibrationConfig()
        state = QuickState(
            auto_end_after=config.quick.auto_end_time if auto_end_after is None else auto_end_after,
            smoothing_samples=config.quick.smoothing_samples,
        )
        return cls(glove, state, config, compiler)

    @classmethod
    def guided(
        cls,
        glove: Optional[GloveSampleSource],
        config: Optional[CalibrationConfig] = None,
        compiler: Optional[ProfileCompiler] = None,
    ) -> "CalibrationSequence":
        return cls(glove, GuidedState(), config, compiler)

    @classmethod
    def create(
        cls,
        calibration_type: CalibrationType,
        glove: Optional[GloveSampleSource],
        config: Optional[CalibrationConfig] = None,
        compiler: Optional[ProfileCompiler] = None,
    ) -> "CalibrationSequence":
        if CalibrationType(calibration_type) == CalibrationType.GUIDED:
            return cls.guided(glove, config, compiler)
        return cls.quick(glove, config=config, compiler=compiler)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def kind(self) -> CalibrationType:
        if isinstance(self._state, GuidedState):
            return CalibrationType.GUIDED
        return CalibrationType.QUICK

    @property
    def state(self) -> SequenceState:
        return self._state

    @property
    def linked_glove(self) -> Optional[GloveSampleSource]:
        return self._glove

    @linked_glove.setter
    def linked_glove(self, glove: Optional[GloveSampleSource]) -> None:
        self._glove = glove

    @property
    def data_point_count(self) -> int:
        return len(self.points)

    @property
    def current_stage(self) -> int:
        """Guided stage as an int; -1 for sequences without stages."""
        if isinstance(self._state, GuidedState):
            return int(self._state.stage)
        return -1

    @property
    def auto_completed(self) -> bool:
        state = self._state
        if isinstance(state, QuickState):
            return state.can_animate and state.moved_time >= state.auto_end_after
        return state.stage >= GuidedStage.DONE

    @property
    def completed(self) -> bool:
        return self.auto_completed or self.manual_completed

    @property
    def can_animate(self) -> bool:
        """Quick only: the user moved enough to show a live preview."""
        return isinstance(self._state, QuickState) and self._state.can_animate

    @property
    def preview_profile(self) -> Optional[HandProfile]:
        if isinstance(self._state, QuickState):
            return self._state.preview_profile
        return None

    # -------------------------------------------------------------------------
    # Driving the sequence
    # -------------------------------------------------------------------------

    def update(self, delta_time: float) -> None:
        """Advance time and pull one sample from the linked glove, if any."""
        if self.completed:
            return

        self.elapsed_time += delta_time
        if self._glove is not None:
            sample = self._glove.get_calibration_values()
            if sample is not None:
                self.add_data_point(sample)

        state = self._state
        if isinstance(state, QuickState) and state.can_animate:
            state.moved_time += delta_time

    def add_data_point(self, values: SampleLike) -> bool:
        """Store one sample. Returns False if it was rejected."""
        if self.completed:
            return False
        try:
            sample = to_sample_array(values)
        except ValueError as e:
            logger.debug(f"Dropping malformed calibration sample: {e}")
            return False

        self.points.add_sample(sample, self.current_stage)
        if isinstance(self._state, QuickState):
            self._update_preview(self._state, sample)
        return True

    def _update_preview(self, state: QuickState, sample: np.ndarray) -> None:
        state.sensor_range.check_for_extremes(sample)
        if self._glove is None:
            return

        kind = self._glove.device_kind
        if not state.can_animate:
            state.can_animate = moved_minimum(state.sensor_range.range, self.config.thresholds_for(kind))
            if state.can_animate:
                logger.info("Moved enough to animate, auto-end timer started")

        if self.compiler.supports(kind):
            state.preview_profile = self.compiler.compile(state.sensor_range, kind, self._glove.is_right)

    def confirm_current_step(self) -> None:
        """Quick: finish now. Guided: the current pose is made, move to the next."""
        state = self._state
        if isinstance(state, GuidedState):
            if state.stage < GuidedStage.DONE:
                state.stage = GuidedStage(state.stage + 1)
                logger.info(f"Guided calibration stage: {state.stage.name}")
        else:
            self.manual_completed = True

    def reset(self) -> None:
        """Clear collected data. The linked glove is kept."""
        self.points.reset()
        self.elapsed_time = 0.0
        self.manual_completed = False

        state = self._state
        if isinstance(state, QuickState):
            state.sensor_range = SensorRange.for_calibration()
            state.preview_profile = HandProfile.default(self._glove.is_right) if self._glove is not None else None
            state.can_animate = False
            state.moved_time = 0.0
        else:
            state.stage = GuidedStage.IDLE

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def compile_range(self) -> Optional[SensorRange]:
        """
        Min / max of the collected samples; None with fewer than two buffered.

        Unsmoothed, this is the buffer's running extremes, which include
        samples already evicted from a full buffer. With smoothing enabled
        only the samples still buffered can be averaged, so evicted samples
        no longer count.
        """
        if len(self.points) < 2:
            return None

        smoothing = self._state.smoothing_samples if isinstance(self._state, QuickState) else 0
        if smoothing > 1:
            smoothed = self.points.smoothed(smoothing)
            return SensorRange(smoothed.min(axis=0), smoothed.max(axis=0))
        return self.points.get_as_range()

    def compile_profile(self, device_kind: DeviceKind, is_right: bool) -> Optional[HandProfile]:
        """Profile from compile_range(); None if that fails or the family is unsupported."""
        sensor_range = self.compile_range()
        if sensor_range is None:
            logger.warning(f"Cannot compile a profile from {len(self.points)} sample(s)")
            return None
        return self.compiler.compile(sensor_range, device_kind, is_right)

    def get_current_instruction(self, next_step_key: str = "") -> str:
        state = self._state
        if isinstance(state, GuidedState):
            text = GUIDED_INSTRUCTIONS[state.stage]
            if next_step_key and state.stage < GuidedStage.DONE:
                text += f" Press [{next_step_key}] for the next step."
            return text

        if self.completed:
            return "Calibration completed!"
        if next_step_key:
            return ("Move your fingers until you are satisfied with your calibration. "
                    f"Then press [{next_step_key}] to finish.")
        return "Move your fingers until you are satisfied with your calibration."
