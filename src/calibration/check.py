"""
Calibration Check

Decides, from a stream of live samples, whether the glove currently being
worn still matches its last stored calibration range.

Decision Process:
=================

Every tick, while awaiting movement:

1. NO STORED RANGE: calibration is needed, unconditionally.
2. OUT OF BOUNDS: any finger's flexion outside
   [last_min - threshold, last_max + threshold]. Accumulated for longer
   than `out_of_bounds_time` -> calibration needed.
3. MATCHES LAST: every finger's flexion range this session is at least
   last_range - threshold * match_tolerance_factor. Held for
   `perfect_threshold_time` -> done.
4. SMALL HAND: every finger moved at least `min_flex` (thumb abduction
   range below it) but never matched the last range within
   `min_move_time` -> calibration needed.

Timers only run on ticks where their condition holds and are never
cleared until reset(). The moved-minimum latch is likewise kept for the
whole session.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from src.calibration.sensor_range import SensorRange, copy_range
from src.calibration.types import ABDUCTION_AXIS, FLEXION_AXIS, Finger, SampleLike, to_sample_array
from src.core.config_loader import CalibrationConfig, DeviceThresholds
from src.drivers.glove_source import DeviceKind
from src.platform.logging_utils import get_logger

logger = get_logger(__name__)


class CalibrationStage(str, Enum):
    """Where a glove is in the calibration lifecycle."""
    AWAITING_MOVEMENT = "awaiting_movement"    # User must move so we can compare ranges
    CALIBRATION_NEEDED = "calibration_needed"
    CALIBRATING = "calibrating"                # Entered by the host, never by the check
    DONE = "done"


class CalibrationReason(str, Enum):
    NONE = "none"
    NONE_STORED = "none_stored"
    OUT_OF_BOUNDS = "out_of_bounds"
    SMALL_HAND = "small_hand"


@dataclass(frozen=True)
class CalibrationVerdict:
    """Result of a check tick. `finger` is set for OUT_OF_BOUNDS only."""
    stage: CalibrationStage
    reason: CalibrationReason = CalibrationReason.NONE
    finger: Optional[int] = None

    @property
    def needs_calibration(self) -> bool:
        return self.stage == CalibrationStage.CALIBRATION_NEEDED

    @property
    def is_conclusive(self) -> bool:
        return self.stage in (CalibrationStage.CALIBRATION_NEEDED, CalibrationStage.DONE)

    def describe(self) -> str:
        if self.reason == CalibrationReason.OUT_OF_BOUNDS and self.finger is not None:
            return f"{self.stage.value} (out of bounds: {Finger(self.finger).name.lower()})"
        if self.reason != CalibrationReason.NONE:
            return f"{self.stage.value} ({self.reason.value})"
        return self.stage.value


AWAITING = CalibrationVerdict(CalibrationStage.AWAITING_MOVEMENT)


# =============================================================================
# Range predicates
# =============================================================================

def needs_check(device_kind: DeviceKind) -> bool:
    """Only these families can drift out of a stored calibration."""
    return device_kind in (DeviceKind.SENSEGLOVE, DeviceKind.NOVA)


def out_of_bounds(last_range: SensorRange, sample: np.ndarray, thresholds: DeviceThresholds) -> int:
    """Index of the first finger whose flexion left the last range, or -1."""
    flexion = sample[:, FLEXION_AXIS]
    low = last_range.min_values[:, FLEXION_AXIS] - thresholds.flex_threshold
    high = last_range.max_values[:, FLEXION_AXIS] + thresholds.flex_threshold
    outside = np.flatnonzero((flexion < low) | (flexion > high))
    return int(outside[0]) if outside.size else -1


def moved_minimum(current_range: np.ndarray, thresholds: DeviceThresholds) -> bool:
    """
    True once every finger flexed at least `min_flex` and the thumb's
    abduction range stayed below it.
    """
    if np.any(current_range[:, FLEXION_AXIS] < thresholds.min_flex):
        return False
    return bool(current_range[Finger.THUMB, ABDUCTION_AXIS] < thresholds.min_flex)


def matches_last(
    current_range: np.ndarray,
    last_range: np.ndarray,
    thresholds: DeviceThresholds,
    tolerance_factor: float = 2.5,
) -> bool:
    """True if every finger moved roughly as far as during the last calibration."""
    allowance = thresholds.flex_threshold * tolerance_factor
    return not np.any(current_range[:, FLEXION_AXIS] < last_range[:, FLEXION_AXIS] - allowance)


# =============================================================================
# State machine
# =============================================================================

class CalibrationCheck:
    """
    Checks whether the current user runs in the same sensor range as the
    stored calibration.

    Usage:
        check = CalibrationCheck(SensorRange.deserialize(stored))
        while not check.reached_conclusion:
            verdict = check.check_range(glove.get_calibration_values(), dt, glove.device_kind)
        if verdict.needs_calibration:
            ...

    One instance per hand; instances share no state.
    """

    def __init__(
        self,
        last_range: Optional[SensorRange],
        config: Optional[CalibrationConfig] = None,
    ):
        self.config = config or CalibrationConfig()
        self.last_range = copy_range(last_range)

        self.current_range: Optional[SensorRange] = None
        self.timer_at_threshold = 0.0
        self.timer_min_move = 0.0
        self.timer_out_of_bounds = 0.0
        self.moved_minimum = False
        self.out_of_bounds_finger: Optional[int] = None
        self._verdict = AWAITING

        self.reset()

    @property
    def stage(self) -> CalibrationStage:
        return self._verdict.stage

    @property
    def verdict(self) -> CalibrationVerdict:
        return self._verdict

    @property
    def reached_conclusion(self) -> bool:
        return self._verdict.stage != CalibrationStage.AWAITING_MOVEMENT

    def reset(self) -> None:
        """Forget this session's range and timers. The last range is kept."""
        self.current_range = None
        self.timer_at_threshold = 0.0
        self.timer_min_move = 0.0
        self.timer_out_of_bounds = 0.0
        self.moved_minimum = False
        self.out_of_bounds_finger = None
        self._verdict = AWAITING

    def force_calibration_needed(self) -> CalibrationVerdict:
        """Let the host conclude early, e.g. after its own timeout."""
        if not self.reached_conclusion:
            self._conclude(CalibrationVerdict(CalibrationStage.CALIBRATION_NEEDED))
        return self._verdict

    def check_range(
        self,
        sample: Optional[SampleLike],
        delta_time: float,
        device_kind: DeviceKind,
    ) -> CalibrationVerdict:
        """
        Feed one live sample. Call every tick until reached_conclusion.

        A missing or malformed sample is skipped; this never raises.
        """
        if self.last_range is None:
            if self._verdict.stage == CalibrationStage.AWAITING_MOVEMENT:
                self._conclude(CalibrationVerdict(
                    CalibrationStage.CALIBRATION_NEEDED, CalibrationReason.NONE_STORED
                ))
            return self._verdict

        if self.reached_conclusion:
            return self._verdict

        if sample is None:
            return self._verdict
        try:
            values = to_sample_array(sample)
        except ValueError as e:
            logger.debug(f"Skipping malformed sample: {e}")
            return self._verdict

        thresholds = self.config.thresholds_for(device_kind)
        timing = self.config.check

        if self.current_range is None:
            self.current_range = SensorRange(values, values)
        else:
            self.current_range.check_for_extremes(values)
        current = self.current_range.range

        finger = out_of_bounds(self.last_range, values, thresholds)
        is_out = finger > -1
        if is_out:
            self.timer_out_of_bounds += delta_time
            self.out_of_bounds_finger = finger

        small_hand = False
        moved_enough = False
        if not is_out:
            if matches_last(current, self.last_range.range, thresholds, timing.match_tolerance_factor):
                self.timer_at_threshold += delta_time
                if self.timer_at_threshold >= timing.perfect_threshold_time:
                    moved_enough = True

            if self.moved_minimum:
                self.timer_min_move += delta_time
                if self.timer_min_move >= timing.min_move_time:
                    small_hand = True
            else:
                self.moved_minimum = moved_minimum(current, thresholds)
                if self.moved_minimum:
                    logger.debug("Moved a minimum amount, small-hand timer started")

        if self.timer_out_of_bounds >= timing.out_of_bounds_time and self.out_of_bounds_finger is not None:
            self._conclude(CalibrationVerdict(
                CalibrationStage.CALIBRATION_NEEDED,
                CalibrationReason.OUT_OF_BOUNDS,
                self.out_of_bounds_finger,
            ))
        elif small_hand:
            self._conclude(CalibrationVerdict(
                CalibrationStage.CALIBRATION_NEEDED, CalibrationReason.SMALL_HAND
            ))
        elif moved_enough:
            self._conclude(CalibrationVerdict(CalibrationStage.DONE))

        return self._verdict

    def _conclude(self, verdict: CalibrationVerdict) -> None:
        self._verdict = verdict
        if self.current_range is not None:
            logger.info(f"Calibration check: {verdict.describe()}, flexion range {self.current_range.range_string()}")
        else:
            logger.info(f"Calibration check: {verdict.describe()}")
