"""
Glove Calibration Controller

Host-side glue for one glove: runs the calibration check when the glove
connects, hands over to a CalibrationSequence when calibration is needed,
and keeps the resulting SensorRange and HandProfile.

Flow:
    start_check()
        |-- family not checked ------------------> DONE
        |-- no stored range ---------------------> CALIBRATION_NEEDED
        '-- otherwise ---------------------------> AWAITING_MOVEMENT
    update(dt) while AWAITING_MOVEMENT -> CALIBRATION_NEEDED | DONE
    CALIBRATION_NEEDED -> CALIBRATING   (auto for quick, next_step() otherwise)
    update(dt) while CALIBRATING       -> DONE once the sequence completes
    lost connection / cancel           -> CALIBRATION_NEEDED
"""

from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from src.calibration.check import (
    CalibrationCheck,
    CalibrationReason,
    CalibrationStage,
    CalibrationVerdict,
    needs_check,
)
from src.calibration.profiles import HandProfile, ProfileCompiler, default_compiler
from src.calibration.sensor_range import SensorRange, copy_range
from src.calibration.sequence import CalibrationSequence, CalibrationType
from src.core.config_loader import CalibrationConfig
from src.drivers.glove_source import GloveSampleSource
from src.platform.logging_utils import get_logger

logger = get_logger(__name__)


class GloveCalibrationController:
    """
    Calibration lifecycle of a single glove.

    Usage:
        controller = GloveCalibrationController(glove, last_range=stored)
        controller.start_check()
        while controller.stage != CalibrationStage.DONE:
            controller.update(dt)
        stored = controller.last_range.serialize()
    """

    def __init__(
        self,
        glove: GloveSampleSource,
        last_range: Optional[SensorRange] = None,
        calibration_type: CalibrationType = CalibrationType.QUICK,
        config: Optional[CalibrationConfig] = None,
        compiler: Optional[ProfileCompiler] = None,
        auto_start: bool = True,
    ):
        """
        Args:
            glove: Sample source for this hand
            last_range: Range stored by a previous calibration, if any
            calibration_type: Sequence to run when calibration is needed
            config: Thresholds and timings (defaults if None)
            compiler: Profile compiler registry (default families if None)
            auto_start: Start a quick calibration as soon as it is needed
        """
        self.glove = glove
        self.calibration_type = CalibrationType(calibration_type)
        self.config = config or CalibrationConfig()
        self.compiler = compiler or default_compiler()
        self.auto_start = auto_start

        self._last_range = copy_range(last_range)
        self._profile = self._profile_from(self._last_range)
        self._check: Optional[CalibrationCheck] = None
        self._sequence: Optional[CalibrationSequence] = None
        self._verdict = CalibrationVerdict(CalibrationStage.DONE)

        # Callbacks
        self._on_stage_changed: Optional[Callable[[CalibrationStage], None]] = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def stage(self) -> CalibrationStage:
        return self._verdict.stage

    @property
    def verdict(self) -> CalibrationVerdict:
        return self._verdict

    @property
    def last_range(self) -> Optional[SensorRange]:
        return copy_range(self._last_range)

    @property
    def profile(self) -> HandProfile:
        return self._profile

    @property
    def sequence(self) -> Optional[CalibrationSequence]:
        return self._sequence

    @property
    def is_calibrating(self) -> bool:
        return self.stage == CalibrationStage.CALIBRATING

    def set_stage_callback(self, callback: Callable[[CalibrationStage], None]):
        """Set callback fired whenever the calibration stage changes."""
        self._on_stage_changed = callback

    def _set_verdict(self, verdict: CalibrationVerdict) -> None:
        previous = self._verdict.stage
        self._verdict = verdict
        if verdict.stage == previous:
            return
        logger.info(f"{self.glove.device_id}: {previous.value} -> {verdict.describe()}")
        if self._on_stage_changed:
            try:
                self._on_stage_changed(verdict.stage)
            except Exception as e:
                logger.error(f"Stage callback error: {e}")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start_check(self) -> CalibrationVerdict:
        """Decide how to start once the glove is connected."""
        self._sequence = None
        self._check = None

        if not needs_check(self.glove.device_kind):
            logger.debug(f"{self.glove.device_id}: family is not checked, skipping calibration check")
            self._set_verdict(CalibrationVerdict(CalibrationStage.DONE))
        elif self._last_range is None:
            self._set_verdict(CalibrationVerdict(
                CalibrationStage.CALIBRATION_NEEDED, CalibrationReason.NONE_STORED
            ))
        else:
            side = "right" if self.glove.is_right else "left"
            logger.info(f"Please move your {side} hand so we can determine if calibration is required")
            self._check = CalibrationCheck(self._last_range, self.config)
            self._set_verdict(self._check.verdict)

        self._maybe_auto_start()
        return self._verdict

    def update(self, delta_time: float) -> CalibrationVerdict:
        """Advance the check or the active sequence by one tick."""
        if not self.glove.is_connected:
            if self.is_calibrating:
                logger.warning(f"{self.glove.device_id}: connection lost during calibration")
                self.cancel_calibration()
            return self._verdict

        if self.stage == CalibrationStage.AWAITING_MOVEMENT and self._check is not None:
            verdict = self._check.check_range(
                self.glove.get_calibration_values(), delta_time, self.glove.device_kind
            )
            if verdict.is_conclusive:
                self._check = None
                self._set_verdict(verdict)
                self._maybe_auto_start()

        elif self.is_calibrating and self._sequence is not None:
            self._sequence.update(delta_time)
            if self._sequence.completed:
                self._finish_calibration()

        return self._verdict

    def start_calibration(self) -> bool:
        """
        Start a calibration sequence, whatever the current stage.

        Returns:
            False if a sequence is already running
        """
        if self.is_calibrating:
            logger.warning(f"{self.glove.device_id}: calibration already in progress")
            return False

        self._check = None
        self._sequence = CalibrationSequence.create(
            self.calibration_type, self.glove, self.config, self.compiler
        )
        self._set_verdict(replace(self._verdict, stage=CalibrationStage.CALIBRATING))
        logger.info(f"{self.glove.device_id}: {self._sequence.get_current_instruction()}")
        return True

    def next_step(self) -> None:
        """User confirmation: start calibrating, or confirm the current sequence step."""
        if self.stage == CalibrationStage.CALIBRATION_NEEDED:
            self.start_calibration()
        elif self.is_calibrating and self._sequence is not None:
            self._sequence.confirm_current_step()
            if self._sequence.completed:
                self._finish_calibration()
            else:
                logger.info(f"{self.glove.device_id}: {self._sequence.get_current_instruction()}")

    def cancel_calibration(self) -> bool:
        """Abort the running sequence. The previous range and profile are kept."""
        if not self.is_calibrating:
            return False
        self._sequence = None
        self._set_verdict(replace(self._verdict, stage=CalibrationStage.CALIBRATION_NEEDED))
        logger.info(f"{self.glove.device_id}: calibration cancelled")
        return True

    def reset_profile(self) -> None:
        """Drop the compiled profile in favour of the uncalibrated default."""
        self._profile = HandProfile.default(self.glove.is_right)
        logger.info(f"{self.glove.device_id}: profile reset to default")

    def _profile_from(self, sensor_range: Optional[SensorRange]) -> HandProfile:
        if sensor_range is None or not self.compiler.supports(self.glove.device_kind):
            return HandProfile.default(self.glove.is_right)
        return self.compiler.compile(sensor_range, self.glove.device_kind, self.glove.is_right)

    def _maybe_auto_start(self) -> None:
        if (self.stage == CalibrationStage.CALIBRATION_NEEDED
                and self.auto_start
                and self.calibration_type == CalibrationType.QUICK):
            self.start_calibration()

    def _finish_calibration(self) -> None:
        sequence = self._sequence
        self._sequence = None

        sensor_range = sequence.compile_range()
        if sensor_range is None:
            logger.warning(
                f"{self.glove.device_id}: only {sequence.data_point_count} sample(s) collected, "
                "keeping the previous range and profile"
            )
        else:
            self._last_range = sensor_range
            profile = sequence.compile_profile(self.glove.device_kind, self.glove.is_right)
            if profile is None:
                logger.warning(f"{self.glove.device_id}: profile compilation failed, using default profile")
                profile = HandProfile.default(self.glove.is_right)
            self._profile = profile
            logger.info(f"{self.glove.device_id}: calibrated flexion range {sensor_range.range_string()}")

        self._set_verdict(CalibrationVerdict(CalibrationStage.DONE))

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        status = {
            "device_id": self.glove.device_id,
            "device_kind": self.glove.device_kind.value,
            "is_right": self.glove.is_right,
            "connected": self.glove.is_connected,
            "stage": self.stage.value,
            "reason": self._verdict.reason.value,
            "finger": self._verdict.finger,
            "calibration_type": self.calibration_type.value,
            "has_last_range": self._last_range is not None,
            "profile_is_default": self._profile.is_default,
        }
        if self._sequence is not None:
            status["sequence"] = {
                "elapsed_time": self._sequence.elapsed_time,
                "data_points": self._sequence.data_point_count,
                "current_stage": self._sequence.current_stage,
                "can_animate": self._sequence.can_animate,
                "instruction": self._sequence.get_current_instruction(),
            }
        return status
