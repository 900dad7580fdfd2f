"""
Glove Calibration

Decides whether a worn glove still matches its stored calibration range,
and runs a quick or guided calibration sequence when it does not.

Modules:
- sensor_range: per-finger min / max extremes and their text encoding
- points: bounded sample buffer with running extremes
- sequence: quick and guided calibration sequences
- check: calibration check state machine
- profiles: hand profiles and the per-family profile compiler
- controller: per-glove lifecycle tying the above together

Usage:
    from src.calibration import GloveCalibrationController, SensorRange

    controller = GloveCalibrationController(glove, SensorRange.deserialize(stored))
    controller.start_check()
"""

from .sensor_range import SensorRange

from .points import (
    CalDataPoint,
    CalibrationPoints,
)

from .profiles import (
    HandProfile,
    ProfileCompiler,
    default_compiler,
)

from .sequence import (
    CalibrationSequence,
    CalibrationType,
    GuidedStage,
)

from .check import (
    CalibrationCheck,
    CalibrationReason,
    CalibrationStage,
    CalibrationVerdict,
    needs_check,
)

from .controller import GloveCalibrationController

__all__ = [
    # Ranges
    'SensorRange',
    'CalDataPoint',
    'CalibrationPoints',

    # Profiles
    'HandProfile',
    'ProfileCompiler',
    'default_compiler',

    # Sequences
    'CalibrationSequence',
    'CalibrationType',
    'GuidedStage',

    # Check
    'CalibrationCheck',
    'CalibrationReason',
    'CalibrationStage',
    'CalibrationVerdict',
    'needs_check',

    # Host
    'GloveCalibrationController',
]
