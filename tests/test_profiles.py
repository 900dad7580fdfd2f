#!/usr/bin/env python3
"""
Test Suite for hand profiles and the profile compiler
"""

import sys
import os
import pytest
import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def make_sample(flex, abduction=0.0):
    flex = flex if isinstance(flex, (list, tuple)) else [flex] * 5
    sample = [[0.0, float(f), 0.0] for f in flex]
    sample[0][2] = abduction
    return sample


class TestHandProfile:
    """Test suite for HandProfile."""

    def test_default_profile(self):
        """Test the uncalibrated fallback."""
        from src.calibration.profiles import HandProfile

        profile = HandProfile.default(is_right=False)

        assert profile.is_default
        assert profile.is_right is False
        assert profile.finger_closure(make_sample(0.5)) == pytest.approx([0.5] * 5)

    def test_closure_is_clipped(self):
        """Test closure stays within [0, 1]."""
        from src.calibration.profiles import HandProfile

        profile = HandProfile.default(is_right=True)

        assert np.all(profile.finger_closure(make_sample(3.0)) == 1.0)
        assert np.all(profile.finger_closure(make_sample(-1.0)) == 0.0)

    def test_degenerate_span_gives_zero(self):
        """Test a finger without range never divides by zero."""
        from src.calibration.profiles import HandProfile

        profile = HandProfile(is_right=True, flexion_open=np.ones(5), flexion_closed=np.ones(5),
                              thumb_abduction_min=0.5, thumb_abduction_max=0.5)

        assert np.all(profile.finger_closure(make_sample(1.0)) == 0.0)
        assert profile.thumb_abduction(make_sample(1.0, abduction=0.7)) == 0.0

    def test_thumb_abduction(self):
        """Test thumb abduction maps onto [0, 1]."""
        from src.calibration.profiles import HandProfile

        profile = HandProfile(is_right=True, thumb_abduction_min=-0.2, thumb_abduction_max=0.2)

        assert profile.thumb_abduction(make_sample(0.0, abduction=0.0)) == pytest.approx(0.5)
        assert profile.thumb_abduction(make_sample(0.0, abduction=0.5)) == 1.0


class TestProfileCompiler:
    """Test suite for ProfileCompiler."""

    def test_default_families(self):
        """Test SenseGlove and Nova are registered by default."""
        from src.calibration.profiles import default_compiler
        from src.drivers.glove_source import DeviceKind

        compiler = default_compiler()

        assert compiler.supports(DeviceKind.SENSEGLOVE)
        assert compiler.supports(DeviceKind.NOVA)
        assert not compiler.supports(DeviceKind.UNKNOWN)

    def test_senseglove_profile(self):
        """Test SenseGlove flexion grows when closing the hand."""
        from src.calibration.profiles import default_compiler
        from src.calibration.sensor_range import SensorRange
        from src.drivers.glove_source import DeviceKind

        sensor_range = SensorRange(make_sample(0.25, abduction=-0.25), make_sample(1.25, abduction=0.25))

        profile = default_compiler().compile(sensor_range, DeviceKind.SENSEGLOVE, is_right=True)

        assert profile.device_kind == DeviceKind.SENSEGLOVE
        assert not profile.is_default
        assert profile.finger_closure(make_sample(0.75)) == pytest.approx([0.5] * 5)
        assert profile.thumb_abduction(make_sample(0.0, abduction=0.25)) == 1.0

    def test_nova_profile_is_inverted(self):
        """Test Nova sensor values drop when closing the hand."""
        from src.calibration.profiles import default_compiler
        from src.calibration.sensor_range import SensorRange
        from src.drivers.glove_source import DeviceKind

        sensor_range = SensorRange(make_sample(500.0), make_sample(2500.0))

        profile = default_compiler().compile(sensor_range, DeviceKind.NOVA, is_right=False)

        assert profile.is_right is False
        assert np.all(profile.finger_closure(make_sample(2500.0)) == 0.0)
        assert np.all(profile.finger_closure(make_sample(500.0)) == 1.0)

    def test_unsupported_family_returns_none(self):
        """Test compilation reports failure instead of raising."""
        from src.calibration.profiles import default_compiler
        from src.calibration.sensor_range import SensorRange
        from src.drivers.glove_source import DeviceKind

        assert default_compiler().compile(SensorRange(), DeviceKind.UNKNOWN, True) is None

    def test_register_custom_family(self):
        """Test new families can be plugged in."""
        from src.calibration.profiles import HandProfile, ProfileCompiler
        from src.calibration.sensor_range import SensorRange
        from src.drivers.glove_source import DeviceKind

        compiler = ProfileCompiler()
        compiler.register(DeviceKind.UNKNOWN, lambda sensor_range, is_right: HandProfile(is_right=is_right))

        assert compiler.supports(DeviceKind.UNKNOWN)
        assert compiler.compile(SensorRange(), DeviceKind.UNKNOWN, True).is_right
