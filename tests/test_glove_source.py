#!/usr/bin/env python3
"""
Test Suite for glove sample sources
"""

import sys
import os
import pytest
import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def make_sample(flex):
    return [[0.0, float(flex), 0.0] for _ in range(5)]


class TestSimulatedGlove:
    """Test suite for SimulatedGlove."""

    def test_identity(self):
        """Test device kind, handedness and id."""
        from src.drivers.glove_source import DeviceKind, SimulatedGlove

        glove = SimulatedGlove(device_kind="nova", is_right=False)

        assert glove.device_kind == DeviceKind.NOVA
        assert glove.is_right is False
        assert glove.device_id == "nova-L"
        assert SimulatedGlove(device_id="glove-7").device_id == "glove-7"

    def test_replays_in_order(self):
        """Test samples are returned one per call, then None."""
        from src.drivers.glove_source import SimulatedGlove

        glove = SimulatedGlove([make_sample(0.1), make_sample(0.2)])

        assert glove.pending == 2
        assert glove.get_calibration_values()[0, 1] == 0.1
        assert glove.get_calibration_values()[0, 1] == 0.2
        assert glove.get_calibration_values() is None

    def test_hold_last(self):
        """Test the final sample can be repeated."""
        from src.drivers.glove_source import SimulatedGlove

        glove = SimulatedGlove([make_sample(0.3)], hold_last=True)
        glove.get_calibration_values()

        assert glove.get_calibration_values()[0, 1] == 0.3

    def test_returned_samples_are_copies(self):
        """Test callers cannot alter the held sample."""
        from src.drivers.glove_source import SimulatedGlove

        glove = SimulatedGlove([make_sample(0.3)], hold_last=True)
        glove.get_calibration_values()[:, 1] = 9.0

        assert glove.get_calibration_values()[0, 1] == 0.3

    def test_disconnected_returns_none(self):
        """Test a disconnected glove yields no samples."""
        from src.drivers.glove_source import SimulatedGlove

        glove = SimulatedGlove([make_sample(0.3)])
        glove.connected = False

        assert not glove.is_connected
        assert glove.get_calibration_values() is None
        assert glove.pending == 1

    def test_feed_rejects_wrong_shape(self):
        """Test scripted samples must be 5x3."""
        from src.drivers.glove_source import SimulatedGlove

        with pytest.raises(ValueError):
            SimulatedGlove().feed([[0.0, 0.0, 0.0]])

    def test_open_close_sweep(self):
        """Test the generated sweep covers the requested flexion."""
        from src.drivers.glove_source import DeviceKind, SimulatedGlove

        glove = SimulatedGlove.open_close(DeviceKind.SENSEGLOVE, flex_min=0.2, flex_max=1.4,
                                          abduction=0.1, cycles=2, ticks_per_cycle=40)
        samples = []
        while glove.pending:
            samples.append(glove.get_calibration_values())
        samples = np.array(samples)

        assert samples.shape == (80, 5, 3)
        assert samples[:, :, 1].min() == pytest.approx(0.2)
        assert samples[:, :, 1].max() == pytest.approx(1.4)
        assert np.all(samples[:, 0, 2] == 0.1)
