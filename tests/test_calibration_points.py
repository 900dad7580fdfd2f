#!/usr/bin/env python3
"""
Test Suite for the calibration sample buffer

Tests:
- Bounded FIFO behaviour
- Running extremes and safe defaults
- Log export and smoothing
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


class TestCalibrationPoints:
    """Test suite for CalibrationPoints."""

    def test_empty_buffer_has_zero_defaults(self):
        """Test min / max / range are zeros before any sample."""
        from src.calibration.points import CalibrationPoints

        points = CalibrationPoints()

        assert len(points) == 0
        assert points.minimum_values.shape == (5, 3)
        assert np.all(points.minimum_values == 0.0)
        assert np.all(points.maximum_values == 0.0)
        assert np.all(points.sensor_range == 0.0)

    def test_default_capacity(self):
        """Test the default capacity."""
        from src.calibration.points import CalibrationPoints

        assert CalibrationPoints().max_data_points == 6000

    def test_invalid_capacity_raises(self):
        """Test a capacity below one is rejected."""
        from src.calibration.points import CalibrationPoints

        with pytest.raises(ValueError):
            CalibrationPoints(0)

    def test_add_sample_tracks_extremes(self):
        """Test running min / max follow every sample."""
        from src.calibration.points import CalibrationPoints

        points = CalibrationPoints()
        points.add_sample(make_sample(0.5))
        points.add_sample(make_sample([0.1, 0.9, 0.5, 0.5, 0.5]))
        points.add_sample(make_sample([0.3, 0.3, 1.2, 0.5, 0.5]))

        assert list(points.minimum_values[:, 1]) == [0.1, 0.3, 0.5, 0.5, 0.5]
        assert list(points.maximum_values[:, 1]) == [0.5, 0.9, 1.2, 0.5, 0.5]

        sensor_range = points.get_as_range()
        assert sensor_range.range[2, 1] == pytest.approx(0.7)

    def test_fifo_eviction_at_capacity(self):
        """Test the oldest point is evicted first."""
        from src.calibration.points import CalibrationPoints

        points = CalibrationPoints(max_data_points=3)
        for stage in range(5):
            points.add_sample(make_sample(float(stage)), stage)

        assert len(points) == 3
        assert [p.stage for p in points] == [2, 3, 4]

    def test_extremes_cover_evicted_points(self):
        """Test extremes keep every sample since the last reset."""
        from src.calibration.points import CalibrationPoints

        points = CalibrationPoints(max_data_points=2)
        for flex in (0.0, 2.0, 1.0, 1.0):
            points.add_sample(make_sample(flex))

        assert points.minimum_values[1, 1] == 0.0
        assert points.maximum_values[1, 1] == 2.0

    def test_samples_are_copied(self):
        """Test stored samples do not alias the caller's data."""
        from src.calibration.points import CalibrationPoints

        sample = np.array(make_sample(0.5))
        points = CalibrationPoints()
        point = points.add_sample(sample, stage=2)

        sample[:, 1] = 9.0

        assert np.all(point.values[:, 1] == 0.5)
        assert point.stage == 2
        with pytest.raises(ValueError):
            point.values[0, 0] = 1.0

    def test_reset_clears_points_and_extremes(self):
        """Test reset() empties the buffer."""
        from src.calibration.points import CalibrationPoints

        points = CalibrationPoints()
        points.add_sample(make_sample(1.0))
        points.reset()

        assert len(points) == 0
        assert np.all(points.maximum_values == 0.0)

    def test_as_array(self):
        """Test the buffer can be stacked into [N, 5, 3]."""
        from src.calibration.points import CalibrationPoints

        points = CalibrationPoints()
        assert points.as_array().shape == (0, 5, 3)

        points.add_sample(make_sample(0.0))
        points.add_sample(make_sample(1.0))
        assert points.as_array().shape == (2, 5, 3)

    def test_malformed_sample_raises(self):
        """Test the buffer only accepts 5x3 samples."""
        from src.calibration.points import CalibrationPoints

        with pytest.raises(ValueError):
            CalibrationPoints().add_sample([[0.0, 0.0, 0.0]])


class TestSmoothingAndExport:
    """Test suite for the smoothing pass and log export."""

    def test_smoothed_weighted_average(self):
        """Test newest samples weigh most."""
        from src.calibration.points import CalibrationPoints

        points = CalibrationPoints()
        for flex in (0.0, 1.0, 0.0, 1.0):
            points.add_sample(make_sample(flex))

        smoothed = points.smoothed(2)[:, 1, 1]

        assert smoothed == pytest.approx([0.0, 2.0 / 3.0, 1.0 / 3.0, 2.0 / 3.0])

    def test_smoothing_disabled(self):
        """Test a period of one returns the raw data."""
        from src.calibration.points import CalibrationPoints

        points = CalibrationPoints()
        points.add_sample(make_sample(0.25))

        assert np.array_equal(points.smoothed(1), points.as_array())

    def test_to_log_data(self):
        """Test tab-delimited export of a data point."""
        from src.calibration.points import CalibrationPoints

        point = CalibrationPoints().add_sample(make_sample(0.0), stage=1)
        line = point.to_log_data()

        assert line.startswith("1\t\t0.0\t0.0\t0.0\t\t")
        assert line.endswith("\t\t")
        assert line.count("0.0") == 15
