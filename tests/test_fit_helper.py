"""Test module for inkfit.fit_helper

The tests are run using pytest.
These tests ensure that the deviation measurement of fitted curves keeps
working correctly after changes and refactoring.
"""

import numpy as np
import pytest

from inkfit.fit_helper import FitDeviation

LINE_SEGMENTS = np.array([[[0.0, 0.0], [4.0 / 3.0, 0.0], [8.0 / 3.0, 0.0], [4.0, 0.0]]])
TWO_SEGMENTS = np.array(
    [
        [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]],
        [[3.0, 0.0], [3.0, 1.0], [3.0, 2.0], [3.0, 3.0]],
    ]
)

###############################################################################
# FitDeviation Tests
###############################################################################


class TestFitDeviation:
    """Test class for FitDeviation."""

    def test_sample_segments_shape(self):
        """Adjacent segments share their joining sample."""
        samples = FitDeviation.sample_segments(TWO_SEGMENTS, 8)
        assert samples.shape == (17, 2)
        assert np.array_equal(samples[0], [0.0, 0.0])
        assert np.array_equal(samples[8], [3.0, 0.0])
        assert np.array_equal(samples[-1], [3.0, 3.0])

    def test_sample_segments_empty(self):
        """No segments give no samples."""
        assert FitDeviation.sample_segments(np.empty((0, 4, 2)), 8).shape == (0, 2)

    def test_sample_segments_wrong_shape(self):
        """Segments must be given as (n, 4, 2)."""
        with pytest.raises(ValueError):
            FitDeviation.sample_segments(np.zeros((4, 2)), 8)

    def test_points_on_curve(self):
        """Points on the curve have a distance of (almost) zero."""
        points = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (4.0, 0.0)]
        dist = FitDeviation.distances(points, LINE_SEGMENTS)
        assert np.allclose(dist, 0.0, atol=1e-9)

    def test_point_off_curve(self):
        """The distance of a point beside the curve."""
        dist = FitDeviation.distances([(2.0, 1.0), (5.0, 0.0)], LINE_SEGMENTS)
        assert np.allclose(dist, [1.0, 1.0])

    def test_non_finite_points(self):
        """Non-finite points get a NaN distance."""
        dist = FitDeviation.distances([(np.nan, 0.0), (2.0, -0.5)], LINE_SEGMENTS)
        assert np.isnan(dist[0])
        assert dist[1] == pytest.approx(0.5)

    def test_max_distance(self):
        """The largest distance and the index of its point."""
        points = [(0.0, 0.0), (3.0, -2.0), (np.nan, 1.0), (2.0, 1.0)]
        max_dist, idx = FitDeviation.max_distance(points, TWO_SEGMENTS)
        assert max_dist == pytest.approx(2.0)
        assert idx == 1

    def test_max_distance_without_finite_points(self):
        """Only non-finite points give (0.0, -1)."""
        assert FitDeviation.max_distance([(np.nan, np.nan)], LINE_SEGMENTS) == (0.0, -1)

    def test_invalid_arguments(self):
        """Missing segments and non-positive sample counts are rejected."""
        with pytest.raises(ValueError):
            FitDeviation.distances([(0.0, 0.0)], np.empty((0, 4, 2)))
        with pytest.raises(ValueError):
            FitDeviation.distances([(0.0, 0.0)], LINE_SEGMENTS, samples_per_segment=0)
