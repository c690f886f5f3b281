"""Test module for inkfit.fit_support

The tests are run using pytest.
These tests ensure that point cleaning, chord-length parameterization
and tangent estimation keep working correctly after changes and refactoring.
"""

import numpy as np
import pytest

from inkfit.fit_support import (
    ChordLengthParameterizer,
    PointSequenceCleaner,
    TangentEstimator,
    as_point_array,
)

###############################################################################
# as_point_array Tests
###############################################################################


class TestAsPointArray:
    """Test conversion of input points."""

    def test_type_column_is_dropped(self):
        """(x, y, type) rows are reduced to (x, y)."""
        result = as_point_array([(0.0, 1.0, 0.0), (2.0, 3.0, 3.0)])
        assert result.shape == (2, 2)
        assert np.array_equal(result, [[0.0, 1.0], [2.0, 3.0]])

    def test_wrong_dimensions(self):
        """One-dimensional input and single-column input are rejected."""
        with pytest.raises(ValueError):
            as_point_array([1.0, 2.0])
        with pytest.raises(ValueError):
            as_point_array([[1.0], [2.0]])


###############################################################################
# PointSequenceCleaner Tests
###############################################################################


class TestPointSequenceCleaner:
    """Test removal of NaN points and adjacent duplicates."""

    def test_nan_points_removed(self):
        """Points with a NaN coordinate are dropped."""
        points = [(0.0, 0.0), (np.nan, 1.0), (1.0, 0.0), (2.0, np.nan), (2.0, 0.0)]
        result = PointSequenceCleaner.remove_invalid_and_duplicates(points)
        assert np.array_equal(result, [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])

    def test_infinite_points_removed(self):
        """Points with an infinite coordinate are dropped as well."""
        points = [(0.0, 0.0), (np.inf, 1.0), (1.0, 0.0)]
        result = PointSequenceCleaner.remove_invalid_and_duplicates(points)
        assert np.array_equal(result, [[0.0, 0.0], [1.0, 0.0]])

    def test_adjacent_duplicates_removed(self):
        """Runs of equal points collapse into one point."""
        points = [(0.0, 0.0), (0.0, 0.0), (1.0, 0.0), (1.0, 0.0), (1.0, 0.0), (2.0, 0.0)]
        result = PointSequenceCleaner.remove_invalid_and_duplicates(points)
        assert np.array_equal(result, [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])

    def test_duplicates_separated_by_nan(self):
        """Equal points separated only by a NaN point are adjacent after dropping the NaN."""
        points = [(1.0, 1.0), (np.nan, np.nan), (1.0, 1.0), (2.0, 2.0)]
        result = PointSequenceCleaner.remove_invalid_and_duplicates(points)
        assert np.array_equal(result, [[1.0, 1.0], [2.0, 2.0]])

    def test_non_adjacent_duplicates_kept(self):
        """Revisiting an earlier point is not a duplicate."""
        points = [(0.0, 0.0), (1.0, 0.0), (0.0, 0.0)]
        result = PointSequenceCleaner.remove_invalid_and_duplicates(points)
        assert result.shape == (3, 2)

    def test_all_identical(self):
        """Identical points collapse into a single point."""
        result = PointSequenceCleaner.remove_invalid_and_duplicates([(5.0, 5.0)] * 10)
        assert np.array_equal(result, [[5.0, 5.0]])

    def test_all_nan(self):
        """Only NaN points leave nothing."""
        result = PointSequenceCleaner.remove_invalid_and_duplicates([(np.nan, 0.0), (np.nan, np.nan)])
        assert result.shape == (0, 2)

    def test_input_not_modified(self):
        """The input array is left untouched."""
        points = np.array([[0.0, 0.0], [0.0, 0.0], [np.nan, 1.0], [1.0, 1.0]])
        original = points.copy()
        PointSequenceCleaner.remove_invalid_and_duplicates(points)
        assert np.array_equal(points, original, equal_nan=True)


###############################################################################
# ChordLengthParameterizer Tests
###############################################################################


class TestChordLengthParameterizer:
    """Test chord-length parameterization."""

    def test_proportional_to_distance(self):
        """Parameters are proportional to the path length travelled."""
        points = np.array([[0.0, 0.0], [1.0, 0.0], [3.0, 0.0]])
        u = ChordLengthParameterizer.parameterize(points)
        assert np.allclose(u, [0.0, 1.0 / 3.0, 1.0])

    def test_end_points_exact(self):
        """The first parameter is exactly 0.0 and the last one exactly 1.0."""
        angles = np.linspace(0.0, 2.5, 23)
        points = np.column_stack((7.3 * np.cos(angles), 7.3 * np.sin(angles)))
        u = ChordLengthParameterizer.parameterize(points)
        assert u[0] == 0.0
        assert u[-1] == 1.0
        assert np.all(np.diff(u) > 0.0)

    def test_zero_length_path(self):
        """Coincident points leave the last parameter at 0.0."""
        points = np.array([[2.0, 2.0], [2.0, 2.0], [2.0, 2.0]])
        u = ChordLengthParameterizer.parameterize(points)
        assert u[-1] == 0.0

    def test_overflow_falls_back_to_uniform(self):
        """A non-finite total length gives uniformly spaced parameters."""
        points = np.array([[0.0, 0.0], [1e308, 0.0], [-1e308, 0.0]])
        u = ChordLengthParameterizer.parameterize(points)
        assert np.allclose(u, [0.0, 0.5, 1.0])

    def test_output_buffer(self):
        """Parameters are written into a given buffer."""
        points = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])
        buffer = np.full(5, -1.0)
        u = ChordLengthParameterizer.parameterize(points, out=buffer)
        assert u.shape == (3,)
        assert np.shares_memory(u, buffer)
        assert np.allclose(buffer[:3], [0.0, 0.5, 1.0])
        assert np.array_equal(buffer[3:], [-1.0, -1.0])

    def test_too_few_points(self):
        """A single point cannot be parameterized."""
        with pytest.raises(ValueError):
            ChordLengthParameterizer.parameterize(np.array([[0.0, 0.0]]))


###############################################################################
# TangentEstimator Tests
###############################################################################


class TestTangentEstimator:
    """Test end and center tangent estimation."""

    def test_left_tangent(self):
        """Unit vector from the first towards the second point."""
        points = np.array([[0.0, 0.0], [2.0, 0.0], [2.0, 2.0]])
        assert np.allclose(TangentEstimator.left_tangent(points), [1.0, 0.0])

    def test_right_tangent(self):
        """Unit vector from the last point towards the one before it."""
        points = np.array([[0.0, 0.0], [1.0, 0.0], [3.0, 0.0]])
        assert np.allclose(TangentEstimator.right_tangent(points), [-1.0, 0.0])

    def test_coincident_points_raise(self):
        """Tangents between coincident points are rejected."""
        points = np.array([[1.0, 1.0], [1.0, 1.0]])
        with pytest.raises(ValueError):
            TangentEstimator.left_tangent(points)
        with pytest.raises(ValueError):
            TangentEstimator.right_tangent(points)

    def test_left_tangent_tolerance_skips_close_points(self):
        """Points within the tolerance of the start are skipped."""
        points = np.array([[0.0, 0.0], [0.01, 0.0], [0.0, 1.0]])
        result = TangentEstimator.left_tangent_tolerance(points, 0.01)
        assert np.allclose(result, [0.0, 1.0])

    def test_left_tangent_tolerance_uses_first_far_point(self):
        """With a zero tolerance the tangent points at the second point."""
        points = np.array([[0.0, 0.0], [0.01, 0.0], [0.0, 1.0]])
        result = TangentEstimator.left_tangent_tolerance(points, 0.0)
        assert np.allclose(result, [1.0, 0.0])

    def test_left_tangent_tolerance_all_close(self):
        """If no point is far enough the direction to the last point is used."""
        points = np.array([[0.0, 0.0], [0.01, 0.0], [0.02, 0.0]])
        result = TangentEstimator.left_tangent_tolerance(points, 1.0)
        assert np.allclose(result, [1.0, 0.0])

    def test_right_tangent_tolerance_skips_close_points(self):
        """Points within the tolerance of the end are skipped walking backwards."""
        points = np.array([[1.0, 0.0], [0.0, 0.01], [0.0, 0.0]])
        result = TangentEstimator.right_tangent_tolerance(points, 0.01)
        assert np.allclose(result, [1.0, 0.0])

    def test_negative_tolerance_raises(self):
        """A negative tolerance is rejected."""
        points = np.array([[0.0, 0.0], [1.0, 0.0]])
        with pytest.raises(ValueError):
            TangentEstimator.left_tangent_tolerance(points, -1.0)
        with pytest.raises(ValueError):
            TangentEstimator.right_tangent_tolerance(points, -1.0)

    def test_center_tangent(self):
        """The center tangent points from the next towards the previous point."""
        points = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 0.0]])
        assert np.allclose(TangentEstimator.center_tangent(points, 1), [-1.0, 0.0])

    def test_center_tangent_reversal(self):
        """If the neighbours coincide the incoming segment rotated by 90 degrees is used."""
        points = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 0.0]])
        assert np.allclose(TangentEstimator.center_tangent(points, 1), [0.0, 1.0])

    def test_center_tangent_not_interior(self):
        """The center must be an interior point."""
        points = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 0.0]])
        with pytest.raises(ValueError):
            TangentEstimator.center_tangent(points, 0)
        with pytest.raises(ValueError):
            TangentEstimator.center_tangent(points, 2)
