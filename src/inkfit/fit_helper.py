"""Quality measurement of fitted curves against the digitized points."""

from __future__ import annotations

from typing import Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import KDTree

from inkfit.bezier import BezierCurve
from inkfit.common import PointsLike
from inkfit.fit_support import as_point_array


class FitDeviation:
    """Distance of data points to a piecewise cubic curve.

    The segments are sampled densely and a KD-tree over the samples answers the
    nearest-neighbour queries for the data points. The result overestimates the
    true point-to-curve distance by at most half the sample spacing.
    """

    SAMPLES_PER_SEGMENT: int = 64

    @classmethod
    def sample_segments(cls, segments: NDArray[np.float64], samples_per_segment: int) -> NDArray[np.float64]:
        """Sample all _segments_ (shape (n, 4, 2)) into one array of shape (n * samples + 1, 2)."""
        segments_array = np.asarray(segments, dtype=np.float64)
        if segments_array.ndim != 3 or segments_array.shape[1:] != (4, 2):
            raise ValueError(f"segments must have shape (n, 4, 2), got {segments_array.shape}")
        num_segments = segments_array.shape[0]
        if num_segments == 0:
            return np.empty((0, 2), dtype=np.float64)

        samples = np.empty((num_segments * samples_per_segment + 1, 2), dtype=np.float64)
        for idx, segment in enumerate(segments_array):
            start = idx * samples_per_segment
            # The last sample of a segment is the first one of the next
            samples[start : start + samples_per_segment + 1] = BezierCurve.sample_cubic(segment, samples_per_segment)
        return samples

    @classmethod
    def distances(
        cls,
        points: PointsLike,
        segments: NDArray[np.float64],
        samples_per_segment: int = SAMPLES_PER_SEGMENT,
    ) -> NDArray[np.float64]:
        """Distance of each point to the nearest curve sample.

        Non-finite points get a distance of NaN.

        Args:
            points: Data points as (x, y) or (x, y, type) rows
            segments: Cubic segments of shape (n, 4, 2), n >= 1
            samples_per_segment: Number of sample intervals per segment

        Returns:
            NDArray[np.float64]: distances of shape (m,)
        """
        if samples_per_segment < 1:
            raise ValueError(f"samples_per_segment must be at least 1, got {samples_per_segment}")
        pts = as_point_array(points)
        samples = cls.sample_segments(segments, samples_per_segment)
        if samples.shape[0] == 0:
            raise ValueError("At least one segment is needed to measure distances")

        result = np.full(pts.shape[0], np.nan, dtype=np.float64)
        finite = np.isfinite(pts).all(axis=1)
        if finite.any():
            tree = KDTree(samples)
            dist, _ = tree.query(pts[finite], k=1)
            result[finite] = dist
        return result

    @classmethod
    def max_distance(
        cls,
        points: PointsLike,
        segments: NDArray[np.float64],
        samples_per_segment: int = SAMPLES_PER_SEGMENT,
    ) -> Tuple[float, int]:
        """Largest distance of a (finite) point to the curve and the index of that point.

        Returns:
            Tuple[float, int]: (max distance, point index); (0.0, -1) without finite points
        """
        dist = cls.distances(points, segments, samples_per_segment)
        if np.isnan(dist).all():
            return 0.0, -1
        idx = int(np.nanargmax(dist))
        return float(dist[idx]), idx
