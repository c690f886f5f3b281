"""Point preparation, parameterization and tangent estimation for curve fitting."""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from inkfit.common import PointsLike
from inkfit.fit_config import DEFAULT_FIT_CONFIG, FitConfig
from inkfit.geom import GeomMath

logger = logging.getLogger(__name__)


def as_point_array(points: PointsLike) -> NDArray[np.float64]:
    """Convert _points_ into a float64 array of shape (n, 2).

    Additional columns (e.g. a point type as third column) are dropped.

    Raises:
        ValueError: If the input is not two-dimensional or has less than two columns.
    """
    if isinstance(points, np.ndarray) and points.dtype == np.float64:
        arr = points
    else:
        arr = np.asarray(points, dtype=np.float64)
    if arr.ndim != 2:
        raise ValueError(f"points must have 2 dimensions, got {arr.ndim}")
    if arr.shape[1] < 2:
        raise ValueError(f"points must have shape (n, 2) or (n, 3), got {arr.shape}")
    return arr[:, :2]


###############################################################################
# PointSequenceCleaner
###############################################################################
class PointSequenceCleaner:
    """Removal of unusable points from digitized input."""

    @staticmethod
    def remove_invalid_and_duplicates(points: PointsLike) -> NDArray[np.float64]:
        """Copy _points_ leaving out non-finite points and adjacent duplicates.

        Every non-finite point (NaN or infinite coordinate) is dropped. Of the
        remaining points a point is dropped if it is equal to the most recently
        kept one. The result holds at most as many points as the input; 0 or 1
        points mean there is nothing to fit.

        Args:
            points: Digitized points as (x, y) or (x, y, type) rows

        Returns:
            NDArray[np.float64]: cleaned points of shape (m, 2), m <= n
        """
        arr = as_point_array(points)
        finite = arr[np.isfinite(arr).all(axis=1)]
        if finite.shape[0] < 2:
            return finite.copy()

        # Comparing with the previous finite point is the same as comparing with the
        # most recently kept one: a dropped point equals the kept one before it.
        keep = np.empty(finite.shape[0], dtype=bool)
        keep[0] = True
        keep[1:] = (finite[1:] != finite[:-1]).any(axis=1)
        return finite[keep]


###############################################################################
# ChordLengthParameterizer
###############################################################################
class ChordLengthParameterizer:
    """Assign curve parameters to points proportional to the distance travelled."""

    @staticmethod
    def parameterize(
        points: NDArray[np.float64],
        out: Optional[NDArray[np.float64]] = None,
        config: FitConfig = DEFAULT_FIT_CONFIG,
    ) -> NDArray[np.float64]:
        """Chord-length parameterization of _points_.

        u[0] is 0.0 and u[i] is the path length from point 0 to point i divided by
        the total path length, so u[last] is exactly 1.0. If the total length is
        not finite, uniform spacing i / (n - 1) is used instead.

        A total length of zero (all points coincide) leaves the cumulative lengths
        unnormalized, i.e. u[last] == 0.0, which callers treat as a degenerate path.

        Args:
            points: Cleaned points of shape (n, 2), n >= 2
            out: Optional buffer of length >= n to write the parameters into
            config: Fitting parameters

        Returns:
            NDArray[np.float64]: parameter values of length n (a view of _out_ if given)
        """
        num_points = points.shape[0]
        if num_points < 2:
            raise ValueError(f"Chord-length parameterization needs at least 2 points, got {num_points}")
        u = np.empty(num_points, dtype=np.float64) if out is None else out[:num_points]

        deltas = np.diff(points, axis=0)
        u[0] = 0.0
        u[1:] = np.cumsum(np.hypot(deltas[:, 0], deltas[:, 1]))

        total_length = float(u[-1])
        if total_length == 0.0:
            return u
        if math.isfinite(total_length):
            u[1:] /= total_length
        else:
            u[1:] = np.arange(1, num_points, dtype=np.float64) / float(num_points - 1)

        if u[-1] != 1.0:
            diff = float(u[-1]) - 1.0
            if abs(diff) > config.parameter_end_warning:
                logger.warning("u[last] = %.19g (= 1 + %.19g), expecting exactly 1", u[-1], diff)
            u[-1] = 1.0
        return u


###############################################################################
# TangentEstimator
###############################################################################
class TangentEstimator:
    """Estimation of unit tangent vectors at the ends and inside of a point sequence.

    The right and center tangents point "backwards", i.e. towards decreasing index.
    """

    @staticmethod
    def left_tangent(points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Unit vector from point 0 towards point 1.

        Raises:
            ValueError: If there are less than two points or the first two points coincide.
        """
        if points.shape[0] < 2:
            raise ValueError("Left tangent needs at least 2 points")
        if GeomMath.points_equal(points[0], points[1]):
            raise ValueError("Left tangent needs distinct first and second point")
        return GeomMath.unit_vector(points[1] - points[0])

    @staticmethod
    def right_tangent(points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Unit vector from the last point towards the one before it.

        Raises:
            ValueError: If there are less than two points or the last two points coincide.
        """
        if points.shape[0] < 2:
            raise ValueError("Right tangent needs at least 2 points")
        if GeomMath.points_equal(points[-1], points[-2]):
            raise ValueError("Right tangent needs distinct last and second to last point")
        return GeomMath.unit_vector(points[-2] - points[-1])

    @classmethod
    def left_tangent_tolerance(cls, points: NDArray[np.float64], tolerance_sq: float) -> NDArray[np.float64]:
        """Forward tangent at point 0, looking past points close to the start.

        Walks forward until a point is farther than sqrt(_tolerance_sq_) from point 0
        and returns the unit direction to it. If no point is that far away, the
        direction to the last point is used, or the simple two-point tangent if
        the last point coincides with the first one.
        """
        num_points = points.shape[0]
        if num_points < 2:
            raise ValueError("Left tangent needs at least 2 points")
        if tolerance_sq < 0:
            raise ValueError(f"tolerance_sq must not be negative, got {tolerance_sq}")
        start = points[0]
        i = 1
        while True:
            direction = points[i] - start
            distsq = GeomMath.lensq(direction)
            if tolerance_sq < distsq:
                return GeomMath.unit_vector(direction)
            i += 1
            if i == num_points:
                if distsq == 0:
                    return cls.left_tangent(points)
                return GeomMath.unit_vector(direction)

    @classmethod
    def right_tangent_tolerance(cls, points: NDArray[np.float64], tolerance_sq: float) -> NDArray[np.float64]:
        """Backward tangent at the last point, looking past points close to the end.

        Mirror image of left_tangent_tolerance walking backwards from the last point.
        """
        num_points = points.shape[0]
        if num_points < 2:
            raise ValueError("Right tangent needs at least 2 points")
        if tolerance_sq < 0:
            raise ValueError(f"tolerance_sq must not be negative, got {tolerance_sq}")
        end = points[-1]
        i = num_points - 2
        while True:
            direction = points[i] - end
            distsq = GeomMath.lensq(direction)
            if tolerance_sq < distsq:
                return GeomMath.unit_vector(direction)
            if i == 0:
                if distsq == 0:
                    return cls.right_tangent(points)
                return GeomMath.unit_vector(direction)
            i -= 1

    @staticmethod
    def center_tangent(points: NDArray[np.float64], center: int) -> NDArray[np.float64]:
        """Backward tangent at the interior point _center_.

        The direction from point center+1 to point center-1. If these two points
        coincide, the segment center-1 -> center rotated by 90 degrees is used.

        Raises:
            ValueError: If _center_ is not an interior index.
        """
        if not 0 < center < points.shape[0] - 1:
            raise ValueError(f"center must be an interior index, got {center} for {points.shape[0]} points")
        if GeomMath.points_equal(points[center + 1], points[center - 1]):
            direction = GeomMath.rot90(points[center] - points[center - 1])
        else:
            direction = points[center - 1] - points[center + 1]
        return GeomMath.unit_vector(direction)
