"""Fitting of digitized points with piecewise cubic Bezier curves.

Based on the algorithm of Philip J. Schneider, "An Algorithm for Automatically
Fitting Digitized Curves", Graphics Gems, Academic Press, 1990, with the corner
("hook") detection and tangent handling found in later freehand drawing tools.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from inkfit.common import (
    FIT_FAILED,
    POINT_TYPE_CUBIC_CONTROL,
    POINT_TYPE_ON_CURVE,
    UNCONSTRAINED_TANGENT,
    FitStatus,
    PointsLike,
    VectorLike,
)
from inkfit.fit_config import DEFAULT_FIT_CONFIG, FitConfig
from inkfit.fit_processing import (
    FitErrorAnalyzer,
    LeastSquaresEstimator,
    NewtonRaphsonReparameterizer,
)
from inkfit.fit_support import (
    ChordLengthParameterizer,
    PointSequenceCleaner,
    TangentEstimator,
    as_point_array,
)
from inkfit.geom import GeomMath

logger = logging.getLogger(__name__)


###############################################################################
# FitResult
###############################################################################
@dataclass
class FitResult:
    """Outcome of a fit.

    Attributes:
        status: SUCCESS, EMPTY (nothing to fit) or FAILED (segment budget too small)
        segments: Control points of shape (n, 4, 2), one row of four points per segment
        split_points: Indices into the fitted point sequence where one segment ends and
            the next one starts, shape (n - 1,)
    """

    status: FitStatus
    segments: NDArray[np.float64] = field(default_factory=lambda: np.empty((0, 4, 2), dtype=np.float64))
    split_points: NDArray[np.intp] = field(default_factory=lambda: np.empty(0, dtype=np.intp))

    @classmethod
    def empty(cls) -> FitResult:
        """Result for input without anything to fit."""
        return cls(FitStatus.EMPTY)

    @classmethod
    def failed(cls) -> FitResult:
        """Result for a fit that did not succeed within the segment budget."""
        return cls(FitStatus.FAILED)

    @property
    def ok(self) -> bool:
        """True unless the fit failed. An empty result is ok."""
        return self.status != FitStatus.FAILED

    @property
    def num_segments(self) -> int:
        """Number of cubic segments, 0 for empty and failed results."""
        return int(self.segments.shape[0])

    @property
    def control_points(self) -> NDArray[np.float64]:
        """All control points in one flat array of shape (n * 4, 2)."""
        return self.segments.reshape(-1, 2)

    def to_path_points(self) -> NDArray[np.float64]:
        """The segments as one continuous sequence of (x, y, type) points.

        Shared end points of adjacent segments appear once. On-curve points get
        type 0.0, cubic control points type 3.0.

        Returns:
            NDArray[np.float64]: points of shape (3 * n + 1, 3), or (0, 3) without segments
        """
        num = self.num_segments
        if num == 0:
            return np.empty((0, 3), dtype=np.float64)
        result = np.empty((3 * num + 1, 3), dtype=np.float64)
        result[0, :2] = self.segments[0, 0]
        result[1:, :2] = self.segments[:, 1:, :].reshape(-1, 2)
        result[:, 2] = POINT_TYPE_CUBIC_CONTROL
        result[::3, 2] = POINT_TYPE_ON_CURVE
        return result


###############################################################################
# BezierFitter
###############################################################################
class BezierFitter:
    """Recursive split-and-retry fitting of cubic Bezier segments to a point sequence."""

    def __init__(self, config: Optional[FitConfig] = None):
        """Initialize the fitter.

        Args:
            config: Fitting parameters, DEFAULT_FIT_CONFIG if None
        """
        self.config = DEFAULT_FIT_CONFIG if config is None else config
        self.config.validate()

    def check_error_and_budget(self, error: float, max_segments: int) -> None:
        """Raise ValueError if _error_ or _max_segments_ are out of range."""
        if not (error >= 0.0 and math.isfinite(error)):
            raise ValueError(f"error must be a finite non-negative number, got {error}")
        if isinstance(max_segments, bool) or not isinstance(max_segments, (int, np.integer)):
            raise ValueError(f"max_segments must be an integer, got {max_segments!r}")
        if not 0 < max_segments < self.config.max_segments_limit:
            raise ValueError(
                f"max_segments must be in (0, {self.config.max_segments_limit}), got {max_segments}"
            )

    @staticmethod
    def check_tangent(tangent: VectorLike) -> NDArray[np.float64]:
        """Return _tangent_ as unit vector, or as zero vector if it is unconstrained."""
        vector = GeomMath.as_vector(tangent)
        if not np.isfinite(vector).all():
            raise ValueError(f"tangent must be finite, got {vector}")
        if GeomMath.is_zero(vector):
            return UNCONSTRAINED_TANGENT
        return GeomMath.unit_vector(vector)

    def fit_full_inplace(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        bezier_buffer: NDArray[np.float64],
        split_points_buffer: Optional[NDArray[np.intp]],
        data: PointsLike,
        start_tangent: VectorLike,
        end_tangent: VectorLike,
        error: float,
        max_segments: int,
    ) -> int:
        """Fit _data_ writing the control points into the caller-owned _bezier_buffer_.

        No cleaning of _data_ takes place: the caller makes sure it holds no NaNs and
        no adjacent duplicates. The fit runs in scratch buffers, the caller's buffers
        are only written if the fit succeeds.

        Args:
            bezier_buffer: Output buffer of shape (>= max_segments * 4, 2), float64
            split_points_buffer: Optional output buffer of length >= max_segments - 1
            data: Points of shape (n, 2) or (n, 3), n > 0
            start_tangent: Unit tangent at the start, or (0, 0) for unconstrained
            end_tangent: Unit (backward) tangent at the end, or (0, 0) for unconstrained
            error: Bound of the squared fitting error (>= 0)
            max_segments: Maximum number of segments (0 < max_segments < 2**28)

        Returns:
            int: number of segments written, 0 if there is nothing to fit, or -1 if the
                points cannot be fitted with max_segments segments

        Raises:
            ValueError: On invalid arguments; no output is written in that case.
        """
        points = as_point_array(data)
        if points.shape[0] == 0:
            raise ValueError("data must contain at least one point")
        self.check_error_and_budget(error, max_segments)
        tangent1 = self.check_tangent(start_tangent)
        tangent2 = self.check_tangent(end_tangent)
        if not (
            isinstance(bezier_buffer, np.ndarray)
            and bezier_buffer.ndim == 2
            and bezier_buffer.shape[0] >= max_segments * 4
            and bezier_buffer.shape[1] == 2
        ):
            raise ValueError(f"bezier_buffer must have shape (>= {max_segments * 4}, 2)")
        if split_points_buffer is not None and not (
            isinstance(split_points_buffer, np.ndarray)
            and split_points_buffer.ndim == 1
            and split_points_buffer.shape[0] >= max_segments - 1
        ):
            raise ValueError(f"split_points_buffer must have length >= {max_segments - 1}")

        count, bezier_scratch, split_points_scratch = self._fit_scratch(points, tangent1, tangent2, error, max_segments)
        if count > 0:
            bezier_buffer[: count * 4] = bezier_scratch[: count * 4]
            if split_points_buffer is not None:
                split_points_buffer[: count - 1] = split_points_scratch[: count - 1]
        return count

    def fit_points(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        points: NDArray[np.float64],
        start_tangent: NDArray[np.float64],
        end_tangent: NDArray[np.float64],
        error: float,
        max_segments: int,
    ) -> FitResult:
        """Fit checked _points_ with checked tangents and return an owned FitResult.

        Segments are only copied into the result on success.
        """
        if points.shape[0] < 2:
            return FitResult.empty()

        count, bezier_buffer, split_points_buffer = self._fit_scratch(
            points, start_tangent, end_tangent, error, max_segments
        )
        if count < 0:
            return FitResult.failed()
        if count == 0:
            return FitResult.empty()
        return FitResult(
            status=FitStatus.SUCCESS,
            segments=bezier_buffer[: count * 4].reshape(count, 4, 2).copy(),
            split_points=split_points_buffer[: count - 1].copy(),
        )

    def _fit_scratch(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        points: NDArray[np.float64],
        start_tangent: NDArray[np.float64],
        end_tangent: NDArray[np.float64],
        error: float,
        max_segments: int,
    ) -> Tuple[int, NDArray[np.float64], NDArray[np.intp]]:
        """Fit _points_ into freshly allocated buffers, returns (count, bezier buffer, split points buffer)."""
        num_points = points.shape[0]
        # A segment spans at least one gap between points, so at most n - 1 segments fit
        capacity = min(max_segments, max(num_points - 1, 1))
        bezier_buffer = np.empty((capacity * 4, 2), dtype=np.float64)
        split_points_buffer = np.zeros(capacity - 1, dtype=np.intp)
        u_scratch = np.empty(num_points, dtype=np.float64)

        count = self._fit_recursive(
            bezier_buffer, split_points_buffer, points, start_tangent, end_tangent, error, max_segments, 0, u_scratch
        )
        return count, bezier_buffer, split_points_buffer

    @staticmethod
    def _fit_pair(
        bezier: NDArray[np.float64],
        data: NDArray[np.float64],
        start_tangent: NDArray[np.float64],
        end_tangent: NDArray[np.float64],
    ) -> None:
        """Trivial fit of exactly two points."""
        bezier[0] = data[0]
        bezier[3] = data[1]
        with np.errstate(over="ignore"):
            dist = GeomMath.l2(data[1] - data[0]) * (1.0 / 3.0)
        if not math.isfinite(dist):
            # Numerical problem, fall back to a straight line segment
            bezier[1] = bezier[0]
            bezier[2] = bezier[3]
            return
        if GeomMath.is_zero(start_tangent):
            bezier[1] = (2 * bezier[0] + bezier[3]) * (1.0 / 3.0)
        else:
            bezier[1] = bezier[0] + dist * start_tangent
        if GeomMath.is_zero(end_tangent):
            bezier[2] = (bezier[0] + 2 * bezier[3]) * (1.0 / 3.0)
        else:
            bezier[2] = bezier[3] + dist * end_tangent

    def _fit_single(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        bezier: NDArray[np.float64],
        data: NDArray[np.float64],
        u: NDArray[np.float64],
        start_tangent: NDArray[np.float64],
        end_tangent: NDArray[np.float64],
        error: float,
    ) -> tuple[float, int]:
        """One pass of least-squares fit, reparameterization and error analysis."""
        LeastSquaresEstimator.generate_bezier(bezier, data, u, start_tangent, end_tangent, error, self.config)
        NewtonRaphsonReparameterizer.reparameterize(data, u, bezier)
        return FitErrorAnalyzer.max_error_ratio(
            data, u, bezier, self.config.distance_tolerance(error), self.config.hook_scale
        )

    def _fit_recursive(
        # pylint: disable=too-many-arguments,too-many-positional-arguments,too-many-locals,too-many-return-statements
        self,
        bezier: NDArray[np.float64],
        split_points: Optional[NDArray[np.intp]],
        data: NDArray[np.float64],
        start_tangent: NDArray[np.float64],
        end_tangent: NDArray[np.float64],
        error: float,
        max_segments: int,
        offset: int,
        u_scratch: NDArray[np.float64],
    ) -> int:
        """Fit _data_ into the window _bezier_ of the output buffer.

        Each recursive call gets disjoint views of the bezier and split point
        buffers. _offset_ is the index of data[0] in the top-level sequence, so
        split points are recorded as top-level indices. _u_scratch_ is shared by
        all calls; a call no longer needs its parameters once it recurses.
        """
        num_points = data.shape[0]
        if num_points < 2:
            return 0
        if num_points == 2:
            self._fit_pair(bezier, data, start_tangent, end_tangent)
            return 1

        # Parameterize points, and attempt to fit curve
        segment = bezier[0:4]
        u = ChordLengthParameterizer.parameterize(data, out=u_scratch, config=self.config)
        if u[-1] == 0.0:
            # Zero-length path: every point of data is the same
            return 0

        ratio, split_point = self._fit_single(segment, data, u, start_tangent, end_tangent, error)
        if abs(ratio) <= 1.0:
            return 1

        # If the error is not too large, try some reparameterization and iteration
        if 0.0 <= ratio <= self.config.retry_error_ratio:
            for _ in range(self.config.max_iterations):
                ratio, split_point = self._fit_single(segment, data, u, start_tangent, end_tangent, error)
                if abs(ratio) <= 1.0:
                    return 1
        is_corner = ratio < 0

        if is_corner:
            if split_point == 0:
                if GeomMath.is_zero(start_tangent):
                    # Got a spike even with unconstrained start tangent
                    split_point += 1
                else:
                    logger.debug("fit_cubic: corner at start, retrying with unconstrained start tangent")
                    return self._fit_recursive(
                        bezier,
                        split_points,
                        data,
                        UNCONSTRAINED_TANGENT,
                        end_tangent,
                        error,
                        max_segments,
                        offset,
                        u_scratch,
                    )
            elif split_point == num_points - 1:
                if GeomMath.is_zero(end_tangent):
                    # Got a spike even with unconstrained end tangent
                    split_point -= 1
                else:
                    logger.debug("fit_cubic: corner at end, retrying with unconstrained end tangent")
                    return self._fit_recursive(
                        bezier,
                        split_points,
                        data,
                        start_tangent,
                        UNCONSTRAINED_TANGENT,
                        error,
                        max_segments,
                        offset,
                        u_scratch,
                    )

        if max_segments <= 1:
            return FIT_FAILED
        if not 0 < split_point < num_points - 1:
            logger.debug("fit_cubic: no interior split point (%d of %d points)", split_point, num_points)
            return FIT_FAILED

        # Fitting failed -- split at the max error point and fit recursively
        if is_corner:
            rec_tangent1 = rec_tangent2 = UNCONSTRAINED_TANGENT
        else:
            rec_tangent2 = TangentEstimator.center_tangent(data, split_point)
            rec_tangent1 = -rec_tangent2

        nsegs1 = self._fit_recursive(
            bezier,
            split_points,
            data[: split_point + 1],
            start_tangent,
            rec_tangent2,
            error,
            max_segments - 1,
            offset,
            u_scratch,
        )
        if nsegs1 < 0:
            logger.debug("fit_cubic[1]: recursive call failed")
            return FIT_FAILED
        if split_points is not None and nsegs1 > 0:
            split_points[nsegs1 - 1] = offset + split_point

        nsegs2 = self._fit_recursive(
            bezier[nsegs1 * 4 :],
            None if split_points is None else split_points[nsegs1:],
            data[split_point:],
            rec_tangent1,
            end_tangent,
            error,
            max_segments - nsegs1,
            offset + split_point,
            u_scratch,
        )
        if nsegs2 < 0:
            logger.debug("fit_cubic[2]: recursive call failed")
            return FIT_FAILED

        logger.debug(
            "fit_cubic: success[nsegs: %d+%d=%d] on max_segments: %d", nsegs1, nsegs2, nsegs1 + nsegs2, max_segments
        )
        return nsegs1 + nsegs2


###############################################################################
# Functions
###############################################################################


def fit(points: PointsLike, error: float, config: Optional[FitConfig] = None) -> FitResult:
    """Fit a single cubic Bezier segment to _points_ (NaNs and duplicates are removed first).

    Args:
        points: Digitized points as (x, y) or (x, y, type) rows
        error: Bound of the squared fitting error (>= 0)
        config: Fitting parameters, DEFAULT_FIT_CONFIG if None

    Returns:
        FitResult: one segment, empty, or failed
    """
    return fit_bounded(points, error, 1, config)


def fit_bounded(points: PointsLike, error: float, max_segments: int, config: Optional[FitConfig] = None) -> FitResult:
    """Fit at most _max_segments_ cubic Bezier segments to _points_.

    Non-finite points and adjacent duplicates are removed first, both end tangents
    are unconstrained. Split points of the result index the cleaned sequence.

    Raises:
        ValueError: If _points_ is empty or _error_ / _max_segments_ are out of range.
    """
    fitter = BezierFitter(config)
    raw = as_point_array(points)
    if raw.shape[0] == 0:
        raise ValueError("points must contain at least one point")
    fitter.check_error_and_budget(error, max_segments)

    cleaned = PointSequenceCleaner.remove_invalid_and_duplicates(raw)
    if cleaned.shape[0] < 2:
        return FitResult.empty()
    return fitter.fit_points(cleaned, UNCONSTRAINED_TANGENT, UNCONSTRAINED_TANGENT, error, max_segments)


def fit_full(
    # pylint: disable=too-many-arguments,too-many-positional-arguments
    points: PointsLike,
    start_tangent: VectorLike,
    end_tangent: VectorLike,
    error: float,
    max_segments: int,
    config: Optional[FitConfig] = None,
) -> FitResult:
    """Fit at most _max_segments_ cubic Bezier segments to clean _points_ with tangent constraints.

    No cleaning takes place: _points_ must not contain NaNs or adjacent duplicates.
    A tangent of (0, 0) is unconstrained; other tangents are normalized. The end
    tangent points backwards, i.e. from the last point into the curve.

    Raises:
        ValueError: If _points_ is empty or an argument is out of range.
    """
    fitter = BezierFitter(config)
    data = as_point_array(points)
    if data.shape[0] == 0:
        raise ValueError("points must contain at least one point")
    fitter.check_error_and_budget(error, max_segments)
    tangent1 = fitter.check_tangent(start_tangent)
    tangent2 = fitter.check_tangent(end_tangent)
    return fitter.fit_points(data, tangent1, tangent2, error, max_segments)
