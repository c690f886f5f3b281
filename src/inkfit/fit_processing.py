"""Least-squares control point estimation, reparameterization and error analysis."""

from __future__ import annotations

import logging
import math
from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from inkfit.bezier import BezierCurve
from inkfit.fit_config import DEFAULT_FIT_CONFIG, FitConfig
from inkfit.fit_support import TangentEstimator
from inkfit.geom import GeomMath

logger = logging.getLogger(__name__)


def _bernstein_cubic(u: NDArray[np.float64]) -> Tuple[NDArray, NDArray, NDArray, NDArray]:
    """Cubic Bernstein weights B0..B3 for all parameter values of _u_."""
    omu = 1.0 - u
    b0 = omu * omu * omu
    b1 = 3 * u * omu * omu
    b2 = 3 * u * u * omu
    b3 = u * u * u
    return b0, b1, b2, b3


###############################################################################
# LeastSquaresEstimator
###############################################################################
class LeastSquaresEstimator:
    """Least-squares estimation of the inner control points of a cubic Bezier curve.

    The first and last control points are placed exactly at the first and last data
    point. The inner ones are placed along the start and end tangent directions, at
    the distances minimizing the squared error of the data points against the
    curve evaluated at their parameters.
    """

    @classmethod
    def generate_bezier(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        cls,
        bezier: NDArray[np.float64],
        data: NDArray[np.float64],
        u: NDArray[np.float64],
        start_tangent: NDArray[np.float64],
        end_tangent: NDArray[np.float64],
        tolerance_sq: float,
        config: FitConfig = DEFAULT_FIT_CONFIG,
    ) -> None:
        """Fill _bezier_ (shape (4, 2)) with a least-squares fit of _data_.

        A zero tangent means unconstrained: it is estimated from the data, looking past
        points within sqrt(_tolerance_sq_) of the end point. An unconstrained start
        tangent gets one refinement pass: the first inner control point is estimated
        directly, and the direction towards it is used as new start tangent.
        """
        est_start = GeomMath.is_zero(start_tangent)
        est_end = GeomMath.is_zero(end_tangent)
        tangent1 = TangentEstimator.left_tangent_tolerance(data, tolerance_sq) if est_start else start_tangent
        tangent2 = TangentEstimator.right_tangent_tolerance(data, tolerance_sq) if est_end else end_tangent
        cls.estimate_lengths(bezier, data, u, tangent1, tangent2, config)
        # Tolerance based end tangents work better for freehand input than a full estimation
        if est_start:
            cls.estimate_bi(bezier, 1, data, u)
            if not GeomMath.points_equal(bezier[1], bezier[0]):
                tangent1 = GeomMath.unit_vector(bezier[1] - bezier[0])
            cls.estimate_lengths(bezier, data, u, tangent1, tangent2, config)

    @staticmethod
    def estimate_lengths(
        # pylint: disable=too-many-arguments,too-many-positional-arguments,too-many-locals
        bezier: NDArray[np.float64],
        data: NDArray[np.float64],
        u: NDArray[np.float64],
        tangent1: NDArray[np.float64],
        tangent2: NDArray[np.float64],
        config: FitConfig = DEFAULT_FIT_CONFIG,
    ) -> None:
        """Place the inner control points of _bezier_ along the given unit tangents.

        Solves the 2x2 system C * (alpha_l, alpha_r) = X by Cramer's rule. A singular
        system is solved with the constraint alpha_l == alpha_r. Distances below
        config.min_alpha are replaced by a third of the chord (Wu/Barsky heuristic).
        """
        bezier[0] = data[0]
        bezier[3] = data[-1]

        b0, b1, b2, b3 = _bernstein_cubic(u)
        a1 = b1[:, np.newaxis] * tangent1
        a2 = b2[:, np.newaxis] * tangent2

        c00 = float(np.sum(a1 * a1))
        c01 = float(np.sum(a1 * a2))
        c11 = float(np.sum(a2 * a2))

        # Offset of each data point from the curve with bezier[1] at bezier[0] and bezier[2] at bezier[3]
        shortfall = data - (b0 + b1)[:, np.newaxis] * bezier[0] - (b2 + b3)[:, np.newaxis] * bezier[3]
        x0 = float(np.sum(a1 * shortfall))
        x1 = float(np.sum(a2 * shortfall))

        det_c0_c1 = c00 * c11 - c01 * c01
        if det_c0_c1 != 0:
            det_c0_x = c00 * x1 - c01 * x0
            det_x_c1 = x0 * c11 - x1 * c01
            alpha_l = det_x_c1 / det_c0_c1
            alpha_r = det_c0_x / det_c0_c1
        else:
            # Under-determined: treat alpha_l and alpha_r as one variable by adding the columns of C
            row0 = c00 + c01
            row1 = c01 + c11
            if row0 != 0:
                alpha_l = alpha_r = x0 / row0
            elif row1 != 0:
                alpha_l = alpha_r = x1 / row1
            else:
                alpha_l = alpha_r = 0.0

        # Coincident control points would make the Newton-Raphson step divide by zero
        if not (alpha_l >= config.min_alpha and alpha_r >= config.min_alpha):
            alpha_l = alpha_r = GeomMath.l2(data[-1] - data[0]) * (1.0 / 3.0)

        bezier[1] = alpha_l * tangent1 + bezier[0]
        bezier[2] = alpha_r * tangent2 + bezier[3]

    @staticmethod
    def estimate_bi(
        bezier: NDArray[np.float64],
        ei: int,
        data: NDArray[np.float64],
        u: NDArray[np.float64],
    ) -> None:
        """Least-squares estimate of the single inner control point bezier[_ei_].

        The other three control points stay fixed. If the normal equation is
        singular the point is placed at a third of the chord from its end.
        """
        if ei not in (1, 2):
            raise ValueError(f"Inner control point index must be 1 or 2, got {ei}")
        oi = 3 - ei
        weights = _bernstein_cubic(u)
        b_ei = weights[ei]
        fixed = (
            weights[0][:, np.newaxis] * bezier[0]
            + weights[oi][:, np.newaxis] * bezier[oi]
            + weights[3][:, np.newaxis] * bezier[3]
        )
        num = np.sum(b_ei[:, np.newaxis] * (fixed - data), axis=0)
        den = -float(np.sum(b_ei * b_ei))

        if den != 0.0:
            bezier[ei] = num / den
        else:
            bezier[ei] = (oi * bezier[0] + ei * bezier[3]) * (1.0 / 3.0)


###############################################################################
# NewtonRaphsonReparameterizer
###############################################################################
class NewtonRaphsonReparameterizer:
    """Improve the parameter values of data points against a fitted cubic curve."""

    BLEND_STEP: float = 0.125

    @classmethod
    def reparameterize(
        cls,
        data: NDArray[np.float64],
        u: NDArray[np.float64],
        bezier: NDArray[np.float64],
    ) -> None:
        """Move every interior u[i] (in place) towards the closest point of _bezier_ to data[i].

        The first and last parameters stay 0.0 and 1.0. The result is kept
        non-decreasing: a parameter that would overtake its predecessor is held
        at the predecessor's value.
        """
        num_points = data.shape[0]
        if num_points < 2:
            raise ValueError(f"Reparameterization needs at least 2 points, got {num_points}")
        if num_points == 2:
            return
        u[1:-1] = cls.root_find(bezier, data[1:-1], u[1:-1])
        np.maximum.accumulate(u, out=u)

    @classmethod
    def root_find(
        cls,
        bezier: NDArray[np.float64],
        points: NDArray[np.float64],
        u: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """One Newton-Raphson step per point towards a local minimum of the distance to the curve.

        f(u) is the derivative of half the squared distance between _points_ and
        bezier(u). A step u - f(u)/f'(u) is taken where f'(u) > 0. Elsewhere the step
        would head for a maximum, so u is nudged down by u*0.98-0.01 (f > 0) or up by
        0.031+u*0.98 (f < 0), asymmetric to avoid cycling. Results are clamped to [0, 1],
        non-finite results are dropped. A result farther from the point than the old
        parameter is blended back towards it in steps of 1/8, or reverted completely.

        Args:
            bezier: Cubic control points of shape (4, 2)
            points: Data points of shape (n, 2)
            u: Current parameter values of shape (n,), within [0, 1]

        Returns:
            NDArray[np.float64]: improved parameter values of shape (n,)
        """
        ctrl1 = BezierCurve.derivative_control_points(bezier)
        ctrl2 = BezierCurve.derivative_control_points(ctrl1)

        q_u = BezierCurve.evaluate_many(3, bezier, u)
        q1_u = BezierCurve.evaluate_many(2, ctrl1, u)
        q2_u = BezierCurve.evaluate_many(1, ctrl2, u)

        diff = q_u - points
        numerator = np.sum(diff * q1_u, axis=1)
        denominator = np.sum(q1_u * q1_u, axis=1) + np.sum(diff * q2_u, axis=1)

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            newton = u - numerator / denominator
            nudge = np.where(numerator > 0.0, u * 0.98 - 0.01, np.where(numerator < 0.0, 0.031 + u * 0.98, u))
            improved = np.where(denominator > 0.0, newton, nudge)
        improved = np.where(np.isfinite(improved), improved, u)
        improved = np.clip(improved, 0.0, 1.0)

        # Make sure the improved parameter is not actually worse
        diff_lensq = np.sum(diff * diff, axis=1)
        pending = np.ones(u.shape[0], dtype=bool)
        proportion = cls.BLEND_STEP
        while True:
            new_diff = BezierCurve.evaluate_many(3, bezier, improved) - points
            pending &= np.sum(new_diff * new_diff, axis=1) > diff_lensq
            if not pending.any():
                break
            if proportion > 1.0:
                logger.debug("Newton-Raphson step reverted for %d point(s)", int(np.count_nonzero(pending)))
                improved[pending] = u[pending]
                break
            improved[pending] = (1.0 - proportion) * improved[pending] + proportion * u[pending]
            proportion += cls.BLEND_STEP
        return improved


###############################################################################
# FitErrorAnalyzer
###############################################################################
class FitErrorAnalyzer:
    """Measure how well a cubic curve fits the data and where to split it if it does not."""

    @staticmethod
    def hook_ratio(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        pt_a: NDArray[np.float64],
        pt_b: NDArray[np.float64],
        u: float,
        bezier: NDArray[np.float64],
        tolerance: float,
        hook_scale: float = DEFAULT_FIT_CONFIG.hook_scale,
    ) -> float:
        """Bulge of the curve at parameter _u_ between the neighbouring curve points _pt_a_ and _pt_b_.

        The curve point at _u_ is allowed to lie within a circle around the middle of
        a..b of radius hook_scale * |b - a| + tolerance. Returns 0 if it is closer
        than _tolerance_ to the middle, otherwise the distance divided by that radius.
        """
        on_curve = BezierCurve.evaluate(3, bezier, u)
        dist = GeomMath.l2(0.5 * (pt_a + pt_b) - on_curve)
        if dist < tolerance:
            return 0.0
        allowed = GeomMath.l2(pt_b - pt_a) * hook_scale + tolerance
        return dist / allowed

    @staticmethod
    def max_error_ratio(
        # pylint: disable=too-many-arguments,too-many-positional-arguments,too-many-locals
        data: NDArray[np.float64],
        u: NDArray[np.float64],
        bezier: NDArray[np.float64],
        tolerance: float,
        hook_scale: float = DEFAULT_FIT_CONFIG.hook_scale,
    ) -> Tuple[float, int]:
        """Largest deviation of _data_ from _bezier_ relative to _tolerance_, and the split index.

        Two measures are taken: the distance of each data point to the curve at its
        parameter, and the hook ratio of the curve between each pair of consecutive
        curve points. The larger one decides:
        - distance: returns sqrt(max squared distance) / tolerance and the index of the
          worst point.
        - hook: returns the negated hook ratio (a corner) and the index before the later
          point of the worst pair.
        A magnitude <= 1.0 means the fit is acceptable.

        Args:
            data: Points of shape (n, 2), n >= 2
            u: Parameters of shape (n,), u[0] == 0.0 and u[-1] == 1.0
            bezier: Cubic control points with bezier[0] == data[0] and bezier[3] == data[-1]
            tolerance: Distance tolerance (> 0)
            hook_scale: Bulge allowance factor of the hook test

        Returns:
            Tuple[float, int]: signed error ratio and split index
        """
        num_points = data.shape[0]
        if num_points < 2:
            raise ValueError(f"Error analysis needs at least 2 points, got {num_points}")

        curve_pts = BezierCurve.evaluate_many(3, bezier, u)
        curve_pts[0] = bezier[0]

        split_point = 0
        max_distsq = 0.0
        delta = curve_pts[1:] - data[1:]
        distsq = np.sum(delta * delta, axis=1)
        distsq = np.where(np.isnan(distsq), np.inf, distsq)
        worst = int(np.argmax(distsq))
        if distsq[worst] > 0.0:
            max_distsq = float(distsq[worst])
            split_point = worst + 1

        mid_curve = BezierCurve.evaluate_many(3, bezier, 0.5 * (u[:-1] + u[1:]))
        hook_dist = np.linalg.norm(0.5 * (curve_pts[:-1] + curve_pts[1:]) - mid_curve, axis=1)
        allowed = np.linalg.norm(curve_pts[1:] - curve_pts[:-1], axis=1) * hook_scale + tolerance
        with np.errstate(divide="ignore", invalid="ignore"):
            hooks = np.where(hook_dist < tolerance, 0.0, hook_dist / allowed)
        hooks = np.nan_to_num(hooks, nan=0.0)

        max_hook_ratio = 0.0
        snap_end = 0
        worst_hook = int(np.argmax(hooks))
        if hooks[worst_hook] > 0.0:
            max_hook_ratio = float(hooks[worst_hook])
            snap_end = worst_hook + 1

        dist_ratio = math.sqrt(max_distsq) / tolerance
        if max_hook_ratio <= dist_ratio:
            return dist_ratio, split_point
        return -max_hook_ratio, snap_end - 1
