"""Bezier curve evaluation utilities for curve fitting and sampling."""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Binomial coefficients, rows 0..3 of Pascal's triangle
_PASCAL: Tuple[Tuple[int, ...], ...] = (
    (1,),
    (1, 1),
    (1, 2, 1),
    (1, 3, 3, 1),
)

MAX_DEGREE: int = len(_PASCAL) - 1


class BezierCurve:
    """Class to handle Bezier curve evaluation of degree 0 to 3.

    Provides point evaluation via Bernstein weights (used throughout the fitting
    code), derivative control polygons and uniform sampling of cubic curves.
    """

    @staticmethod
    def evaluate(
        degree: int,
        control_points: Union[Sequence[Tuple[float, float]], NDArray[np.float64]],
        t: float,
    ) -> NDArray[np.float64]:
        """
        Evaluate a Bezier curve of the given _degree_ at parameter value _t_.

        Let s = 1 - t.
            degree 1 gives (s, t) * V, i.e. t of the way from V[0] to V[1].
            degree 2 gives (s**2, 2*s*t, t**2) * V.
            degree 3 gives (s**3, 3*s**2*t, 3*s*t**2, t**3) * V.

        Values of _t_ outside [0, 1] extrapolate the curve. At t=0 (t=1) the
        result equals the first (last) control point exactly.

        Args:
            degree (int): 3 for cubic, 2 for quadratic, 1 for linear, 0 for a point
            control_points: degree+1 control points (x, y)
            t (float): the parameter value

        Returns:
            NDArray[np.float64]: the point (x, y) on the curve

        Raises:
            ValueError: If the degree is not supported or the number of control
                points does not match the degree.
        """
        if not 0 <= degree <= MAX_DEGREE:
            raise ValueError(f"Bezier degree must be between 0 and {MAX_DEGREE}, got {degree}")
        if len(control_points) < degree + 1:
            raise ValueError(f"Degree {degree} needs {degree + 1} control points, got {len(control_points)}")

        s = 1.0 - t
        spow = [1.0, s, 0.0, 0.0]
        tpow = [1.0, t, 0.0, 0.0]
        for i in range(1, degree):
            spow[i + 1] = spow[i] * s
            tpow[i + 1] = tpow[i] * t

        pascal_row = _PASCAL[degree]
        pt0 = control_points[0]
        x = spow[degree] * pt0[0]
        y = spow[degree] * pt0[1]
        for i in range(1, degree + 1):
            weight = pascal_row[i] * spow[degree - i] * tpow[i]
            pti = control_points[i]
            x += weight * pti[0]
            y += weight * pti[1]
        return np.array([x, y], dtype=np.float64)

    @staticmethod
    def evaluate_many(
        degree: int,
        control_points: Union[Sequence[Tuple[float, float]], NDArray[np.float64]],
        t: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """
        Evaluate a Bezier curve of the given _degree_ at all parameter values of _t_ using NumPy.

        Args:
            degree (int): 0..3
            control_points: degree+1 control points (x, y)
            t (NDArray[np.float64]): parameter values of shape (n,)

        Returns:
            NDArray[np.float64]: points of shape (n, 2)
        """
        if not 0 <= degree <= MAX_DEGREE:
            raise ValueError(f"Bezier degree must be between 0 and {MAX_DEGREE}, got {degree}")
        points_array = np.asarray(control_points, dtype=np.float64)
        if points_array.shape[0] < degree + 1:
            raise ValueError(f"Degree {degree} needs {degree + 1} control points, got {points_array.shape[0]}")

        t_arr = np.asarray(t, dtype=np.float64)
        s_arr = 1.0 - t_arr
        result = np.zeros((t_arr.shape[0], 2), dtype=np.float64)
        for i, coeff in enumerate(_PASCAL[degree]):
            weight = coeff * s_arr ** (degree - i) * t_arr**i
            result += weight[:, np.newaxis] * points_array[i, :2]
        return result

    @staticmethod
    def derivative_control_points(
        control_points: Union[Sequence[Tuple[float, float]], NDArray[np.float64]],
    ) -> NDArray[np.float64]:
        """
        Control polygon of the first derivative (hodograph) of a Bezier curve.

        The derivative of a degree n curve with control points V is the degree n-1
        curve with control points n * (V[j+1] - V[j]).

        Args:
            control_points: n+1 control points (x, y), n >= 1

        Returns:
            NDArray[np.float64]: n control points of shape (n, 2)
        """
        points_array = np.asarray(control_points, dtype=np.float64)[:, :2]
        degree = points_array.shape[0] - 1
        if degree < 1:
            raise ValueError("Derivative needs at least two control points")
        return degree * (points_array[1:] - points_array[:-1])

    @classmethod
    def sample_cubic(
        cls,
        control_points: Union[Sequence[Tuple[float, float]], NDArray[np.float64]],
        steps: int,
    ) -> NDArray[np.float64]:
        """
        Sample a cubic Bezier curve at steps+1 equidistant parameter values using NumPy.

        The first and last sample equal the end points of the curve exactly.

        Args:
            control_points: Control points, exactly 4 points: start, control1, control2, end
            steps: Number of intervals to divide the parameter range into

        Returns:
            NDArray[np.float64] of shape (steps+1, 2) containing the sampled points
        """
        if steps < 1:
            raise ValueError(f"steps must be at least 1, got {steps}")
        points_array = np.asarray(control_points, dtype=np.float64)
        if points_array.shape[0] != 4:
            raise ValueError(f"Cubic curve needs 4 control points, got {points_array.shape[0]}")

        t = np.linspace(0, 1, steps + 1, dtype=np.float64)
        result = cls.evaluate_many(3, points_array, t)

        # Pin the end points, the polynomial form may be off by rounding
        result[0] = points_array[0, :2]
        result[-1] = points_array[3, :2]
        return result


def evaluate(
    degree: int,
    control_points: Union[Sequence[Tuple[float, float]], NDArray[np.float64]],
    t: float,
) -> NDArray[np.float64]:
    """Evaluate a Bezier curve of degree 0..3 at parameter _t_, see BezierCurve.evaluate."""
    return BezierCurve.evaluate(degree, control_points, t)
