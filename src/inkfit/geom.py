"""Handling 2D vector geometry"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

from inkfit.common import VectorLike


###############################################################################
# GeomMath
###############################################################################
class GeomMath:
    """Class to provide various static methods related to 2D vector handling."""

    @staticmethod
    def as_vector(vector: VectorLike) -> NDArray[np.float64]:
        """
        Convert the given _vector_ into a float64 array of shape (2,).

        Args:
            vector (Tuple/List/NDArray): 2D vector - (x, y)

        Returns:
            NDArray[np.float64]: the vector as array

        Raises:
            ValueError: If the vector does not consist of exactly two values.
        """
        arr = np.asarray(vector, dtype=np.float64)
        if arr.shape != (2,):
            raise ValueError(f"vector must have shape (2,), got {arr.shape}")
        return arr

    @staticmethod
    def is_zero(vector: NDArray[np.float64]) -> bool:
        """True if both coordinates are zero, i.e. the vector marks an unconstrained tangent."""
        return vector[0] == 0.0 and vector[1] == 0.0

    @staticmethod
    def l2(vector: NDArray[np.float64]) -> float:
        """Euclidean norm of the given vector."""
        return math.hypot(vector[0], vector[1])

    @staticmethod
    def lensq(vector: NDArray[np.float64]) -> float:
        """Squared euclidean norm of the given vector."""
        return float(vector[0] * vector[0] + vector[1] * vector[1])

    @staticmethod
    def dot(vec_a: NDArray[np.float64], vec_b: NDArray[np.float64]) -> float:
        """Dot product of two 2D vectors."""
        return float(vec_a[0] * vec_b[0] + vec_a[1] * vec_b[1])

    @staticmethod
    def unit_vector(vector: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Scale the given _vector_ to length 1.

        A zero vector yields NaN coordinates, callers make sure not to pass one.

        Args:
            vector (NDArray[np.float64]): 2D vector - (x, y)

        Returns:
            NDArray[np.float64]: the normalized vector
        """
        mag = math.sqrt(vector[0] * vector[0] + vector[1] * vector[1])
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.asarray(vector, dtype=np.float64) / mag

    @staticmethod
    def rot90(vector: NDArray[np.float64]) -> NDArray[np.float64]:
        """Rotate the given vector by 90 degrees counter-clockwise."""
        return np.array([-vector[1], vector[0]], dtype=np.float64)

    @staticmethod
    def points_equal(pt_a: NDArray[np.float64], pt_b: NDArray[np.float64]) -> bool:
        """True if both points have exactly the same coordinates."""
        return pt_a[0] == pt_b[0] and pt_a[1] == pt_b[1]
