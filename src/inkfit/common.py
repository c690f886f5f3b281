"""Central module containing types, constants and definitions for curve fitting."""

from __future__ import annotations

from enum import Enum, auto
from typing import Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

###############################################################################
# Types
###############################################################################

# Anything that can be turned into an (n, 2) float64 array of points
PointsLike = Union[Sequence[Sequence[float]], NDArray[np.float64]]

# A single point or direction vector (x, y)
VectorLike = Union[Tuple[float, float], Sequence[float], NDArray[np.float64]]


###############################################################################
# Enums and Consts
###############################################################################


class FitStatus(Enum):
    """Enum to define the outcome of a fit."""

    SUCCESS = auto()  # one or more segments have been generated
    EMPTY = auto()  # degenerate input, nothing to fit
    FAILED = auto()  # no acceptable fit within the segment budget


# Zero vector: tangent direction is not constrained and will be estimated
UNCONSTRAINED_TANGENT: NDArray[np.float64] = np.zeros(2, dtype=np.float64)
UNCONSTRAINED_TANGENT.setflags(write=False)

# Point types of the (x, y, type) encoding: on-curve point and cubic control point
POINT_TYPE_ON_CURVE: float = 0.0
POINT_TYPE_CUBIC_CONTROL: float = 3.0

# Return value of the in-place fitting functions if the budget was exhausted
FIT_FAILED: int = -1
