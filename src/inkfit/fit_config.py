"""Tuning parameters of the curve fitter."""

from __future__ import annotations

import math
from dataclasses import dataclass

###############################################################################
# FitConfig
###############################################################################


@dataclass(frozen=True)
class FitConfig:
    """Tuning parameters of the cubic Bezier fitter.

    Attributes:
        max_iterations: Number of additional fit + reparameterize passes tried when
            the first attempt is close to acceptable.
        retry_error_ratio: Largest error ratio for which these additional passes are tried.
        hook_scale: Factor of the distance between two neighbouring curve points that a
            curve bulge may deviate (on top of the tolerance) before it counts as a corner.
        tolerance_epsilon: Added to the error bound before taking the square root to get
            the distance tolerance.
        min_alpha: Control point distances below this value are replaced by the
            Wu/Barsky heuristic (one third of the chord).
        parameter_end_warning: Deviations of the last chord-length parameter from 1.0
            above this value are logged as a warning.
        max_segments_limit: Exclusive upper bound of the segment budget.
    """

    max_iterations: int = 4
    retry_error_ratio: float = 3.0
    hook_scale: float = 0.2
    tolerance_epsilon: float = 1e-9
    min_alpha: float = 1.0e-6
    parameter_end_warning: float = 1e-13
    max_segments_limit: int = 1 << 28

    def validate(self) -> None:
        """Check the parameters for consistency.

        Raises:
            ValueError: If a parameter is out of its valid range.
        """
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must not be negative, got {self.max_iterations}")
        if not self.retry_error_ratio >= 1.0:
            raise ValueError(f"retry_error_ratio must be at least 1.0, got {self.retry_error_ratio}")
        if not (self.hook_scale >= 0.0 and math.isfinite(self.hook_scale)):
            raise ValueError(f"hook_scale must be a finite non-negative number, got {self.hook_scale}")
        if not self.tolerance_epsilon > 0.0:
            raise ValueError(f"tolerance_epsilon must be positive, got {self.tolerance_epsilon}")
        if not self.min_alpha >= 0.0:
            raise ValueError(f"min_alpha must not be negative, got {self.min_alpha}")
        if not self.parameter_end_warning >= 0.0:
            raise ValueError(f"parameter_end_warning must not be negative, got {self.parameter_end_warning}")
        if not 1 < self.max_segments_limit <= (1 << 28):
            raise ValueError(f"max_segments_limit must be in (1, 2**28], got {self.max_segments_limit}")

    def distance_tolerance(self, error: float) -> float:
        """Distance tolerance derived from the mean-squared _error_ bound."""
        return math.sqrt(error + self.tolerance_epsilon)

    def to_dict(self) -> dict:
        """Convert the configuration to a dictionary for serialization."""
        return {
            "max_iterations": self.max_iterations,
            "retry_error_ratio": self.retry_error_ratio,
            "hook_scale": self.hook_scale,
            "tolerance_epsilon": self.tolerance_epsilon,
            "min_alpha": self.min_alpha,
            "parameter_end_warning": self.parameter_end_warning,
            "max_segments_limit": self.max_segments_limit,
        }

    @classmethod
    def from_dict(cls, data: dict) -> FitConfig:
        """Create a FitConfig from a dictionary, missing keys take their defaults."""
        return cls(
            max_iterations=data.get("max_iterations", 4),
            retry_error_ratio=data.get("retry_error_ratio", 3.0),
            hook_scale=data.get("hook_scale", 0.2),
            tolerance_epsilon=data.get("tolerance_epsilon", 1e-9),
            min_alpha=data.get("min_alpha", 1.0e-6),
            parameter_end_warning=data.get("parameter_end_warning", 1e-13),
            max_segments_limit=data.get("max_segments_limit", 1 << 28),
        )


DEFAULT_FIT_CONFIG = FitConfig()
