"""
Global constants for WealthDP.

Purpose
-------
Centralizes default values and numerical thresholds used throughout the
WealthDP codebase.

Usage
-----
>>> from wealthdp.constants import DEFAULT_TIE_TOLERANCE, AMBIGUOUS
>>>
>>> result = solve_backward(tensor, utilities, tie_tolerance=DEFAULT_TIE_TOLERANCE)
>>> n_ambiguous = int((result.optimal_strategies == AMBIGUOUS).sum())

Categories
----------
- Policy encoding: ambiguous-cell marker
- Solver: tie tolerance, backend defaults
- Grid: coarse-tail fallbacks and limits
- Distributions: Gaussian support width
- Visualization: default confidence levels
"""

from typing import Tuple

__all__ = [
    # Policy encoding
    "AMBIGUOUS",
    "BANKRUPTCY_BIN",
    # Solver
    "DEFAULT_TIE_TOLERANCE",
    "DEFAULT_BACKEND",
    "DEFAULT_MAX_WORKERS",
    # Grid
    "DEFAULT_MAX_COARSE_BINS",
    "FALLBACK_COARSE_STEP",
    "MIN_COARSE_STEP",
    "FALLBACK_COARSE_MAX_FACTOR",
    # Distributions
    "DEFAULT_SUPPORT_SIGMAS",
    "NEGLIGIBLE_PROBABILITY",
    # Visualization
    "DEFAULT_CONFIDENCE_LEVELS",
    "NO_BOUND",
]


# =============================================================================
# Policy Encoding
# =============================================================================

AMBIGUOUS: int = -1
"""Policy marker for cells where two or more strategies tie for the optimum.

Strategy indices are non-negative, so the marker never collides with a
determined cell. Use ``policy == AMBIGUOUS`` to build a mask.
"""

BANKRUPTCY_BIN: int = 0
"""Index of the absorbing bankruptcy bin in the extended grid."""


# =============================================================================
# Solver Defaults
# =============================================================================

DEFAULT_TIE_TOLERANCE: float = 1e-9
"""Relative tolerance under which two expected utilities count as tied."""

DEFAULT_BACKEND: str = "numpy"
"""Default per-period contraction backend.

Options: "numpy" (vectorized, single thread), "threaded" (wealth-bin chunks
on a thread pool).
"""

DEFAULT_MAX_WORKERS: int = 4
"""Default worker count for the threaded backend."""


# =============================================================================
# Grid Defaults
# =============================================================================

DEFAULT_MAX_COARSE_BINS: int = 2_000
"""Upper limit on geometric tail bins; the tail ratio widens beyond it."""

FALLBACK_COARSE_STEP: float = 0.05
"""Tail ratio used when neither the grid nor the strategies define one."""

MIN_COARSE_STEP: float = 1e-4
"""Smallest accepted tail ratio (keeps log-spacing finite)."""

FALLBACK_COARSE_MAX_FACTOR: float = 2.0
"""Tail upper bound as a multiple of the last boundary when the computed
bound is not finite."""


# =============================================================================
# Distribution Defaults
# =============================================================================

DEFAULT_SUPPORT_SIGMAS: float = 6.0
"""Half-width of the Gaussian return support in standard deviations.

Mass outside mu +/- 6 sigma is about 2e-9.
"""

NEGLIGIBLE_PROBABILITY: float = 1e-15
"""Destination probabilities at or below this are trimmed from band edges."""


# =============================================================================
# Confidence Levels
# =============================================================================

DEFAULT_CONFIDENCE_LEVELS: Tuple[float, ...] = (0.50, 0.80, 0.95)
"""Default central probabilities for quantile traces."""

NO_BOUND: int = -1
"""Quantile bound of a period whose distribution row carries less mass than
the tail (e.g. periods before the trajectory seed)."""
