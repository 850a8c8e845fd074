"""
Wealth grid extension for WealthDP.

Purpose
-------
The caller's grid stops at a finite wealth, but strategies carry wealth both
below zero and above the last boundary. The extended grid adds

- an absorbing bankruptcy bin (-inf, b_0) at index 0,
- a geometric (log-spaced) coarse tail from the last original boundary up to
  a conservative bound on reachable wealth,
- a final open bin [c_last, +inf),

so every transition lands in a well-defined bin.

Bounds
------
    coarse_min = b_last
    coarse_max = (b_last + max prefix sum of cashflows) * (1 + g * periods)
    g          = max over strategies of (location + scale), floored at 0
    ratio      = max(wealth_step / b_last, min over strategies of (|location| + scale))

Tail edges grow by (1 + ratio) per bin because return supports scale with
wealth, so bin widths must scale with it too.

Layout
------
``edges`` has one more entry than ``values``: bin k covers
[edges[k], edges[k+1]) and is represented by values[k].

    edges  = [-inf, b_0 .. b_{n-1}, c_1 .. c_{m-1}, +inf]
    values = [v_0, v_0 .. v_{n-1}, mid(c_1,c_2) .. mid(c_{m-2},c_{m-1}), mid(c_{m-2},c_{m-1})]

The interval [c_0, c_1) = [b_{n-1}, c_1) is the caller's last bin, so tail
midpoints start at [c_1, c_2). Original bin k sits at extended index k + 1.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from .constants import (
    DEFAULT_MAX_COARSE_BINS,
    FALLBACK_COARSE_MAX_FACTOR,
    FALLBACK_COARSE_STEP,
    MIN_COARSE_STEP,
)
from .problem import Problem
from .strategies import Strategy
from .utils import max_prefix_sum

__all__ = [
    "ExtendedGrid",
    "coarse_step",
    "coarse_max",
    "coarse_boundaries",
    "extend_wealth_grid",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtendedGrid:
    """
    Extended wealth grid.

    Attributes
    ----------
    edges : np.ndarray, shape (n_bins + 1,)
        Bin edges, -inf first and +inf last.
    values : np.ndarray, shape (n_bins,)
        Representative wealth of each bin.
    original_range : Tuple[int, int]
        Half-open window [start, stop) of the caller's bins in the extension.
    """

    edges: np.ndarray
    values: np.ndarray
    original_range: Tuple[int, int]

    @property
    def n_bins(self) -> int:
        return int(self.values.size)

    @property
    def original_slice(self) -> slice:
        return slice(*self.original_range)

    def to_original_index(self, extended_index: int) -> int:
        """Map an extended bin index to the caller's index (may fall outside)."""
        return int(extended_index) - self.original_range[0]

    def to_extended_index(self, original_index: int) -> int:
        return int(original_index) + self.original_range[0]


# ---------------------------------------------------------------------------
# Coarse tail parameters
# ---------------------------------------------------------------------------

def coarse_step(
    strategies: Sequence[Strategy],
    wealth_step: float,
    coarse_min: float,
) -> float:
    """Per-bin growth ratio of the coarse tail.

    At least the relative width of the caller's bins at the top of the grid
    and at least the spread of the narrowest strategy. Falls back to
    FALLBACK_COARSE_STEP when both are zero or undefined.
    """
    relative_step = wealth_step / coarse_min if coarse_min > 0 else 0.0
    spreads = [abs(s.location) + s.scale for s in strategies]
    narrowest = min(spreads) if spreads else 0.0

    step = max(relative_step, narrowest)
    if not np.isfinite(step) or step <= 0:
        step = FALLBACK_COARSE_STEP
    return float(max(step, MIN_COARSE_STEP))


def coarse_max(
    strategies: Sequence[Strategy],
    cashflows: np.ndarray,
    periods: int,
    original_max: float,
) -> float:
    """Conservative upper bound on wealth reachable within the horizon."""
    growth = max([s.location + s.scale for s in strategies], default=0.0)
    growth = max(growth, 0.0)
    bound = (original_max + max_prefix_sum(cashflows)) * (1.0 + growth * periods)
    if not np.isfinite(bound):
        bound = abs(original_max) * FALLBACK_COARSE_MAX_FACTOR
    return float(bound)


def coarse_boundaries(
    low: float,
    high: float,
    step: float,
    *,
    fallback_anchor: float = 1.0,
    max_bins: int = DEFAULT_MAX_COARSE_BINS,
) -> np.ndarray:
    """Geometric edges from *low* to at least *high* with ratio (1 + step).

    Always returns at least three edges (two tail intervals). When *low* is
    not positive the geometric part starts at *fallback_anchor* and *low* is
    prepended as a bridging edge.
    """
    anchor = low if low > 0 else max(fallback_anchor, 1.0)
    high = max(high, anchor * (1.0 + step))

    n = int(np.ceil(np.log(high / anchor) / np.log1p(step) - 1e-12))
    n = max(n, 2)
    if n > max_bins:
        widened = float((high / anchor) ** (1.0 / max_bins) - 1.0)
        logger.warning(
            f"Coarse tail needs {n} bins at ratio {step:.4g}; "
            f"widening ratio to {widened:.4g} to stay within {max_bins} bins."
        )
        step, n = widened, max_bins

    edges = anchor * np.power(1.0 + step, np.arange(n + 1))
    if anchor != low:
        edges = np.concatenate([[low], edges])
    return edges


# ---------------------------------------------------------------------------
# Extension
# ---------------------------------------------------------------------------

def extend_wealth_grid(
    problem: Problem,
    *,
    max_coarse_bins: int = DEFAULT_MAX_COARSE_BINS,
) -> ExtendedGrid:
    """
    Extend the caller's grid with a bankruptcy sink and a coarse tail.

    Parameters
    ----------
    problem : Problem
        Problem whose grid, strategies and cashflows bound reachable wealth.
    max_coarse_bins : int
        Limit on tail bins (see coarse_boundaries).

    Returns
    -------
    ExtendedGrid
    """
    boundaries = problem.wealth_boundaries
    c_min = float(boundaries[-1])
    c_max = coarse_max(problem.strategies, problem.cashflows, problem.periods, c_min)
    step = coarse_step(problem.strategies, problem.wealth_step, c_min)

    tail = coarse_boundaries(
        c_min, c_max, step,
        fallback_anchor=problem.wealth_step,
        max_bins=max_coarse_bins,
    )
    midpoints = (tail[1:-1] + tail[2:]) / 2.0

    edges = np.concatenate([[-np.inf], boundaries, tail[1:], [np.inf]])
    values = np.concatenate([
        problem.wealth_values[:1],
        problem.wealth_values,
        midpoints,
        midpoints[-1:],
    ])
    original_range = (1, 1 + problem.n_bins)

    logger.debug(
        f"Extended grid: {problem.n_bins} original bins + {midpoints.size + 2} synthetic "
        f"(tail ratio {step:.4g}, tail to {tail[-1]:,.0f})"
    )
    return ExtendedGrid(edges=edges, values=values, original_range=original_range)
