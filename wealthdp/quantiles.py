"""
Confidence-band extraction from trajectory distributions.

For each requested central probability q the tail mass is (1 - q) / 2. In
every period the lower bound is the first bin at which the cumulative mass
from the bottom reaches the tail, and the upper bound is the first bin at
which the cumulative mass from the top reaches it. Bounds are bin indices
(no interpolation); map them to wealth with QuantileTrace.wealth_bounds().
A period whose row holds less mass than the tail (all zeros before the
seed period) gets NO_BOUND (-1) for both bounds.

Example
-------
>>> dist = compute_trajectories(solution.extended, 0, 10)
>>> traces = find_quantiles(dist, [0.5, 0.9], start_period=0)
>>> [t.probability for t in traces]
[0.9, 0.5]
>>> lo, hi = traces[0].wealth_bounds(solution.extended.values)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from .constants import NO_BOUND
from .exceptions import ValidationError
from .types import QuantileTraceDict

__all__ = ["QuantileTrace", "find_quantiles"]

# Smallest tail mass searched for, so q = 1 bounds the support of the mass.
_MIN_TAIL = 1e-12


@dataclass(frozen=True)
class QuantileTrace:
    """
    Lower/upper bin bounds of one central probability over time.

    Attributes
    ----------
    probability : float
        Central probability q.
    x : np.ndarray, shape (n,)
        Periods start_period .. periods.
    lower : np.ndarray, shape (n,), int
        NO_BOUND where the period has no band.
    upper : np.ndarray, shape (n,), int
    """

    probability: float
    x: np.ndarray
    lower: np.ndarray
    upper: np.ndarray

    def wealth_bounds(self, values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Representative wealth of the lower and upper bins, NaN where unbounded."""
        values = np.asarray(values, dtype=float)
        lower = np.where(self.lower == NO_BOUND, np.nan, values[self.lower])
        upper = np.where(self.upper == NO_BOUND, np.nan, values[self.upper])
        return lower, upper

    def to_frame(self, values: np.ndarray | None = None) -> pd.DataFrame:
        """Period-indexed table of bounds, with wealth columns when *values* is given."""
        frame = pd.DataFrame(
            {"lower": self.lower, "upper": self.upper},
            index=pd.Index(self.x, name="period"),
        )
        if values is not None:
            frame["lower_wealth"], frame["upper_wealth"] = self.wealth_bounds(values)
        return frame

    def to_dict(self) -> QuantileTraceDict:
        return {
            "probability": float(self.probability),
            "x": self.x.tolist(),
            "lower": self.lower.tolist(),
            "upper": self.upper.tolist(),
        }


def find_quantiles(
    trajectories: np.ndarray,
    probabilities: Sequence[float],
    start_period: int = 0,
) -> List[QuantileTrace]:
    """
    Central-probability bands of a trajectory distribution matrix.

    Parameters
    ----------
    trajectories : np.ndarray, shape (periods + 1, n_bins)
        Output of compute_trajectories.
    probabilities : Sequence[float]
        Central probabilities in (0, 1].
    start_period : int
        First period to report.

    Returns
    -------
    List[QuantileTrace]
        One trace per probability, sorted by probability descending.

    Raises
    ------
    ValidationError
        On a malformed matrix, probability or start period.
    """
    trajectories = np.asarray(trajectories, dtype=float)
    if trajectories.ndim != 2 or trajectories.shape[1] == 0:
        raise ValidationError(
            f"trajectories must be a non-empty 2-D array, got shape {trajectories.shape}."
        )
    n_rows, n_bins = trajectories.shape
    if not 0 <= start_period < n_rows:
        raise ValidationError(f"start_period must be in [0, {n_rows}), got {start_period}.")

    levels = np.sort(np.asarray(probabilities, dtype=float))[::-1]
    if levels.size and not np.all((levels > 0) & (levels <= 1)):
        raise ValidationError(f"probabilities must lie in (0, 1], got {list(probabilities)}.")
    tails = np.maximum((1.0 - levels) / 2.0, _MIN_TAIL)

    rows = trajectories[start_period:]
    from_bottom = np.cumsum(rows, axis=1)
    from_top = np.cumsum(rows[:, ::-1], axis=1)

    x = np.arange(start_period, n_rows)
    lower = np.empty((levels.size, rows.shape[0]), dtype=np.int64)
    upper = np.empty_like(lower)
    for p in range(rows.shape[0]):
        lower[:, p] = np.searchsorted(from_bottom[p], tails, side="left")
        upper[:, p] = n_bins - 1 - np.searchsorted(from_top[p], tails, side="left")
    # Rows whose total mass never reaches the tail have no band.
    empty = (lower >= n_bins) | (upper < 0)
    lower[empty] = NO_BOUND
    upper[empty] = NO_BOUND

    return [
        QuantileTrace(probability=float(q), x=x, lower=lower[k], upper=upper[k])
        for k, q in enumerate(levels)
    ]
