"""
Forward propagation of the optimal policy.

Purpose
-------
Given the solved policy, keep from the full transition tensor only the band
of the strategy actually chosen at each (period, wealth) cell. Propagating a
point mass through these policy-induced transitions yields the wealth
distribution at every later period:

    dist[p+1][j] = Σ_i dist[p][i] * Q_p[i -> j]

The policy-induced tensor and the extended grid travel together as an
ExtendedSolution, which the visualization layer passes back unmodified.

Example
-------
>>> solution = solve(problem)
>>> dist = compute_trajectories(solution.extended, period_index=0, wealth_index=10)
>>> dist.shape
(problem.periods + 1, solution.extended.n_bins)
>>> np.allclose(dist.sum(axis=1), 1.0)
True
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .constants import AMBIGUOUS
from .exceptions import ValidationError
from .grid import ExtendedGrid
from .transitions import TransitionTensor

__all__ = [
    "OptimalTransitionTensor",
    "ExtendedSolution",
    "index_optimal_transition_tensor",
    "compute_trajectories",
]


@dataclass(frozen=True)
class OptimalTransitionTensor:
    """
    Banded transitions of the chosen strategy per (period, origin bin).

    Attributes
    ----------
    probabilities : np.ndarray, shape (periods, n_bins, bandwidth)
    band_start : np.ndarray, shape (periods, n_bins)
    band_width : np.ndarray, shape (periods, n_bins)
    strategies : np.ndarray, shape (periods, n_bins), int
        Strategy whose band was selected.
    """

    probabilities: np.ndarray
    band_start: np.ndarray
    band_width: np.ndarray
    strategies: np.ndarray

    @property
    def periods(self) -> int:
        return int(self.probabilities.shape[0])

    @property
    def n_bins(self) -> int:
        return int(self.probabilities.shape[1])

    def dense(self, period: int) -> np.ndarray:
        """Matrix M with M[next, start] = P(start -> next) for one period."""
        if not 0 <= period < self.periods:
            raise ValidationError(f"period must be in [0, {self.periods}), got {period}.")
        out = np.zeros((self.n_bins, self.n_bins))
        offsets = np.arange(self.probabilities.shape[2])
        mask = offsets < self.band_width[period][:, None]
        origin, k = np.nonzero(mask)
        out[self.band_start[period][origin] + k, origin] = self.probabilities[period, origin, k]
        return out

    def step(self, period: int, distribution: np.ndarray) -> np.ndarray:
        """Push *distribution* (over origin bins) through one period."""
        probs = self.probabilities[period]
        offsets = np.arange(probs.shape[1])
        dest = np.minimum(self.band_start[period][:, None] + offsets, self.n_bins - 1)
        weights = probs * distribution[:, None]
        return np.bincount(dest.ravel(), weights=weights.ravel(), minlength=self.n_bins)


@dataclass(frozen=True)
class ExtendedSolution:
    """
    Extended grid plus policy-induced transitions.

    Opaque to callers; consumed by compute_trajectories and find_quantiles.
    """

    grid: ExtendedGrid
    optimal_transitions: OptimalTransitionTensor

    @property
    def boundaries(self) -> np.ndarray:
        return self.grid.edges

    @property
    def values(self) -> np.ndarray:
        return self.grid.values

    @property
    def original_range(self) -> Tuple[int, int]:
        return self.grid.original_range

    @property
    def periods(self) -> int:
        return self.optimal_transitions.periods

    @property
    def n_bins(self) -> int:
        return self.grid.n_bins


def index_optimal_transition_tensor(
    tensor: TransitionTensor,
    policy: np.ndarray,
    first_maximizers: np.ndarray,
) -> OptimalTransitionTensor:
    """
    Select each cell's band from *tensor* according to *policy*.

    Cells still AMBIGUOUS in *policy* use the lowest-index maximiser, which
    attains the same expected utility as any other tied strategy.

    Parameters
    ----------
    tensor : TransitionTensor
    policy : np.ndarray, shape (periods, n_bins), int
        Resolved extended policy (may still contain AMBIGUOUS).
    first_maximizers : np.ndarray, shape (periods, n_bins), int
    """
    chosen = np.where(policy == AMBIGUOUS, first_maximizers, policy).astype(np.int64)
    slots = tensor.period_slots
    bins = np.arange(tensor.n_bins)[None, :]

    probabilities = tensor.probabilities[slots[:, None], bins, chosen]
    band_start = tensor.band_start[slots[:, None], bins, chosen]
    band_width = tensor.band_width[slots[:, None], bins, chosen]
    return OptimalTransitionTensor(
        probabilities=probabilities,
        band_start=band_start,
        band_width=band_width,
        strategies=chosen,
    )


def compute_trajectories(
    extended: ExtendedSolution,
    period_index: int,
    wealth_index: int,
) -> np.ndarray:
    """
    Wealth distribution over time starting from one cell of the caller's grid.

    Parameters
    ----------
    extended : ExtendedSolution
        From Solution.extended.
    period_index : int
        Seed period, 0 <= period_index <= periods.
    wealth_index : int
        Seed bin in the caller's (original) grid.

    Returns
    -------
    np.ndarray, shape (periods + 1, n_bins)
        Row p is the distribution over extended bins at period p; rows before
        period_index are zero.

    Raises
    ------
    ValidationError
        If the seed lies outside the grid or horizon.
    """
    periods, n_bins = extended.periods, extended.n_bins
    start, stop = extended.original_range
    if not 0 <= period_index <= periods:
        raise ValidationError(f"period_index must be in [0, {periods}], got {period_index}.")
    if not 0 <= wealth_index < stop - start:
        raise ValidationError(
            f"wealth_index must be in [0, {stop - start}), got {wealth_index}."
        )

    dist = np.zeros((periods + 1, n_bins))
    dist[period_index, start + wealth_index] = 1.0
    transitions = extended.optimal_transitions
    for p in range(period_index, periods):
        dist[p + 1] = transitions.step(p, dist[p])
    return dist
