"""
Banded transition tensors for WealthDP.

Purpose
-------
Discretizes each strategy's continuous return distribution onto the extended
grid. From bin i (value v_i) under strategy s with cashflow c, wealth moves to

    W' = (1 + R) * v_i + c

so destination bin j = [e_j, e_{j+1}) receives

    P[i, s, j] = CDF_s(r(e_{j+1})) - CDF_s(r(e_j)),    r(e) = (e - c) / v_i - 1

Only the support band of j values reached by the return support
[low, high] is stored, so memory is O(slots x bins x strategies x bandwidth)
instead of quadratic in bins.

Storage
-------
Flat strided buffers indexed (slot, wealth, strategy[, band offset]):

- probabilities : (n_slots, n_bins, n_strategies, bandwidth)
- band_start    : (n_slots, n_bins, n_strategies)
- band_width    : (n_slots, n_bins, n_strategies)

Periods with bit-identical cashflow values share one slot; ``period_slots``
maps each period to its slot.

Invariants
----------
- Bin 0 is absorbing: band [0, 1) with probability 1 for every strategy.
- For i >= 1 the band covers [(low+1) v_i + c, (high+1) v_i + c]. Returns are
  clamped into [low, high] before the CDF is evaluated, so the band sum is
  CDF(high) - CDF(low) and interior bins keep the plain CDF difference. A
  degenerate support (low == high) keeps the unclamped point mass.
- A band whose mass vanishes numerically collapses to a point mass at the bin
  holding (1 + location) v_i + c.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from .constants import BANKRUPTCY_BIN, NEGLIGIBLE_PROBABILITY
from .exceptions import ValidationError
from .strategies import Strategy

__all__ = [
    "TransitionTensor",
    "cashflow_slots",
    "band_indices",
    "build_transition_tensor",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransitionTensor:
    """
    Per-period, per-strategy banded transition probabilities.

    Attributes
    ----------
    probabilities : np.ndarray, shape (n_slots, n_bins, n_strategies, bandwidth)
        Probability of each destination in the band; zero-padded past width.
    band_start : np.ndarray, shape (n_slots, n_bins, n_strategies)
        First destination bin of each band.
    band_width : np.ndarray, shape (n_slots, n_bins, n_strategies)
        Number of destination bins in each band (>= 1).
    period_slots : np.ndarray, shape (periods,)
        Slot used by each period.
    slot_cashflows : np.ndarray, shape (n_slots,)
        Cashflow value of each slot.
    """

    probabilities: np.ndarray
    band_start: np.ndarray
    band_width: np.ndarray
    period_slots: np.ndarray
    slot_cashflows: np.ndarray

    @property
    def periods(self) -> int:
        return int(self.period_slots.size)

    @property
    def n_slots(self) -> int:
        return int(self.probabilities.shape[0])

    @property
    def n_bins(self) -> int:
        return int(self.probabilities.shape[1])

    @property
    def n_strategies(self) -> int:
        return int(self.probabilities.shape[2])

    @property
    def bandwidth(self) -> int:
        return int(self.probabilities.shape[3])

    def slot(self, period: int) -> int:
        """Slot index of *period* (bounds-checked)."""
        if not 0 <= period < self.periods:
            raise ValidationError(f"period must be in [0, {self.periods}), got {period}.")
        return int(self.period_slots[period])

    def period_arrays(self, period: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(probabilities, band_start, band_width) views for one period."""
        u = self.slot(period)
        return self.probabilities[u], self.band_start[u], self.band_width[u]

    def band(self, period: int, wealth: int, strategy: int) -> Tuple[int, np.ndarray]:
        """
        Destination band of one (period, wealth, strategy) cell.

        Returns
        -------
        start : int
            First destination bin.
        probs : np.ndarray
            Probabilities of bins start .. start + len(probs) - 1.
        """
        u = self.slot(period)
        if not 0 <= wealth < self.n_bins:
            raise ValidationError(f"wealth must be in [0, {self.n_bins}), got {wealth}.")
        if not 0 <= strategy < self.n_strategies:
            raise ValidationError(
                f"strategy must be in [0, {self.n_strategies}), got {strategy}."
            )
        start = int(self.band_start[u, wealth, strategy])
        width = int(self.band_width[u, wealth, strategy])
        return start, self.probabilities[u, wealth, strategy, :width]

    def dense(self, period: int) -> np.ndarray:
        """Dense (n_bins, n_strategies, n_bins) matrix for one period."""
        probs, start, width = self.period_arrays(period)
        out = np.zeros((self.n_bins, self.n_strategies, self.n_bins))
        offsets = np.arange(self.bandwidth)
        dest = start[..., None] + offsets
        mask = offsets < width[..., None]
        i_idx, s_idx, k_idx = np.nonzero(mask)
        out[i_idx, s_idx, dest[i_idx, s_idx, k_idx]] = probs[i_idx, s_idx, k_idx]
        return out

    def band_sums(self, period: int) -> np.ndarray:
        """Total band probability per (wealth, strategy), shape (n_bins, n_strategies)."""
        probs, _, _ = self.period_arrays(period)
        return probs.sum(axis=-1)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def cashflow_slots(cashflows: np.ndarray, periods: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Deduplicate the cashflow schedule.

    Only bit-identical values share a slot (0.0 and -0.0 compare equal).

    Returns
    -------
    period_slots : np.ndarray, shape (periods,)
    slot_cashflows : np.ndarray, shape (n_slots,)

    Examples
    --------
    >>> cashflow_slots(np.array([5.0, 5.0, -5.0, 5.0]), 4)
    (array([0, 0, 1, 0]), array([ 5., -5.]))
    """
    lookup: Dict[float, int] = {}
    period_slots = np.empty(periods, dtype=np.int64)
    for p in range(periods):
        c = float(cashflows[p]) if p < len(cashflows) else 0.0
        if c not in lookup:
            lookup[c] = len(lookup)
        period_slots[p] = lookup[c]
    return period_slots, np.array(list(lookup.keys()), dtype=float)


def band_indices(
    edges: np.ndarray,
    wealth_low: np.ndarray,
    wealth_high: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Conservative band [bottom, top) of bins covering [wealth_low, wealth_high].

    ``bottom`` is the bin whose interior reaches strictly below wealth_low
    (edges[bottom] < wealth_low) and ``top`` is one past the bin whose upper
    edge lies strictly above wealth_high. Results are clamped to valid bins
    and top > bottom always holds.
    """
    n_bins = edges.size - 1
    bottom = np.searchsorted(edges, wealth_low, side="left") - 1
    top = np.searchsorted(edges, wealth_high, side="right")
    bottom = np.clip(bottom, 0, n_bins - 1)
    top = np.clip(top, bottom + 1, n_bins)
    return bottom.astype(np.int64), top.astype(np.int64)


def _point_mass_bins(edges: np.ndarray, wealth: np.ndarray) -> np.ndarray:
    """Bin holding each wealth value ([e_j, e_{j+1}) convention), clamped."""
    n_bins = edges.size - 1
    return np.clip(np.searchsorted(edges, wealth, side="right") - 1, 0, n_bins - 1)


def _strategy_bands(
    edges: np.ndarray,
    values: np.ndarray,
    strategy: Strategy,
    cashflow: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Trimmed bands of one strategy for every origin bin (row 0 included)."""
    n_bins = values.size
    low, high = strategy.support

    bottom, top = band_indices(edges, (low + 1.0) * values + cashflow,
                               (high + 1.0) * values + cashflow)
    width = top - bottom
    span = int(width.max())

    offsets = np.arange(span + 1)
    edge_idx = np.minimum(bottom[:, None] + offsets, n_bins)
    safe_values = np.where(values > 0, values, 1.0)
    with np.errstate(invalid="ignore"):
        returns = (edges[edge_idx] - cashflow) / safe_values[:, None] - 1.0
    if high > low:
        # Outer band edges map beyond the support; clamp them onto it.
        returns = np.clip(returns, low, high)
    cumulative = strategy.cdf(returns)
    probs = np.diff(cumulative, axis=1)
    probs[offsets[:-1][None, :] >= width[:, None]] = 0.0
    probs = np.where(probs > NEGLIGIBLE_PROBABILITY, probs, 0.0)

    # Trim negligible edges; collapse empty bands to a point mass.
    nonzero = probs > 0
    has_mass = nonzero.any(axis=1)
    first = np.argmax(nonzero, axis=1)
    last = span - 1 - np.argmax(nonzero[:, ::-1], axis=1)

    center = _point_mass_bins(edges, (1.0 + strategy.location) * values + cashflow)
    zero_value = values <= 0
    center[zero_value] = _point_mass_bins(edges, np.full(zero_value.sum(), cashflow))
    collapse = ~has_mass | zero_value

    new_start = np.where(collapse, center, bottom + first)
    new_width = np.where(collapse, 1, last - first + 1)
    trimmed = np.zeros((n_bins, int(new_width.max())))
    for i in np.flatnonzero(~collapse):
        trimmed[i, :new_width[i]] = probs[i, first[i]:last[i] + 1]
    trimmed[collapse, 0] = 1.0
    return trimmed, new_start, new_width


def build_transition_tensor(
    periods: int,
    edges: np.ndarray,
    values: np.ndarray,
    strategies: Sequence[Strategy],
    cashflows: np.ndarray,
) -> TransitionTensor:
    """
    Build the banded transition tensor on an extended grid.

    Parameters
    ----------
    periods : int
        Horizon length.
    edges : np.ndarray, shape (n_bins + 1,)
        Extended bin edges (-inf first, +inf last).
    values : np.ndarray, shape (n_bins,)
        Representative value of each extended bin.
    strategies : Sequence[Strategy]
        Strategies providing CDF and support.
    cashflows : np.ndarray, shape (periods,)
        Per-period cashflow, added after the return is applied.

    Returns
    -------
    TransitionTensor
    """
    edges = np.asarray(edges, dtype=float)
    values = np.asarray(values, dtype=float)
    if edges.size != values.size + 1:
        raise ValidationError(
            f"edges must have one more entry than values, got {edges.size} and {values.size}."
        )
    if not strategies:
        raise ValidationError("At least one strategy is required.")

    period_slots, slot_cashflows = cashflow_slots(np.asarray(cashflows, dtype=float), periods)
    n_bins, n_strategies, n_slots = values.size, len(strategies), slot_cashflows.size

    bands = [
        [_strategy_bands(edges, values, s, float(c)) for s in strategies]
        for c in slot_cashflows
    ]
    bandwidth = max(b[0].shape[1] for slot in bands for b in slot)

    probabilities = np.zeros((n_slots, n_bins, n_strategies, bandwidth))
    band_start = np.zeros((n_slots, n_bins, n_strategies), dtype=np.int64)
    band_width = np.zeros((n_slots, n_bins, n_strategies), dtype=np.int64)
    for u, slot in enumerate(bands):
        for s, (probs, start, width) in enumerate(slot):
            probabilities[u, :, s, :probs.shape[1]] = probs
            band_start[u, :, s] = start
            band_width[u, :, s] = width

    # Bankruptcy is absorbing regardless of strategy.
    probabilities[:, BANKRUPTCY_BIN] = 0.0
    probabilities[:, BANKRUPTCY_BIN, :, 0] = 1.0
    band_start[:, BANKRUPTCY_BIN] = BANKRUPTCY_BIN
    band_width[:, BANKRUPTCY_BIN] = 1

    logger.debug(
        f"Transition tensor: {periods} periods -> {n_slots} cashflow slots, "
        f"{n_bins} bins x {n_strategies} strategies, bandwidth {bandwidth}"
    )
    return TransitionTensor(
        probabilities=probabilities,
        band_start=band_start,
        band_width=band_width,
        period_slots=period_slots,
        slot_cashflows=slot_cashflows,
    )
