"""
Backward induction kernel for WealthDP.

Mathematical Framework
----------------------
With U[T] the terminal utility vector (U[T][0] = 0 on the bankruptcy bin),
for p = T-1, ..., 0 and every wealth bin i:

    E[p][i, s] = Σ_j P_p[i, s, j] * U[p+1][j]
    U[p][i]    = max_s E[p][i, s]
    π[p][i]    = argmax_s E[p][i, s]   or AMBIGUOUS if the maximum is tied

Ties are detected with a relative tolerance and never broken here; the
resolve_ambiguous fills them afterwards. The lowest-index maximiser is still
recorded separately because forward simulation needs a concrete strategy.

Periods run strictly in sequence. Within a period the contraction is
delegated to a ContractionBackend; the deadline and cancellation event are
checked once per period.
"""

from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .backends import ContractionBackend, NumpyBackend
from .constants import AMBIGUOUS, BANKRUPTCY_BIN, DEFAULT_TIE_TOLERANCE
from .exceptions import SolveCancelledError, SolverError
from .transitions import TransitionTensor

__all__ = [
    "InductionResult",
    "select_optimal",
    "solve_backward",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InductionResult:
    """
    Extended-grid output of backward induction.

    Attributes
    ----------
    optimal_strategies : np.ndarray, shape (periods, n_bins), int
        Strategy index per cell, AMBIGUOUS where tied.
    expected_utilities : np.ndarray, shape (periods + 1, n_bins)
        Value function; the last row is the terminal utility vector.
    first_maximizers : np.ndarray, shape (periods, n_bins), int
        Lowest-index strategy attaining the maximum (never AMBIGUOUS).
    """

    optimal_strategies: np.ndarray
    expected_utilities: np.ndarray
    first_maximizers: np.ndarray

    @property
    def n_ambiguous(self) -> int:
        return int((self.optimal_strategies == AMBIGUOUS).sum())


def select_optimal(
    expectations: np.ndarray,
    tie_tolerance: float = DEFAULT_TIE_TOLERANCE,
):
    """
    Row-wise maximum, policy with tie marker, and lowest-index maximiser.

    Two strategies tie when their expectations differ by at most
    ``tie_tolerance * max(1, |max|)``.

    Parameters
    ----------
    expectations : np.ndarray, shape (n_bins, n_strategies)

    Returns
    -------
    best : np.ndarray, shape (n_bins,)
    policy : np.ndarray, shape (n_bins,), int
    first : np.ndarray, shape (n_bins,), int

    Examples
    --------
    >>> select_optimal(np.array([[1.0, 2.0], [3.0, 3.0]]))
    (array([2., 3.]), array([ 1, -1]), array([1, 0]))
    """
    best = expectations.max(axis=1)
    slack = tie_tolerance * np.maximum(1.0, np.abs(best))
    tied = expectations >= (best - slack)[:, None]
    first = np.argmax(tied, axis=1)
    policy = np.where(tied.sum(axis=1) > 1, AMBIGUOUS, first)
    return best, policy.astype(np.int64), first.astype(np.int64)


def solve_backward(
    tensor: TransitionTensor,
    final_utilities: np.ndarray,
    *,
    backend: Optional[ContractionBackend] = None,
    tie_tolerance: float = DEFAULT_TIE_TOLERANCE,
    deadline_seconds: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> InductionResult:
    """
    Run the Bellman recursion from the last period to the first.

    Parameters
    ----------
    tensor : TransitionTensor
        Banded transition probabilities on the extended grid.
    final_utilities : np.ndarray, shape (n_bins,)
        Terminal utility per extended bin. Entry 0 is overwritten with 0.
    backend : ContractionBackend, optional
        Contraction strategy (NumpyBackend if None).
    tie_tolerance : float
        Relative tolerance for tie detection.
    deadline_seconds : float, optional
        Wall-clock budget; checked before each period.
    cancel_event : threading.Event, optional
        Cooperative cancellation flag; checked before each period.

    Returns
    -------
    InductionResult

    Raises
    ------
    SolverError
        If final_utilities does not match the grid or is not finite.
    SolveCancelledError
        If the deadline passed or cancel_event was set.
    """
    backend = backend or NumpyBackend()
    periods, n_bins = tensor.periods, tensor.n_bins

    final_utilities = np.asarray(final_utilities, dtype=float)
    if final_utilities.shape != (n_bins,):
        raise SolverError(
            f"final_utilities has shape {final_utilities.shape}, expected ({n_bins},)."
        )
    if not np.isfinite(final_utilities).all():
        raise SolverError("final_utilities must be finite.")

    expected_utilities = np.zeros((periods + 1, n_bins))
    expected_utilities[periods] = final_utilities
    expected_utilities[periods, BANKRUPTCY_BIN] = 0.0
    optimal_strategies = np.zeros((periods, n_bins), dtype=np.int64)
    first_maximizers = np.zeros((periods, n_bins), dtype=np.int64)

    started = time.monotonic()
    for p in range(periods - 1, -1, -1):
        elapsed = time.monotonic() - started
        if cancel_event is not None and cancel_event.is_set():
            raise SolveCancelledError(f"Solve cancelled before period {p} ({elapsed:.2f}s elapsed).")
        if deadline_seconds is not None and elapsed > deadline_seconds:
            raise SolveCancelledError(
                f"Deadline of {deadline_seconds:.2f}s exceeded before period {p} "
                f"({elapsed:.2f}s elapsed)."
            )

        probs, start, width = tensor.period_arrays(p)
        expectations = backend.contract(probs, start, width, expected_utilities[p + 1])
        best, policy, first = select_optimal(expectations, tie_tolerance)

        expected_utilities[p] = best
        optimal_strategies[p] = policy
        first_maximizers[p] = first
        logger.debug(f"Period {p}: {int((policy == AMBIGUOUS).sum())} tied cells")

    return InductionResult(
        optimal_strategies=optimal_strategies,
        expected_utilities=expected_utilities,
        first_maximizers=first_maximizers,
    )
