"""
End-to-end solve orchestration.

Purpose
-------
Chain the numerical components into one call:

    extend grid -> build transitions -> backward induction
        -> resolve ties -> clip to caller's grid

and package the result as a Solution. The extended grid and the
policy-induced transition tensor are kept on Solution.extended for
trajectory and quantile queries.

Example
-------
>>> from wealthdp import Problem, Strategy, solve, log_utility
>>> problem = Problem(
...     wealth_boundaries=np.arange(0, 400_001, 10_000.0),
...     periods=10,
...     strategies=[Strategy.normal("cash", 0.01, 0.0), Strategy.normal("e_50", 0.03, 0.10)],
...     cashflows=np.r_[np.full(5, 40_000.0), np.full(5, -40_000.0)],
...     utility_function=log_utility(),
... )
>>> solution = solve(problem)
>>> solution.optimal_strategies.shape
(10, 41)
>>> policy, utility = solution.to_frames()
"""

from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from .ambiguity import resolve_ambiguous
from .backends import ContractionBackend, get_backend
from .clipping import clip_to_original
from .config import SolverConfig
from .constants import AMBIGUOUS
from .exceptions import ValidationError
from .grid import extend_wealth_grid
from .induction import solve_backward
from .problem import Problem
from .trajectories import ExtendedSolution, index_optimal_transition_tensor
from .transitions import build_transition_tensor
from .types import SolveDiagnosticsDict

__all__ = ["Solution", "ExtendedSolution", "solve"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Solution:
    """
    Optimal policy and value function on the caller's grid.

    Attributes
    ----------
    optimal_strategies : np.ndarray, shape (periods, n_bins), int
        Strategy index per (period, wealth bin); AMBIGUOUS (-1) where the
        optimum is tied and could not be resolved.
    expected_utilities : np.ndarray, shape (periods + 1, n_bins)
        Expected terminal utility under the optimal policy; the last row is
        the terminal utility itself.
    extended : ExtendedSolution
        Extended grid and policy-induced transitions, for compute_trajectories.
    strategy_names : Tuple[str, ...]
    wealth_values : np.ndarray, shape (n_bins,)
        Representative wealth of the caller's bins.
    diagnostics : SolveDiagnosticsDict
    """

    optimal_strategies: np.ndarray
    expected_utilities: np.ndarray
    extended: ExtendedSolution
    strategy_names: Tuple[str, ...]
    wealth_values: np.ndarray
    diagnostics: SolveDiagnosticsDict = field(default_factory=dict)

    @property
    def periods(self) -> int:
        return int(self.optimal_strategies.shape[0])

    @property
    def ambiguous_mask(self) -> np.ndarray:
        return self.optimal_strategies == AMBIGUOUS

    @property
    def n_ambiguous(self) -> int:
        return int(self.ambiguous_mask.sum())

    def strategy_at(self, period: int, wealth_index: int) -> Optional[str]:
        """Name of the optimal strategy in one cell, or None if ambiguous."""
        periods, n_bins = self.optimal_strategies.shape
        if not (0 <= period < periods and 0 <= wealth_index < n_bins):
            raise ValidationError(
                f"Cell ({period}, {wealth_index}) outside policy grid {periods}x{n_bins}."
            )
        index = int(self.optimal_strategies[period, wealth_index])
        return None if index == AMBIGUOUS else self.strategy_names[index]

    def to_frames(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Policy and utility tables indexed by period with wealth columns.

        Returns
        -------
        policy : pd.DataFrame, shape (periods, n_bins)
            Strategy names, None where ambiguous.
        utility : pd.DataFrame, shape (periods + 1, n_bins)
        """
        columns = pd.Index(self.wealth_values, name="wealth")
        names = np.array(list(self.strategy_names) + [None], dtype=object)
        # AMBIGUOUS (-1) indexes the trailing None.
        policy = pd.DataFrame(
            names[self.optimal_strategies],
            index=pd.RangeIndex(self.periods, name="period"),
            columns=columns,
        )
        utility = pd.DataFrame(
            self.expected_utilities,
            index=pd.RangeIndex(self.periods + 1, name="period"),
            columns=columns,
        )
        return policy, utility


def solve(
    problem: Problem,
    config: Optional[SolverConfig] = None,
    *,
    backend: Optional[ContractionBackend] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Solution:
    """
    Solve a Problem for its optimal dynamic strategy.

    Parameters
    ----------
    problem : Problem
        Grid, horizon, strategies, cashflows and terminal utility.
    config : SolverConfig, optional
        Numerical and execution settings (defaults if None).
    backend : ContractionBackend, optional
        Overrides the backend named in *config*.
    cancel_event : threading.Event, optional
        Set from another thread to abort between periods.

    Returns
    -------
    Solution

    Raises
    ------
    ValidationError
        If the terminal utility is not finite on the grid.
    SolveCancelledError
        If the deadline passes or *cancel_event* is set.
    ConfigurationError
        If *config* names an unknown backend.
    """
    config = config or SolverConfig()
    if backend is None:
        backend = get_backend(
            config.backend,
            max_workers=config.max_workers,
            fallback_to_cpu=config.fallback_to_cpu,
        )

    started = time.perf_counter()
    grid = extend_wealth_grid(problem, max_coarse_bins=config.max_coarse_bins)
    final_utilities = problem.terminal_utilities(grid.values)
    tensor = build_transition_tensor(
        problem.periods, grid.edges, grid.values, problem.strategies, problem.cashflows
    )
    logger.info(
        f"Solving {problem.periods} periods on {grid.n_bins} extended bins "
        f"({problem.n_bins} original) with {problem.n_strategies} strategies, "
        f"{tensor.n_slots} cashflow slots, backend {backend!r}"
    )

    result = solve_backward(
        tensor,
        final_utilities,
        backend=backend,
        tie_tolerance=config.tie_tolerance,
        deadline_seconds=config.deadline_seconds,
        cancel_event=cancel_event,
    )
    resolved = resolve_ambiguous(result.optimal_strategies.copy())

    optimal_strategies = clip_to_original(resolved, grid.original_range)
    expected_utilities = clip_to_original(result.expected_utilities, grid.original_range)
    extended = ExtendedSolution(
        grid=grid,
        optimal_transitions=index_optimal_transition_tensor(
            tensor, resolved, result.first_maximizers
        ),
    )

    elapsed = time.perf_counter() - started
    n_ambiguous = int((optimal_strategies == AMBIGUOUS).sum())
    diagnostics: SolveDiagnosticsDict = {
        "n_bins_extended": grid.n_bins,
        "n_slots": tensor.n_slots,
        "bandwidth": tensor.bandwidth,
        "n_ambiguous_raw": result.n_ambiguous,
        "n_ambiguous": n_ambiguous,
        "backend": repr(backend),
        "solve_time": elapsed,
    }
    logger.info(
        f"Solved in {elapsed:.3f}s: {result.n_ambiguous} tied cells, "
        f"{n_ambiguous} unresolved in the original grid"
    )
    if n_ambiguous:
        logger.info(f"{n_ambiguous} cells remain ambiguous (marked {AMBIGUOUS})")

    return Solution(
        optimal_strategies=optimal_strategies,
        expected_utilities=expected_utilities,
        extended=extended,
        strategy_names=tuple(problem.strategy_names),
        wealth_values=np.asarray(problem.wealth_values, dtype=float).copy(),
        diagnostics=diagnostics,
    )

