"""
Unit tests for solver.py module.

Tests solve() orchestration and the Solution accessors.
"""

import dataclasses
import logging
import threading

import numpy as np
import pandas as pd
import pytest

from wealthdp.backends import ThreadedBackend
from wealthdp.config import SolverConfig
from wealthdp.constants import AMBIGUOUS
from wealthdp.exceptions import SolveCancelledError, ValidationError
from wealthdp.solver import solve


class TestSolve:
    """Test the end-to-end solve call."""

    def test_dimensions(self, small_problem, solution):
        assert solution.optimal_strategies.shape == (small_problem.periods, small_problem.n_bins)
        assert solution.expected_utilities.shape == (
            small_problem.periods + 1, small_problem.n_bins
        )

    def test_policy_values(self, solution):
        values = np.unique(solution.optimal_strategies)
        assert set(values.tolist()) <= {AMBIGUOUS, 0, 1, 2}

    def test_terminal_row_is_utility(self, small_problem, solution):
        expected = [small_problem.utility_function(v) for v in small_problem.wealth_values]
        np.testing.assert_allclose(solution.expected_utilities[-1], expected)

    def test_diagnostics(self, solution):
        diag = solution.diagnostics
        assert diag["n_bins_extended"] == solution.extended.n_bins
        assert diag["n_slots"] == 2
        assert diag["n_ambiguous"] == solution.n_ambiguous
        assert diag["n_ambiguous_raw"] >= 0
        assert diag["solve_time"] >= 0
        assert diag["backend"] == "NumpyBackend()"

    def test_threaded_config(self, small_problem, solution):
        threaded = solve(small_problem, SolverConfig(backend="threaded", max_workers=2))
        np.testing.assert_array_equal(threaded.optimal_strategies, solution.optimal_strategies)
        np.testing.assert_allclose(threaded.expected_utilities, solution.expected_utilities)
        assert threaded.diagnostics["backend"].startswith("FallbackBackend")

    def test_backend_override(self, small_problem, solution):
        result = solve(small_problem, backend=ThreadedBackend(max_workers=2, min_chunk=4))
        np.testing.assert_array_equal(result.optimal_strategies, solution.optimal_strategies)

    def test_cancel_event(self, small_problem):
        event = threading.Event()
        event.set()
        with pytest.raises(SolveCancelledError):
            solve(small_problem, cancel_event=event)

    def test_logs_summary(self, small_problem, caplog):
        with caplog.at_level(logging.INFO, logger="wealthdp"):
            solve(small_problem)
        assert "Solved in" in caplog.text


class TestSolution:
    """Test Solution accessors."""

    @pytest.fixture
    def ambiguous_solution(self, solution):
        policy = solution.optimal_strategies.copy()
        policy[0, 0] = AMBIGUOUS
        policy[0, 1] = 2
        return dataclasses.replace(solution, optimal_strategies=policy)

    def test_strategy_at(self, ambiguous_solution):
        assert ambiguous_solution.strategy_at(0, 0) is None
        assert ambiguous_solution.strategy_at(0, 1) == "e_100"

    def test_strategy_at_out_of_range(self, solution):
        with pytest.raises(ValidationError, match="outside policy grid"):
            solution.strategy_at(solution.periods, 0)

    def test_ambiguous_mask(self, ambiguous_solution):
        assert ambiguous_solution.ambiguous_mask[0, 0]
        assert ambiguous_solution.n_ambiguous == int(ambiguous_solution.ambiguous_mask.sum())

    def test_to_frames(self, small_problem, ambiguous_solution):
        policy, utility = ambiguous_solution.to_frames()
        assert isinstance(policy, pd.DataFrame)
        assert policy.shape == (small_problem.periods, small_problem.n_bins)
        assert utility.shape == (small_problem.periods + 1, small_problem.n_bins)
        assert policy.index.name == "period"
        assert policy.columns.name == "wealth"
        np.testing.assert_array_equal(policy.columns.to_numpy(), small_problem.wealth_values)
        assert policy.iloc[0, 0] is None
        assert policy.iloc[0, 1] == "e_100"
