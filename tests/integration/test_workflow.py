"""
Integration test for full WealthDP workflow.

Tests the complete pipeline from configuration through solve, trajectory
propagation and quantile extraction to verify all components work together.
"""

import numpy as np
import pytest

from wealthdp import (
    AMBIGUOUS,
    GridConfig,
    Problem,
    ProblemConfig,
    SolverConfig,
    compute_trajectories,
    find_quantiles,
    linear_utility,
    solve,
)
from wealthdp.config import StrategyConfig, UtilityConfig
from wealthdp.constants import DEFAULT_CONFIDENCE_LEVELS


@pytest.fixture
def planning_config() -> ProblemConfig:
    """Default planning state: 41 bins, 10 periods, save then withdraw."""
    return ProblemConfig(
        grid=GridConfig(wealth_min=0, wealth_max=400_000, wealth_step=10_000, periods=10),
        strategies=[
            StrategyConfig(name="cash", mu=0.01, sigma=0.0),
            StrategyConfig(name="e_50", mu=0.03, sigma=0.10),
            StrategyConfig(name="e_100", mu=0.05, sigma=0.20),
        ],
        cashflows=[40_000] * 5 + [-40_000] * 5,
        utility=UtilityConfig(kind="goal", goal=100_000),
    )


@pytest.mark.integration
class TestFullWorkflow:
    """Integration tests for the complete solve workflow."""

    def test_config_to_quantiles(self, planning_config):
        """
        Test complete workflow from configuration to confidence bands.

        This is a smoke test to ensure all components integrate properly.
        """
        # 1. Build problem
        problem = planning_config.to_problem()

        # 2. Solve
        solution = solve(problem, planning_config.solver)
        assert solution.optimal_strategies.shape == (10, 41)
        assert solution.expected_utilities.shape == (11, 41)
        assert set(np.unique(solution.optimal_strategies).tolist()) <= {AMBIGUOUS, 0, 1, 2}

        # 3. Propagate from 100_000 at period 0
        dist = compute_trajectories(solution.extended, 0, 10)
        np.testing.assert_allclose(dist.sum(axis=1), 1.0, atol=1e-6)

        # 4. Confidence bands
        traces = find_quantiles(dist, DEFAULT_CONFIDENCE_LEVELS)
        assert [t.probability for t in traces] == sorted(DEFAULT_CONFIDENCE_LEVELS, reverse=True)
        for wide, narrow in zip(traces[:-1], traces[1:]):
            assert np.all(wide.lower <= narrow.lower)
            assert np.all(wide.upper >= narrow.upper)
        seed_bin = solution.extended.original_range[0] + 10
        assert traces[0].lower[0] == traces[0].upper[0] == seed_bin

        # 5. Tables
        policy, utility = solution.to_frames()
        assert policy.shape == (10, 41)
        frame = traces[0].to_frame(solution.extended.values)
        assert frame["lower_wealth"].iloc[0] == pytest.approx(105_000)

    def test_backends_agree(self, planning_config):
        problem = planning_config.to_problem()
        reference = solve(problem, SolverConfig(backend="numpy"))
        threaded = solve(problem, SolverConfig(backend="threaded", max_workers=3))
        np.testing.assert_array_equal(threaded.optimal_strategies, reference.optimal_strategies)
        np.testing.assert_allclose(threaded.expected_utilities, reference.expected_utilities)

    def test_value_function_bounded_by_terminal_range(self, planning_config):
        """Expected utilities are averages of terminal utilities on the extended grid."""
        problem = planning_config.to_problem()
        solution = solve(problem)
        terminal = problem.terminal_utilities(solution.extended.values)
        low = min(0.0, terminal.min())
        high = terminal.max()
        assert np.all(solution.expected_utilities >= low - 1e-9)
        assert np.all(solution.expected_utilities <= high + 1e-9)


@pytest.mark.integration
class TestDeterministicWorkflow:
    """A single deterministic strategy makes every step traceable by hand."""

    def test_point_mass_paths(self, deterministic_problem):
        solution = solve(deterministic_problem)
        extended = solution.extended

        # single strategy: never ambiguous
        np.testing.assert_array_equal(solution.optimal_strategies, 0)

        for k in range(deterministic_problem.n_bins):
            v = deterministic_problem.wealth_values[k]
            j = np.searchsorted(extended.boundaries, 1.01 * v, side="left") - 1
            # one period before the end, the value is the terminal utility of bin j
            assert solution.expected_utilities[-2, k] == pytest.approx(extended.values[j])

            dist = compute_trajectories(extended, deterministic_problem.periods - 1, k)
            assert dist[-1, j] == pytest.approx(1.0)

    def test_single_period(self, boundaries, cash):
        """One period, identity utility: U[0][k] is the value of the bin holding 1.01 * v_k."""
        problem = Problem(
            wealth_boundaries=boundaries,
            periods=1,
            strategies=[cash],
            cashflows=[0.0],
            utility_function=linear_utility(),
        )
        solution = solve(problem)
        edges, values = solution.extended.boundaries, solution.extended.values
        targets = np.searchsorted(edges, 1.01 * problem.wealth_values, side="left") - 1
        np.testing.assert_array_equal(solution.optimal_strategies, [[0] * problem.n_bins])
        np.testing.assert_allclose(solution.expected_utilities[0], values[targets])
        np.testing.assert_allclose(solution.expected_utilities[1], problem.wealth_values)

    def test_trajectory_stays_point_mass(self, deterministic_problem):
        solution = solve(deterministic_problem)
        dist = compute_trajectories(solution.extended, 0, 4)
        for row in dist:
            assert np.count_nonzero(row) == 1
        traces = find_quantiles(dist, [0.5, 0.95])
        for trace in traces:
            np.testing.assert_array_equal(trace.lower, trace.upper)
