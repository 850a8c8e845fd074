"""
Unit tests for problem.py module.

Tests Problem validation, defaults, and the terminal utility catalogue.
"""

import warnings

import numpy as np
import pytest

from wealthdp.exceptions import ValidationError
from wealthdp.problem import (
    Problem,
    crra_utility,
    goal_utility,
    linear_utility,
    log_utility,
)
from wealthdp.strategies import Strategy


def make_problem(**overrides) -> Problem:
    params = dict(
        wealth_boundaries=np.arange(0, 50_001, 10_000, dtype=float),
        periods=3,
        strategies=[Strategy.normal("cash", 0.01, 0.0)],
        cashflows=np.zeros(3),
        utility_function=linear_utility(),
    )
    params.update(overrides)
    return Problem(**params)


class TestProblemDefaults:
    """Test derived defaults."""

    def test_midpoint_values(self, small_problem, boundaries):
        """Representative values default to boundary + step / 2."""
        np.testing.assert_allclose(small_problem.wealth_values, boundaries + 5_000)
        assert small_problem.wealth_step == 10_000

    def test_explicit_step(self):
        problem = make_problem(wealth_step=2_000.0)
        np.testing.assert_allclose(problem.wealth_values[:2], [1_000.0, 11_000.0])

    def test_explicit_values_kept(self):
        values = np.arange(6, dtype=float)
        problem = make_problem(wealth_values=values)
        np.testing.assert_array_equal(problem.wealth_values, values)

    def test_counts(self, small_problem):
        assert small_problem.n_bins == 11
        assert small_problem.n_strategies == 3
        assert small_problem.strategy_names == ["cash", "e_50", "e_100"]

    def test_strategies_stored_as_tuple(self, small_problem):
        assert isinstance(small_problem.strategies, tuple)


class TestCashflows:
    """Test cashflow schedule handling."""

    def test_short_schedule_padded_with_warning(self):
        with pytest.warns(UserWarning, match="padding"):
            problem = make_problem(cashflows=[5_000.0])
        np.testing.assert_array_equal(problem.cashflows, [5_000.0, 0.0, 0.0])

    def test_exact_schedule_no_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            make_problem(cashflows=[1.0, 2.0, 3.0])

    def test_long_schedule_raises(self):
        with pytest.raises(ValidationError, match="4 entries for 3 periods"):
            make_problem(cashflows=[1.0, 2.0, 3.0, 4.0])


class TestProblemValidation:
    """Test structural checks."""

    def test_non_increasing_boundaries(self):
        with pytest.raises(ValidationError, match="strictly increasing"):
            make_problem(wealth_boundaries=[0.0, 10.0, 10.0])

    def test_empty_boundaries(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            make_problem(wealth_boundaries=[])

    def test_values_shape_mismatch(self):
        with pytest.raises(ValidationError, match="one per boundary"):
            make_problem(wealth_values=np.ones(3))

    def test_negative_values(self):
        values = np.arange(6, dtype=float) - 1.0
        with pytest.raises(ValidationError, match="wealth_values must be non-negative"):
            make_problem(wealth_values=values)

    def test_negative_wealth_step(self):
        with pytest.raises(ValidationError, match=r"wealth_step must be non-negative \(got -1.0\)"):
            make_problem(wealth_step=-1.0)

    def test_infinite_wealth_step(self):
        with pytest.raises(ValidationError, match="wealth_step must be finite"):
            make_problem(wealth_step=np.inf)

    @pytest.mark.parametrize("periods", [0, -1, 2.5])
    def test_invalid_periods(self, periods):
        with pytest.raises(ValidationError, match="periods"):
            make_problem(periods=periods, cashflows=[])

    def test_duplicate_strategy_names(self):
        strategies = [Strategy.normal("a", 0.01, 0.0), Strategy.normal("a", 0.02, 0.1)]
        with pytest.raises(ValidationError, match="unique"):
            make_problem(strategies=strategies)

    def test_non_callable_utility(self):
        with pytest.raises(ValidationError, match="callable"):
            make_problem(utility_function=3.0)


class TestTerminalUtilities:
    """Test evaluation of the utility on bin values."""

    def test_bankruptcy_forced_to_zero(self):
        problem = make_problem(utility_function=lambda w: w + 100.0)
        utilities = problem.terminal_utilities(np.array([5.0, 10.0, 20.0]))
        np.testing.assert_array_equal(utilities, [0.0, 110.0, 120.0])

    def test_non_finite_raises(self):
        problem = make_problem(utility_function=lambda w: np.inf if w > 50 else w)
        with pytest.raises(ValidationError, match="finite"):
            problem.terminal_utilities(np.array([1.0, 2.0, 60.0]))

    def test_non_finite_at_bankruptcy_ignored(self):
        problem = make_problem(utility_function=lambda w: -np.inf if w < 1 else w)
        utilities = problem.terminal_utilities(np.array([0.0, 2.0]))
        np.testing.assert_array_equal(utilities, [0.0, 2.0])


class TestUtilityCatalogue:
    """Test the built-in terminal utilities."""

    def test_linear(self):
        assert linear_utility()(123.0) == 123.0

    def test_log_floor(self):
        u = log_utility()
        assert u(0.0) == 0.0
        assert u(np.e) == pytest.approx(1.0)

    def test_log_invalid_floor(self):
        with pytest.raises(ValidationError, match="floor"):
            log_utility(0.0)

    def test_crra_gamma_one_is_log(self):
        assert crra_utility(1.0)(100.0) == pytest.approx(np.log(100.0))

    def test_crra_gamma_two(self):
        assert crra_utility(2.0)(2.0) == pytest.approx(-0.5)

    def test_crra_negative_aversion(self):
        with pytest.raises(ValidationError, match="risk_aversion"):
            crra_utility(-1.0)

    def test_goal_bonus(self):
        u = goal_utility(goal=100.0, bonus=2.0)
        assert u(100.0) == pytest.approx(np.log(100.0) + 2.0)
        assert u(99.0) == pytest.approx(np.log(99.0))
