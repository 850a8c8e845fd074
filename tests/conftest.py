"""
Pytest configuration and fixtures for WealthDP test suite.

This module provides reusable fixtures for testing all WealthDP components.
Grids are kept small so every test solves in milliseconds.
"""

import logging
from typing import List

import numpy as np
import pytest

from wealthdp.grid import ExtendedGrid, extend_wealth_grid
from wealthdp.problem import Problem, linear_utility, log_utility
from wealthdp.solver import Solution, solve
from wealthdp.strategies import Strategy
from wealthdp.transitions import TransitionTensor, build_transition_tensor


# ---------------------------------------------------------------------------
# Grid Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def boundaries() -> np.ndarray:
    """0, 10_000, ..., 100_000 (11 bins)."""
    return np.arange(0, 100_001, 10_000, dtype=float)


@pytest.fixture
def periods() -> int:
    """Standard horizon for tests."""
    return 5


@pytest.fixture
def cashflows() -> np.ndarray:
    """Three contributions followed by two withdrawals."""
    return np.array([10_000.0, 10_000.0, 10_000.0, -10_000.0, -10_000.0])


# ---------------------------------------------------------------------------
# Strategy Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def cash() -> Strategy:
    """Deterministic 1% return."""
    return Strategy.normal("cash", 0.01, 0.0)


@pytest.fixture
def balanced() -> Strategy:
    return Strategy.normal("e_50", 0.03, 0.10)


@pytest.fixture
def aggressive() -> Strategy:
    return Strategy.normal("e_100", 0.05, 0.20)


@pytest.fixture
def strategies(cash, balanced, aggressive) -> List[Strategy]:
    """Cash plus two Gaussian strategies."""
    return [cash, balanced, aggressive]


@pytest.fixture
def gaussian_strategies(balanced, aggressive) -> List[Strategy]:
    """Strategies with sigma > 0 only (bands carry the full support mass)."""
    return [balanced, aggressive]


# ---------------------------------------------------------------------------
# Problem Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def small_problem(boundaries, periods, strategies, cashflows) -> Problem:
    """Three strategies, log utility, mixed cashflows."""
    return Problem(
        wealth_boundaries=boundaries,
        periods=periods,
        strategies=strategies,
        cashflows=cashflows,
        utility_function=log_utility(),
    )


@pytest.fixture
def gaussian_problem(boundaries, periods, gaussian_strategies, cashflows) -> Problem:
    return Problem(
        wealth_boundaries=boundaries,
        periods=periods,
        strategies=gaussian_strategies,
        cashflows=cashflows,
        utility_function=log_utility(),
    )


@pytest.fixture
def deterministic_problem(boundaries, cash) -> Problem:
    """
    Single deterministic strategy, no cashflows, linear utility.

    Every transition is a point mass at the bin holding 1.01 * v.
    """
    return Problem(
        wealth_boundaries=boundaries,
        periods=3,
        strategies=[cash],
        cashflows=np.zeros(3),
        utility_function=linear_utility(),
    )


# ---------------------------------------------------------------------------
# Derived Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def extended_grid(small_problem) -> ExtendedGrid:
    return extend_wealth_grid(small_problem)


@pytest.fixture
def tensor(small_problem, extended_grid) -> TransitionTensor:
    """Transition tensor of small_problem on its extended grid."""
    return build_transition_tensor(
        small_problem.periods,
        extended_grid.edges,
        extended_grid.values,
        small_problem.strategies,
        small_problem.cashflows,
    )


@pytest.fixture
def solution(small_problem) -> Solution:
    """Solved small_problem (NumPy backend)."""
    return solve(small_problem)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

@pytest.fixture
def clean_logger():
    """Remove handlers attached to the wealthdp logger during a test."""
    logger = logging.getLogger("wealthdp")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)
