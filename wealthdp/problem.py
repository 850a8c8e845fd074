"""
Problem definition for WealthDP.

Purpose
-------
Immutable, already-validated input to the solver: the caller's wealth grid,
the horizon, the strategy set, the deterministic cashflow schedule and the
terminal utility function. Also hosts a small catalogue of terminal utility
functions (linear, log, CRRA, goal bonus) for configuration-driven use.

Wealth grid convention
----------------------
Original bin k covers [b_k, b_{k+1}) with representative value v_k; the last
bin ends where the coarse tail begins. When values are not supplied they
default to bin midpoints b_k + step / 2, with ``step`` the first boundary gap
unless given explicitly.

Example
-------
>>> problem = Problem(
...     wealth_boundaries=np.arange(0, 400_001, 10_000),
...     periods=10,
...     strategies=[Strategy.normal("cash", 0.01, 0.0),
...                 Strategy.normal("e_50", 0.03, 0.10)],
...     cashflows=[40_000] * 5 + [-40_000] * 5,
...     utility_function=goal_utility(goal=100_000),
... )
>>> problem.n_bins
41
"""

from __future__ import annotations
import warnings
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import numpy as np

from .exceptions import ValidationError
from .strategies import Strategy
from .utils import check_non_negative, ensure_1d, ensure_strictly_increasing

__all__ = [
    "Problem",
    "UtilityFunction",
    "linear_utility",
    "log_utility",
    "crra_utility",
    "goal_utility",
]

UtilityFunction = Callable[[float], float]


# ---------------------------------------------------------------------------
# Problem
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Problem:
    """
    Finite-horizon wealth control problem.

    Parameters
    ----------
    wealth_boundaries : array-like
        Strictly increasing lower edges of the original bins. The first entry
        is conventionally 0 (bankruptcy threshold).
    periods : int
        Number of decision periods (>= 1).
    strategies : Sequence[Strategy]
        Ordered strategy set; policy entries index into it.
    cashflows : array-like
        Per-period deterministic amounts, added after the multiplicative
        return. Shorter schedules are padded with zeros.
    utility_function : Callable[[float], float]
        Terminal utility. Its value on the bankruptcy bin is ignored (forced 0).
    wealth_values : array-like, optional
        Representative value of each original bin. Defaults to midpoints.
    wealth_step : float, optional
        Nominal width of the original bins. Defaults to the first gap.

    Raises
    ------
    ValidationError
        On malformed arrays (shape mismatch, non-monotone boundaries,
        negative representative values, schedule longer than the horizon).
    """

    wealth_boundaries: np.ndarray
    periods: int
    strategies: Sequence[Strategy]
    cashflows: np.ndarray
    utility_function: UtilityFunction
    wealth_values: Optional[np.ndarray] = field(default=None)
    wealth_step: Optional[float] = field(default=None)

    def __post_init__(self):
        if int(self.periods) != self.periods or self.periods < 1:
            raise ValidationError(f"periods must be a positive integer, got {self.periods}.")
        periods = int(self.periods)

        boundaries = ensure_strictly_increasing(self.wealth_boundaries, name="wealth_boundaries")

        step = self.wealth_step
        if step is None:
            step = float(boundaries[1] - boundaries[0]) if boundaries.size > 1 else 0.0
        if not np.isfinite(step):
            raise ValidationError(f"wealth_step must be finite, got {step}.")
        check_non_negative("wealth_step", step)

        if self.wealth_values is None:
            values = boundaries + step / 2.0
        else:
            values = ensure_1d(self.wealth_values, name="wealth_values")
            if values.shape != boundaries.shape:
                raise ValidationError(
                    f"wealth_values has {values.size} entries, "
                    f"expected {boundaries.size} (one per boundary)."
                )
        check_non_negative("wealth_values", float(values.min()))

        cashflows = ensure_1d(self.cashflows, name="cashflows")
        if cashflows.size > periods:
            raise ValidationError(
                f"cashflows has {cashflows.size} entries for {periods} periods."
            )
        if cashflows.size < periods:
            warnings.warn(
                f"cashflows has {cashflows.size} entries for {periods} periods; "
                f"padding the remaining periods with 0.",
                UserWarning,
                stacklevel=3,
            )
            cashflows = np.concatenate([cashflows, np.zeros(periods - cashflows.size)])

        if not callable(self.utility_function):
            raise ValidationError("utility_function must be callable.")

        strategies = tuple(self.strategies)
        names = [s.name for s in strategies]
        if len(set(names)) != len(names):
            raise ValidationError(f"Strategy names must be unique, got {names}.")

        object.__setattr__(self, "periods", periods)
        object.__setattr__(self, "wealth_boundaries", boundaries)
        object.__setattr__(self, "wealth_values", values)
        object.__setattr__(self, "wealth_step", float(step))
        object.__setattr__(self, "cashflows", cashflows)
        object.__setattr__(self, "strategies", strategies)

    @property
    def n_bins(self) -> int:
        """Number of original wealth bins."""
        return int(self.wealth_boundaries.size)

    @property
    def n_strategies(self) -> int:
        return len(self.strategies)

    @property
    def strategy_names(self) -> List[str]:
        return [s.name for s in self.strategies]

    def terminal_utilities(self, values: np.ndarray) -> np.ndarray:
        """Evaluate the utility function on *values*, forcing index 0 to 0.

        Index 0 is the bankruptcy bin of the extended grid.
        """
        utilities = np.array([float(self.utility_function(float(v))) for v in values])
        if not np.isfinite(utilities[1:]).all():
            bad = int(np.flatnonzero(~np.isfinite(utilities[1:]))[0]) + 1
            raise ValidationError(
                f"utility_function returned {utilities[bad]} at wealth {values[bad]}; "
                f"it must be finite on every bin value."
            )
        utilities[0] = 0.0
        return utilities


# ---------------------------------------------------------------------------
# Utility catalogue
# ---------------------------------------------------------------------------

def linear_utility() -> UtilityFunction:
    """u(w) = w (risk neutral)."""
    def u(w: float) -> float:
        return float(w)
    return u


def log_utility(floor: float = 1.0) -> UtilityFunction:
    """u(w) = log(max(w, floor)); the floor keeps it finite at w <= 0."""
    if floor <= 0:
        raise ValidationError(f"log utility floor must be positive, got {floor}.")

    def u(w: float) -> float:
        return float(np.log(max(w, floor)))
    return u


def crra_utility(risk_aversion: float, floor: float = 1.0) -> UtilityFunction:
    """Constant relative risk aversion, evaluated on max(w, floor).

    u(w) = w^(1-γ) / (1-γ), with log(w) for γ = 1.
    """
    if risk_aversion < 0:
        raise ValidationError(f"risk_aversion must be >= 0, got {risk_aversion}.")
    if floor <= 0:
        raise ValidationError(f"CRRA floor must be positive, got {floor}.")
    if np.isclose(risk_aversion, 1.0):
        return log_utility(floor)

    def u(w: float) -> float:
        x = max(w, floor)
        return float(x ** (1.0 - risk_aversion) / (1.0 - risk_aversion))
    return u


def goal_utility(goal: float, bonus: float = 1.0, floor: float = 1.0) -> UtilityFunction:
    """log(w) plus a step bonus once terminal wealth reaches *goal*.

    The default utility of the planning application: ``log(x) + step(x - goal)``.
    """
    base = log_utility(floor)

    def u(w: float) -> float:
        return base(w) + (bonus if w >= goal else 0.0)
    return u
