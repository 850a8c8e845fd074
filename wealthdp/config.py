"""
Configuration management module for WealthDP.

Purpose
-------
Centralized configuration using Pydantic models for type-safe parameter
management, validation, and serialization. Configs describe a problem in
plain numbers (grid bounds, Normal strategy parameters, cashflow list,
utility kind) and build the runtime objects the solver consumes.

Design Principles
-----------------
- Type-safe: Pydantic enforces types and validates ranges
- Immutable: Frozen models prevent accidental mutation
- Serializable: JSON round-trip via model_dump_json / model_validate_json
- Environment-aware: AppSettings reads WEALTHDP_* variables and .env files

Example
-------
>>> from wealthdp.config import ProblemConfig, GridConfig, StrategyConfig, UtilityConfig
>>> cfg = ProblemConfig(
...     grid=GridConfig(wealth_min=0, wealth_max=400_000, wealth_step=10_000, periods=10),
...     strategies=[StrategyConfig(name="cash", mu=0.01, sigma=0.0),
...                 StrategyConfig(name="e_50", mu=0.03, sigma=0.1)],
...     cashflows=[40_000] * 5 + [-40_000] * 5,
...     utility=UtilityConfig(kind="goal", goal=100_000),
... )
>>> problem = cfg.to_problem()
>>> loaded = ProblemConfig.model_validate_json(cfg.model_dump_json())
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Literal, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_BACKEND,
    DEFAULT_MAX_COARSE_BINS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SUPPORT_SIGMAS,
    DEFAULT_TIE_TOLERANCE,
)
from .exceptions import ConfigurationError
from .problem import (
    Problem,
    UtilityFunction,
    crra_utility,
    goal_utility,
    linear_utility,
    log_utility,
)
from .strategies import Strategy

__all__ = [
    "GridConfig",
    "StrategyConfig",
    "UtilityConfig",
    "SolverConfig",
    "ProblemConfig",
    "AppSettings",
    "load_problem_config",
]


# ---------------------------------------------------------------------------
# Grid Configuration
# ---------------------------------------------------------------------------

class GridConfig(BaseModel):
    """
    Uniform wealth grid and horizon.

    Boundaries run from wealth_min to wealth_max inclusive in steps of
    wealth_step (0, 10_000, ..., 400_000 gives 41 bins).

    Examples
    --------
    >>> GridConfig(wealth_min=0, wealth_max=100, wealth_step=10, periods=5).boundaries()
    array([  0.,  10.,  20.,  30.,  40.,  50.,  60.,  70.,  80.,  90., 100.])
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    wealth_min: float = Field(default=0.0, description="First boundary (bankruptcy threshold)")
    wealth_max: float = Field(description="Last boundary")
    wealth_step: float = Field(gt=0, description="Boundary spacing")
    periods: int = Field(ge=1, le=1_000, description="Number of decision periods")

    @field_validator("wealth_max")
    @classmethod
    def validate_wealth_max(cls, v, info):
        """Ensure wealth_max > wealth_min."""
        wealth_min = info.data.get("wealth_min", 0.0)
        if v <= wealth_min:
            raise ValueError(f"wealth_max ({v}) must be > wealth_min ({wealth_min})")
        return v

    def boundaries(self) -> np.ndarray:
        n = int(np.floor((self.wealth_max - self.wealth_min) / self.wealth_step + 1e-9))
        return self.wealth_min + self.wealth_step * np.arange(n + 1)


# ---------------------------------------------------------------------------
# Strategy Configuration
# ---------------------------------------------------------------------------

class StrategyConfig(BaseModel):
    """
    Gaussian strategy ``name = Normal(mu, sigma)``.

    Attributes
    ----------
    name : str
        Strategy identifier.
    mu : float
        Expected per-period return.
    sigma : float
        Per-period volatility (0 for a deterministic return).
    support_sigmas : float
        Support half-width in standard deviations.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=50)
    mu: float = Field(gt=-1.0, le=10.0, description="Expected per-period return")
    sigma: float = Field(default=0.0, ge=0, le=10.0, description="Per-period volatility")
    support_sigmas: float = Field(
        default=DEFAULT_SUPPORT_SIGMAS,
        gt=0,
        le=40.0,
        description="Support half-width in standard deviations",
    )

    def to_strategy(self) -> Strategy:
        return Strategy.normal(self.name, self.mu, self.sigma, self.support_sigmas)


# ---------------------------------------------------------------------------
# Utility Configuration
# ---------------------------------------------------------------------------

class UtilityConfig(BaseModel):
    """
    Terminal utility from a fixed catalogue.

    Kinds
    -----
    - "linear": u(w) = w
    - "log": u(w) = log(max(w, floor))
    - "crra": constant relative risk aversion with risk_aversion
    - "goal": log(w) + goal_bonus * 1[w >= goal]
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["linear", "log", "crra", "goal"] = Field(default="log")
    risk_aversion: float = Field(default=2.0, ge=0, le=50.0)
    goal: Optional[float] = Field(default=None, description="Goal wealth for kind='goal'")
    goal_bonus: float = Field(default=1.0, description="Utility bonus once the goal is met")
    floor: float = Field(default=1.0, gt=0, description="Wealth floor for log/CRRA")

    @model_validator(mode="after")
    def validate_goal(self):
        """Goal utility needs a goal."""
        if self.kind == "goal" and self.goal is None:
            raise ValueError("goal must be set when kind='goal'")
        return self

    def to_function(self) -> UtilityFunction:
        if self.kind == "linear":
            return linear_utility()
        if self.kind == "log":
            return log_utility(self.floor)
        if self.kind == "crra":
            return crra_utility(self.risk_aversion, self.floor)
        if self.kind == "goal":
            return goal_utility(self.goal, self.goal_bonus, self.floor)
        raise ConfigurationError(f"Unknown utility kind '{self.kind}'.")


# ---------------------------------------------------------------------------
# Solver Configuration
# ---------------------------------------------------------------------------

class SolverConfig(BaseModel):
    """
    Numerical and execution settings of a solve.

    Attributes
    ----------
    tie_tolerance : float
        Relative tolerance under which strategies tie.
    backend : str
        Contraction backend: "numpy" or "threaded".
    max_workers : int
        Threads for the threaded backend.
    fallback_to_cpu : bool
        Rerun failed periods on the NumPy backend.
    deadline_seconds : float, optional
        Abort (SolveCancelledError) once exceeded, checked per period.
    max_coarse_bins : int
        Limit on coarse tail bins.

    Examples
    --------
    >>> SolverConfig(backend="threaded", max_workers=8, deadline_seconds=30.0)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tie_tolerance: float = Field(default=DEFAULT_TIE_TOLERANCE, gt=0, le=1e-2)
    backend: Literal["numpy", "threaded"] = Field(default=DEFAULT_BACKEND)
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1, le=256)
    fallback_to_cpu: bool = Field(default=True)
    deadline_seconds: Optional[float] = Field(default=None, gt=0)
    max_coarse_bins: int = Field(default=DEFAULT_MAX_COARSE_BINS, ge=2, le=100_000)


# ---------------------------------------------------------------------------
# Problem Configuration
# ---------------------------------------------------------------------------

class ProblemConfig(BaseModel):
    """
    Complete problem description.

    Attributes
    ----------
    grid : GridConfig
    strategies : List[StrategyConfig]
        At least one, unique names.
    cashflows : List[float]
        At most grid.periods entries (padded with zeros).
    utility : UtilityConfig
    solver : SolverConfig
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    grid: GridConfig
    strategies: List[StrategyConfig] = Field(min_length=1)
    cashflows: List[float] = Field(default_factory=list)
    utility: UtilityConfig = Field(default_factory=UtilityConfig)
    solver: SolverConfig = Field(default_factory=SolverConfig)

    @field_validator("strategies")
    @classmethod
    def validate_unique_names(cls, v):
        """Ensure strategy names are unique."""
        names = [s.name for s in v]
        if len(set(names)) != len(names):
            raise ValueError(f"strategy names must be unique, got {names}")
        return v

    @model_validator(mode="after")
    def validate_cashflow_length(self):
        """Cashflows may not outnumber periods."""
        if len(self.cashflows) > self.grid.periods:
            raise ValueError(
                f"cashflows has {len(self.cashflows)} entries for {self.grid.periods} periods"
            )
        return self

    def to_problem(self) -> Problem:
        cashflows = list(self.cashflows) + [0.0] * (self.grid.periods - len(self.cashflows))
        return Problem(
            wealth_boundaries=self.grid.boundaries(),
            periods=self.grid.periods,
            strategies=[s.to_strategy() for s in self.strategies],
            cashflows=np.asarray(cashflows, dtype=float),
            utility_function=self.utility.to_function(),
            wealth_step=self.grid.wealth_step,
        )


def load_problem_config(path: Path | str) -> ProblemConfig:
    """Read a ProblemConfig from a JSON file."""
    return ProblemConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global settings loaded from environment variables.

    Variables are prefixed with WEALTHDP_ (e.g., WEALTHDP_LOG_LEVEL=DEBUG).

    Attributes
    ----------
    debug : bool
        Force DEBUG logging.
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR".
    backend : str
        Default contraction backend.
    max_workers : int
        Default thread count for the threaded backend.

    Examples
    --------
    >>> settings = AppSettings()
    >>> settings.log_level
    'INFO'
    """

    model_config = SettingsConfigDict(
        env_prefix="WEALTHDP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    backend: Literal["numpy", "threaded"] = Field(default=DEFAULT_BACKEND)
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1, le=256)

    def solver_config(self, **overrides) -> SolverConfig:
        """SolverConfig seeded from these settings."""
        params = {"backend": self.backend, "max_workers": self.max_workers}
        params.update(overrides)
        return SolverConfig(**params)
