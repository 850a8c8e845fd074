"""
WealthDP — Dynamic-programming solver for goal-based wealth planning

Finds, for every (period, wealth) cell of a discretized grid, the investment
strategy that maximizes expected terminal utility under deterministic
cashflows, and simulates the resulting wealth distribution forward.

Modules
-------
- strategies   : Strategies and their return distributions
- problem      : Immutable problem input, terminal utility catalogue
- grid         : Bankruptcy sink and coarse tail extension
- transitions  : Banded transition tensors
- backends     : Per-period contraction backends (NumPy, threaded)
- induction    : Backward induction with tie detection
- ambiguity    : Tie resolution over wealth
- clipping     : Extended grid -> caller's grid
- trajectories : Policy-induced transitions, forward propagation
- quantiles    : Confidence bands of trajectory distributions
- solver       : solve() orchestration and Solution
- config       : Pydantic configuration and environment settings
- utils        : Shared utilities (validation, logging)

"""

from .strategies import Strategy, GaussianReturn, DeterministicReturn
from .problem import (
    Problem,
    linear_utility,
    log_utility,
    crra_utility,
    goal_utility,
)
from .solver import Solution, ExtendedSolution, solve
from .trajectories import compute_trajectories
from .quantiles import QuantileTrace, find_quantiles
from .config import (
    GridConfig,
    StrategyConfig,
    UtilityConfig,
    SolverConfig,
    ProblemConfig,
    AppSettings,
    load_problem_config,
)
from .constants import AMBIGUOUS
from .exceptions import (
    WealthDPError,
    ConfigurationError,
    ValidationError,
    SolverError,
    SolveCancelledError,
    BackendError,
)
from . import utils

__version__ = "0.1.0"

__all__ = [
    "Strategy",
    "GaussianReturn",
    "DeterministicReturn",
    "Problem",
    "linear_utility",
    "log_utility",
    "crra_utility",
    "goal_utility",
    "Solution",
    "ExtendedSolution",
    "solve",
    "compute_trajectories",
    "QuantileTrace",
    "find_quantiles",
    "GridConfig",
    "StrategyConfig",
    "UtilityConfig",
    "ProblemConfig",
    "SolverConfig",
    "AppSettings",
    "load_problem_config",
    "AMBIGUOUS",
    "WealthDPError",
    "ConfigurationError",
    "ValidationError",
    "SolverError",
    "SolveCancelledError",
    "BackendError",
    "utils",
]
