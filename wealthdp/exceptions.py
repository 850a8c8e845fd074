"""
Custom exceptions for WealthDP.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across all WealthDP modules. All exceptions inherit from WealthDPError,
enabling catch-all handling when needed.

Exception Hierarchy
-------------------
WealthDPError (base)
├── ConfigurationError - Invalid configuration or parameters
├── ValidationError - Malformed problem arrays or indices
├── SolverError - Backward induction failures
│   └── SolveCancelledError - Deadline passed or cancellation requested
└── BackendError - Contraction backend failure

Usage
-----
>>> from wealthdp.exceptions import ValidationError, SolveCancelledError
>>>
>>> raise ValidationError("wealth_boundaries must be strictly increasing")
>>>
>>> try:
...     solution = solve(problem, SolverConfig(deadline_seconds=5.0))
... except SolveCancelledError as e:
...     print(f"Solve aborted: {e}")
"""


class WealthDPError(Exception):
    """
    Base exception for all WealthDP errors.

    Examples
    --------
    >>> try:
    ...     solution = solve(problem)
    ... except WealthDPError as e:
    ...     logger.error(f"Solve failed: {e}")
    """
    pass


class ConfigurationError(WealthDPError):
    """
    Invalid configuration or parameters.

    Raised when solver or problem configuration is invalid, such as:
    - Unknown contraction backend name
    - Unknown utility kind
    - Non-positive worker count

    Examples
    --------
    >>> raise ConfigurationError(
    ...     f"Unknown backend '{name}'. Available: numpy, threaded."
    ... )
    """
    pass


class ValidationError(WealthDPError):
    """
    Data validation failures.

    Raised when problem arrays or call arguments fail structural checks:
    - Wealth boundaries not strictly increasing
    - Cashflow schedule longer than the horizon
    - Seed period or wealth index out of range
    - Confidence probabilities outside (0, 1]

    Examples
    --------
    >>> raise ValidationError(
    ...     f"wealth_index must be in [0, {n_bins}), got {wealth_index}."
    ... )
    """
    pass


class SolverError(WealthDPError):
    """
    Backward induction failures.

    Examples
    --------
    >>> raise SolverError(
    ...     f"final_utilities has {len(u)} entries, expected {n_bins}."
    ... )
    """
    pass


class SolveCancelledError(SolverError):
    """
    Solve aborted at a period boundary.

    Raised when the deadline passed or the cancellation event was set
    before the next period could start.

    Examples
    --------
    >>> raise SolveCancelledError(
    ...     f"Deadline exceeded after {elapsed:.1f}s at period {p}."
    ... )
    """
    pass


class BackendError(WealthDPError):
    """
    Contraction backend failure.

    Raised by a backend that cannot complete a period contraction.
    FallbackBackend catches it and reruns the period on the NumPy path.

    Examples
    --------
    >>> raise BackendError("worker pool shut down before contraction finished")
    """
    pass
