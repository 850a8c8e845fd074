"""General utilities for WealthDP

Contents
--------
- Validation helpers
- Array helpers (ensure_1d, ensure_strictly_increasing)
- Cashflow helpers (max_prefix_sum)
- Logging setup (configure_logging)
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, TYPE_CHECKING

import numpy as np

from .exceptions import ValidationError

if TYPE_CHECKING:
    from .config import AppSettings

__all__ = [
    # Validation
    "check_non_negative",
    # Arrays
    "ensure_1d",
    "ensure_strictly_increasing",
    # Cashflows
    "max_prefix_sum",
    # Logging
    "configure_logging",
]

ArrayLike = Sequence[float] | np.ndarray


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def check_non_negative(name: str, value: float) -> None:
    """Raise if *value* is negative (strict)."""
    if value < 0:
        raise ValidationError(f"{name} must be non-negative (got {value}).")


# ---------------------------------------------------------------------------
# Array helpers
# ---------------------------------------------------------------------------

def ensure_1d(a: ArrayLike, *, name: str = "array") -> np.ndarray:
    """Convert input to a 1-D float NumPy array with helpful error messages."""
    arr = np.asarray(a, dtype=float)
    if arr.ndim != 1:
        raise ValidationError(f"{name} must be 1-D, got shape {arr.shape}.")
    if not np.isfinite(arr).all():
        raise ValidationError(f"{name} must contain only finite values.")
    return arr


def ensure_strictly_increasing(a: ArrayLike, *, name: str = "array") -> np.ndarray:
    """Like ensure_1d, additionally requiring a non-empty strictly increasing array."""
    arr = ensure_1d(a, name=name)
    if arr.size == 0:
        raise ValidationError(f"{name} must not be empty.")
    if arr.size > 1 and not np.all(np.diff(arr) > 0):
        bad = int(np.argmin(np.diff(arr)))
        raise ValidationError(
            f"{name} must be strictly increasing; "
            f"{name}[{bad}]={arr[bad]} >= {name}[{bad + 1}]={arr[bad + 1]}."
        )
    return arr


# ---------------------------------------------------------------------------
# Cashflow helpers
# ---------------------------------------------------------------------------

def max_prefix_sum(values: ArrayLike) -> float:
    """Largest running sum of *values*, counting the empty prefix (0.0).

    Used as the worst-case cumulative cashflow when bounding reachable wealth.

    Examples
    --------
    >>> max_prefix_sum([40_000, 40_000, -40_000])
    80000.0
    >>> max_prefix_sum([-1.0, -2.0])
    0.0
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(max(0.0, np.cumsum(arr).max()))


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def configure_logging(
    settings: Optional[AppSettings] = None,
    *,
    level: Optional[int | str] = None,
) -> logging.Logger:
    """Attach a console handler to the ``wealthdp`` logger.

    The level comes from *level* if given, otherwise from
    ``settings.log_level`` (``DEBUG`` when ``settings.debug`` is set).
    Calling it twice does not duplicate handlers.
    """
    if level is None:
        if settings is None:
            from .config import AppSettings

            settings = AppSettings()
        level = "DEBUG" if settings.debug else settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger("wealthdp")
    logger.setLevel(level)

    handler = next(
        (h for h in logger.handlers if getattr(h, "_wealthdp_console", False)),
        None,
    )
    if handler is None:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        handler._wealthdp_console = True
        logger.addHandler(handler)
    handler.setLevel(level)
    return logger
