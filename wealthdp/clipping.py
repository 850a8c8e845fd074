"""
Clipping of extended-grid results back to the caller's grid.
"""

from __future__ import annotations
from typing import Tuple

import numpy as np

from .exceptions import ValidationError

__all__ = ["clip_to_original"]


def clip_to_original(
    grid: np.ndarray,
    original_range: Tuple[int, int],
    *,
    wealth_axis: int = -1,
) -> np.ndarray:
    """
    Slice the wealth axis of *grid* to ``[start, stop)`` and return a
    ``[period][wealth]`` copy.

    Parameters
    ----------
    grid : np.ndarray, 2-D
        Extended grid with wealth along *wealth_axis*.
    original_range : Tuple[int, int]
        Half-open window of the caller's bins in the extended grid.
    wealth_axis : int
        Axis holding wealth bins (0 or 1, negative allowed).

    Raises
    ------
    ValidationError
        If the window does not fit inside the wealth axis.
    """
    grid = np.asarray(grid)
    if grid.ndim != 2:
        raise ValidationError(f"grid must be 2-D, got shape {grid.shape}.")
    oriented = np.moveaxis(grid, wealth_axis, -1)
    start, stop = original_range
    if not 0 <= start < stop <= oriented.shape[-1]:
        raise ValidationError(
            f"original_range {original_range} does not fit {oriented.shape[-1]} wealth bins."
        )
    return oriented[:, start:stop].copy()
