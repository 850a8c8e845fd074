"""
Tie resolution for optimal-policy grids.

Each period row is scanned from low to high wealth. A run of AMBIGUOUS cells
takes the strategy of its resolved neighbours when they agree:

- no neighbour on either side  -> run stays AMBIGUOUS
- only one neighbour           -> run takes that neighbour's strategy
- both neighbours, equal       -> run takes that strategy
- both neighbours, different   -> run stays AMBIGUOUS

This is a weak continuity prior over wealth, not a correctness guarantee.
Cells left AMBIGUOUS are a reportable, non-fatal outcome.

Example
-------
>>> row = np.array([2, AMBIGUOUS, AMBIGUOUS, 2, AMBIGUOUS, 5, AMBIGUOUS])
>>> resolve_row(row)
array([ 2,  2,  2,  2, -1,  5,  5])
"""

from __future__ import annotations

import numpy as np

from .constants import AMBIGUOUS

__all__ = ["resolve_row", "resolve_ambiguous"]


def resolve_row(row: np.ndarray) -> np.ndarray:
    """Resolve one period row in place and return it."""
    n = row.size
    below = AMBIGUOUS
    j = 0
    while j < n:
        if row[j] != AMBIGUOUS:
            below = row[j]
            j += 1
            continue

        start = j
        while j < n and row[j] == AMBIGUOUS:
            j += 1
        above = row[j] if j < n else AMBIGUOUS

        if below == AMBIGUOUS:
            fill = above
        elif above == AMBIGUOUS or above == below:
            fill = below
        else:
            fill = AMBIGUOUS
        row[start:j] = fill
        below = above
    return row


def resolve_ambiguous(policy: np.ndarray) -> np.ndarray:
    """
    Resolve every period row of *policy* in place.

    Parameters
    ----------
    policy : np.ndarray, shape (periods, n_bins), int

    Returns
    -------
    np.ndarray
        The same array, for chaining.
    """
    for row in policy:
        resolve_row(row)
    return policy
