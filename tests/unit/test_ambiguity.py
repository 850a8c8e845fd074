"""
Unit tests for ambiguity.py module.

Tests run-based tie resolution on single rows and full policy grids.
"""

import numpy as np
import pytest

from wealthdp.ambiguity import resolve_ambiguous, resolve_row
from wealthdp.constants import AMBIGUOUS

A = AMBIGUOUS


class TestResolveRow:
    """Test resolution of one period row."""

    @pytest.mark.parametrize(
        "row, expected",
        [
            # interior run between equal neighbours fills; unequal stays; trailing takes below
            ([2, A, A, 2, A, 5, A], [2, 2, 2, 2, A, 5, 5]),
            # leading run takes the neighbour above
            ([A, 1, A, A, 1], [1, 1, 1, 1, 1]),
            ([A, A, 3], [3, 3, 3]),
            ([0, A, 1], [0, A, 1]),
            ([A, A, A], [A, A, A]),
            ([0, 1, 2], [0, 1, 2]),
            ([], []),
        ],
    )
    def test_cases(self, row, expected):
        result = resolve_row(np.array(row, dtype=np.int64))
        np.testing.assert_array_equal(result, expected)

    def test_in_place(self):
        row = np.array([1, A, 1], dtype=np.int64)
        out = resolve_row(row)
        assert out is row
        np.testing.assert_array_equal(row, [1, 1, 1])

    def test_unresolved_run_does_not_leak(self):
        """A run left ambiguous is bounded by its right neighbour for the next run."""
        row = np.array([0, A, 1, A, 1], dtype=np.int64)
        np.testing.assert_array_equal(resolve_row(row), [0, A, 1, 1, 1])

    def test_filled_cells_never_change_determined_ones(self):
        rng = np.random.default_rng(0)
        row = rng.integers(-1, 3, size=200)
        determined = row != A
        before = row.copy()
        resolve_row(row)
        np.testing.assert_array_equal(row[determined], before[determined])


class TestResolveAmbiguous:
    """Test resolution of a full policy grid."""

    def test_rows_independent(self):
        policy = np.array([[2, A, 2], [A, A, A], [0, A, 1]], dtype=np.int64)
        out = resolve_ambiguous(policy)
        assert out is policy
        np.testing.assert_array_equal(out, [[2, 2, 2], [A, A, A], [0, A, 1]])
