"""
Type definitions for WealthDP.

Purpose
-------
TypedDict definitions for the structured dictionaries returned by the
solver, so callers that serialize results (e.g. a rendering layer) have a
documented shape.

Type Definitions
----------------
QuantileTraceDict
    One confidence band: {"probability", "x", "lower", "upper"}

SolveDiagnosticsDict
    Solver bookkeeping: {"n_bins_extended", "n_slots", "bandwidth", ...}
"""

from typing import List
from typing_extensions import TypedDict

__all__ = [
    "QuantileTraceDict",
    "SolveDiagnosticsDict",
]


class QuantileTraceDict(TypedDict):
    """
    Serialized QuantileTrace.

    Attributes
    ----------
    probability : float
        Central probability (e.g., 0.9).
    x : List[int]
        Periods covered by the trace.
    lower : List[int]
        Lower bound extended-bin index per period.
    upper : List[int]
        Upper bound extended-bin index per period.

    Examples
    --------
    >>> trace: QuantileTraceDict = traces[0].to_dict()
    >>> trace["lower"][0] == trace["upper"][0]  # point mass at the seed
    True
    """

    probability: float
    x: List[int]
    lower: List[int]
    upper: List[int]


class SolveDiagnosticsDict(TypedDict, total=False):
    """
    Solver diagnostics attached to a Solution.

    Attributes
    ----------
    n_bins_extended : int
        Bins in the extended grid (original + bankruptcy + tail).
    n_slots : int
        Distinct cashflow values, i.e. transition tensors built.
    bandwidth : int
        Widest support band stored.
    n_ambiguous_raw : int
        Tied cells on the extended grid before resolution.
    n_ambiguous : int
        Tied cells left in the caller's grid after resolution.
    backend : str
        Contraction backend name.
    solve_time : float
        Wall-clock seconds for the full solve.

    Examples
    --------
    >>> diag: SolveDiagnosticsDict = solution.diagnostics
    >>> print(f"{diag['n_ambiguous']} undetermined cells in {diag['solve_time']:.2f}s")
    """

    n_bins_extended: int
    n_slots: int
    bandwidth: int
    n_ambiguous_raw: int
    n_ambiguous: int
    backend: str
    solve_time: float
