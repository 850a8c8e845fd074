"""
Per-period contraction backends for backward induction.

Purpose
-------
The inner step of each Bellman period is a batched contraction of the banded
transition tensor against next period's utilities:

    E[i, s] = Σ_k P[i, s, k] * U[start[i, s] + k]

Cells are independent, so the step can run vectorized, chunked across
threads, or on other hardware. Backends only change where the arithmetic
runs; all of them return the same (n_bins, n_strategies) array up to
floating tolerance, and the period loop waits for the result before moving
on.

Available backends
------------------
- NumpyBackend    : single vectorized gather + reduction (reference path)
- ThreadedBackend : wealth-bin chunks on a thread pool, joined per period
- FallbackBackend : wraps another backend and reruns failed periods on NumPy

Example
-------
>>> backend = get_backend("threaded", max_workers=4)
>>> E = backend.contract(probs, start, width, next_utility)
>>> E.shape
(n_bins, n_strategies)
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Type

import numpy as np

from .constants import DEFAULT_MAX_WORKERS
from .exceptions import BackendError, ConfigurationError

__all__ = [
    "ContractionBackend",
    "NumpyBackend",
    "ThreadedBackend",
    "FallbackBackend",
    "get_backend",
    "BACKENDS",
]

logger = logging.getLogger(__name__)


def _contract_rows(
    probabilities: np.ndarray,
    band_start: np.ndarray,
    next_utility: np.ndarray,
) -> np.ndarray:
    # Padded band entries carry probability 0, so clipping their index is harmless.
    offsets = np.arange(probabilities.shape[-1])
    idx = np.minimum(band_start[..., None] + offsets, next_utility.size - 1)
    return np.einsum("isk,isk->is", probabilities, next_utility[idx])


class ContractionBackend(ABC):
    """Strategy interface for the per-period expectation step."""

    name: str = "abstract"

    @abstractmethod
    def contract(
        self,
        probabilities: np.ndarray,
        band_start: np.ndarray,
        band_width: np.ndarray,
        next_utility: np.ndarray,
    ) -> np.ndarray:
        """
        Expected next-period utility per (wealth, strategy).

        Parameters
        ----------
        probabilities : np.ndarray, shape (n_bins, n_strategies, bandwidth)
        band_start : np.ndarray, shape (n_bins, n_strategies)
        band_width : np.ndarray, shape (n_bins, n_strategies)
        next_utility : np.ndarray, shape (n_bins,)

        Returns
        -------
        np.ndarray, shape (n_bins, n_strategies)
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NumpyBackend(ContractionBackend):
    """Vectorized reference implementation."""

    name = "numpy"

    def contract(self, probabilities, band_start, band_width, next_utility):
        return _contract_rows(probabilities, band_start, next_utility)


class ThreadedBackend(ContractionBackend):
    """
    Splits wealth bins into contiguous chunks evaluated on a thread pool.

    NumPy releases the GIL inside the gather and reduction, so chunks run
    concurrently. Each chunk writes a disjoint row range of the output.

    Parameters
    ----------
    max_workers : int
        Thread count (>= 1).
    min_chunk : int
        Smallest number of wealth rows per task.
    """

    name = "threaded"

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS, min_chunk: int = 16):
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}.")
        if min_chunk < 1:
            raise ConfigurationError(f"min_chunk must be >= 1, got {min_chunk}.")
        self.max_workers = int(max_workers)
        self.min_chunk = int(min_chunk)

    def contract(self, probabilities, band_start, band_width, next_utility):
        n_bins = probabilities.shape[0]
        n_chunks = max(1, min(self.max_workers, n_bins // self.min_chunk))
        bounds = np.linspace(0, n_bins, n_chunks + 1).astype(int)
        out = np.empty(probabilities.shape[:2])

        def run(lo: int, hi: int) -> None:
            out[lo:hi] = _contract_rows(probabilities[lo:hi], band_start[lo:hi], next_utility)

        with ThreadPoolExecutor(max_workers=n_chunks) as pool:
            futures = [pool.submit(run, lo, hi) for lo, hi in zip(bounds[:-1], bounds[1:])]
            for future in futures:
                try:
                    future.result()
                except (RuntimeError, MemoryError, ValueError) as e:
                    raise BackendError(f"Threaded contraction failed: {e}") from e
        return out

    def __repr__(self) -> str:
        return f"ThreadedBackend(max_workers={self.max_workers})"


class FallbackBackend(ContractionBackend):
    """
    Runs *primary* and reruns the period on NumPy if it fails.

    After the first failure the primary backend is disabled for the rest of
    this backend's lifetime.
    """

    def __init__(self, primary: ContractionBackend, fallback: ContractionBackend | None = None):
        self.primary = primary
        self.fallback = fallback or NumpyBackend()
        self.failed = False
        self.name = primary.name

    def contract(self, probabilities, band_start, band_width, next_utility):
        if not self.failed:
            try:
                return self.primary.contract(probabilities, band_start, band_width, next_utility)
            except (BackendError, RuntimeError, MemoryError) as e:
                self.failed = True
                logger.warning(
                    f"{self.primary!r} failed ({e}); falling back to {self.fallback!r}."
                )
        return self.fallback.contract(probabilities, band_start, band_width, next_utility)

    def __repr__(self) -> str:
        return f"FallbackBackend(primary={self.primary!r}, fallback={self.fallback!r})"


BACKENDS: Dict[str, Type[ContractionBackend]] = {
    "numpy": NumpyBackend,
    "threaded": ThreadedBackend,
}


def get_backend(
    name: str = "numpy",
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    fallback_to_cpu: bool = True,
) -> ContractionBackend:
    """
    Instantiate a backend by name.

    Non-NumPy backends are wrapped in FallbackBackend unless
    ``fallback_to_cpu`` is False.

    Raises
    ------
    ConfigurationError
        If *name* is not a registered backend.
    """
    if name not in BACKENDS:
        raise ConfigurationError(
            f"Unknown backend '{name}'. Available: {', '.join(sorted(BACKENDS))}."
        )
    if name == "numpy":
        return NumpyBackend()
    backend = BACKENDS[name](max_workers=max_workers)
    return FallbackBackend(backend) if fallback_to_cpu else backend
