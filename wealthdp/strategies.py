"""
Investment strategies and their per-period return distributions.

Purpose
-------
A strategy is a named random multiplicative return R with a known cumulative
distribution and a bounded support [low, high]. Wealth evolves as

    W_{t+1} = W_t * (1 + R) + c_t

The solver only needs three things from a strategy: CDF(r), the support used
to bound band searches, and (location, scale) used to size the coarse grid
tail. The set of distribution families is closed and explicit:

- GaussianReturn      : R ~ Normal(mu, sigma), sigma > 0
- DeterministicReturn : R = mu with probability 1 (Normal with sigma = 0)

Strategy.normal() dispatches between the two, mirroring the
``name = Normal(mu, sigma)`` strategy notation of the input layer.

Example
-------
>>> strategies = [
...     Strategy.normal("cash", 0.01, 0.0),
...     Strategy.normal("e_50", 0.03, 0.10),
... ]
>>> strategies[1].support  # mu +/- 6 sigma
(-0.57, 0.63)
>>> strategies[0].cdf(np.array([0.0, 0.01, 0.02]))
array([0., 1., 1.])
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
from scipy import stats

from .constants import DEFAULT_SUPPORT_SIGMAS
from .exceptions import ValidationError

__all__ = [
    "ReturnDistribution",
    "GaussianReturn",
    "DeterministicReturn",
    "Strategy",
]


# ---------------------------------------------------------------------------
# Distribution families
# ---------------------------------------------------------------------------

class ReturnDistribution(ABC):
    """Capability interface: a return distribution with a vectorized CDF."""

    @property
    @abstractmethod
    def location(self) -> float:
        """Central return (mean)."""

    @property
    @abstractmethod
    def scale(self) -> float:
        """Spread of the return (standard deviation)."""

    @abstractmethod
    def cdf(self, r: np.ndarray) -> np.ndarray:
        """P(R <= r), elementwise."""

    @abstractmethod
    def default_support(self) -> Tuple[float, float]:
        """Finite return interval holding the effective mass."""


@dataclass(frozen=True)
class GaussianReturn(ReturnDistribution):
    """
    Normal return R ~ N(mu, sigma^2).

    Parameters
    ----------
    mu : float
        Expected per-period return.
    sigma : float
        Per-period volatility, strictly positive.
    support_sigmas : float, default 6.0
        Support half-width in standard deviations.
    """

    mu: float
    sigma: float
    support_sigmas: float = DEFAULT_SUPPORT_SIGMAS

    def __post_init__(self):
        if not self.sigma > 0:
            raise ValidationError(
                f"GaussianReturn requires sigma > 0, got {self.sigma}. "
                f"Use DeterministicReturn for sigma = 0."
            )
        if not self.support_sigmas > 0:
            raise ValidationError(
                f"support_sigmas must be positive, got {self.support_sigmas}."
            )

    @property
    def location(self) -> float:
        return self.mu

    @property
    def scale(self) -> float:
        return self.sigma

    def cdf(self, r: np.ndarray) -> np.ndarray:
        return stats.norm.cdf(r, loc=self.mu, scale=self.sigma)

    def default_support(self) -> Tuple[float, float]:
        half = self.support_sigmas * self.sigma
        return (self.mu - half, self.mu + half)


@dataclass(frozen=True)
class DeterministicReturn(ReturnDistribution):
    """
    Degenerate return R = mu (a Normal with zero volatility).

    The CDF is the unit step at mu, so a band entry [a, b) in return space
    receives probability 1 exactly when a < mu <= b.
    """

    mu: float

    @property
    def location(self) -> float:
        return self.mu

    @property
    def scale(self) -> float:
        return 0.0

    def cdf(self, r: np.ndarray) -> np.ndarray:
        return np.where(np.asarray(r, dtype=float) >= self.mu, 1.0, 0.0)

    def default_support(self) -> Tuple[float, float]:
        return (self.mu, self.mu)


# ---------------------------------------------------------------------------
# Strategy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Strategy:
    """
    Named investment strategy.

    Parameters
    ----------
    name : str
        Display name (e.g., "cash", "e_50").
    distribution : ReturnDistribution
        Per-period return distribution.
    support : Tuple[float, float], optional
        Return interval [low, high] bounding band searches. Defaults to
        ``distribution.default_support()``.

    Examples
    --------
    >>> s = Strategy.normal("e_25", mu=0.02, sigma=0.05)
    >>> s.location, s.scale
    (0.02, 0.05)
    """

    name: str
    distribution: ReturnDistribution
    support: Optional[Tuple[float, float]] = field(default=None)

    def __post_init__(self):
        if not self.name:
            raise ValidationError("Strategy name must be non-empty.")
        support = self.support
        if support is None:
            support = self.distribution.default_support()
        low, high = float(support[0]), float(support[1])
        if not (np.isfinite(low) and np.isfinite(high)) or low > high:
            raise ValidationError(
                f"Strategy '{self.name}' support must be a finite interval "
                f"with low <= high, got ({low}, {high})."
            )
        object.__setattr__(self, "support", (low, high))

    @classmethod
    def normal(
        cls,
        name: str,
        mu: float,
        sigma: float,
        support_sigmas: float = DEFAULT_SUPPORT_SIGMAS,
    ) -> Strategy:
        """Build a Gaussian strategy; sigma == 0 yields a deterministic return."""
        if sigma < 0:
            raise ValidationError(f"Strategy '{name}': sigma must be >= 0, got {sigma}.")
        if sigma == 0:
            return cls(name, DeterministicReturn(float(mu)))
        return cls(name, GaussianReturn(float(mu), float(sigma), float(support_sigmas)))

    @property
    def location(self) -> float:
        return self.distribution.location

    @property
    def scale(self) -> float:
        return self.distribution.scale

    def cdf(self, r: np.ndarray) -> np.ndarray:
        return self.distribution.cdf(r)

    def __repr__(self) -> str:
        return (f"Strategy('{self.name}', μ={self.location:.4f}, σ={self.scale:.4f}, "
                f"support=[{self.support[0]:.4f}, {self.support[1]:.4f}])")
