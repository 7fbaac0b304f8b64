"""
Prior Distributions
===================
The engine only needs ``sample``, ``density`` and ``dimension`` from a
prior. ``IndependentPrior`` builds one from named, independent marginals.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, Sequence, Tuple

import numpy as np
from scipy import stats


class Prior(Protocol):
    @property
    def dimension(self) -> int: ...

    def sample(self, rng: np.random.Generator) -> np.ndarray: ...

    def density(self, theta: np.ndarray) -> float: ...


@dataclass
class ParameterPrior:
    """Prior distribution for a single parameter."""

    name: str
    distribution: str  # "uniform", "normal", "beta", "loguniform"
    params: Tuple[float, float]
    description: str = ""

    def __post_init__(self) -> None:
        a, b = self.params
        if self.distribution == "uniform":
            self._dist = stats.uniform(loc=a, scale=b - a)
        elif self.distribution == "normal":
            self._dist = stats.norm(loc=a, scale=b)
        elif self.distribution == "beta":
            self._dist = stats.beta(a, b)
        elif self.distribution == "loguniform":
            self._dist = stats.loguniform(a, b)
        else:
            raise ValueError(f"Unknown distribution: {self.distribution}")

    def sample(self, rng: np.random.Generator, n: int = 1) -> np.ndarray:
        """Sample n values from prior."""
        return np.atleast_1d(self._dist.rvs(size=n, random_state=rng))

    def pdf(self, value: float) -> float:
        return float(self._dist.pdf(value))

    @property
    def support(self) -> Tuple[float, float]:
        low, high = self._dist.support()
        return float(low), float(high)


class IndependentPrior:
    """Product of independent one-dimensional priors."""

    def __init__(self, marginals: Sequence[ParameterPrior]) -> None:
        if not marginals:
            raise ValueError("an independent prior needs at least one marginal")
        self.marginals: List[ParameterPrior] = list(marginals)

    @property
    def dimension(self) -> int:
        return len(self.marginals)

    @property
    def names(self) -> List[str]:
        return [m.name for m in self.marginals]

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        return np.array([m.sample(rng, n=1)[0] for m in self.marginals], dtype=float)

    def density(self, theta: np.ndarray) -> float:
        theta = np.asarray(theta, dtype=float).ravel()
        if theta.shape[0] != self.dimension:
            raise ValueError(f"expected {self.dimension} parameters, got {theta.shape[0]}")
        density = 1.0
        for marginal, value in zip(self.marginals, theta):
            density *= marginal.pdf(value)
            if density == 0.0:
                break
        return density
