"""
Perturbation Kernel
===================
Zero-mean multivariate normal whose covariance is twice the weighted
covariance of the previous stage's particles.

Covariance estimators:

* ``"biased"``: sum_i w_i (x_i - mu)(x_i - mu)^T with weights normalized to
  sum to 1.
* ``"unbiased"``: the same sum divided by 1 - sum_i w_i^2 (reliability
  weights correction).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np
from scipy import stats

from abcpmc.inference.particles import ParticleTable

PERTURBATION_SCALE = 2.0


def weighted_covariance(
    parameters: np.ndarray,
    weights: np.ndarray,
    estimator: Literal["biased", "unbiased"] = "biased",
) -> np.ndarray:
    """Weighted ``(p, p)`` covariance of ``(n, p)`` parameters."""
    parameters = np.asarray(parameters, dtype=float)
    w = np.asarray(weights, dtype=float)
    w = w / w.sum()
    mean = w @ parameters
    centred = parameters - mean
    cov = (centred * w[:, None]).T @ centred
    if estimator == "unbiased":
        correction = 1.0 - np.sum(w**2)
        if correction <= 0:
            raise ValueError("unbiased weighted covariance needs more than one particle with positive weight")
        cov = cov / correction
    elif estimator != "biased":
        raise ValueError(f"Unknown covariance estimator: {estimator}")
    return cov


@dataclass(frozen=True, eq=False)
class PerturbationKernel:
    covariance: np.ndarray
    diagonal: bool = False

    def __post_init__(self) -> None:
        cov = np.atleast_2d(np.asarray(self.covariance, dtype=float))
        cov.setflags(write=False)
        object.__setattr__(self, "covariance", cov)
        object.__setattr__(
            self,
            "_dist",
            stats.multivariate_normal(mean=np.zeros(cov.shape[0]), cov=cov, allow_singular=True),
        )

    @property
    def dimension(self) -> int:
        return int(self.covariance.shape[0])

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        return np.atleast_1d(self._dist.rvs(random_state=rng)).astype(float)

    def logpdf(self, offsets: np.ndarray) -> np.ndarray:
        """Log density of each row of an ``(n, p)`` array of offsets."""
        offsets = np.asarray(offsets, dtype=float).reshape(-1, self.dimension)
        return np.atleast_1d(self._dist.logpdf(offsets))

    def pdf(self, offsets: np.ndarray) -> np.ndarray:
        return np.exp(self.logpdf(offsets))


def build_perturbation_kernel(
    table: ParticleTable,
    diagonal: bool = False,
    estimator: Literal["biased", "unbiased"] = "biased",
) -> PerturbationKernel:
    cov = weighted_covariance(table.parameters, table.weights, estimator)
    if diagonal:
        cov = np.diag(np.diag(cov))
    return PerturbationKernel(covariance=PERTURBATION_SCALE * cov, diagonal=diagonal)
