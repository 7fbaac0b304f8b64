"""
Toy Models
==========
Small simulators with known answers, used by the example configs and the
tests. Each ``build_*_problem`` function is a valid ``model.entry_point``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from abcpmc.inference.distances import EuclideanDistance, MADScaledDistance
from abcpmc.inference.priors import IndependentPrior, ParameterPrior
from abcpmc.inference.problem import ABCProblem


@dataclass
class UniformNoiseSimulator:
    """Returns ``theta + N(0, noise^2)``; fails with probability ``failure_rate``."""

    rng: np.random.Generator
    noise: float = 0.1
    failure_rate: float = 0.0
    calls: int = 0

    def __call__(self, theta: np.ndarray) -> Tuple[bool, Optional[np.ndarray]]:
        self.calls += 1
        if self.failure_rate > 0 and self.rng.random() < self.failure_rate:
            return False, None
        return True, np.asarray(theta, dtype=float) + self.rng.normal(0.0, self.noise, size=1)


@dataclass
class NormalLocationSimulator:
    """Draws ``n_obs`` normals with mean theta[0] and sd theta[1]; returns (mean, log sd)."""

    rng: np.random.Generator
    n_obs: int = 50
    calls: int = 0

    def __call__(self, theta: np.ndarray) -> Tuple[bool, Optional[np.ndarray]]:
        self.calls += 1
        mu, sigma = float(theta[0]), float(theta[1])
        if sigma <= 0:
            return False, None
        draws = self.rng.normal(mu, sigma, size=self.n_obs)
        return True, np.array([draws.mean(), np.log(draws.std())])


def build_uniform_noise_problem(
    observed: float = 4.0,
    noise: float = 0.1,
    failure_rate: float = 0.0,
    low: float = 0.0,
    high: float = 10.0,
    seed: int = 0,
    scaled: bool = False,
) -> ABCProblem:
    prior = IndependentPrior([ParameterPrior("theta", "uniform", (low, high), "location")])
    simulator = UniformNoiseSimulator(np.random.default_rng(seed), noise=noise, failure_rate=failure_rate)
    metric = MADScaledDistance([observed]) if scaled else EuclideanDistance([observed])
    return ABCProblem(prior=prior, simulator=simulator, distance=metric, n_sumstats=1)


def build_normal_location_problem(
    mu: float = 1.0,
    sigma: float = 2.0,
    n_obs: int = 50,
    seed: int = 0,
) -> ABCProblem:
    rng = np.random.default_rng(seed)
    observed_draws = rng.normal(mu, sigma, size=n_obs)
    observed = [observed_draws.mean(), np.log(observed_draws.std())]
    prior = IndependentPrior(
        [
            ParameterPrior("mu", "uniform", (-10.0, 10.0), "mean"),
            ParameterPrior("sigma", "uniform", (0.1, 10.0), "standard deviation"),
        ]
    )
    simulator = NormalLocationSimulator(rng, n_obs=n_obs)
    return ABCProblem(prior=prior, simulator=simulator, distance=MADScaledDistance(observed), n_sumstats=2)
