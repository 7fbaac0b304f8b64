"""
Importance Sampling
===================
Proposals for stages after the first are drawn from the mixture
sum_j w_j K(. - theta_j) built from the previous stage. New particles are
then weighted by prior density over that mixture density:

    w_i  proportional to  pi(x_i) / sum_j w_j K(x_i - theta_j)
"""

from __future__ import annotations

import numpy as np
from scipy.special import logsumexp

from abcpmc.inference.kernel import PerturbationKernel
from abcpmc.inference.particles import ParticleTable


def propose(previous: ParticleTable, kernel: PerturbationKernel, rng: np.random.Generator) -> np.ndarray:
    """Resample an ancestor by weight and perturb it."""
    idx = rng.choice(len(previous), p=previous.normalized_weights)
    return previous.parameters[idx] + kernel.sample(rng)


def mixture_logpdf(parameters: np.ndarray, previous: ParticleTable, kernel: PerturbationKernel) -> np.ndarray:
    """Log density of the importance mixture at each row of ``parameters``."""
    parameters = np.atleast_2d(np.asarray(parameters, dtype=float))
    with np.errstate(divide="ignore"):
        log_w = np.log(previous.normalized_weights)
    out = np.empty(parameters.shape[0])
    for i, x in enumerate(parameters):
        log_k = kernel.logpdf(x - previous.parameters)
        out[i] = logsumexp(log_k + log_w)
    return out


def compute_importance_weights(
    parameters: np.ndarray,
    prior_weights: np.ndarray,
    previous: ParticleTable,
    kernel: PerturbationKernel,
) -> np.ndarray:
    """Normalized importance weights for a new stage's particles."""
    prior_weights = np.asarray(prior_weights, dtype=float)
    if np.any(prior_weights <= 0):
        raise ValueError("importance weights need strictly positive prior densities")
    with np.errstate(divide="ignore"):
        log_raw = np.log(prior_weights) - mixture_logpdf(parameters, previous, kernel)
    if not np.all(np.isfinite(log_raw)):
        raise FloatingPointError("importance mixture density vanished for a proposed particle")
    return np.exp(log_raw - logsumexp(log_raw))
