import numpy as np
import pytest

from abcpmc.inference.importance import compute_importance_weights, propose
from abcpmc.inference.kernel import PerturbationKernel, build_perturbation_kernel
from abcpmc.inference.particles import ParticleTable


def previous_table(seed=0, n=30):
    rng = np.random.default_rng(seed)
    weights = rng.uniform(0.5, 1.5, size=n)
    return ParticleTable(
        parameters=rng.normal(5.0, 1.0, size=(n, 1)),
        sumstats=np.zeros((n, 1)),
        weights=weights / weights.sum(),
    )


def test_weights_are_normalized_and_nonnegative():
    previous = previous_table()
    kernel = build_perturbation_kernel(previous)
    rng = np.random.default_rng(1)
    new = np.vstack([propose(previous, kernel, rng) for _ in range(20)])
    weights = compute_importance_weights(new, np.full(20, 0.1), previous, kernel)
    assert weights.shape == (20,)
    assert np.all(weights >= 0)
    assert weights.sum() == pytest.approx(1.0)


def test_weights_match_direct_formula():
    previous = previous_table()
    kernel = build_perturbation_kernel(previous)
    rng = np.random.default_rng(2)
    new = rng.normal(5.0, 1.5, size=(10, 1))
    prior = rng.uniform(0.05, 0.2, size=10)

    raw = []
    for x, w0 in zip(new, prior):
        mixture = sum(w * kernel.pdf(x - theta)[0] for w, theta in zip(previous.weights, previous.parameters))
        raw.append(w0 / mixture)
    expected = np.array(raw) / np.sum(raw)

    assert np.allclose(compute_importance_weights(new, prior, previous, kernel), expected)


def test_single_ancestor_weights_are_inverse_kernel():
    previous = ParticleTable(parameters=np.array([[0.0]]), sumstats=np.zeros((1, 1)), weights=np.ones(1))
    kernel = PerturbationKernel(covariance=np.array([[1.0]]))
    new = np.array([[0.0], [1.0]])
    weights = compute_importance_weights(new, np.ones(2), previous, kernel)
    ratio = np.exp(0.5)  # K(0) / K(1)
    assert weights[1] / weights[0] == pytest.approx(ratio)


def test_propose_ignores_zero_weight_ancestors():
    previous = ParticleTable(
        parameters=np.array([[0.0], [100.0], [200.0]]),
        sumstats=np.zeros((3, 1)),
        weights=np.array([0.0, 1.0, 0.0]),
    )
    kernel = PerturbationKernel(covariance=np.array([[1e-6]]))
    rng = np.random.default_rng(3)
    draws = np.array([propose(previous, kernel, rng)[0] for _ in range(50)])
    assert np.all(np.abs(draws - 100.0) < 0.1)


def test_zero_prior_density_rejected():
    previous = previous_table()
    kernel = build_perturbation_kernel(previous)
    with pytest.raises(ValueError):
        compute_importance_weights(np.array([[5.0]]), np.array([0.0]), previous, kernel)
