import math

import numpy as np
import pytest

from abcpmc.config import ComparisonConfig, ConfigError
from abcpmc.inference.pmc import run_abc_pmc_comparison
from abcpmc.models.toy import build_uniform_noise_problem


def run(cfg, seed=0, **problem_kwargs):
    problem = build_uniform_noise_problem(observed=4.0, seed=seed, **problem_kwargs)
    output = run_abc_pmc_comparison(problem, cfg, np.random.default_rng(seed))
    return problem, output


def test_shared_distance_is_recorded_per_stage():
    _, output = run(ComparisonConfig(n_particles=20, alpha=0.5, max_sims=600, silent=True), scaled=True)
    assert output.n_iterations >= 2
    assert len(output.dists) == output.n_iterations
    assert all(d is output.dists[0] for d in output.dists)
    assert output.dists[0].calibrated
    assert len(output.thresholds) == output.n_iterations + 1
    assert math.isinf(output.thresholds[0])


def test_full_table_is_carried_forward():
    _, output = run(ComparisonConfig(n_particles=20, alpha=0.5, max_sims=600, silent=True))
    for i, table in enumerate(output.tables):
        assert len(table) == 20
        assert table.weights.sum() == pytest.approx(1.0)
        assert output.thresholds[i + 1] == table.distances[9]


def test_each_stage_is_gated_by_previous_threshold():
    _, output = run(ComparisonConfig(n_particles=20, alpha=0.5, max_sims=600, silent=True))
    for i, table in enumerate(output.tables):
        assert np.all(table.distances <= output.thresholds[i])


def test_fixed_distance_with_first_threshold():
    cfg = ComparisonConfig(n_particles=20, alpha=0.5, max_sims=400, initialise_dist=False, h1=1.0, silent=True)
    problem, output = run(cfg)
    assert output.n_iterations >= 1
    assert output.thresholds[0] == 1.0
    assert np.all(output.tables[0].distances <= 1.0)
    assert output.dists[0] is problem.distance


def test_uncalibrated_metric_without_initialisation_fails_before_simulating():
    cfg = ComparisonConfig(n_particles=20, alpha=0.5, max_sims=400, initialise_dist=False, silent=True)
    problem = build_uniform_noise_problem(scaled=True)
    with pytest.raises(ConfigError):
        run_abc_pmc_comparison(problem, cfg, np.random.default_rng(0))
    assert problem.simulator.calls == 0


def test_zero_stages_keep_initial_entries():
    problem, output = run(ComparisonConfig(n_particles=10, alpha=0.5, max_sims=100, silent=True), failure_rate=1.0)
    assert output.n_iterations == 0
    assert output.dists == (problem.distance,)
    assert output.thresholds == (math.inf,)
    assert output.n_sims == 100


def test_store_init_keeps_reference_sample_per_stage():
    cfg = ComparisonConfig(n_particles=20, alpha=0.5, max_sims=600, store_init=True, silent=True)
    _, output = run(cfg, scaled=True)
    assert output.n_iterations >= 2
    assert len(output.init_parameters) == output.n_iterations
    assert len(output.init_sumstats) == output.n_iterations
    # the toy simulator never fails, so every simulation of a stage is a success
    successes = np.diff((0,) + output.cusims)
    for pars, sims, n in zip(output.init_parameters, output.init_sumstats, successes):
        assert pars.shape == (min(cfg.nsims_for_init, n), 1)
        assert sims.shape == (min(cfg.nsims_for_init, n), 1)


def test_store_init_respects_reference_cap():
    cfg = ComparisonConfig(n_particles=20, alpha=0.5, max_sims=600, nsims_for_init=15, store_init=True, silent=True)
    _, output = run(cfg)
    assert output.n_iterations >= 2
    assert all(pars.shape == (15, 1) for pars in output.init_parameters)


def test_reference_sample_dropped_without_store_init():
    _, output = run(ComparisonConfig(n_particles=20, alpha=0.5, max_sims=600, silent=True), scaled=True)
    assert output.n_iterations >= 1
    assert output.init_parameters == ()
    assert output.init_sumstats == ()
