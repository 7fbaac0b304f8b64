import numpy as np
import pytest

from abcpmc.analysis.aggregate import aggregate_summaries
from abcpmc.analysis.summary import credible_interval, final_summary, posterior_mean, posterior_std, stage_summary
from abcpmc.config import ComparisonConfig, PMCConfig
from abcpmc.inference.particles import ParticleTable
from abcpmc.inference.pmc import run_abc_pmc, run_abc_pmc_comparison
from abcpmc.models.toy import build_uniform_noise_problem


def weighted_table():
    return ParticleTable(
        parameters=np.array([[0.0, 1.0], [2.0, 3.0]]),
        sumstats=np.zeros((2, 1)),
        weights=np.array([0.25, 0.75]),
    )


def test_posterior_moments_use_weights():
    table = weighted_table()
    means = posterior_mean(table, ["a", "b"])
    stds = posterior_std(table, ["a", "b"])
    assert means == pytest.approx({"a": 1.5, "b": 2.5})
    assert stds["a"] == pytest.approx(np.sqrt(0.75))


def test_credible_interval_brackets_mass():
    values = np.linspace(0.0, 1.0, 101).reshape(-1, 1)
    table = ParticleTable(parameters=values, sumstats=np.zeros((101, 1)), weights=np.ones(101))
    lower, upper = credible_interval(table, 0, level=0.9)
    assert lower == pytest.approx(0.05, abs=0.011)
    assert upper == pytest.approx(0.95, abs=0.011)


def test_stage_summary_has_one_row_per_stage():
    problem = build_uniform_noise_problem(seed=1)
    output = run_abc_pmc(problem, PMCConfig(n_particles=20, alpha=0.5, max_sims=600, silent=True), np.random.default_rng(1))
    stages = stage_summary(output)
    assert len(stages) == output.n_iterations
    assert list(stages["threshold"]) == list(output.thresholds)
    assert {"stage", "cusims", "ess", "theta_mean", "theta_std"} <= set(stages.columns)


def test_stage_summary_skips_leading_comparison_threshold():
    problem = build_uniform_noise_problem(seed=1)
    output = run_abc_pmc_comparison(
        problem, ComparisonConfig(n_particles=20, alpha=0.5, max_sims=400, silent=True), np.random.default_rng(1)
    )
    stages = stage_summary(output)
    assert list(stages["threshold"]) == list(output.thresholds[1:])


def test_final_summary_for_empty_run():
    problem = build_uniform_noise_problem(failure_rate=1.0)
    output = run_abc_pmc(problem, PMCConfig(n_particles=10, alpha=0.5, max_sims=50, silent=True), np.random.default_rng(0))
    summary = final_summary(output)
    assert summary == {"n_iterations": 0, "n_sims": 50}


def test_aggregate_summaries():
    runs = [("a", {"theta_mean": 1.0, "n_sims": 10}), ("b", {"theta_mean": 3.0, "n_sims": 10})]
    combined, agg = aggregate_summaries(runs)
    assert len(combined) == 2
    row = agg[agg["metric"] == "theta_mean"].iloc[0]
    assert row["mean"] == pytest.approx(2.0)
    assert row["std"] == pytest.approx(np.sqrt(2.0))
    assert row["n_runs"] == 2
