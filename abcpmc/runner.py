from __future__ import annotations

import importlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from abcpmc.analysis.summary import final_summary, stage_summary
from abcpmc.config import ConfigError, ModelConfig, RunConfig
from abcpmc.inference.pmc import run_abc_pmc, run_abc_pmc_comparison
from abcpmc.inference.problem import ABCProblem
from abcpmc.inference.progress import ProgressObserver
from abcpmc.inference.rejection import run_abc_rejection
from abcpmc.inference.results import PMCOutput
from abcpmc.io.metadata import build_run_metadata
from abcpmc.io.plots import plot_posterior, plot_thresholds
from abcpmc.io.tables import save_output
from abcpmc.rng import RNGManager


@dataclass
class InferenceOutputs:
    output: PMCOutput
    stages: pd.DataFrame
    summary: Dict[str, float]


def load_problem(model: ModelConfig) -> ABCProblem:
    """Import ``module:function`` and call it with the configured kwargs."""
    module_name, sep, attr = model.entry_point.partition(":")
    if not sep or not attr:
        raise ConfigError(f"model entry point must look like 'module:function', got {model.entry_point!r}")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigError(f"cannot load model entry point {model.entry_point!r}: {exc}") from exc
    problem = factory(**model.kwargs)
    if not isinstance(problem, ABCProblem):
        raise ConfigError(f"{model.entry_point} returned {type(problem).__name__}, expected ABCProblem")
    return problem


def run_method(
    cfg: RunConfig,
    problem: ABCProblem,
    observer: Optional[ProgressObserver] = None,
) -> PMCOutput:
    rng = RNGManager(cfg.seed).numpy
    if cfg.method == "rejection":
        result = run_abc_rejection(problem, cfg.rejection, rng, observer)
        return PMCOutput.from_rejection(result, problem.parameter_names)
    if cfg.method == "comparison":
        return run_abc_pmc_comparison(problem, cfg.comparison, rng, observer)
    return run_abc_pmc(problem, cfg.pmc, rng, observer)


def run_inference(cfg: RunConfig, out_dir: str | Path) -> InferenceOutputs:
    """Run the configured inference method and write outputs to disk."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    with (out_dir / "run_metadata.json").open("w") as f:
        json.dump(build_run_metadata(cfg), f, indent=2)

    problem = load_problem(cfg.model)
    logging.info("Running %s on %s", cfg.method, cfg.model.entry_point)
    output = run_method(cfg, problem)

    stages = stage_summary(output)
    summary = final_summary(output)
    save_output(
        output,
        stages,
        summary,
        out_dir,
        save_particles=cfg.output.save_particles,
        save_init=cfg.output.save_init,
    )

    if cfg.output.save_plots and output.n_iterations > 0:
        plots_dir = out_dir / "plots"
        plots_dir.mkdir(exist_ok=True)
        plot_thresholds(stages, plots_dir)
        plot_posterior(output, plots_dir)

    logging.info("Finished: %d stages, %d simulations", output.n_iterations, output.n_sims)
    return InferenceOutputs(output=output, stages=stages, summary=summary)
