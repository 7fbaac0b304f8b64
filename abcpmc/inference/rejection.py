"""
ABC Rejection
=============
Simulate ``n_sims`` times from the prior, calibrate the distance from the
same simulations, and keep either the ``k`` closest, those within ``h``,
or every successful simulation.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np

from abcpmc.config import RejectionConfig
from abcpmc.inference.distances import calibrate
from abcpmc.inference.particles import ParticleTable
from abcpmc.inference.problem import ABCProblem
from abcpmc.inference.progress import ProgressObserver, StageReport, resolve_observer
from abcpmc.inference.results import RejectionOutput


def run_abc_rejection(
    problem: ABCProblem,
    cfg: RejectionConfig,
    rng: np.random.Generator,
    observer: Optional[ProgressObserver] = None,
) -> RejectionOutput:
    """
    Run ABC rejection sampling.

    Args:
        problem: Prior, simulator and raw distance
        cfg: Number of simulations and acceptance rule
        rng: Random number generator used for prior draws
        observer: Progress observer (defaults to logging unless silent)

    Returns:
        Accepted table, sorted by distance with uniform weights summing to 1,
        together with the number of simulations and successes
    """
    observer = resolve_observer(observer, cfg.silent)
    parameters = []
    sumstats = []

    for i in range(cfg.n_sims):
        theta = problem.prior.sample(rng)
        success, stats = problem.simulate(theta)
        observer.on_simulation(i + 1, cfg.n_sims)
        if success:
            parameters.append(theta)
            sumstats.append(stats)

    n_successes = len(parameters)
    if n_successes == 0:
        logging.warning("No successful simulations out of %d; nothing accepted", cfg.n_sims)
        table = ParticleTable.empty(problem.n_parameters, problem.n_sumstats, problem.distance)
        observer.on_stage_complete(
            StageReport(stage=1, sims_done=cfg.n_sims, sims_this_stage=cfg.n_sims, n_accepted=0,
                        threshold=math.nan, table=table)
        )
        return RejectionOutput(table=table, n_sims=cfg.n_sims, n_successes=0, threshold=math.nan)

    parameters = np.vstack(parameters)
    sumstats = np.vstack(sumstats)
    n_reference = min(cfg.reference_cap, n_successes)
    distance = calibrate(problem.distance, sumstats[:n_reference], parameters[:n_reference])

    table = ParticleTable(
        parameters=parameters,
        sumstats=sumstats,
        weights=np.ones(n_successes),
        init_parameters=parameters[:n_reference] if cfg.store_init else None,
        init_sumstats=sumstats[:n_reference] if cfg.store_init else None,
    )
    table = table.with_distances(distance).sort_by_distance()

    if cfg.k is not None:
        table = table.head(cfg.k)
    elif cfg.h is not None:
        table = table.threshold_prefix(cfg.h)
    table = table.uniform_weights()

    if cfg.h is not None:
        threshold = cfg.h
    else:
        threshold = float(table.distances[-1]) if len(table) else math.nan
    observer.on_stage_complete(
        StageReport(stage=1, sims_done=cfg.n_sims, sims_this_stage=cfg.n_sims, n_accepted=len(table),
                    threshold=threshold, table=table)
    )
    return RejectionOutput(table=table, n_sims=cfg.n_sims, n_successes=n_successes, threshold=threshold)
