"""
ABC Population Monte Carlo
==========================
Two engines share one fill loop:

``run_abc_pmc``
    Each stage simulates until ceil(N / alpha) proposals pass the previous
    acceptance test, then keeps the N closest. The N-th distance becomes
    the stage threshold. With ``adaptive`` the distance is recalibrated
    every stage and a proposal must pass every earlier stage's test.

``run_abc_pmc_comparison``
    Older scheme with one shared distance. Each stage fills N particles;
    the ceil(N * alpha)-th distance becomes the threshold for the next
    stage, while all N particles are kept and weighted.

Both stop when the simulation budget is spent. A stage that cannot be
filled before the budget runs out is discarded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, List, Optional, Sequence

import numpy as np

from abcpmc.config import ComparisonConfig, ConfigError, PMCConfig
from abcpmc.inference.distances import Distance, calibrate
from abcpmc.inference.importance import compute_importance_weights, propose
from abcpmc.inference.kernel import PerturbationKernel, build_perturbation_kernel
from abcpmc.inference.particles import ParticleTable
from abcpmc.inference.problem import ABCProblem
from abcpmc.inference.progress import ProgressObserver, StageReport, resolve_observer
from abcpmc.inference.results import PMCOutput


class SimulationBudget:
    """Counts simulator calls against a fixed total."""

    def __init__(self, total: int) -> None:
        self.total = total
        self.done = 0

    @property
    def exhausted(self) -> bool:
        return self.done >= self.total

    def consume(self) -> None:
        if self.exhausted:
            raise RuntimeError(f"simulation budget of {self.total} already spent")
        self.done += 1


@dataclass
class StageFill:
    """Rows collected while filling one stage."""

    parameters: List[np.ndarray] = field(default_factory=list)
    sumstats: List[np.ndarray] = field(default_factory=list)
    prior_weights: List[float] = field(default_factory=list)
    init_parameters: List[np.ndarray] = field(default_factory=list)
    init_sumstats: List[np.ndarray] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.parameters)

    def reference(self, n_parameters: int, n_sumstats: int):
        if not self.init_parameters:
            return np.empty((0, n_parameters)), np.empty((0, n_sumstats))
        return np.vstack(self.init_parameters), np.vstack(self.init_sumstats)

    def to_table(self, keep_reference: bool, n_parameters: int, n_sumstats: int) -> ParticleTable:
        init_parameters, init_sumstats = self.reference(n_parameters, n_sumstats)
        return ParticleTable(
            parameters=np.vstack(self.parameters),
            sumstats=np.vstack(self.sumstats),
            weights=np.asarray(self.prior_weights, dtype=float),
            init_parameters=init_parameters if keep_reference else None,
            init_sumstats=init_sumstats if keep_reference else None,
        )


def passes(sumstats: np.ndarray, distance: Distance, threshold: float) -> bool:
    return distance.evaluate(sumstats) <= threshold


def passes_all(sumstats: np.ndarray, dists: Sequence[Distance], thresholds: Sequence[float]) -> bool:
    """Check every earlier stage, most recent (most stringent) first."""
    for distance, threshold in zip(reversed(dists), reversed(thresholds)):
        if not passes(sumstats, distance, threshold):
            return False
    return True


def _accept_all(sumstats: np.ndarray) -> bool:
    return True


def fill_stage(
    problem: ABCProblem,
    size: int,
    proposal: Callable[[], np.ndarray],
    accept: Callable[[np.ndarray], bool],
    store_reference: bool,
    reference_cap: int,
    budget: SimulationBudget,
    observer: ProgressObserver,
) -> Optional[StageFill]:
    """
    Propose, simulate and test until ``size`` rows are accepted.

    Returns None when the budget runs out first.
    """
    fill = StageFill()
    while len(fill) < size and not budget.exhausted:
        theta = proposal()
        prior_weight = problem.prior.density(theta)
        if prior_weight == 0.0:
            continue
        success, stats = problem.simulate(theta)
        budget.consume()
        observer.on_simulation(budget.done, budget.total)
        if not success:
            continue
        if store_reference and len(fill.init_parameters) < reference_cap:
            fill.init_parameters.append(np.array(theta, dtype=float))
            fill.init_sumstats.append(stats)
        if accept(stats):
            fill.parameters.append(np.array(theta, dtype=float))
            fill.sumstats.append(stats)
            fill.prior_weights.append(prior_weight)
    if len(fill) < size:
        return None
    return fill


def _stage_proposal(
    problem: ABCProblem, current: Optional[ParticleTable], kernel: Optional[PerturbationKernel], rng
) -> Callable[[], np.ndarray]:
    if current is None:
        return partial(problem.prior.sample, rng)
    return partial(propose, current, kernel, rng)


def _finalize_weights(
    table: ParticleTable, previous: Optional[ParticleTable], kernel: Optional[PerturbationKernel]
) -> ParticleTable:
    if previous is None:
        return table.uniform_weights()
    return table.with_weights(compute_importance_weights(table.parameters, table.weights, previous, kernel))


def _warn_on_rising_thresholds(output: PMCOutput) -> None:
    violations = output.threshold_violations()
    if violations:
        logging.warning("Threshold rose at positions %s of %s", violations, list(output.thresholds))


def run_abc_pmc(
    problem: ABCProblem,
    cfg: PMCConfig,
    rng: np.random.Generator,
    observer: Optional[ProgressObserver] = None,
) -> PMCOutput:
    """
    Run ABC-PMC with an oversampled raw table per stage.

    Args:
        problem: Prior, simulator and raw distance
        cfg: N, alpha, simulation budget and stage options
        rng: Random number generator used for proposals
        observer: Progress observer (defaults to logging unless silent)
    """
    observer = resolve_observer(observer, cfg.silent)
    n_keep = cfg.n_particles
    n_raw = cfg.raw_table_size
    p, s = problem.n_parameters, problem.n_sumstats
    budget = SimulationBudget(cfg.max_sims)

    tables: List[ParticleTable] = []
    dists: List[Distance] = []
    thresholds: List[float] = []
    cusims: List[int] = []
    current: Optional[ParticleTable] = None
    kernel: Optional[PerturbationKernel] = None

    while not budget.exhausted:
        stage = len(tables) + 1
        first = current is None
        if not first:
            kernel = build_perturbation_kernel(current, cfg.diag_perturb, cfg.covariance_estimator)

        if first:
            accept = _accept_all
        elif cfg.adaptive:
            accept = partial(passes_all, dists=tuple(dists), thresholds=tuple(thresholds))
        else:
            accept = partial(passes, distance=dists[-1], threshold=thresholds[-1])

        sims_before = budget.done
        fill = fill_stage(
            problem,
            n_raw,
            _stage_proposal(problem, current, kernel, rng),
            accept,
            store_reference=first or cfg.adaptive or cfg.store_init,
            reference_cap=cfg.nsims_for_init,
            budget=budget,
            observer=observer,
        )
        if fill is None:
            logging.info("Budget exhausted while filling stage %d; partial stage discarded", stage)
            break

        if first or cfg.adaptive:
            init_parameters, init_sumstats = fill.reference(p, s)
            distance = calibrate(problem.distance, init_sumstats, init_parameters)
        else:
            distance = dists[0]

        raw = fill.to_table(cfg.store_init, p, s).with_distances(distance).sort_by_distance()
        threshold = float(raw.distances[n_keep - 1])
        table = _finalize_weights(raw.head(n_keep), current, kernel)

        tables.append(table)
        dists.append(distance)
        thresholds.append(threshold)
        cusims.append(budget.done)
        observer.on_stage_complete(
            StageReport(
                stage=stage,
                sims_done=budget.done,
                sims_this_stage=budget.done - sims_before,
                n_accepted=n_keep,
                threshold=threshold,
                table=table,
            )
        )
        current = table

    output = _build_output(problem, n_keep, budget, tables, dists, thresholds, cusims, cfg.store_init)
    _warn_on_rising_thresholds(output)
    return output


def run_abc_pmc_comparison(
    problem: ABCProblem,
    cfg: ComparisonConfig,
    rng: np.random.Generator,
    observer: Optional[ProgressObserver] = None,
) -> PMCOutput:
    """
    Run the older ABC-PMC scheme with a single shared distance.

    With ``initialise_dist`` the first stage accepts everything and the
    distance is calibrated at its end. Otherwise the problem's distance is
    used as given and the first stage is gated by ``h1``.
    """
    if not cfg.initialise_dist and not problem.distance.calibrated and problem.distance.metric.requires_calibration:
        raise ConfigError(
            f"{type(problem.distance.metric).__name__} needs calibration; "
            "pass a calibrated distance or set initialise_dist"
        )
    observer = resolve_observer(observer, cfg.silent)
    n_particles = cfg.n_particles
    n_threshold = cfg.n_threshold
    p, s = problem.n_parameters, problem.n_sumstats
    budget = SimulationBudget(cfg.max_sims)

    tables: List[ParticleTable] = []
    # one entry per stage, all the same distance
    dists: List[Distance] = [problem.distance]
    thresholds: List[float] = [cfg.h1]
    cusims: List[int] = []
    current: Optional[ParticleTable] = None
    kernel: Optional[PerturbationKernel] = None

    while not budget.exhausted:
        stage = len(tables) + 1
        first = current is None
        if not first:
            kernel = build_perturbation_kernel(current, cfg.diag_perturb, cfg.covariance_estimator)

        initialising = first and cfg.initialise_dist
        gate = thresholds[-1]
        if initialising:
            accept = _accept_all
        else:
            accept = partial(passes, distance=dists[0], threshold=gate)

        sims_before = budget.done
        fill = fill_stage(
            problem,
            n_particles,
            _stage_proposal(problem, current, kernel, rng),
            accept,
            store_reference=initialising or cfg.store_init,
            reference_cap=cfg.nsims_for_init,
            budget=budget,
            observer=observer,
        )
        if fill is None:
            logging.info("Budget exhausted while filling stage %d; partial stage discarded", stage)
            break

        if initialising:
            init_parameters, init_sumstats = fill.reference(p, s)
            distance = calibrate(dists[0], init_sumstats, init_parameters)
        else:
            distance = dists[0]
        if first:
            dists[0] = distance
        else:
            dists.append(distance)

        raw = fill.to_table(cfg.store_init, p, s).with_distances(distance).sort_by_distance()
        next_threshold = float(raw.distances[n_threshold - 1])
        thresholds.append(next_threshold)
        table = _finalize_weights(raw, current, kernel)

        tables.append(table)
        cusims.append(budget.done)
        observer.on_stage_complete(
            StageReport(
                stage=stage,
                sims_done=budget.done,
                sims_this_stage=budget.done - sims_before,
                n_accepted=n_threshold,
                threshold=gate,
                table=table,
                next_threshold=next_threshold,
            )
        )
        current = table

    output = _build_output(problem, n_particles, budget, tables, dists, thresholds, cusims, cfg.store_init)
    _warn_on_rising_thresholds(output)
    return output


def _build_output(
    problem: ABCProblem,
    n_particles: int,
    budget: SimulationBudget,
    tables: List[ParticleTable],
    dists: List[Distance],
    thresholds: List[float],
    cusims: List[int],
    store_init: bool,
) -> PMCOutput:
    if store_init:
        init_sumstats = tuple(t.init_sumstats for t in tables)
        init_parameters = tuple(t.init_parameters for t in tables)
    else:
        init_sumstats = ()
        init_parameters = ()
    return PMCOutput(
        n_parameters=problem.n_parameters,
        n_sumstats=problem.n_sumstats,
        n_particles=n_particles,
        n_sims=budget.done,
        cusims=tuple(cusims),
        tables=tuple(tables),
        dists=tuple(dists),
        thresholds=tuple(thresholds),
        init_sumstats=init_sumstats,
        init_parameters=init_parameters,
        parameter_names=problem.parameter_names,
    )
