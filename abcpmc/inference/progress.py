"""
Progress Observers
==================
The engines notify an observer after every simulator call and after every
completed stage. ``LoggingProgress`` reports through ``logging``;
``NullProgress`` is used when a run is silent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from abcpmc.inference.particles import ParticleTable


@dataclass(frozen=True, eq=False)
class StageReport:
    stage: int
    sims_done: int
    sims_this_stage: int
    n_accepted: int
    threshold: float
    table: ParticleTable
    next_threshold: Optional[float] = None

    @property
    def acceptance_rate(self) -> float:
        if self.sims_this_stage == 0:
            return 0.0
        return self.n_accepted / self.sims_this_stage


class ProgressObserver(Protocol):
    def on_simulation(self, sims_done: int, total: int) -> None: ...

    def on_stage_complete(self, report: StageReport) -> None: ...


class NullProgress:
    def on_simulation(self, sims_done: int, total: int) -> None:
        pass

    def on_stage_complete(self, report: StageReport) -> None:
        pass


class LoggingProgress:
    """Logs a simulation count every ``every`` simulations and a summary per stage."""

    def __init__(self, every: int = 1000) -> None:
        self.every = every

    def on_simulation(self, sims_done: int, total: int) -> None:
        if self.every and sims_done % self.every == 0:
            logging.info("%d/%d simulations done", sims_done, total)

    def on_stage_complete(self, report: StageReport) -> None:
        logging.info(
            "Stage %d: %d sims done, acceptance rate %.1e%%, threshold %.4g, ESS %.1f",
            report.stage,
            report.sims_done,
            100 * report.acceptance_rate,
            report.threshold,
            report.table.effective_sample_size(),
        )
        if report.next_threshold is not None:
            logging.info("Next threshold: %.4g", report.next_threshold)


def resolve_observer(observer: Optional[ProgressObserver], silent: bool) -> ProgressObserver:
    if observer is not None:
        return observer
    return NullProgress() if silent else LoggingProgress()
