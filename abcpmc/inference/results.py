from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from abcpmc.inference.distances import Distance
from abcpmc.inference.particles import ParticleTable


@dataclass(frozen=True, eq=False)
class RejectionOutput:
    """Accepted table of one rejection run plus its simulation counts.

    ``threshold`` is ``h`` when one was given, otherwise the largest
    accepted distance (nan when nothing was accepted).
    """

    table: ParticleTable
    n_sims: int
    n_successes: int
    threshold: float

    @property
    def n_accepted(self) -> int:
        return len(self.table)

    @property
    def success_rate(self) -> float:
        return self.n_successes / self.n_sims if self.n_sims else math.nan


@dataclass(frozen=True, eq=False)
class PMCOutput:
    """Stages of one ABC-PMC run, in order.

    ``thresholds`` and ``dists`` are kept exactly as the engine recorded
    them, so their lengths follow the engine's conventions (the comparison
    engine prepends its first threshold ``h1``).
    """

    n_parameters: int
    n_sumstats: int
    n_particles: int
    n_sims: int
    cusims: Tuple[int, ...]
    tables: Tuple[ParticleTable, ...]
    dists: Tuple[Distance, ...]
    thresholds: Tuple[float, ...]
    init_sumstats: Tuple[np.ndarray, ...] = field(default_factory=tuple)
    init_parameters: Tuple[np.ndarray, ...] = field(default_factory=tuple)
    parameter_names: Optional[List[str]] = None

    @classmethod
    def from_rejection(
        cls,
        result: RejectionOutput,
        parameter_names: Optional[List[str]] = None,
    ) -> "PMCOutput":
        """Wrap a rejection run as a one-stage run (zero stages if nothing was accepted)."""
        table, n_sims, threshold = result.table, result.n_sims, result.threshold
        keep = len(table) > 0
        has_init = keep and table.init_parameters is not None
        return cls(
            n_parameters=table.n_parameters,
            n_sumstats=table.n_sumstats,
            n_particles=len(table),
            n_sims=n_sims,
            cusims=(n_sims,) if keep else (),
            tables=(table,) if keep else (),
            dists=(table.distance,),
            thresholds=(threshold,) if keep else (),
            init_sumstats=(table.init_sumstats,) if has_init else (),
            init_parameters=(table.init_parameters,) if has_init else (),
            parameter_names=parameter_names,
        )

    @property
    def n_iterations(self) -> int:
        return len(self.tables)

    def _stack(self, attr: str, trailing: Tuple[int, ...]) -> np.ndarray:
        if not self.tables:
            return np.empty((0, self.n_particles) + trailing)
        return np.stack([getattr(t, attr) for t in self.tables])

    @property
    def parameters(self) -> np.ndarray:
        """``(n_iterations, n_particles, n_parameters)``"""
        return self._stack("parameters", (self.n_parameters,))

    @property
    def sumstats(self) -> np.ndarray:
        return self._stack("sumstats", (self.n_sumstats,))

    @property
    def distances(self) -> np.ndarray:
        return self._stack("distances", ())

    @property
    def weights(self) -> np.ndarray:
        return self._stack("weights", ())

    @property
    def final_table(self) -> Optional[ParticleTable]:
        return self.tables[-1] if self.tables else None

    def threshold_violations(self) -> List[int]:
        """Positions in ``thresholds`` where the threshold rose."""
        out = []
        for i in range(1, len(self.thresholds)):
            prev, cur = self.thresholds[i - 1], self.thresholds[i]
            if math.isfinite(cur) and cur > prev:
                out.append(i)
        return out
