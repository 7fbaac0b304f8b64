"""
Particle Tables
===============
Immutable batches of (parameters, summary statistics, distance, weight)
rows produced by one sampling stage.

Arrays are row oriented: ``parameters`` is ``(n, p)`` and ``sumstats`` is
``(n, s)``. Every operation returns a new table; the arrays of a table are
read-only so a finalized stage can be shared with the next stage safely.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from abcpmc.inference.distances import Distance


def _frozen(values: Optional[np.ndarray], ndim: int) -> Optional[np.ndarray]:
    if values is None:
        return None
    arr = np.array(values, dtype=float)
    if ndim == 2 and arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class ParticleTable:
    """One stage's particles.

    Before finalization ``weights`` holds prior densities; afterwards it
    holds importance weights summing to 1.
    """

    parameters: np.ndarray
    sumstats: np.ndarray
    weights: np.ndarray
    distances: Optional[np.ndarray] = None
    distance: Optional[Distance] = None
    init_parameters: Optional[np.ndarray] = None
    init_sumstats: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", _frozen(self.parameters, 2))
        object.__setattr__(self, "sumstats", _frozen(self.sumstats, 2))
        object.__setattr__(self, "weights", _frozen(self.weights, 1))
        object.__setattr__(self, "distances", _frozen(self.distances, 1))
        object.__setattr__(self, "init_parameters", _frozen(self.init_parameters, 2))
        object.__setattr__(self, "init_sumstats", _frozen(self.init_sumstats, 2))

        n = self.parameters.shape[0]
        if self.sumstats.shape[0] != n or self.weights.shape[0] != n:
            raise ValueError(
                f"table columns disagree on length: parameters={n}, "
                f"sumstats={self.sumstats.shape[0]}, weights={self.weights.shape[0]}"
            )
        if self.distances is not None and self.distances.shape[0] != n:
            raise ValueError(f"expected {n} distances, got {self.distances.shape[0]}")

    @classmethod
    def empty(cls, n_parameters: int, n_sumstats: int, distance: Optional[Distance] = None) -> "ParticleTable":
        return cls(
            parameters=np.empty((0, n_parameters)),
            sumstats=np.empty((0, n_sumstats)),
            weights=np.empty(0),
            distances=np.empty(0),
            distance=distance,
        )

    def __len__(self) -> int:
        return int(self.parameters.shape[0])

    @property
    def n_parameters(self) -> int:
        return int(self.parameters.shape[1])

    @property
    def n_sumstats(self) -> int:
        return int(self.sumstats.shape[1])

    @property
    def normalized_weights(self) -> np.ndarray:
        total = self.weights.sum()
        if total <= 0:
            raise ValueError("cannot normalize weights with non-positive total")
        return self.weights / total

    def with_distances(self, distance: Distance) -> "ParticleTable":
        """Evaluate ``distance`` on every row."""
        values = np.array([distance.evaluate(s) for s in self.sumstats], dtype=float)
        return replace(self, distances=values, distance=distance)

    def with_weights(self, weights: np.ndarray) -> "ParticleTable":
        return replace(self, weights=weights)

    def uniform_weights(self) -> "ParticleTable":
        n = len(self)
        return replace(self, weights=np.full(n, 1.0 / n) if n else np.empty(0))

    def sort_by_distance(self) -> "ParticleTable":
        if self.distances is None:
            raise ValueError("table has no distances to sort by")
        order = np.argsort(self.distances, kind="stable")
        return self.take(order)

    def take(self, index: np.ndarray) -> "ParticleTable":
        return replace(
            self,
            parameters=self.parameters[index],
            sumstats=self.sumstats[index],
            weights=self.weights[index],
            distances=None if self.distances is None else self.distances[index],
        )

    def head(self, k: int) -> "ParticleTable":
        return self.take(np.arange(min(k, len(self))))

    def threshold_prefix(self, h: float) -> "ParticleTable":
        """Rows of a sorted table up to, not including, the first distance above ``h``."""
        if self.distances is None:
            raise ValueError("table has no distances to threshold")
        if len(self) == 0 or self.distances[-1] <= h:
            return self
        k = int(np.argmax(self.distances > h))
        return self.head(k)

    def effective_sample_size(self) -> float:
        if len(self) == 0:
            return 0.0
        w = self.normalized_weights
        return float(1.0 / np.sum(w**2))
