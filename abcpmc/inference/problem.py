from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from abcpmc.inference.distances import Distance, DistanceMetric, as_distance
from abcpmc.inference.priors import Prior

SimulatorResult = Tuple[bool, Optional[np.ndarray]]
Simulator = Callable[[np.ndarray], SimulatorResult]


@dataclass
class ABCProblem:
    """Everything an engine needs: prior, simulator and the raw distance."""

    prior: Prior
    simulator: Simulator
    distance: Union[Distance, DistanceMetric]
    n_sumstats: int
    parameter_names: Optional[List[str]] = None

    def __post_init__(self) -> None:
        self.distance = as_distance(self.distance)
        if self.parameter_names is None:
            names = getattr(self.prior, "names", None)
            self.parameter_names = list(names) if names else [f"theta_{i}" for i in range(self.n_parameters)]

    @property
    def n_parameters(self) -> int:
        return int(self.prior.dimension)

    def simulate(self, theta: np.ndarray) -> SimulatorResult:
        success, sumstats = self.simulator(theta)
        if not success:
            return False, None
        sumstats = np.asarray(sumstats, dtype=float).ravel()
        if sumstats.shape[0] != self.n_sumstats:
            raise ValueError(
                f"simulator returned {sumstats.shape[0]} summary statistics, expected {self.n_sumstats}"
            )
        return True, sumstats
