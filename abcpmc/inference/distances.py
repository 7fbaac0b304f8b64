"""
Distances Between Summary Statistics
====================================
A distance has two phases. ``UninitializedDistance`` carries only the
metric family (which knows the observed summaries); ``CalibratedDistance``
adds the parameters fitted from a reference sample of simulations.

Calibration never mutates: it always builds a new ``CalibratedDistance``
from the metric family, so earlier stages keep the distance they used.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

import numpy as np
from scipy import stats


class DistanceNotCalibratedError(RuntimeError):
    """Raised when a metric that needs calibration is evaluated before it."""


class DistanceMetric(ABC):
    """A family of distances from simulated to observed summaries."""

    requires_calibration: bool = True

    def __init__(self, observed) -> None:
        observed = np.array(observed, dtype=float).ravel()
        observed.setflags(write=False)
        self.observed = observed

    @property
    def n_sumstats(self) -> int:
        return int(self.observed.shape[0])

    @abstractmethod
    def fit(self, sumstats: np.ndarray, parameters: np.ndarray) -> Dict[str, np.ndarray]:
        """Fit metric parameters from ``(r, s)`` simulated summaries."""

    @abstractmethod
    def compute(self, sumstats: np.ndarray, fitted: Dict[str, np.ndarray]) -> float:
        """Distance from one summary vector to the observed summaries."""

    def default_fit(self) -> Dict[str, np.ndarray]:
        if self.requires_calibration:
            raise DistanceNotCalibratedError(
                f"{type(self).__name__} must be calibrated from simulations before use"
            )
        return {}

    def _check_length(self, sumstats: np.ndarray) -> np.ndarray:
        sumstats = np.asarray(sumstats, dtype=float).ravel()
        if sumstats.shape[0] != self.n_sumstats:
            raise ValueError(f"expected {self.n_sumstats} summary statistics, got {sumstats.shape[0]}")
        return sumstats


class EuclideanDistance(DistanceMetric):
    """Euclidean distance, optionally on fixed per-statistic scales."""

    requires_calibration = False

    def __init__(self, observed, scale=None) -> None:
        super().__init__(observed)
        if scale is None:
            scale = np.ones(self.n_sumstats)
        self.scale = np.broadcast_to(np.asarray(scale, dtype=float), (self.n_sumstats,)).copy()

    def fit(self, sumstats: np.ndarray, parameters: np.ndarray) -> Dict[str, np.ndarray]:
        return {"scale": self.scale.copy()}

    def default_fit(self) -> Dict[str, np.ndarray]:
        return {"scale": self.scale.copy()}

    def compute(self, sumstats: np.ndarray, fitted: Dict[str, np.ndarray]) -> float:
        sumstats = self._check_length(sumstats)
        diff = (sumstats - self.observed) / fitted["scale"]
        return float(np.sqrt(np.sum(diff**2)))


class MADScaledDistance(DistanceMetric):
    """
    Euclidean distance with each statistic divided by its median absolute
    deviation over the reference sample.

    Statistics whose MAD is zero or undefined keep a scale of 1.
    """

    def fit(self, sumstats: np.ndarray, parameters: np.ndarray) -> Dict[str, np.ndarray]:
        sumstats = np.asarray(sumstats, dtype=float)
        if sumstats.ndim != 2 or sumstats.shape[0] == 0:
            raise ValueError("cannot calibrate a MAD-scaled distance from an empty reference sample")
        if sumstats.shape[1] != self.n_sumstats:
            raise ValueError(f"expected {self.n_sumstats} summary statistics, got {sumstats.shape[1]}")
        scale = stats.median_abs_deviation(sumstats, axis=0, scale="normal")
        degenerate = ~np.isfinite(scale) | (scale <= 0)
        if degenerate.any():
            logging.warning(
                "MAD is zero for summary statistics %s; using unit scale",
                np.flatnonzero(degenerate).tolist(),
            )
            scale = np.where(degenerate, 1.0, scale)
        return {"scale": scale}

    def compute(self, sumstats: np.ndarray, fitted: Dict[str, np.ndarray]) -> float:
        sumstats = self._check_length(sumstats)
        diff = (sumstats - self.observed) / fitted["scale"]
        return float(np.sqrt(np.sum(diff**2)))


@dataclass(frozen=True, eq=False)
class UninitializedDistance:
    metric: DistanceMetric

    calibrated = False

    def evaluate(self, sumstats) -> float:
        return self.metric.compute(sumstats, self.metric.default_fit())

    def calibrate(self, sumstats: np.ndarray, parameters: np.ndarray) -> "CalibratedDistance":
        return calibrate(self, sumstats, parameters)


@dataclass(frozen=True, eq=False)
class CalibratedDistance:
    metric: DistanceMetric
    fitted: Dict[str, np.ndarray] = field(default_factory=dict)
    n_reference: int = 0

    calibrated = True

    def evaluate(self, sumstats) -> float:
        return self.metric.compute(sumstats, self.fitted)

    def calibrate(self, sumstats: np.ndarray, parameters: np.ndarray) -> "CalibratedDistance":
        return calibrate(self, sumstats, parameters)


Distance = Union[UninitializedDistance, CalibratedDistance]


def as_distance(value: Union[Distance, DistanceMetric]) -> Distance:
    if isinstance(value, DistanceMetric):
        return UninitializedDistance(value)
    return value


def calibrate(
    distance: Distance,
    sumstats: np.ndarray,
    parameters: Optional[np.ndarray] = None,
) -> CalibratedDistance:
    """Fit a fresh distance from the metric family and a reference sample."""
    sumstats = np.asarray(sumstats, dtype=float)
    if parameters is not None:
        parameters = np.asarray(parameters, dtype=float)
    fitted = distance.metric.fit(sumstats, parameters)
    for value in fitted.values():
        np.asarray(value).setflags(write=False)
    return CalibratedDistance(metric=distance.metric, fitted=fitted, n_reference=int(sumstats.shape[0]))


def evaluate(distance: Distance, sumstats) -> float:
    return distance.evaluate(sumstats)
