from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from abcpmc.inference.particles import ParticleTable
from abcpmc.inference.results import PMCOutput


def _names(table: ParticleTable, names: Optional[List[str]]) -> List[str]:
    return list(names) if names else [f"theta_{i}" for i in range(table.n_parameters)]


def posterior_mean(table: ParticleTable, names: Optional[List[str]] = None) -> Dict[str, float]:
    """Compute weighted posterior mean."""
    if len(table) == 0:
        return {}
    means = table.normalized_weights @ table.parameters
    return {name: float(m) for name, m in zip(_names(table, names), means)}


def posterior_std(table: ParticleTable, names: Optional[List[str]] = None) -> Dict[str, float]:
    """Compute weighted posterior standard deviation."""
    if len(table) == 0:
        return {}
    w = table.normalized_weights
    means = w @ table.parameters
    var = w @ (table.parameters - means) ** 2
    return {name: float(np.sqrt(v)) for name, v in zip(_names(table, names), var)}


def credible_interval(table: ParticleTable, index: int, level: float = 0.95) -> Tuple[float, float]:
    """Equal-tailed weighted credible interval for one parameter."""
    if len(table) == 0:
        return float("nan"), float("nan")
    values = table.parameters[:, index]
    order = np.argsort(values)
    sorted_values = values[order]
    cumsum = np.cumsum(table.normalized_weights[order])

    alpha = (1 - level) / 2
    lower_idx = int(np.searchsorted(cumsum, alpha))
    upper_idx = int(np.searchsorted(cumsum, 1 - alpha))

    lower = sorted_values[min(lower_idx, len(sorted_values) - 1)]
    upper = sorted_values[min(upper_idx, len(sorted_values) - 1)]
    return float(lower), float(upper)


def stage_summary(output: PMCOutput) -> pd.DataFrame:
    """One row per stage: simulations, threshold, ESS and posterior moments."""
    names = output.parameter_names
    # comparison runs carry h1 ahead of the per-stage thresholds
    offset = len(output.thresholds) - output.n_iterations
    rows = []
    for i, table in enumerate(output.tables):
        row = {
            "stage": i + 1,
            "cusims": output.cusims[i],
            "threshold": output.thresholds[i + offset],
            "ess": table.effective_sample_size(),
            "max_distance": float(table.distances.max()),
        }
        for name, value in posterior_mean(table, names).items():
            row[f"{name}_mean"] = value
        for name, value in posterior_std(table, names).items():
            row[f"{name}_std"] = value
        rows.append(row)
    return pd.DataFrame(rows)


def final_summary(output: PMCOutput, level: float = 0.95) -> Dict[str, float]:
    summary: Dict[str, float] = {
        "n_iterations": output.n_iterations,
        "n_sims": output.n_sims,
    }
    table = output.final_table
    if table is None:
        return summary
    names = _names(table, output.parameter_names)
    summary["final_threshold"] = float(output.thresholds[-1])
    summary["final_ess"] = table.effective_sample_size()
    means = posterior_mean(table, names)
    stds = posterior_std(table, names)
    for i, name in enumerate(names):
        lower, upper = credible_interval(table, i, level)
        summary[f"{name}_mean"] = means[name]
        summary[f"{name}_std"] = stds[name]
        summary[f"{name}_lower"] = lower
        summary[f"{name}_upper"] = upper
    return summary
