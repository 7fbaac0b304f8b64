from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from abcpmc.inference.particles import ParticleTable
from abcpmc.inference.results import PMCOutput


def table_frame(table: ParticleTable, parameter_names: Optional[List[str]] = None, stage: Optional[int] = None) -> pd.DataFrame:
    names = parameter_names or [f"theta_{i}" for i in range(table.n_parameters)]
    frame = pd.DataFrame(table.parameters, columns=names)
    for j in range(table.n_sumstats):
        frame[f"s_{j}"] = table.sumstats[:, j]
    frame["distance"] = table.distances if table.distances is not None else np.nan
    frame["weight"] = table.weights
    if stage is not None:
        frame.insert(0, "stage", stage)
    return frame


def particles_frame(output: PMCOutput) -> pd.DataFrame:
    frames = [table_frame(t, output.parameter_names, stage=i + 1) for i, t in enumerate(output.tables)]
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)


def reference_frame(output: PMCOutput) -> pd.DataFrame:
    names = output.parameter_names or [f"theta_{i}" for i in range(output.n_parameters)]
    frames = []
    for i, (pars, sims) in enumerate(zip(output.init_parameters, output.init_sumstats)):
        frame = pd.DataFrame(pars, columns=names)
        for j in range(sims.shape[1]):
            frame[f"s_{j}"] = sims[:, j]
        frame.insert(0, "stage", i + 1)
        frames.append(frame)
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)


def _json_ready(summary: Dict[str, float]) -> Dict[str, float | int | None]:
    out: Dict[str, float | int | None] = {}
    for key, value in summary.items():
        if isinstance(value, (int, np.integer)):
            out[key] = int(value)
            continue
        value = float(value)
        out[key] = value if np.isfinite(value) else None
    return out


def save_output(
    output: PMCOutput,
    stages: pd.DataFrame,
    summary: Dict[str, float],
    out_dir: str | Path,
    save_particles: bool = True,
    save_init: bool = False,
) -> None:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    stages.to_csv(out_dir / "stages.csv", index=False)
    if save_particles:
        particles_frame(output).to_csv(out_dir / "particles.csv", index=False)
    if save_init and output.init_parameters:
        reference_frame(output).to_csv(out_dir / "reference_sample.csv", index=False)
    with (out_dir / "summary.json").open("w") as f:
        json.dump(_json_ready(summary), f, indent=2)
