from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from abcpmc.inference.results import PMCOutput


def plot_thresholds(stages: pd.DataFrame, out_dir: str | Path) -> None:
    out_dir = Path(out_dir)
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(stages["cusims"], stages["threshold"], marker="o")
    ax.set_yscale("log")
    ax.set_title("Acceptance Thresholds")
    ax.set_xlabel("Simulations")
    ax.set_ylabel("Threshold")
    fig.tight_layout()
    fig.savefig(out_dir / "thresholds.png", dpi=150)
    plt.close(fig)


def plot_posterior(output: PMCOutput, out_dir: str | Path, bins: int = 30) -> None:
    out_dir = Path(out_dir)
    table = output.final_table
    if table is None:
        return
    names = output.parameter_names or [f"theta_{i}" for i in range(table.n_parameters)]
    fig, axes = plt.subplots(1, len(names), figsize=(4 * len(names), 4), squeeze=False)
    for i, (ax, name) in enumerate(zip(axes[0], names)):
        ax.hist(table.parameters[:, i], bins=bins, weights=table.weights, density=True, alpha=0.7)
        ax.set_title(f"Posterior: {name}")
        ax.set_xlabel(name)
        ax.set_ylabel("Density")
    fig.tight_layout()
    fig.savefig(out_dir / "posterior.png", dpi=150)
    plt.close(fig)
