from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

import numpy as np
import pandas as pd


def aggregate_summaries(
    runs: Iterable[Tuple[str, Dict[str, float]]],
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Stack per-run summaries and compute mean, std and 95% CI of each numeric column."""
    rows = []
    for run_name, summary in runs:
        row = dict(summary)
        row["run"] = run_name
        rows.append(row)

    combined = pd.DataFrame(rows)
    metric_cols: List[str] = [c for c in combined.columns if c != "run" and pd.api.types.is_numeric_dtype(combined[c])]
    n_runs = combined["run"].nunique()

    agg_rows = []
    for col in metric_cols:
        values = combined[col].dropna()
        std = float(values.std()) if len(values) > 1 else 0.0
        agg_rows.append(
            {
                "metric": col,
                "mean": float(values.mean()) if len(values) else np.nan,
                "std": std,
                "ci95": 1.96 * std / max(np.sqrt(n_runs), 1),
                "n_runs": int(len(values)),
            }
        )
    return combined, pd.DataFrame(agg_rows)
