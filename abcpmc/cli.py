from __future__ import annotations

import argparse
import json
import logging
from glob import glob
from pathlib import Path

from abcpmc.analysis.aggregate import aggregate_summaries
from abcpmc.config import dump_config, load_config
from abcpmc.io.logging import setup_logging
from abcpmc.runner import run_inference


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="abcpmc", description="ABC rejection and ABC-PMC inference")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a single inference")
    run.add_argument("--config", required=True, help="Path to config YAML")
    run.add_argument("--seed", type=int, default=None)
    run.add_argument("--method", choices=["rejection", "pmc", "comparison"], default=None)
    run.add_argument("--max-sims", type=int, default=None, help="Simulation budget (PMC methods)")
    run.add_argument("--out", required=True, help="Output directory")

    sweep = sub.add_parser("sweep", help="Run configs across seeds")
    sweep.add_argument("--configs", nargs="+", required=True)
    sweep.add_argument("--seeds", nargs="+", type=int, required=True)
    sweep.add_argument("--out", required=True)

    aggregate = sub.add_parser("aggregate", help="Aggregate summaries from existing runs")
    aggregate.add_argument("--runs", nargs="+", required=True, help="Run directories or glob patterns")
    aggregate.add_argument("--out", required=False, help="Output directory for aggregate CSVs")

    return parser.parse_args(argv)


def override_config(cfg, args: argparse.Namespace) -> None:
    if args.seed is not None:
        cfg.seed = args.seed
    if args.method is not None:
        cfg.method = args.method
    if args.max_sims is not None:
        cfg.pmc.max_sims = args.max_sims
        cfg.comparison.max_sims = args.max_sims


def run_single(args: argparse.Namespace) -> None:
    cfg = load_config(args.config)
    override_config(cfg, args)
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    dump_config(cfg, out_dir / "config_resolved.yaml")
    run_inference(cfg, out_dir)


def run_sweep(args: argparse.Namespace) -> None:
    base_out = Path(args.out)
    base_out.mkdir(parents=True, exist_ok=True)
    summaries = []
    for config_path in args.configs:
        for seed in args.seeds:
            cfg = load_config(config_path)
            cfg.seed = seed
            run_name = f"{Path(config_path).stem}_seed_{seed}"
            out_dir = base_out / run_name
            out_dir.mkdir(parents=True, exist_ok=True)
            dump_config(cfg, out_dir / "config_resolved.yaml")
            logging.info("Running %s", run_name)
            outputs = run_inference(cfg, out_dir)
            summaries.append((run_name, outputs.summary))

    if summaries:
        combined, agg = aggregate_summaries(summaries)
        combined.to_csv(base_out / "run_summaries.csv", index=False)
        agg.to_csv(base_out / "aggregate_summary.csv", index=False)


def run_aggregate(args: argparse.Namespace) -> None:
    run_dirs = []
    for pattern in args.runs:
        matched = glob(pattern)
        if matched:
            run_dirs.extend([Path(p) for p in matched])
        else:
            run_dirs.append(Path(pattern))

    summaries = []
    for run_dir in run_dirs:
        summary_path = run_dir / "summary.json"
        if not summary_path.exists():
            logging.warning("Skipping %s (no summary.json)", run_dir)
            continue
        summaries.append((run_dir.name, json.loads(summary_path.read_text())))

    if not summaries:
        logging.error("No runs found to aggregate.")
        return

    combined, agg = aggregate_summaries(summaries)
    out_dir = Path(args.out) if args.out else run_dirs[0].parent
    out_dir.mkdir(parents=True, exist_ok=True)
    combined.to_csv(out_dir / "run_summaries.csv", index=False)
    agg.to_csv(out_dir / "aggregate_summary.csv", index=False)


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level.upper())
    if args.command == "run":
        run_single(args)
    elif args.command == "sweep":
        run_sweep(args)
    elif args.command == "aggregate":
        run_aggregate(args)


if __name__ == "__main__":
    main()
