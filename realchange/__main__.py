from __future__ import annotations
import argparse
import logging

import matplotlib
matplotlib.use("Agg")
import pandas as pd

from .report import run_report
from .simulation import SimulationConfig


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="realchange",
        description="Simulate repeated trials and report which athlete changes are real.")
    parser.add_argument("--seed", type=int, default=42, help="random seed (default: 42)")
    parser.add_argument("--athletes", type=int, default=15, help="number of athletes (default: 15)")
    parser.add_argument("--output-dir", default=None,
                        help="directory for CSV tables and PNG charts")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SimulationConfig(n_athletes=args.athletes, random_seed=args.seed)
    report = run_report(config, output_dir=args.output_dir, close_figures=True)

    with pd.option_context("display.width", 160, "display.max_columns", None):
        for name, output in report.outputs.items():
            print(f"\n== {name} ==")
            print(output.table.round(3).to_string(index=False))
    for name, exc in report.errors.items():
        print(f"\n== {name} == failed: {exc}")
    return 1 if report.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
