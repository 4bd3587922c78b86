"""Command-line interface for the incarceration network analysis."""

import argparse
from pathlib import Path

from incarceration_analysis import pipeline
from incarceration_analysis.config import DEFAULT_COMPARE_STATES, DEFAULT_DATASET, DEFAULT_K
from incarceration_analysis.ingest import IngestError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="incarceration-analysis",
        description="Relate state incarceration and crime rates and analyze them as a network.",
    )
    parser.add_argument(
        "csv_path",
        nargs="?",
        type=Path,
        default=Path(DEFAULT_DATASET),
        help=f"Input CSV (default: {DEFAULT_DATASET})",
    )
    parser.add_argument(
        "--k",
        type=int,
        default=DEFAULT_K,
        help=f"Minimum out-degree for the k-filter and k-core (default: {DEFAULT_K})",
    )
    parser.add_argument(
        "--compare",
        nargs=2,
        metavar=("STATE1", "STATE2"),
        default=list(DEFAULT_COMPARE_STATES),
        help="Two states whose crime rates are t-tested and plotted "
        f"(default: {' '.join(DEFAULT_COMPARE_STATES)})",
    )
    parser.add_argument(
        "--trend-state",
        default=None,
        help="State for the trends-over-time chart (default: nationwide averages)",
    )
    parser.add_argument(
        "--results-root",
        type=Path,
        default=None,
        help="Results root directory (default: results/)",
    )
    parser.add_argument(
        "--no-render",
        action="store_true",
        help="Write DOT files only; skip Graphviz PNG rendering",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip matplotlib charts",
    )

    args = parser.parse_args(argv)

    if args.k < 0:
        parser.error("--k must be non-negative")

    try:
        pipeline.run(
            args.csv_path,
            k=args.k,
            compare=tuple(args.compare),
            trend_state=args.trend_state,
            results_root=args.results_root,
            render=not args.no_render,
            make_plots=not args.no_plots,
        )
    except IngestError as e:
        print(f"Error: {e}")
        return 1
    return 0
