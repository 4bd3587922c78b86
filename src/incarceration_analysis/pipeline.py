"""
State Incarceration & Crime: Network Analysis Pipeline

Loads jurisdiction-year records, fits the descriptive models, builds the
rate-difference and similarity graphs, and reports centrality, path length,
k-filtering, clusters and centrality tiers.

Usage:
  incarceration-analysis [crime_and_incarceration_by_state.csv] [--k 3]
      [--compare Arizona Massachusetts] [--trend-state Arizona] [--no-render]

Outputs (in results/<dataset>/network/<date>/):
  - data/:   Parquet tables (records, centrality, clusters, national averages), DOT graphs
  - plots/:  PNG charts and Graphviz renderings
  - analysis_manifest.json, run_info.json, run_log.txt
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict
from pathlib import Path

import numpy as np
import polars as pl

from incarceration_analysis import plots
from incarceration_analysis.analytics import (
    average_shortest_path,
    classify,
    component_handles,
    degree_centrality,
    filter_by_min_degree,
    k_core,
    mean_pair_distance,
    summarize,
    total_degree,
)
from incarceration_analysis.config import (
    DEFAULT_COMPARE_STATES,
    DEFAULT_K,
    HIGH_CENTRALITY,
    MEDIUM_CENTRALITY,
    OUTLIER_Z,
    RATE_DIFF_THRESHOLD,
    SIMILARITY_THRESHOLD,
)
from incarceration_analysis.export import (
    ExportError,
    clusters_to_dot,
    graph_to_dot,
    render_png,
    write_dot,
)
from incarceration_analysis.graphs import build_rate_difference_graph, build_similarity_graph
from incarceration_analysis.ingest import (
    compare_states,
    process_dataset,
    records_to_frame,
)
from incarceration_analysis.models import RawRecord, Record
from incarceration_analysis.run_context import RunContext
from incarceration_analysis.stats import (
    identify_outliers,
    linear_regression,
    logarithmic_fit,
    national_averages,
    quadratic_regression,
    t_test,
)

MAX_INVALID_SHOWN = 20

NETWORK_PRIMER = f"""\
# Incarceration & Crime Network Analysis

## Purpose

Relates state incarceration rates to violent crime rates, then looks at the
jurisdictions as a network: which states sit close to many others in
incarceration rate, how far apart they are on average, and which
jurisdiction-years share a crime/incarceration profile.

## Method

### Records
Rows with a blank or zero population or violent-crime total are rejected.
Rates are per 100,000 residents.

### Rate-difference graph (directed)
- **Nodes:** distinct jurisdictions, in first-seen order.
- **Edges:** every record pair (earlier -> later in file order) whose
  incarceration rates differ by less than {RATE_DIFF_THRESHOLD:g}.
  Weight = the gap. Repeated years produce parallel edges.

### Similarity graph (undirected)
- **Nodes:** one per jurisdiction-year record.
- **Edges:** similarity > {SIMILARITY_THRESHOLD:g}, where similarity is
  1 - (|crime gap| + |incarceration gap|) / max(1, sum of the four rates).

### Metrics
- **Degree centrality:** out-degree (edge count, not normalized).
- **Average shortest path:** Dijkstra from every node; self-distances (0) are
  included. The distinct-pair mean is reported alongside.
- **K-filter:** nodes with out-degree >= k (single pass). True k-core peeling
  is reported alongside.
- **Clusters:** connected components of the similarity graph.
- **Tiers:** degree > {HIGH_CENTRALITY} high, > {MEDIUM_CENTRALITY} medium, else low.

## Caveats

- Tier thresholds are fixed constants sized for ~50 states x ~15 years.
- Edge direction follows file order, not causality.
"""


def print_header(title: str) -> None:
    """Print a visually distinct section header to stdout."""
    width = 80
    print(f"\n{'=' * width}")
    print(f"  {title}")
    print(f"{'=' * width}")


def _export_graph(
    dot_text: str,
    dot_path: Path,
    png_path: Path,
    render: bool,
    errors: list[str],
) -> None:
    """Write a DOT file and optionally render it. Failures are recorded, not raised."""
    try:
        write_dot(dot_text, dot_path)
        if render:
            render_png(dot_path, png_path)
    except ExportError as e:
        print(f"  Warning: {e}")
        errors.append(str(e))


def _print_invalid(invalid: list[RawRecord]) -> None:
    if not invalid:
        return
    print(f"\n  {len(invalid)} row(s) have missing or invalid data:")
    for raw in invalid[:MAX_INVALID_SHOWN]:
        print(f"    {raw.jurisdiction:20s} {raw.year:>6s}  {raw.reason}")
    if len(invalid) > MAX_INVALID_SHOWN:
        print(f"    ... and {len(invalid) - MAX_INVALID_SHOWN} more")


def run_statistics(records: list[Record], compare: tuple[str, str]) -> dict:
    """Fit the regression models and compare two states. Degenerate fits become None."""
    out: dict = {}

    try:
        fit = linear_regression(records)
        out["linear"] = fit
        print(f"  Linear regression:   {fit}")
    except ValueError as e:
        out["linear"] = None
        print(f"  Warning: linear regression skipped: {e}")

    try:
        a, b, c = quadratic_regression(records)
        out["quadratic"] = (a, b, c)
        print(f"  Quadratic model:     y = {a:.4f}x^2 + {b:.4f}x + {c:.4f}")
    except (ValueError, np.linalg.LinAlgError) as e:
        out["quadratic"] = None
        print(f"  Warning: quadratic regression skipped: {e}")

    try:
        a, b = logarithmic_fit(records)
        out["logarithmic"] = (a, b)
        print(f"  Logarithmic model:   y = {a:.4f} + {b:.4f}ln(x+1)")
    except ValueError as e:
        out["logarithmic"] = None
        print(f"  Warning: logarithmic fit skipped: {e}")

    outliers = identify_outliers(records)
    out["outliers"] = outliers
    print(f"  Outliers (|z| > {OUTLIER_Z:g}): {len(outliers)}")
    for r in outliers:
        print(f"    {r.jurisdiction:20s} {r.year}  incarceration={r.incarceration_rate:.1f}")

    state1, state2 = compare
    data1, data2 = compare_states(records, state1, state2)
    print(f"\n  {state1}: {len(data1)} records, {state2}: {len(data2)} records")
    try:
        t_stat, p_value = t_test([r.crime_rate for r in data1], [r.crime_rate for r in data2])
        out["t_test"] = {"states": [state1, state2], "t": t_stat, "p": p_value}
        print(f"  Crime-rate t-test:   t={t_stat:.4f}, p={p_value:.4g}")
    except ValueError as e:
        out["t_test"] = None
        print(f"  Warning: t-test skipped: {e}")

    return out


def run(
    csv_path: Path,
    *,
    k: int = DEFAULT_K,
    compare: tuple[str, str] = DEFAULT_COMPARE_STATES,
    trend_state: str | None = None,
    results_root: Path | None = None,
    render: bool = True,
    make_plots: bool = True,
) -> dict:
    """Run the full pipeline inside a RunContext. Returns the in-memory results."""
    params = {
        "csv_path": str(csv_path),
        "k": k,
        "compare": list(compare),
        "trend_state": trend_state,
        "render": render,
        "make_plots": make_plots,
    }
    results: dict = {"export_errors": []}

    with RunContext(
        dataset=csv_path.name,
        analysis_name="network",
        params=params,
        results_root=results_root,
        primer=NETWORK_PRIMER,
    ) as ctx:
        start = time.time()
        print(f"Incarceration Network Analysis: {csv_path}")
        print(f"Output: {ctx.run_dir}")

        # ── Phase 1: Load & Clean ──
        print_header("PHASE 1: LOAD & CLEAN")
        records, invalid = process_dataset(csv_path)
        print(f"  Valid records:   {len(records)}")
        print(f"  Invalid records: {len(invalid)}")
        _print_invalid(invalid)
        results["n_records"] = len(records)
        results["n_invalid"] = len(invalid)

        if not records:
            print("  No valid records found. Exiting.")
            return results

        records_to_frame(records).write_parquet(ctx.data_dir / "records.parquet")
        print("  Saved: records.parquet")

        # ── Phase 2: Statistics ──
        print_header("PHASE 2: STATISTICS")
        results["statistics"] = run_statistics(records, compare)
        averages = national_averages(records)
        averages.write_parquet(ctx.data_dir / "national_averages.parquet")
        print("  Saved: national_averages.parquet")

        # ── Phase 3: Rate-Difference Graph ──
        print_header("PHASE 3: RATE-DIFFERENCE GRAPH")
        G = build_rate_difference_graph(records)
        summary = summarize(G)
        results["rate_difference_summary"] = summary
        print(f"  Nodes: {summary['n_nodes']}, Edges: {summary['n_edges']}")
        _export_graph(
            graph_to_dot(G),
            ctx.data_dir / "rate_difference_graph.dot",
            ctx.plots_dir / "rate_difference_graph.png",
            render,
            results["export_errors"],
        )

        # ── Phase 4: Degree Centrality ──
        print_header("PHASE 4: DEGREE CENTRALITY")
        centrality = degree_centrality(G)
        results["degree_centrality"] = centrality
        for state, degree in centrality:
            print(f"  State: {state:<15} | Degree: {degree}")
        if centrality:
            total = dict(total_degree(G))
            pl.DataFrame(
                {
                    "jurisdiction": [s for s, _ in centrality],
                    "out_degree": [d for _, d in centrality],
                    "total_degree": [total[s] for s, _ in centrality],
                }
            ).write_parquet(ctx.data_dir / "degree_centrality.parquet")
            print("  Saved: degree_centrality.parquet")

        # ── Phase 5: Paths & K-Filter ──
        print_header("PHASE 5: SHORTEST PATHS & K-FILTER")
        avg_path = average_shortest_path(G)
        pair_path = mean_pair_distance(G)
        core_filter = filter_by_min_degree(G, k)
        core_peeled = k_core(G, k)
        results["average_shortest_path"] = avg_path
        results["mean_pair_distance"] = pair_path
        results["k_filter"] = core_filter
        results["k_core"] = core_peeled
        print(f"  Average Shortest Path Length: {avg_path:.4f}")
        print(f"  Mean distance (distinct pairs): {pair_path:.4f}")
        print(f"  Out-degree >= {k} ({len(core_filter)}): {sorted(core_filter)}")
        print(f"  {k}-core after peeling ({len(core_peeled)}): {sorted(core_peeled)}")

        # ── Phase 6: Similarity Graph & Clusters ──
        print_header("PHASE 6: SIMILARITY GRAPH & CLUSTERS")
        S = build_similarity_graph(records)
        sim_summary = summarize(S)
        results["similarity_summary"] = sim_summary
        print(f"  Nodes: {sim_summary['n_nodes']}, Edges: {sim_summary['n_edges']}")

        components = component_handles(S)
        results["clusters"] = [[S.labels[h] for h in comp] for comp in components]
        multi = [comp for comp in components if len(comp) > 1]
        print(f"  Clusters: {len(components)} ({len(multi)} multi-node)")
        for idx, comp in enumerate(multi[:10]):
            names = sorted({S.labels[h] for h in comp})
            print(f"    Cluster {idx}: {len(comp)} records, {len(names)} jurisdictions")

        pl.DataFrame(
            {
                "cluster": [idx for idx, comp in enumerate(components) for _ in comp],
                "node": [h for comp in components for h in comp],
                "jurisdiction": [S.labels[h] for comp in components for h in comp],
                "year": [records[h].year for comp in components for h in comp],
            },
            schema={"cluster": pl.Int64, "node": pl.Int64, "jurisdiction": pl.Utf8, "year": pl.Int64},
        ).write_parquet(ctx.data_dir / "clusters.parquet")
        print("  Saved: clusters.parquet")

        _export_graph(
            graph_to_dot(S, edge_labels=False),
            ctx.data_dir / "similarity_graph.dot",
            ctx.plots_dir / "similarity_graph.png",
            render,
            results["export_errors"],
        )
        _export_graph(
            clusters_to_dot(S, components),
            ctx.data_dir / "similarity_clusters.dot",
            ctx.plots_dir / "similarity_clusters.png",
            render,
            results["export_errors"],
        )

        # ── Phase 7: Centrality Tiers ──
        print_header("PHASE 7: CENTRALITY TIERS")
        tiers = classify(centrality)
        results["tiers"] = tiers
        print(f"  High Centrality States:   {tiers.high}")
        print(f"  Medium Centrality States: {tiers.medium}")
        print(f"  Low Centrality States:    {tiers.low}")

        # ── Phase 8: Plots ──
        if make_plots:
            print_header("PHASE 8: PLOTS")
            stats_out = results["statistics"]
            plots.plot_rates(records, ctx.plots_dir / "rates.png")
            plots.plot_degree_centrality(centrality, ctx.plots_dir / "degree_centrality.png")
            plots.plot_national_averages(averages, ctx.plots_dir / "national_averages.png")
            plots.plot_trends_over_time(records, trend_state, ctx.plots_dir)
            plots.plot_crime_rates_comparison(
                records, list(compare), ctx.plots_dir / "crime_rates_comparison.png"
            )
            if stats_out["linear"] is not None:
                plots.plot_regression(
                    records,
                    stats_out["linear"],
                    stats_out["quadratic"],
                    ctx.plots_dir / "regression.png",
                )
            if stats_out["logarithmic"] is not None:
                plots.plot_diminishing_returns(
                    records, stats_out["logarithmic"], ctx.plots_dir / "diminishing_returns.png"
                )
            plots.plot_clusters(S, components, ctx.plots_dir / "similarity_clusters_layout.png")

        # ── Manifest ──
        print_header("ANALYSIS MANIFEST")
        stats_out = results["statistics"]
        manifest = {
            "analysis": "network",
            "constants": {
                "RATE_DIFF_THRESHOLD": RATE_DIFF_THRESHOLD,
                "SIMILARITY_THRESHOLD": SIMILARITY_THRESHOLD,
                "HIGH_CENTRALITY": HIGH_CENTRALITY,
                "MEDIUM_CENTRALITY": MEDIUM_CENTRALITY,
                "OUTLIER_Z": OUTLIER_Z,
            },
            "k": k,
            "n_records": len(records),
            "n_invalid": len(invalid),
            "rate_difference_graph": summary,
            "similarity_graph": sim_summary,
            "average_shortest_path": round(avg_path, 4),
            "mean_pair_distance": round(pair_path, 4),
            "k_filter_size": len(core_filter),
            "k_core_size": len(core_peeled),
            "n_clusters": len(components),
            "tiers": {"high": tiers.high, "medium": tiers.medium, "low": len(tiers.low)},
            "linear_regression": (
                asdict(stats_out["linear"]) if stats_out["linear"] is not None else None
            ),
            "quadratic_regression": stats_out["quadratic"],
            "logarithmic_fit": stats_out["logarithmic"],
            "t_test": stats_out["t_test"],
            "export_errors": results["export_errors"],
        }
        manifest_path = ctx.run_dir / "analysis_manifest.json"
        with open(manifest_path, "w") as f:
            json.dump(manifest, f, indent=2, default=str)
        print("  Saved: analysis_manifest.json")

        print_header("DONE")
        print(f"  All outputs in: {ctx.run_dir}")
        print(f"  Parquet files:  {len(list(ctx.data_dir.glob('*.parquet')))}")
        print(f"  PNG plots:      {len(list(ctx.plots_dir.glob('*.png')))}")
        print(f"  Completed in {time.time() - start:.2f}s")

    return results
