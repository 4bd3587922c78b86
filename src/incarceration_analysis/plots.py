"""Matplotlib charts for the pipeline. Each function writes one PNG and returns None."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import matplotlib

# Use non-interactive backend so the pipeline can run headless (no GUI window).
# Must be called before importing pyplot.
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np
import polars as pl
from matplotlib.patches import Patch

from incarceration_analysis.config import RANDOM_SEED
from incarceration_analysis.graphs import Graph
from incarceration_analysis.ingest import filter_by_state
from incarceration_analysis.models import Record
from incarceration_analysis.stats import RegressionFit, national_averages

INCARCERATION_COLOR = "#0015BC"
CRIME_COLOR = "#E81B23"
FIT_COLOR = "#2CA02C"
MAX_LABELED_NODES = 80


def save_fig(fig: plt.Figure, path: Path, dpi: int = 150) -> None:
    """Save a matplotlib figure to disk and close it to free memory."""
    fig.savefig(path, dpi=dpi, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    print(f"  Saved: {path.name}")


def plot_degree_centrality(centrality: Sequence[tuple[str, int]], out_path: Path) -> None:
    """Bar chart of out-degree per jurisdiction, in node order."""
    if not centrality:
        print("  No centrality values to plot")
        return

    labels = [label for label, _ in centrality]
    degrees = [degree for _, degree in centrality]

    fig, ax = plt.subplots(1, 1, figsize=(16, 9))
    ax.bar(range(len(labels)), degrees, color=INCARCERATION_COLOR)
    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=90, fontsize=8)
    ax.set_xlabel("Jurisdiction", fontsize=11)
    ax.set_ylabel("Degree Centrality (out-degree)", fontsize=11)
    ax.set_title("Degree Centrality by State", fontsize=13, fontweight="bold")
    ax.grid(True, axis="y", alpha=0.3)

    save_fig(fig, out_path)


def plot_rates(records: Sequence[Record], out_path: Path) -> None:
    """Average incarceration rate vs average crime rate across all records."""
    if not records:
        print("  No records to plot")
        return

    avg_inc = float(np.mean([r.incarceration_rate for r in records]))
    avg_crime = float(np.mean([r.crime_rate for r in records]))

    fig, ax = plt.subplots(1, 1, figsize=(8, 6))
    ax.bar(
        ["Incarceration Rate", "Crime Rate"],
        [avg_inc, avg_crime],
        color=[INCARCERATION_COLOR, CRIME_COLOR],
    )
    ax.set_ylabel("Rate per 100,000", fontsize=11)
    ax.set_title("Average Rates", fontsize=13, fontweight="bold")
    ax.grid(True, axis="y", alpha=0.3)

    save_fig(fig, out_path)


def plot_national_averages(averages: pl.DataFrame, out_path: Path) -> None:
    """Yearly national mean rates (output of stats.national_averages)."""
    if averages.height == 0:
        print("  No yearly averages to plot")
        return

    years = averages["year"].to_list()
    fig, ax = plt.subplots(1, 1, figsize=(10, 6))
    ax.plot(
        years,
        averages["mean_incarceration_rate"].to_list(),
        color=INCARCERATION_COLOR,
        marker="o",
        label="Incarceration Rate",
    )
    ax.plot(
        years,
        averages["mean_crime_rate"].to_list(),
        color=CRIME_COLOR,
        marker="o",
        label="Crime Rate",
    )
    ax.set_xlabel("Year", fontsize=11)
    ax.set_ylabel("Rate per 100,000", fontsize=11)
    ax.set_title(
        f"National Averages ({min(years)}-{max(years)})", fontsize=13, fontweight="bold"
    )
    ax.legend(fontsize=9)
    ax.grid(True, alpha=0.3)

    save_fig(fig, out_path)


def plot_trends_over_time(records: Sequence[Record], state: str | None, out_dir: Path) -> None:
    """Incarceration and crime rate by year for one state, or national means when None."""
    if state is None:
        averages = national_averages(records)
        if averages.height == 0:
            print("  No data available for nationwide trends.")
            return
        years = averages["year"].to_list()
        inc = averages["mean_incarceration_rate"].to_list()
        crime = averages["mean_crime_rate"].to_list()
        name, title = "nationwide", "Nationwide"
    else:
        state_records = sorted(filter_by_state(list(records), state), key=lambda r: r.year)
        if not state_records:
            print(f"  No data available for {state}.")
            return
        years = [r.year for r in state_records]
        inc = [r.incarceration_rate for r in state_records]
        crime = [r.crime_rate for r in state_records]
        name, title = state.lower().replace(" ", "_"), state

    fig, ax = plt.subplots(1, 1, figsize=(12, 8))
    ax.plot(years, inc, color=INCARCERATION_COLOR, marker="o", label="Incarceration Rate")
    ax.plot(years, crime, color=CRIME_COLOR, marker="o", label="Crime Rate")
    ax.set_xlabel("Year", fontsize=11)
    ax.set_ylabel("Rate per 100,000", fontsize=11)
    ax.set_title(f"{title} Trends Over Time", fontsize=13, fontweight="bold")
    ax.legend(fontsize=9)
    ax.grid(True, alpha=0.3)

    save_fig(fig, out_dir / f"{name}_trends_over_time.png")


def plot_crime_rates_comparison(
    records: Sequence[Record], states: Sequence[str], out_path: Path
) -> None:
    """One crime-rate line per state over the years."""
    per_state = {s: sorted(filter_by_state(list(records), s), key=lambda r: r.year) for s in states}
    if all(not rs for rs in per_state.values()):
        print("  No data available for the specified states.")
        return

    fig, ax = plt.subplots(1, 1, figsize=(12, 8))
    cmap = plt.get_cmap("tab10")
    for idx, (state, rs) in enumerate(per_state.items()):
        if not rs:
            continue
        ax.plot(
            [r.year for r in rs],
            [r.crime_rate for r in rs],
            color=cmap(idx % 10),
            marker="o",
            label=state,
        )
    ax.set_xlabel("Year", fontsize=11)
    ax.set_ylabel("Violent Crime Rate per 100,000", fontsize=11)
    ax.set_title(f"Crime Rates: {' vs. '.join(states)}", fontsize=13, fontweight="bold")
    ax.legend(fontsize=9)
    ax.grid(True, alpha=0.3)

    save_fig(fig, out_path)


def plot_regression(
    records: Sequence[Record],
    linear: RegressionFit,
    quadratic: tuple[float, float, float] | None,
    out_path: Path,
) -> None:
    """Scatter of crime vs incarceration rate with the linear and quadratic fits."""
    x = np.array([r.incarceration_rate for r in records], dtype=float)
    y = np.array([r.crime_rate for r in records], dtype=float)
    xs = np.linspace(0.0, float(x.max()) if x.size else 1.0, 500)

    fig, ax = plt.subplots(1, 1, figsize=(10, 7))
    ax.scatter(x, y, s=12, alpha=0.6, color=INCARCERATION_COLOR, label="Jurisdiction-years")
    ax.plot(xs, linear.slope * xs + linear.intercept, color=FIT_COLOR, label=f"Linear: {linear}")
    if quadratic is not None:
        a, b, c = quadratic
        ax.plot(
            xs,
            a * xs**2 + b * xs + c,
            color=CRIME_COLOR,
            label=f"Quadratic: y = {a:.4g}x² + {b:.4g}x + {c:.4g}",
        )
    ax.set_xlabel("Incarceration Rate per 100,000", fontsize=11)
    ax.set_ylabel("Violent Crime Rate per 100,000", fontsize=11)
    ax.set_title("Incarceration Rate vs Crime Rate", fontsize=13, fontweight="bold")
    ax.legend(fontsize=9)
    ax.grid(True, alpha=0.3)

    save_fig(fig, out_path)


def plot_diminishing_returns(
    records: Sequence[Record], coefficients: tuple[float, float], out_path: Path
) -> None:
    """Scatter with the fitted y = a + b*ln(x + 1) curve."""
    a, b = coefficients
    x = np.array([r.incarceration_rate for r in records], dtype=float)
    y = np.array([r.crime_rate for r in records], dtype=float)
    xs = np.linspace(0.0, float(x.max()) if x.size else 1.0, 500)

    fig, ax = plt.subplots(1, 1, figsize=(10, 7))
    ax.scatter(x, y, s=12, alpha=0.6, color=INCARCERATION_COLOR)
    ax.plot(xs, a + b * np.log(xs + 1.0), color=CRIME_COLOR, label=f"y = {a:.2f} + {b:.2f} ln(x+1)")
    ax.set_xlabel("Incarceration Rate per 100,000", fontsize=11)
    ax.set_ylabel("Violent Crime Rate per 100,000", fontsize=11)
    ax.set_title(
        "Diminishing Marginal Returns: Crime Rate vs Incarceration Rate",
        fontsize=13,
        fontweight="bold",
    )
    ax.legend(fontsize=9)
    ax.grid(True, alpha=0.3)

    save_fig(fig, out_path)


def plot_clusters(
    graph: Graph, components: Sequence[Sequence[int]], out_path: Path
) -> None:
    """Spring layout of a graph with nodes coloured by connected component."""
    if graph.number_of_nodes() == 0:
        print("  Empty graph; nothing to plot")
        return

    G = nx.Graph(graph.to_networkx())
    pos = nx.spring_layout(
        G,
        weight="weight",
        seed=RANDOM_SEED,
        k=2.0 / np.sqrt(G.number_of_nodes()),
        iterations=100,
    )

    cmap = plt.get_cmap("tab20")
    component_of = {h: idx for idx, comp in enumerate(components) for h in comp}
    nodes = list(G.nodes())
    node_colors = [cmap(component_of.get(n, 0) % 20) for n in nodes]

    fig, ax = plt.subplots(1, 1, figsize=(14, 10))
    nx.draw_networkx_edges(G, pos, ax=ax, alpha=0.2, width=0.6)
    nx.draw_networkx_nodes(G, pos, nodelist=nodes, node_color=node_colors, node_size=60, ax=ax)
    if G.number_of_nodes() <= MAX_LABELED_NODES:
        nx.draw_networkx_labels(
            G, pos, labels={n: G.nodes[n]["label"] for n in nodes}, font_size=6, ax=ax
        )

    multi = [c for c in components if len(c) > 1]
    legend_elements = [
        Patch(facecolor=cmap(idx % 20), label=f"Cluster {idx} ({len(comp)})")
        for idx, comp in enumerate(components)
        if len(comp) > 1
    ][:10]
    if legend_elements:
        ax.legend(handles=legend_elements, fontsize=8, loc="upper left")
    ax.set_title(
        f"Similarity Clusters: {len(multi)} multi-node, "
        f"{len(components) - len(multi)} singleton",
        fontsize=13,
        fontweight="bold",
    )
    ax.axis("off")

    save_fig(fig, out_path)
