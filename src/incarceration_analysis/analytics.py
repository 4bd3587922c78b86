"""Structural analysis of built graphs: centrality, paths, k-filtering, clusters, tiers.

All functions take a Graph read-only and are total: an empty graph yields empty
collections or 0.0, never an exception.

Naming note: "degree centrality" here is the raw count of edges leaving a node
(out-degree) on the rate-difference graph, not networkx's normalized fraction.
On the similarity graph every edge is incident to both endpoints, so the same
count is the ordinary undirected degree. total_degree() gives in + out.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

import networkx as nx

from incarceration_analysis.config import HIGH_CENTRALITY, MEDIUM_CENTRALITY
from incarceration_analysis.graphs import Edge, Graph


class CentralityTiers(NamedTuple):
    high: list[str]
    medium: list[str]
    low: list[str]


def _other(edge: Edge, node: int) -> int:
    return edge.target if edge.source == node else edge.source


# ── Centrality ───────────────────────────────────────────────────────────────


def degree_centrality(graph: Graph) -> list[tuple[str, int]]:
    """(label, out-degree) per node in creation order.

    Returns an empty list only for a graph without nodes, which is reported as a
    warning rather than raised.
    """
    result = [(graph.labels[h], len(graph.adjacency[h])) for h in graph.nodes()]
    if not result:
        print("  Warning: graph has no nodes; degree centrality is empty")
    return result


out_degree = degree_centrality


def total_degree(graph: Graph) -> list[tuple[str, int]]:
    """(label, in-degree + out-degree) per node. Equals degree_centrality when undirected."""
    if not graph.directed:
        return degree_centrality(graph)
    counts = [len(graph.adjacency[h]) for h in graph.nodes()]
    for e in graph.edges:
        counts[e.target] += 1
    return [(graph.labels[h], counts[h]) for h in graph.nodes()]


# ── Shortest paths ───────────────────────────────────────────────────────────


def shortest_path_lengths(graph: Graph, source: int) -> dict[int, float]:
    """Dijkstra from `source` over non-negative weights. Includes source -> 0.0."""
    return _lengths_from(graph.to_networkx(), source)


def _lengths_from(G: nx.MultiDiGraph | nx.MultiGraph, source: int) -> dict[int, float]:
    # Parallel edges resolve to the lightest weight
    return {
        node: float(d)
        for node, d in nx.single_source_dijkstra_path_length(G, source, weight="weight").items()
    }


def average_shortest_path(graph: Graph) -> float:
    """Mean over all (source, reachable target) pairs, self-pairs included.

    Each node contributes its zero-length path to itself, which pulls the mean
    down compared to mean_pair_distance(). Empty graph -> 0.0.
    """
    G = graph.to_networkx()
    total = 0.0
    count = 0
    for source in graph.nodes():
        dist = _lengths_from(G, source)
        total += sum(dist.values())
        count += len(dist)
    if count == 0:
        return 0.0
    return total / count


def mean_pair_distance(graph: Graph) -> float:
    """Mean shortest-path length over distinct reachable (source, target) pairs."""
    G = graph.to_networkx()
    total = 0.0
    count = 0
    for source in graph.nodes():
        for target, d in _lengths_from(G, source).items():
            if target == source:
                continue
            total += d
            count += 1
    if count == 0:
        return 0.0
    return total / count


# ── K-filtering ──────────────────────────────────────────────────────────────


def filter_by_min_degree(graph: Graph, k: int) -> set[str]:
    """Labels of nodes whose degree_centrality is at least k (single pass)."""
    return {graph.labels[h] for h in graph.nodes() if len(graph.adjacency[h]) >= k}


def k_core(graph: Graph, k: int) -> set[str]:
    """Labels surviving iterative peeling: repeatedly drop nodes with fewer than k
    edges to other surviving nodes, recounting after every removal, until stable.

    Uses the same degree notion as degree_centrality, so the result is always a
    subset of filter_by_min_degree(graph, k).
    """
    alive = set(graph.nodes())
    changed = True
    while changed:
        changed = False
        for h in sorted(alive):
            deg = sum(1 for e in graph.adjacency[h] if _other(e, h) in alive)
            if deg < k:
                alive.discard(h)
                changed = True
    return {graph.labels[h] for h in alive}


# ── Clusters ─────────────────────────────────────────────────────────────────


def component_handles(graph: Graph) -> list[list[int]]:
    """Connected components as sorted handle lists, ordered by smallest handle.

    Edge direction is ignored, so on the rate-difference graph these are the
    weakly connected components.
    """
    G = nx.Graph(graph.to_networkx())
    return sorted(sorted(c) for c in nx.connected_components(G))


def connected_components(graph: Graph) -> list[list[str]]:
    """Partition the nodes into maximal connected groups of labels.

    Isolated nodes come back as one-element groups. Labels can repeat within
    and across groups on the similarity graph (one node per record).
    """
    return [[graph.labels[h] for h in comp] for comp in component_handles(graph)]


# ── Classification ───────────────────────────────────────────────────────────


def classify(centrality: Sequence[tuple[str, int]]) -> CentralityTiers:
    """Split labels into fixed-threshold tiers: >1000 high, >500 medium, else low."""
    tiers = CentralityTiers([], [], [])
    for label, degree in centrality:
        if degree > HIGH_CENTRALITY:
            tiers.high.append(label)
        elif degree > MEDIUM_CENTRALITY:
            tiers.medium.append(label)
        else:
            tiers.low.append(label)
    return tiers


# ── Summary ──────────────────────────────────────────────────────────────────


def summarize(graph: Graph) -> dict:
    """Summary statistics for console output and the run manifest."""
    n_edges = graph.number_of_edges()
    mean_weight = sum(e.weight for e in graph.edges) / n_edges if n_edges else 0.0
    return {
        "kind": graph.kind.value,
        "n_nodes": graph.number_of_nodes(),
        "n_edges": n_edges,
        "n_components": len(component_handles(graph)),
        "mean_weight": round(mean_weight, 4),
    }
