"""Graph construction over jurisdiction-year records.

Two graph variants share one tagged structure:

- Rate-difference graph (DIRECTED): one node per distinct jurisdiction, in
  first-seen order. Every record pair (i < j, input order) whose incarceration
  rates differ by less than RATE_DIFF_THRESHOLD adds an edge from record i's
  node to record j's node, weighted by the gap. A jurisdiction appearing in many
  years therefore produces parallel edges; pairs that resolve to the same node
  are skipped, so the graph has no self-loops.
- Similarity graph (UNDIRECTED): one node per record, so labels repeat across
  years. An edge joins two records whose similarity score exceeds
  SIMILARITY_THRESHOLD, weighted by the score.

Both scans are O(n^2) in the number of records, which stays in the low hundreds.
Graphs are built once and never mutated; analyzers only read them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import networkx as nx

from incarceration_analysis.config import RATE_DIFF_THRESHOLD, SIMILARITY_THRESHOLD
from incarceration_analysis.models import Record


class GraphKind(Enum):
    """Edge semantics of a Graph: directed (outgoing adjacency) or undirected."""

    DIRECTED = "directed"
    UNDIRECTED = "undirected"


@dataclass(frozen=True)
class Edge:
    """A weighted edge between two node handles (source -> target when directed)."""

    source: int
    target: int
    weight: float


@dataclass(frozen=True)
class Graph:
    """Nodes are integer handles 0..n-1; labels[h] is the jurisdiction name.

    adjacency[h] holds the outgoing edges of h (DIRECTED) or every edge incident
    to h (UNDIRECTED, each edge listed under both endpoints).
    """

    kind: GraphKind
    labels: tuple[str, ...]
    edges: tuple[Edge, ...]
    adjacency: dict[int, tuple[Edge, ...]]

    @property
    def directed(self) -> bool:
        return self.kind is GraphKind.DIRECTED

    def number_of_nodes(self) -> int:
        return len(self.labels)

    def number_of_edges(self) -> int:
        return len(self.edges)

    def nodes(self) -> range:
        return range(len(self.labels))

    def neighbors(self, node: int) -> list[int]:
        """Nodes reachable over one edge from `node` (repeats for parallel edges)."""
        return [e.target if e.source == node else e.source for e in self.adjacency[node]]

    def to_networkx(self) -> nx.MultiDiGraph | nx.MultiGraph:
        """Copy into networkx for layout and plotting. Node keys are handles."""
        G = nx.MultiDiGraph() if self.directed else nx.MultiGraph()
        for handle, label in enumerate(self.labels):
            G.add_node(handle, label=label)
        for e in self.edges:
            G.add_edge(e.source, e.target, weight=e.weight)
        return G


def _assemble(kind: GraphKind, labels: list[str], edges: list[Edge]) -> Graph:
    adjacency: dict[int, list[Edge]] = {h: [] for h in range(len(labels))}
    for e in edges:
        adjacency[e.source].append(e)
        if kind is GraphKind.UNDIRECTED:
            adjacency[e.target].append(e)
    return Graph(
        kind=kind,
        labels=tuple(labels),
        edges=tuple(edges),
        adjacency={h: tuple(es) for h, es in adjacency.items()},
    )


def similarity_score(a: Record, b: Record) -> float:
    """1 minus the summed absolute rate gaps over the summed rates (floored at 1.0).

    Identical profiles score 1.0; the score falls toward 0 (and can go negative
    only for degenerate inputs) as the two profiles diverge.
    """
    crime_diff = abs(a.crime_rate - b.crime_rate)
    incarceration_diff = abs(a.incarceration_rate - b.incarceration_rate)
    scale = max(1.0, a.crime_rate + b.crime_rate + a.incarceration_rate + b.incarceration_rate)
    return 1.0 - (crime_diff + incarceration_diff) / scale


def build_rate_difference_graph(
    records: Sequence[Record],
    threshold: float = RATE_DIFF_THRESHOLD,
) -> Graph:
    """Directed graph linking jurisdictions whose incarceration rates are close."""
    labels: list[str] = []
    handles: dict[str, int] = {}
    for r in records:
        if r.jurisdiction not in handles:
            handles[r.jurisdiction] = len(labels)
            labels.append(r.jurisdiction)

    edges: list[Edge] = []
    n = len(records)
    for i in range(n):
        for j in range(i + 1, n):
            u = handles[records[i].jurisdiction]
            v = handles[records[j].jurisdiction]
            if u == v:
                continue
            gap = abs(records[i].incarceration_rate - records[j].incarceration_rate)
            if gap < threshold:
                edges.append(Edge(u, v, gap))

    return _assemble(GraphKind.DIRECTED, labels, edges)


def build_similarity_graph(
    records: Sequence[Record],
    threshold: float = SIMILARITY_THRESHOLD,
) -> Graph:
    """Undirected graph linking records with similar crime/incarceration profiles."""
    labels = [r.jurisdiction for r in records]

    edges: list[Edge] = []
    n = len(records)
    for i in range(n):
        for j in range(i + 1, n):
            sim = similarity_score(records[i], records[j])
            if sim > threshold:
                edges.append(Edge(i, j, sim))

    return _assemble(GraphKind.UNDIRECTED, labels, edges)
