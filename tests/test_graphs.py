"""
Tests for graph construction in graphs.py.

Verifies node identity rules (dedup for the rate-difference graph, one node per
record for the similarity graph), edge thresholds, edge direction, and the
networkx conversion used for plotting.

Run: uv run pytest tests/test_graphs.py -v
"""

import pytest

from incarceration_analysis.config import RATE_DIFF_THRESHOLD, SIMILARITY_THRESHOLD
from incarceration_analysis.graphs import (
    GraphKind,
    build_rate_difference_graph,
    build_similarity_graph,
    similarity_score,
)
from incarceration_analysis.models import Record

# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def abc_records() -> list[Record]:
    """A and B are 20 apart in incarceration rate; C is 180+ away from both."""
    return [
        Record("A", 2001, 100.0, 200.0),
        Record("B", 2001, 120.0, 210.0),
        Record("C", 2001, 300.0, 50.0),
    ]


@pytest.fixture
def multi_year_records() -> list[Record]:
    """Three states over two years, with a repeated jurisdiction per year."""
    return [
        Record("Arizona", 2001, 522.1, 540.3),
        Record("Kansas", 2001, 310.0, 380.0),
        Record("Arizona", 2002, 539.6, 554.5),
        Record("Kansas", 2002, 320.0, 390.0),
        Record("Maine", 2002, 140.0, 110.0),
        Record("Maine", 2001, 135.0, 112.0),
    ]


# ── Rate-difference graph ────────────────────────────────────────────────────


class TestRateDifferenceGraph:
    """Directed graph: deduplicated nodes, edges for rate gaps below 50."""

    def test_kind(self, abc_records: list[Record]) -> None:
        G = build_rate_difference_graph(abc_records)
        assert G.kind is GraphKind.DIRECTED
        assert G.directed

    def test_abc_scenario(self, abc_records: list[Record]) -> None:
        """A->B (gap 20) is the only edge; C is isolated."""
        G = build_rate_difference_graph(abc_records)
        assert G.labels == ("A", "B", "C")
        assert len(G.edges) == 1
        edge = G.edges[0]
        assert (G.labels[edge.source], G.labels[edge.target]) == ("A", "B")
        assert edge.weight == pytest.approx(20.0)

    def test_nodes_are_distinct_jurisdictions(self, multi_year_records: list[Record]) -> None:
        G = build_rate_difference_graph(multi_year_records)
        assert G.labels == ("Arizona", "Kansas", "Maine")
        assert G.number_of_nodes() == len({r.jurisdiction for r in multi_year_records})

    def test_no_self_loops(self, multi_year_records: list[Record]) -> None:
        """Arizona 2001 vs 2002 is within 50 but must not loop back on itself."""
        G = build_rate_difference_graph(multi_year_records)
        assert all(e.source != e.target for e in G.edges)

    def test_same_state_pairs_add_nothing(self, multi_year_records: list[Record]) -> None:
        """Only same-state pairs are within 50 here, and those share a node."""
        G = build_rate_difference_graph(multi_year_records)
        assert G.number_of_edges() == 0

    def test_parallel_edges_across_years(self, multi_year_records: list[Record]) -> None:
        """Both Arizona years sit within 50 of Ohio, giving two Arizona->Ohio edges."""
        records = multi_year_records + [Record("Ohio", 2001, 530.0, 300.0)]
        G = build_rate_difference_graph(records)
        pairs = [(G.labels[e.source], G.labels[e.target]) for e in G.edges]
        assert pairs == [("Arizona", "Ohio"), ("Arizona", "Ohio")]
        assert sorted(e.weight for e in G.edges) == pytest.approx([7.9, 9.6])

    def test_direction_follows_input_order(self) -> None:
        records = [
            Record("B", 2001, 100.0, 10.0),
            Record("A", 2001, 110.0, 10.0),
            Record("B", 2002, 105.0, 10.0),
        ]
        G = build_rate_difference_graph(records)
        pairs = [(G.labels[e.source], G.labels[e.target]) for e in G.edges]
        # B2001->A, A->B2002 (B2001 vs B2002 share a node and are skipped)
        assert pairs == [("B", "A"), ("A", "B")]

    def test_threshold_is_exclusive(self) -> None:
        records = [Record("A", 2001, 100.0, 1.0), Record("B", 2001, 150.0, 1.0)]
        G = build_rate_difference_graph(records)
        assert G.number_of_edges() == 0

    def test_weights_within_threshold(self, multi_year_records: list[Record]) -> None:
        G = build_rate_difference_graph(multi_year_records + [Record("Ohio", 2001, 530.0, 300.0)])
        assert G.number_of_edges() > 0
        assert all(0 <= e.weight < RATE_DIFF_THRESHOLD for e in G.edges)

    def test_custom_threshold(self, abc_records: list[Record]) -> None:
        G = build_rate_difference_graph(abc_records, threshold=250.0)
        assert G.number_of_edges() == 3

    def test_adjacency_holds_outgoing_edges(self, abc_records: list[Record]) -> None:
        G = build_rate_difference_graph(abc_records)
        assert len(G.adjacency[0]) == 1
        assert G.adjacency[1] == ()
        assert G.adjacency[2] == ()
        assert G.neighbors(0) == [1]

    def test_empty_input(self) -> None:
        G = build_rate_difference_graph([])
        assert G.number_of_nodes() == 0
        assert G.number_of_edges() == 0

    def test_deterministic(self, multi_year_records: list[Record]) -> None:
        assert build_rate_difference_graph(multi_year_records) == build_rate_difference_graph(
            multi_year_records
        )


# ── Similarity graph ─────────────────────────────────────────────────────────


class TestSimilarityScore:
    def test_identical_rates_score_one(self) -> None:
        a = Record("A", 2001, 250.0, 400.0)
        b = Record("B", 2005, 250.0, 400.0)
        assert similarity_score(a, b) == pytest.approx(1.0)

    def test_formula(self) -> None:
        a = Record("A", 2001, 100.0, 200.0)
        b = Record("B", 2001, 120.0, 210.0)
        # 1 - (10 + 20) / 630
        assert similarity_score(a, b) == pytest.approx(1 - 30 / 630)

    def test_small_rates_use_floor_of_one(self) -> None:
        a = Record("A", 2001, 0.1, 0.1)
        b = Record("B", 2001, 0.3, 0.2)
        # sum = 0.7 < 1.0, so the denominator is 1.0
        assert similarity_score(a, b) == pytest.approx(1 - (0.1 + 0.2))

    def test_symmetric(self) -> None:
        a = Record("A", 2001, 100.0, 200.0)
        b = Record("B", 2001, 300.0, 50.0)
        assert similarity_score(a, b) == pytest.approx(similarity_score(b, a))


class TestSimilarityGraph:
    """Undirected graph: one node per record, edges for similarity above 0.7."""

    def test_kind(self, abc_records: list[Record]) -> None:
        assert build_similarity_graph(abc_records).kind is GraphKind.UNDIRECTED

    def test_one_node_per_record(self, multi_year_records: list[Record]) -> None:
        G = build_similarity_graph(multi_year_records)
        assert G.number_of_nodes() == len(multi_year_records)
        assert G.labels.count("Arizona") == 2

    def test_identical_rates_create_edge(self) -> None:
        records = [Record("A", 2001, 250.0, 400.0), Record("A", 2002, 250.0, 400.0)]
        G = build_similarity_graph(records)
        assert G.number_of_edges() == 1
        assert G.edges[0].weight == pytest.approx(1.0)

    def test_weights_above_threshold(self, multi_year_records: list[Record]) -> None:
        G = build_similarity_graph(multi_year_records)
        assert G.number_of_edges() > 0
        assert all(e.weight > SIMILARITY_THRESHOLD for e in G.edges)

    def test_dissimilar_records_unlinked(self) -> None:
        records = [Record("A", 2001, 1000.0, 10.0), Record("B", 2001, 10.0, 1000.0)]
        assert build_similarity_graph(records).number_of_edges() == 0

    def test_adjacency_lists_edge_under_both_endpoints(self) -> None:
        records = [Record("A", 2001, 250.0, 400.0), Record("B", 2001, 250.0, 400.0)]
        G = build_similarity_graph(records)
        assert G.adjacency[0] == G.adjacency[1] == G.edges
        assert G.neighbors(0) == [1]
        assert G.neighbors(1) == [0]

    def test_no_self_loops(self, multi_year_records: list[Record]) -> None:
        G = build_similarity_graph(multi_year_records)
        assert all(e.source != e.target for e in G.edges)


# ── networkx conversion ──────────────────────────────────────────────────────


class TestToNetworkx:
    def test_directed_conversion(self, abc_records: list[Record]) -> None:
        nxg = build_rate_difference_graph(abc_records).to_networkx()
        assert nxg.is_directed()
        assert nxg.number_of_nodes() == 3
        assert nxg.number_of_edges() == 1
        assert nxg.nodes[0]["label"] == "A"

    def test_undirected_keeps_repeated_labels(self, multi_year_records: list[Record]) -> None:
        G = build_similarity_graph(multi_year_records)
        nxg = G.to_networkx()
        assert not nxg.is_directed()
        assert nxg.number_of_nodes() == len(multi_year_records)
        assert nxg.number_of_edges() == G.number_of_edges()
