"""
Tests for DOT export and Graphviz rendering in export.py.

Rendering is exercised without Graphviz installed: shutil.which and
subprocess.run are monkeypatched.

Run: uv run pytest tests/test_export.py -v
"""

import subprocess
from pathlib import Path

import pytest

from incarceration_analysis import export
from incarceration_analysis.analytics import component_handles
from incarceration_analysis.config import CLUSTER_COLORS
from incarceration_analysis.export import (
    ExportError,
    clusters_to_dot,
    graph_to_dot,
    render_png,
    write_dot,
)
from incarceration_analysis.graphs import build_rate_difference_graph, build_similarity_graph
from incarceration_analysis.models import Record

# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def abc_records() -> list[Record]:
    return [
        Record("A", 2001, 100.0, 200.0),
        Record("B", 2001, 120.0, 210.0),
        Record("C", 2001, 300.0, 50.0),
    ]


@pytest.fixture
def dot_file(tmp_path: Path) -> Path:
    path = tmp_path / "g.dot"
    path.write_text("digraph {\n}\n")
    return path


# ── graph_to_dot ─────────────────────────────────────────────────────────────


class TestGraphToDot:
    def test_directed_abc(self, abc_records: list[Record]) -> None:
        text = graph_to_dot(build_rate_difference_graph(abc_records))
        assert text.splitlines() == [
            "digraph {",
            '    0 [label="A"];',
            '    1 [label="B"];',
            '    2 [label="C"];',
            '    0 -> 1 [label="20.00"];',
            "}",
        ]

    def test_undirected_without_labels(self, abc_records: list[Record]) -> None:
        G = build_similarity_graph(abc_records)
        text = graph_to_dot(G, edge_labels=False)
        assert text.startswith("graph {\n")
        assert "    0 -- 1;" in text.splitlines()
        assert "->" not in text

    def test_one_line_per_node_and_edge(self, abc_records: list[Record]) -> None:
        G = build_similarity_graph(abc_records + abc_records)
        lines = graph_to_dot(G).splitlines()
        assert len(lines) == 2 + G.number_of_nodes() + G.number_of_edges()

    def test_quotes_special_characters(self) -> None:
        G = build_rate_difference_graph([Record('Say "Hi"\\', 2001, 1.0, 1.0)])
        assert '    0 [label="Say \\"Hi\\"\\\\"];' in graph_to_dot(G).splitlines()

    def test_empty_graph(self) -> None:
        assert graph_to_dot(build_rate_difference_graph([])) == "digraph {\n}\n"


# ── clusters_to_dot ──────────────────────────────────────────────────────────


class TestClustersToDot:
    def test_node_lines_carry_cluster_color(self, abc_records: list[Record]) -> None:
        G = build_similarity_graph(abc_records)
        lines = clusters_to_dot(G, component_handles(G)).splitlines()
        assert lines[0] == "graph G {"
        assert '    0 [label="A" color=red style=filled group=0];' in lines
        assert '    1 [label="B" color=red style=filled group=0];' in lines
        assert '    2 [label="C" color=blue style=filled group=1];' in lines

    def test_colors_cycle(self) -> None:
        """Far-apart records are all singletons; the seventh reuses the first colour."""
        records = [Record(f"S{i}", 2001, 10.0**i, 1.0) for i in range(len(CLUSTER_COLORS) + 1)]
        G = build_similarity_graph(records)
        comps = component_handles(G)
        assert len(comps) == len(CLUSTER_COLORS) + 1
        text = clusters_to_dot(G, comps)
        last = len(CLUSTER_COLORS)
        assert f"    {last} [label=\"S{last}\" color={CLUSTER_COLORS[0]} " in text

    def test_every_node_listed_once(self, abc_records: list[Record]) -> None:
        G = build_similarity_graph(abc_records * 3)
        lines = clusters_to_dot(G, component_handles(G)).splitlines()
        node_lines = [line for line in lines if "style=filled" in line]
        assert len(node_lines) == G.number_of_nodes()


# ── write_dot ────────────────────────────────────────────────────────────────


class TestWriteDot:
    def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        out = tmp_path / "a" / "b" / "g.dot"
        assert write_dot("graph {\n}\n", out) == out
        assert out.read_text() == "graph {\n}\n"

    def test_unwritable_path_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(ExportError):
            write_dot("graph {}", blocker / "g.dot")

    def test_export_error_is_oserror(self) -> None:
        assert issubclass(ExportError, OSError)


# ── render_png ───────────────────────────────────────────────────────────────


class TestRenderPng:
    def test_missing_binary(self, dot_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(export.shutil, "which", lambda _name: None)
        with pytest.raises(ExportError, match="not found"):
            render_png(dot_file, dot_file.with_suffix(".png"))

    def test_nonzero_exit(self, dot_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(export.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(
            export.subprocess,
            "run",
            lambda cmd, **kw: subprocess.CompletedProcess(cmd, 1, stdout="", stderr="syntax error"),
        )
        with pytest.raises(ExportError, match="syntax error"):
            render_png(dot_file, dot_file.with_suffix(".png"))

    def test_timeout(self, dot_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_run(cmd: list[str], **kw: object) -> None:
            raise subprocess.TimeoutExpired(cmd, 1)

        monkeypatch.setattr(export.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(export.subprocess, "run", fake_run)
        with pytest.raises(ExportError):
            render_png(dot_file, dot_file.with_suffix(".png"))

    def test_success_invokes_dot(self, dot_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[list[str]] = []

        def fake_run(cmd: list[str], **kw: object) -> subprocess.CompletedProcess:
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        monkeypatch.setattr(export.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(export.subprocess, "run", fake_run)
        png = dot_file.with_suffix(".png")
        assert render_png(dot_file, png) == png
        assert calls == [["/usr/bin/dot", "-Tpng", str(dot_file), "-o", str(png)]]
