"""DOT export of built graphs and PNG rendering through Graphviz.

This is the only module that touches the filesystem or spawns processes on
behalf of the graph engine. Every failure surfaces as ExportError so callers can
report it and carry on with the rest of the analysis.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Sequence

from incarceration_analysis.config import CLUSTER_COLORS, GRAPHVIZ_BINARY, RENDER_TIMEOUT
from incarceration_analysis.graphs import Graph


class ExportError(OSError):
    """Writing a graph file or rendering it to an image failed."""


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def graph_to_dot(graph: Graph, edge_labels: bool = True) -> str:
    """Serialize a graph as DOT text: one line per node, one line per edge.

    Node IDs are handles so repeated labels (similarity graph) stay distinct.
    """
    header, arrow = ("digraph", "->") if graph.directed else ("graph", "--")
    lines = [f"{header} {{"]
    for handle, label in enumerate(graph.labels):
        lines.append(f"    {handle} [label={_quote(label)}];")
    for e in graph.edges:
        attrs = f" [label={_quote(f'{e.weight:.2f}')}]" if edge_labels else ""
        lines.append(f"    {e.source} {arrow} {e.target}{attrs};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def clusters_to_dot(graph: Graph, components: Sequence[Sequence[int]]) -> str:
    """DOT text with every node filled in its cluster's colour.

    `components` holds handle groups as returned by component_handles(); colours
    cycle through CLUSTER_COLORS when there are more clusters than colours.
    """
    arrow = "->" if graph.directed else "--"
    lines = [("digraph" if graph.directed else "graph") + " G {"]
    for idx, component in enumerate(components):
        color = CLUSTER_COLORS[idx % len(CLUSTER_COLORS)]
        for handle in component:
            lines.append(
                f"    {handle} [label={_quote(graph.labels[handle])} "
                f"color={color} style=filled group={idx}];"
            )
    for e in graph.edges:
        lines.append(f"    {e.source} {arrow} {e.target};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def write_dot(text: str, path: Path) -> Path:
    """Write DOT text, creating parent directories as needed."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Cannot write {path}: {e}") from e
    print(f"  Saved: {path.name}")
    return path


def render_png(dot_path: Path, png_path: Path, binary: str = GRAPHVIZ_BINARY) -> Path:
    """Convert a DOT file to PNG with the Graphviz `dot` executable."""
    exe = shutil.which(binary)
    if exe is None:
        raise ExportError(f"Graphviz executable {binary!r} not found on PATH")

    try:
        result = subprocess.run(
            [exe, "-Tpng", str(dot_path), "-o", str(png_path)],
            capture_output=True,
            text=True,
            timeout=RENDER_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise ExportError(f"Rendering {dot_path.name} failed: {e}") from e

    if result.returncode != 0:
        raise ExportError(
            f"Rendering {dot_path.name} failed (exit {result.returncode}): "
            f"{result.stderr.strip()}"
        )
    print(f"  Saved: {png_path.name}")
    return png_path
