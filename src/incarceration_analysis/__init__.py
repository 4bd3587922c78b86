"""State incarceration & crime network analysis: graph construction and metrics."""

__version__ = "0.1.0"

from incarceration_analysis.analytics import average_shortest_path as average_shortest_path
from incarceration_analysis.analytics import classify as classify
from incarceration_analysis.analytics import connected_components as connected_components
from incarceration_analysis.analytics import degree_centrality as degree_centrality
from incarceration_analysis.analytics import filter_by_min_degree as filter_by_min_degree
from incarceration_analysis.graphs import Graph as Graph
from incarceration_analysis.graphs import build_rate_difference_graph as build_rate_difference_graph
from incarceration_analysis.graphs import build_similarity_graph as build_similarity_graph
from incarceration_analysis.models import Record as Record
