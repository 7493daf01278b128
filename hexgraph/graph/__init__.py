"""
Graph construction for the hexgraph routing library.

This package provides the edge weight store, deterministic parallel assembly,
the frozen graph shared by all search workers and its long-edge preparation.
"""

from .edges import Edge, EdgeWeightStore, validate_weight, validate_payload
from .graph import H3EdgeGraph, GraphStats, graph_from_edges
from .builder import GraphBuilder, AssemblyPass, create_graph_builder
from .longedge import LongEdge
from .prepared import PreparedH3EdgeGraph, prepare_graph, create_prepared_graph

__all__ = [
    "Edge",
    "EdgeWeightStore",
    "validate_weight",
    "validate_payload",
    "H3EdgeGraph",
    "GraphStats",
    "graph_from_edges",
    "GraphBuilder",
    "AssemblyPass",
    "create_graph_builder",
    "LongEdge",
    "PreparedH3EdgeGraph",
    "prepare_graph",
    "create_prepared_graph",
]
