"""
Import adapters for the hexgraph routing library.
"""

from .linestrings import (
    LineFeature,
    LineStringEdgeMapper,
    edges_from_lines,
    build_graph_from_tiles,
)

__all__ = [
    "LineFeature",
    "LineStringEdgeMapper",
    "edges_from_lines",
    "build_graph_from_tiles",
]
