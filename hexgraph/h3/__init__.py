"""
H3 hexagonal grid utilities for the hexgraph routing library.

This package provides the boundary to the H3 grid primitive and the compact
bitmap-backed cell set used as the node universe of a graph.
"""

from .grid import (
    H3Grid,
    CellLike,
    parse_cell,
    validate_cell,
    validate_resolution,
    is_valid_cell,
    cell_to_string,
    dense_key,
    cell_from_dense_key,
    latlng_to_cell,
)

from .cellset import CompactCellSet

__all__ = [
    "H3Grid",
    "CellLike",
    "parse_cell",
    "validate_cell",
    "validate_resolution",
    "is_valid_cell",
    "cell_to_string",
    "dense_key",
    "cell_from_dense_key",
    "latlng_to_cell",
    "CompactCellSet",
]
