"""
Long edges for the hexgraph routing library.

A long edge collapses a continuous chain of neighbor edges into a single
traversable edge. Searches use long edges to step over pass-through cells in
one expansion and unpack the chain when the path is reconstructed.
"""

from typing import Any, Dict, List, Sequence, Tuple

from shapely.geometry import LineString

from ..common import InvalidEdge
from ..h3 import H3Grid, CompactCellSet, cell_to_string
from .edges import validate_weight


class LongEdge:
    """Continuous chain of at least two neighbor edges."""

    def __init__(self, cells: Sequence[int], weights: Sequence[float]):
        """
        Initialize a long edge.

        Args:
            cells: Cells of the chain in travel order, at least three
            weights: Weight of each neighbor edge, one fewer than cells

        Raises:
            InvalidEdge: for short chains, gaps or a weight count mismatch
            InvalidWeight: for negative or non-finite weights
        """
        cells = tuple(cells)
        if len(cells) < 3:
            raise InvalidEdge(
                f"A long edge needs at least two grid edges, got {max(len(cells) - 1, 0)}"
            )
        if len(weights) != len(cells) - 1:
            raise InvalidEdge(
                f"Long edge over {len(cells)} cells needs {len(cells) - 1} weights, got {len(weights)}"
            )
        for origin, destination in zip(cells[:-1], cells[1:]):
            if not H3Grid.is_neighbor(origin, destination):
                raise InvalidEdge(
                    f"Long edge is not continuous between {origin:x} and {destination:x}"
                )

        self.cells: Tuple[int, ...] = cells
        self.weights: Tuple[float, ...] = tuple(validate_weight(w) for w in weights)
        self.weight = self.accumulate(0.0)
        self._cell_lookup = CompactCellSet(H3Grid.resolution(cells[0]), cells).freeze()

    @property
    def origin(self) -> int:
        return self.cells[0]

    @property
    def destination(self) -> int:
        return self.cells[-1]

    @property
    def in_edge(self) -> Tuple[int, int]:
        return self.cells[0], self.cells[1]

    @property
    def out_edge(self) -> Tuple[int, int]:
        return self.cells[-2], self.cells[-1]

    @property
    def h3edges_len(self) -> int:
        """Number of neighbor edges in the chain."""
        return len(self.cells) - 1

    def h3edge_path(self) -> List[Tuple[int, int]]:
        """Successive (origin, destination) neighbor edges of the chain."""
        return list(zip(self.cells[:-1], self.cells[1:]))

    def is_disjoint(self, cells: CompactCellSet) -> bool:
        """True when no cell of the chain, endpoints included, is in ``cells``."""
        return self._cell_lookup.is_disjoint(cells)

    def accumulate(self, cost: float) -> float:
        """Add the chain weights to ``cost`` one edge at a time."""
        for weight in self.weights:
            cost += weight
        return cost

    def to_linestring(self) -> LineString:
        """Line through the cell centroids as (lng, lat) coordinates."""
        return LineString(
            [(lng, lat) for lat, lng in (H3Grid.cell_to_latlng(c) for c in self.cells)]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "origin": cell_to_string(self.origin),
            "destination": cell_to_string(self.destination),
            "cells": [cell_to_string(cell) for cell in self.cells],
            "weight": self.weight,
            "h3edges_len": self.h3edges_len,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, LongEdge):
            return NotImplemented
        return self.cells == other.cells and self.weights == other.weights

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"LongEdge({self.origin:x} -> {self.destination:x}, "
            f"h3edges={self.h3edges_len}, weight={self.weight})"
        )
