"""
Frozen H3 edge graph.

A graph combines the node universe (a compact cell set) with the adjacency (an
edge weight store). Both parts are frozen before the graph is handed out, so a
graph can be shared read-only between any number of search threads.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from ..common import GraphFrozen, InvalidResolution
from ..h3 import CompactCellSet, CellLike
from .edges import Edge, EdgeWeightStore


@dataclass
class GraphStats:
    """Summary statistics of a built graph."""

    resolution: int
    num_nodes: int
    num_edges: int
    num_origins: int
    min_weight: Optional[float]
    max_weight: Optional[float]
    mean_weight: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "resolution": self.resolution,
            "num_nodes": self.num_nodes,
            "num_edges": self.num_edges,
            "num_origins": self.num_origins,
            "min_weight": self.min_weight,
            "max_weight": self.max_weight,
            "mean_weight": self.mean_weight,
        }


class H3EdgeGraph:
    """Immutable directed graph over H3 cells."""

    def __init__(self, cells: CompactCellSet, edges: EdgeWeightStore):
        """
        Wrap a frozen cell set and edge store.

        Args:
            cells: Node universe
            edges: Adjacency of the nodes
        """
        if cells.resolution != edges.resolution:
            raise InvalidResolution(
                f"Cell set resolution {cells.resolution} does not match edge resolution {edges.resolution}"
            )
        self._cells = cells.freeze()
        self._edges = edges.freeze()

        weights = [edge.weight for edge in edges.iter_edges()]
        self._min_weight = min(weights) if weights else None
        self._max_weight = max(weights) if weights else None
        self._mean_weight = (sum(weights) / len(weights)) if weights else None

    @property
    def resolution(self) -> int:
        return self._cells.resolution

    @property
    def cells(self) -> CompactCellSet:
        return self._cells

    @property
    def edges(self) -> EdgeWeightStore:
        return self._edges

    @property
    def num_nodes(self) -> int:
        return len(self._cells)

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    @property
    def min_weight(self) -> Optional[float]:
        """Smallest edge weight, None for a graph without edges."""
        return self._min_weight

    def add_edge(self, *args, **kwargs):
        raise GraphFrozen("A built graph is immutable")

    def edges_from(self, cell: CellLike) -> Tuple[Tuple[int, float], ...]:
        return self._edges.edges_from(cell)

    def edges_with_payload_from(self, cell: CellLike) -> Tuple[Edge, ...]:
        return self._edges.edges_with_payload_from(cell)

    def iter_edges(self) -> Iterator[Edge]:
        return self._edges.iter_edges()

    def has_edge(self, origin: CellLike, destination: CellLike) -> bool:
        return self._edges.get(origin, destination) is not None

    def weight(self, origin: CellLike, destination: CellLike) -> Optional[float]:
        edge = self._edges.get(origin, destination)
        return edge.weight if edge is not None else None

    def __contains__(self, cell) -> bool:
        return cell in self._cells

    def stats(self) -> GraphStats:
        return GraphStats(
            resolution=self.resolution,
            num_nodes=self.num_nodes,
            num_edges=self.num_edges,
            num_origins=sum(1 for _ in self._edges.origins()),
            min_weight=self._min_weight,
            max_weight=self._max_weight,
            mean_weight=self._mean_weight,
        )

    def __eq__(self, other) -> bool:
        """Node-set and adjacency equality, including weights, payloads and order."""
        if not isinstance(other, H3EdgeGraph):
            return NotImplemented
        if self.resolution != other.resolution or self._cells != other._cells:
            return False
        return list(self._edges.iter_edges()) == list(other._edges.iter_edges())

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"H3EdgeGraph(resolution={self.resolution}, nodes={self.num_nodes}, "
            f"edges={self.num_edges})"
        )


def graph_from_edges(edges: EdgeWeightStore) -> H3EdgeGraph:
    """Build a graph whose nodes are all endpoints of ``edges``."""
    cells = CompactCellSet(edges.resolution)
    cells.update_validated(edges.cells())
    return H3EdgeGraph(cells, edges)
