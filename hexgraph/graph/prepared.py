"""
Prepared graphs for the hexgraph routing library.

Preparing a graph finds chains of pass-through cells and attaches a long edge
to the first neighbor edge of every chain. A pass-through cell has exactly two
graph neighbors, counting both edge directions, so a simple path entering it
from one neighbor can only leave towards the other. Searches over a prepared
graph jump along a long edge in one step unless the chain touches one of the
cells they are looking for.
"""

from collections import defaultdict
from typing import Dict, Iterator, Optional, Set, Tuple

from ..common import get_logger, TimedLogger, log_data_processing
from ..h3 import CompactCellSet, CellLike
from .edges import Edge, EdgeWeightStore
from .graph import GraphStats, H3EdgeGraph
from .longedge import LongEdge

logger = get_logger("graph.prepared")


class PreparedH3EdgeGraph:
    """A frozen graph plus the long edges found over its pass-through chains."""

    def __init__(self, graph: H3EdgeGraph, longedges: Dict[Tuple[int, int], LongEdge]):
        """
        Wrap a graph and its long edges.

        Args:
            graph: Frozen graph
            longedges: Long edges keyed by their first (origin, destination) edge
        """
        self._graph = graph
        self._longedges = dict(longedges)

    @property
    def graph(self) -> H3EdgeGraph:
        return self._graph

    @property
    def resolution(self) -> int:
        return self._graph.resolution

    @property
    def cells(self) -> CompactCellSet:
        return self._graph.cells

    @property
    def edges(self) -> EdgeWeightStore:
        return self._graph.edges

    @property
    def num_nodes(self) -> int:
        return self._graph.num_nodes

    @property
    def num_edges(self) -> int:
        return self._graph.num_edges

    @property
    def min_weight(self) -> Optional[float]:
        return self._graph.min_weight

    @property
    def num_longedges(self) -> int:
        return len(self._longedges)

    @property
    def longedge_lookup(self) -> Dict[Tuple[int, int], LongEdge]:
        """Long edges keyed by their first edge. Treat as read-only."""
        return self._longedges

    def longedge(self, origin: int, destination: int) -> Optional[LongEdge]:
        """Long edge starting with the edge origin -> destination, if any."""
        return self._longedges.get((origin, destination))

    def iter_longedges(self) -> Iterator[LongEdge]:
        return iter(self._longedges.values())

    def edges_from(self, cell: CellLike) -> Tuple[Tuple[int, float], ...]:
        return self._graph.edges_from(cell)

    def edges_with_payload_from(self, cell: CellLike) -> Tuple[Edge, ...]:
        return self._graph.edges_with_payload_from(cell)

    def iter_edges(self) -> Iterator[Edge]:
        return self._graph.iter_edges()

    def has_edge(self, origin: CellLike, destination: CellLike) -> bool:
        return self._graph.has_edge(origin, destination)

    def weight(self, origin: CellLike, destination: CellLike) -> Optional[float]:
        return self._graph.weight(origin, destination)

    def __contains__(self, cell) -> bool:
        return cell in self._graph

    def stats(self) -> GraphStats:
        return self._graph.stats()

    def __repr__(self) -> str:
        return (
            f"PreparedH3EdgeGraph(resolution={self.resolution}, nodes={self.num_nodes}, "
            f"edges={self.num_edges}, longedges={self.num_longedges})"
        )


def _undirected_neighbors(graph: H3EdgeGraph) -> Dict[int, Set[int]]:
    neighbors: Dict[int, Set[int]] = defaultdict(set)
    for edge in graph.iter_edges():
        neighbors[edge.origin].add(edge.destination)
        neighbors[edge.destination].add(edge.origin)
    return neighbors


def prepare_graph(graph: H3EdgeGraph, min_longedge_len: int = 4) -> PreparedH3EdgeGraph:
    """
    Collapse chains of pass-through cells into long edges.

    Chains start at cells that are not pass-through cells themselves (junctions
    and dead ends) and follow the only onward edge until they reach a cell that
    is not a pass-through cell or would be visited twice.

    Args:
        graph: Frozen graph
        min_longedge_len: Chains spanning fewer grid edges are left alone

    Returns:
        Prepared graph sharing ``graph``
    """
    if min_longedge_len < 2:
        raise ValueError(f"min_longedge_len must be at least 2, got {min_longedge_len}")

    neighbors = _undirected_neighbors(graph)

    def onward(cell: int, previous: int) -> Optional[Tuple[int, float]]:
        around = neighbors[cell]
        if len(around) != 2:
            return None
        (following,) = around - {previous}
        weight = graph.weight(cell, following)
        if weight is None:
            return None
        return following, weight

    longedges: Dict[Tuple[int, int], LongEdge] = {}
    with TimedLogger(logger, "prepare graph", min_longedge_len=min_longedge_len):
        for origin in graph.edges.origins():
            if len(neighbors[origin]) == 2:
                continue
            for first, first_weight in graph.edges_from(origin):
                cells = [origin, first]
                weights = [first_weight]
                visited = {origin, first}
                step = onward(first, origin)
                while step is not None and step[0] not in visited:
                    following, weight = step
                    cells.append(following)
                    weights.append(weight)
                    visited.add(following)
                    step = onward(following, cells[-2])
                if len(weights) >= min_longedge_len:
                    longedges[(origin, first)] = LongEdge(cells, weights)

        logger.info(
            "Prepared graph",
            extra=log_data_processing(
                stage="prepare_graph",
                records_processed=len(longedges),
                collapsed_edges=sum(edge.h3edges_len for edge in longedges.values()),
                num_edges=graph.num_edges,
            ),
        )

    return PreparedH3EdgeGraph(graph, longedges)


# Convenience functions
def create_prepared_graph(
    graph: H3EdgeGraph, min_longedge_len: Optional[int] = None
) -> PreparedH3EdgeGraph:
    """Prepare a graph with default or specified long edge length."""
    from ..common import config

    return prepare_graph(
        graph,
        min_longedge_len=min_longedge_len or config.graph.min_longedge_len,
    )
