"""
Path search engine for the hexgraph routing library.

Best-first search over a frozen H3EdgeGraph. Without a heuristic this is
Dijkstra's algorithm; the ``grid`` and ``great_circle`` heuristics turn it into
A* with estimates that never exceed the true remaining cost:

- ``grid``: grid distance to the destination times the minimum edge weight,
  since every hop costs at least that much.
- ``great_circle``: centroid distance to the destination divided by the longest
  centroid span of any edge, times the minimum edge weight.

Frontier entries are ordered by estimated total cost and then by push order,
which follows each origin's adjacency insertion order. Equal-cost alternatives
are therefore resolved the same way on every run.

Over a PreparedH3EdgeGraph the searches step along a long edge in one
expansion when none of the chain's cells is searched for, and unpack the chain
again when the path is reconstructed. Both heuristics stay admissible there: a
long edge over k grid edges costs at least k times the minimum weight and spans
at most k grid steps.
"""

import heapq
import itertools
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from ..common import get_logger, BackendMismatch, InvalidResolution
from ..graph import H3EdgeGraph, LongEdge, PreparedH3EdgeGraph
from ..h3 import H3Grid, CellLike, CompactCellSet, validate_cell
from .paths import Path, NoRouteFound, RouteResult

logger = get_logger("routing.search")

HEURISTICS = ("none", "grid", "great_circle")

# keeps float rounding from pushing an estimate above the true cost
_HEURISTIC_SAFETY = 1.0 - 1e-9

Step = Union[int, LongEdge]


def _reconstruct(predecessors: Dict[int, Step], destination: int) -> Tuple[int, ...]:
    cells = [destination]
    while cells[-1] in predecessors:
        step = predecessors[cells[-1]]
        if isinstance(step, LongEdge):
            cells.extend(reversed(step.cells[:-1]))
        else:
            cells.append(step)
    cells.reverse()
    return tuple(cells)


class PathSearchEngine:
    """Single-query shortest path search against a shared, read-only graph."""

    def __init__(
        self, graph: Union[H3EdgeGraph, PreparedH3EdgeGraph], heuristic: str = "none"
    ):
        """
        Initialize the search engine.

        Args:
            graph: Frozen graph to search, optionally prepared with long edges
            heuristic: One of "none", "grid", "great_circle"
        """
        if heuristic not in HEURISTICS:
            raise ValueError(
                f"Unknown heuristic {heuristic!r}, expected one of {HEURISTICS}"
            )
        self.graph = graph
        self.heuristic = heuristic
        self.logger = logger
        self._longedges = (
            graph.longedge_lookup if isinstance(graph, PreparedH3EdgeGraph) else None
        )

        self._min_weight = graph.min_weight or 0.0
        self._max_span_m = 0.0
        if heuristic == "great_circle" and self._min_weight > 0.0:
            self._max_span_m = self._longest_edge_span_m()

    def _longest_edge_span_m(self) -> float:
        centroids: Dict[int, Tuple[float, float]] = {}

        def centroid(cell: int) -> Tuple[float, float]:
            latlng = centroids.get(cell)
            if latlng is None:
                latlng = centroids[cell] = H3Grid.cell_to_latlng(cell)
            return latlng

        longest = 0.0
        for edge in self.graph.iter_edges():
            span = H3Grid.great_circle_m(centroid(edge.origin), centroid(edge.destination))
            if span > longest:
                longest = span
        return longest

    def _heuristic_for(self, destination: int) -> Optional[Callable[[int], float]]:
        min_weight = self._min_weight * _HEURISTIC_SAFETY
        if self.heuristic == "none" or min_weight <= 0.0:
            return None

        if self.heuristic == "grid":

            def estimate(cell: int) -> float:
                steps = H3Grid.grid_distance(cell, destination)
                return steps * min_weight if steps is not None else 0.0

            return estimate

        if self._max_span_m <= 0.0:
            return None
        destination_latlng = H3Grid.cell_to_latlng(destination)
        per_meter = min_weight / self._max_span_m

        def estimate(cell: int) -> float:
            return (
                H3Grid.great_circle_m(H3Grid.cell_to_latlng(cell), destination_latlng)
                * per_meter
            )

        return estimate

    def _target_cells(self, targets) -> Optional[CompactCellSet]:
        """Cells long edges must avoid, None when long edges are not used."""
        if not self._longedges:
            return None
        return CompactCellSet(self.graph.resolution, targets).freeze()

    def _expand(
        self, cell: int, cost: float, target_cells: Optional[CompactCellSet]
    ) -> Iterator[Tuple[int, float, Step]]:
        """Yield (reached cell, accumulated cost, predecessor step) for each edge of cell."""
        for neighbor, weight in self.graph.edges_from(cell):
            if target_cells is not None:
                longedge = self._longedges.get((cell, neighbor))
                if longedge is not None and longedge.is_disjoint(target_cells):
                    yield longedge.destination, longedge.accumulate(cost), longedge
                    continue
            yield neighbor, cost + weight, cell

    def validate_node(self, cell: CellLike) -> int:
        """Parse a cell and check it matches the graph resolution."""
        value = validate_cell(cell)
        resolution = H3Grid.resolution(value)
        if resolution != self.graph.resolution:
            raise InvalidResolution(
                f"Cell {value:x} has resolution {resolution}, graph has resolution {self.graph.resolution}"
            )
        return value

    def shortest_path(self, origin: CellLike, destination: CellLike) -> RouteResult:
        """
        Find the cheapest path from origin to destination.

        Args:
            origin: Origin cell
            destination: Destination cell

        Returns:
            Path when the destination is reached, NoRouteFound when the frontier
            empties first or an endpoint is not a graph node

        Raises:
            InvalidCell, InvalidResolution: for unusable endpoints
        """
        origin = self.validate_node(origin)
        destination = self.validate_node(destination)

        if origin not in self.graph:
            return NoRouteFound(origin, destination, reason="origin_not_in_graph")
        if destination not in self.graph:
            return NoRouteFound(origin, destination, reason="destination_not_in_graph")
        if origin == destination:
            return Path(cells=(origin,), cost=0.0)

        estimate = self._heuristic_for(destination)
        target_cells = self._target_cells((destination,))
        counter = itertools.count()

        best_cost: Dict[int, float] = {origin: 0.0}
        predecessors: Dict[int, Step] = {}
        start_estimate = estimate(origin) if estimate is not None else 0.0
        frontier: List[Tuple[float, int, float, int]] = [
            (start_estimate, next(counter), 0.0, origin)
        ]
        expanded = 0

        while frontier:
            _, _, cost, cell = heapq.heappop(frontier)
            if cost > best_cost[cell]:
                continue  # stale entry
            if cell == destination:
                self.logger.debug(
                    f"Route found after expanding {expanded} cells",
                    extra={"event": "route_found", "expanded": expanded, "cost": cost},
                )
                return Path(cells=_reconstruct(predecessors, destination), cost=cost)

            expanded += 1
            for neighbor, candidate, step in self._expand(cell, cost, target_cells):
                known = best_cost.get(neighbor)
                if known is None or candidate < known:
                    best_cost[neighbor] = candidate
                    predecessors[neighbor] = step
                    priority = candidate + (
                        estimate(neighbor) if estimate is not None else 0.0
                    )
                    heapq.heappush(
                        frontier, (priority, next(counter), candidate, neighbor)
                    )

        self.logger.debug(
            f"Frontier exhausted after expanding {expanded} cells",
            extra={"event": "route_exhausted", "expanded": expanded},
        )
        return NoRouteFound(origin, destination, reason="exhausted")

    def _sweep(
        self,
        origin: int,
        targets: Optional[set] = None,
        threshold: Optional[float] = None,
    ) -> Tuple[Dict[int, float], Dict[int, Step]]:
        """
        Dijkstra sweep from origin.

        Stops once every target is settled or the next cost exceeds threshold.
        Long edges are only taken when targets are given, since a threshold
        sweep reports every cell it passes.

        Returns:
            Settled costs in settle order and the predecessor map
        """
        target_cells = self._target_cells(targets) if targets is not None else None
        counter = itertools.count()
        settled: Dict[int, float] = {}
        best_cost: Dict[int, float] = {origin: 0.0}
        predecessors: Dict[int, Step] = {}
        frontier: List[Tuple[float, int, int]] = [(0.0, next(counter), origin)]
        remaining = set(targets) if targets is not None else None

        while frontier:
            cost, _, cell = heapq.heappop(frontier)
            if cell in settled:
                continue
            if threshold is not None and cost > threshold:
                break
            settled[cell] = cost
            if remaining is not None:
                remaining.discard(cell)
                if not remaining:
                    break
            for neighbor, candidate, step in self._expand(cell, cost, target_cells):
                if neighbor in settled:
                    continue
                known = best_cost.get(neighbor)
                if known is None or candidate < known:
                    best_cost[neighbor] = candidate
                    predecessors[neighbor] = step
                    heapq.heappush(frontier, (candidate, next(counter), neighbor))

        return settled, predecessors

    def shortest_paths_from(
        self, origin: CellLike, destinations: Sequence[CellLike]
    ) -> List[RouteResult]:
        """
        Cheapest paths from one origin to many destinations with a single sweep.

        Returns:
            One result per destination, in the order given
        """
        origin = self.validate_node(origin)
        destinations = [self.validate_node(d) for d in destinations]

        if origin not in self.graph:
            return [
                NoRouteFound(origin, d, reason="origin_not_in_graph") for d in destinations
            ]

        reachable_targets = {d for d in destinations if d in self.graph}
        settled, predecessors = self._sweep(origin, targets=reachable_targets)

        results: List[RouteResult] = []
        for destination in destinations:
            if destination not in self.graph:
                results.append(
                    NoRouteFound(origin, destination, reason="destination_not_in_graph")
                )
            elif destination in settled:
                results.append(
                    Path(
                        cells=_reconstruct(predecessors, destination),
                        cost=settled[destination],
                    )
                )
            else:
                results.append(NoRouteFound(origin, destination, reason="exhausted"))
        return results

    def within_weight_threshold(
        self, origin: CellLike, threshold: float
    ) -> Dict[int, float]:
        """
        All cells reachable from origin with an accumulated cost <= threshold.

        Returns:
            Mapping cell -> cost, in order of increasing cost
        """
        origin = self.validate_node(origin)
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        if origin not in self.graph:
            return {}
        settled, _ = self._sweep(origin, threshold=threshold)
        return settled

    def route_coordinates(
        self,
        origin: Tuple[float, float],
        destination: Tuple[float, float],
        index,
    ) -> RouteResult:
        """
        Snap two (lat, lng) coordinates onto graph nodes and route between them.

        Args:
            origin: Origin (lat, lng)
            destination: Destination (lat, lng)
            index: Built spatial index over graph nodes

        Raises:
            BackendMismatch: if the index was built at another resolution
        """
        if index.resolution is not None and index.resolution != self.graph.resolution:
            raise BackendMismatch(
                f"Spatial index resolution {index.resolution} does not match graph resolution {self.graph.resolution}"
            )
        origin_cell = index.nearest(origin)
        destination_cell = index.nearest(destination)
        if origin_cell is None or destination_cell is None:
            return NoRouteFound(origin_cell, destination_cell, reason="no_snap_candidate")
        return self.shortest_path(origin_cell, destination_cell)


# Convenience functions
def create_search_engine(
    graph: H3EdgeGraph, heuristic: Optional[str] = None
) -> PathSearchEngine:
    """Create search engine with default or specified heuristic."""
    from ..common import config

    return PathSearchEngine(graph, heuristic=heuristic or config.search.heuristic)
