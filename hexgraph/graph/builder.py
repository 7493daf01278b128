"""
Parallel graph assembly for the hexgraph routing library.

Weight-assignment passes (for example one per geographic tile) may run
concurrently and each produce a partial edge store. Merging is deterministic:
passes are ordered by a stable key derived from their input, the minimum weight
wins and equal weights keep the edge of the earlier pass.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from ..common import (
    get_logger,
    TimedLogger,
    log_data_processing,
    GraphFrozen,
    InvalidResolution,
)
from ..h3 import CompactCellSet, CellLike, validate_resolution
from .edges import EdgeWeightStore
from .graph import H3EdgeGraph

logger = get_logger("graph.builder")

T = TypeVar("T")


@dataclass
class AssemblyPass:
    """A partial edge set registered with the builder."""

    key: Any
    registration: int
    store: EdgeWeightStore


class GraphBuilder:
    """Single-writer builder producing a frozen H3EdgeGraph."""

    def __init__(self, resolution: int, max_workers: int = 1):
        """
        Initialize graph builder.

        Args:
            resolution: H3 resolution of the graph
            max_workers: Worker threads used by ``run_passes``
        """
        self.resolution = validate_resolution(resolution)
        self.max_workers = max(1, int(max_workers))
        self.logger = logger

        self._base = EdgeWeightStore(self.resolution)
        self._passes: List[AssemblyPass] = []
        self._lock = threading.Lock()
        self._graph: Optional[H3EdgeGraph] = None

    @property
    def frozen(self) -> bool:
        return self._graph is not None

    def _ensure_building(self) -> None:
        if self._graph is not None:
            raise GraphFrozen("Graph has already been built")

    def add_edge(
        self,
        origin: CellLike,
        destination: CellLike,
        weight: float,
        payload: Any = None,
    ) -> bool:
        """Add an edge to the base layer, which is merged before all passes."""
        self._ensure_building()
        return self._base.add_edge(origin, destination, weight, payload)

    def new_pass(self) -> EdgeWeightStore:
        """Create an empty edge store for a weight-assignment pass."""
        return EdgeWeightStore(self.resolution)

    def add_pass(self, store: EdgeWeightStore, key: Any) -> None:
        """
        Register the result of a weight-assignment pass.

        Args:
            store: Partial edges of the pass
            key: Stable, input-derived sort key; passes are merged in key order
        """
        if store.resolution != self.resolution:
            raise InvalidResolution(
                f"Pass resolution {store.resolution} does not match builder resolution {self.resolution}"
            )
        with self._lock:
            self._ensure_building()
            self._passes.append(
                AssemblyPass(key=key, registration=len(self._passes), store=store)
            )

    def run_passes(
        self,
        sources: Sequence[T],
        pass_fn: Callable[[T, EdgeWeightStore], None],
        key_fn: Optional[Callable[[T], Any]] = None,
    ) -> int:
        """
        Run one weight-assignment pass per source on the worker pool.

        Args:
            sources: Inputs of the passes (e.g. tiles)
            pass_fn: Fills the given empty store from one source
            key_fn: Sort key of a source; defaults to its position in ``sources``

        Returns:
            Number of passes registered

        Raises:
            The first error raised by any pass. No pass is registered then.
        """
        self._ensure_building()
        sources = list(sources)
        stores: List[Optional[EdgeWeightStore]] = [None] * len(sources)

        def run_one(position: int) -> EdgeWeightStore:
            store = self.new_pass()
            pass_fn(sources[position], store)
            return store

        with TimedLogger(self.logger, f"run_passes for {len(sources)} sources"):
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_position = {
                    executor.submit(run_one, position): position
                    for position in range(len(sources))
                }

                try:
                    for future in as_completed(future_to_position):
                        position = future_to_position[future]
                        stores[position] = future.result()
                except Exception as e:
                    for pending in future_to_position:
                        pending.cancel()
                    self.logger.error(
                        f"Weight-assignment pass {future_to_position[future]} failed: {e}"
                    )
                    raise

            # registration follows input order, never completion order
            for position, store in enumerate(stores):
                key = key_fn(sources[position]) if key_fn is not None else position
                self.add_pass(store, key)

            self.logger.info(
                "Weight-assignment passes complete",
                extra=log_data_processing(
                    stage="assembly_passes",
                    records_processed=len(sources),
                    edges=sum(len(store) for store in stores),
                ),
            )

        return len(sources)

    def build(self) -> H3EdgeGraph:
        """
        Merge all passes and freeze the result.

        Calling ``build`` again returns the same graph.
        """
        with self._lock:
            if self._graph is not None:
                return self._graph

            with TimedLogger(
                self.logger,
                "build graph",
                resolution=self.resolution,
                passes=len(self._passes),
            ):
                merged = self._base
                for assembly_pass in sorted(
                    self._passes, key=lambda p: (p.key, p.registration)
                ):
                    merged.merge(assembly_pass.store)
                merged.freeze()

                cells = CompactCellSet(self.resolution)
                cells.update_validated(merged.cells())

                self._graph = H3EdgeGraph(cells, merged)
                self._passes = []

            self.logger.info(
                "Built graph",
                extra={"event": "graph_built", **self._graph.stats().to_dict()},
            )
            return self._graph


# Convenience functions
def create_graph_builder(
    resolution: Optional[int] = None, max_workers: Optional[int] = None
) -> GraphBuilder:
    """Create graph builder with default or specified configuration."""
    from ..common import config

    return GraphBuilder(
        resolution=resolution if resolution is not None else config.graph.resolution,
        max_workers=max_workers or config.graph.assembly_workers,
    )
