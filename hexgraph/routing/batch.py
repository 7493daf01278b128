"""
Worker-pool batch routing for the hexgraph routing library.

Independent origin/destination searches are distributed across a fixed-size
thread pool. Each search only reads the shared frozen graph; results are placed
at the input position of their pair, so the output order never depends on the
pool size or on completion order.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..common import get_logger, TimedLogger, log_data_processing, BackendMismatch, HexGraphError
from .paths import BatchRouteResult, RouteResult, RouteStatus
from .search import PathSearchEngine

logger = get_logger("routing.batch")


class BatchRouter:
    """Runs many independent searches against one graph on a worker pool."""

    def __init__(self, graph, max_workers: int = 4, heuristic: str = "none"):
        """
        Initialize batch router.

        Args:
            graph: Frozen graph shared by all workers, plain or prepared
            max_workers: Worker pool size
            heuristic: Heuristic of the per-pair searches
        """
        self.graph = graph
        self.max_workers = max(1, int(max_workers))
        self.engine = PathSearchEngine(graph, heuristic=heuristic)
        self.logger = logger

    def _outcome(
        self, position: int, origin: Any, destination: Any, route: RouteResult
    ) -> BatchRouteResult:
        if route.found:
            return BatchRouteResult(
                index=position,
                origin=origin,
                destination=destination,
                status=RouteStatus.FOUND,
                path=route,
            )
        return BatchRouteResult(
            index=position,
            origin=origin,
            destination=destination,
            status=RouteStatus.NO_ROUTE,
            reason=route.reason,
        )

    def _failure(
        self, position: int, origin: Any, destination: Any, error: Exception
    ) -> BatchRouteResult:
        return BatchRouteResult(
            index=position,
            origin=origin,
            destination=destination,
            status=RouteStatus.FAILED,
            reason=str(error),
            error_type=type(error).__name__,
        )

    def _route_one(
        self,
        position: int,
        origin: Any,
        destination: Any,
        cancel_event: Optional[threading.Event],
    ) -> BatchRouteResult:
        if cancel_event is not None and cancel_event.is_set():
            return BatchRouteResult(
                index=position,
                origin=origin,
                destination=destination,
                status=RouteStatus.CANCELLED,
            )

        try:
            route = self.engine.shortest_path(origin, destination)
        except HexGraphError as e:
            self.logger.warning(
                f"Route {position} failed: {e}",
                extra={"event": "route_failed", "index": position, "error_type": type(e).__name__},
            )
            return self._failure(position, origin, destination, e)

        return self._outcome(position, origin, destination, route)

    def _log_summary(self, stage: str, results: Iterable[BatchRouteResult]) -> None:
        counts = {status: 0 for status in RouteStatus}
        for result in results:
            counts[result.status] += 1

        self.logger.info(
            "Batch routing complete",
            extra=log_data_processing(
                stage=stage,
                records_processed=counts[RouteStatus.FOUND] + counts[RouteStatus.NO_ROUTE],
                records_failed=counts[RouteStatus.FAILED],
                found=counts[RouteStatus.FOUND],
                no_route=counts[RouteStatus.NO_ROUTE],
                cancelled=counts[RouteStatus.CANCELLED],
            ),
        )

    def route_pairs(
        self,
        pairs: Sequence[Tuple[Any, Any]],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[BatchRouteResult]:
        """
        Route every (origin, destination) pair.

        Args:
            pairs: Origin/destination cells
            cancel_event: When set, pairs not yet started are reported CANCELLED

        Returns:
            One result per pair, in input order
        """
        pairs = list(pairs)

        with TimedLogger(
            self.logger, f"route {len(pairs)} pairs", max_workers=self.max_workers
        ):
            results = self._run_positions(self._route_one, pairs, cancel_event)
            self._log_summary("batch_routing", results)

        return results

    def _run_positions(
        self,
        route: Callable[..., BatchRouteResult],
        pairs: List[Tuple[Any, Any]],
        cancel_event: Optional[threading.Event],
    ) -> List[BatchRouteResult]:
        results: List[Optional[BatchRouteResult]] = [None] * len(pairs)
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_position = {
                executor.submit(route, position, origin, destination, cancel_event): position
                for position, (origin, destination) in enumerate(pairs)
            }

            for future in as_completed(future_to_position):
                position = future_to_position[future]
                results[position] = future.result()
        return results

    def _snap_and_route(
        self,
        index,
        position: int,
        origin: Any,
        destination: Any,
        cancel_event: Optional[threading.Event],
    ) -> BatchRouteResult:
        if cancel_event is not None and cancel_event.is_set():
            return BatchRouteResult(
                index=position, origin=None, destination=None, status=RouteStatus.CANCELLED
            )

        try:
            origin_cell = index.nearest(origin)
            destination_cell = index.nearest(destination)
        except (ValueError, HexGraphError) as e:
            self.logger.warning(
                f"Snapping pair {position} failed: {e}",
                extra={"event": "snap_failed", "index": position, "error_type": type(e).__name__},
            )
            return self._failure(position, None, None, e)

        if origin_cell is None or destination_cell is None:
            return BatchRouteResult(
                index=position,
                origin=origin_cell,
                destination=destination_cell,
                status=RouteStatus.NO_ROUTE,
                reason="no_snap_candidate",
            )
        return self._route_one(position, origin_cell, destination_cell, cancel_event)

    def route_coordinate_pairs(
        self,
        index,
        pairs: Sequence[Tuple[Tuple[float, float], Tuple[float, float]]],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[BatchRouteResult]:
        """
        Snap every ((lat, lng), (lat, lng)) pair onto graph nodes and route it.

        A pair whose coordinates cannot be snapped (NaN, out of range) is
        reported FAILED on its own; the rest of the batch is still routed.
        ``origin`` and ``destination`` of each result are the snapped cells.

        Args:
            index: Built spatial index over graph nodes
            pairs: Origin/destination coordinates
            cancel_event: When set, pairs not yet started are reported CANCELLED

        Returns:
            One result per pair, in input order

        Raises:
            BackendMismatch: if the index was built at another resolution
        """
        if index.resolution is not None and index.resolution != self.graph.resolution:
            raise BackendMismatch(
                f"Spatial index resolution {index.resolution} does not match graph resolution {self.graph.resolution}"
            )
        pairs = list(pairs)

        with TimedLogger(
            self.logger,
            f"snap and route {len(pairs)} pairs",
            max_workers=self.max_workers,
        ):
            results = self._run_positions(
                partial(self._snap_and_route, index), pairs, cancel_event
            )
            self._log_summary("coordinate_routing", results)

        return results

    def _route_row(
        self,
        row: int,
        origin: Any,
        destinations: List[Any],
        destination_errors: Dict[int, HexGraphError],
        cancel_event: Optional[threading.Event],
    ) -> List[BatchRouteResult]:
        width = len(destinations)
        if cancel_event is not None and cancel_event.is_set():
            return [
                BatchRouteResult(
                    index=row * width + column,
                    origin=origin,
                    destination=destination,
                    status=RouteStatus.CANCELLED,
                )
                for column, destination in enumerate(destinations)
            ]

        routable = [
            destination
            for column, destination in enumerate(destinations)
            if column not in destination_errors
        ]
        try:
            routes = iter(self.engine.shortest_paths_from(origin, routable))
        except HexGraphError as e:
            self.logger.warning(
                f"Origin {row} failed: {e}",
                extra={"event": "origin_failed", "index": row, "error_type": type(e).__name__},
            )
            return [
                self._failure(row * width + column, origin, destination, e)
                for column, destination in enumerate(destinations)
            ]

        results = []
        for column, destination in enumerate(destinations):
            position = row * width + column
            error = destination_errors.get(column)
            if error is not None:
                results.append(self._failure(position, origin, destination, error))
            else:
                results.append(self._outcome(position, origin, destination, next(routes)))
        return results

    def many_to_many(
        self,
        origins: Sequence[Any],
        destinations: Sequence[Any],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[List[BatchRouteResult]]:
        """
        Route every origin to every destination with one sweep per origin.

        An unusable origin fails its own row and an unusable destination fails
        its own column; every other cell is still routed.

        Args:
            origins: Origin cells
            destinations: Destination cells
            cancel_event: When set, origins not yet started are reported CANCELLED

        Returns:
            One row per origin (input order), each holding one result per
            destination (input order). ``index`` is ``row * len(destinations) + column``.
        """
        origins = list(origins)
        destinations = list(destinations)
        rows: List[Optional[List[BatchRouteResult]]] = [None] * len(origins)

        destination_errors: Dict[int, HexGraphError] = {}
        for column, destination in enumerate(destinations):
            try:
                self.engine.validate_node(destination)
            except HexGraphError as e:
                self.logger.warning(
                    f"Destination {column} failed: {e}",
                    extra={
                        "event": "destination_failed",
                        "index": column,
                        "error_type": type(e).__name__,
                    },
                )
                destination_errors[column] = e

        with TimedLogger(
            self.logger,
            f"many-to-many {len(origins)}x{len(destinations)}",
            max_workers=self.max_workers,
        ):
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_row = {
                    executor.submit(
                        self._route_row,
                        row,
                        origin,
                        destinations,
                        destination_errors,
                        cancel_event,
                    ): row
                    for row, origin in enumerate(origins)
                }

                for future in as_completed(future_to_row):
                    rows[future_to_row[future]] = future.result()

            self._log_summary("many_to_many", (result for row in rows for result in row))

        return rows


# Convenience functions
def create_batch_router(
    graph,
    max_workers: Optional[int] = None,
    heuristic: Optional[str] = None,
) -> BatchRouter:
    """Create batch router with default or specified configuration."""
    from ..common import config

    return BatchRouter(
        graph,
        max_workers=max_workers or config.search.batch_workers,
        heuristic=heuristic or config.search.heuristic,
    )
