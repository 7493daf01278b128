"""
Path search for the hexgraph routing library.

This package provides single-query shortest path search, one-to-many sweeps,
accessibility queries and worker-pool batch routing.
"""

from .paths import Path, NoRouteFound, RouteResult, RouteStatus, BatchRouteResult
from .search import PathSearchEngine, HEURISTICS, create_search_engine
from .batch import BatchRouter, create_batch_router

__all__ = [
    "Path",
    "NoRouteFound",
    "RouteResult",
    "RouteStatus",
    "BatchRouteResult",
    "PathSearchEngine",
    "HEURISTICS",
    "create_search_engine",
    "BatchRouter",
    "create_batch_router",
]
