"""
hexgraph: routable graphs over the H3 hexagonal grid.

This package provides:
- Common utilities (config, logging, error taxonomy)
- H3 grid boundary and the compact bitmap-backed cell set
- Edge weight stores, deterministic parallel graph assembly and long edges
- Shortest path search, accessibility queries and batch routing
- Pluggable spatial indices for coordinate snapping
- Versioned graph persistence
- Line geometry import and pandas extraction
"""

# Re-export key components for convenience
from .common import config, logger, get_logger
from .h3 import CompactCellSet, H3Grid
from .graph import (
    EdgeWeightStore,
    GraphBuilder,
    H3EdgeGraph,
    PreparedH3EdgeGraph,
    create_graph_builder,
    prepare_graph,
)
from .routing import (
    Path,
    NoRouteFound,
    PathSearchEngine,
    BatchRouter,
    create_search_engine,
    create_batch_router,
)
from .spatial import SpatialIndexKind, create_spatial_index, build_index_for_graph
from .io import serialize, deserialize, save_graph, load_graph

__version__ = "1.0.0"

__all__ = [
    # Configuration and logging
    "config",
    "logger",
    "get_logger",
    # Grid and cell sets
    "CompactCellSet",
    "H3Grid",
    # Graph assembly
    "EdgeWeightStore",
    "GraphBuilder",
    "H3EdgeGraph",
    "create_graph_builder",
    "PreparedH3EdgeGraph",
    "prepare_graph",
    # Routing
    "Path",
    "NoRouteFound",
    "PathSearchEngine",
    "BatchRouter",
    "create_search_engine",
    "create_batch_router",
    # Spatial indices
    "SpatialIndexKind",
    "create_spatial_index",
    "build_index_for_graph",
    # Persistence
    "serialize",
    "deserialize",
    "save_graph",
    "load_graph",
]
