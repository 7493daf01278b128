"""
Pluggable spatial indices for the hexgraph routing library.

This package maps raw coordinates onto graph nodes. All backends share one
capability interface and return identical results.
"""

from .base import SpatialIndex, radius_envelope, validate_coordinate, EARTH_RADIUS_M
from .balanced_tree import BalancedTreeIndex
from .bvh_tree import DynamicBVHIndex
from .packed_bvh import StaticPackedBVHIndex
from .factory import SpatialIndexKind, create_spatial_index, build_index_for_graph

__all__ = [
    "SpatialIndex",
    "radius_envelope",
    "validate_coordinate",
    "EARTH_RADIUS_M",
    "BalancedTreeIndex",
    "DynamicBVHIndex",
    "StaticPackedBVHIndex",
    "SpatialIndexKind",
    "create_spatial_index",
    "build_index_for_graph",
]
