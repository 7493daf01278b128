"""
Spatial index backend selection.
"""

from enum import Enum
from typing import Optional, Union

from ..graph import H3EdgeGraph
from ..h3 import H3Grid
from .base import SpatialIndex
from .balanced_tree import BalancedTreeIndex
from .bvh_tree import DynamicBVHIndex
from .packed_bvh import StaticPackedBVHIndex


class SpatialIndexKind(Enum):
    """Recognized spatial index backends."""

    BALANCED_TREE = "balanced-tree"
    DYNAMIC_BVH_TREE = "dynamic-bvh-tree"
    STATIC_PACKED_BVH = "static-packed-bvh"


_BACKENDS = {
    SpatialIndexKind.BALANCED_TREE: BalancedTreeIndex,
    SpatialIndexKind.DYNAMIC_BVH_TREE: DynamicBVHIndex,
    SpatialIndexKind.STATIC_PACKED_BVH: StaticPackedBVHIndex,
}


def create_spatial_index(kind: Union[SpatialIndexKind, str]) -> SpatialIndex:
    """
    Create an unbuilt index of the given backend.

    Args:
        kind: SpatialIndexKind or its string value

    Raises:
        ValueError: for an unknown backend name
    """
    return _BACKENDS[SpatialIndexKind(kind)]()


def build_index_for_graph(
    graph: H3EdgeGraph, kind: Optional[Union[SpatialIndexKind, str]] = None
) -> SpatialIndex:
    """
    Build an index over the centroids of all graph nodes.

    Args:
        graph: Graph whose nodes are indexed
        kind: Backend, defaults to the configured one
    """
    if kind is None:
        from ..common import config

        kind = config.spatial_index.backend

    index = create_spatial_index(kind)
    return index.build(
        ((H3Grid.cell_to_latlng(cell), cell) for cell in graph.cells),
        resolution=graph.resolution,
    )
