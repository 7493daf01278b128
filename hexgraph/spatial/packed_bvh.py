"""
Static packed bounding-volume index backend (shapely STRtree).

Sort-tile-recursive bulk load; fastest queries, no incremental insert.
"""

from typing import Iterable

import shapely
from shapely.geometry import box as make_box
from shapely.strtree import STRtree

from .base import SpatialIndex, Box


class StaticPackedBVHIndex(SpatialIndex):
    """Packed STR tree over (lng, lat) points."""

    kind = "static-packed-bvh"

    def __init__(self):
        super().__init__()
        self._tree = None

    def _build_backend(self) -> None:
        points = shapely.points(self._lngs, self._lats) if self._cells else []
        self._tree = STRtree(points)

    def _box_candidates(self, box: Box) -> Iterable[int]:
        return self._tree.query(make_box(*box))

    def _planar_seed(self, lat: float, lng: float) -> int:
        positions = self._tree.query_nearest(shapely.Point(lng, lat))
        return int(positions[0])
