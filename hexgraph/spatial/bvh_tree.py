"""
Dynamic bounding-volume tree backend (rtree / libspatialindex).

Supports incremental inserts and mixed point/extent queries.
"""

from typing import Iterable

from rtree import index as rtree_index

from ..h3 import CellLike
from .base import SpatialIndex, Box, Coordinate


class DynamicBVHIndex(SpatialIndex):
    """R*-tree over (lng, lat) points."""

    kind = "dynamic-bvh-tree"

    def __init__(self):
        super().__init__()
        self._rt = None

    @staticmethod
    def _properties() -> rtree_index.Property:
        p = rtree_index.Property()
        p.interleaved = True
        p.variant = rtree_index.RT_Star
        return p

    def _build_backend(self) -> None:
        if self._cells:
            stream = (
                (position, (lng, lat, lng, lat), None)
                for position, (lat, lng) in enumerate(zip(self._lats, self._lngs))
            )
            self._rt = rtree_index.Index(stream, properties=self._properties())
        else:
            self._rt = rtree_index.Index(properties=self._properties())

    def insert(self, coordinate: Coordinate, cell: CellLike) -> None:
        """
        Add a single entry to a built index.

        Not safe while other threads query the same index.
        """
        self._ensure_built()
        lat, lng, cell = self._check_entry(coordinate, cell)
        position = len(self._cells)
        self._lats.append(lat)
        self._lngs.append(lng)
        self._cells.append(cell)
        self._rt.insert(position, (lng, lat, lng, lat))

    def _box_candidates(self, box: Box) -> Iterable[int]:
        return self._rt.intersection(box)

    def _planar_seed(self, lat: float, lng: float) -> int:
        return next(iter(self._rt.nearest((lng, lat, lng, lat), 1)))
