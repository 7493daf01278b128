"""
Balanced point tree backend (scipy cKDTree).

Cheapest to build; moderate query cost. Rebuilt wholesale on any change.
"""

from typing import Iterable

import numpy as np
from scipy.spatial import cKDTree

from .base import SpatialIndex, Box


class BalancedTreeIndex(SpatialIndex):
    """k-d tree over (lng, lat) points."""

    kind = "balanced-tree"

    def __init__(self):
        super().__init__()
        self._tree = None

    def _build_backend(self) -> None:
        points = np.column_stack(
            (np.asarray(self._lngs, dtype=np.float64), np.asarray(self._lats, dtype=np.float64))
        ).reshape(-1, 2)
        self._tree = cKDTree(points) if len(points) else None

    def _box_candidates(self, box: Box) -> Iterable[int]:
        if self._tree is None:
            return []
        min_lng, min_lat, max_lng, max_lat = box
        center = ((min_lng + max_lng) / 2.0, (min_lat + max_lat) / 2.0)
        half_width = max((max_lng - min_lng) / 2.0, (max_lat - min_lat) / 2.0)
        # Chebyshev ball = square around the box; the base class filters exactly
        return self._tree.query_ball_point(center, r=half_width, p=np.inf)

    def _planar_seed(self, lat: float, lng: float) -> int:
        _, position = self._tree.query((lng, lat), k=1)
        return int(position)
