"""
Capability base for the pluggable spatial indices.

Backends only know planar longitude/latitude geometry: they return candidate
entry positions for bounding boxes and a planar nearest seed. Everything a
caller observes (great-circle distances, radius filtering, tie-breaks) is
computed here from the same candidate refinement, so every backend returns the
same cells for the same query.
"""

import math
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Set, Tuple

from ..common import get_logger, TimedLogger, BackendMismatch, InvalidResolution
from ..h3 import H3Grid, CellLike, validate_cell

logger = get_logger("spatial")

Coordinate = Tuple[float, float]
Box = Tuple[float, float, float, float]

# mean earth radius used by h3's great circle distance
EARTH_RADIUS_M = 6371007.180918475

# relative and absolute slack added to search envelopes, in metres
_ENVELOPE_SLACK = 1e-9
_ENVELOPE_SLACK_M = 1e-3


def validate_coordinate(coordinate: Coordinate) -> Coordinate:
    """Return (lat, lng) as floats or raise ValueError."""
    try:
        lat, lng = coordinate
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Coordinate must be a (lat, lng) pair, got {coordinate!r}") from e
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lng <= 180.0):
        raise ValueError(f"Coordinate out of range: ({lat}, {lng})")
    return lat, lng


def split_antimeridian(min_lng: float, min_lat: float, max_lng: float, max_lat: float) -> List[Box]:
    """Split a (min_lng, min_lat, max_lng, max_lat) box wrapping past +-180 degrees."""
    if max_lng - min_lng >= 360.0:
        return [(-180.0, min_lat, 180.0, max_lat)]
    if min_lng < -180.0:
        return [
            (min_lng + 360.0, min_lat, 180.0, max_lat),
            (-180.0, min_lat, max_lng, max_lat),
        ]
    if max_lng > 180.0:
        return [
            (min_lng, min_lat, 180.0, max_lat),
            (-180.0, min_lat, max_lng - 360.0, max_lat),
        ]
    return [(min_lng, min_lat, max_lng, max_lat)]


def radius_envelope(coordinate: Coordinate, radius_m: float) -> List[Box]:
    """
    Planar boxes covering the spherical cap around a coordinate.

    Args:
        coordinate: Center (lat, lng)
        radius_m: Cap radius in metres

    Returns:
        One box, or two when the cap crosses the antimeridian. A cap
        containing a pole spans all longitudes.
    """
    lat, lng = coordinate
    delta = radius_m / EARTH_RADIUS_M
    if delta >= math.pi:
        return [(-180.0, -90.0, 180.0, 90.0)]

    delta_deg = math.degrees(delta)
    min_lat = lat - delta_deg
    max_lat = lat + delta_deg
    if min_lat <= -90.0 or max_lat >= 90.0:
        return [(-180.0, max(min_lat, -90.0), 180.0, min(max_lat, 90.0))]

    ratio = math.sin(delta) / math.cos(math.radians(lat))
    if ratio >= 1.0:
        return [(-180.0, min_lat, 180.0, max_lat)]
    dlng = math.degrees(math.asin(ratio))
    return split_antimeridian(lng - dlng, min_lat, lng + dlng, max_lat)


class SpatialIndex(ABC):
    """
    Nearest / radius / extent lookup of graph nodes by coordinate.

    Entries are ((lat, lng), cell) pairs of a single resolution. An index is
    built once and then shared read-only between search threads.
    """

    kind: str = ""

    def __init__(self):
        self.logger = logger
        self._lats: List[float] = []
        self._lngs: List[float] = []
        self._cells: List[int] = []
        self._resolution: Optional[int] = None
        self._built = False

    @property
    def resolution(self) -> Optional[int]:
        """Resolution of the indexed cells, None while unknown."""
        return self._resolution

    @property
    def built(self) -> bool:
        return self._built

    def __len__(self) -> int:
        return len(self._cells)

    def _check_entry(self, coordinate: Coordinate, cell: CellLike) -> Tuple[float, float, int]:
        lat, lng = validate_coordinate(coordinate)
        cell = validate_cell(cell)
        resolution = H3Grid.resolution(cell)
        if self._resolution is None:
            self._resolution = resolution
        elif resolution != self._resolution:
            raise InvalidResolution(
                f"Cell {cell:x} has resolution {resolution}, index holds resolution {self._resolution}"
            )
        return lat, lng, cell

    def build(
        self,
        entries: Iterable[Tuple[Coordinate, CellLike]],
        resolution: Optional[int] = None,
    ) -> "SpatialIndex":
        """
        Build the index from (coordinate, cell) entries.

        Args:
            entries: ((lat, lng), cell) pairs
            resolution: Expected resolution, required for an empty index that
                must still be matched against a graph

        Returns:
            self

        Raises:
            InvalidResolution: if entries mix resolutions
            InvalidCell: for invalid cell identifiers
        """
        self._lats, self._lngs, self._cells = [], [], []
        self._resolution = resolution
        self._built = False

        for coordinate, cell in entries:
            lat, lng, cell = self._check_entry(coordinate, cell)
            self._lats.append(lat)
            self._lngs.append(lng)
            self._cells.append(cell)

        with TimedLogger(
            self.logger, f"build {self.kind} index", entries=len(self._cells)
        ):
            self._build_backend()
        self._built = True
        return self

    def _ensure_built(self) -> None:
        if not self._built:
            raise BackendMismatch(f"The {self.kind} index has not been built")

    @abstractmethod
    def _build_backend(self) -> None:
        """Bulk-build the backend structure over the current entries."""

    @abstractmethod
    def _box_candidates(self, box: Box) -> Iterable[int]:
        """Entry positions whose point may lie inside a (min_lng, min_lat, max_lng, max_lat) box."""

    @abstractmethod
    def _planar_seed(self, lat: float, lng: float) -> int:
        """Position of an entry close to (lat, lng), by any planar measure."""

    def insert(self, coordinate: Coordinate, cell: CellLike) -> None:
        """Add a single entry. Only supported by incremental backends."""
        raise BackendMismatch(
            f"The {self.kind} index does not support incremental inserts, rebuild it instead"
        )

    def _candidates(self, boxes: List[Box]) -> Set[int]:
        positions: Set[int] = set()
        for box in boxes:
            positions.update(int(p) for p in self._box_candidates(box))
        return positions

    def _distance_m(self, position: int, lat: float, lng: float) -> float:
        return H3Grid.great_circle_m((lat, lng), (self._lats[position], self._lngs[position]))

    def nearest(self, coordinate: Coordinate) -> Optional[int]:
        """
        Cell of the entry closest to a coordinate by great-circle distance.

        Equidistant entries resolve to the lowest cell identifier.

        Returns:
            The cell, or None for an empty index

        Raises:
            BackendMismatch: if the index has not been built
        """
        found = self.nearest_with_distance(coordinate)
        return found[0] if found is not None else None

    def nearest_with_distance(self, coordinate: Coordinate) -> Optional[Tuple[int, float]]:
        """
        Like :meth:`nearest`, also returning the distance in metres to the
        coordinate the winning entry was inserted with.

        Returns:
            (cell, distance_m), or None for an empty index

        Raises:
            BackendMismatch: if the index has not been built
        """
        self._ensure_built()
        lat, lng = validate_coordinate(coordinate)
        if not self._cells:
            return None

        seed = self._planar_seed(lat, lng)
        seed_distance = self._distance_m(seed, lat, lng)
        bound = seed_distance * (1.0 + _ENVELOPE_SLACK) + _ENVELOPE_SLACK_M

        best: Optional[Tuple[float, int]] = None
        for position in self._candidates(radius_envelope((lat, lng), bound)):
            candidate = (self._distance_m(position, lat, lng), self._cells[position])
            if best is None or candidate < best:
                best = candidate

        if best is None:
            return self._cells[seed], seed_distance
        return best[1], best[0]

    def within_radius(self, coordinate: Coordinate, radius_m: float) -> Set[int]:
        """
        Cells of all entries within ``radius_m`` metres of a coordinate.

        Raises:
            BackendMismatch: if the index has not been built
        """
        self._ensure_built()
        lat, lng = validate_coordinate(coordinate)
        if radius_m < 0:
            raise ValueError(f"radius must be non-negative, got {radius_m}")
        if not self._cells:
            return set()

        bound = radius_m * (1.0 + _ENVELOPE_SLACK) + _ENVELOPE_SLACK_M
        return {
            self._cells[position]
            for position in self._candidates(radius_envelope((lat, lng), bound))
            if self._distance_m(position, lat, lng) <= radius_m
        }

    def query_bbox(
        self, min_lat: float, min_lng: float, max_lat: float, max_lng: float
    ) -> Set[int]:
        """
        Cells of all entries inside a lat/lng extent.

        An extent with ``min_lng > max_lng`` crosses the antimeridian.

        Raises:
            BackendMismatch: if the index has not been built
        """
        self._ensure_built()
        if min_lat > max_lat:
            raise ValueError(f"min_lat {min_lat} is greater than max_lat {max_lat}")
        if not self._cells:
            return set()

        if min_lng > max_lng:
            boxes = [(min_lng, min_lat, 180.0, max_lat), (-180.0, min_lat, max_lng, max_lat)]
        else:
            boxes = [(min_lng, min_lat, max_lng, max_lat)]

        found = set()
        for position in self._candidates(boxes):
            lat, lng = self._lats[position], self._lngs[position]
            for box_min_lng, box_min_lat, box_max_lng, box_max_lat in boxes:
                if box_min_lat <= lat <= box_max_lat and box_min_lng <= lng <= box_max_lng:
                    found.add(self._cells[position])
                    break
        return found

    def __repr__(self) -> str:
        state = "built" if self._built else "unbuilt"
        return f"{type(self).__name__}(entries={len(self._cells)}, resolution={self._resolution}, {state})"
