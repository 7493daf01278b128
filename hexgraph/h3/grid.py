"""
H3 grid primitive boundary for the hexgraph routing library.

All cell validity, topology and distance questions are answered by the h3 library;
this module only adapts its integer API to the error taxonomy and provides the
dense per-resolution key used by the compact cell set.
"""

import numbers

import h3
import h3.api.basic_int as h3int
from typing import List, Tuple, Optional, Union

from ..common import InvalidCell, InvalidResolution
from ..common.config import MIN_RESOLUTION, MAX_RESOLUTION

CellLike = Union[int, str]

_MAX_INDEX = (1 << 64) - 1
_CELL_MODE = 1
_DIGIT_BITS = 3
_BASE_CELL_BITS = 7


def validate_resolution(resolution: int) -> int:
    """Validate an H3 resolution and return it as int."""
    if not isinstance(resolution, int) or not (
        MIN_RESOLUTION <= resolution <= MAX_RESOLUTION
    ):
        raise InvalidResolution(
            f"H3 resolution must be between {MIN_RESOLUTION} and {MAX_RESOLUTION}, got {resolution}"
        )
    return resolution


def parse_cell(cell: CellLike) -> int:
    """
    Convert a cell given as integer or hex string to its raw integer index.

    The value is not validated; use ``validate_cell`` for that.
    """
    if isinstance(cell, str):
        try:
            return int(cell, 16)
        except ValueError as e:
            raise InvalidCell(f"Malformed H3 cell identifier: {cell!r}", e)
    if isinstance(cell, bool) or not isinstance(cell, numbers.Integral):
        raise InvalidCell(f"Unsupported H3 cell identifier type: {type(cell).__name__}")
    return int(cell)


def is_valid_cell(cell: CellLike) -> bool:
    """Check validity without raising."""
    try:
        value = parse_cell(cell)
    except InvalidCell:
        return False
    if not (0 <= value <= _MAX_INDEX):
        return False
    return bool(h3int.is_valid_cell(value))


def validate_cell(cell: CellLike) -> int:
    """
    Validate a cell identifier against the grid primitive.

    Args:
        cell: Cell as raw integer or hex string

    Returns:
        Raw integer index

    Raises:
        InvalidCell: if the identifier is malformed or not a valid cell
    """
    value = parse_cell(cell)
    if not (0 <= value <= _MAX_INDEX) or not h3int.is_valid_cell(value):
        raise InvalidCell(f"Invalid H3 cell: {cell!r}")
    return value


def cell_to_string(cell: int) -> str:
    """Hex string form of a raw cell index."""
    return format(cell, "x")


def dense_key(cell: int, resolution: int) -> int:
    """
    Dense integer for a cell of the given resolution.

    Keeps the base cell and the ``resolution`` significant digits of the index,
    dropping the constant header and the unused trailing digits. The key has
    ``7 + 3 * resolution`` bits.
    """
    unused_bits = _DIGIT_BITS * (MAX_RESOLUTION - resolution)
    return (cell >> unused_bits) & ((1 << (_BASE_CELL_BITS + _DIGIT_BITS * resolution)) - 1)


def cell_from_dense_key(key: int, resolution: int) -> int:
    """Inverse of ``dense_key``."""
    unused_bits = _DIGIT_BITS * (MAX_RESOLUTION - resolution)
    return (
        (_CELL_MODE << 59)
        | (resolution << 52)
        | (key << unused_bits)
        | ((1 << unused_bits) - 1)
    )


class H3Grid:
    """Stateless access to the H3 grid primitive."""

    @staticmethod
    def validate_cell(cell: CellLike) -> int:
        return validate_cell(cell)

    @staticmethod
    def resolution(cell: int) -> int:
        return h3int.get_resolution(cell)

    @staticmethod
    def is_neighbor(origin: int, destination: int) -> bool:
        """
        Check whether two valid cells are direct grid neighbors.

        Cells of different resolutions are never neighbors.
        """
        if origin == destination:
            return False
        if h3int.get_resolution(origin) != h3int.get_resolution(destination):
            return False
        try:
            return bool(h3int.are_neighbor_cells(origin, destination))
        except h3.H3BaseException as e:
            raise InvalidCell(
                f"Neighbor check failed for {origin:x} -> {destination:x}", e
            )

    @staticmethod
    def neighbors(cell: int) -> List[int]:
        """Direct neighbors of a cell (without the cell itself), sorted."""
        return sorted(c for c in h3int.grid_disk(cell, 1) if c != cell)

    @staticmethod
    def grid_distance(origin: int, destination: int) -> Optional[int]:
        """
        Number of grid steps between two cells.

        Returns None when the grid primitive cannot compute the distance
        (e.g. across pentagon distortion or for far apart cells).
        """
        try:
            return int(h3int.grid_distance(origin, destination))
        except h3.H3BaseException:
            return None

    @staticmethod
    def cell_to_latlng(cell: int) -> Tuple[float, float]:
        return h3int.cell_to_latlng(cell)

    @staticmethod
    def latlng_to_cell(lat: float, lng: float, resolution: int) -> int:
        try:
            return h3int.latlng_to_cell(lat, lng, resolution)
        except h3.H3BaseException as e:
            raise InvalidCell(
                f"Cannot index coordinate ({lat}, {lng}) at resolution {resolution}", e
            )

    @staticmethod
    def great_circle_m(a: Tuple[float, float], b: Tuple[float, float]) -> float:
        """Great-circle distance between two (lat, lng) points in meters."""
        return h3.great_circle_distance(a, b, unit="m")

    @staticmethod
    def cell_distance_m(origin: int, destination: int) -> float:
        """Great-circle distance between two cell centroids in meters."""
        return h3.great_circle_distance(
            h3int.cell_to_latlng(origin), h3int.cell_to_latlng(destination), unit="m"
        )

    @staticmethod
    def path_cells(origin: int, destination: int) -> List[int]:
        """
        Line of cells from origin to destination (both included).

        Raises:
            InvalidCell: if the grid primitive cannot draw the line
        """
        try:
            return list(h3int.grid_path_cells(origin, destination))
        except h3.H3BaseException as e:
            raise InvalidCell(
                f"No grid path between {origin:x} and {destination:x}", e
            )

    @staticmethod
    def parent(cell: int, resolution: int) -> int:
        validate_resolution(resolution)
        try:
            return h3int.cell_to_parent(cell, resolution)
        except h3.H3BaseException as e:
            raise InvalidResolution(
                f"Cannot compute parent of {cell:x} at resolution {resolution}", e
            )

    @staticmethod
    def children(cell: int, resolution: int) -> List[int]:
        validate_resolution(resolution)
        try:
            return sorted(h3int.cell_to_children(cell, resolution))
        except h3.H3BaseException as e:
            raise InvalidResolution(
                f"Cannot compute children of {cell:x} at resolution {resolution}", e
            )

    @staticmethod
    def edge_length_m(resolution: int) -> float:
        """Average hexagon edge length at a resolution in meters."""
        return h3.average_hexagon_edge_length(resolution, unit="m")


# Convenience functions
def latlng_to_cell(lat: float, lng: float, resolution: int) -> int:
    """Convert lat/lng to a raw H3 cell index."""
    return H3Grid.latlng_to_cell(lat, lng, validate_resolution(resolution))
