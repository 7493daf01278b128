"""
Compact cell set for the hexgraph routing library.

Membership of H3 cells of one resolution, stored in a 64-bit roaring bitmap keyed
by the dense cell key. Large planetary cell universes stay compact because the
bitmap only allocates containers for populated key ranges.
"""

from typing import Iterable, Iterator, Optional

import numpy as np
from pyroaring import BitMap64

from ..common import GraphFrozen, InvalidResolution, InvalidCell
from .grid import (
    CellLike,
    validate_cell,
    validate_resolution,
    is_valid_cell,
    parse_cell,
    dense_key,
    cell_from_dense_key,
    H3Grid,
)


class CompactCellSet:
    """Bitset-backed set of H3 cells sharing a single resolution."""

    __slots__ = ("_resolution", "_bitmap", "_frozen")

    def __init__(self, resolution: int, cells: Optional[Iterable[CellLike]] = None):
        """
        Initialize an empty cell set.

        Args:
            resolution: H3 resolution of all member cells
            cells: Optional cells to insert
        """
        self._resolution = validate_resolution(resolution)
        self._bitmap = BitMap64()
        self._frozen = False
        if cells is not None:
            self.update(cells)

    @classmethod
    def from_cells(cls, cells: Iterable[CellLike]) -> "CompactCellSet":
        """Create a set from cells, taking the resolution from the first one."""
        iterator = iter(cells)
        try:
            first = validate_cell(next(iterator))
        except StopIteration:
            raise InvalidResolution("Cannot infer a resolution from an empty cell sequence")
        cellset = cls(H3Grid.resolution(first))
        cellset.insert(first)
        cellset.update(iterator)
        return cellset

    @property
    def resolution(self) -> int:
        return self._resolution

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "CompactCellSet":
        """Make the set read-only. Returns self."""
        self._frozen = True
        return self

    def _key_for(self, cell: CellLike) -> int:
        value = validate_cell(cell)
        resolution = H3Grid.resolution(value)
        if resolution != self._resolution:
            raise InvalidResolution(
                f"Cell {value:x} has resolution {resolution}, set has resolution {self._resolution}"
            )
        return dense_key(value, self._resolution)

    def insert(self, cell: CellLike) -> None:
        if self._frozen:
            raise GraphFrozen("Cannot insert into a frozen cell set")
        self._bitmap.add(self._key_for(cell))

    def update(self, cells: Iterable[CellLike]) -> None:
        if self._frozen:
            raise GraphFrozen("Cannot insert into a frozen cell set")
        # all-or-nothing: validate every cell before touching the bitmap
        keys = [self._key_for(cell) for cell in cells]
        self._bitmap.update(keys)

    def update_validated(self, cells: Iterable[int]) -> None:
        """Insert raw cells already validated at this set's resolution."""
        if self._frozen:
            raise GraphFrozen("Cannot insert into a frozen cell set")
        resolution = self._resolution
        self._bitmap.update([dense_key(cell, resolution) for cell in cells])

    def contains(self, cell: CellLike) -> bool:
        """
        Membership test.

        Invalid identifiers and cells of another resolution are not members.
        """
        if not is_valid_cell(cell):
            return False
        value = parse_cell(cell)
        if H3Grid.resolution(value) != self._resolution:
            return False
        return dense_key(value, self._resolution) in self._bitmap

    def __contains__(self, cell) -> bool:
        try:
            return self.contains(cell)
        except InvalidCell:
            return False

    def _check_compatible(self, other: "CompactCellSet") -> None:
        if not isinstance(other, CompactCellSet):
            raise TypeError(f"Expected CompactCellSet, got {type(other).__name__}")
        if other._resolution != self._resolution:
            raise InvalidResolution(
                f"Cannot combine cell sets of resolution {self._resolution} and {other._resolution}"
            )

    def _with_bitmap(self, bitmap: BitMap64) -> "CompactCellSet":
        result = CompactCellSet(self._resolution)
        result._bitmap = bitmap
        return result

    def union(self, other: "CompactCellSet") -> "CompactCellSet":
        self._check_compatible(other)
        return self._with_bitmap(self._bitmap | other._bitmap)

    def intersect(self, other: "CompactCellSet") -> "CompactCellSet":
        self._check_compatible(other)
        return self._with_bitmap(self._bitmap & other._bitmap)

    def difference(self, other: "CompactCellSet") -> "CompactCellSet":
        self._check_compatible(other)
        return self._with_bitmap(self._bitmap - other._bitmap)

    def is_disjoint(self, other: "CompactCellSet") -> bool:
        self._check_compatible(other)
        return len(self._bitmap & other._bitmap) == 0

    __or__ = union
    __and__ = intersect
    __sub__ = difference

    def __len__(self) -> int:
        return len(self._bitmap)

    def __iter__(self) -> Iterator[int]:
        resolution = self._resolution
        for key in self._bitmap:
            yield cell_from_dense_key(key, resolution)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CompactCellSet):
            return NotImplemented
        return self._resolution == other._resolution and self._bitmap == other._bitmap

    __hash__ = None

    def __repr__(self) -> str:
        return f"CompactCellSet(resolution={self._resolution}, len={len(self)})"

    def copy(self) -> "CompactCellSet":
        """Unfrozen copy."""
        return self._with_bitmap(BitMap64(self._bitmap))

    def to_array(self) -> np.ndarray:
        """All member cells as a uint64 array in ascending key order."""
        return np.fromiter(iter(self), dtype=np.uint64, count=len(self))

    def serialize(self) -> bytes:
        return self._bitmap.serialize()

    @classmethod
    def deserialize(cls, resolution: int, data: bytes) -> "CompactCellSet":
        result = cls(resolution)
        result._bitmap = BitMap64.deserialize(data)
        return result
