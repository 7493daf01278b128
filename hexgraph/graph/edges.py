"""
Edge weight store for the hexgraph routing library.

Maps an origin cell to its outgoing edges in insertion order. A store is filled by
one weight-assignment pass (or by merging several passes) and frozen when the
owning graph is built.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from ..common import (
    GraphFrozen,
    InvalidEdge,
    InvalidResolution,
    InvalidWeight,
)
from ..h3 import H3Grid, CellLike, parse_cell, validate_cell, validate_resolution


@dataclass(frozen=True)
class Edge:
    """Directed weighted adjacency between two neighboring cells."""

    origin: int
    destination: int
    weight: float
    payload: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "origin": self.origin,
            "destination": self.destination,
            "weight": self.weight,
            "payload": self.payload,
        }


def validate_weight(weight: Any) -> float:
    """Return the weight as float or raise InvalidWeight."""
    try:
        value = float(weight)
    except (TypeError, ValueError) as e:
        raise InvalidWeight(f"Edge weight must be numeric, got {weight!r}", e)
    if math.isnan(value) or math.isinf(value):
        raise InvalidWeight(f"Edge weight must be finite, got {value}")
    if value < 0.0:
        raise InvalidWeight(f"Edge weight must be non-negative, got {value}")
    return value


def validate_payload(payload: Any) -> Any:
    """
    Return the payload unchanged or raise InvalidEdge.

    Payloads are persisted as JSON, so only values that decode back to an equal
    value are accepted: None, bool, int, finite float, str, and lists or
    str-keyed dicts of those. Tuples are rejected since they decode as lists.
    """
    if payload is None or isinstance(payload, (bool, int, str)):
        return payload
    if isinstance(payload, float):
        if math.isnan(payload) or math.isinf(payload):
            raise InvalidEdge(f"Edge payload floats must be finite, got {payload}")
        return payload
    if type(payload) is list:
        for item in payload:
            validate_payload(item)
        return payload
    if type(payload) is dict:
        for key, value in payload.items():
            if not isinstance(key, str):
                raise InvalidEdge(f"Edge payload keys must be strings, got {key!r}")
            validate_payload(value)
        return payload
    raise InvalidEdge(
        f"Edge payload of type {type(payload).__name__} does not survive persistence"
    )


class EdgeWeightStore:
    """Ordered origin -> (destination, weight, payload) mapping."""

    def __init__(self, resolution: int):
        """
        Initialize an empty edge store.

        Args:
            resolution: H3 resolution shared by all edge endpoints
        """
        self.resolution = validate_resolution(resolution)
        self._adjacency: Dict[int, Dict[int, Tuple[float, Any]]] = {}
        self._num_edges = 0
        self._frozen_adjacency: Optional[Dict[int, Tuple[Tuple[int, float], ...]]] = None

    @property
    def frozen(self) -> bool:
        return self._frozen_adjacency is not None

    def _validate_endpoints(self, origin: CellLike, destination: CellLike) -> Tuple[int, int]:
        origin = validate_cell(origin)
        destination = validate_cell(destination)
        for cell in (origin, destination):
            resolution = H3Grid.resolution(cell)
            if resolution != self.resolution:
                raise InvalidResolution(
                    f"Cell {cell:x} has resolution {resolution}, expected {self.resolution}"
                )
        if not H3Grid.is_neighbor(origin, destination):
            raise InvalidEdge(f"Cells {origin:x} and {destination:x} are not grid neighbors")
        return origin, destination

    def _put(self, origin: int, destination: int, weight: float, payload: Any) -> bool:
        """
        Store an already validated edge.

        A strictly lower weight replaces an existing edge, keeping its position;
        equal or higher weights are ignored.
        """
        targets = self._adjacency.get(origin)
        if targets is None:
            targets = self._adjacency[origin] = {}
        existing = targets.get(destination)
        if existing is None:
            targets[destination] = (weight, payload)
            self._num_edges += 1
            return True
        if weight < existing[0]:
            targets[destination] = (weight, payload)
            return True
        return False

    def add_edge(
        self,
        origin: CellLike,
        destination: CellLike,
        weight: float,
        payload: Any = None,
    ) -> bool:
        """
        Add a directed edge.

        Args:
            origin: Origin cell
            destination: Destination cell, a grid neighbor of origin
            weight: Non-negative finite cost
            payload: Optional JSON-compatible value (e.g. provenance tag)

        Returns:
            True if the edge was stored or lowered an existing weight

        Raises:
            GraphFrozen: if the store has been frozen
            InvalidCell, InvalidResolution, InvalidEdge, InvalidWeight
        """
        if self.frozen:
            raise GraphFrozen("Cannot add edges to a frozen edge store")
        weight = validate_weight(weight)
        origin, destination = self._validate_endpoints(origin, destination)
        validate_payload(payload)
        return self._put(origin, destination, weight, payload)

    def merge(self, other: "EdgeWeightStore") -> int:
        """
        Merge another store into this one, minimum weight wins.

        Ties keep the edge already present, so merging passes in a fixed order
        is reproducible.

        Returns:
            Number of edges stored or lowered
        """
        if self.frozen:
            raise GraphFrozen("Cannot merge into a frozen edge store")
        if other.resolution != self.resolution:
            raise InvalidResolution(
                f"Cannot merge edges of resolution {other.resolution} into {self.resolution}"
            )
        changed = 0
        for origin, targets in other._adjacency.items():
            for destination, (weight, payload) in targets.items():
                if self._put(origin, destination, weight, payload):
                    changed += 1
        return changed

    def freeze(self) -> "EdgeWeightStore":
        """Freeze the store. Returns self."""
        if self._frozen_adjacency is None:
            self._frozen_adjacency = {
                origin: tuple((dest, weight) for dest, (weight, _) in targets.items())
                for origin, targets in self._adjacency.items()
            }
        return self

    def edges_from(self, cell: CellLike) -> Tuple[Tuple[int, float], ...]:
        """Outgoing (destination, weight) pairs of a cell in insertion order."""
        if not isinstance(cell, int):
            cell = parse_cell(cell)
        if self._frozen_adjacency is not None:
            return self._frozen_adjacency.get(cell, ())
        targets = self._adjacency.get(cell)
        if not targets:
            return ()
        return tuple((dest, weight) for dest, (weight, _) in targets.items())

    def edges_with_payload_from(self, cell: CellLike) -> Tuple[Edge, ...]:
        if not isinstance(cell, int):
            cell = parse_cell(cell)
        targets = self._adjacency.get(cell, {})
        return tuple(
            Edge(cell, dest, weight, payload)
            for dest, (weight, payload) in targets.items()
        )

    def get(self, origin: CellLike, destination: CellLike) -> Optional[Edge]:
        origin = parse_cell(origin)
        destination = parse_cell(destination)
        entry = self._adjacency.get(origin, {}).get(destination)
        if entry is None:
            return None
        return Edge(origin, destination, entry[0], entry[1])

    def origins(self) -> Iterator[int]:
        """Origin cells in insertion order."""
        return iter(self._adjacency)

    def iter_edges(self) -> Iterator[Edge]:
        """All edges grouped by origin, both in insertion order."""
        for origin, targets in self._adjacency.items():
            for dest, (weight, payload) in targets.items():
                yield Edge(origin, dest, weight, payload)

    def cells(self) -> Iterator[int]:
        """All edge endpoints (may repeat)."""
        for origin, targets in self._adjacency.items():
            yield origin
            yield from targets

    def __len__(self) -> int:
        return self._num_edges

    def __repr__(self) -> str:
        state = "frozen" if self.frozen else "building"
        return f"EdgeWeightStore(resolution={self.resolution}, edges={self._num_edges}, {state})"
