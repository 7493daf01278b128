"""
Route result types for the hexgraph routing library.

A search either produces a ``Path`` or a ``NoRouteFound`` value. Neither is an
exception: an exhausted frontier is a normal query outcome.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from ..h3 import cell_to_string


class RouteStatus(Enum):
    """Outcome of one origin/destination pair in a batch."""

    FOUND = "found"
    NO_ROUTE = "no_route"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Path:
    """Ordered cells from origin to destination plus the accumulated cost."""

    cells: Tuple[int, ...]
    cost: float

    found: ClassVar[bool] = True

    @property
    def origin(self) -> int:
        return self.cells[0]

    @property
    def destination(self) -> int:
        return self.cells[-1]

    def edges(self) -> List[Tuple[int, int]]:
        """Consecutive (origin, destination) cell pairs along the path."""
        return list(zip(self.cells[:-1], self.cells[1:]))

    def __len__(self) -> int:
        return len(self.cells)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "origin": cell_to_string(self.origin),
            "destination": cell_to_string(self.destination),
            "cells": [cell_to_string(cell) for cell in self.cells],
            "cost": self.cost,
        }


@dataclass(frozen=True)
class NoRouteFound:
    """No route exists between origin and destination."""

    origin: Optional[int]
    destination: Optional[int]
    reason: str = "exhausted"

    found: ClassVar[bool] = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": cell_to_string(self.origin) if self.origin is not None else None,
            "destination": cell_to_string(self.destination)
            if self.destination is not None
            else None,
            "reason": self.reason,
        }


RouteResult = Union[Path, NoRouteFound]


@dataclass
class BatchRouteResult:
    """Outcome of one pair of a batch, reported at the pair's input position."""

    index: int
    origin: Any
    destination: Any
    status: RouteStatus
    path: Optional[Path] = None
    reason: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def cost(self) -> Optional[float]:
        return self.path.cost if self.path is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "index": self.index,
            "origin": self.origin,
            "destination": self.destination,
            "status": self.status.value,
            "cost": self.cost,
            "num_cells": len(self.path) if self.path is not None else None,
            "reason": self.reason,
            "error_type": self.error_type,
        }
