"""Error taxonomy for graph construction, persistence and spatial indexing."""

from typing import Optional


class HexGraphError(Exception):
    """Base hexgraph error."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception


class InvalidResolution(HexGraphError):
    """Raised when an operation mixes cells of different resolutions."""

    pass


class InvalidCell(HexGraphError):
    """Raised when the grid primitive rejects a cell identifier."""

    pass


class InvalidEdge(HexGraphError):
    """Raised when an edge has non-neighboring endpoints or an unstorable payload."""

    pass


class InvalidWeight(HexGraphError, ValueError):
    """Raised for negative, NaN or infinite edge weights."""

    pass


class GraphFrozen(HexGraphError):
    """Raised when a frozen cell set, edge store or builder is mutated."""

    pass


class UnsupportedFormat(HexGraphError):
    """Raised when a serialized graph uses an unknown envelope or format version."""

    def __init__(
        self,
        message: str,
        version: Optional[int] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message, original_exception)
        self.version = version


class CorruptGraphData(HexGraphError):
    """Raised when a serialized graph is truncated or internally inconsistent."""

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        original_exception: Optional[Exception] = None,
    ):
        if offset is not None:
            message = f"{message} (at byte offset {offset})"
        super().__init__(message, original_exception)
        self.offset = offset


class BackendMismatch(HexGraphError):
    """Raised when a spatial index is queried unbuilt or against an incompatible graph."""

    pass
