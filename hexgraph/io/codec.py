"""
Persistence codec for built graphs.

Envelope layout (header big-endian)::

    magic      4 bytes  b"HXGR"
    version    uint16   format version (1)
    resolution uint8
    nodes      uint64
    edges      uint64
    block      lz4 frame

The decompressed block holds length-prefixed (uint64, big-endian) sections in
this order: cell bitmap, origins (uint64 LE array), destinations (uint64 LE
array), weights (float64 LE array), payloads (JSON array, null when absent).
Edges are written grouped by origin in adjacency order, so decoding restores
the exact insertion order.
"""

import json
import struct
from pathlib import Path
from typing import Any, List, Tuple, Union

import lz4.frame
import numpy as np

from ..common import (
    get_logger,
    TimedLogger,
    HexGraphError,
    UnsupportedFormat,
    CorruptGraphData,
)
from ..graph import H3EdgeGraph, EdgeWeightStore
from ..h3 import CompactCellSet, is_valid_cell

logger = get_logger("io.codec")

MAGIC = b"HXGR"
FORMAT_VERSION = 1
SUPPORTED_VERSIONS = (FORMAT_VERSION,)

_HEADER = struct.Struct(">4sHBQQ")
_SECTION_LENGTH = struct.Struct(">Q")
_CELL_DTYPE = np.dtype("<u8")
_WEIGHT_DTYPE = np.dtype("<f8")


def _section(data: bytes) -> bytes:
    return _SECTION_LENGTH.pack(len(data)) + data


def serialize(graph: H3EdgeGraph, compression_level: int = 0) -> bytes:
    """
    Encode a graph into the versioned envelope.

    Args:
        graph: Frozen graph
        compression_level: lz4 frame compression level (0 = fast mode)

    Returns:
        Envelope bytes
    """
    origins: List[int] = []
    destinations: List[int] = []
    weights: List[float] = []
    payloads: List[Any] = []
    for edge in graph.iter_edges():
        origins.append(edge.origin)
        destinations.append(edge.destination)
        weights.append(edge.weight)
        payloads.append(edge.payload)

    # payloads were checked for JSON compatibility when the edges were added
    payload_bytes = json.dumps(payloads, separators=(",", ":")).encode("utf-8")

    block = b"".join(
        [
            _section(graph.cells.serialize()),
            _section(np.asarray(origins, dtype=_CELL_DTYPE).tobytes()),
            _section(np.asarray(destinations, dtype=_CELL_DTYPE).tobytes()),
            _section(np.asarray(weights, dtype=_WEIGHT_DTYPE).tobytes()),
            _section(payload_bytes),
        ]
    )

    header = _HEADER.pack(
        MAGIC, FORMAT_VERSION, graph.resolution, graph.num_nodes, graph.num_edges
    )
    return header + lz4.frame.compress(block, compression_level=compression_level)


def _read_header(data: bytes) -> Tuple[int, int, int]:
    if len(data) < _HEADER.size:
        raise CorruptGraphData(
            f"Envelope is {len(data)} bytes, shorter than the {_HEADER.size} byte header",
            offset=len(data),
        )
    magic, version, resolution, num_nodes, num_edges = _HEADER.unpack_from(data, 0)
    if magic != MAGIC:
        raise UnsupportedFormat(f"Not a serialized hexgraph (magic {magic!r})")
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedFormat(
            f"Unsupported graph format version {version}, supported: {SUPPORTED_VERSIONS}",
            version=version,
        )
    if resolution > 15:
        raise CorruptGraphData(f"Invalid resolution {resolution} in header", offset=6)
    return resolution, num_nodes, num_edges


def _read_sections(block: bytes, count: int) -> List[bytes]:
    sections = []
    offset = 0
    for _ in range(count):
        if offset + _SECTION_LENGTH.size > len(block):
            raise CorruptGraphData("Truncated section length in block", offset=_HEADER.size + offset)
        (length,) = _SECTION_LENGTH.unpack_from(block, offset)
        offset += _SECTION_LENGTH.size
        if offset + length > len(block):
            raise CorruptGraphData(
                f"Section of {length} bytes exceeds block", offset=_HEADER.size + offset
            )
        sections.append(block[offset : offset + length])
        offset += length
    if offset != len(block):
        raise CorruptGraphData("Trailing bytes after last section", offset=_HEADER.size + offset)
    return sections


def _array(section: bytes, dtype: np.dtype, expected: int, name: str) -> np.ndarray:
    if len(section) != expected * dtype.itemsize:
        raise CorruptGraphData(
            f"{name} section holds {len(section)} bytes, expected {expected * dtype.itemsize}"
        )
    return np.frombuffer(section, dtype=dtype)


def deserialize(data: bytes) -> H3EdgeGraph:
    """
    Decode an envelope produced by ``serialize``.

    Offsets reported by CorruptGraphData inside the compressed block refer to
    the decompressed block shifted by the header size.

    Raises:
        UnsupportedFormat: for foreign or unsupported envelope versions
        CorruptGraphData: for truncated or inconsistent data
    """
    resolution, num_nodes, num_edges = _read_header(data)

    try:
        block = lz4.frame.decompress(data[_HEADER.size :])
    except RuntimeError as e:
        raise CorruptGraphData(
            f"Cannot decompress graph block: {e}",
            offset=_HEADER.size,
            original_exception=e,
        )

    (
        cell_section,
        origin_section,
        dest_section,
        weight_section,
        payload_section,
    ) = _read_sections(block, 5)

    try:
        cells = CompactCellSet.deserialize(resolution, cell_section)
    except (ValueError, OverflowError) as e:
        raise CorruptGraphData(f"Cannot decode cell bitmap: {e}", original_exception=e)
    if len(cells) != num_nodes:
        raise CorruptGraphData(f"Header announces {num_nodes} nodes, bitmap holds {len(cells)}")
    for cell in cells:
        if not is_valid_cell(cell):
            raise CorruptGraphData(f"Bitmap decodes to invalid cell {cell:x}")

    origins = _array(origin_section, _CELL_DTYPE, num_edges, "Origins").tolist()
    destinations = _array(dest_section, _CELL_DTYPE, num_edges, "Destinations").tolist()
    weights = _array(weight_section, _WEIGHT_DTYPE, num_edges, "Weights").tolist()
    try:
        payloads = json.loads(payload_section.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptGraphData(f"Cannot decode payloads: {e}", original_exception=e)
    if not isinstance(payloads, list) or len(payloads) != num_edges:
        raise CorruptGraphData(f"Payload section does not hold {num_edges} entries")

    edges = EdgeWeightStore(resolution)
    try:
        for origin, destination, weight, payload in zip(origins, destinations, weights, payloads):
            if origin not in cells or destination not in cells:
                raise CorruptGraphData(
                    f"Edge {origin:x} -> {destination:x} references a cell outside the node set"
                )
            edges.add_edge(origin, destination, weight, payload)
    except CorruptGraphData:
        raise
    except HexGraphError as e:
        raise CorruptGraphData(f"Invalid edge in block: {e}", original_exception=e)
    if len(edges) != num_edges:
        raise CorruptGraphData(f"Block holds duplicate edges, {len(edges)} of {num_edges} are unique")

    return H3EdgeGraph(cells, edges)


def save_graph(
    graph: H3EdgeGraph, path: Union[str, Path], compression_level: int = 0
) -> int:
    """
    Write a graph to a file.

    Returns:
        Number of bytes written
    """
    path = Path(path)
    with TimedLogger(
        logger, "save graph", path=str(path), nodes=graph.num_nodes, edges=graph.num_edges
    ):
        data = serialize(graph, compression_level=compression_level)
        with open(path, "wb") as f:
            f.write(data)
    return len(data)


def load_graph(path: Union[str, Path]) -> H3EdgeGraph:
    """Read a graph written by ``save_graph``."""
    path = Path(path)
    with TimedLogger(logger, "load graph", path=str(path)):
        with open(path, "rb") as f:
            data = f.read()
        return deserialize(data)
