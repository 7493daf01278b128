"""
Tabular extraction for the hexgraph routing library.

Bulk, read-only pandas copies of cell sets, graph adjacency, spatial index
lookups and batch routing results. The frames are snapshots and never track
later changes of their source.
"""

from typing import Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from ..graph import H3EdgeGraph
from ..h3 import CompactCellSet, H3Grid, cell_to_string
from ..routing import BatchRouteResult
from ..spatial import SpatialIndex, validate_coordinate


def cells_to_dataframe(cellset: CompactCellSet) -> pd.DataFrame:
    """
    One row per cell, in dense-key order.

    Columns: cell (uint64), h3_index, lat, lng
    """
    cells = list(cellset)
    centroids = [H3Grid.cell_to_latlng(cell) for cell in cells]
    return pd.DataFrame(
        {
            "cell": np.asarray(cells, dtype=np.uint64),
            "h3_index": [cell_to_string(cell) for cell in cells],
            "lat": np.asarray([lat for lat, _ in centroids], dtype=np.float64),
            "lng": np.asarray([lng for _, lng in centroids], dtype=np.float64),
        }
    )


def edges_to_dataframe(graph: H3EdgeGraph) -> pd.DataFrame:
    """
    One row per edge, in adjacency order.

    Columns: origin, destination (uint64), origin_h3, destination_h3, weight,
    payload
    """
    origins: List[int] = []
    destinations: List[int] = []
    weights: List[float] = []
    payloads: List[object] = []
    for edge in graph.iter_edges():
        origins.append(edge.origin)
        destinations.append(edge.destination)
        weights.append(edge.weight)
        payloads.append(edge.payload)

    return pd.DataFrame(
        {
            "origin": np.asarray(origins, dtype=np.uint64),
            "destination": np.asarray(destinations, dtype=np.uint64),
            "origin_h3": [cell_to_string(cell) for cell in origins],
            "destination_h3": [cell_to_string(cell) for cell in destinations],
            "weight": np.asarray(weights, dtype=np.float64),
            "payload": pd.Series(payloads, dtype=object),
        }
    )


def nearest_to_dataframe(
    index: SpatialIndex, coordinates: Iterable[Tuple[float, float]]
) -> pd.DataFrame:
    """
    Nearest indexed cell for each (lat, lng) coordinate.

    Columns: lat, lng, cell (nullable UInt64), h3_index, distance_m. The
    distance is measured to the coordinate the matched entry was indexed with.
    Cell and distance are missing when the index is empty.
    """
    rows = []
    for coordinate in coordinates:
        lat, lng = validate_coordinate(coordinate)
        found = index.nearest_with_distance((lat, lng))
        cell, distance_m = found if found is not None else (None, np.nan)
        rows.append(
            {
                "lat": lat,
                "lng": lng,
                "cell": cell,
                "h3_index": cell_to_string(cell) if cell is not None else None,
                "distance_m": distance_m,
            }
        )

    df = pd.DataFrame(rows, columns=["lat", "lng", "cell", "h3_index", "distance_m"])
    df["cell"] = df["cell"].astype("UInt64")
    return df


def batch_results_to_dataframe(results: Sequence[BatchRouteResult]) -> pd.DataFrame:
    """
    One row per batch result, in result order.

    Columns: index, origin, destination, status, cost, num_cells, reason,
    error_type, path (list of h3 strings or None)
    """
    rows = []
    for result in results:
        row = result.to_dict()
        row["path"] = (
            [cell_to_string(cell) for cell in result.path.cells]
            if result.path is not None
            else None
        )
        rows.append(row)

    return pd.DataFrame(
        rows,
        columns=[
            "index",
            "origin",
            "destination",
            "status",
            "cost",
            "num_cells",
            "reason",
            "error_type",
            "path",
        ],
    )
