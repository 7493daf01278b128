"""
Line geometry import adapter for the hexgraph routing library.

Turns road-like line features into travel-time weighted edges. Each line is
densified along the WGS84 geodesic, the samples are mapped to H3 cells and gaps
between non-neighboring consecutive cells are filled with grid path cells.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from geographiclib.geodesic import Geodesic
from shapely.geometry import LineString

from ..common import get_logger, log_data_processing
from ..graph import EdgeWeightStore, GraphBuilder, H3EdgeGraph
from ..h3 import H3Grid, validate_resolution

logger = get_logger("ingest.linestrings")


@dataclass
class LineFeature:
    """A traversable line with a travel speed."""

    geometry: LineString  # (lng, lat) coordinates
    speed_kph: float
    oneway: bool = False
    tag: Optional[str] = None

    def __post_init__(self):
        if not (self.speed_kph > 0):
            raise ValueError(f"speed_kph must be positive, got {self.speed_kph}")

    @classmethod
    def from_geojson(cls, feature: Dict[str, Any], default_speed_kph: float = 50.0) -> "LineFeature":
        """
        Create a line feature from a GeoJSON LineString feature.

        Recognized properties: ``speed_kph``, ``oneway`` and ``tag``.
        """
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "LineString":
            raise ValueError(f"Expected a LineString geometry, got {geometry.get('type')!r}")
        properties = feature.get("properties") or {}
        return cls(
            geometry=LineString(geometry["coordinates"]),
            speed_kph=float(properties.get("speed_kph") or default_speed_kph),
            oneway=bool(properties.get("oneway", False)),
            tag=properties.get("tag"),
        )


class LineStringEdgeMapper:
    """Maps line features to edges between H3 cells."""

    def __init__(self, resolution: int):
        """
        Initialize line mapper.

        Args:
            resolution: H3 resolution of the produced edges
        """
        self.resolution = validate_resolution(resolution)
        self.logger = logger

        # Geodesic calculator for accurate distance calculations
        self.geod = Geodesic.WGS84

        # half the mean edge length, so consecutive samples never skip a cell ring
        self.sample_spacing_m = H3Grid.edge_length_m(self.resolution) / 2.0

    def _densify(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float
    ) -> List[Tuple[float, float]]:
        """
        Points along the geodesic between two coordinates, end point included.

        Returns:
            List of (lat, lng) tuples
        """
        line = self.geod.InverseLine(from_lat, from_lng, to_lat, to_lng)
        total_distance = line.s13
        num_steps = max(1, math.ceil(total_distance / self.sample_spacing_m))

        points = []
        for i in range(1, num_steps + 1):
            point = line.Position((i / num_steps) * total_distance)
            points.append((point["lat2"], point["lon2"]))
        return points

    def cells_along(self, geometry: LineString) -> List[int]:
        """
        Contiguous sequence of cells covered by a line.

        Consecutive cells of the result are grid neighbors.
        """
        coords = list(geometry.coords)
        if not coords:
            return []

        first_lng, first_lat = coords[0][:2]
        sampled = [H3Grid.latlng_to_cell(first_lat, first_lng, self.resolution)]
        for (from_lng, from_lat, *_), (to_lng, to_lat, *_) in zip(coords[:-1], coords[1:]):
            for lat, lng in self._densify(from_lat, from_lng, to_lat, to_lng):
                cell = H3Grid.latlng_to_cell(lat, lng, self.resolution)
                if cell != sampled[-1]:  # Avoid duplicates
                    sampled.append(cell)

        cells = sampled[:1]
        for cell in sampled[1:]:
            if H3Grid.is_neighbor(cells[-1], cell):
                cells.append(cell)
            else:
                cells.extend(H3Grid.path_cells(cells[-1], cell)[1:])
        return cells

    def _travel_seconds(self, origin: int, destination: int, speed_kph: float) -> float:
        from_lat, from_lng = H3Grid.cell_to_latlng(origin)
        to_lat, to_lng = H3Grid.cell_to_latlng(destination)
        distance_m = self.geod.Inverse(from_lat, from_lng, to_lat, to_lng)["s12"]
        return distance_m / (speed_kph / 3.6)

    def add_feature(self, feature: LineFeature, store: EdgeWeightStore) -> int:
        """
        Add the edges of one feature to a store.

        Returns:
            Number of edge insertions
        """
        cells = self.cells_along(feature.geometry)
        added = 0
        for origin, destination in zip(cells[:-1], cells[1:]):
            weight = self._travel_seconds(origin, destination, feature.speed_kph)
            store.add_edge(origin, destination, weight, feature.tag)
            added += 1
            if not feature.oneway:
                store.add_edge(destination, origin, weight, feature.tag)
                added += 1
        return added

    def add_features(self, features: Sequence[LineFeature], store: EdgeWeightStore) -> int:
        """Add all features in order; returns number of edge insertions."""
        added = 0
        skipped = 0
        for feature in features:
            if feature.geometry.is_empty:
                skipped += 1
                continue
            added += self.add_feature(feature, store)

        self.logger.debug(
            "Mapped line features",
            extra=log_data_processing(
                stage="line_features",
                records_processed=len(features) - skipped,
                records_failed=skipped,
                edges=added,
            ),
        )
        return added


def edges_from_lines(features: Sequence[LineFeature], resolution: int) -> EdgeWeightStore:
    """
    Map line features to a new edge store.

    Args:
        features: Line features in (lng, lat)
        resolution: H3 resolution of the edges

    Returns:
        Unfrozen edge store
    """
    mapper = LineStringEdgeMapper(resolution)
    store = EdgeWeightStore(mapper.resolution)
    mapper.add_features(features, store)
    return store


def build_graph_from_tiles(
    tiles: Mapping[str, Sequence[LineFeature]],
    resolution: int,
    max_workers: int = 1,
) -> H3EdgeGraph:
    """
    Build a graph with one parallel assembly pass per tile.

    Passes are merged in tile-name order, so the result does not depend on
    ``max_workers``.

    Args:
        tiles: Tile name -> line features of that tile
        resolution: H3 resolution of the graph
        max_workers: Worker threads for the passes
    """
    mapper = LineStringEdgeMapper(resolution)
    builder = GraphBuilder(mapper.resolution, max_workers=max_workers)
    builder.run_passes(
        list(tiles.items()),
        lambda tile, store: mapper.add_features(tile[1], store),
        key_fn=lambda tile: tile[0],
    )
    return builder.build()
