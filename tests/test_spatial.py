"""Tests for the pluggable spatial indices."""

import numpy as np
import pytest
import h3.api.basic_int as h3int

from hexgraph.common import BackendMismatch, InvalidResolution
from hexgraph.h3 import H3Grid, latlng_to_cell
from hexgraph.spatial import (
    DynamicBVHIndex,
    SpatialIndexKind,
    build_index_for_graph,
    create_spatial_index,
    radius_envelope,
)

from conftest import SF_LAT, SF_LNG

BACKENDS = [kind.value for kind in SpatialIndexKind]


@pytest.fixture(scope="module")
def scattered_entries():
    """Random coordinates around San Francisco, each tagged with its own cell."""
    rng = np.random.RandomState(7)
    entries = []
    for lat, lng in zip(rng.uniform(37.70, 37.85, 200), rng.uniform(-122.52, -122.35, 200)):
        entries.append(((float(lat), float(lng)), latlng_to_cell(lat, lng, 10)))
    return entries


def brute_force_nearest(entries, coordinate):
    return min(
        (H3Grid.great_circle_m(coordinate, point), cell) for point, cell in entries
    )[1]


class TestBackendEquivalence:
    """All backends answer every query identically."""

    def test_nearest_matches_brute_force(self, scattered_entries):
        rng = np.random.RandomState(11)
        queries = list(zip(rng.uniform(37.65, 37.90, 50), rng.uniform(-122.60, -122.30, 50)))
        indices = [create_spatial_index(kind).build(scattered_entries) for kind in BACKENDS]

        for query in queries:
            expected = brute_force_nearest(scattered_entries, query)
            assert [index.nearest(query) for index in indices] == [expected] * len(BACKENDS)

    @pytest.mark.parametrize("radius_m", [0.0, 250.0, 1500.0, 5000.0])
    def test_within_radius_matches_brute_force(self, scattered_entries, radius_m):
        query = (37.7749, -122.4194)
        expected = {
            cell
            for point, cell in scattered_entries
            if H3Grid.great_circle_m(query, point) <= radius_m
        }
        for kind in BACKENDS:
            index = create_spatial_index(kind).build(scattered_entries)
            assert index.within_radius(query, radius_m) == expected

    def test_query_bbox(self, scattered_entries):
        bbox = (37.75, -122.45, 37.80, -122.40)
        expected = {
            cell
            for (lat, lng), cell in scattered_entries
            if bbox[0] <= lat <= bbox[2] and bbox[1] <= lng <= bbox[3]
        }
        for kind in BACKENDS:
            index = create_spatial_index(kind).build(scattered_entries)
            assert index.query_bbox(*bbox) == expected

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_equidistant_entries_resolve_to_lowest_cell(self, kind):
        first = latlng_to_cell(SF_LAT, SF_LNG, 9)
        second = H3Grid.neighbors(first)[0]
        point = (SF_LAT, SF_LNG)
        index = create_spatial_index(kind).build(
            [(point, max(first, second)), (point, min(first, second))]
        )
        assert index.nearest(point) == min(first, second)

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_nearest_with_distance_measures_to_the_entry(self, kind, scattered_entries):
        index = create_spatial_index(kind).build(scattered_entries)
        query = (37.7749, -122.4194)
        cell, distance_m = index.nearest_with_distance(query)
        expected = min(
            (H3Grid.great_circle_m(query, point), c) for point, c in scattered_entries
        )
        assert cell == expected[1]
        assert distance_m == pytest.approx(expected[0])
        assert cell == index.nearest(query)


class TestAntimeridianAndPoles:
    """Envelope handling near the date line and the poles."""

    @pytest.fixture
    def dateline_entries(self):
        east = (10.0, 179.999)
        west = (10.0, -179.999)
        far = (10.0, 179.0)
        return [
            (point, latlng_to_cell(point[0], point[1], 12)) for point in (east, west, far)
        ]

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_nearest_across_dateline(self, kind, dateline_entries):
        index = create_spatial_index(kind).build(dateline_entries)
        west_cell = dateline_entries[1][1]
        assert index.nearest((10.0, -179.9995)) == west_cell
        # 179.9999 E is closer to 179.999 E than to 179.999 W
        assert index.nearest((10.0, 179.9999)) == dateline_entries[0][1]
        assert index.within_radius((10.0, 180.0), 500.0) == {
            dateline_entries[0][1],
            dateline_entries[1][1],
        }

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_bbox_across_dateline(self, kind, dateline_entries):
        index = create_spatial_index(kind).build(dateline_entries)
        found = index.query_bbox(9.0, 179.5, 11.0, -179.5)
        assert found == {dateline_entries[0][1], dateline_entries[1][1]}

    def test_envelope_splits_at_dateline(self):
        boxes = radius_envelope((0.0, 179.99), 5000.0)
        assert len(boxes) == 2
        assert boxes[0][2] == 180.0
        assert boxes[1][0] == -180.0

    def test_envelope_covers_pole(self):
        (box,) = radius_envelope((89.99, 10.0), 5000.0)
        assert box[0] == -180.0 and box[2] == 180.0
        assert box[3] == 90.0

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_nearest_over_pole(self, kind):
        near_side = (89.9, 0.0)
        far_side = (89.95, 180.0)
        entries = [(p, latlng_to_cell(p[0], p[1], 9)) for p in (near_side, far_side)]
        index = create_spatial_index(kind).build(entries)
        # across the pole the 180 E point is the closer one
        assert index.nearest((89.98, 179.0)) == entries[1][1]
        assert index.nearest((89.99, 0.0)) == brute_force_nearest(entries, (89.99, 0.0))


class TestIndexLifecycle:
    """Build, validation and insert rules."""

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_unbuilt_index_raises(self, kind):
        index = create_spatial_index(kind)
        with pytest.raises(BackendMismatch):
            index.nearest((0.0, 0.0))
        with pytest.raises(BackendMismatch):
            index.within_radius((0.0, 0.0), 10.0)

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_empty_index(self, kind):
        index = create_spatial_index(kind).build([])
        assert index.nearest((0.0, 0.0)) is None
        assert index.nearest_with_distance((0.0, 0.0)) is None
        assert index.within_radius((0.0, 0.0), 1000.0) == set()
        assert index.query_bbox(-1.0, -1.0, 1.0, 1.0) == set()
        assert index.resolution is None

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_mixed_resolutions_rejected(self, kind):
        fine = latlng_to_cell(SF_LAT, SF_LNG, 9)
        coarse = H3Grid.parent(fine, 8)
        with pytest.raises(InvalidResolution):
            create_spatial_index(kind).build(
                [((SF_LAT, SF_LNG), fine), ((SF_LAT, SF_LNG), coarse)]
            )

    def test_invalid_coordinate_rejected(self):
        index = create_spatial_index("balanced-tree").build([])
        with pytest.raises(ValueError):
            index.nearest((91.0, 0.0))

    @pytest.mark.parametrize("kind", ["balanced-tree", "static-packed-bvh"])
    def test_static_backends_reject_insert(self, kind):
        index = create_spatial_index(kind).build([])
        with pytest.raises(BackendMismatch):
            index.insert((SF_LAT, SF_LNG), latlng_to_cell(SF_LAT, SF_LNG, 9))

    def test_dynamic_insert(self, scattered_entries):
        index = DynamicBVHIndex().build(scattered_entries[:100])
        for coordinate, cell in scattered_entries[100:]:
            index.insert(coordinate, cell)

        query = (37.7749, -122.4194)
        assert len(index) == len(scattered_entries)
        assert index.nearest(query) == brute_force_nearest(scattered_entries, query)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_spatial_index("quadtree")


class TestGraphIndex:
    """Indices built over graph nodes."""

    @pytest.mark.parametrize("kind", BACKENDS)
    def test_centroids_snap_to_their_cells(self, kind, disk_graph):
        index = build_index_for_graph(disk_graph, kind)
        assert index.resolution == disk_graph.resolution
        assert len(index) == disk_graph.num_nodes
        for cell in list(disk_graph.cells)[:20]:
            assert index.nearest(H3Grid.cell_to_latlng(cell)) == cell

    def test_radius_covers_first_ring(self, disk_graph):
        center = latlng_to_cell(SF_LAT, SF_LNG, 9)
        index = build_index_for_graph(disk_graph, SpatialIndexKind.STATIC_PACKED_BVH)
        radius = 1.5 * H3Grid.edge_length_m(9) * np.sqrt(3)
        found = index.within_radius(H3Grid.cell_to_latlng(center), radius)
        assert set(h3int.grid_disk(center, 1)) <= found
