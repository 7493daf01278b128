"""Tests for worker-pool batch routing."""

import threading

import pytest

from hexgraph.common import BackendMismatch
from hexgraph.h3 import H3Grid
from hexgraph.routing import BatchRouter, RouteStatus, create_batch_router
from hexgraph.spatial import build_index_for_graph, create_spatial_index

from conftest import build_graph, ring_edges


@pytest.fixture
def disk_pairs(disk_graph):
    cells = sorted(disk_graph.cells)
    return list(zip(cells[::3], reversed(cells[::2])))


class TestRoutePairs:
    """Tests for ordered batch results."""

    def test_results_follow_input_order(self, disk_graph, disk_pairs):
        serial = BatchRouter(disk_graph, max_workers=1).route_pairs(disk_pairs)
        parallel = BatchRouter(disk_graph, max_workers=8).route_pairs(disk_pairs)

        assert [r.index for r in serial] == list(range(len(disk_pairs)))
        assert [(r.origin, r.destination) for r in parallel] == disk_pairs
        assert [r.path for r in serial] == [r.path for r in parallel]
        assert all(r.status is RouteStatus.FOUND for r in parallel)

    def test_failures_do_not_stop_the_batch(self, ring_graph, ring_cells):
        a, b, c, d = ring_cells
        pairs = [(a, c), (a, 42), ("not-a-cell", c), (b, d)]
        results = BatchRouter(ring_graph, max_workers=2).route_pairs(pairs)

        assert [r.status for r in results] == [
            RouteStatus.FOUND,
            RouteStatus.FAILED,
            RouteStatus.FAILED,
            RouteStatus.FOUND,
        ]
        assert results[1].error_type == "InvalidCell"
        assert results[0].cost == 2.0
        assert results[3].path.cells[0] == b

    def test_no_route_is_reported(self, ring_cells):
        a, b, c, d = ring_cells
        graph = build_graph(ring_edges(a, b, c, d, without={(b, c), (d, c)}))
        results = BatchRouter(graph, max_workers=2).route_pairs([(a, c), (c, a)])
        assert results[0].status is RouteStatus.NO_ROUTE
        assert results[0].reason == "exhausted"
        assert results[1].status is RouteStatus.FOUND

    def test_cancelled_before_start(self, ring_graph, ring_cells):
        a, _, c, _ = ring_cells
        cancel_event = threading.Event()
        cancel_event.set()
        results = BatchRouter(ring_graph, max_workers=2).route_pairs(
            [(a, c), (c, a)], cancel_event=cancel_event
        )
        assert [r.status for r in results] == [RouteStatus.CANCELLED] * 2
        assert results[0].path is None

    def test_empty_batch(self, ring_graph):
        assert BatchRouter(ring_graph).route_pairs([]) == []

    def test_to_dict(self, ring_graph, ring_cells):
        a, _, c, _ = ring_cells
        row = BatchRouter(ring_graph).route_pairs([(a, c)])[0].to_dict()
        assert row["status"] == "found"
        assert row["cost"] == 2.0
        assert row["num_cells"] == 3

    def test_create_batch_router(self, ring_graph):
        router = create_batch_router(ring_graph, max_workers=3, heuristic="grid")
        assert router.max_workers == 3
        assert router.engine.heuristic == "grid"


class TestManyToMany:
    """Tests for one sweep per origin."""

    def test_rows_per_origin_in_order(self, ring_cells):
        a, b, c, d = ring_cells
        graph = build_graph(ring_edges(a, b, c, d, without={(d, c)}))
        rows = BatchRouter(graph, max_workers=3).many_to_many([a, c, d], [c, a])

        assert len(rows) == 3
        assert [len(row) for row in rows] == [2, 2, 2]
        assert [r.index for row in rows for r in row] == list(range(6))
        assert rows[0][0].cost == 2.0
        assert rows[1][1].path.cells[0] == c
        assert rows[1][0].path.cells == (c,)
        assert rows[2][0].cost == 3.0
        assert rows[2][1].status is RouteStatus.FOUND

    def test_matches_single_searches(self, disk_graph):
        cells = sorted(disk_graph.cells)
        origins, destinations = cells[:4], cells[-3:]
        rows = BatchRouter(disk_graph, max_workers=2).many_to_many(origins, destinations)
        engine = BatchRouter(disk_graph).engine
        for origin, row in zip(origins, rows):
            for destination, result in zip(destinations, row):
                assert result.destination == destination
                assert result.cost == pytest.approx(engine.shortest_path(origin, destination).cost)

    def test_invalid_origin_fails_only_its_row(self, ring_graph, ring_cells):
        a, _, c, _ = ring_cells
        rows = BatchRouter(ring_graph, max_workers=2).many_to_many([a, "zz-not-a-cell"], [c])

        assert rows[0][0].status is RouteStatus.FOUND
        assert rows[0][0].cost == 2.0
        assert rows[1][0].status is RouteStatus.FAILED
        assert rows[1][0].error_type == "InvalidCell"
        assert rows[1][0].origin == "zz-not-a-cell"

    def test_invalid_destination_fails_only_its_column(self, ring_graph, ring_cells):
        a, b, c, _ = ring_cells
        parent = H3Grid.parent(c, 8)
        rows = BatchRouter(ring_graph, max_workers=2).many_to_many([a, b], [c, parent, 7])

        for row in rows:
            assert [r.status for r in row] == [
                RouteStatus.FOUND,
                RouteStatus.FAILED,
                RouteStatus.FAILED,
            ]
            assert row[1].error_type == "InvalidResolution"
            assert row[2].error_type == "InvalidCell"
        assert rows[1][0].cost == 1.0

    def test_unreachable_destination_is_no_route(self, ring_cells):
        a, b, c, d = ring_cells
        graph = build_graph(ring_edges(a, b, c, d, without={(b, c), (d, c)}))
        row = BatchRouter(graph).many_to_many([a], [c, b])[0]
        assert row[0].status is RouteStatus.NO_ROUTE
        assert row[0].reason == "exhausted"
        assert row[1].status is RouteStatus.FOUND

    def test_cancelled_before_start(self, ring_graph, ring_cells):
        a, _, c, _ = ring_cells
        cancel_event = threading.Event()
        cancel_event.set()
        rows = BatchRouter(ring_graph, max_workers=2).many_to_many(
            [a, c], [c, a], cancel_event=cancel_event
        )
        assert [r.status for row in rows for r in row] == [RouteStatus.CANCELLED] * 4


class TestCoordinatePairs:
    """Tests for snapping and routing coordinate pairs."""

    def test_bad_rows_fail_on_their_own(self, ring_graph, ring_cells):
        a, b, c, _ = ring_cells
        index = build_index_for_graph(ring_graph, "balanced-tree")
        pairs = [
            (H3Grid.cell_to_latlng(a), H3Grid.cell_to_latlng(c)),
            ((float("nan"), -122.4), H3Grid.cell_to_latlng(c)),
            (H3Grid.cell_to_latlng(a), (95.0, 0.0)),
            (H3Grid.cell_to_latlng(c), H3Grid.cell_to_latlng(a)),
        ]

        results = BatchRouter(ring_graph, max_workers=2).route_coordinate_pairs(index, pairs)

        assert [r.status for r in results] == [
            RouteStatus.FOUND,
            RouteStatus.FAILED,
            RouteStatus.FAILED,
            RouteStatus.FOUND,
        ]
        assert [r.index for r in results] == [0, 1, 2, 3]
        assert (results[0].origin, results[0].destination) == (a, c)
        assert results[1].error_type == "ValueError"
        assert results[1].origin is None
        assert results[3].path.cells[0] == c

    def test_empty_index_is_no_route(self, ring_graph):
        index = create_spatial_index("balanced-tree").build([])
        results = BatchRouter(ring_graph).route_coordinate_pairs(index, [((0.0, 0.0), (0.0, 0.1))])
        assert results[0].status is RouteStatus.NO_ROUTE
        assert results[0].reason == "no_snap_candidate"

    def test_index_resolution_must_match(self, ring_graph):
        coarse = [(H3Grid.cell_to_latlng(cell), H3Grid.parent(cell, 7)) for cell in ring_graph.cells]
        index = create_spatial_index("balanced-tree").build(coarse)
        with pytest.raises(BackendMismatch):
            BatchRouter(ring_graph).route_coordinate_pairs(index, [])

    def test_cancelled_before_start(self, ring_graph, ring_cells):
        a, _, c, _ = ring_cells
        index = build_index_for_graph(ring_graph, "balanced-tree")
        cancel_event = threading.Event()
        cancel_event.set()
        results = BatchRouter(ring_graph).route_coordinate_pairs(
            index, [(H3Grid.cell_to_latlng(a), H3Grid.cell_to_latlng(c))], cancel_event
        )
        assert results[0].status is RouteStatus.CANCELLED
