"""Tests for edge weight stores, graph assembly and the frozen graph."""

import math

import pytest

from hexgraph.common import GraphFrozen, InvalidEdge, InvalidResolution, InvalidWeight
from hexgraph.graph import EdgeWeightStore, GraphBuilder, H3EdgeGraph, graph_from_edges
from hexgraph.h3 import H3Grid, latlng_to_cell

from conftest import build_graph, ring_edges


class TestEdgeWeightStore:
    """Tests for insertion rules of a single store."""

    def test_edges_keep_insertion_order(self, ring_cells):
        a, b, c, d = ring_cells
        store = EdgeWeightStore(9)
        store.add_edge(a, d, 2.0)
        store.add_edge(a, b, 1.0)
        assert store.edges_from(a) == ((d, 2.0), (b, 1.0))
        assert store.edges_from(c) == ()

    def test_lower_weight_replaces_in_place(self, ring_cells):
        a, b, c, d = ring_cells
        store = EdgeWeightStore(9)
        store.add_edge(a, b, 3.0, "first")
        store.add_edge(a, d, 1.0)
        assert store.add_edge(a, b, 2.0, "second")
        assert not store.add_edge(a, b, 2.0, "tie")
        assert not store.add_edge(a, b, 5.0, "worse")

        assert store.edges_from(a) == ((b, 2.0), (d, 1.0))
        assert store.get(a, b).payload == "second"
        assert len(store) == 2

    def test_rejects_non_neighbors(self, ring_cells):
        a, b, c, d = ring_cells
        store = EdgeWeightStore(9)
        with pytest.raises(InvalidEdge):
            store.add_edge(a, c, 1.0)
        assert len(store) == 0

    def test_builder_rejects_distant_shortcuts(self, ring_cells):
        a, b, _, _ = ring_cells
        far = latlng_to_cell(37.80, -122.40, 9)
        builder = GraphBuilder(9)
        builder.add_edge(a, b, 1.0)
        with pytest.raises(InvalidEdge):
            builder.add_edge(a, far, 3.0)
        with pytest.raises(InvalidEdge):
            builder.new_pass().add_edge(b, far, 1.0)
        assert builder.build().num_edges == 1

    @pytest.mark.parametrize(
        "payload",
        [None, "osm", 12, 2.5, True, ["x", 1, None], {"way": 12, "tags": ["a", {"k": "v"}]}],
    )
    def test_accepts_json_payloads(self, ring_cells, payload):
        a, b, _, _ = ring_cells
        store = EdgeWeightStore(9)
        store.add_edge(a, b, 1.0, payload)
        assert store.get(a, b).payload == payload

    @pytest.mark.parametrize(
        "payload",
        [("osm", 42), b"raw", {1: "int key"}, {"nested": ("a",)}, {"a"}, math.nan, object()],
    )
    def test_rejects_payloads_that_do_not_persist(self, ring_cells, payload):
        a, b, _, _ = ring_cells
        store = EdgeWeightStore(9)
        with pytest.raises(InvalidEdge):
            store.add_edge(a, b, 1.0, payload)
        assert len(store) == 0

    @pytest.mark.parametrize("weight", [-1.0, math.nan, math.inf, "heavy", None])
    def test_rejects_invalid_weights(self, ring_cells, weight):
        a, b, _, _ = ring_cells
        store = EdgeWeightStore(9)
        with pytest.raises(InvalidWeight):
            store.add_edge(a, b, weight)
        assert len(store) == 0

    def test_invalid_weight_is_value_error(self, ring_cells):
        a, b, _, _ = ring_cells
        with pytest.raises(ValueError):
            EdgeWeightStore(9).add_edge(a, b, -0.5)

    def test_rejects_wrong_resolution(self, ring_cells):
        a, _, _, _ = ring_cells
        parent = H3Grid.parent(a, 8)
        store = EdgeWeightStore(9)
        with pytest.raises(InvalidResolution):
            store.add_edge(parent, H3Grid.neighbors(parent)[0], 1.0)

    def test_frozen_store_rejects_edges(self, ring_cells):
        a, b, _, d = ring_cells
        store = EdgeWeightStore(9)
        store.add_edge(a, b, 1.0)
        store.freeze()
        with pytest.raises(GraphFrozen):
            store.add_edge(a, d, 1.0)
        assert store.edges_from(a) == ((b, 1.0),)


class TestGraphBuilder:
    """Tests for deterministic assembly."""

    def test_base_layer_and_passes_merge_min_weight(self, ring_cells):
        a, b, c, d = ring_cells
        builder = GraphBuilder(9)
        builder.add_edge(a, b, 4.0, "base")

        first = builder.new_pass()
        first.add_edge(a, b, 2.0, "first")
        first.add_edge(b, c, 7.0, "first")
        second = builder.new_pass()
        second.add_edge(b, c, 3.0, "second")
        second.add_edge(a, b, 2.0, "second")

        builder.add_pass(second, key="tile-b")
        builder.add_pass(first, key="tile-a")
        graph = builder.build()

        assert graph.edges_from(a) == ((b, 2.0),)
        assert graph.edges.get(a, b).payload == "first"
        assert graph.edges.get(b, c).payload == "second"
        assert graph.weight(b, c) == 3.0

    def test_equal_keys_fall_back_to_registration(self, ring_cells):
        a, b, _, _ = ring_cells
        builder = GraphBuilder(9)
        for tag in ("one", "two"):
            store = builder.new_pass()
            store.add_edge(a, b, 1.0, tag)
            builder.add_pass(store, key=0)
        assert builder.build().edges.get(a, b).payload == "one"

    def test_run_passes_independent_of_worker_count(self, ring_cells):
        a, b, c, d = ring_cells
        sources = [
            ("east", [(a, b, 2.0), (b, c, 1.0)]),
            ("north", [(a, b, 2.0), (c, d, 3.0), (d, a, 1.0)]),
            ("west", [(a, b, 1.5), (a, d, 1.5), (c, d, 2.0)]),
        ]

        def fill(source, store):
            for origin, destination, weight in source[1]:
                store.add_edge(origin, destination, weight, source[0])

        graphs = []
        for workers in (1, 4):
            builder = GraphBuilder(9, max_workers=workers)
            builder.run_passes(sources, fill, key_fn=lambda source: source[0])
            graphs.append(builder.build())

        assert graphs[0] == graphs[1]
        assert [e.to_dict() for e in graphs[0].iter_edges()] == [
            e.to_dict() for e in graphs[1].iter_edges()
        ]
        assert graphs[0].edges.get(a, b).weight == 1.5
        assert graphs[0].edges.get(c, d).payload == "west"

    def test_failing_pass_registers_nothing(self, ring_cells):
        a, b, c, _ = ring_cells
        builder = GraphBuilder(9, max_workers=2)

        def fill(source, store):
            store.add_edge(*source)

        with pytest.raises(InvalidEdge):
            builder.run_passes([(a, b, 1.0), (a, c, 1.0)], fill)

        assert builder.build().num_edges == 0

    def test_build_is_idempotent(self, ring_cells):
        builder = GraphBuilder(9)
        for edge in ring_edges(*ring_cells):
            builder.add_edge(*edge)
        graph = builder.build()
        again = builder.build()
        assert again is graph
        assert again.num_edges == 8

    def test_frozen_after_build(self, ring_cells):
        a, b, _, d = ring_cells
        builder = GraphBuilder(9)
        builder.add_edge(a, b, 1.0)
        graph = builder.build()
        with pytest.raises(GraphFrozen):
            builder.add_edge(a, d, 1.0)
        with pytest.raises(GraphFrozen):
            builder.add_pass(builder.new_pass(), key=1)
        with pytest.raises(GraphFrozen):
            graph.add_edge(a, d, 1.0)

    def test_pass_resolution_must_match(self):
        builder = GraphBuilder(9)
        with pytest.raises(InvalidResolution):
            builder.add_pass(EdgeWeightStore(8), key=0)


class TestH3EdgeGraph:
    """Tests for graph accessors."""

    def test_nodes_are_edge_endpoints(self, ring_graph, ring_cells):
        assert ring_graph.num_nodes == 4
        assert ring_graph.num_edges == 8
        for cell in ring_cells:
            assert cell in ring_graph

    def test_repeated_queries_are_identical(self, ring_graph, ring_cells):
        a = ring_cells[0]
        assert ring_graph.edges_from(a) == ring_graph.edges_from(a)
        assert [dest for dest, _ in ring_graph.edges_from(a)] == [ring_cells[1], ring_cells[3]]

    def test_stats(self, ring_cells):
        a, b, c, _ = ring_cells
        graph = build_graph([(a, b, 1.0), (b, c, 3.0), (b, a, 2.0)])
        stats = graph.stats()
        assert stats.num_nodes == 3
        assert stats.num_edges == 3
        assert stats.num_origins == 2
        assert stats.min_weight == 1.0
        assert stats.max_weight == 3.0
        assert stats.mean_weight == pytest.approx(2.0)

    def test_empty_graph(self):
        graph = GraphBuilder(9).build()
        assert graph.num_nodes == 0
        assert graph.min_weight is None
        assert graph.edges_from(H3Grid.latlng_to_cell(0.0, 0.0, 9)) == ()

    def test_graph_from_edges(self, ring_cells):
        a, b, _, _ = ring_cells
        store = EdgeWeightStore(9)
        store.add_edge(a, b, 1.0)
        graph = graph_from_edges(store)
        assert isinstance(graph, H3EdgeGraph)
        assert graph.has_edge(a, b)
        assert not graph.has_edge(b, a)
