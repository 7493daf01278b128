"""Shared fixtures for the hexgraph test suite."""

import numpy as np
import pytest
import h3.api.basic_int as h3int
from shapely.geometry import LineString

from hexgraph.graph import GraphBuilder
from hexgraph.h3 import H3Grid, latlng_to_cell
from hexgraph.ingest import LineFeature

RESOLUTION = 9
SF_LAT, SF_LNG = 37.7749, -122.4194


def build_graph(edges, resolution=RESOLUTION):
    """Build a frozen graph from (origin, destination, weight[, payload]) tuples."""
    builder = GraphBuilder(resolution)
    for edge in edges:
        builder.add_edge(*edge)
    return builder.build()


@pytest.fixture(scope="session")
def ring_cells():
    """Four cells A, B, C, D where B and D are the two common neighbors of A and C."""
    a = latlng_to_cell(SF_LAT, SF_LNG, RESOLUTION)
    for c in sorted(h3int.grid_ring(a, 2)):
        common = sorted(set(H3Grid.neighbors(a)) & set(H3Grid.neighbors(c)))
        if len(common) == 2:
            b, d = common
            return a, b, c, d
    raise RuntimeError("no ring found around test cell")


def ring_edges(a, b, c, d, without=()):
    """Bidirectional unit-weight ring; A -> B is inserted before A -> D."""
    edges = [
        (a, b, 1.0),
        (a, d, 1.0),
        (b, a, 1.0),
        (b, c, 1.0),
        (c, b, 1.0),
        (c, d, 1.0),
        (d, c, 1.0),
        (d, a, 1.0),
    ]
    return [e for e in edges if (e[0], e[1]) not in without]


@pytest.fixture
def ring_graph(ring_cells):
    return build_graph(ring_edges(*ring_cells))


@pytest.fixture(scope="session")
def disk_graph():
    """All neighbor edges inside a radius-4 disk with seeded random weights in [1, 5)."""
    center = latlng_to_cell(SF_LAT, SF_LNG, RESOLUTION)
    cells = sorted(h3int.grid_disk(center, 4))
    members = set(cells)
    rng = np.random.RandomState(42)

    edges = []
    for origin in cells:
        for destination in H3Grid.neighbors(origin):
            if destination in members:
                edges.append((origin, destination, float(rng.uniform(1.0, 5.0))))
    return build_graph(edges)


@pytest.fixture
def line_features():
    """Two short streets in San Francisco, one of them one-way."""
    return [
        LineFeature(
            geometry=LineString([(-122.4194, 37.7749), (-122.4100, 37.7790)]),
            speed_kph=40.0,
            tag="market",
        ),
        LineFeature(
            geometry=LineString([(-122.4150, 37.7700), (-122.4150, 37.7800)]),
            speed_kph=30.0,
            oneway=True,
            tag="polk",
        ),
    ]
