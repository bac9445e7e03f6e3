"""Tests for the Freeman contour tracer and edge closure."""

import numpy as np
import pytest

from conftest import make_binary
from contour_detection.exceptions import InvariantViolation
from contour_detection.freeman import Edge, edges_closure, freeman_encoding, trace_edges


def test_isolated_pixel_gives_empty_edge():
    edges = freeman_encoding(make_binary(5, 5, [(2, 2)]))
    assert len(edges) == 1
    edge = edges[0]
    assert edge.start == edge.end == (2, 2)
    assert edge.directions == []


def test_horizontal_run(horizontal_run):
    edges = freeman_encoding(horizontal_run)
    assert len(edges) == 1
    edge = edges[0]
    assert edge.start == (3, 1)
    assert edge.end == (3, 5)
    assert edge.directions == [0, 0, 0, 0]
    assert len(edge) == 4


def test_vertical_run_follows_direction_6():
    edges = freeman_encoding(make_binary(7, 5, [(x, 2) for x in range(1, 5)]))
    assert [e.directions for e in edges] == [[6, 6, 6]]
    assert edges[0].end == (4, 2)


def test_weak_pixels_are_ignored():
    grid = make_binary(5, 5, [(2, 2)])
    grid[2, 3] = 20.0
    edges = freeman_encoding(grid)
    assert [e.directions for e in edges] == [[]]


def test_points_replay_directions():
    edge = Edge(sx=1, sy=1, ex=2, ey=3, directions=[0, 7])
    assert edge.points() == [(1, 1), (1, 2), (2, 3)]


def test_points_end_at_edge_end():
    grid = make_binary(10, 10, [(2, y) for y in range(2, 8)] + [(x, 7) for x in range(3, 7)]
                       + [(6, y) for y in range(2, 7)] + [(x, 2) for x in range(3, 6)])
    for edge in freeman_encoding(grid):
        assert edge.points()[-1] == edge.end


def test_trace_reproduces_binary_grid():
    rng = np.random.default_rng(3)
    grid = np.zeros((16, 20), dtype=np.float32)
    grid[1:-1, 1:-1] = np.where(rng.random((14, 18)) < 0.35, 255.0, 0.0)

    traced = trace_edges(freeman_encoding(grid), 16, 20)

    np.testing.assert_array_equal(traced > 0, grid > 0)


def test_trace_rejects_edges_leaving_the_grid():
    with pytest.raises(InvariantViolation):
        trace_edges([Edge(sx=0, sy=0, ex=0, ey=0, directions=[4])], 3, 3)


def test_closure_bridges_two_pixel_gap(gapped_runs):
    edges = freeman_encoding(gapped_runs)
    assert [(e.start, e.end) for e in edges] == [((3, 1), (3, 3)), ((3, 6), (3, 8))]

    # Slope 1.0 makes the walks move along row 3
    slope = np.full(gapped_runs.shape, 1.0, dtype=np.float32)
    edges_closure(edges, gapped_runs, slope, 3)

    assert edges[0].end == (3, 5)
    assert edges[0].directions == [0, 0, 0, 0]
    assert edges[1].start == (3, 4)
    assert edges[1].directions == [0, 0, 0, 0]

    traced = trace_edges(edges, *gapped_runs.shape)
    expected = np.zeros(gapped_runs.shape, dtype=np.uint8)
    expected[3, 1:9] = 255
    np.testing.assert_array_equal(traced, expected)


def test_closure_needs_enough_iterations(gapped_runs):
    edges = freeman_encoding(gapped_runs)
    slope = np.full(gapped_runs.shape, 1.0, dtype=np.float32)
    edges_closure(edges, gapped_runs, slope, 1)

    traced = trace_edges(edges, *gapped_runs.shape)
    assert traced[3, 4] == 0
    assert traced[3, 5] == 0


def test_closure_keeps_chains_connected(gapped_runs):
    edges = freeman_encoding(gapped_runs)
    slope = np.full(gapped_runs.shape, 1.0, dtype=np.float32)
    edges_closure(edges, gapped_runs, slope, 5)
    for edge in edges:
        assert edge.points()[0] == edge.start
        assert edge.points()[-1] == edge.end


def test_closure_skips_single_pixel_edges():
    grid = make_binary(7, 7, [(3, 3), (3, 5)])
    edges = freeman_encoding(grid)
    slope = np.full(grid.shape, 1.0, dtype=np.float32)
    edges_closure(edges, grid, slope, 5)
    assert all(e.directions == [] for e in edges)


def test_closure_shape_mismatch_raises(horizontal_run):
    with pytest.raises(InvariantViolation):
        edges_closure([], horizontal_run, np.zeros((2, 2), dtype=np.float32))
