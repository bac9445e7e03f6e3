"""Tests for the gradient combiner."""

import math

import numpy as np

from contour_detection.gradient import (
    GradientNorm,
    color_map,
    compute_module,
    compute_slope,
    module_l1,
    normalize,
    normalized,
)


def test_normalize_spans_full_range_in_place():
    src = np.array([[-4.0, 0.0], [6.0, 1.0]], dtype=np.float32)
    res = normalize(src)
    assert res is src
    assert src.min() == 0.0
    assert src.max() == 255.0
    assert math.isclose(float(src[0, 1]), 4.0 / 10.0 * 255.0, rel_tol=1e-6)


def test_normalize_uniform_grid_gives_zeros():
    src = np.full((3, 3), 42.0, dtype=np.float32)
    normalize(src)
    assert not src.any()


def test_normalized_leaves_input_untouched():
    src = np.array([[1.0, 3.0]], dtype=np.float32)
    res = normalized(src)
    np.testing.assert_array_equal(src, [[1.0, 3.0]])
    np.testing.assert_array_equal(res, [[0.0, 255.0]])


def test_module_l1_two_directions_is_abs_sum():
    rng = np.random.default_rng(1234)
    for _ in range(5):
        c0 = rng.normal(0, 100, size=(12, 9)).astype(np.float32)
        c1 = rng.normal(0, 100, size=(12, 9)).astype(np.float32)
        expected = normalized(np.abs(c0) + np.abs(c1))
        np.testing.assert_allclose(module_l1([c0, c1]), expected, rtol=1e-5, atol=1e-3)


def _components(*cells):
    # One (1, n) component grid per direction, cells given per direction tuple
    return [np.array([[cell[k] for cell in cells]], dtype=np.float32) for k in range(4)]


def test_module_l1_four_directions_sums_two_largest():
    comps = _components((1, 5, -3, 2), (6, 0, 0, 0), (1, 1, 1, -1))
    # Raw values 8, 6, 2
    np.testing.assert_allclose(compute_module(comps, GradientNorm.L1), [[255.0, 170.0, 0.0]], atol=1e-3)


def test_module_linf_four_directions():
    comps = _components((1, 5, -3, 2), (-6, 0, 0, 0), (1, 1, 1, -1))
    # Raw values 5, 6, 1
    np.testing.assert_allclose(compute_module(comps, GradientNorm.LINF), [[204.0, 255.0, 0.0]], atol=1e-3)


def test_slope_two_directions():
    c0 = np.array([[1.0, 0.0, 1.0]], dtype=np.float32)
    c1 = np.array([[1.0, 1.0, 1.0]], dtype=np.float32)
    module = np.array([[10.0, 10.0, 0.0]], dtype=np.float32)
    slope = compute_slope([c0, c1], module)
    np.testing.assert_allclose(slope, [[math.pi / 4, math.pi / 2, 0.0]], atol=1e-6)


def test_slope_four_directions_takes_max_angle():
    comps = _components((1, 1, 0, 1))
    module = np.ones((1, 1), dtype=np.float32)
    slope = compute_slope(comps, module)
    assert math.isclose(float(slope[0, 0]), math.pi / 2, abs_tol=1e-6)


def test_color_map_quadrants():
    slope = np.array([[-3.0, -1.0, 0.5, 2.0, 1.0]], dtype=np.float32)
    module = np.array([[10.0, 20.0, 30.0, 40.0, 0.0]], dtype=np.float32)
    res = color_map(slope, module)
    assert res.shape == (1, 5, 3)
    np.testing.assert_array_equal(res[0, 0], [0, 10, 0])
    np.testing.assert_array_equal(res[0, 1], [20, 0, 20])
    np.testing.assert_array_equal(res[0, 2], [30, 0, 0])
    np.testing.assert_array_equal(res[0, 3], [0, 0, 40])
    np.testing.assert_array_equal(res[0, 4], [0, 0, 0])


def test_step_edge_module(step_image):
    from contour_detection.convolution import apply_directional_filters
    from contour_detection.kernels import FilterKernelType, build_directional_kernels

    components = apply_directional_filters(step_image, build_directional_kernels(FilterKernelType.PREWITT))
    module = compute_module(components)
    expected = np.zeros_like(module)
    expected[1:-1, 4:6] = 255.0
    np.testing.assert_array_equal(module, expected)
