"""Shared test fixtures."""

import numpy as np
import pytest


def make_binary(rows: int, cols: int, pixels) -> np.ndarray:
    """float32 grid with 255 at the given (row, column) pixels."""
    grid = np.zeros((rows, cols), dtype=np.float32)
    for x, y in pixels:
        grid[x, y] = 255.0
    return grid


# Offsets of the 12 lattice points lying exactly on a circle of radius 5
CIRCLE_R5_OFFSETS = [
    (5, 0), (-5, 0), (0, 5), (0, -5),
    (3, 4), (3, -4), (-3, 4), (-3, -4),
    (4, 3), (4, -3), (-4, 3), (-4, -3),
]


@pytest.fixture
def step_image() -> np.ndarray:
    """10x10 image, dark left half, bright right half (columns 5-9)."""
    image = np.zeros((10, 10), dtype=np.float32)
    image[:, 5:] = 200.0
    return image


@pytest.fixture
def square_image() -> np.ndarray:
    """32x32 uint8 image with a bright filled square in the middle."""
    image = np.full((32, 32), 20, dtype=np.uint8)
    image[8:24, 8:24] = 220
    return image


@pytest.fixture
def horizontal_run() -> np.ndarray:
    """7x9 binary grid with a 5 pixel run on row 3."""
    return make_binary(7, 9, [(3, y) for y in range(1, 6)])


@pytest.fixture
def gapped_runs() -> np.ndarray:
    """7x12 binary grid with two runs on row 3 separated by a 2 pixel gap."""
    return make_binary(7, 12, [(3, 1), (3, 2), (3, 3), (3, 6), (3, 7), (3, 8)])


@pytest.fixture
def circle_points() -> np.ndarray:
    """21x21 binary grid with the radius 5 lattice circle centered at (10, 10)."""
    return make_binary(21, 21, [(10 + dx, 10 + dy) for dx, dy in CIRCLE_R5_OFFSETS])


@pytest.fixture
def ramp_image() -> np.ndarray:
    """32x32 uint8 horizontal quadratic ramp: the gradient grows linearly."""
    cols = np.arange(32, dtype=np.float64)
    row = (cols * cols * 255.0 / (31.0 * 31.0)).astype(np.uint8)
    return np.tile(row, (32, 1))
