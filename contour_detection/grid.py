"""
Grid helpers.

A grid is a plain 2D numpy array: float32 for intensity and gradient data,
uint8 for binary maps and vote counts. Every stage allocates and returns a new
grid of the same shape as its primary input unless documented otherwise.

Functions:
- new_grid: Zero-filled grid allocation
- in_bounds / at: Bounds-checked element access
- as_float_grid: Convert a decoded image to a float32 grid
- to_binary: 0/255 binary map of strictly positive cells
- to_display: Clip and truncate a float grid to uint8
"""

import numpy as np
from typing import Any

from contour_detection.exceptions import InvariantViolation

FLOAT_DTYPE = np.float32
BINARY_DTYPE = np.uint8


def new_grid(rows: int, cols: int, dtype: Any = FLOAT_DTYPE) -> np.ndarray:
    """Allocate a zero-filled grid of shape (rows, cols)."""
    if rows < 0 or cols < 0:
        raise ValueError(f"Invalid grid size: {rows}x{cols}")
    return np.zeros((rows, cols), dtype=dtype)


def in_bounds(grid: np.ndarray, x: int, y: int) -> bool:
    """Return True if (x, y) is a valid (row, column) index of grid."""
    return 0 <= x < grid.shape[0] and 0 <= y < grid.shape[1]


def at(grid: np.ndarray, x: int, y: int):
    """
    Bounds-checked element access.

    Negative indices are rejected instead of wrapping around as numpy would.

    Args:
        grid: 2D grid
        x: Row index
        y: Column index

    Returns:
        Value stored at (x, y)
    """
    if not in_bounds(grid, x, y):
        raise InvariantViolation(
            f"Grid access ({x}, {y}) outside {grid.shape[0]}x{grid.shape[1]} grid"
        )
    return grid[x, y]


def check_2d(grid: np.ndarray, name: str = "grid") -> None:
    """Raise ValueError unless grid is a 2D array."""
    if not isinstance(grid, np.ndarray) or grid.ndim != 2:
        shape = getattr(grid, "shape", None)
        raise ValueError(f"{name} must be a 2D array, got shape {shape}")


def as_float_grid(image: np.ndarray) -> np.ndarray:
    """
    Convert a decoded single-channel image to a float32 grid.

    Args:
        image: Grayscale image (any numeric dtype), values conventionally 0-255

    Returns:
        float32 copy of the image
    """
    image = np.asarray(image)
    if image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]
    check_2d(image, "image")
    return image.astype(FLOAT_DTYPE, copy=True)


def to_binary(grid: np.ndarray) -> np.ndarray:
    """Return a uint8 map holding 255 where grid > 0 and 0 elsewhere."""
    return np.where(grid > 0, 255, 0).astype(BINARY_DTYPE)


def to_display(grid: np.ndarray) -> np.ndarray:
    """Clip a float grid to [0, 255] and truncate it to uint8."""
    return np.clip(grid, 0, 255).astype(BINARY_DTYPE)
