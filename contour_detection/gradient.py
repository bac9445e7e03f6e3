"""
Gradient combiner.

Turns the directional filter responses into a gradient module (magnitude)
and slope (direction angle), and maps the slope onto a 4-quadrant color code
for visualization.

Functions:
- normalize / normalized: Rescale a float grid to [0, 255]
- module_linf: L-infinity module (max of absolute components)
- module_l1: L1 module of the two strongest components
- compute_module: Norm dispatcher
- compute_slope: Gradient direction from components
- color_map: 4-quadrant direction color coding
"""

import logging
from enum import Enum
from typing import Sequence

import numpy as np

from contour_detection.exceptions import InvariantViolation
from contour_detection.grid import FLOAT_DTYPE

logger = logging.getLogger(__name__)


class GradientNorm(Enum):
    """Norm used to combine directional components into a module."""
    LINF = "linf"
    L1 = "l1"


def _check_components(components: Sequence[np.ndarray]) -> int:
    n = len(components)
    if n not in (2, 4):
        raise InvariantViolation(f"Expected 2 or 4 directional components, got {n}")
    shape = components[0].shape
    for c in components[1:]:
        if c.shape != shape:
            raise InvariantViolation(f"Component shapes differ: {shape} vs {c.shape}")
    return n


def normalize(src: np.ndarray) -> np.ndarray:
    """
    Linearly rescale a float grid to [0, 255], in place.

    A uniform grid (max == min) has no dynamic range and is set to 0.

    Args:
        src: Float grid, modified in place

    Returns:
        The same array, for chaining
    """
    if src.size == 0:
        return src

    vmin = float(src.min())
    vmax = float(src.max())

    if vmax == vmin:
        logger.debug(f"Uniform grid (value={vmin}), normalized to zeros")
        src[...] = 0.0
        return src

    src[...] = (src - vmin) / (vmax - vmin) * 255.0
    return src


def normalized(src: np.ndarray) -> np.ndarray:
    """Return a rescaled float32 copy of src (see normalize)."""
    return normalize(np.array(src, dtype=FLOAT_DTYPE, copy=True))


def module_linf(components: Sequence[np.ndarray]) -> np.ndarray:
    """
    Gradient module with the L-infinity norm.

    Args:
        components: 2 or 4 directional filter responses

    Returns:
        Normalized module: per cell, max of |component_k|
    """
    _check_components(components)
    res = np.max(np.abs(np.stack(components)), axis=0).astype(FLOAT_DTYPE)
    return normalize(res)


def module_l1(components: Sequence[np.ndarray]) -> np.ndarray:
    """
    Gradient module with the L1 norm.

    Only the two strongest absolute responses are summed, so the 4-direction
    case does not accumulate redundant diagonal responses.

    Args:
        components: 2 or 4 directional filter responses

    Returns:
        Normalized module: per cell, sum of the two largest |component_k|
    """
    n = _check_components(components)
    magnitudes = np.abs(np.stack(components))
    if n == 2:
        res = magnitudes[0] + magnitudes[1]
    else:
        top_two = np.sort(magnitudes, axis=0)[-2:]
        res = top_two[0] + top_two[1]
    return normalize(res.astype(FLOAT_DTYPE))


def compute_module(components: Sequence[np.ndarray], norm: GradientNorm = GradientNorm.LINF) -> np.ndarray:
    """Compute the module with the requested norm."""
    if norm == GradientNorm.LINF:
        return module_linf(components)
    if norm == GradientNorm.L1:
        return module_l1(components)
    raise ValueError(f"Unsupported norm: {norm}")


def compute_slope(components: Sequence[np.ndarray], module: np.ndarray) -> np.ndarray:
    """
    Gradient direction per cell.

    theta = atan2(component[1], component[0]). With 4 components the
    diagonal angle atan2(component[3], component[2]) is combined with max.
    Cells where the module is 0 get slope 0.

    Args:
        components: 2 or 4 directional filter responses
        module: Module grid (possibly thresholded)

    Returns:
        float32 slope grid in radians
    """
    n = _check_components(components)
    theta = np.arctan2(components[1], components[0]).astype(FLOAT_DTYPE)
    if n == 4:
        diagonal = np.arctan2(components[3], components[2]).astype(FLOAT_DTYPE)
        theta = np.maximum(theta, diagonal)
    return np.where(module == 0.0, FLOAT_DTYPE(0.0), theta).astype(FLOAT_DTYPE)


def color_map(slope: np.ndarray, module: np.ndarray) -> np.ndarray:
    """
    Color code of the gradient direction, weighted by the module.

    Quadrants of width pi/2 starting at -pi:
        [-pi, -pi/2)  -> channel 1
        [-pi/2, 0)    -> channels 0 and 2
        [0, pi/2)     -> channel 0
        otherwise     -> channel 2

    Args:
        slope: Slope grid (radians)
        module: Module grid

    Returns:
        rows x cols x 3 float32 grid, zero where module is 0
    """
    rows, cols = module.shape
    res = np.zeros((rows, cols, 3), dtype=FLOAT_DTYPE)
    valid = module != 0.0
    pi = np.pi

    q1 = valid & (slope >= -pi) & (slope < -pi / 2.0)
    q2 = valid & (slope >= -pi / 2.0) & (slope < 0.0)
    q3 = valid & (slope >= 0.0) & (slope < pi / 2.0)
    q4 = valid & ~(q1 | q2 | q3)

    res[q1, 1] = module[q1]
    res[q2, 0] = module[q2]
    res[q2, 2] = module[q2]
    res[q3, 0] = module[q3]
    res[q4, 2] = module[q4]
    return res
