"""
Non-maximum suppression.

Thins the gradient module by keeping only the cells that are local maxima
along their gradient direction.
"""

import logging

import numpy as np

from contour_detection.exceptions import InvariantViolation

logger = logging.getLogger(__name__)

# Neighbor offsets (dx, dy) of the two cells lying along each direction bucket.
# Buckets come from floor(|slope| / (pi/4)); 0 and 4 both mean horizontal.
DIRECTION_NEIGHBORS = {
    0: ((1, 0), (-1, 0)),
    1: ((1, 1), (-1, -1)),
    2: ((0, 1), (0, -1)),
    3: ((-1, 1), (1, -1)),
    4: ((1, 0), (-1, 0)),
}


def direction_buckets(slope: np.ndarray) -> np.ndarray:
    """
    Discretize slope angles into the 5 direction buckets.

    Args:
        slope: Slope grid (radians, expected in [-pi, pi])

    Returns:
        int grid of bucket indices in 0-4
    """
    with np.errstate(invalid="ignore"):
        scaled = np.abs(slope.astype(np.float64)) / (np.pi / 4.0)
    if not np.all(np.isfinite(scaled)):
        raise InvariantViolation("Slope grid contains non-finite values")
    buckets = np.floor(scaled).astype(np.int64)
    if buckets.size and buckets.max() > 4:
        raise InvariantViolation(f"Direction bucket {int(buckets.max())} outside 0-4")
    return buckets


def local_extremum(slope: np.ndarray, module: np.ndarray) -> np.ndarray:
    """
    Suppress cells that are not maxima along the gradient direction.

    Starts from a copy of the module; each interior cell is zeroed unless it
    is >= both neighbors selected by its direction bucket.

    Args:
        slope: Slope grid
        module: Module grid (usually thresholded)

    Returns:
        Thinned module grid
    """
    if slope.shape != module.shape:
        raise InvariantViolation(f"Slope {slope.shape} and module {module.shape} shapes differ")

    res = module.copy()
    rows, cols = module.shape
    if rows < 3 or cols < 3:
        return res

    buckets = direction_buckets(slope[1:-1, 1:-1])
    center = module[1:-1, 1:-1]
    suppressed = np.zeros(center.shape, dtype=bool)

    for bucket, ((dx1, dy1), (dx2, dy2)) in DIRECTION_NEIGHBORS.items():
        selected = buckets == bucket
        if not np.any(selected):
            continue
        point1 = module[1 + dx1:rows - 1 + dx1, 1 + dy1:cols - 1 + dy1]
        point2 = module[1 + dx2:rows - 1 + dx2, 1 + dy2:cols - 1 + dy2]
        suppressed |= selected & ~((center >= point1) & (center >= point2))

    res[1:-1, 1:-1][suppressed] = 0.0
    logger.debug(f"Local extrema: suppressed {int(suppressed.sum())} cells")
    return res
