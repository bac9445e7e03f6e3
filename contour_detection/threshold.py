"""
Threshold engine.

Three interchangeable strategies filter the gradient module:
- Global: histogram-based threshold keeping a percentage of the module mass
- Local: cells below the mean of their neighborhood are removed
- Hysteresis: strong cells are kept, weak cells only when 4-connected to a
  strong one

Functions:
- compute_global_threshold: Histogram percentile threshold value
- apply_threshold / apply_threshold_in_place: Zero cells below a threshold
- global_threshold: Global strategy
- local_threshold: Local mean strategy
- combine_hysteresis: Merge high/low maps with 4-connectivity
- hysteresis_threshold: Hysteresis strategy
- apply_threshold_strategy: Strategy dispatcher driven by ThresholdConfig
- remove_isolated_points: Remove cells with too few neighbors (in place)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np

from contour_detection.exceptions import InvariantViolation
from contour_detection.grid import FLOAT_DTYPE, check_2d
from contour_detection.threshold_constants import (
    HISTOGRAM_BINS,
    MAX_THRESHOLD,
    DEFAULT_GLOBAL_PERCENT,
    DEFAULT_LOCAL_WINDOW,
    DEFAULT_HYSTERESIS_HIGH_PERCENT,
    DEFAULT_HYSTERESIS_LOW_PERCENT,
)

logger = logging.getLogger(__name__)


class ThresholdType(Enum):
    """Threshold strategy."""
    GLOBAL = "global"
    LOCAL = "local"
    HYSTERESIS = "hysteresis"


@dataclass
class ThresholdConfig:
    """Parameters of the three threshold strategies."""
    global_percent: float = DEFAULT_GLOBAL_PERCENT
    local_window: int = DEFAULT_LOCAL_WINDOW
    hysteresis_high_percent: float = DEFAULT_HYSTERESIS_HIGH_PERCENT
    hysteresis_low_percent: float = DEFAULT_HYSTERESIS_LOW_PERCENT


def _check_percent(percent: float) -> None:
    if not 0.0 <= percent <= 100.0:
        raise ValueError(f"Invalid percentage: {percent}. Use a value in [0, 100]")


# =============================================================================
# Global Threshold
# =============================================================================

def compute_histogram(module: np.ndarray) -> Tuple[np.ndarray, int]:
    """
    Build the 256-bin histogram of a normalized module.

    Args:
        module: Float grid with values in [0, 255]

    Returns:
        Tuple of (histogram, sum of the truncated cell values)
    """
    check_2d(module, "module")
    bins = module.astype(np.int64).ravel()
    if bins.size and (bins.min() < 0 or bins.max() >= HISTOGRAM_BINS):
        raise InvariantViolation(
            f"Module values must lie in [0, 255], got [{module.min()}, {module.max()}]"
        )
    histogram = np.bincount(bins, minlength=HISTOGRAM_BINS)
    return histogram, int(bins.sum())


def compute_global_threshold(module: np.ndarray, percent: float) -> int:
    """
    Determine a threshold keeping a percentage of the module mass.

    Accumulates histogram[i] * i for i = 1, 2, ... until the running sum
    reaches total * (100 - percent) / 100 or i reaches 255.

    Args:
        module: Normalized module grid
        percent: Percentage of valid pixels (0-100)

    Returns:
        Threshold value (index following the last accumulated bin)
    """
    _check_percent(percent)
    histogram, total = compute_histogram(module)
    target = int(total * ((100.0 - percent) / 100.0))

    running = 0
    i = 1
    while running < target and i < MAX_THRESHOLD:
        running += int(histogram[i]) * i
        i += 1

    logger.debug(f"Histogram sum: {total}, target: {target}, threshold: {i} ({percent}% valid)")
    return i


def apply_threshold(module: np.ndarray, threshold: float) -> np.ndarray:
    """Return a copy of module with every cell strictly below threshold set to 0."""
    res = module.copy()
    res[module < threshold] = 0.0
    return res


def apply_threshold_in_place(module: np.ndarray, threshold: float) -> None:
    """Set every cell of module strictly below threshold to 0."""
    module[module < threshold] = 0.0


def global_threshold(module: np.ndarray, percent: float = DEFAULT_GLOBAL_PERCENT) -> Tuple[np.ndarray, int]:
    """
    Global histogram strategy.

    Returns:
        Tuple of (thresholded module, threshold value)
    """
    threshold = compute_global_threshold(module, percent)
    return apply_threshold(module, threshold), threshold


# =============================================================================
# Local Threshold
# =============================================================================

def local_threshold(module: np.ndarray, window: int = DEFAULT_LOCAL_WINDOW) -> np.ndarray:
    """
    Local mean strategy.

    Each interior cell is compared with the mean of its (2w+1)^2
    neighborhood and removed when below it. Neighbors on row 0, column 0 or
    outside the grid are skipped, but the divisor stays the full window area,
    so the local mean is underestimated near the borders.

    Args:
        module: Module grid
        window: Half-size of the neighborhood (positive)

    Returns:
        Thresholded copy of module
    """
    check_2d(module, "module")
    if window < 1:
        raise ValueError(f"Invalid window size: {window}. Must be positive")

    res = module.copy()
    rows, cols = module.shape
    if rows < 3 or cols < 3:
        return res

    contributing = module.astype(np.float64)
    contributing[0, :] = 0.0
    contributing[:, 0] = 0.0

    # Box sums from a zero-padded integral image
    padded = np.pad(contributing, window + 1)
    integral = padded.cumsum(axis=0).cumsum(axis=1)
    size = 2 * window + 1
    box = (integral[size:size + rows, size:size + cols]
           - integral[0:rows, size:size + cols]
           - integral[size:size + rows, 0:cols]
           + integral[0:rows, 0:cols])
    local_mean = box / float(size * size)

    interior = np.zeros(module.shape, dtype=bool)
    interior[1:-1, 1:-1] = True
    below = interior & (module.astype(np.float64) < local_mean)
    res[below] = 0.0

    logger.debug(f"Local threshold (window={window}): removed {int(below.sum())} cells")
    return res


# =============================================================================
# Hysteresis Threshold
# =============================================================================

def _has_strong_neighbor(high_map: np.ndarray) -> np.ndarray:
    strong = high_map != 0.0
    neighbor = np.zeros_like(strong)
    neighbor[1:, :] |= strong[:-1, :]   # up
    neighbor[:-1, :] |= strong[1:, :]   # down
    neighbor[:, 1:] |= strong[:, :-1]   # left
    neighbor[:, :-1] |= strong[:, 1:]   # right
    return neighbor


def combine_hysteresis(high_map: np.ndarray, low_map: np.ndarray) -> np.ndarray:
    """
    Merge strong and weak maps.

    A cell takes its high-map value when nonzero there; otherwise its
    low-map value when nonzero and one of its 4 neighbors is nonzero in the
    high map; otherwise 0. Neighbors outside the grid count as zero.

    Args:
        high_map: Module thresholded at the high threshold
        low_map: Module thresholded at the low threshold

    Returns:
        Combined float32 grid
    """
    if high_map.shape != low_map.shape:
        raise InvariantViolation(f"Map shapes differ: {high_map.shape} vs {low_map.shape}")

    res = np.zeros(high_map.shape, dtype=FLOAT_DTYPE)
    strong = high_map != 0.0
    weak = ~strong & (low_map != 0.0) & _has_strong_neighbor(high_map)
    res[strong] = high_map[strong]
    res[weak] = low_map[weak]
    return res


def hysteresis_threshold(
    module: np.ndarray,
    high_percent: float = DEFAULT_HYSTERESIS_HIGH_PERCENT,
    low_percent: float = DEFAULT_HYSTERESIS_LOW_PERCENT,
) -> Tuple[np.ndarray, int, int]:
    """
    Hysteresis strategy.

    Args:
        module: Normalized module grid
        high_percent: Valid pixel percentage of the high threshold
        low_percent: Valid pixel percentage of the low threshold

    Returns:
        Tuple of (thresholded module, high threshold, low threshold)
    """
    high = compute_global_threshold(module, high_percent)
    low = compute_global_threshold(module, low_percent)
    if not high > low:
        raise InvariantViolation(
            f"Hysteresis high threshold ({high}) must exceed low threshold ({low}); "
            f"got high_percent={high_percent}, low_percent={low_percent}"
        )

    logger.debug(f"Hysteresis thresholds: low={low}, high={high}")

    high_map = apply_threshold(module, high)
    low_map = apply_threshold(module, low)
    return combine_hysteresis(high_map, low_map), high, low


# =============================================================================
# Dispatcher
# =============================================================================

def apply_threshold_strategy(
    module: np.ndarray,
    threshold_type: ThresholdType,
    config: ThresholdConfig,
) -> Dict[str, Any]:
    """
    Run the selected threshold strategy.

    Args:
        module: Normalized module grid
        threshold_type: Strategy to apply
        config: Strategy parameters

    Returns:
        Dictionary containing:
        - module: Thresholded module
        - threshold_type: Strategy name
        - global_threshold: Determined global threshold (or None)
        - hysteresis_high: Determined high threshold (or None)
        - hysteresis_low: Determined low threshold (or None)
    """
    result = {
        "threshold_type": threshold_type.value,
        "global_threshold": None,
        "hysteresis_high": None,
        "hysteresis_low": None,
    }

    if threshold_type == ThresholdType.GLOBAL:
        logger.debug(f"Global threshold, {config.global_percent}% valid pixels")
        result["module"], result["global_threshold"] = global_threshold(module, config.global_percent)
    elif threshold_type == ThresholdType.LOCAL:
        logger.debug(f"Local threshold, window size {config.local_window}")
        result["module"] = local_threshold(module, config.local_window)
    elif threshold_type == ThresholdType.HYSTERESIS:
        logger.debug(f"Hysteresis threshold, high={config.hysteresis_high_percent}% "
                     f"low={config.hysteresis_low_percent}%")
        result["module"], result["hysteresis_high"], result["hysteresis_low"] = hysteresis_threshold(
            module, config.hysteresis_high_percent, config.hysteresis_low_percent
        )
    else:
        raise ValueError(f"Unknown threshold type: {threshold_type}")

    return result


# =============================================================================
# Isolated Points
# =============================================================================

def remove_isolated_points(src: np.ndarray, n: int = 1) -> None:
    """
    Remove cells with too few nonzero neighbors, in place.

    Cells at least n away from the border are visited in row-major order;
    a cell is zeroed when its (2n+1)^2 neighborhood (itself included) holds
    n or fewer nonzero cells. Cells zeroed earlier in the scan are already
    seen as zero by later cells.

    Args:
        src: Float grid, modified in place
        n: Neighborhood half-size
    """
    check_2d(src, "src")
    rows, cols = src.shape
    removed = 0
    for x in range(n, rows - n):
        for y in range(n, cols - n):
            count = np.count_nonzero(src[x - n:x + n + 1, y - n:y + n + 1])
            if count <= n and src[x, y] != 0.0:
                src[x, y] = 0.0
                removed += 1
    logger.debug(f"Removed {removed} isolated points (ring={n})")
