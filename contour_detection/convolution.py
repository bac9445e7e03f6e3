"""
Convolution filter.

Applies a 3x3 kernel to a float grid. Every interior cell (x, y) receives

    sum_{i,j in -1..1} src[x + i, y + j] * kernel[i + 1, j + 1]

The one-pixel border stays zero and no clamping is applied: responses may be
negative or exceed 255, callers normalize when needed.
"""

import logging
from typing import List, Sequence

import cv2
import numpy as np

from contour_detection.grid import FLOAT_DTYPE, check_2d

logger = logging.getLogger(__name__)


def filter_image(src: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """
    Correlate a float grid with a 3x3 kernel.

    Args:
        src: Input float grid
        kernel: 3x3 kernel

    Returns:
        New float32 grid of the same size as src, border cells set to 0
    """
    # cv2 needs a writable kernel
    kernel = np.array(kernel, dtype=FLOAT_DTYPE)
    if kernel.shape != (3, 3):
        raise ValueError(f"Kernel must be 3x3, got {kernel.shape}")

    rows, cols = src.shape
    if rows < 3 or cols < 3:
        return np.zeros((rows, cols), dtype=FLOAT_DTYPE)

    # filter2D computes a correlation (no kernel flip) around the center anchor
    res = cv2.filter2D(
        np.ascontiguousarray(src, dtype=FLOAT_DTYPE),
        cv2.CV_32F,
        kernel,
        borderType=cv2.BORDER_CONSTANT,
    )

    res[0, :] = 0.0
    res[-1, :] = 0.0
    res[:, 0] = 0.0
    res[:, -1] = 0.0
    return res


def apply_directional_filters(image: np.ndarray, kernels: Sequence[np.ndarray]) -> List[np.ndarray]:
    """Filter the image once per directional kernel, in direction order."""
    components = [filter_image(image, kernel) for kernel in kernels]
    logger.debug(f"Computed {len(components)} directional components on "
                 f"{image.shape[1]}x{image.shape[0]} image")
    return components
