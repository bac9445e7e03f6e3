"""
Directional 3x3 filter kernels.

Each kernel family is defined by its direction-0 kernel (responding to a
left-to-right intensity increase). The other directions are obtained by
rotating the outer ring of 8 weights counter-clockwise in 45 degree steps:

    direction 0:   0 degrees (->)
    direction 1:  90 degrees (|^)
    direction 2:  45 degrees (/>)
    direction 3: 135 degrees (<\\)

Functions:
- rotate_kernel: Rotate a 3x3 kernel by a number of 45 degree steps
- build_directional_kernels: Kernel list for a family and direction count
"""

import logging
from enum import Enum
from typing import List, Optional

import numpy as np

from contour_detection.exceptions import KernelConfigurationError

logger = logging.getLogger(__name__)


class FilterKernelType(Enum):
    """Available kernel families."""
    PREWITT = "prewitt"
    SOBEL = "sobel"
    KIRSCH = "kirsch"
    CUSTOM = "custom"


BASE_KERNELS = {
    FilterKernelType.PREWITT: [[-1, 0, 1],
                               [-1, 0, 1],
                               [-1, 0, 1]],
    FilterKernelType.SOBEL: [[-1, 0, 1],
                             [-2, 0, 2],
                             [-1, 0, 1]],
    FilterKernelType.KIRSCH: [[-3, -3, 5],
                              [-3, 0, 5],
                              [-3, -3, 5]],
}

VALID_DIRECTION_COUNTS = (2, 4)

# Ring positions of a 3x3 kernel, clockwise from the top-left corner
_RING = ((0, 0), (0, 1), (0, 2), (1, 2), (2, 2), (2, 1), (2, 0), (1, 0))

# 45 degree steps applied to the base kernel for each direction index
_DIRECTION_STEPS = (0, 2, 1, 3)


def rotate_kernel(kernel: np.ndarray, steps: int) -> np.ndarray:
    """
    Rotate the outer ring of a 3x3 kernel counter-clockwise.

    Args:
        kernel: 3x3 kernel
        steps: Number of 45 degree steps

    Returns:
        New 3x3 float32 kernel (center weight unchanged)
    """
    kernel = np.asarray(kernel, dtype=np.float32)
    ring = [kernel[r, c] for r, c in _RING]
    rotated = kernel.copy()
    for k, (r, c) in enumerate(_RING):
        rotated[r, c] = ring[(k + steps) % 8]
    return rotated


def _freeze(kernel: np.ndarray) -> np.ndarray:
    kernel.flags.writeable = False
    return kernel


def build_directional_kernels(
    kernel_type: FilterKernelType,
    n_directions: int = 2,
    custom_kernel: Optional[np.ndarray] = None,
) -> List[np.ndarray]:
    """
    Build the read-only kernels used for directional gradient estimation.

    Args:
        kernel_type: Kernel family
        n_directions: 2 (bidirectional) or 4 (multidirectional)
        custom_kernel: Direction-0 kernel, required for FilterKernelType.CUSTOM

    Returns:
        List of n_directions 3x3 float32 kernels, ordered by direction index
    """
    if n_directions not in VALID_DIRECTION_COUNTS:
        raise KernelConfigurationError(
            f"Invalid direction count: {n_directions}. Use {VALID_DIRECTION_COUNTS}"
        )

    if kernel_type == FilterKernelType.CUSTOM:
        if custom_kernel is None:
            raise KernelConfigurationError("Custom kernel type requires a base kernel")
        base = np.asarray(custom_kernel, dtype=np.float32)
        if base.shape != (3, 3):
            raise KernelConfigurationError(f"Custom kernel must be 3x3, got {base.shape}")
    elif kernel_type in BASE_KERNELS:
        base = np.array(BASE_KERNELS[kernel_type], dtype=np.float32)
    else:
        raise KernelConfigurationError(f"Unknown kernel type: {kernel_type}")

    logger.debug(f"Using {kernel_type} kernel with {n_directions} directions")

    return [_freeze(rotate_kernel(base, _DIRECTION_STEPS[d])) for d in range(n_directions)]


def parse_kernel_type(name: str) -> FilterKernelType:
    """Map a kernel name (case insensitive) to its FilterKernelType."""
    try:
        return FilterKernelType(name.lower())
    except (ValueError, AttributeError):
        raise KernelConfigurationError(f"Unknown kernel type: {name}") from None
