"""
Classical contour detection: directional gradients, thresholding, thinning,
Freeman chain-code edges and Hough segment/circle detection.
"""

from .exceptions import InvariantViolation, KernelConfigurationError
from .grid import new_grid, at, in_bounds, as_float_grid, to_binary, to_display
from .kernels import FilterKernelType, build_directional_kernels, rotate_kernel, parse_kernel_type
from .convolution import filter_image, apply_directional_filters
from .gradient import GradientNorm, normalize, module_linf, module_l1, compute_module, compute_slope, color_map
from .threshold import (
    ThresholdType,
    ThresholdConfig,
    compute_global_threshold,
    apply_threshold,
    global_threshold,
    local_threshold,
    hysteresis_threshold,
    apply_threshold_strategy,
    remove_isolated_points,
)
from .local_extrema import local_extremum
from .freeman import Edge, freeman_encoding, edges_closure, trace_edges
from .hough import (
    create_segment_accumulator,
    segment_threshold,
    segments_from_accumulator,
    limit_segment,
    bresenham,
    generate_circle_accumulator,
    generate_circle_accumulator_free,
    extract_circles,
)
from .pipeline import PipelineConfig, run_pipeline

__all__ = [
    "InvariantViolation",
    "KernelConfigurationError",
    "new_grid",
    "at",
    "in_bounds",
    "as_float_grid",
    "to_binary",
    "to_display",
    "FilterKernelType",
    "build_directional_kernels",
    "rotate_kernel",
    "parse_kernel_type",
    "filter_image",
    "apply_directional_filters",
    "GradientNorm",
    "normalize",
    "module_linf",
    "module_l1",
    "compute_module",
    "compute_slope",
    "color_map",
    "ThresholdType",
    "ThresholdConfig",
    "compute_global_threshold",
    "apply_threshold",
    "global_threshold",
    "local_threshold",
    "hysteresis_threshold",
    "apply_threshold_strategy",
    "remove_isolated_points",
    "local_extremum",
    "Edge",
    "freeman_encoding",
    "edges_closure",
    "trace_edges",
    "create_segment_accumulator",
    "segment_threshold",
    "segments_from_accumulator",
    "limit_segment",
    "bresenham",
    "generate_circle_accumulator",
    "generate_circle_accumulator_free",
    "extract_circles",
    "PipelineConfig",
    "run_pipeline",
]
