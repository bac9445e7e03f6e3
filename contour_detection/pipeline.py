"""
Edge detection pipeline.

Sequences the stages on a grayscale image:

    filters -> module -> threshold -> slope / color map
            -> local extrema -> Hough segments / circles
            -> edge extraction -> edge closure

Without threshold, only the slope and color map of the raw module are
produced. Each stage is timed.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from contour_detection.convolution import apply_directional_filters
from contour_detection.exceptions import KernelConfigurationError
from contour_detection.freeman import (
    DEFAULT_CLOSURE_ITERATIONS,
    edges_closure,
    freeman_encoding,
    trace_edges,
)
from contour_detection.gradient import GradientNorm, color_map, compute_module, compute_slope
from contour_detection.grid import as_float_grid
from contour_detection.hough import (
    create_segment_accumulator,
    extract_circles,
    generate_circle_accumulator,
    generate_circle_accumulator_free,
    limit_segment,
    segment_threshold,
    segments_from_accumulator,
)
from contour_detection.hough_constants import (
    DEFAULT_CIRCLE_RADIUS,
    DEFAULT_CIRCLE_VOTE_CRITERIA,
    DEFAULT_NB_LINES,
    DEFAULT_SEGMENT_MIN_VOTES,
)
from contour_detection.kernels import FilterKernelType, build_directional_kernels
from contour_detection.local_extrema import local_extremum
from contour_detection.threshold import (
    ThresholdConfig,
    ThresholdType,
    apply_threshold_strategy,
    remove_isolated_points,
)
from contour_detection.threshold_constants import DEFAULT_ISOLATED_POINTS_RING

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """All pipeline parameters. Defaults reproduce the reference setup."""
    # Filters
    kernel_type: FilterKernelType = FilterKernelType.PREWITT
    n_directions: int = 2
    custom_kernel: Optional[np.ndarray] = None
    norm: GradientNorm = GradientNorm.LINF

    # Threshold
    use_threshold: bool = True
    threshold_type: ThresholdType = ThresholdType.GLOBAL
    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)
    remove_isolated_points: bool = False
    isolated_points_ring: int = DEFAULT_ISOLATED_POINTS_RING

    # Thinning and edges
    use_local_extrema: bool = True
    use_edge_extraction: bool = True
    use_edge_closure: bool = True
    closure_iterations: int = DEFAULT_CLOSURE_ITERATIONS

    # Hough segments
    use_hough_segments: bool = False
    segment_auto_threshold: bool = False
    segment_nb_lines: int = DEFAULT_NB_LINES
    segment_min_votes: int = DEFAULT_SEGMENT_MIN_VOTES

    # Hough circles
    use_hough_circles: bool = False
    circle_fixed_radius: bool = True
    circle_radius: float = DEFAULT_CIRCLE_RADIUS
    circle_vote_criteria: int = DEFAULT_CIRCLE_VOTE_CRITERIA


@contextmanager
def _timed(timings: Dict[str, float], stage: str):
    start = time.perf_counter()
    try:
        yield
    finally:
        timings[stage] = timings.get(stage, 0.0) + (time.perf_counter() - start) * 1000.0


def _failure(fail_reason: str, message: str) -> Dict[str, Any]:
    return {"success": False, "fail_reason": fail_reason, "error_message": message}


def run_pipeline(image: np.ndarray, config: Optional[PipelineConfig] = None) -> Dict[str, Any]:
    """
    Run the edge detection pipeline on a grayscale image.

    Args:
        image: Single channel image (any numeric dtype, values 0-255)
        config: Pipeline parameters (defaults if None)

    Returns:
        Dictionary containing:
        - success: False when the configuration was rejected
        - fail_reason / error_message: Set on failure
        - components: Directional filter responses
        - module: Normalized gradient module
        - module_threshold: Thresholded module (or None)
        - slope: Gradient direction grid (radians)
        - slope_color: rows x cols x 3 color map of the slope
        - local_extrema: Thinned module (or None)
        - edges: Traced Edge list (or None)
        - edges_image: Rendered edges, after closure when enabled (or None)
        - segments_image / circles_image: Hough outputs (or None)
        - segment_accumulator / circle_accumulator: Hough vote arrays (or None)
        - circle_radius: Fixed circle radius used (or None)
        - threshold: Threshold values determined by the strategy (or None)
        - timings_ms: Per stage duration in milliseconds
    """
    if config is None:
        config = PipelineConfig()

    timings = {}
    result = {
        "success": True,
        "fail_reason": None,
        "components": None,
        "module": None,
        "module_threshold": None,
        "slope": None,
        "slope_color": None,
        "local_extrema": None,
        "edges": None,
        "edges_image": None,
        "segments_image": None,
        "segment_accumulator": None,
        "segment_min_votes": None,
        "circles_image": None,
        "circle_accumulator": None,
        "circle_radius": None,
        "threshold": None,
        "timings_ms": timings,
    }

    try:
        kernels = build_directional_kernels(config.kernel_type, config.n_directions, config.custom_kernel)
    except KernelConfigurationError as e:
        logger.warning(f"Invalid filter configuration: {e}")
        return _failure("kernel_configuration_error", str(e))

    try:
        grid = as_float_grid(image)
    except ValueError as e:
        return _failure("invalid_image", str(e))

    rows, cols = grid.shape
    process_start = time.perf_counter()

    # Gradient
    with _timed(timings, "gradient"):
        components = apply_directional_filters(grid, kernels)
        module = compute_module(components, config.norm)
    result["components"] = components
    result["module"] = module

    if not config.use_threshold:
        with _timed(timings, "gradient"):
            slope = compute_slope(components, module)
            result["slope"] = slope
            result["slope_color"] = color_map(slope, module)
        for stage in ("use_local_extrema", "use_edge_extraction", "use_hough_segments", "use_hough_circles"):
            if getattr(config, stage):
                logger.warning(f"{stage} requires use_threshold, skipped")
        timings["total"] = (time.perf_counter() - process_start) * 1000.0
        return result

    # Threshold
    try:
        with _timed(timings, "threshold"):
            threshold_data = apply_threshold_strategy(module, config.threshold_type, config.threshold)
            module_threshold = threshold_data.pop("module")
            if config.remove_isolated_points:
                remove_isolated_points(module_threshold, config.isolated_points_ring)
    except ValueError as e:
        logger.warning(f"Invalid threshold configuration: {e}")
        return _failure("invalid_threshold_configuration", str(e))
    result["module_threshold"] = module_threshold
    result["threshold"] = threshold_data

    with _timed(timings, "gradient"):
        slope = compute_slope(components, module_threshold)
        result["slope"] = slope
        result["slope_color"] = color_map(slope, module_threshold)

    # Local extrema and Hough
    local_extrema = None
    if config.use_local_extrema:
        with _timed(timings, "local_extrema"):
            local_extrema = local_extremum(slope, module_threshold)
        result["local_extrema"] = local_extrema

        if config.use_hough_segments:
            with _timed(timings, "hough_segments"):
                accumulator = create_segment_accumulator(local_extrema)
                min_votes = config.segment_min_votes
                if config.segment_auto_threshold:
                    min_votes = segment_threshold(accumulator, config.segment_nb_lines)
                segments = segments_from_accumulator(accumulator, rows, cols, min_votes)
                limit_segment(segments, module_threshold)
            result["segment_accumulator"] = accumulator
            result["segments_image"] = segments
            result["segment_min_votes"] = min_votes

        if config.use_hough_circles:
            with _timed(timings, "hough_circles"):
                if config.circle_fixed_radius:
                    accumulator = generate_circle_accumulator(local_extrema, config.circle_radius)
                    circles = extract_circles(accumulator, config.circle_vote_criteria, rows, cols,
                                              radius=config.circle_radius)
                else:
                    accumulator = generate_circle_accumulator_free(local_extrema)
                    circles = extract_circles(accumulator, config.circle_vote_criteria, rows, cols)
            result["circles_image"] = circles
            result["circle_accumulator"] = accumulator
            if config.circle_fixed_radius:
                result["circle_radius"] = config.circle_radius
    else:
        for stage in ("use_hough_segments", "use_hough_circles"):
            if getattr(config, stage):
                logger.warning(f"{stage} requires use_local_extrema, skipped")

    # Edges
    if config.use_edge_extraction:
        if local_extrema is None:
            logger.warning("use_edge_extraction requires use_local_extrema, skipped")
        else:
            with _timed(timings, "edge_extraction"):
                edges = freeman_encoding(local_extrema)
                result["edges_image"] = trace_edges(edges, rows, cols)

            if config.use_edge_closure:
                with _timed(timings, "edge_closure"):
                    edges_closure(edges, local_extrema, slope, config.closure_iterations)
                    result["edges_image"] = trace_edges(edges, rows, cols)
            result["edges"] = edges

    timings["total"] = (time.perf_counter() - process_start) * 1000.0
    logger.debug("Pipeline timings: " + ", ".join(f"{k}={v:.2f}ms" for k, v in timings.items()))
    return result
