"""
Stage visualization utilities.

This module handles:
- Float grid to 8-bit image conversion (plain or binary display)
- Slope color map rendering
- Overlay of edges, Hough segments and Hough circles on the input image
"""

import cv2
import numpy as np
from typing import Dict, Any, List, Optional

from contour_detection.freeman import Edge
from contour_detection.grid import to_binary, to_display
from contour_detection.hough import render_circle_accumulator
from contour_detection.viz_constants import (
    FONT_FACE,
    Color,
    FontScale,
    FontThickness,
    Size,
    Layout,
    MIN_ANNOTATED_HEIGHT,
)


def grid_to_image(grid: np.ndarray, binary: bool = False) -> np.ndarray:
    """
    Convert a stage grid to a displayable uint8 image.

    Args:
        grid: Float or uint8 grid
        binary: Show every nonzero cell as 255

    Returns:
        Single channel uint8 image
    """
    if binary:
        return to_binary(grid)
    return to_display(grid)


def slope_color_to_image(slope_color: np.ndarray) -> np.ndarray:
    """Convert a rows x cols x 3 slope color map to a BGR uint8 image."""
    return np.clip(slope_color, 0, 255).astype(np.uint8)


def _paint(vis: np.ndarray, mask: np.ndarray, color) -> None:
    vis[mask] = color


def draw_edge_endpoints(image: np.ndarray, edges: List[Edge]) -> np.ndarray:
    """Mark the start and end pixel of every edge."""
    for edge in edges:
        # cv2 points are (column, row)
        cv2.circle(image, (edge.sy, edge.sx), Size.ENDPOINT_RADIUS, Color.EDGE_START, -1)
        cv2.circle(image, (edge.ey, edge.ex), Size.ENDPOINT_RADIUS, Color.EDGE_END, -1)
    return image


def add_summary_text(image: np.ndarray, lines: List[str]) -> np.ndarray:
    """Write summary lines in the top-left corner with an outline."""
    if image.shape[0] < MIN_ANNOTATED_HEIGHT:
        return image

    y = Layout.TEXT_Y_START
    for text in lines:
        position = (Layout.TEXT_OFFSET_X, y)
        cv2.putText(image, text, position, FONT_FACE, FontScale.BODY,
                    Color.TEXT_OUTLINE, FontThickness.OUTLINE, cv2.LINE_AA)
        cv2.putText(image, text, position, FONT_FACE, FontScale.BODY,
                    Color.TEXT_PRIMARY, FontThickness.BODY, cv2.LINE_AA)
        y += Layout.LINE_HEIGHT
    return image


def create_overlay(
    image: np.ndarray,
    result: Dict[str, Any],
    annotate: bool = True,
) -> np.ndarray:
    """
    Draw pipeline outputs over the grayscale input image.

    Segments are drawn first, then circles, then edges, so edges stay
    visible where they overlap.

    Args:
        image: Grayscale input image
        result: Output of run_pipeline
        annotate: Add a summary text block

    Returns:
        Annotated BGR image
    """
    gray = to_display(image)
    vis = cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)

    segments: Optional[np.ndarray] = result.get("segments_image")
    if segments is not None:
        _paint(vis, segments > 0, Color.SEGMENT)

    circles: Optional[np.ndarray] = result.get("circles_image")
    if circles is not None:
        _paint(vis, circles > 0, Color.CIRCLE)

    edges_image: Optional[np.ndarray] = result.get("edges_image")
    if edges_image is not None:
        _paint(vis, edges_image > 0, Color.EDGE)

    edges = result.get("edges")
    if edges:
        draw_edge_endpoints(vis, edges)

    if annotate:
        lines = []
        threshold = result.get("threshold") or {}
        if threshold.get("global_threshold") is not None:
            lines.append(f"Threshold: {threshold['global_threshold']}")
        if threshold.get("hysteresis_high") is not None:
            lines.append(f"Hysteresis: {threshold['hysteresis_high']}/{threshold['hysteresis_low']}")
        if edges is not None:
            lines.append(f"Edges: {len(edges)}")
        add_summary_text(vis, lines)

    return vis


def render_stages(image: np.ndarray, result: Dict[str, Any], binary_display: bool = False) -> Dict[str, np.ndarray]:
    """
    Render every stage produced by run_pipeline.

    Args:
        image: Grayscale input image
        result: Output of run_pipeline
        binary_display: Show thresholded and thinned modules as binary maps

    Returns:
        Dictionary mapping stage name to uint8 image
    """
    stages = {}
    if result.get("module") is not None:
        stages["module"] = grid_to_image(result["module"])
    if result.get("module_threshold") is not None:
        stages["module_threshold"] = grid_to_image(result["module_threshold"], binary_display)
    if result.get("slope_color") is not None:
        stages["slope_color"] = slope_color_to_image(result["slope_color"])
    if result.get("local_extrema") is not None:
        stages["local_extrema"] = grid_to_image(result["local_extrema"], binary_display)
    for name in ("edges_image", "segments_image", "circles_image"):
        if result.get(name) is not None:
            stages[name] = result[name]
    if result.get("segment_accumulator") is not None:
        stages["segment_accumulator"] = result["segment_accumulator"]
    if result.get("circle_accumulator") is not None and result.get("circle_radius") is not None:
        stages["circle_accumulator"] = render_circle_accumulator(result["circle_accumulator"], result["circle_radius"])
    stages["overlay"] = create_overlay(image, result)
    return stages
