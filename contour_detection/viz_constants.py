"""
Shared visualization constants for the stage images and the result overlay.

Used by:
- visualization.py - Stage rendering and edge/segment/circle overlay
- detect_contours.py - Output file naming

Example usage:
    from contour_detection.viz_constants import Color, Size

    cv2.circle(img, (y, x), Size.ENDPOINT_RADIUS, Color.EDGE_START, -1)
"""

import cv2

# ============================================================================
# FONT SETTINGS
# ============================================================================

FONT_FACE = cv2.FONT_HERSHEY_SIMPLEX


class FontScale:
    """Font scale constants. Stage images are small, so scales stay low."""
    BODY = 0.4


class FontThickness:
    """Font thickness (stroke width) for text rendering."""
    BODY = 1
    OUTLINE = 3


# ============================================================================
# COLORS (BGR format for OpenCV)
# ============================================================================

class Color:
    """
    Standard colors used in the overlay.

    All colors in BGR format (Blue, Green, Red) as required by OpenCV.
    """
    WHITE = (255, 255, 255)
    BLACK = (0, 0, 0)
    RED = (0, 0, 255)
    GREEN = (0, 255, 0)
    CYAN = (255, 255, 0)
    MAGENTA = (255, 0, 255)
    ORANGE = (0, 128, 255)

    # What they represent
    EDGE = GREEN            # Traced (and closed) edges
    EDGE_START = CYAN       # First pixel of each edge
    EDGE_END = ORANGE       # Last pixel of each edge
    SEGMENT = RED           # Hough segments
    CIRCLE = MAGENTA        # Hough circles

    TEXT_PRIMARY = WHITE
    TEXT_OUTLINE = BLACK


# ============================================================================
# DRAWING SIZES
# ============================================================================

class Size:
    """Size constants for drawing geometric elements, in pixels."""
    ENDPOINT_RADIUS = 1


# ============================================================================
# LAYOUT CONSTANTS
# ============================================================================

class Layout:
    """Text positioning from the top-left corner, in pixels."""
    TEXT_OFFSET_X = 5
    TEXT_Y_START = 15
    LINE_HEIGHT = 15


# Overlay text is dropped on images smaller than this (rows)
MIN_ANNOTATED_HEIGHT = 64

# Stage name -> output file name written by the CLI
STAGE_FILENAMES = {
    "module": "module.png",
    "module_threshold": "module_threshold.png",
    "slope_color": "slope_color.png",
    "local_extrema": "local_extrema.png",
    "edges_image": "edges.png",
    "segments_image": "hough_segments.png",
    "circles_image": "hough_circles.png",
    "segment_accumulator": "hough_segment_accumulator.png",
    "circle_accumulator": "hough_circle_accumulator.png",
    "overlay": "overlay.png",
}
