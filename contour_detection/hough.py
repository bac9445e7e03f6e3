"""
Hough transform engine for segment and circle detection.

Lines are parameterized as rho = x * cos(theta) + y * sin(theta) with
(x, y) = (row, column). Circles use (x - a)^2 + (y - b)^2 = r^2 with the
center stored at accumulator row b, column a.

Functions:
- line_parameter_space: Sampling of the [theta, rho] space for an image size
- create_segment_accumulator: Line votes of every set pixel
- segment_threshold: Vote cutoff keeping the strongest lines
- segments_from_accumulator: Draw voted lines across the image
- limit_segment: Cut drawn lines outside the detected shapes (in place)
- bresenham / bresenham_points: Integer line rasterization
- generate_circle_accumulator / generate_circle_accumulator_free: Circle votes
- extract_circles: Draw voted circles
- render_circle_accumulator: Visualize a fixed radius accumulator
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np

from contour_detection.exceptions import InvariantViolation
from contour_detection.grid import BINARY_DTYPE, check_2d, in_bounds
from contour_detection.hough_constants import (
    THETA_START,
    THETA_RANGE,
    DELTA_RHO,
    MAX_VOTES,
    DEFAULT_NB_LINES,
    TRIG_EPSILON,
    CIRCLE_PIXEL_MIN_VALUE,
    CIRCLE_VALUE,
    CIRCLE_THICKNESS,
    CIRCLE_LINE_TYPE,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Segments
# =============================================================================

def line_parameter_space(rows: int, cols: int) -> Dict[str, Any]:
    """
    Sampling of the line parameter space for a rows x cols image.

    Args:
        rows: Image rows
        cols: Image columns

    Returns:
        Dictionary containing:
        - max_rho: Image diagonal, rounded up
        - n_theta / n_rho: Accumulator shape
        - delta_theta / delta_rho: Sampling steps
        - thetas: Angle of every accumulator row (radians)
    """
    max_rho = int(math.ceil(math.hypot(rows, cols)))
    if max_rho == 0:
        raise ValueError(f"Invalid image size: {rows}x{cols}")

    delta_theta = THETA_RANGE / max_rho
    n_theta = max_rho
    n_rho = int(max_rho / DELTA_RHO + 0.5) + 1
    thetas = THETA_START + (np.arange(n_theta, dtype=np.float64) + 1.0) * delta_theta

    return {
        "max_rho": max_rho,
        "n_theta": n_theta,
        "n_rho": n_rho,
        "delta_theta": delta_theta,
        "delta_rho": DELTA_RHO,
        "thetas": thetas,
    }


def create_segment_accumulator(binary: np.ndarray) -> np.ndarray:
    """
    Vote for every line passing through a set pixel.

    Each nonzero pixel adds one vote to every (theta, rho) cell with a
    strictly positive rho index. Votes saturate at 255.

    Args:
        binary: Binary grid (local extrema output)

    Returns:
        uint8 accumulator of shape (n_theta, n_rho)
    """
    check_2d(binary, "binary")
    rows, cols = binary.shape
    space = line_parameter_space(rows, cols)
    n_theta, n_rho = space["n_theta"], space["n_rho"]

    xs, ys = np.nonzero(binary)
    xs = xs.astype(np.float64)
    ys = ys.astype(np.float64)

    votes = np.zeros((n_theta, n_rho), dtype=np.int64)
    for i, theta in enumerate(space["thetas"]):
        rho_idx = np.trunc((xs * math.cos(theta) + ys * math.sin(theta)) / DELTA_RHO + 0.5).astype(np.int64)
        rho_idx = rho_idx[rho_idx > 0]
        if rho_idx.size == 0:
            continue
        if rho_idx.max() >= n_rho:
            raise InvariantViolation(f"Rho index {rho_idx.max()} outside accumulator ({n_rho} bins)")
        votes[i] += np.bincount(rho_idx, minlength=n_rho)

    logger.debug(f"Segment accumulator {n_theta}x{n_rho} from {xs.size} pixels, max votes {votes.max(initial=0)}")
    return np.minimum(votes, MAX_VOTES).astype(BINARY_DTYPE)


def segment_threshold(accumulator: np.ndarray, nb_lines: int = DEFAULT_NB_LINES) -> int:
    """
    Vote cutoff keeping only the strongest lines.

    Args:
        accumulator: Segment accumulator
        nb_lines: Number of distinct vote values to keep

    Returns:
        Smallest of the nb_lines largest distinct vote values
    """
    if nb_lines < 1:
        raise ValueError(f"Invalid number of lines: {nb_lines}")
    if accumulator.size == 0:
        raise ValueError("Empty accumulator")

    distinct = np.unique(accumulator)
    return int(distinct[-nb_lines:][0])


def _border_intersections(rho: float, theta: float, rows: int, cols: int) -> List[Tuple[int, int]]:
    """Intersections of a line with x=0, y=0, y=cols-1 and x=rows-1, in that order."""
    sin_t = math.sin(theta)
    cos_t = math.cos(theta)
    points = []

    if abs(sin_t) >= TRIG_EPSILON:
        y = int(rho / sin_t)
        if 0 <= y < cols:
            points.append((0, y))

    if abs(cos_t) >= TRIG_EPSILON:
        x = int(rho / cos_t)
        if 0 <= x < rows:
            points.append((x, 0))
        x = int((rho - (cols - 1) * sin_t) / cos_t)
        if 0 <= x < rows:
            points.append((x, cols - 1))

    if abs(sin_t) >= TRIG_EPSILON:
        y = int((rho - (rows - 1) * cos_t) / sin_t)
        if 0 <= y < cols:
            points.append((rows - 1, y))

    return points


def segments_from_accumulator(
    accumulator: np.ndarray,
    rows: int,
    cols: int,
    min_votes: int,
) -> np.ndarray:
    """
    Draw every line with enough votes across the whole image.

    The line of each qualifying cell is clipped to the image borders and
    drawn between its first two border intersections, the pixel value
    being the cell's vote count.

    Args:
        accumulator: Segment accumulator
        rows: Image rows
        cols: Image columns
        min_votes: Minimum votes for a line to be drawn

    Returns:
        uint8 image of the drawn lines
    """
    space = line_parameter_space(rows, cols)
    if accumulator.shape != (space["n_theta"], space["n_rho"]):
        raise InvariantViolation(
            f"Accumulator shape {accumulator.shape} does not match a {rows}x{cols} image"
        )

    res = np.zeros((rows, cols), dtype=BINARY_DTYPE)
    drawn = 0
    for i, j in np.argwhere(accumulator >= min_votes):
        points = _border_intersections(j * DELTA_RHO, space["thetas"][i], rows, cols)
        if len(points) < 2:
            continue
        (x1, y1), (x2, y2) = points[0], points[1]
        bresenham(res, x1, y1, x2, y2, int(accumulator[i, j]))
        drawn += 1

    logger.debug(f"Drew {drawn} lines with at least {min_votes} votes")
    return res


def limit_segment(image: np.ndarray, src: np.ndarray) -> None:
    """
    Cut drawn lines outside the shapes of the source grid, in place.

    For every row, pixels before the first and after the last nonzero
    source cell are cleared; the same is then done for every column.

    Args:
        image: Drawn lines, modified in place
        src: Source grid (thresholded module)
    """
    if image.shape != src.shape:
        raise InvariantViolation(f"Image {image.shape} and source {src.shape} shapes differ")

    mask = src != 0
    for x in range(mask.shape[0]):
        nonzero = np.flatnonzero(mask[x])
        if nonzero.size == 0:
            image[x, :] = 0
            continue
        image[x, :nonzero[0]] = 0
        image[x, nonzero[-1] + 1:] = 0

    for y in range(mask.shape[1]):
        nonzero = np.flatnonzero(mask[:, y])
        if nonzero.size == 0:
            image[:, y] = 0
            continue
        image[:nonzero[0], y] = 0
        image[nonzero[-1] + 1:, y] = 0


def bresenham_points(x1: int, y1: int, x2: int, y2: int) -> List[Tuple[int, int]]:
    """
    Pixels of the integer line from (x1, y1) to (x2, y2), both included.

    Args:
        x1, y1: First point (row, column)
        x2, y2: Second point (row, column)

    Returns:
        Pixels in drawing order
    """
    delta_x = x2 - x1
    ix = (delta_x > 0) - (delta_x < 0)
    delta_x = abs(delta_x) << 1

    delta_y = y2 - y1
    iy = (delta_y > 0) - (delta_y < 0)
    delta_y = abs(delta_y) << 1

    points = [(x1, y1)]

    if delta_x >= delta_y:
        error = delta_y - (delta_x >> 1)
        while x1 != x2:
            # Ties step only when moving forward
            if error >= 0 and (error != 0 or ix > 0):
                error -= delta_x
                y1 += iy
            error += delta_y
            x1 += ix
            points.append((x1, y1))
    else:
        error = delta_x - (delta_y >> 1)
        while y1 != y2:
            if error >= 0 and (error != 0 or iy > 0):
                error -= delta_y
                x1 += ix
            error += delta_x
            y1 += iy
            points.append((x1, y1))

    return points


def bresenham(image: np.ndarray, x1: int, y1: int, x2: int, y2: int, value: int) -> None:
    """Draw the line from (x1, y1) to (x2, y2) into image with the given value."""
    for x, y in bresenham_points(x1, y1, x2, y2):
        if not in_bounds(image, x, y):
            raise InvariantViolation(f"Line pixel ({x}, {y}) outside {image.shape} image")
        image[x, y] = value


# =============================================================================
# Circles
# =============================================================================

def _circle_votes(xs: np.ndarray, ys: np.ndarray, radius: float, n_b: int, n_a: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    (b, a) accumulator indices voted by pixels (xs, ys) for one radius.

    For each pixel and each b, a = x - sqrt(r^2 - (y - b)^2); only
    strictly positive centers vote.
    """
    bs = np.arange(n_b, dtype=np.float64)
    tmp = radius * radius - (ys[:, None] - bs[None, :]) ** 2
    valid = tmp >= 0.0
    a = xs[:, None] - np.sqrt(np.where(valid, tmp, 0.0))
    valid &= a > 0.0

    b_idx = np.broadcast_to(np.arange(n_b), tmp.shape)[valid]
    a_idx = np.trunc(a[valid] + 0.5).astype(np.int64)
    if a_idx.size and a_idx.max() >= n_a:
        raise InvariantViolation(
            f"Circle center column {a_idx.max()} outside accumulator ({n_a} columns)"
        )
    return b_idx, a_idx


def _circle_pixels(binary: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    check_2d(binary, "binary")
    xs, ys = np.nonzero(binary >= CIRCLE_PIXEL_MIN_VALUE)
    return xs.astype(np.float64), ys.astype(np.float64)


def _count_circle_votes(xs: np.ndarray, ys: np.ndarray, radius: float, rows: int, cols: int) -> np.ndarray:
    """Saturated (rows, cols) uint8 vote grid for one radius."""
    votes = np.zeros((rows, cols), dtype=np.int64)
    b_idx, a_idx = _circle_votes(xs, ys, radius, rows, cols)
    np.add.at(votes, (b_idx, a_idx), 1)
    return np.minimum(votes, MAX_VOTES).astype(BINARY_DTYPE)


def generate_circle_accumulator(binary: np.ndarray, radius: float) -> np.ndarray:
    """
    Vote for circle centers of a fixed radius.

    Args:
        binary: Binary grid (local extrema output)
        radius: Circle radius in pixels

    Returns:
        uint8 accumulator of shape (rows, cols), indexed [b, a]
    """
    if radius < 0:
        raise ValueError(f"Invalid circle radius: {radius}")
    rows, cols = binary.shape
    xs, ys = _circle_pixels(binary)

    acc = _count_circle_votes(xs, ys, float(radius), rows, cols)

    logger.debug(f"Circle accumulator (r={radius}) from {xs.size} pixels, max votes {acc.max(initial=0)}")
    return acc


def generate_circle_accumulator_free(binary: np.ndarray) -> np.ndarray:
    """
    Vote for circle centers of every integer radius.

    Args:
        binary: Binary grid (local extrema output)

    Returns:
        uint8 accumulator of shape (rows, cols, max(rows, cols)), indexed [b, a, r]
    """
    rows, cols = binary.shape
    n_r = max(rows, cols)
    xs, ys = _circle_pixels(binary)

    # Only one radius is counted in wide integers at a time
    acc = np.zeros((rows, cols, n_r), dtype=BINARY_DTYPE)
    for k in range(n_r):
        acc[:, :, k] = _count_circle_votes(xs, ys, float(k), rows, cols)

    logger.debug(f"Free radius circle accumulator {rows}x{cols}x{n_r} from {xs.size} pixels")
    return acc


def _draw_circle(image: np.ndarray, b: int, a: int, radius: int, value: int = CIRCLE_VALUE) -> None:
    cv2.circle(image, (int(a), int(b)), int(radius), int(value), CIRCLE_THICKNESS, CIRCLE_LINE_TYPE, 0)


def extract_circles(
    accumulator: np.ndarray,
    vote_criteria: int,
    rows: int,
    cols: int,
    radius: Optional[float] = None,
) -> np.ndarray:
    """
    Draw every circle with enough votes.

    With a fixed radius, every accumulator cell reaching the criteria is
    drawn with that radius. Otherwise the accumulator is 3-D and each cell
    is drawn with the largest radius reaching the criteria.

    Args:
        accumulator: Circle accumulator (2-D fixed radius, 3-D free radius)
        vote_criteria: Minimum votes for a circle to be drawn
        rows: Image rows
        cols: Image columns
        radius: Fixed radius, None for a free radius accumulator

    Returns:
        uint8 image of the drawn circles
    """
    image = np.zeros((rows, cols), dtype=BINARY_DTYPE)

    if radius is not None:
        if accumulator.ndim != 2:
            raise InvariantViolation(f"Fixed radius accumulator must be 2-D, got {accumulator.ndim}-D")
        centers = np.argwhere(accumulator >= vote_criteria)
        for b, a in centers:
            _draw_circle(image, b, a, int(radius + 0.5))
        logger.debug(f"Drew {len(centers)} circles of radius {radius}")
        return image

    if accumulator.ndim != 3:
        raise InvariantViolation(f"Free radius accumulator must be 3-D, got {accumulator.ndim}-D")

    qualifying = accumulator >= vote_criteria
    radii = np.arange(accumulator.shape[2])
    k_max = np.where(qualifying, radii[None, None, :], 0).max(axis=2)
    selected = np.take_along_axis(qualifying, k_max[:, :, None], axis=2)[:, :, 0]

    centers = np.argwhere(selected)
    for b, a in centers:
        _draw_circle(image, b, a, k_max[b, a])
    logger.debug(f"Drew {len(centers)} circles of free radius")
    return image


def render_circle_accumulator(accumulator: np.ndarray, radius: float) -> np.ndarray:
    """
    Visualize a fixed radius accumulator.

    Every voted center is drawn as a circle of the given radius whose grey
    level is its vote count, strongest centers on top.

    Args:
        accumulator: Fixed radius circle accumulator
        radius: Radius used to build it

    Returns:
        uint8 image of the accumulator's shape
    """
    check_2d(accumulator, "accumulator")
    image = np.zeros(accumulator.shape, dtype=BINARY_DTYPE)
    centers = np.argwhere(accumulator > 0)
    order = np.argsort(accumulator[accumulator > 0], kind="stable")
    for b, a in centers[order]:
        _draw_circle(image, b, a, int(radius), accumulator[b, a])
    return image
