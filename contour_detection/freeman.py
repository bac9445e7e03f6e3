"""
Contour tracer based on Freeman chain codes.

Functions:
- freeman_encoding: Trace every 8-connected boundary of a binary grid
- follow_edge: Follow one boundary from its start pixel
- edges_closure: Bridge small gaps by walking out of edge endpoints
- trace_edges: Render edges back into a binary grid

Direction codes (8-connectivity), as (row, column) offsets:

    3 2 1
    4 . 0
    5 6 7
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from contour_detection.exceptions import InvariantViolation
from contour_detection.grid import BINARY_DTYPE, check_2d, in_bounds

logger = logging.getLogger(__name__)

FREEMAN_DIRECTIONS = ((0, 1), (-1, 1), (-1, 0), (-1, -1), (0, -1), (1, -1), (1, 0), (1, 1))

# Input maps hold 0 or 255; anything above this counts as an edge pixel
EDGE_PIXEL_MIN_VALUE = 20.0

# Direction tried first when following a new edge
INITIAL_DIRECTION = 1

# Consecutive rejected directions ending a follow (dead end)
MAX_FAILED_ROTATIONS = 5

# Closure walk direction offsets relative to the slope-derived direction
CLOSURE_OFFSETS = (3, 7)

DEFAULT_CLOSURE_ITERATIONS = 5


@dataclass
class Edge:
    """A traced boundary: start pixel, end pixel and chain code in between."""
    sx: int
    sy: int
    ex: int
    ey: int
    directions: List[int] = field(default_factory=list)

    @property
    def start(self) -> Tuple[int, int]:
        return (self.sx, self.sy)

    @property
    def end(self) -> Tuple[int, int]:
        return (self.ex, self.ey)

    def points(self) -> List[Tuple[int, int]]:
        """Pixels visited by replaying the chain code from the start."""
        x, y = self.sx, self.sy
        pts = [(x, y)]
        for d in self.directions:
            dx, dy = FREEMAN_DIRECTIONS[d]
            x += dx
            y += dy
            pts.append((x, y))
        return pts

    def __len__(self) -> int:
        return len(self.directions)


def _is_edge_pixel(binary: np.ndarray, x: int, y: int) -> bool:
    return in_bounds(binary, x, y) and binary[x, y] > EDGE_PIXEL_MIN_VALUE


def follow_edge(binary: np.ndarray, visited: np.ndarray, edge: Edge) -> None:
    """
    Follow a boundary from the edge start, filling its chain code.

    The follower tries the current direction; an unvisited edge pixel is
    accepted (and the direction turned by +2), otherwise the direction is
    turned by -1. It stops when the tried pixel is the start pixel or after
    5 consecutive rejections. The last accepted pixel becomes the edge end.

    Args:
        binary: Binary grid (0 / 255)
        visited: Visited flags, updated in place
        edge: Edge with its start set, completed in place
    """
    x, y = edge.sx, edge.sy
    direction = INITIAL_DIRECTION
    failures = 0

    while True:
        dx, dy = FREEMAN_DIRECTIONS[direction]
        new_x, new_y = x + dx, y + dy

        if _is_edge_pixel(binary, new_x, new_y) and not visited[new_x, new_y]:
            edge.directions.append(direction)
            x, y = new_x, new_y
            visited[x, y] = True
            failures = 0
            direction = (direction + 2) % 8
        else:
            direction = (direction + 7) % 8
            failures += 1

        # Back at the start: closed loop
        if (new_x, new_y) == (edge.sx, edge.sy):
            break

        if failures == MAX_FAILED_ROTATIONS:
            break

    edge.ex, edge.ey = x, y


def freeman_encoding(binary: np.ndarray) -> List[Edge]:
    """
    Trace every boundary of a binary grid.

    Scans row-major (one-pixel border excluded); each unvisited edge pixel
    starts a new edge which is followed to its end.

    Args:
        binary: Binary grid (0 / 255), typically the local extrema output

    Returns:
        List of traced edges, in scan order
    """
    check_2d(binary, "binary")
    rows, cols = binary.shape
    visited = np.zeros((rows, cols), dtype=bool)
    edges = []

    candidates = np.argwhere(binary[1:rows - 1, 1:cols - 1] > EDGE_PIXEL_MIN_VALUE) + 1
    for x, y in candidates:
        x, y = int(x), int(y)
        if visited[x, y]:
            continue
        visited[x, y] = True
        edge = Edge(sx=x, sy=y, ex=x, ey=y)
        follow_edge(binary, visited, edge)
        edges.append(edge)

    logger.debug(f"Freeman encoding: {len(edges)} edges extracted")
    return edges


# =============================================================================
# Edge Closure
# =============================================================================

class _ClosureWalk:
    """One of the four gap-search walks run from an edge endpoint."""

    def __init__(self, at_start: bool, offset: int, x: int, y: int):
        self.at_start = at_start
        self.offset = offset
        self.x = x
        self.y = y
        self.finished = False
        self.buffer = []


def _slope_direction(slope: np.ndarray, x: int, y: int) -> int:
    return int(((float(slope[x, y]) + math.pi) / (2.0 * math.pi)) * 8.0)


def _hits_edge(binary: np.ndarray, x: int, y: int, direction: int) -> bool:
    """True if the pixel or its two neighbors in the arc ahead are set."""
    if binary[x, y] > 0:
        return True
    for turn in (1, 7):
        dx, dy = FREEMAN_DIRECTIONS[(direction + turn) % 8]
        if binary[x + dx, y + dy] > 0:
            return True
    return False


def _step_walk(walk: _ClosureWalk, edge: Edge, walks: Sequence[_ClosureWalk],
               binary: np.ndarray, slope: np.ndarray) -> None:
    rows, cols = binary.shape
    direction = (_slope_direction(slope, walk.x, walk.y) + walk.offset) % 8
    dx, dy = FREEMAN_DIRECTIONS[direction]
    new_x, new_y = walk.x + dx, walk.y + dy

    if new_x <= 0 or new_y <= 0 or new_x >= rows - 1 or new_y >= cols - 1:
        walk.finished = True
        return

    if not _hits_edge(binary, new_x, new_y, direction):
        # Start walks record the way back to the start pixel
        walk.buffer.append((direction + 4) % 8 if walk.at_start else direction)
        walk.x, walk.y = new_x, new_y
        return

    walk.finished = True
    if not walk.buffer:
        # Blocked right at the endpoint (usually by the edge itself)
        return

    if walk.at_start:
        edge.directions[:0] = reversed(walk.buffer)
        edge.sx, edge.sy = walk.x, walk.y
    else:
        edge.directions.extend(walk.buffer)
        edge.ex, edge.ey = walk.x, walk.y

    # The endpoint moved: the other walk on this side no longer starts from it
    for other in walks:
        if other is not walk and other.at_start == walk.at_start:
            other.finished = True


def close_edge(edge: Edge, binary: np.ndarray, slope: np.ndarray, nb_iterations: int) -> None:
    """
    Run the four closure walks of one edge.

    Each walk moves one pixel per iteration along the slope-derived
    direction and stops at the border or when it meets an edge pixel, in
    which case its directions are spliced into the edge.

    Args:
        edge: Edge to extend, modified in place
        binary: Binary grid the edges were traced from
        slope: Slope grid
        nb_iterations: Maximum steps per walk
    """
    if edge.start == edge.end:
        return

    walks = [
        _ClosureWalk(True, CLOSURE_OFFSETS[0], edge.sx, edge.sy),
        _ClosureWalk(True, CLOSURE_OFFSETS[1], edge.sx, edge.sy),
        _ClosureWalk(False, CLOSURE_OFFSETS[0], edge.ex, edge.ey),
        _ClosureWalk(False, CLOSURE_OFFSETS[1], edge.ex, edge.ey),
    ]

    for _ in range(nb_iterations):
        active = [w for w in walks if not w.finished]
        if not active:
            break
        for walk in active:
            if not walk.finished:
                _step_walk(walk, edge, walks, binary, slope)


def edges_closure(
    edges: List[Edge],
    binary: np.ndarray,
    slope: np.ndarray,
    nb_iterations: int = DEFAULT_CLOSURE_ITERATIONS,
) -> None:
    """
    Bridge small gaps between edges, in place.

    Args:
        edges: Edges from freeman_encoding, modified in place
        binary: Binary grid the edges were traced from
        slope: Slope grid (radians)
        nb_iterations: Maximum steps per walk
    """
    if binary.shape != slope.shape:
        raise InvariantViolation(f"Binary {binary.shape} and slope {slope.shape} shapes differ")
    if nb_iterations < 0:
        raise ValueError(f"Invalid iteration count: {nb_iterations}")

    before = sum(len(e) for e in edges)
    for edge in edges:
        close_edge(edge, binary, slope, nb_iterations)
    logger.debug(f"Edge closure ({nb_iterations} iterations): "
                 f"{sum(len(e) for e in edges) - before} directions added")


# =============================================================================
# Rendering
# =============================================================================

def trace_edges(edges: Sequence[Edge], height: int, width: int) -> np.ndarray:
    """
    Rasterize edges into a binary grid.

    Args:
        edges: Edges to draw
        height: Output rows
        width: Output columns

    Returns:
        uint8 grid with 255 on every edge pixel
    """
    res = np.zeros((height, width), dtype=BINARY_DTYPE)
    for edge in edges:
        for x, y in edge.points():
            if not in_bounds(res, x, y):
                raise InvariantViolation(f"Edge pixel ({x}, {y}) outside {height}x{width} grid")
            res[x, y] = 255
    return res
