"""
Cross-track error estimation against a reference path.

The error is the squared distance from the vehicle to the line through the two
path points nearest to it. The two points are found by a full scan with no
adjacency assumption, so the estimate is only meaningful on convex, well-spaced,
roughly straight stretches of path. On concave or looped paths the nearest two
points may not be neighbours and the value has no geometric meaning.
"""

from typing import Sequence, Tuple

import numpy as np

from geometry.path import Path

# Segments flatter/steeper than this are treated as exactly horizontal/vertical
SLOPE_EPSILON = 1e-12


def nearest_two_indices(points: np.ndarray, position: np.ndarray) -> Tuple[int, int]:
    """Indices of the two points closest to `position`, ties going to the earlier point."""
    if len(points) < 2:
        raise ValueError(f"Need at least 2 path points, got {len(points)}")
    squared_distances = np.sum((points - position) ** 2, axis=1)
    order = np.argsort(squared_distances, kind="stable")
    return int(order[0]), int(order[1])


def squared_distance_to_line(first: np.ndarray, second: np.ndarray,
                             position: np.ndarray) -> float:
    """
    Squared distance from `position` to the line through `first` and `second`.

    Solves the path line and its perpendicular through `position` for their
    intersection. Vertical, horizontal and zero-length segments are handled
    explicitly so the result is never NaN.
    """
    dx = float(second[0] - first[0])
    dy = float(second[1] - first[1])
    px, py = float(position[0]), float(position[1])

    if abs(dx) < SLOPE_EPSILON and abs(dy) < SLOPE_EPSILON:
        # Duplicate points: no line, fall back to point distance
        return (px - float(first[0])) ** 2 + (py - float(first[1])) ** 2
    if abs(dx) < SLOPE_EPSILON:
        return (px - float(first[0])) ** 2
    if abs(dy) < SLOPE_EPSILON:
        return (py - float(first[1])) ** 2

    slope = dy / dx
    intercept = float(first[1]) - float(first[0]) * slope
    perpendicular_slope = -1.0 / slope
    perpendicular_intercept = py - px * perpendicular_slope

    x_projection = (perpendicular_intercept - intercept) / (slope - perpendicular_slope)
    y_projection = slope * x_projection + intercept
    return (px - x_projection) ** 2 + (py - y_projection) ** 2


def estimate_squared_error(path: Path, position: Sequence[float]) -> float:
    """
    Estimate the squared lateral deviation of `position` from `path`.

    Args:
        path: Reference path (at least 2 points)
        position: Vehicle position on the ground plane (x, z)

    Returns:
        Non-negative squared error
    """
    points = path.points if isinstance(path, Path) else np.asarray(path, dtype=np.float64)
    position = np.asarray(position, dtype=np.float64)
    first_index, second_index = nearest_two_indices(points, position)
    return squared_distance_to_line(points[first_index], points[second_index], position)
