"""
Tests for cross-track error estimation (geometry/cross_track.py).
"""

import numpy as np
import pytest

from geometry.cross_track import estimate_squared_error, nearest_two_indices, squared_distance_to_line
from geometry.path import Path


class TestStraightPath:
    """Positions on and beside a straight diagonal path."""

    def setup_method(self):
        self.path = Path(np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0], [3.0, 3.0]]))

    def test_on_path_is_zero(self):
        assert estimate_squared_error(self.path, (1.5, 1.5)) == pytest.approx(0.0, abs=1e-12)

    def test_on_waypoint_is_zero(self):
        assert estimate_squared_error(self.path, (2.0, 2.0)) == pytest.approx(0.0, abs=1e-12)

    def test_offset_position(self):
        # Distance from (1, 2) to y = x is 1/sqrt(2)
        assert estimate_squared_error(self.path, (1.0, 2.0)) == pytest.approx(0.5)

    def test_point_order_does_not_matter(self):
        """Nearest points are found by a full scan, not by walking the path."""
        shuffled = Path(np.array([[3.0, 3.0], [0.0, 0.0], [2.0, 2.0], [1.0, 1.0]]))
        assert estimate_squared_error(shuffled, (1.0, 2.0)) == pytest.approx(
            estimate_squared_error(self.path, (1.0, 2.0))
        )


def test_reflection_symmetry():
    """Mirror images across the path line have the same error."""
    path = Path(np.array([[0.0, 0.0], [2.0, 1.0], [4.0, 2.0], [6.0, 3.0]]))
    position = np.array([3.0, 3.0])
    # Reflection of (3, 3) across y = x / 2
    mirrored = np.array([4.2, 0.6])

    error = estimate_squared_error(path, position)
    assert error == pytest.approx(1.8)
    assert estimate_squared_error(path, mirrored) == pytest.approx(error)


def test_reflection_symmetry_on_closed_square():
    """Points mirrored across the bottom edge of a square loop see the same edge."""
    path = Path(np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]))
    inside = estimate_squared_error(path, (0.5, 0.2))
    outside = estimate_squared_error(path, (0.5, -0.2))
    assert inside == pytest.approx(0.04)
    assert outside == pytest.approx(0.04)


class TestDegenerateSegments:
    def test_vertical_segment(self):
        path = Path(np.array([[0.0, 0.0], [0.0, 1.0], [0.0, 2.0]]))
        error = estimate_squared_error(path, (0.5, 1.2))
        assert error == pytest.approx(0.25)
        assert np.isfinite(error)

    def test_horizontal_segment(self):
        path = Path(np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]]))
        error = estimate_squared_error(path, (1.2, -0.3))
        assert error == pytest.approx(0.09)
        assert np.isfinite(error)

    def test_coincident_nearest_points(self):
        """Duplicate waypoints fall back to the distance to that point."""
        path = Path(np.array([[1.0, 1.0], [1.0, 1.0], [5.0, 5.0]]))
        assert estimate_squared_error(path, (1.0, 2.0)) == pytest.approx(1.0)

    def test_line_distance_helper_vertical(self):
        assert squared_distance_to_line(np.array([2.0, 0.0]), np.array([2.0, 5.0]),
                                        np.array([-1.0, 3.0])) == pytest.approx(9.0)


def test_nearest_two_ties_go_to_first_point():
    points = np.array([[1.0, 0.0], [-1.0, 0.0], [0.0, 5.0]])
    assert nearest_two_indices(points, np.array([0.0, 0.0])) == (0, 1)


def test_too_few_points_raises():
    with pytest.raises(ValueError):
        estimate_squared_error(np.array([[0.0, 0.0]]), (0.0, 0.0))
