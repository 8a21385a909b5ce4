"""
Reference path loading.
Waypoints arrive as 3D world points and are projected onto the ground plane.
"""

import logging
from dataclasses import dataclass
from pathlib import Path as FilePath
from typing import Iterable, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def project_onto_ground_plane(point: Sequence[float]) -> np.ndarray:
    """
    Project a 3D world point (x, y, z) onto the horizontal plane.

    The vertical axis (y) is discarded, giving (x, z).
    """
    return np.array([float(point[0]), float(point[2])], dtype=np.float64)


@dataclass(frozen=True, eq=False)
class Path:
    """Ordered 2D reference path. Index 0 is the start/reset point."""
    points: np.ndarray  # [N, 2] (x, z)
    name: str = "path"

    def __post_init__(self):
        points = np.array(self.points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError(f"Path points must have shape [N, 2], got {points.shape}")
        if len(points) < 2:
            raise ValueError(f"Path '{self.name}' needs at least 2 points, got {len(points)}")
        points.setflags(write=False)
        object.__setattr__(self, "points", points)

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, index: int) -> np.ndarray:
        return self.points[index]

    @property
    def start(self) -> np.ndarray:
        return self.points[0]

    def heading_at(self, index: int) -> float:
        """
        Heading in degrees from point `index` toward point `index + 1`.

        Measured clockwise from the +z axis, the ground-plane convention of the host.
        """
        if index < 0 or index >= len(self.points) - 1:
            raise ValueError(f"No next point after index {index} on path '{self.name}'")
        dx, dz = self.points[index + 1] - self.points[index]
        return float(np.degrees(np.arctan2(dx, dz)))


def path_from_waypoints(waypoints: Iterable[Sequence[float]], name: str = "path",
                        skip_root: bool = True) -> Path:
    """
    Build a path from waypoint nodes in the order the host exposes them.

    Args:
        waypoints: 3D positions of the waypoint collection, root node first
        name: Path name (used in logs and results)
        skip_root: Drop the first entry, which is the collection's own root node

    Returns:
        Path of the ground-plane projections
    """
    nodes = list(waypoints)
    if skip_root:
        nodes = nodes[1:]
    return Path(np.array([project_onto_ground_plane(p) for p in nodes]), name=name)


def load_path_csv(csv_path: str) -> Path:
    """
    Load a path from a CSV of waypoints.

    Rows are either `x,y,z` world points (projected) or `x,z` ground-plane points.
    Lines starting with '#' are ignored.
    """
    csv_path = FilePath(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Path file not found: {csv_path}")

    data = np.loadtxt(csv_path, delimiter=",", comments="#", ndmin=2)
    if data.shape[1] == 3:
        points = data[:, [0, 2]]
    elif data.shape[1] == 2:
        points = data
    else:
        raise ValueError(f"Expected 2 or 3 columns in {csv_path}, got {data.shape[1]}")

    path = Path(points, name=csv_path.stem)
    logger.info(f"Loaded path '{path.name}' with {len(path)} points from {csv_path}")
    return path
