"""
Vehicle kinematics (bicycle model) on the host's ground plane.
Used by the headless host; heading is measured clockwise from +z.
"""

import numpy as np
from typing import Tuple


class BicycleModel:
    """
    Bicycle model for vehicle kinematics.
    Simplified 2D model assuming no roll or pitch and no tyre slip.
    """

    def __init__(self, wheelbase: float = 0.914, max_steering_angle: float = 45.0):
        """
        Initialize bicycle model.

        Args:
            wheelbase: Distance between front and rear axles (meters)
            max_steering_angle: Maximum wheel angle (degrees)
        """
        self.wheelbase = wheelbase
        self.max_steering_angle = max_steering_angle

    def update(self, x: float, z: float, heading: float, velocity: float,
               steering_angle: float, dt: float) -> Tuple[float, float, float]:
        """
        Update vehicle pose.

        Args:
            x: Current x position
            z: Current z position
            heading: Current heading (degrees)
            velocity: Current velocity (m/s)
            steering_angle: Wheel angle (degrees, clamped)
            dt: Time step (seconds)

        Returns:
            New (x, z, heading)
        """
        steering_angle = np.clip(steering_angle, -self.max_steering_angle, self.max_steering_angle)
        heading_rad = np.radians(heading)

        dx = velocity * np.sin(heading_rad) * dt
        dz = velocity * np.cos(heading_rad) * dt
        dheading = np.degrees(velocity * self.compute_curvature(steering_angle) * dt)

        new_heading = heading + dheading
        # Normalize heading to [-180, 180]
        new_heading = np.degrees(np.arctan2(np.sin(np.radians(new_heading)), np.cos(np.radians(new_heading))))

        return float(x + dx), float(z + dz), float(new_heading)

    def compute_curvature(self, steering_angle: float) -> float:
        """
        Compute curvature from wheel angle.

        Args:
            steering_angle: Wheel angle (degrees)

        Returns:
            Curvature (1/m)
        """
        if abs(steering_angle) < 1e-6:
            return 0.0
        return float(np.tan(np.radians(steering_angle)) / self.wheelbase)
