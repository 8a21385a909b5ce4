"""
Headless stand-in for the host simulation.
Drives at a constant speed and integrates the bicycle model every tick.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from control.manual_input import ManualInput
from sim.host import VehicleHost
from sim.vehicle_model import BicycleModel

logger = logging.getLogger(__name__)


class KinematicHost(VehicleHost):
    """Constant-speed kinematic vehicle for runs without a rendering host."""

    def __init__(self, model: Optional[BicycleModel] = None, cruise_speed: float = 2.0,
                 acceleration: float = 2.0, height: float = 0.0):
        """
        Args:
            model: Kinematics model (default bicycle with 0.914 m wheelbase)
            cruise_speed: Speed the vehicle accelerates to (m/s)
            acceleration: Acceleration toward cruise speed (m/s^2), 0 = instant
            height: Constant vertical coordinate reported in position()
        """
        self.model = model or BicycleModel()
        self.cruise_speed = cruise_speed
        self.acceleration = acceleration
        self.height = height
        self.x = 0.0
        self.z = 0.0
        self._heading = 0.0
        self._speed = 0.0 if acceleration > 0.0 else cruise_speed
        self.wheel_angle = 0.0
        self.teleport_count = 0
        self.pending_input: List[ManualInput] = []

    def position(self) -> np.ndarray:
        return np.array([self.x, self.height, self.z], dtype=np.float64)

    def speed(self) -> float:
        return self._speed

    def heading(self) -> float:
        return self._heading

    def apply_steering(self, wheel_angle_degrees: float):
        self.wheel_angle = float(wheel_angle_degrees)

    def teleport(self, point: Sequence[float], heading_degrees: float):
        self.x = float(point[0])
        self.z = float(point[1])
        self._heading = float(heading_degrees)
        self._speed = 0.0 if self.acceleration > 0.0 else self.cruise_speed
        self.teleport_count += 1
        logger.debug(f"[HOST_TELEPORT] x={self.x:.3f} z={self.z:.3f} heading={self._heading:.1f}")

    def manual_input(self) -> ManualInput:
        """Scripted input queued by tests/tools, one entry per tick."""
        if self.pending_input:
            return self.pending_input.pop(0)
        return ManualInput()

    def step(self, dt: float):
        """Advance the vehicle by one physics tick."""
        if self.acceleration > 0.0:
            self._speed = min(self.cruise_speed, self._speed + self.acceleration * dt)
        self.x, self.z, self._heading = self.model.update(
            self.x, self.z, self._heading, self._speed, self.wheel_angle, dt
        )
