"""
Interface to the host simulation.
Rendering, wheel physics and input hardware live in the host; the session only
talks to it through these calls.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from control.manual_input import ManualInput


class VehicleHost(ABC):
    """The simulated vehicle as seen by the drive session."""

    @abstractmethod
    def position(self) -> np.ndarray:
        """World position [x, y, z] (y is vertical)."""

    @abstractmethod
    def speed(self) -> float:
        """Current speed (m/s)."""

    @abstractmethod
    def apply_steering(self, wheel_angle_degrees: float):
        """Set the front wheel angle."""

    @abstractmethod
    def teleport(self, point: Sequence[float], heading_degrees: float):
        """
        Place the vehicle at a ground-plane point (x, z) facing `heading_degrees`
        and zero its velocity.
        """

    def heading(self) -> float:
        """Heading in degrees, clockwise from +z. Hosts that track it override this."""
        return 0.0

    def manual_input(self) -> ManualInput:
        """Driver input polled this tick; neutral by default."""
        return ManualInput()

    def capture_frame(self, index: int) -> Optional[str]:
        """Save a camera frame and return its file name, or None if capture is unsupported."""
        return None
