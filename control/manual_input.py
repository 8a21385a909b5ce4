"""
Manual steering input for Manual and Recording sessions.
Hardware polling stays in the host; this turns the polled state into a steering command.
"""

from dataclasses import dataclass


@dataclass
class ManualInput:
    """One tick of polled driver input."""
    steering_axis: float = 0.0    # wheel axis, -1.0 to 1.0
    steer_left: bool = False      # keyboard key held
    steer_right: bool = False     # keyboard key held
    recording_axis: float = 0.0   # >0 starts recording, <0 stops it


class ManualSteering:
    """Accumulates a steering command from a wheel axis or keyboard bumps."""

    def __init__(self, use_wheel: bool = False, steering_bump: float = 0.005):
        """
        Args:
            use_wheel: Take the wheel axis directly instead of keyboard bumps
            steering_bump: Steering change per tick while a key is held
        """
        self.use_wheel = use_wheel
        self.steering_bump = steering_bump
        self.steering = 0.0

    def update(self, manual_input: ManualInput) -> float:
        """Apply one tick of input and return the current steering command."""
        if self.use_wheel:
            self.steering = float(manual_input.steering_axis)
        else:
            if manual_input.steer_left:
                self.steering -= self.steering_bump
            if manual_input.steer_right:
                self.steering += self.steering_bump
        return self.steering

    def reset(self):
        self.steering = 0.0
