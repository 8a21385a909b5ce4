"""
Data format definitions for drive sessions.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import numpy as np


@dataclass
class VehicleState:
    """Vehicle state sampled from the host."""
    timestamp: float
    position: np.ndarray  # [x, y, z] world
    speed: float
    heading: float = 0.0  # degrees, clockwise from +z


@dataclass
class ControlCommand:
    """Steering command for one tick."""
    timestamp: float
    raw: float  # raw command from channel or manual input
    actuator_angle: float  # wheel angle after conditioning (degrees)
    action: Optional[int] = None  # AgentAction code in reinforcement sessions
    source: str = "channel"  # "channel", "manual", "held"


@dataclass
class TelemetryRecord:
    """Telemetry published to a reinforcement-learning trainer."""
    actuator_angle: float
    reward: float
    done: bool


@dataclass
class SessionFrame:
    """One recorded tick of a drive session."""
    timestamp: float
    frame_id: int
    mode: str
    lane_index: int
    vehicle_state: Optional[VehicleState] = None
    control_command: Optional[ControlCommand] = None
    squared_error: Optional[float] = None  # None when error tracking is off


@dataclass
class LaneResult:
    """Summary of one lane of a variance test."""
    lane_index: int
    mean: float
    standard_deviation: float
    errors: List[float] = field(default_factory=list)
    path: Optional[str] = None  # results artifact written
