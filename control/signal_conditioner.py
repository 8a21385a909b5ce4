"""
Steering signal conditioning.

Maps a raw steering command to a wheel angle in degrees through an optional
chain of mechanical models:
  1. Backlash: a dead band that holds the output until the input drags it
  2. Drift: slow creep toward the band edge while the command sign is stable
  3. Low-pass: weighted moving average over recent raw commands
followed by the actuator remap (arctangent or linear).

All stages are pure numeric transforms. NaN/inf are not filtered here; the
command channel rejects them before they reach the conditioner.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Sequence


DEFAULT_LOW_PASS_WEIGHTS = (1.0, 0.3, 0.2, 0.1)


@dataclass
class SignalConditionerConfig:
    """Configuration for the steering signal chain."""

    # Backlash / dead band
    backlash_enabled: bool = True
    dead_band_width: float = 0.05

    # Drift toward the band edge
    drift_enabled: bool = False
    drift_rate: float = 0.01  # steering units per second

    # Low-pass filter (index 0 = most recent sample)
    low_pass_enabled: bool = False
    low_pass_weights: tuple = DEFAULT_LOW_PASS_WEIGHTS

    # Actuator remap: "arctan" -> degrees(atan(value * calibration)), "linear" -> value * linear_gain
    actuator_remap: str = "arctan"
    calibration: float = 1.038
    linear_gain: float = 1.0


@dataclass
class ConditionerState:
    """Mutable state of one vehicle's steering chain."""

    dead_band_center: float = 0.0
    last_sign: Optional[int] = None
    sign_change_time: float = 0.0
    history: deque = field(default_factory=deque)

    def reset(self, history_length: int) -> None:
        self.dead_band_center = 0.0
        self.last_sign = None
        self.sign_change_time = 0.0
        self.history = deque([0.0] * history_length, maxlen=history_length)


def _sign(value: float) -> int:
    if value > 0.0:
        return 1
    if value < 0.0:
        return -1
    return 0


def inverse_turning_radius_to_wheel_angle(inverse_turning_radius: float, wheelbase: float) -> float:
    """Wheel angle (degrees) that produces the given curvature (1/m) for a wheelbase (m)."""
    return math.degrees(math.atan(inverse_turning_radius * wheelbase))


def wheel_angle_to_inverse_turning_radius(wheel_angle_degrees: float, wheelbase: float) -> float:
    """Curvature (1/m) produced by a wheel angle (degrees) for a wheelbase (m)."""
    return math.tan(math.radians(wheel_angle_degrees)) / wheelbase


class SignalConditioner:
    """Stateful steering chain: backlash -> drift -> low-pass -> actuator remap."""

    def __init__(self, config: SignalConditionerConfig, state: Optional[ConditionerState] = None):
        if config.actuator_remap not in ("arctan", "linear"):
            raise ValueError(f"Unknown actuator_remap '{config.actuator_remap}'")
        if config.dead_band_width < 0.0:
            raise ValueError("dead_band_width must be non-negative")
        weights = tuple(float(w) for w in config.low_pass_weights)
        if not weights or sum(weights) <= 0.0:
            raise ValueError("low_pass_weights must be non-empty with a positive sum")

        self.config = config
        self.weights = weights
        self.state = state if state is not None else ConditionerState()
        if self.state.history.maxlen != len(weights):
            self.state.reset(len(weights))

    def reset(self) -> None:
        """Return to the power-on state (centered band, empty filter history)."""
        self.state.reset(len(self.weights))

    def condition(self, raw: float, timestamp: float, apply_stages: bool = True) -> float:
        """
        Condition a raw steering command and convert it to a wheel angle.

        Args:
            raw: Raw steering command from the channel or manual input
            timestamp: Simulation time (seconds), used by the drift stage
            apply_stages: False skips backlash/drift/low-pass (remap only)

        Returns:
            Wheel angle in degrees
        """
        value = self.condition_value(raw, timestamp) if apply_stages else float(raw)
        return self.remap(value)

    def condition_value(self, raw: float, timestamp: float) -> float:
        """Run the enabled stages and return the conditioned value before remap."""
        raw = float(raw)
        value = raw
        if self.config.backlash_enabled:
            value = self.apply_backlash(raw)
        if self.config.drift_enabled:
            value = self.apply_drift(raw, value, timestamp)
        if self.config.low_pass_enabled:
            # Filter the raw command and carry the mechanical offset of this sample
            value = self.apply_low_pass(raw) + (value - raw)
        return value

    def apply_backlash(self, value: float) -> float:
        """Drag the dead band once `value` leaves it; output the band center."""
        width = self.config.dead_band_width
        center = self.state.dead_band_center
        if abs(value - center) > width / 2:
            # Center trails the input by the full band width
            offset = -width if value > center else width
            self.state.dead_band_center = value + offset
        return self.state.dead_band_center

    def apply_drift(self, raw: float, value: float, timestamp: float) -> float:
        """Creep `value` away from the raw command's sign, bounded by the current band."""
        sign = _sign(raw)
        if sign != self.state.last_sign:
            self.state.last_sign = sign
            self.state.sign_change_time = float(timestamp)
            return value

        elapsed = max(0.0, float(timestamp) - self.state.sign_change_time)
        drifted = value + elapsed * self.config.drift_rate * (-sign)
        half_width = self.config.dead_band_width / 2
        center = self.state.dead_band_center
        return min(max(drifted, center - half_width), center + half_width)

    def apply_low_pass(self, raw: float) -> float:
        """Push `raw` into the history ring and return the weighted average."""
        self.state.history.appendleft(float(raw))
        weighted_sum = sum(w * v for w, v in zip(self.weights, self.state.history))
        return weighted_sum / sum(self.weights)

    def remap(self, value: float) -> float:
        """Convert a conditioned steering value to a wheel angle in degrees."""
        if self.config.actuator_remap == "arctan":
            return math.degrees(math.atan(value * self.config.calibration))
        return value * self.config.linear_gain


def build_signal_conditioner(conditioner_cfg: dict,
                             state: Optional[ConditionerState] = None) -> SignalConditioner:
    """Build a SignalConditioner from the `signal_conditioner` config section."""
    weights: Sequence[float] = conditioner_cfg.get("low_pass_weights", DEFAULT_LOW_PASS_WEIGHTS)
    config = SignalConditionerConfig(
        backlash_enabled=bool(conditioner_cfg.get("backlash_enabled", True)),
        dead_band_width=float(conditioner_cfg.get("dead_band_width", 0.05)),
        drift_enabled=bool(conditioner_cfg.get("drift_enabled", False)),
        drift_rate=float(conditioner_cfg.get("drift_rate", 0.01)),
        low_pass_enabled=bool(conditioner_cfg.get("low_pass_enabled", False)),
        low_pass_weights=tuple(float(w) for w in weights),
        actuator_remap=str(conditioner_cfg.get("actuator_remap", "arctan")),
        calibration=float(conditioner_cfg.get("calibration", 1.038)),
        linear_gain=float(conditioner_cfg.get("linear_gain", 1.0)),
    )
    return SignalConditioner(config, state=state)
