"""
Reward and episode termination for reinforcement sessions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

TERMINATION_POLICIES = ("error_threshold", "low_velocity")


def compute_reward(squared_error: float) -> float:
    """Positive near the path center, negative once the squared error passes 1."""
    return 1.0 - float(squared_error)


@dataclass
class EpisodeConfig:
    """Episode termination settings."""

    policy: str = "error_threshold"
    # error_threshold: done when the squared error exceeds this
    failure_threshold: float = 1.0
    # low_velocity: done when slower than min_speed for stall_time, after grace_period
    grace_period: float = 2.0
    min_speed: float = 0.2
    stall_time: float = 1.0


class EpisodeMonitor:
    """Decides when a reinforcement episode is over."""

    def __init__(self, config: EpisodeConfig):
        if config.policy not in TERMINATION_POLICIES:
            raise ValueError(
                f"Unknown termination policy '{config.policy}' (expected one of {TERMINATION_POLICIES})"
            )
        self.config = config
        self.episode_start = 0.0
        self.low_speed_since: Optional[float] = None
        self.episode_count = 0

    def start(self, now: float) -> None:
        """Begin a new episode at simulation time `now`."""
        self.episode_start = float(now)
        self.low_speed_since = None
        self.episode_count += 1

    def check(self, squared_error: float, speed: float, now: float) -> bool:
        """Return True if the episode is done."""
        if self.config.policy == "error_threshold":
            return squared_error > self.config.failure_threshold

        if now - self.episode_start < self.config.grace_period:
            self.low_speed_since = None
            return False
        if speed >= self.config.min_speed:
            self.low_speed_since = None
            return False
        if self.low_speed_since is None:
            self.low_speed_since = float(now)
        return now - self.low_speed_since >= self.config.stall_time


def build_episode_monitor(reinforcement_cfg: dict) -> EpisodeMonitor:
    """Build an EpisodeMonitor from the `reinforcement` config section."""
    return EpisodeMonitor(EpisodeConfig(
        policy=str(reinforcement_cfg.get("termination", "error_threshold")),
        failure_threshold=float(reinforcement_cfg.get("failure_threshold", 1.0)),
        grace_period=float(reinforcement_cfg.get("grace_period", 2.0)),
        min_speed=float(reinforcement_cfg.get("min_speed", 0.2)),
        stall_time=float(reinforcement_cfg.get("stall_time", 1.0)),
    ))
