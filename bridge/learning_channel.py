"""
Request/response channel for a reinforcement-learning trainer.

Protocol, one exchange at a time:
  1. Trainer writes the action file: one integer in {0, 1, 2}.
  2. Simulation reads it; only a valid action lets the exchange proceed.
  3. If the info file is absent (trainer consumed the previous telemetry),
     the simulation writes fresh telemetry `[angle,reward,done]` to it.
  4. Trainer reads and deletes the info file, writes its next action.

The telemetry writer refuses to overwrite an unconsumed info file, so the
trainer can never miss or half-read a transition.
"""

import logging
import os
import re
from enum import IntEnum
from pathlib import Path
from typing import Optional

from data.formats.data_format import TelemetryRecord

logger = logging.getLogger(__name__)

_TELEMETRY_PATTERN = re.compile(r"^\[\s*([^,\]]+)\s*,\s*([^,\]]+)\s*,\s*(true|false)\s*\]$")


class AgentAction(IntEnum):
    """Discrete trainer action."""
    NO_OP = 0
    STEER_NEGATIVE = 1
    STEER_POSITIVE = 2


def parse_action(contents: str) -> Optional[AgentAction]:
    """Parse an action file body; None unless it is an integer in {0, 1, 2}."""
    text = contents.strip()
    try:
        code = int(text)
    except ValueError:
        return None
    try:
        return AgentAction(code)
    except ValueError:
        return None


def action_to_command(action: AgentAction, magnitude: float, previous: float) -> float:
    """Steering command for an action; NO_OP keeps the previous command."""
    if action == AgentAction.STEER_NEGATIVE:
        return -magnitude
    if action == AgentAction.STEER_POSITIVE:
        return magnitude
    return previous


def format_telemetry(record: TelemetryRecord) -> str:
    """Serialize telemetry as `[angle,reward,done]` with a lowercase boolean."""
    done = "true" if record.done else "false"
    return f"[{float(record.actuator_angle)!r},{float(record.reward)!r},{done}]"


def parse_telemetry(contents: str) -> Optional[TelemetryRecord]:
    """Inverse of format_telemetry; None if the text is not a telemetry array."""
    match = _TELEMETRY_PATTERN.match(contents.strip())
    if match is None:
        return None
    try:
        angle = float(match.group(1))
        reward = float(match.group(2))
    except ValueError:
        return None
    return TelemetryRecord(actuator_angle=angle, reward=reward, done=match.group(3) == "true")


class ReinforcementChannel:
    """Simulation side of the action/telemetry handshake."""

    def __init__(self, action_path: str, info_path: str):
        """
        Args:
            action_path: File the trainer writes actions to
            info_path: File the simulation writes telemetry to (trainer deletes it)
        """
        self.action_path = Path(action_path)
        self.info_path = Path(info_path)
        self.last_action: Optional[AgentAction] = None
        self.telemetry_written = 0

    def read_action(self) -> Optional[AgentAction]:
        """Read the current action; None if missing or not a valid action code."""
        try:
            contents = self.action_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            logger.debug(f"[RL_ACTION_INVALID] {self.action_path} is not UTF-8 text")
            return None
        except OSError as e:
            logger.warning(f"[RL_ACTION_READ] cannot read {self.action_path}: {e}")
            return None

        action = parse_action(contents)
        if action is None:
            logger.debug(f"[RL_ACTION_INVALID] {contents[:16]!r} in {self.action_path}")
            return None
        self.last_action = action
        return action

    def telemetry_pending(self) -> bool:
        """True while the trainer has not consumed the last telemetry."""
        return self.info_path.exists()

    def write_telemetry(self, record: TelemetryRecord) -> bool:
        """
        Publish telemetry if the previous record has been consumed.

        Returns:
            True if written, False if the info file is still present
        """
        if self.telemetry_pending():
            return False
        self.info_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.info_path.with_name(self.info_path.name + ".tmp")
        tmp_path.write_text(format_telemetry(record), encoding="utf-8")
        os.replace(tmp_path, self.info_path)
        self.telemetry_written += 1
        return True
