"""
Session modes and their transition table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class SessionMode(Enum):
    MANUAL = "manual"
    RECORDING = "recording"
    AUTONOMOUS = "autonomous"
    VARIANCE_TEST = "variance_test"
    REINFORCEMENT = "reinforcement"
    EVOLUTIONARY = "evolutionary"


@dataclass(frozen=True)
class ModeBehavior:
    """What a mode runs each tick and on entry."""
    manual_input: bool = False       # steering from the driver instead of a channel
    polls_commands: bool = False     # newest-command-artifact polling task
    captures_frames: bool = False    # frame capture task (host decides whether it can capture)
    records_labels: bool = False     # frame/steering label log
    resets_on_entry: bool = False    # one reset to path index 0 at start
    lane_sequencing: bool = False    # repeating lane switch with error tracking
    reinforcement: bool = False      # action/telemetry handshake every physics tick
    watches_reset_flag: bool = False  # evolutionary reset flag


MODE_BEHAVIOR: Dict[SessionMode, ModeBehavior] = {
    SessionMode.MANUAL: ModeBehavior(manual_input=True),
    SessionMode.RECORDING: ModeBehavior(manual_input=True, captures_frames=True, records_labels=True),
    SessionMode.AUTONOMOUS: ModeBehavior(polls_commands=True, captures_frames=True),
    SessionMode.VARIANCE_TEST: ModeBehavior(polls_commands=True, captures_frames=True, lane_sequencing=True),
    SessionMode.REINFORCEMENT: ModeBehavior(captures_frames=True, resets_on_entry=True, reinforcement=True),
    SessionMode.EVOLUTIONARY: ModeBehavior(
        polls_commands=True, captures_frames=True, resets_on_entry=True, watches_reset_flag=True
    ),
}

# (mode, event) -> next mode. Unlisted pairs keep the current mode.
TRANSITIONS: Dict[Tuple[SessionMode, str], SessionMode] = {
    (SessionMode.VARIANCE_TEST, "first_lane_reset"): SessionMode.AUTONOMOUS,
}


def transition(mode: SessionMode, event: str) -> SessionMode:
    return TRANSITIONS.get((mode, event), mode)


def parse_mode(name: str) -> SessionMode:
    """Mode from its config name; case and '-' vs '_' are ignored."""
    key = str(name).strip().lower().replace("-", "_")
    try:
        return SessionMode(key)
    except ValueError:
        valid = ", ".join(m.value for m in SessionMode)
        raise ValueError(f"Unknown session mode '{name}' (expected one of: {valid})") from None
