"""
File-based command channel between the simulation and an external driving agent.

The agent writes numbered command artifacts (`<index><suffix>`, e.g. `12sim.txt`)
into a shared directory. Each poll picks the highest index and reads one float
from it. Every failure (empty directory, no match, vanished file, bad number)
means "channel unavailable this tick": it is logged and the next poll retries.

Existence checks on a shared filesystem are best-effort, not mutual exclusion.
"""

import logging
import math
import os
import re
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class CommandPoller:
    """Reads the most recently written command artifact from a directory."""

    def __init__(self, directory: str, suffix: str = "sim.txt", poll_interval: float = 0.0):
        """
        Initialize command poller.

        Args:
            directory: Directory the agent writes command artifacts into
            suffix: Fixed filename suffix after the numeric index
            poll_interval: Seconds of simulation time between polls (0 = every tick)
        """
        if not suffix:
            raise ValueError("Command suffix must not be empty")
        if poll_interval < 0.0:
            raise ValueError("poll_interval must be non-negative")
        self.directory = Path(directory)
        self.suffix = suffix
        self.poll_interval = float(poll_interval)
        self._pattern = re.compile(r"^(\d+)" + re.escape(suffix) + r"$")
        self.last_index: Optional[int] = None
        self.last_value: Optional[float] = None
        self.failure_count = 0

    def list_artifacts(self) -> List[Tuple[int, Path]]:
        """List (index, path) of every matching artifact; empty if the directory is missing."""
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        artifacts = []
        for name in names:
            match = self._pattern.match(name)
            if match:
                artifacts.append((int(match.group(1)), self.directory / name))
        return artifacts

    def latest_artifact(self) -> Optional[Tuple[int, Path]]:
        """Return the artifact with the highest index, or None when there is none."""
        artifacts = self.list_artifacts()
        if not artifacts:
            return None
        return max(artifacts, key=lambda item: item[0])

    def poll(self) -> Optional[float]:
        """
        Read the newest command.

        Returns:
            Command value, or None if the channel is unavailable this tick
        """
        latest = self.latest_artifact()
        if latest is None:
            self._fail(f"[CHANNEL_EMPTY] no '*{self.suffix}' artifact in {self.directory}")
            return None

        index, path = latest
        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            # Agent cleaned it up between listing and reading
            self._fail(f"[CHANNEL_VANISHED] {path} disappeared before read")
            return None
        except UnicodeDecodeError as e:
            self._fail(f"[CHANNEL_PARSE] {path} is not UTF-8 text: {e}")
            return None
        except OSError as e:
            self._fail(f"[CHANNEL_READ] cannot read {path}: {e}")
            return None

        value = parse_command(contents)
        if value is None:
            self._fail(f"[CHANNEL_PARSE] {path} does not hold a finite number: {contents[:32]!r}")
            return None

        if self.failure_count:
            logger.info(f"[CHANNEL_RECOVERED] after {self.failure_count} failed polls (index={index})")
        self.failure_count = 0
        self.last_index = index
        self.last_value = value
        return value

    def _fail(self, message: str) -> None:
        self.failure_count += 1
        # First failure at warning level, repeats at debug to avoid flooding the log every tick
        level = logging.WARNING if self.failure_count == 1 else logging.DEBUG
        logger.log(level, message)


def parse_command(contents: str) -> Optional[float]:
    """Parse an artifact body as one finite float (decimal point, surrounding whitespace ok)."""
    try:
        value = float(contents.strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


class ResetFlag:
    """Edge-triggered reset signal: the flag file's existence requests one reset."""

    def __init__(self, flag_path: str):
        self.flag_path = Path(flag_path)

    def consume(self) -> bool:
        """
        Check for the flag and delete it.

        Returns:
            True exactly once per raised flag
        """
        if not self.flag_path.exists():
            return False
        try:
            self.flag_path.unlink()
        except FileNotFoundError:
            # Someone else removed it first; the request still counts once
            pass
        logger.info(f"[RESET_FLAG] consumed {self.flag_path}")
        return True
