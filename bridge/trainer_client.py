"""
Python client helper for the file-based control channel.
Provides the external agent's side: command artifacts, trainer actions,
telemetry consumption and the evolutionary reset flag.
"""

import logging
import os
import time
from pathlib import Path
from typing import Optional

from bridge.learning_channel import AgentAction, parse_telemetry
from data.formats.data_format import TelemetryRecord

logger = logging.getLogger(__name__)


class FileBridgeClient:
    """Client for exchanging artifacts with a running drive session."""

    def __init__(self, directory: str = "/tmp", command_suffix: str = "sim.txt",
                 action_file: Optional[str] = None, info_file: Optional[str] = None,
                 reset_flag: Optional[str] = None):
        """
        Initialize file bridge client.

        Args:
            directory: Shared channel directory
            command_suffix: Suffix after the numeric index of command artifacts
            action_file: Action file path (default <directory>/action.txt)
            info_file: Telemetry file path (default <directory>/info.txt)
            reset_flag: Reset flag path (default <directory>/reset.txt)
        """
        self.directory = Path(directory)
        self.command_suffix = command_suffix
        self.action_path = Path(action_file) if action_file else self.directory / "action.txt"
        self.info_path = Path(info_file) if info_file else self.directory / "info.txt"
        self.reset_flag_path = Path(reset_flag) if reset_flag else self.directory / "reset.txt"
        self.next_index = self._first_free_index()

    def _first_free_index(self) -> int:
        highest = -1
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return 0
        for name in names:
            if name.endswith(self.command_suffix):
                prefix = name[:-len(self.command_suffix)]
                if prefix.isdigit():
                    highest = max(highest, int(prefix))
        return highest + 1

    def _write_atomic(self, path: Path, text: str):
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)

    def write_command(self, value: float) -> Path:
        """
        Publish a steering command as the next numbered artifact.

        Args:
            value: Raw steering command

        Returns:
            Path of the artifact written
        """
        path = self.directory / f"{self.next_index}{self.command_suffix}"
        # Temp name must not match the command pattern
        self._write_atomic(path, repr(float(value)))
        self.next_index += 1
        return path

    def write_action(self, action: int) -> bool:
        """
        Set the trainer action.

        Args:
            action: 0 (no-op), 1 (steer negative) or 2 (steer positive)

        Returns:
            True if written, False if the action is not valid
        """
        try:
            action = AgentAction(int(action))
        except ValueError:
            logger.error(f"Invalid action {action!r}, expected one of {[a.value for a in AgentAction]}")
            return False
        self._write_atomic(self.action_path, str(action.value))
        return True

    def read_telemetry(self, consume: bool = True) -> Optional[TelemetryRecord]:
        """
        Read the latest telemetry published by the simulation.

        Args:
            consume: Delete the info file after reading so the next record can be written

        Returns:
            TelemetryRecord or None if nothing is pending or it cannot be parsed
        """
        try:
            contents = self.info_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        record = parse_telemetry(contents)
        if record is None:
            logger.warning(f"[TELEMETRY_PARSE] unexpected telemetry {contents[:64]!r}")
        if consume:
            try:
                self.info_path.unlink()
            except FileNotFoundError:
                pass
        return record

    def wait_for_telemetry(self, timeout: float = 5.0, poll_interval: float = 0.01) -> Optional[TelemetryRecord]:
        """Block until telemetry arrives or `timeout` seconds pass."""
        deadline = time.time() + timeout
        while time.time() < deadline:
            record = self.read_telemetry()
            if record is not None:
                return record
            time.sleep(poll_interval)
        return None

    def raise_reset_flag(self) -> Path:
        """Request one reset of the vehicle to the path start."""
        self.reset_flag_path.parent.mkdir(parents=True, exist_ok=True)
        self.reset_flag_path.touch()
        return self.reset_flag_path

    def clear_commands(self) -> int:
        """Delete every command artifact. Returns the number removed."""
        removed = 0
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return 0
        for name in names:
            prefix = name[:-len(self.command_suffix)] if name.endswith(self.command_suffix) else ""
            if prefix.isdigit():
                try:
                    (self.directory / name).unlink()
                    removed += 1
                except FileNotFoundError:
                    pass
        self.next_index = 0
        return removed

    def health_check(self) -> bool:
        """
        Check if the channel directory is usable.

        Returns:
            True if the directory exists and is writable, False otherwise
        """
        return self.directory.is_dir() and os.access(self.directory, os.W_OK)


if __name__ == "__main__":
    # Test client
    client = FileBridgeClient()

    if client.health_check():
        print(f"Channel directory {client.directory} is usable")
        path = client.write_command(0.0)
        print(f"Wrote command artifact {path}")
        record = client.read_telemetry(consume=False)
        if record:
            print(f"Pending telemetry: angle={record.actuator_angle:.3f} reward={record.reward:.3f} done={record.done}")
    else:
        print("Channel directory is not available")
