"""
Replay utility for drive-session recordings.
"""

import h5py
import json
import numpy as np
from pathlib import Path
from typing import Iterator, Optional


class SessionReplay:
    """Read back a recorded drive session."""

    def __init__(self, recording_file: str):
        """
        Initialize session replay.

        Args:
            recording_file: Path to HDF5 recording file
        """
        self.recording_file = Path(recording_file)
        if not self.recording_file.exists():
            raise FileNotFoundError(f"Recording file not found: {recording_file}")

        self.h5_file = h5py.File(self.recording_file, 'r')
        self._load_metadata()

    def _load_metadata(self):
        if "metadata" in self.h5_file.attrs:
            self.metadata = json.loads(self.h5_file.attrs["metadata"])
        else:
            self.metadata = {}

    def __len__(self) -> int:
        return int(self.h5_file["session/timestamps"].shape[0])

    def get_frames(self) -> Iterator[dict]:
        """
        Get recorded ticks.

        Yields:
            Dictionary with one tick of session data
        """
        f = self.h5_file
        for i in range(len(self)):
            error = float(f["tracking/squared_error"][i])
            action = int(f["control/action"][i])
            mode = f["session/mode"][i]
            yield {
                "timestamp": float(f["session/timestamps"][i]),
                "frame_id": int(f["session/frame_ids"][i]),
                "lane_index": int(f["session/lane_index"][i]),
                "mode": mode.decode("utf-8") if isinstance(mode, bytes) else str(mode),
                "position": f["vehicle/position"][i],
                "speed": float(f["vehicle/speed"][i]),
                "heading": float(f["vehicle/heading"][i]),
                "raw": float(f["control/raw"][i]),
                "actuator_angle": float(f["control/actuator_angle"][i]),
                "action": action if action >= 0 else None,
                "squared_error": None if np.isnan(error) else error,
            }

    def squared_errors(self, lane_index: Optional[int] = None) -> np.ndarray:
        """Tracked squared errors, optionally for one lane."""
        errors = self.h5_file["tracking/squared_error"][:]
        mask = ~np.isnan(errors)
        if lane_index is not None:
            mask &= self.h5_file["session/lane_index"][:] == lane_index
        return errors[mask]

    def close(self):
        self.h5_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
