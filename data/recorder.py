"""
Session recording.
LabelLog keeps the frame/steering labels of a Recording session;
SessionRecorder stores per-tick session data in HDF5.
"""

import h5py
import numpy as np
import json
import logging
from pathlib import Path
from typing import Optional, List
from datetime import datetime

from .formats.data_format import SessionFrame

logger = logging.getLogger(__name__)


class LabelLog:
    """Frame labels (`<frame file>,<steering>`) for training-data capture."""

    def __init__(self, labels_path: str):
        self.labels_path = Path(labels_path)
        self.labels: List[str] = []

    def add(self, frame_file: str, steering: float):
        self.labels.append(f"{frame_file},{steering:.7f}")

    def write(self) -> bool:
        """Rewrite the whole labels file. Called periodically, so it returns True to keep repeating."""
        self.labels_path.parent.mkdir(parents=True, exist_ok=True)
        self.labels_path.write_text(
            "\n".join(self.labels) + ("\n" if self.labels else ""), encoding="utf-8"
        )
        return True

    def __len__(self):
        return len(self.labels)


class SessionRecorder:
    """Records drive-session ticks to HDF5 format."""

    def __init__(self, output_dir: str, recording_name: Optional[str] = None,
                 mode: Optional[str] = None, flush_every: int = 50):
        """
        Initialize session recorder.

        Args:
            output_dir: Directory to save recordings
            recording_name: Name for this recording (default: timestamp)
            mode: Session mode name stored in the metadata
            flush_every: Buffered ticks written per flush
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        if recording_name is None:
            recording_name = f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        self.recording_name = recording_name
        self.output_file = self.output_dir / f"{recording_name}.h5"

        self.h5_file = h5py.File(self.output_file, 'w')
        self._create_datasets()

        self.frame_buffer: List[SessionFrame] = []
        self.frame_count = 0
        self.flush_every = flush_every

        self.metadata = {
            "recording_start_time": datetime.now().isoformat(),
            "recording_name": recording_name,
            "mode": mode,
        }

    def _create_datasets(self):
        """Create HDF5 datasets for data storage."""
        max_shape = (None,)

        self.h5_file.create_dataset("session/timestamps", shape=(0,), maxshape=max_shape, dtype=np.float64)
        self.h5_file.create_dataset("session/frame_ids", shape=(0,), maxshape=max_shape, dtype=np.int64)
        self.h5_file.create_dataset("session/lane_index", shape=(0,), maxshape=max_shape, dtype=np.int32)
        self.h5_file.create_dataset(
            "session/mode", shape=(0,), maxshape=max_shape, dtype=h5py.string_dtype()
        )

        self.h5_file.create_dataset("vehicle/position", shape=(0, 3), maxshape=(None, 3), dtype=np.float64)
        self.h5_file.create_dataset("vehicle/speed", shape=(0,), maxshape=max_shape, dtype=np.float32)
        self.h5_file.create_dataset("vehicle/heading", shape=(0,), maxshape=max_shape, dtype=np.float32)

        self.h5_file.create_dataset("control/raw", shape=(0,), maxshape=max_shape, dtype=np.float64)
        self.h5_file.create_dataset("control/actuator_angle", shape=(0,), maxshape=max_shape, dtype=np.float64)
        # -1 when no agent action applies
        self.h5_file.create_dataset("control/action", shape=(0,), maxshape=max_shape, dtype=np.int8)

        # NaN when error tracking is off
        self.h5_file.create_dataset("tracking/squared_error", shape=(0,), maxshape=max_shape, dtype=np.float64)

    def record_frame(self, frame: SessionFrame):
        """Buffer one tick; flushes every `flush_every` ticks."""
        self.frame_buffer.append(frame)
        self.frame_count += 1
        if len(self.frame_buffer) >= self.flush_every:
            self.flush()

    def flush(self):
        """Write buffered frames to disk."""
        if not self.frame_buffer:
            return
        frames = self.frame_buffer
        self.frame_buffer = []

        positions = []
        speeds = []
        headings = []
        raws = []
        angles = []
        actions = []
        for frame in frames:
            state = frame.vehicle_state
            positions.append(state.position if state is not None else [np.nan] * 3)
            speeds.append(state.speed if state is not None else np.nan)
            headings.append(state.heading if state is not None else np.nan)
            command = frame.control_command
            raws.append(command.raw if command is not None else np.nan)
            angles.append(command.actuator_angle if command is not None else np.nan)
            actions.append(command.action if command is not None and command.action is not None else -1)

        self._append("session/timestamps", [f.timestamp for f in frames])
        self._append("session/frame_ids", [f.frame_id for f in frames])
        self._append("session/lane_index", [f.lane_index for f in frames])
        self._append("session/mode", [f.mode for f in frames])
        self._append("vehicle/position", np.asarray(positions, dtype=np.float64).reshape(-1, 3))
        self._append("vehicle/speed", speeds)
        self._append("vehicle/heading", headings)
        self._append("control/raw", raws)
        self._append("control/actuator_angle", angles)
        self._append("control/action", actions)
        self._append(
            "tracking/squared_error",
            [f.squared_error if f.squared_error is not None else np.nan for f in frames],
        )
        self.h5_file.flush()

    def _append(self, name: str, values):
        dataset = self.h5_file[name]
        values = np.asarray(values, dtype=object if dataset.dtype.kind == "O" else dataset.dtype)
        current = dataset.shape[0]
        dataset.resize((current + len(values),) + dataset.shape[1:])
        dataset[current:] = values

    def close(self):
        """Flush remaining frames and close the recording file."""
        try:
            self.flush()
        except (OSError, ValueError) as e:
            logger.error(f"Error during final flush: {e}", exc_info=True)

        self.metadata["recording_end_time"] = datetime.now().isoformat()
        self.metadata["total_frames"] = self.frame_count
        self.h5_file.attrs["metadata"] = json.dumps(self.metadata, indent=2)
        self.h5_file.close()
        logger.info(f"Recording saved to: {self.output_file}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
