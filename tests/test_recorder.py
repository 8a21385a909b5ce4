"""
Tests for session recording and replay (data/recorder.py, data/replay.py).
"""

import numpy as np
import pytest

from data.formats.data_format import ControlCommand, SessionFrame, VehicleState
from data.recorder import LabelLog, SessionRecorder
from data.replay import SessionReplay


def _frame(i, lane_index=0, squared_error=None, action=None):
    return SessionFrame(
        timestamp=0.02 * i,
        frame_id=i,
        mode="variance_test" if squared_error is not None else "autonomous",
        lane_index=lane_index,
        vehicle_state=VehicleState(timestamp=0.02 * i, position=np.array([0.0, 0.0, 0.1 * i]),
                                   speed=2.0, heading=0.0),
        control_command=ControlCommand(timestamp=0.02 * i, raw=0.1, actuator_angle=5.0, action=action),
        squared_error=squared_error,
    )


def test_recording_round_trip(tmp_path):
    with SessionRecorder(str(tmp_path), recording_name="run", mode="variance_test", flush_every=2) as recorder:
        recorder.record_frame(_frame(0, lane_index=0, squared_error=0.25))
        recorder.record_frame(_frame(1, lane_index=0, squared_error=0.5))
        recorder.record_frame(_frame(2, lane_index=1, squared_error=1.0, action=2))
        recorder.record_frame(_frame(3))

    with SessionReplay(str(tmp_path / "run.h5")) as replay:
        assert len(replay) == 4
        assert replay.metadata["total_frames"] == 4
        assert replay.metadata["mode"] == "variance_test"

        frames = list(replay.get_frames())
        assert frames[2]["action"] == 2
        assert frames[0]["action"] is None
        assert frames[3]["squared_error"] is None
        assert frames[3]["mode"] == "autonomous"
        assert np.allclose(frames[1]["position"], [0.0, 0.0, 0.1])

        assert np.allclose(replay.squared_errors(), [0.25, 0.5, 1.0])
        assert np.allclose(replay.squared_errors(lane_index=0), [0.25, 0.5])


def test_frame_without_state(tmp_path):
    recorder = SessionRecorder(str(tmp_path), recording_name="bare")
    recorder.record_frame(SessionFrame(timestamp=0.0, frame_id=0, mode="manual", lane_index=0))
    recorder.close()

    with SessionReplay(str(tmp_path / "bare.h5")) as replay:
        frame = next(replay.get_frames())
        assert np.isnan(frame["raw"])
        assert np.all(np.isnan(frame["position"]))


def test_replay_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        SessionReplay(str(tmp_path / "missing.h5"))


def test_label_log(tmp_path):
    labels = LabelLog(str(tmp_path / "sim" / "labels.csv"))
    assert labels.write() is True
    assert (tmp_path / "sim" / "labels.csv").read_text() == ""

    labels.add("sim/0.png", 0.1)
    labels.add("sim/1.png", -0.25)
    labels.write()
    assert (tmp_path / "sim" / "labels.csv").read_text() == "sim/0.png,0.1000000\nsim/1.png,-0.2500000\n"
    assert len(labels) == 2
