"""
Tests for the trainer-side channel client (bridge/trainer_client.py) and the
random trainer tool.
"""

import pytest

from bridge.command_channel import CommandPoller, ResetFlag
from bridge.learning_channel import AgentAction, ReinforcementChannel
from bridge.trainer_client import FileBridgeClient
from data.formats.data_format import TelemetryRecord
from tools.random_trainer import run_random_trainer


def test_commands_get_increasing_indices(tmp_path):
    client = FileBridgeClient(directory=str(tmp_path))
    first = client.write_command(0.1)
    second = client.write_command(-0.2)
    assert first.name == "0sim.txt"
    assert second.name == "1sim.txt"

    poller = CommandPoller(str(tmp_path))
    assert poller.poll() == pytest.approx(-0.2)

    # A new client continues after the existing artifacts
    assert FileBridgeClient(directory=str(tmp_path)).write_command(0.3).name == "2sim.txt"


def test_clear_commands(tmp_path):
    client = FileBridgeClient(directory=str(tmp_path))
    client.write_command(0.1)
    client.write_command(0.2)
    (tmp_path / "keep.txt").write_text("x")
    assert client.clear_commands() == 2
    assert client.next_index == 0
    assert (tmp_path / "keep.txt").exists()


def test_actions(tmp_path):
    client = FileBridgeClient(directory=str(tmp_path))
    channel = ReinforcementChannel(str(client.action_path), str(client.info_path))
    assert client.write_action(2) is True
    assert channel.read_action() == AgentAction.STEER_POSITIVE
    assert client.write_action(5) is False
    assert channel.read_action() == AgentAction.STEER_POSITIVE


def test_telemetry_is_consumed(tmp_path):
    client = FileBridgeClient(directory=str(tmp_path))
    channel = ReinforcementChannel(str(client.action_path), str(client.info_path))
    assert client.read_telemetry() is None

    channel.write_telemetry(TelemetryRecord(3.5, 0.9, False))
    assert client.read_telemetry(consume=False) == TelemetryRecord(3.5, 0.9, False)
    assert channel.telemetry_pending()
    assert client.read_telemetry() == TelemetryRecord(3.5, 0.9, False)
    assert not channel.telemetry_pending()
    assert client.read_telemetry() is None


def test_reset_flag(tmp_path):
    client = FileBridgeClient(directory=str(tmp_path))
    flag = ResetFlag(str(client.raise_reset_flag()))
    assert flag.consume() is True
    assert flag.consume() is False


def test_health_check(tmp_path):
    assert FileBridgeClient(directory=str(tmp_path)).health_check() is True
    assert FileBridgeClient(directory=str(tmp_path / "missing")).health_check() is False


def test_random_trainer_episodes(tmp_path, monkeypatch):
    """Episodes end on done telemetry; actions stay in the valid set."""
    client = FileBridgeClient(directory=str(tmp_path))
    steps = []

    def fake_wait(timeout=5.0, poll_interval=0.01):
        steps.append(int(client.action_path.read_text()))
        return TelemetryRecord(0.0, 1.0, len(steps) % 3 == 0)

    monkeypatch.setattr(client, "wait_for_telemetry", fake_wait)
    returns = run_random_trainer(client, episodes=2, seed=0)
    assert returns == [3.0, 3.0]
    assert set(steps) <= {0, 1, 2}


def test_random_trainer_gives_up_without_session(tmp_path, monkeypatch):
    client = FileBridgeClient(directory=str(tmp_path))
    monkeypatch.setattr(client, "wait_for_telemetry", lambda timeout=5.0, poll_interval=0.01: None)
    assert run_random_trainer(client, episodes=3) == []
