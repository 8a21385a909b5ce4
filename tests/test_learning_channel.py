"""
Tests for the reinforcement-learning handshake (bridge/learning_channel.py).
"""

import pytest

from bridge.learning_channel import (
    AgentAction,
    ReinforcementChannel,
    action_to_command,
    format_telemetry,
    parse_action,
    parse_telemetry,
)
from data.formats.data_format import TelemetryRecord


def test_parse_action_valid():
    assert parse_action("0") == AgentAction.NO_OP
    assert parse_action(" 2\n") == AgentAction.STEER_POSITIVE


@pytest.mark.parametrize("contents", ["", "3", "-1", "1.5", "left"])
def test_parse_action_invalid(contents):
    assert parse_action(contents) is None


def test_action_to_command():
    assert action_to_command(AgentAction.STEER_NEGATIVE, 0.5, 0.1) == -0.5
    assert action_to_command(AgentAction.STEER_POSITIVE, 0.5, 0.1) == 0.5
    assert action_to_command(AgentAction.NO_OP, 0.5, 0.1) == 0.1


def test_telemetry_format():
    assert format_telemetry(TelemetryRecord(1.5, 0.25, False)) == "[1.5,0.25,false]"
    assert format_telemetry(TelemetryRecord(-3.0, -0.5, True)) == "[-3.0,-0.5,true]"


def test_parse_telemetry():
    record = parse_telemetry("[ 12.5, 0.75, true ]\n")
    assert record == TelemetryRecord(12.5, 0.75, True)
    assert parse_telemetry("12.5,0.75,true") is None
    assert parse_telemetry("[12.5,0.75,True]") is None


class TestReinforcementChannel:
    def _channel(self, tmp_path) -> ReinforcementChannel:
        return ReinforcementChannel(str(tmp_path / "action.txt"), str(tmp_path / "info.txt"))

    def test_missing_action(self, tmp_path):
        assert self._channel(tmp_path).read_action() is None

    def test_invalid_action(self, tmp_path):
        channel = self._channel(tmp_path)
        (tmp_path / "action.txt").write_text("7")
        assert channel.read_action() is None
        assert channel.last_action is None

    def test_undecodable_action(self, tmp_path):
        channel = self._channel(tmp_path)
        (tmp_path / "action.txt").write_bytes(b"\xff\xfe")
        assert channel.read_action() is None
        assert channel.last_action is None

    def test_valid_action(self, tmp_path):
        channel = self._channel(tmp_path)
        (tmp_path / "action.txt").write_text("1\n")
        assert channel.read_action() == AgentAction.STEER_NEGATIVE

    def test_no_rewrite_while_pending(self, tmp_path):
        """Telemetry is written only after the trainer deletes the previous record."""
        channel = self._channel(tmp_path)
        info_path = tmp_path / "info.txt"

        assert channel.write_telemetry(TelemetryRecord(1.0, 0.5, False)) is True
        assert channel.telemetry_pending()
        assert channel.write_telemetry(TelemetryRecord(2.0, 0.1, True)) is False
        assert info_path.read_text() == "[1.0,0.5,false]"

        info_path.unlink()
        assert channel.write_telemetry(TelemetryRecord(2.0, 0.1, True)) is True
        assert info_path.read_text() == "[2.0,0.1,true]"
        assert channel.telemetry_written == 2
        assert not (tmp_path / "info.txt.tmp").exists()
