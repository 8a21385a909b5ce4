"""
Tests for the polling command channel and reset flag (bridge/command_channel.py).
"""

import logging

import pytest

from bridge.command_channel import CommandPoller, ResetFlag, parse_command


class TestNewestArtifact:
    def test_highest_index_wins(self, tmp_path):
        """10sim.txt is newer than 3sim.txt and 2sim.txt even though it sorts first as text."""
        (tmp_path / "3sim.txt").write_text("0.3")
        (tmp_path / "10sim.txt").write_text("1.0")
        (tmp_path / "2sim.txt").write_text("0.2")
        poller = CommandPoller(str(tmp_path))
        assert poller.poll() == pytest.approx(1.0)
        assert poller.last_index == 10

    def test_non_matching_names_ignored(self, tmp_path):
        (tmp_path / "4sim.txt").write_text("0.4")
        (tmp_path / "x99sim.txt").write_text("9.9")
        (tmp_path / "99sim.txt.tmp").write_text("9.9")
        (tmp_path / "notes.txt").write_text("hello")
        poller = CommandPoller(str(tmp_path))
        assert poller.poll() == pytest.approx(0.4)

    def test_custom_suffix(self, tmp_path):
        (tmp_path / "7cmd.dat").write_text("-0.7")
        (tmp_path / "8sim.txt").write_text("0.8")
        poller = CommandPoller(str(tmp_path), suffix="cmd.dat")
        assert poller.poll() == pytest.approx(-0.7)


class TestChannelUnavailable:
    def test_empty_directory(self, tmp_path):
        poller = CommandPoller(str(tmp_path))
        assert poller.poll() is None
        assert poller.failure_count == 1

    def test_missing_directory(self, tmp_path):
        poller = CommandPoller(str(tmp_path / "missing"))
        assert poller.list_artifacts() == []
        assert poller.poll() is None

    @pytest.mark.parametrize("contents", ["", "abc", "nan", "inf", "1,5"])
    def test_bad_contents(self, tmp_path, contents):
        (tmp_path / "1sim.txt").write_text(contents)
        assert CommandPoller(str(tmp_path)).poll() is None

    def test_recovers_after_failures(self, tmp_path):
        poller = CommandPoller(str(tmp_path))
        assert poller.poll() is None
        assert poller.poll() is None
        (tmp_path / "0sim.txt").write_text("0.25")
        assert poller.poll() == pytest.approx(0.25)
        assert poller.failure_count == 0

    def test_undecodable_artifact(self, tmp_path, caplog):
        (tmp_path / "0sim.txt").write_bytes(b"\xff\xfe0.3")
        poller = CommandPoller(str(tmp_path))
        with caplog.at_level(logging.WARNING, logger="bridge.command_channel"):
            assert poller.poll() is None
        assert poller.failure_count == 1
        assert any("[CHANNEL_PARSE]" in r.getMessage() for r in caplog.records)

        (tmp_path / "1sim.txt").write_text("0.5")
        assert poller.poll() == pytest.approx(0.5)
        assert poller.last_index == 1

    def test_repeated_failures_logged_once_at_warning(self, tmp_path, caplog):
        poller = CommandPoller(str(tmp_path))
        with caplog.at_level(logging.DEBUG, logger="bridge.command_channel"):
            for _ in range(3):
                poller.poll()
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "[CHANNEL_EMPTY]" in warnings[0].getMessage()


def test_parse_command():
    assert parse_command(" 0.25\n") == pytest.approx(0.25)
    assert parse_command("-1e-3") == pytest.approx(-0.001)
    assert parse_command("") is None


def test_invalid_poller_settings(tmp_path):
    with pytest.raises(ValueError):
        CommandPoller(str(tmp_path), suffix="")
    with pytest.raises(ValueError):
        CommandPoller(str(tmp_path), poll_interval=-1.0)


class TestResetFlag:
    def test_consumed_once(self, tmp_path):
        flag_path = tmp_path / "reset.txt"
        flag = ResetFlag(str(flag_path))
        assert flag.consume() is False
        flag_path.touch()
        assert flag.consume() is True
        assert not flag_path.exists()
        assert flag.consume() is False
