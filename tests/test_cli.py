"""
Tests for the vbus-sync command line.
"""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from vbus_sync.cli import main
from vbus_sync.core.errors import TransportError
from vbus_sync.core.ranges import RangeSet
from vbus_sync.dlx.client import RecordingInfo
from vbus_sync.sync.state import JsonSyncState

from fakes import day, tr


class TestCli:
    """Tests for main()."""

    def test_files(self, capsys):
        with patch("vbus_sync.cli.DLxClient") as client_cls:
            client_cls.return_value.get_recording_filenames.return_value = [
                "/log/20200101_packets.vbus", "/log/20200102_packets.vbus",
            ]
            assert main(["--url", "http://dlx.local", "files"]) == 0

        out = capsys.readouterr().out
        assert "/log/20200101_packets.vbus" in out
        assert "2 recording(s)" in out
        assert client_cls.call_args[0][0].url_prefix == "http://dlx.local"

    def test_files_with_info(self, capsys):
        with patch("vbus_sync.cli.DLxClient") as client_cls:
            client = client_cls.return_value
            client.get_recording_filenames.return_value = ["/log/20200101_packets.vbus"]
            client.get_recording_info.return_value = RecordingInfo("/log/20200101_packets.vbus", 2048, '"e1"')
            main(["--url", "http://dlx.local", "files", "--info"])

        out = capsys.readouterr().out
        assert "2.0 KB" in out
        assert '"e1"' in out

    def test_ranges(self, capsys):
        with patch("vbus_sync.cli.DLxClient") as client_cls:
            client_cls.return_value.get_lazy_recording_ranges.return_value = RangeSet.of(tr(day(1), day(4)))
            main(["--url", "http://dlx.local", "ranges"])

        out = capsys.readouterr().out
        assert "2020-01-01T00:00:00.000Z - 2020-01-04T00:00:00.000Z" in out
        assert "1 range(s), 3d 0h total" in out

    def test_state(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sync_state.json"
            JsonSyncState(path).commit("source", "DLxRecorder", RangeSet.of(tr(day(1), day(2))))
            main(["state", str(path)])

        out = capsys.readouterr().out
        assert "source/DLxRecorder:" in out
        assert "2020-01-01T00:00:00.000Z" in out

    def test_transport_error_exits(self, capsys):
        with patch("vbus_sync.cli.DLxClient") as client_cls:
            client_cls.return_value.get_lazy_recording_ranges.side_effect = TransportError("refused")
            with pytest.raises(SystemExit) as exc_info:
                main(["--url", "http://dlx.local", "ranges"])

        assert exc_info.value.code == 1
        assert "Error (transport)" in capsys.readouterr().err

    def test_missing_url_exits(self, capsys, monkeypatch):
        monkeypatch.delenv("VBUS_SYNC_URL", raising=False)
        with pytest.raises(SystemExit):
            main(["ranges"])
        assert "Error (configuration)" in capsys.readouterr().err
