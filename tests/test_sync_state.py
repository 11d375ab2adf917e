"""
Tests for the sync state accessors.

Verifies MemorySyncState and JsonSyncState load/commit behavior and
persistence format.
"""

import json
import tempfile
from pathlib import Path

import pytest

from vbus_sync.core.errors import ProtocolError
from vbus_sync.core.ranges import RangeSet
from vbus_sync.sync.state import JsonSyncState, MemorySyncState

from fakes import day, tr


class TestMemorySyncState:
    """Tests for MemorySyncState."""

    def test_unknown_key_is_empty(self):
        state = MemorySyncState()
        assert state.load("source", "DLxRecorder") == RangeSet.empty()

    def test_commit_then_load(self):
        state = MemorySyncState()
        ranges = RangeSet.of(tr(day(1), day(2)))
        state.commit("source", "DLxRecorder", ranges)

        assert state.load("source", "DLxRecorder") == ranges
        assert state.load("source", "Other") == RangeSet.empty()
        assert state.commits == [("source", "DLxRecorder", ranges)]


class TestJsonSyncState:
    """Tests for JsonSyncState."""

    @pytest.fixture
    def temp_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_missing_file_is_empty(self, temp_dir):
        state = JsonSyncState(temp_dir / "sync_state.json")
        assert state.load("source", "DLxRecorder") == RangeSet.empty()
        assert state.keys() == []

    def test_persistence(self, temp_dir):
        path = temp_dir / "nested" / "sync_state.json"
        ranges = RangeSet.of(tr(day(1), day(3)), tr(day(5), day(6)))

        JsonSyncState(path).commit("source", "DLxRecorder", ranges)

        # Fresh instance reads what was written
        assert JsonSyncState(path).load("source", "DLxRecorder") == ranges
        assert not path.with_suffix(".json.tmp").exists()

    def test_file_format(self, temp_dir):
        path = temp_dir / "sync_state.json"
        JsonSyncState(path).commit("source", "DLxRecorder", RangeSet.of(tr(day(1), day(2))))

        data = json.loads(path.read_text())
        assert data == {
            "version": 1,
            "ranges": {
                "source/DLxRecorder": [
                    {"min_timestamp": "2020-01-01T00:00:00.000Z", "max_timestamp": "2020-01-02T00:00:00.000Z"},
                ],
            },
        }

    def test_keys_are_independent(self, temp_dir):
        state = JsonSyncState(temp_dir / "sync_state.json")
        state.commit("source", "DLxRecorder", RangeSet.of(tr(day(1), day(2))))
        state.commit("source", "Other", RangeSet.of(tr(day(3), day(4))))

        assert state.keys() == ["source/DLxRecorder", "source/Other"]
        assert list(state.load("source", "DLxRecorder")) == [tr(day(1), day(2))]

    def test_commit_replaces_ranges(self, temp_dir):
        state = JsonSyncState(temp_dir / "sync_state.json")
        state.commit("source", "DLxRecorder", RangeSet.of(tr(day(1), day(2))))
        state.commit("source", "DLxRecorder", RangeSet.of(tr(day(5), day(6))))

        assert list(state.load("source", "DLxRecorder")) == [tr(day(5), day(6))]

    def test_corrupt_file(self, temp_dir):
        path = temp_dir / "sync_state.json"
        path.write_text("{not json")
        with pytest.raises(ProtocolError):
            JsonSyncState(path).load("source", "DLxRecorder")

    def test_invalid_range_entry(self, temp_dir):
        path = temp_dir / "sync_state.json"
        path.write_text(json.dumps({"ranges": {"source/DLxRecorder": [{"min_timestamp": "2020-01-01"}]}}))
        with pytest.raises(ProtocolError):
            JsonSyncState(path).load("source", "DLxRecorder")
