"""
Sync state for VBus Recording Sync.

Sync state records which time spans of a source are already synchronized,
keyed by (direction, source_id), e.g. ("source", "DLxRecorder").

The engine only needs the SyncStateAccessor protocol. Two accessors ship
with the package: MemorySyncState and JsonSyncState (one JSON file).
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Protocol, Tuple

from ..core.errors import ProtocolError
from ..core.ranges import RangeSet

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class SyncStateAccessor(Protocol):
    def load(self, direction: str, source_id: str) -> RangeSet: ...

    def commit(self, direction: str, source_id: str, ranges: RangeSet) -> None: ...


def state_key(direction: str, source_id: str) -> str:
    return f"{direction}/{source_id}"


class MemorySyncState:
    """In-memory accessor. Keeps a log of commits for inspection."""

    def __init__(self, initial: Dict[Tuple[str, str], RangeSet] = None):
        self._ranges: Dict[Tuple[str, str], RangeSet] = dict(initial or {})
        self.commits: list[Tuple[str, str, RangeSet]] = []

    def load(self, direction: str, source_id: str) -> RangeSet:
        return self._ranges.get((direction, source_id), RangeSet.empty())

    def commit(self, direction: str, source_id: str, ranges: RangeSet) -> None:
        self._ranges[(direction, source_id)] = ranges
        self.commits.append((direction, source_id, ranges))


class JsonSyncState:
    """
    Accessor backed by a single JSON file.

    Format:
        {
          "version": 1,
          "ranges": {
            "source/DLxRecorder": [
              {"min_timestamp": "2020-01-01T00:00:00.000Z", "max_timestamp": "..."}
            ]
          }
        }

    The file is re-read on every load() and rewritten atomically on commit().
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {"version": STATE_VERSION, "ranges": {}}
        try:
            with open(self.path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Corrupt sync state file {self.path}: {e}", e) from e

        if not isinstance(data, dict) or not isinstance(data.get("ranges", {}), dict):
            raise ProtocolError(f"Unexpected sync state layout in {self.path}")
        data.setdefault("ranges", {})
        return data

    def keys(self) -> list[str]:
        """All "direction/source_id" keys with committed ranges."""
        return sorted(self._read()["ranges"])

    def load(self, direction: str, source_id: str) -> RangeSet:
        entries = self._read()["ranges"].get(state_key(direction, source_id), [])
        try:
            return RangeSet.from_list(entries)
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Invalid ranges for {state_key(direction, source_id)} in {self.path}", e) from e

    def commit(self, direction: str, source_id: str, ranges: RangeSet) -> None:
        data = self._read()
        data["version"] = STATE_VERSION
        data["ranges"][state_key(direction, source_id)] = ranges.to_list()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)
        logger.debug("Committed %d range(s) for %s to %s", len(ranges), state_key(direction, source_id), self.path)
