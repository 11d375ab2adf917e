"""
Sync job definitions for VBus Recording Sync.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..core.constants import SYNC_DIRECTION, SYNC_SOURCE_ID
from ..core.ranges import RangeSet, TimeRange

# Open ends of a job window
EARLIEST = datetime(1970, 1, 1, tzinfo=timezone.utc)
LATEST = datetime(9999, 12, 31, tzinfo=timezone.utc)


class JobState(str, Enum):
    IDLE = "idle"
    COMPUTING_RANGES = "computing_ranges"
    PLAYING = "playing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        return self in (JobState.DONE, JobState.FAILED)


@dataclass(frozen=True)
class SyncJob:
    """
    One synchronization request.

    sync_state_diffs holds the ranges the caller still wants synchronized.
    interval is the sampling resolution in milliseconds; ranges closer than
    that are treated as continuous. min_timestamp/max_timestamp, when set,
    further restrict what is played back.
    """
    sync_state_diffs: RangeSet
    interval: int
    min_timestamp: Optional[datetime] = None
    max_timestamp: Optional[datetime] = None
    mark_gaps_as_unsynced: bool = False
    api_access: bool = False
    direction: str = SYNC_DIRECTION
    source_id: str = SYNC_SOURCE_ID

    def __post_init__(self):
        if self.interval < 0:
            raise ValueError(f"Interval must not be negative: {self.interval}")
        if not isinstance(self.sync_state_diffs, RangeSet):
            object.__setattr__(self, "sync_state_diffs", RangeSet.of(*self.sync_state_diffs))
        # TimeRange rejects an inverted window
        self.time_window

    @property
    def time_window(self) -> Optional[TimeRange]:
        """The job's [min_timestamp, max_timestamp) window, or None if unbounded."""
        if self.min_timestamp is None and self.max_timestamp is None:
            return None
        return TimeRange(self.min_timestamp or EARLIEST, self.max_timestamp or LATEST)


@dataclass
class JobRun:
    """Progress of one executor run. Each run() call gets its own."""
    job: SyncJob
    state: JobState = JobState.IDLE
    played_back: RangeSet = field(default_factory=RangeSet)
    bytes_downloaded: int = 0


@dataclass
class SyncResult:
    """Outcome of a completed sync job."""
    played_back_ranges: RangeSet
    handled_ranges: RangeSet
    committed_ranges: RangeSet
    ranges_to_sync: RangeSet = field(default_factory=RangeSet)
    bytes_downloaded: int = 0
    state: JobState = JobState.DONE
