"""
Sync module.

Handles sync jobs, playback into the decode pipeline and sync state.
"""

from .executor import SyncJobExecutor, compute_handled_ranges
from .job import JobRun, JobState, SyncJob, SyncResult
from .playback import HeaderSetConsolidator, HeaderSetDecoder, PlaybackPipeline
from .state import JsonSyncState, MemorySyncState, SyncStateAccessor

__all__ = [
    # Executor
    "SyncJobExecutor",
    "compute_handled_ranges",
    # Jobs
    "JobRun",
    "JobState",
    "SyncJob",
    "SyncResult",
    # Playback
    "HeaderSetConsolidator",
    "HeaderSetDecoder",
    "PlaybackPipeline",
    # State
    "JsonSyncState",
    "MemorySyncState",
    "SyncStateAccessor",
]
