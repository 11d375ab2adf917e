"""
Sync job executor for VBus Recording Sync.

Runs one SyncJob against a DLx:

    IDLE -> COMPUTING_RANGES -> PLAYING -> FINALIZING -> DONE
                  \\                \\            \\
                   +----------------+------------+--> FAILED

1. Intersect the ranges available on the device with the ranges the job
   still needs, clipped to the job window if it has one.
2. Play those ranges back oldest first, one at a time, accumulating what the
   pipeline actually received. Header sets outside the range being played
   back are dropped.
3. Mark everything before a boundary as handled (see compute_handled_ranges)
   and commit once to sync state.

Any failure before the commit, including one raised by the decoder or
consolidator, commits nothing. Ranges played back before the
failure are reported on the SyncJobError but are not recorded, so the next
run starts again from the unchanged sync state.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from ..core.constants import EPOCH_SENTINEL
from ..core.errors import ProtocolError, SyncError, SyncJobError
from ..core.ranges import RangeSet, TimeRange, intersection, union
from ..dlx.client import DLxClient
from ..dlx.transports import get_strategy, open_session
from .job import JobRun, JobState, SyncJob, SyncResult
from .playback import HeaderSetConsolidator, HeaderSetDecoder, PlaybackPipeline
from .state import SyncStateAccessor, state_key

logger = logging.getLogger(__name__)


def compute_handled_ranges(
    played_back: RangeSet,
    interval: float,
    mark_gaps_as_unsynced: bool,
    epoch_sentinel: datetime = EPOCH_SENTINEL,
) -> RangeSet:
    """
    Ranges to record as synchronized after a job.

    With mark_gaps_as_unsynced, everything before the first played-back range
    is filled in, so gaps between played-back ranges are retried next time.
    Otherwise everything before the last played-back range is filled in and
    those gaps are never retried.
    """
    if not played_back:
        return played_back

    if mark_gaps_as_unsynced:
        boundary = played_back.first.min_timestamp
    else:
        boundary = played_back.last.min_timestamp

    if boundary <= epoch_sentinel:
        return played_back

    filler = TimeRange(epoch_sentinel, boundary)
    return union(played_back, [filler], interval)


class SyncJobExecutor:
    """
    Executes sync jobs for one device.

    Each run() tracks its own JobRun, so jobs for different
    (direction, source_id) keys may run concurrently on one executor. A
    second job for a key whose run is still in progress is rejected.
    """

    def __init__(
        self,
        client: DLxClient,
        sync_state: SyncStateAccessor,
        epoch_sentinel: datetime = EPOCH_SENTINEL,
        strategy_factory: Callable = get_strategy,
        session_factory: Callable = open_session,
    ):
        self.client = client
        self.sync_state = sync_state
        self.epoch_sentinel = epoch_sentinel
        self.strategy_factory = strategy_factory
        self.session_factory = session_factory
        self.runs: Dict[Tuple[str, str], JobRun] = {}
        self.last_run: Optional[JobRun] = None

    @property
    def state(self) -> JobState:
        """State of the most recently started run."""
        return self.last_run.state if self.last_run else JobState.IDLE

    def state_of(self, direction: str, source_id: str) -> JobState:
        """State of the latest run for one sync state key."""
        run = self.runs.get((direction, source_id))
        return run.state if run else JobState.IDLE

    def _start_run(self, job: SyncJob) -> JobRun:
        key = (job.direction, job.source_id)
        current = self.runs.get(key)
        if current is not None and not current.state.finished:
            raise SyncJobError(
                ProtocolError(f"A sync job for {state_key(*key)} is already {current.state.value}"),
                RangeSet.empty(),
            )
        run = JobRun(job)
        self.runs[key] = run
        self.last_run = run
        return run

    def _transition(self, run: JobRun, state: JobState):
        logger.debug(
            "Sync job %s: %s -> %s",
            state_key(run.job.direction, run.job.source_id), run.state.value, state.value,
        )
        run.state = state

    async def run(
        self,
        job: SyncJob,
        decoder: HeaderSetDecoder,
        consolidator: HeaderSetConsolidator,
    ) -> SyncResult:
        """
        Run one sync job.

        Args:
            job: The job to run
            decoder: Receives the downloaded bytes
            consolidator: Receives the header sets the decoder emits

        Returns:
            SyncResult with the played-back ranges and what was committed

        Raises:
            SyncJobError: If listing, playback or the commit failed, or a job
                for the same key is still running. Nothing was committed to
                sync state.
        """
        run = self._start_run(job)

        try:
            self._transition(run, JobState.COMPUTING_RANGES)
            previous = self.sync_state.load(job.direction, job.source_id)
            available = await asyncio.to_thread(self.client.get_lazy_recording_ranges)
            ranges_to_sync = intersection(available, job.sync_state_diffs, job.interval)
            if job.time_window is not None:
                ranges_to_sync = intersection(ranges_to_sync, [job.time_window], job.interval)
            logger.info(
                "Syncing %d range(s) of %s/%s (%d available, %d needed)",
                len(ranges_to_sync), job.direction, job.source_id,
                len(available), len(job.sync_state_diffs),
            )

            self._transition(run, JobState.PLAYING)
            pipeline = PlaybackPipeline(decoder, consolidator, job.interval)
            strategy = self.strategy_factory(self.client, job.api_access)

            async with self.session_factory(self.client.config) as session:
                for time_range in ranges_to_sync:
                    logger.info("Playing back %s via %s", time_range, strategy.name)
                    pipeline.set_window(time_range)
                    run.bytes_downloaded += await strategy.play(
                        session, pipeline, time_range.min_timestamp, time_range.max_timestamp, job.interval
                    )
                    run.played_back = union(run.played_back, pipeline.delivered_ranges, job.interval)

            self._transition(run, JobState.FINALIZING)
            pipeline.end()
            run.played_back = union(run.played_back, pipeline.delivered_ranges, job.interval)
            if pipeline.dropped_header_sets:
                logger.debug("Dropped %d header set(s) outside the played-back ranges",
                             pipeline.dropped_header_sets)

            handled = compute_handled_ranges(
                run.played_back, job.interval, job.mark_gaps_as_unsynced, self.epoch_sentinel
            )
            committed = union(previous, handled, job.interval)
            self.sync_state.commit(job.direction, job.source_id, committed)
        except asyncio.CancelledError:
            self._transition(run, JobState.FAILED)
            logger.info("Sync job cancelled, nothing committed")
            raise
        except Exception as e:
            self._transition(run, JobState.FAILED)
            cause = e if isinstance(e, SyncError) else SyncError(f"Unexpected failure: {e}", e)
            logger.warning("Sync job failed after playing back %s: %s", run.played_back, e)
            raise SyncJobError(cause, run.played_back) from e

        self._transition(run, JobState.DONE)
        logger.info("Played back %s, marked %s as handled", run.played_back, handled)

        return SyncResult(
            played_back_ranges=run.played_back,
            handled_ranges=handled,
            committed_ranges=committed,
            ranges_to_sync=ranges_to_sync,
            bytes_downloaded=run.bytes_downloaded,
            state=run.state,
        )

    def run_sync(
        self,
        job: SyncJob,
        decoder: HeaderSetDecoder,
        consolidator: HeaderSetConsolidator,
    ) -> SyncResult:
        """Blocking wrapper around run() for callers without an event loop."""
        return asyncio.run(self.run(job, decoder, consolidator))
