"""
Playback pipeline for VBus Recording Sync.

Feeds downloaded bytes into an external decoder, forwards every header set
it emits to an external consolidator, and records which time was actually
delivered.
"""

from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol

from ..core.errors import ProtocolError, SyncError
from ..core.formatting import add_ms, diff_ms, to_utc
from ..core.ranges import RangeSet, TimeRange, normalize


class HeaderSetDecoder(Protocol):
    """Turns a VBus byte stream into header sets (objects with a ``timestamp``)."""

    def on_header_set(self, callback: Callable[[Any], None]) -> None: ...

    def feed(self, data: bytes) -> None: ...

    def end(self) -> None: ...


class HeaderSetConsolidator(Protocol):
    """Consumes decoded header sets and builds domain records from them."""

    def process_header_set(self, header_set: Any) -> None: ...


class PlaybackPipeline:
    """
    Adapter between the transports and the decode/consolidate collaborators.

    Each header set at time t counts [t, t + 1ms) as delivered. Header sets
    closer together than the interval extend the same delivered range.

    Transports fetch whole days, so a download usually carries more than the
    range being played back. With a window set (set_window), header sets
    outside it are dropped: neither forwarded nor counted as delivered.

    Exceptions raised by the decoder or consolidator surface as
    ProtocolError. end() must be called exactly once, after the last byte of
    a job.
    """

    def __init__(
        self,
        decoder: HeaderSetDecoder,
        consolidator: HeaderSetConsolidator,
        interval: float,
    ):
        self.decoder = decoder
        self.consolidator = consolidator
        self.interval = interval
        self.window: Optional[TimeRange] = None
        self.bytes_fed = 0
        self.header_sets = 0
        self.dropped_header_sets = 0
        self._ended = False
        self._closed_ranges: List[TimeRange] = []
        self._current_min: Optional[datetime] = None
        self._current_max: Optional[datetime] = None

        decoder.on_header_set(self._on_header_set)

    @property
    def ended(self) -> bool:
        return self._ended

    def set_window(self, window: Optional[TimeRange]):
        """Only forward header sets inside window from now on (None: all)."""
        self.window = window

    def feed(self, data: bytes):
        """Forward a chunk of bytes to the decoder."""
        if self._ended:
            raise ProtocolError("Pipeline received data after end()")
        if not data:
            return
        self.bytes_fed += len(data)
        self._call_decoder(self.decoder.feed, data)

    def end(self):
        """Signal that no more data will arrive."""
        if self._ended:
            raise ProtocolError("Pipeline end() called twice")
        self._ended = True
        self._call_decoder(self.decoder.end)

    def _call_decoder(self, method: Callable, *args):
        try:
            method(*args)
        except SyncError:
            raise
        except Exception as e:
            raise ProtocolError(f"Decoding failed: {e}", e) from e

    def _on_header_set(self, header_set: Any):
        timestamp = to_utc(header_set.timestamp)
        if self.window is not None and not self.window.contains(timestamp):
            self.dropped_header_sets += 1
            return

        self.header_sets += 1
        self._track(timestamp)
        self.consolidator.process_header_set(header_set)

    def _track(self, timestamp: datetime):
        end = add_ms(timestamp, 1)
        if (
            self._current_min is not None
            and self._current_min <= timestamp
            and diff_ms(timestamp, self._current_max) < self.interval
        ):
            self._current_max = max(self._current_max, end)
            return

        if self._current_min is not None:
            self._closed_ranges.append(TimeRange(self._current_min, self._current_max))
        self._current_min = timestamp
        self._current_max = end

    @property
    def delivered_ranges(self) -> RangeSet:
        """All time delivered to the consolidator so far."""
        ranges = list(self._closed_ranges)
        if self._current_min is not None:
            ranges.append(TimeRange(self._current_min, self._current_max))
        return normalize(ranges, self.interval)
