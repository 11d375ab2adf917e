"""
Time range set algebra for VBus Recording Sync.

A TimeRange is a half-open interval [min_timestamp, max_timestamp) of UTC
datetimes. A RangeSet is an immutable, sorted sequence of non-overlapping
TimeRanges. combine() implements union and intersection of two range sets
with a sweep over the range boundaries, then merges ranges whose gap is
below a quantum (the sampling interval of the recorded data).
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Iterator, List, Tuple, Union

from .formatting import diff_ms, format_timestamp, parse_timestamp, to_utc


class RangeOperator(str, Enum):
    """Set operation applied by combine()."""
    UNION = "union"
    INTERSECTION = "intersection"


@dataclass(frozen=True, order=True)
class TimeRange:
    """A half-open interval [min_timestamp, max_timestamp) in UTC."""
    min_timestamp: datetime
    max_timestamp: datetime

    def __post_init__(self):
        object.__setattr__(self, "min_timestamp", to_utc(self.min_timestamp))
        object.__setattr__(self, "max_timestamp", to_utc(self.max_timestamp))
        if self.min_timestamp > self.max_timestamp:
            raise ValueError(
                f"Range starts after it ends: {format_timestamp(self.min_timestamp)}"
                f" > {format_timestamp(self.max_timestamp)}"
            )

    @property
    def duration(self) -> timedelta:
        return self.max_timestamp - self.min_timestamp

    @property
    def is_empty(self) -> bool:
        return self.min_timestamp == self.max_timestamp

    def contains(self, timestamp: datetime) -> bool:
        """Check if a timestamp lies inside the range (max is exclusive)."""
        timestamp = to_utc(timestamp)
        return self.min_timestamp <= timestamp < self.max_timestamp

    def to_dict(self) -> dict:
        return {
            "min_timestamp": format_timestamp(self.min_timestamp),
            "max_timestamp": format_timestamp(self.max_timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimeRange":
        return cls(
            min_timestamp=parse_timestamp(data["min_timestamp"]),
            max_timestamp=parse_timestamp(data["max_timestamp"]),
        )

    def __str__(self) -> str:
        return f"[{format_timestamp(self.min_timestamp)}, {format_timestamp(self.max_timestamp)})"


@dataclass(frozen=True)
class RangeSet:
    """
    Sorted, non-overlapping sequence of TimeRanges.

    Never mutated in place; every operation returns a new RangeSet. Build one
    from arbitrary (unsorted, overlapping) ranges with RangeSet.of().
    """
    ranges: Tuple[TimeRange, ...] = ()

    def __post_init__(self):
        ranges = tuple(self.ranges)
        for prev, cur in zip(ranges, ranges[1:]):
            if cur.min_timestamp < prev.max_timestamp:
                raise ValueError(f"Ranges overlap or are out of order: {prev} and {cur}")
        object.__setattr__(self, "ranges", ranges)

    @classmethod
    def of(cls, *ranges: TimeRange, interval: float = 0) -> "RangeSet":
        """Build a normalized RangeSet from ranges given in any order."""
        return normalize(ranges, interval)

    @classmethod
    def empty(cls) -> "RangeSet":
        return cls()

    def __iter__(self) -> Iterator[TimeRange]:
        return iter(self.ranges)

    def __len__(self) -> int:
        return len(self.ranges)

    def __getitem__(self, index: int) -> TimeRange:
        return self.ranges[index]

    def __bool__(self) -> bool:
        return bool(self.ranges)

    @property
    def first(self) -> TimeRange:
        return self.ranges[0]

    @property
    def last(self) -> TimeRange:
        return self.ranges[-1]

    @property
    def total_duration(self) -> timedelta:
        return sum((r.duration for r in self.ranges), timedelta())

    def contains(self, timestamp: datetime) -> bool:
        return any(r.contains(timestamp) for r in self.ranges)

    def covers(self, time_range: TimeRange) -> bool:
        """Check if a single range of this set fully covers time_range."""
        return any(
            r.min_timestamp <= time_range.min_timestamp and time_range.max_timestamp <= r.max_timestamp
            for r in self.ranges
        )

    def to_list(self) -> List[dict]:
        return [r.to_dict() for r in self.ranges]

    @classmethod
    def from_list(cls, data: List[dict], interval: float = 0) -> "RangeSet":
        return normalize((TimeRange.from_dict(d) for d in data), interval)

    def __str__(self) -> str:
        return "{" + ", ".join(str(r) for r in self.ranges) + "}"


def _is_inside(operator: RangeOperator, active_a: int, active_b: int) -> bool:
    if operator is RangeOperator.UNION:
        return active_a > 0 or active_b > 0
    return active_a > 0 and active_b > 0


def _merge_close_ranges(ranges: List[TimeRange], interval: float) -> List[TimeRange]:
    """Merge consecutive ranges separated by a gap strictly smaller than interval."""
    merged: List[TimeRange] = []
    for r in ranges:
        if merged and diff_ms(r.min_timestamp, merged[-1].max_timestamp) < interval:
            prev = merged[-1]
            merged[-1] = TimeRange(prev.min_timestamp, max(prev.max_timestamp, r.max_timestamp))
        else:
            merged.append(r)
    return merged


def combine(
    set_a: Iterable[TimeRange],
    set_b: Iterable[TimeRange],
    interval: float,
    operator: Union[RangeOperator, str] = RangeOperator.UNION,
) -> RangeSet:
    """
    Combine two sets of time ranges.

    Inputs may be unsorted and may overlap internally; each is treated as the
    union of its ranges. Zero-width ranges contribute nothing.

    Args:
        set_a: First set of ranges
        set_b: Second set of ranges
        interval: Merge quantum in milliseconds. Output ranges separated by a
            gap smaller than this are merged; a gap of exactly the quantum is kept.
        operator: RangeOperator.UNION or RangeOperator.INTERSECTION

    Returns:
        Normalized RangeSet
    """
    operator = RangeOperator(operator)

    # timestamp -> [delta_a, delta_b]; events at one timestamp are applied
    # together so a range ending where another begins stays contiguous
    deltas = defaultdict(lambda: [0, 0])
    for index, ranges in enumerate((set_a, set_b)):
        for r in ranges:
            if r.is_empty:
                continue
            deltas[r.min_timestamp][index] += 1
            deltas[r.max_timestamp][index] -= 1

    active_a = active_b = 0
    segment_start = None
    raw: List[TimeRange] = []

    for timestamp in sorted(deltas):
        delta_a, delta_b = deltas[timestamp]
        active_a += delta_a
        active_b += delta_b
        inside = _is_inside(operator, active_a, active_b)
        if inside and segment_start is None:
            segment_start = timestamp
        elif not inside and segment_start is not None:
            raw.append(TimeRange(segment_start, timestamp))
            segment_start = None

    return RangeSet(tuple(_merge_close_ranges(raw, interval)))


def union(set_a: Iterable[TimeRange], set_b: Iterable[TimeRange], interval: float) -> RangeSet:
    return combine(set_a, set_b, interval, RangeOperator.UNION)


def intersection(set_a: Iterable[TimeRange], set_b: Iterable[TimeRange], interval: float) -> RangeSet:
    return combine(set_a, set_b, interval, RangeOperator.INTERSECTION)


def normalize(ranges: Iterable[TimeRange], interval: float = 0) -> RangeSet:
    """Sort, merge overlapping and merge close ranges."""
    return combine(ranges, (), interval, RangeOperator.UNION)
