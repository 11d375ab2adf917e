"""
Recording filename utilities for VBus Recording Sync.

DLx recordings live at /log/YYYYMMDD_<tag>.vbus, one file per UTC day.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List

from ..core.errors import ProtocolError
from ..core.formatting import format_log_prefix
from ..core.ranges import TimeRange

RECORDING_FILENAME_PATTERN = re.compile(r"^/log/([0-9]{8})_[a-z]+\.vbus$")


@dataclass(frozen=True)
class RecordingDescriptor:
    """One day of recorded data on the device."""
    filename: str
    min_timestamp: datetime
    max_timestamp: datetime

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.min_timestamp, self.max_timestamp)


def parse_recording_filename(filename: str) -> RecordingDescriptor:
    """
    Decode a recording filename into the UTC day it covers.

    Args:
        filename: Path like "/log/20200101_packets.vbus"

    Returns:
        RecordingDescriptor covering [date 00:00 UTC, date + 24h)

    Raises:
        ProtocolError: If the filename does not encode a valid date
    """
    match = RECORDING_FILENAME_PATTERN.match(filename)
    if not match:
        raise ProtocolError(f"Not a recording filename: {filename!r}")

    try:
        day = datetime.strptime(match.group(1), "%Y%m%d").replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise ProtocolError(f"Invalid date in recording filename {filename!r}", e) from e

    return RecordingDescriptor(
        filename=filename,
        min_timestamp=day,
        max_timestamp=day + timedelta(hours=24),
    )


def filter_filenames_in_range(
    filenames: Iterable[str],
    min_timestamp: datetime,
    max_timestamp: datetime,
) -> List[str]:
    """
    Keep filenames whose date lies within [min_timestamp, max_timestamp].

    Compares the /log/YYYYMMDD prefix as a string, which orders like the date
    because the encoding is fixed-width and zero-padded. Both ends inclusive.
    """
    min_prefix = format_log_prefix(min_timestamp)
    max_prefix = format_log_prefix(max_timestamp)

    result = []
    for filename in filenames:
        prefix = filename[:len(min_prefix)]
        if min_prefix <= prefix <= max_prefix:
            result.append(filename)
    return result
