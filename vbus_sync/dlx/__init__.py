"""
DLx datalogger interaction module.

Handles recording listing, filename decoding and playback transports.
"""

from .client import DLxClient, RecordingInfo
from .scanner import RecordingFilenameScanner
from .transports import ApiStrategy, PlaybackStrategy, RawStrategy, get_strategy, open_session
from .utils import RecordingDescriptor, filter_filenames_in_range, parse_recording_filename

__all__ = [
    "DLxClient",
    "RecordingInfo",
    "RecordingFilenameScanner",
    "PlaybackStrategy",
    "RawStrategy",
    "ApiStrategy",
    "get_strategy",
    "open_session",
    "RecordingDescriptor",
    "filter_filenames_in_range",
    "parse_recording_filename",
]
