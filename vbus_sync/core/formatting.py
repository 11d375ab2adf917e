"""
Timestamp and size formatting utilities for VBus Recording Sync.
"""

from datetime import datetime, timedelta, timezone
from typing import Union


# ============================================================================
# UTC timestamps
# ============================================================================

def to_utc(value: datetime) -> datetime:
    """
    Return value as a timezone-aware UTC datetime.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime) as UTC."""
    if isinstance(value, datetime):
        return to_utc(value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(value))


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with a trailing Z."""
    return to_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def add_ms(value: datetime, ms: int) -> datetime:
    """Shift a timestamp by a number of milliseconds."""
    return value + timedelta(milliseconds=ms)


def diff_ms(later: datetime, earlier: datetime) -> float:
    """Milliseconds between two timestamps (negative if later < earlier)."""
    return (later - earlier) / timedelta(milliseconds=1)


# ============================================================================
# Device date formats
# ============================================================================

def format_log_prefix(value: datetime) -> str:
    """Format a timestamp as the /log/YYYYMMDD prefix of a recording filename."""
    return "/log/" + to_utc(value).strftime("%Y%m%d")


def format_api_date(value: datetime) -> str:
    """Format a timestamp as MM/DD/YYYY for the download API."""
    return to_utc(value).strftime("%m/%d/%Y")


# ============================================================================
# Size and duration formatting
# ============================================================================

def format_size(size_bytes: int) -> str:
    """Format bytes as human readable string."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} PB"


def format_duration(seconds: float) -> str:
    """Format seconds as human readable duration."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{int(seconds // 60)}m {int(seconds % 60)}s"
    elif seconds < 86400:
        return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"
    else:
        return f"{int(seconds // 86400)}d {int((seconds % 86400) // 3600)}h"
