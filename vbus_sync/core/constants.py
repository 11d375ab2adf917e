"""
Shared constants for VBus Recording Sync.
"""

from datetime import datetime, timezone

# Earliest instant any DLx recording can carry. Gaps before the last
# played-back range are filled from here when gaps are not kept unsynced.
EPOCH_SENTINEL = datetime(2001, 1, 1, tzinfo=timezone.utc)

# One recording file covers one UTC day
DAY_MS = 24 * 60 * 60 * 1000

# Sync state key used for DLx playback
SYNC_DIRECTION = "source"
SYNC_SOURCE_ID = "DLxRecorder"

# Remote paths on the datalogger web interface
LOG_PATH = "/log/"
DOWNLOAD_API_PATH = "/dlx/download/download"
