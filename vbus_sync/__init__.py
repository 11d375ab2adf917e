"""
VBus Recording Sync - Incrementally fetch recordings from a DLx datalogger.

Tracks which time spans were already retrieved so repeated runs only
transfer new or previously missed data.

Import from submodules directly:
    from vbus_sync.core.ranges import RangeSet, TimeRange, combine
    from vbus_sync.dlx import DLxClient
    from vbus_sync.sync import SyncJob, SyncJobExecutor
"""

__version__ = "0.1.0"
