#!/usr/bin/env python3
"""
VBus Recording Sync - inspect recordings on a DLx datalogger.

Thin launcher for running from a source checkout; installed copies use the
``vbus-sync`` console script.
"""

from vbus_sync.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
