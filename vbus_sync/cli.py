"""
Command line interface for VBus Recording Sync.

    vbus-sync files  [--info] [--since YYYY-MM-DD] [--until YYYY-MM-DD]
    vbus-sync ranges
    vbus-sync state  STATE_FILE

Device settings come from --config, --url/--username/--password, or the
VBUS_SYNC_* environment variables.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from . import __version__
from .config import DeviceConfig
from .core.errors import SyncError
from .core.formatting import format_duration, format_size, format_timestamp, parse_timestamp
from .dlx.client import DLxClient
from .sync.state import JsonSyncState


def _parse_date(value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vbus-sync",
        description="Inspect recordings on a DLx datalogger and local sync state.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=Path, help="JSON file with device settings")
    parser.add_argument("--url", help="Device URL prefix, e.g. http://192.168.1.20")
    parser.add_argument("--username", help="Web interface username")
    parser.add_argument("--password", help="Web interface password")

    subparsers = parser.add_subparsers(dest="command", required=True)

    files = subparsers.add_parser("files", help="List recordings on the device")
    files.add_argument("--info", action="store_true", help="Also show size and ETag (one HEAD per file)")
    files.add_argument("--since", type=_parse_date, help="First day to list")
    files.add_argument("--until", type=_parse_date, help="Last day to list")

    subparsers.add_parser("ranges", help="Show the time ranges recorded on the device")

    state = subparsers.add_parser("state", help="Show committed ranges of a sync state file")
    state.add_argument("state_file", type=Path)

    return parser


def load_device_config(args: argparse.Namespace) -> DeviceConfig:
    """Resolve device settings: config file, then env, overridden by flags."""
    if args.config:
        config = DeviceConfig.load(args.config)
    elif args.url:
        config = DeviceConfig(url_prefix=args.url)
    else:
        config = DeviceConfig.from_env()

    if args.url:
        config.url_prefix = args.url.rstrip("/")
    if args.username:
        config.username = args.username
    if args.password:
        config.password = args.password
    config.validate()
    return config


def cmd_files(args: argparse.Namespace) -> int:
    client = DLxClient(load_device_config(args))
    if args.since or args.until:
        since = args.since or datetime(1970, 1, 1)
        until = args.until or datetime(9999, 12, 31)
        filenames = client.get_recording_filenames_in_range(since, until)
    else:
        filenames = client.get_recording_filenames()

    total_size = 0
    for filename in filenames:
        if args.info:
            info = client.get_recording_info(filename)
            total_size += info.size
            print(f"  {filename}  {format_size(info.size):>10}  {info.etag or '-'}")
        else:
            print(f"  {filename}")

    summary = f"{len(filenames)} recording(s)"
    if args.info:
        summary += f", {format_size(total_size)}"
    print(summary)
    return 0


def cmd_ranges(args: argparse.Namespace) -> int:
    client = DLxClient(load_device_config(args))
    ranges = client.get_lazy_recording_ranges()
    for r in ranges:
        print(f"  {format_timestamp(r.min_timestamp)} - {format_timestamp(r.max_timestamp)}"
              f"  ({format_duration(r.duration.total_seconds())})")
    print(f"{len(ranges)} range(s), {format_duration(ranges.total_duration.total_seconds())} total")
    return 0


def cmd_state(args: argparse.Namespace) -> int:
    state = JsonSyncState(args.state_file)
    keys = state.keys()
    if not keys:
        print(f"No sync state in {args.state_file}")
        return 0

    for key in keys:
        direction, _, source_id = key.partition("/")
        ranges = state.load(direction, source_id)
        print(f"{key}:")
        for r in ranges:
            print(f"  {r}")
    return 0


COMMANDS = {
    "files": cmd_files,
    "ranges": cmd_ranges,
    "state": cmd_state,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except SyncError as e:
        print(f"Error ({e.kind}): {e}", file=sys.stderr)
        raise SystemExit(1)
