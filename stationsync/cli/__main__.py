"""
stationsync CLI - inspect and feed the local station mirror.

Usage:
    stationsync [--db PATH] stations [--json]
    stationsync [--db PATH] downloads STATION_ID [--json]
    stationsync [--db PATH] import DEVICE_ID REPLY_JSON [--json]
"""

import argparse
import dataclasses
import json
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Any, List, Optional

from stationsync.config import get_settings
from stationsync.errors import StationSyncError
from stationsync.storage import StationStore
from stationsync.types import DeviceId, Station

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


def _dump(value: Any) -> str:
    if dataclasses.is_dataclass(value):
        value = dataclasses.asdict(value)
    elif isinstance(value, list):
        value = [dataclasses.asdict(v) if dataclasses.is_dataclass(v) else v for v in value]
    return json.dumps(value, indent=2, default=_json_default)


def _format_station(station: Station) -> str:
    active = len(station.active_modules())
    removed = len(station.modules) - active
    line = (
        f"[{station.id}] {station.name} ({station.device_id}) "
        f"gen={station.generation_id} fw={station.firmware.label} "
        f"last_seen={station.last_seen.isoformat()} "
        f"battery={station.battery.percentage:.0f}%"
    )
    if station.modules:
        line += f" modules={active}"
        if removed:
            line += f" (+{removed} removed)"
    return line


def cmd_stations(args, store: StationStore):
    """List stations."""
    stations = store.get_stations()
    if args.json:
        print(_dump(stations))
        return
    if not stations:
        print("No stations.")
        return
    for station in stations:
        print(_format_station(station))


def cmd_downloads(args, store: StationStore):
    """List the download ledger of one station."""
    downloads = store.get_station_downloads(args.station_id)
    if args.json:
        print(_dump(downloads))
        return
    if not downloads:
        print(f"No downloads for station {args.station_id}.")
        return
    for d in downloads:
        state = "failed" if d.failed else ("done" if d.is_finished else "in progress")
        print(
            f"[{d.id}] gen={d.generation_id} [{d.begin}, {d.end}) -> {d.path} "
            f"uploaded={d.uploaded} {state}"
        )
        if d.error:
            print(f"    error: {d.error}")


def cmd_import(args, store: StationStore):
    """Synchronize a decoded device reply stored as JSON."""
    reply = json.loads(Path(args.reply).read_text(encoding="utf-8"))
    saved = store.merge_reply(DeviceId(args.device_id), reply)
    if args.json:
        print(_dump(saved))
    else:
        print(_format_station(saved))


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="stationsync",
        description="Local mirror of field sensor stations",
    )
    parser.add_argument("--db", default=settings.db_path, help="SQLite database path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_stations = subparsers.add_parser("stations", help="List stations")
    p_stations.add_argument("--json", "-j", action="store_true")

    p_downloads = subparsers.add_parser("downloads", help="List a station's downloads")
    p_downloads.add_argument("station_id", type=int)
    p_downloads.add_argument("--json", "-j", action="store_true")

    p_import = subparsers.add_parser("import", help="Synchronize a decoded reply (JSON file)")
    p_import.add_argument("device_id", help="Expected device id (hex)")
    p_import.add_argument("reply", help="Path to the decoded reply JSON")
    p_import.add_argument("--json", "-j", action="store_true")

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), None)
    logging.basicConfig(level=level or logging.WARNING)

    commands = {
        "stations": cmd_stations,
        "downloads": cmd_downloads,
        "import": cmd_import,
    }

    store = StationStore(args.db, busy_timeout_ms=settings.busy_timeout_ms)
    try:
        with store:
            commands[args.command](args, store)
    except (StationSyncError, sqlite3.Error, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
