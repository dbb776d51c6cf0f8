"""Row deserializers for stationsync storage.

Module-level functions converting ``sqlite3.Row`` objects into entity
dataclasses. A row with a missing column or a malformed timestamp raises
DecodeError; nothing is patched up at read time.
"""

import logging
import sqlite3
from typing import Any, Callable, Optional, TypeVar

from ..errors import DecodeError
from ..types import (
    Battery,
    DeviceId,
    Firmware,
    LiveValue,
    Module,
    ModuleHeader,
    Sensor,
    Solar,
    Station,
    StationDownload,
    Stream,
    parse_datetime,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATION_COLUMNS = (
    "id, device_id, generation_id, name, firmware_label, firmware_time, last_seen, "
    "meta_size, meta_records, data_size, data_records, "
    "battery_percentage, battery_voltage, solar_voltage, status"
)

MODULE_COLUMNS = (
    "id, station_id, hardware_id, manufacturer, kind, version, flags, position, "
    "key, path, configuration, removed"
)

SENSOR_COLUMNS = (
    "id, module_id, number, flags, key, calibrated_uom, uncalibrated_uom, "
    "reading_time, calibrated_value, uncalibrated_value, removed"
)

DOWNLOAD_COLUMNS = (
    'id, station_id, generation_id, started, "begin", "end", path, uploaded, '
    "finished, size, error"
)


def _decoding(table: str, fn: Callable[[sqlite3.Row], T], row: sqlite3.Row) -> T:
    try:
        return fn(row)
    except (IndexError, KeyError, TypeError) as e:
        raise DecodeError(f"Malformed {table} row: {e}") from e


def _required_datetime(row: sqlite3.Row, key: str):
    value = parse_datetime(row[key])
    if value is None:
        raise DecodeError(f"Missing {key} timestamp")
    return value


def _bytes_or_none(value: Any) -> Optional[bytes]:
    return bytes(value) if value is not None else None


def row_to_station(row: sqlite3.Row) -> Station:
    """Convert a station row. Modules are loaded separately."""

    def decode(r: sqlite3.Row) -> Station:
        return Station(
            id=r["id"],
            device_id=DeviceId(r["device_id"]),
            generation_id=r["generation_id"],
            name=r["name"],
            firmware=Firmware(label=r["firmware_label"], time=r["firmware_time"]),
            last_seen=_required_datetime(r, "last_seen"),
            meta=Stream(size=r["meta_size"], records=r["meta_records"]),
            data=Stream(size=r["data_size"], records=r["data_records"]),
            battery=Battery(percentage=r["battery_percentage"], voltage=r["battery_voltage"]),
            solar=Solar(voltage=r["solar_voltage"]),
            status=r["status"],
            modules=[],
        )

    return _decoding("station", decode, row)


def row_to_module(row: sqlite3.Row) -> Module:
    """Convert a module row. Sensors are loaded separately."""

    def decode(r: sqlite3.Row) -> Module:
        return Module(
            id=r["id"],
            station_id=r["station_id"],
            hardware_id=r["hardware_id"],
            header=ModuleHeader(
                manufacturer=r["manufacturer"],
                kind=r["kind"],
                version=r["version"],
            ),
            flags=r["flags"],
            position=r["position"],
            key=r["key"],
            path=r["path"],
            configuration=_bytes_or_none(r["configuration"]),
            removed=bool(r["removed"]),
            sensors=[],
        )

    return _decoding("module", decode, row)


def row_to_sensor(row: sqlite3.Row) -> Sensor:
    """Convert a sensor row.

    The live reading is rebuilt only when time, calibrated and uncalibrated
    values are all present.
    """

    def decode(r: sqlite3.Row) -> Sensor:
        reading_time = parse_datetime(r["reading_time"])
        calibrated = r["calibrated_value"]
        uncalibrated = r["uncalibrated_value"]
        value = None
        if reading_time is not None and calibrated is not None and uncalibrated is not None:
            value = LiveValue(time=reading_time, value=calibrated, uncalibrated=uncalibrated)

        return Sensor(
            id=r["id"],
            module_id=r["module_id"],
            number=r["number"],
            flags=r["flags"],
            key=r["key"],
            calibrated_uom=r["calibrated_uom"],
            uncalibrated_uom=r["uncalibrated_uom"],
            value=value,
            removed=bool(r["removed"]),
        )

    return _decoding("sensor", decode, row)


def row_to_station_download(row: sqlite3.Row) -> StationDownload:
    """Convert a station_download row."""

    def decode(r: sqlite3.Row) -> StationDownload:
        return StationDownload(
            id=r["id"],
            station_id=r["station_id"],
            generation_id=r["generation_id"],
            started=_required_datetime(r, "started"),
            begin=r["begin"],
            end=r["end"],
            path=r["path"],
            uploaded=r["uploaded"],
            finished=parse_datetime(r["finished"]),
            size=r["size"],
            error=r["error"],
        )

    return _decoding("station_download", decode, row)
