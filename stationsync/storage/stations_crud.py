"""Station CRUD operations.

Functions receive an open connection explicitly; transaction scope belongs
to the caller (StationStore.transaction).
"""

import dataclasses
import logging
import sqlite3
from typing import List, Optional, Tuple

from ..errors import SeriousBug
from ..types import DeviceId, Station, format_datetime
from .checks import expect_one_row, require_identity
from .rows import STATION_COLUMNS, row_to_station

logger = logging.getLogger(__name__)


def _station_values(station: Station) -> Tuple:
    return (
        station.generation_id,
        station.name,
        station.firmware.label,
        station.firmware.time,
        format_datetime(station.last_seen),
        station.meta.size,
        station.meta.records,
        station.data.size,
        station.data.records,
        station.battery.percentage,
        station.battery.voltage,
        station.solar.voltage,
        station.status,
    )


def add_station(conn: sqlite3.Connection, station: Station) -> Station:
    """Insert a station row. Returns a copy carrying the new id."""
    cursor = conn.execute(
        """
        INSERT INTO station
        (device_id, generation_id, name, firmware_label, firmware_time, last_seen,
         meta_size, meta_records, data_size, data_records,
         battery_percentage, battery_voltage, solar_voltage, status)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (station.device_id.value,) + _station_values(station),
    )
    expect_one_row(cursor, "station", station.device_id)

    added = dataclasses.replace(station, id=cursor.lastrowid)
    logger.debug(f"Inserted station {station.device_id} as {added.id}")
    return added


def update_station(conn: sqlite3.Connection, station: Station) -> Station:
    """Overwrite every mutable column of the row addressed by station.id.

    The device id is the natural key and is never rewritten.
    """
    station_id = require_identity(station.id, "station")
    cursor = conn.execute(
        """
        UPDATE station SET
            generation_id = ?, name = ?, firmware_label = ?, firmware_time = ?, last_seen = ?,
            meta_size = ?, meta_records = ?, data_size = ?, data_records = ?,
            battery_percentage = ?, battery_voltage = ?, solar_voltage = ?, status = ?
        WHERE id = ?
        """,
        _station_values(station) + (station_id,),
    )
    expect_one_row(cursor, "station", station_id)
    return station


def get_stations(conn: sqlite3.Connection) -> List[Station]:
    """All stations, without modules."""
    rows = conn.execute(f"SELECT {STATION_COLUMNS} FROM station ORDER BY id").fetchall()
    return [row_to_station(row) for row in rows]


def get_station(conn: sqlite3.Connection, station_id: int) -> Optional[Station]:
    row = conn.execute(
        f"SELECT {STATION_COLUMNS} FROM station WHERE id = ?", (station_id,)
    ).fetchone()
    return row_to_station(row) if row else None


def get_station_by_device_id(conn: sqlite3.Connection, device_id: DeviceId) -> Optional[Station]:
    """The station for a device, or None if it has never been seen.

    Raises:
        SeriousBug: if more than one row exists for the device.
    """
    rows = conn.execute(
        f"SELECT {STATION_COLUMNS} FROM station WHERE device_id = ?", (device_id.value,)
    ).fetchall()
    if len(rows) > 1:
        raise SeriousBug(f"{len(rows)} station rows for one device", "station", device_id)
    return row_to_station(rows[0]) if rows else None
