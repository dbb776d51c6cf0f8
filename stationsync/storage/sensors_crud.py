"""Sensor CRUD operations."""

import dataclasses
import sqlite3
from typing import List, Tuple

from ..types import Sensor, format_datetime
from .checks import expect_one_row, require_identity, require_no_identity
from .rows import SENSOR_COLUMNS, row_to_sensor


def _sensor_values(sensor: Sensor) -> Tuple:
    value = sensor.value
    return (
        sensor.number,
        sensor.flags,
        sensor.key,
        sensor.calibrated_uom,
        sensor.uncalibrated_uom,
        format_datetime(value.time) if value else None,
        value.value if value else None,
        value.uncalibrated if value else None,
        1 if sensor.removed else 0,
    )


def add_sensor(conn: sqlite3.Connection, sensor: Sensor) -> Sensor:
    require_no_identity(sensor.id, "sensor")
    module_id = require_identity(sensor.module_id, "sensor", "module_id")

    cursor = conn.execute(
        """
        INSERT INTO sensor
        (module_id, number, flags, key, calibrated_uom, uncalibrated_uom,
         reading_time, calibrated_value, uncalibrated_value, removed)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (module_id,) + _sensor_values(sensor),
    )
    expect_one_row(cursor, "sensor", sensor.key)
    return dataclasses.replace(sensor, id=cursor.lastrowid)


def update_sensor(conn: sqlite3.Connection, sensor: Sensor) -> Sensor:
    sensor_id = require_identity(sensor.id, "sensor")
    module_id = require_identity(sensor.module_id, "sensor", "module_id")

    cursor = conn.execute(
        """
        UPDATE sensor SET
            number = ?, flags = ?, key = ?, calibrated_uom = ?, uncalibrated_uom = ?,
            reading_time = ?, calibrated_value = ?, uncalibrated_value = ?, removed = ?,
            module_id = ?
        WHERE id = ?
        """,
        _sensor_values(sensor) + (module_id, sensor_id),
    )
    expect_one_row(cursor, "sensor", sensor_id)
    return sensor


def get_sensors(conn: sqlite3.Connection, module_id: int) -> List[Sensor]:
    """Every sensor of a module, tombstoned ones included."""
    rows = conn.execute(
        f"SELECT {SENSOR_COLUMNS} FROM sensor WHERE module_id = ? ORDER BY id",
        (module_id,),
    ).fetchall()
    return [row_to_sensor(row) for row in rows]
