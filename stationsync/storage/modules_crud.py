"""Module CRUD operations.

A module row is addressed only by its id; ``station_id`` must be known
before the row is written.
"""

import dataclasses
import logging
import sqlite3
from typing import List, Tuple

from ..types import Module
from .checks import expect_one_row, require_identity, require_no_identity
from .rows import MODULE_COLUMNS, row_to_module

logger = logging.getLogger(__name__)


def _module_values(module: Module) -> Tuple:
    return (
        module.station_id,
        module.hardware_id,
        module.header.manufacturer,
        module.header.kind,
        module.header.version,
        module.flags,
        module.position,
        module.key,
        module.path,
        module.configuration,
        1 if module.removed else 0,
    )


def add_module(conn: sqlite3.Connection, module: Module) -> Module:
    """Insert a new module. Returns a copy carrying the new id."""
    require_no_identity(module.id, "module")
    require_identity(module.station_id, "module", "station_id")

    cursor = conn.execute(
        """
        INSERT INTO module
        (station_id, hardware_id, manufacturer, kind, version, flags, position,
         key, path, configuration, removed)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        _module_values(module),
    )
    expect_one_row(cursor, "module", module.key)
    return dataclasses.replace(module, id=cursor.lastrowid)


def update_module(conn: sqlite3.Connection, module: Module) -> Module:
    """Overwrite the row addressed by module.id. Sensors are not touched."""
    module_id = require_identity(module.id, "module")
    require_identity(module.station_id, "module", "station_id")

    cursor = conn.execute(
        """
        UPDATE module SET
            station_id = ?, hardware_id = ?, manufacturer = ?, kind = ?, version = ?,
            flags = ?, position = ?, key = ?, path = ?, configuration = ?, removed = ?
        WHERE id = ?
        """,
        _module_values(module) + (module_id,),
    )
    expect_one_row(cursor, "module", module_id)
    return module


def get_modules(conn: sqlite3.Connection, station_id: int) -> List[Module]:
    """Every module of a station, tombstoned ones included, without sensors."""
    rows = conn.execute(
        f"SELECT {MODULE_COLUMNS} FROM module WHERE station_id = ? ORDER BY id",
        (station_id,),
    ).fetchall()
    return [row_to_module(row) for row in rows]
