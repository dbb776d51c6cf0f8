"""Load the current aggregate for a device.

Tombstoned modules are left out, so merging only ever sees active modules as
existing state. Sensors are loaded whether tombstoned or not.
"""

import dataclasses
import sqlite3
from typing import Optional

from ..types import DeviceId, Station
from .checks import require_identity
from .modules_crud import get_modules
from .sensors_crud import get_sensors
from .stations_crud import get_station_by_device_id


def hydrate_station(conn: sqlite3.Connection, device_id: DeviceId) -> Optional[Station]:
    station = get_station_by_device_id(conn, device_id)
    if station is None:
        return None

    station_id = require_identity(station.id, "station")
    modules = []
    for module in get_modules(conn, station_id):
        if module.removed:
            continue
        module_id = require_identity(module.id, "module")
        modules.append(dataclasses.replace(module, sensors=get_sensors(conn, module_id)))

    return dataclasses.replace(station, modules=modules)
