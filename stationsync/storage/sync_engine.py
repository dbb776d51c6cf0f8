"""Sync engine for stationsync storage.

SyncEngine orchestrates hydrate -> merge -> persist for one incoming
station report. Receives the host StationStore to access its transaction
scope.
"""

import dataclasses
import logging
import sqlite3
from typing import Any, Dict, Union

from ..errors import DeviceMismatchError, MergeError, SeriousBug
from ..reply import HttpReply, http_reply_to_station, parse_reply
from ..types import DeviceId, Module, Station, describe
from .hydrate import hydrate_station
from .merge import merge
from .modules_crud import add_module, update_module
from .sensors_crud import add_sensor, update_sensor
from .stations_crud import add_station, update_station

logger = logging.getLogger(__name__)


def _persist_module(conn: sqlite3.Connection, module: Module, station_id: int) -> Module:
    module = dataclasses.replace(module, station_id=station_id)
    module = update_module(conn, module) if module.id is not None else add_module(conn, module)

    sensors = []
    for sensor in module.sensors:
        sensor = dataclasses.replace(sensor, module_id=module.id)
        if sensor.id is not None:
            sensors.append(update_sensor(conn, sensor))
        else:
            sensors.append(add_sensor(conn, sensor))

    return dataclasses.replace(module, sensors=sensors)


def persist_aggregate(conn: sqlite3.Connection, station: Station) -> Station:
    """Insert-or-update station, then its modules, then their sensors.

    Foreign keys are filled in as each parent identity becomes known. Runs on
    the caller's connection; the caller owns the transaction.
    """
    if station.id is not None:
        saved = update_station(conn, station)
    else:
        saved = add_station(conn, station)

    modules = [_persist_module(conn, module, saved.id) for module in saved.modules]
    return dataclasses.replace(saved, modules=modules)


class SyncEngine:
    """Reconciles incoming station reports against stored state.

    Args:
        host: The StationStore providing ``transaction()``.
    """

    def __init__(self, host):
        self._host = host

    def synchronize(self, incoming: Station) -> Station:
        """Merge an incoming snapshot into storage and return the saved aggregate.

        Hydrate, merge and persist share one transaction: any failure rolls
        the whole aggregate back, so retrying is always safe.

        Raises:
            MergeError: the report repeats a module or sensor key.
            SeriousBug: stored state is inconsistent.

        Either error carries the device_id of ``incoming``.
        """
        try:
            with self._host.transaction() as conn:
                existing = hydrate_station(conn, incoming.device_id)
                saving = merge(existing, incoming)
                saved = persist_aggregate(conn, saving)
        except (MergeError, SeriousBug) as e:
            if e.device_id is not None:
                raise
            logger.error(f"Synchronizing {incoming.device_id} failed: {e}")
            raise e.for_device(incoming.device_id) from e

        if logger.isEnabledFor(logging.DEBUG):
            created = sum(1 for m in saving.modules if m.id is None)
            tombstoned = sum(1 for m in saving.modules if m.removed)
            logger.debug(
                f"{describe(saved)}: {created} modules created, {tombstoned} tombstoned, "
                f"{len(saved.modules)} written"
            )
        logger.info(f"{saved.device_id} saved {saved.id}")
        return saved

    def persist_station(self, station: Station) -> Station:
        """Write an already-merged aggregate in one transaction."""
        with self._host.transaction() as conn:
            return persist_aggregate(conn, station)

    def merge_reply(
        self, device_id: DeviceId, reply: Union[HttpReply, Dict[str, Any]]
    ) -> Station:
        """Translate a decoded device reply and synchronize it.

        Raises:
            DeviceMismatchError: the reply came from a different device. Nothing
                is written.
        """
        if not isinstance(reply, HttpReply):
            reply = parse_reply(reply)
        incoming = http_reply_to_station(reply)
        if incoming.device_id != device_id:
            raise DeviceMismatchError(device_id, incoming.device_id)
        return self.synchronize(incoming)
