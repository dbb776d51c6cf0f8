"""SQLite storage backend for stationsync.

Local mirror of station state with:
- One long-lived connection in WAL mode (concurrent readers, single writer)
- Versioned schema migrations applied at open()
- Explicit transactions around every write
"""

import contextlib
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from ..config import Settings, get_settings
from ..errors import NotOpenedError
from ..reply import HttpReply
from ..types import DeviceId, Module, Sensor, Station, StationDownload
from . import downloads_crud, modules_crud, sensors_crud, stations_crud
from .hydrate import hydrate_station as _hydrate_station
from .schema import get_schema_version, migrate, validate_table_name
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class StationStore:
    """SQLite-backed store of station aggregates and the download ledger.

    The store owns a single connection. Reads and writes are serialized by
    one re-entrant lock, so a whole synchronize() runs without interleaving.

    Usage::

        with StationStore("stations.db") as store:
            saved = store.synchronize(incoming)
    """

    def __init__(
        self,
        db_path: Union[str, Path] = MEMORY,
        *,
        busy_timeout_ms: int = 5000,
    ):
        self.db_path = str(db_path)
        self._busy_timeout_ms = busy_timeout_ms
        self._conn: Optional[sqlite3.Connection] = None

        self._lock = threading.RLock()
        self._depth = 0

        # Sync engine
        self._sync_engine = SyncEngine(self)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "StationStore":
        settings = settings or get_settings()
        return cls(settings.db_path, busy_timeout_ms=settings.busy_timeout_ms)

    # === Lifecycle ===

    def open(self) -> "StationStore":
        """Connect and migrate. A second call is a no-op.

        Raises:
            MigrationError: the schema could not be brought up to date. The
                connection is closed and the store stays unopened.
        """
        with self._lock:
            if self._conn is not None:
                return self

            if self.db_path != MEMORY:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
            conn.row_factory = sqlite3.Row
            try:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA foreign_keys=ON")
                conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)}")
                version = migrate(conn)
            except Exception:
                conn.close()
                raise

            self._conn = conn
            logger.info(f"Opened station store {self.db_path} at schema version {version}")
            return self

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "StationStore":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def require_opened(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotOpenedError()
        return self._conn

    # === Transactions ===

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Writer scope: commit on success, roll back on any exception.

        Nested scopes join the outermost transaction.
        """
        with self._lock:
            conn = self.require_opened()
            if self._depth > 0:
                self._depth += 1
                try:
                    yield conn
                finally:
                    self._depth -= 1
                return

            conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield conn
                conn.commit()
            except Exception as e:
                logger.debug(f"Transaction failed, rolling back: {e}")
                conn.rollback()
                raise
            finally:
                self._depth = 0

    @contextlib.contextmanager
    def _reading(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            yield self.require_opened()

    # === Synchronization ===

    def synchronize(self, incoming: Station) -> Station:
        return self._sync_engine.synchronize(incoming)

    def merge_reply(
        self, device_id: DeviceId, reply: Union[HttpReply, Dict[str, Any]]
    ) -> Station:
        return self._sync_engine.merge_reply(device_id, reply)

    def persist_station(self, station: Station) -> Station:
        return self._sync_engine.persist_station(station)

    def hydrate_station(self, device_id: DeviceId) -> Optional[Station]:
        with self._reading() as conn:
            return _hydrate_station(conn, device_id)

    # === Stations ===

    def add_station(self, station: Station) -> Station:
        with self.transaction() as conn:
            return stations_crud.add_station(conn, station)

    def update_station(self, station: Station) -> Station:
        with self.transaction() as conn:
            return stations_crud.update_station(conn, station)

    def get_stations(self) -> List[Station]:
        with self._reading() as conn:
            return stations_crud.get_stations(conn)

    def get_station(self, station_id: int) -> Optional[Station]:
        with self._reading() as conn:
            return stations_crud.get_station(conn, station_id)

    def get_station_by_device_id(self, device_id: DeviceId) -> Optional[Station]:
        with self._reading() as conn:
            return stations_crud.get_station_by_device_id(conn, device_id)

    # === Modules ===

    def add_module(self, module: Module) -> Module:
        with self.transaction() as conn:
            return modules_crud.add_module(conn, module)

    def update_module(self, module: Module) -> Module:
        with self.transaction() as conn:
            return modules_crud.update_module(conn, module)

    def get_modules(self, station_id: int) -> List[Module]:
        with self._reading() as conn:
            return modules_crud.get_modules(conn, station_id)

    # === Sensors ===

    def add_sensor(self, sensor: Sensor) -> Sensor:
        with self.transaction() as conn:
            return sensors_crud.add_sensor(conn, sensor)

    def update_sensor(self, sensor: Sensor) -> Sensor:
        with self.transaction() as conn:
            return sensors_crud.update_sensor(conn, sensor)

    def get_sensors(self, module_id: int) -> List[Sensor]:
        with self._reading() as conn:
            return sensors_crud.get_sensors(conn, module_id)

    # === Download ledger ===

    def add_station_download(self, download: StationDownload) -> StationDownload:
        with self.transaction() as conn:
            return downloads_crud.add_station_download(conn, download)

    def update_station_download(self, download: StationDownload) -> StationDownload:
        with self.transaction() as conn:
            return downloads_crud.update_station_download(conn, download)

    def get_station_downloads(self, station_id: int) -> List[StationDownload]:
        with self._reading() as conn:
            return downloads_crud.get_station_downloads(conn, station_id)

    def get_latest_station_download(
        self, station_id: int, generation_id: str
    ) -> Optional[StationDownload]:
        with self._reading() as conn:
            return downloads_crud.get_latest_station_download(conn, station_id, generation_id)

    # === Diagnostics ===

    def schema_version(self) -> int:
        with self._reading() as conn:
            return get_schema_version(conn)

    def count(self, table: str) -> int:
        """Row count of one table, tombstones included."""
        validate_table_name(table)
        with self._reading() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
