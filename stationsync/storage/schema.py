"""Database schema and migration logic for stationsync SQLite storage.

Contains:
- Ordered, forward-only migrations (MIGRATIONS)
- Schema version tracking (SCHEMA_VERSION, get_schema_version)
- Table allowlist (ALLOWED_TABLES, validate_table_name)
- Migration runner (migrate)

Every migration is idempotent (``IF NOT EXISTS``) and runs in its own
transaction. There are no down-migrations.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Tuple

from ..errors import MigrationError
from ..types import format_datetime, utc_now

logger = logging.getLogger(__name__)

# Allowed table names for SQL queries (security: prevents SQL injection via table names)
ALLOWED_TABLES = frozenset(
    {
        "schema_version",
        "station",
        "module",
        "sensor",
        "station_download",
    }
)


def validate_table_name(table: str) -> str:
    """Validate table name against allowlist to prevent SQL injection.

    Raises:
        ValueError: If table name is not in allowlist
    """
    if table not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")
    return table


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    statements: Tuple[str, ...]


VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    description TEXT NOT NULL,
    applied_at TEXT NOT NULL
)
"""

MIGRATIONS: Tuple[Migration, ...] = (
    Migration(
        1,
        "station table",
        (
            """
            CREATE TABLE IF NOT EXISTS station (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                device_id TEXT NOT NULL,
                generation_id TEXT NOT NULL,
                name TEXT NOT NULL,
                firmware_label TEXT NOT NULL,
                firmware_time INTEGER NOT NULL,
                last_seen TEXT NOT NULL,      -- RFC-3339
                meta_size INTEGER NOT NULL,
                meta_records INTEGER NOT NULL,
                data_size INTEGER NOT NULL,
                data_records INTEGER NOT NULL,
                battery_percentage REAL NOT NULL,
                battery_voltage REAL NOT NULL,
                solar_voltage REAL NOT NULL,
                status TEXT
            )
            """,
        ),
    ),
    Migration(
        2,
        "module table",
        (
            """
            CREATE TABLE IF NOT EXISTS module (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                station_id INTEGER NOT NULL REFERENCES station(id),
                hardware_id TEXT NOT NULL,
                manufacturer INTEGER NOT NULL,
                kind INTEGER NOT NULL,
                version INTEGER NOT NULL,
                flags INTEGER NOT NULL,
                position INTEGER NOT NULL,
                key TEXT NOT NULL,
                path TEXT NOT NULL,
                configuration BLOB,
                removed INTEGER NOT NULL DEFAULT 0
            )
            """,
        ),
    ),
    Migration(
        3,
        "sensor table",
        (
            """
            CREATE TABLE IF NOT EXISTS sensor (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                module_id INTEGER NOT NULL REFERENCES module(id),
                number INTEGER NOT NULL,
                flags INTEGER NOT NULL,
                key TEXT NOT NULL,
                calibrated_uom TEXT NOT NULL,
                uncalibrated_uom TEXT NOT NULL,
                reading_time TEXT,            -- RFC-3339
                calibrated_value REAL,
                uncalibrated_value REAL,
                removed INTEGER NOT NULL DEFAULT 0
            )
            """,
        ),
    ),
    Migration(
        4,
        "station download ledger",
        (
            """
            CREATE TABLE IF NOT EXISTS station_download (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                station_id INTEGER NOT NULL REFERENCES station(id),
                generation_id TEXT NOT NULL,
                started TEXT NOT NULL,        -- RFC-3339
                "begin" INTEGER NOT NULL,
                "end" INTEGER NOT NULL,
                path TEXT NOT NULL,
                uploaded INTEGER NOT NULL,
                finished TEXT,                -- RFC-3339
                size INTEGER,
                error TEXT
            )
            """,
        ),
    ),
    Migration(
        5,
        "lookup indexes, one station row per device",
        (
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_station_device_id ON station(device_id)",
            "CREATE INDEX IF NOT EXISTS idx_module_station ON module(station_id)",
            "CREATE INDEX IF NOT EXISTS idx_sensor_module ON sensor(module_id)",
            "CREATE INDEX IF NOT EXISTS idx_station_download_station "
            "ON station_download(station_id, generation_id)",
        ),
    ),
)

# Schema version for migrations
SCHEMA_VERSION = MIGRATIONS[-1].version


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Highest applied migration version, 0 for an empty database."""
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    ).fetchone()
    if row is None:
        return 0
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def _apply(conn: sqlite3.Connection, migration: Migration) -> None:
    conn.execute("BEGIN")
    try:
        for statement in migration.statements:
            conn.execute(statement)
        conn.execute(
            "INSERT INTO schema_version (version, description, applied_at) VALUES (?, ?, ?)",
            (migration.version, migration.description, format_datetime(utc_now())),
        )
    except sqlite3.Error:
        conn.rollback()
        raise
    conn.commit()


def migrate(conn: sqlite3.Connection) -> int:
    """Bring the database to SCHEMA_VERSION.

    Safe on an already-current schema (no-op). Stops at the first failing
    migration, leaving later ones unapplied.

    Returns:
        The schema version after migrating.

    Raises:
        MigrationError: a migration failed, or the database was written by a
            newer schema than this code knows.
    """
    try:
        conn.execute(VERSION_TABLE)
        if conn.in_transaction:
            conn.commit()
        current = get_schema_version(conn)
    except sqlite3.Error as e:
        raise MigrationError(0, str(e)) from e

    if current > SCHEMA_VERSION:
        raise MigrationError(
            current, f"database schema is newer than supported version {SCHEMA_VERSION}"
        )

    for migration in MIGRATIONS:
        if migration.version <= current:
            continue
        try:
            _apply(conn, migration)
        except sqlite3.Error as e:
            logger.error(f"Migration {migration.version} ({migration.description}) failed: {e}")
            raise MigrationError(migration.version, str(e)) from e
        logger.info(f"Applied schema migration {migration.version}: {migration.description}")
        current = migration.version

    return current
