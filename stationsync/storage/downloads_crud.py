"""Station download ledger operations.

Append-only: a new retrieval pass is a new row, and an existing row is only
ever updated by id (progress, completion time, size, error). Rows are never
deleted and never merged.
"""

import dataclasses
import logging
import sqlite3
from typing import List, Optional, Tuple

from ..types import StationDownload, format_datetime
from .checks import expect_one_row, require_identity
from .rows import DOWNLOAD_COLUMNS, row_to_station_download

logger = logging.getLogger(__name__)


def _download_values(download: StationDownload) -> Tuple:
    return (
        download.station_id,
        download.generation_id,
        format_datetime(download.started),
        download.begin,
        download.end,
        download.path,
        download.uploaded,
        format_datetime(download.finished) if download.finished else None,
        download.size,
        download.error,
    )


def add_station_download(conn: sqlite3.Connection, download: StationDownload) -> StationDownload:
    """Append a ledger row. Returns a copy carrying the new id."""
    require_identity(download.station_id, "station_download", "station_id")
    cursor = conn.execute(
        """
        INSERT INTO station_download
        (station_id, generation_id, started, "begin", "end", path, uploaded, finished, size, error)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        _download_values(download),
    )
    expect_one_row(cursor, "station_download", download.path)

    added = dataclasses.replace(download, id=cursor.lastrowid)
    logger.debug(
        f"Started download {added.id} of [{download.begin}, {download.end}) "
        f"from station {download.station_id} to {download.path}"
    )
    return added


def update_station_download(
    conn: sqlite3.Connection, download: StationDownload
) -> StationDownload:
    download_id = require_identity(download.id, "station_download")
    cursor = conn.execute(
        """
        UPDATE station_download SET
            station_id = ?, generation_id = ?, started = ?, "begin" = ?, "end" = ?,
            path = ?, uploaded = ?, finished = ?, size = ?, error = ?
        WHERE id = ?
        """,
        _download_values(download) + (download_id,),
    )
    expect_one_row(cursor, "station_download", download_id)
    if download.error:
        logger.warning(f"Download {download_id} failed: {download.error}")
    return download


def get_station_downloads(conn: sqlite3.Connection, station_id: int) -> List[StationDownload]:
    """Every ledger row for a station, oldest first."""
    rows = conn.execute(
        f"SELECT {DOWNLOAD_COLUMNS} FROM station_download WHERE station_id = ? ORDER BY id",
        (station_id,),
    ).fetchall()
    return [row_to_station_download(row) for row in rows]


def get_latest_station_download(
    conn: sqlite3.Connection, station_id: int, generation_id: str
) -> Optional[StationDownload]:
    """Most recent ledger row for one generation of a station, if any."""
    row = conn.execute(
        f"SELECT {DOWNLOAD_COLUMNS} FROM station_download "
        "WHERE station_id = ? AND generation_id = ? ORDER BY id DESC LIMIT 1",
        (station_id, generation_id),
    ).fetchone()
    return row_to_station_download(row) if row else None
