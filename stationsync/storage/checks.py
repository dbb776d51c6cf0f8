"""Row-count and identity guards shared by the CRUD modules."""

import sqlite3
from typing import Any, Optional

from ..errors import SeriousBug


def expect_one_row(cursor: sqlite3.Cursor, entity: str, entity_id: Any) -> None:
    """Raise SeriousBug unless the statement touched exactly one row."""
    if cursor.rowcount != 1:
        raise SeriousBug(f"Expected 1 affected row, got {cursor.rowcount}", entity, entity_id)


def require_identity(value: Optional[int], entity: str, what: str = "id") -> int:
    """Return an identity the invariants guarantee, or raise SeriousBug."""
    if value is None:
        raise SeriousBug(f"Missing {what}", entity, None)
    return value


def require_no_identity(value: Optional[int], entity: str) -> None:
    if value is not None:
        raise SeriousBug("Adding an entity that already has an id", entity, value)
