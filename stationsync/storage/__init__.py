"""stationsync storage layer.

Schema migrations, per-table primitives, hydration, merge and the
synchronizer, fronted by StationStore.
"""

from .merge import ExistingOnly, IncomingOnly, Matched, classify, merge
from .schema import MIGRATIONS, SCHEMA_VERSION, Migration, migrate
from .sqlite import StationStore
from .sync_engine import SyncEngine

__all__ = [
    "StationStore",
    "SyncEngine",
    # Schema
    "Migration",
    "MIGRATIONS",
    "SCHEMA_VERSION",
    "migrate",
    # Merge
    "merge",
    "classify",
    "Matched",
    "ExistingOnly",
    "IncomingOnly",
]
