"""
stationsync - local mirror of field sensor stations.

Reconciles repeated station reports into a durable SQLite record while
keeping identities stable and tombstoning what disappears.
"""

from importlib.metadata import PackageNotFoundError, version

from .errors import (
    DecodeError,
    DeviceMismatchError,
    MergeError,
    MigrationError,
    NotOpenedError,
    ParseDatetimeError,
    ReplyError,
    SeriousBug,
    StationSyncError,
)
from .storage import StationStore
from .types import (
    Battery,
    DeviceId,
    Firmware,
    LiveValue,
    Module,
    ModuleHeader,
    Sensor,
    Solar,
    Station,
    StationDownload,
    Stream,
)

try:
    __version__ = version("stationsync")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "StationStore",
    # Types
    "DeviceId",
    "Station",
    "Module",
    "Sensor",
    "StationDownload",
    "Firmware",
    "Stream",
    "Battery",
    "Solar",
    "ModuleHeader",
    "LiveValue",
    # Errors
    "StationSyncError",
    "NotOpenedError",
    "SeriousBug",
    "DecodeError",
    "ParseDatetimeError",
    "ReplyError",
    "MigrationError",
    "DeviceMismatchError",
    "MergeError",
]
