"""Error taxonomy for stationsync.

Nothing here is recovered automatically. Every error carries enough context
(entity, identity, device) for the caller to diagnose it.
"""

from typing import Any, Optional


class StationSyncError(Exception):
    """Base for all stationsync errors."""

    pass


class NotOpenedError(StationSyncError):
    """Raised when the store is used before open() migrated it."""

    def __init__(self, message: str = "Expected open database"):
        super().__init__(message)


class SeriousBug(StationSyncError):
    """Internal-consistency failure.

    An insert or update touched an unexpected number of rows, or an identity
    the invariants guarantee was missing. Indicates identity corruption and
    must never be retried.
    """

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        entity_id: Any = None,
        device_id: Any = None,
    ):
        self.detail = message
        self.entity = entity
        self.entity_id = entity_id
        self.device_id = device_id
        if entity is not None:
            message = f"{message} ({entity} {entity_id!r})"
        if device_id is not None:
            message = f"{message} on device {device_id}"
        super().__init__(message)

    def for_device(self, device_id: Any) -> "SeriousBug":
        return SeriousBug(self.detail, self.entity, self.entity_id, device_id)


class DecodeError(StationSyncError, ValueError):
    """A stored row or decoded report could not be read back."""

    pass


class ParseDatetimeError(DecodeError):
    """Structured parse failure for stored RFC-3339 timestamps."""

    def __init__(self, value: Any, cause: Exception):
        super().__init__(f"Invalid RFC-3339 timestamp: {value!r}")
        self.value = value
        self.cause = cause


class ReplyError(DecodeError):
    """A decoded device report is missing required sections."""

    pass


class MigrationError(StationSyncError):
    """A schema migration failed. The store is unusable afterwards."""

    def __init__(self, version: int, message: str):
        self.version = version
        super().__init__(f"Schema migration {version} failed: {message}")


class DeviceMismatchError(StationSyncError):
    """A device report does not belong to the device it was fetched for."""

    def __init__(self, expected: Any, actual: Any):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Device mismatch: expected {expected}, report is from {actual}")


class MergeError(StationSyncError, ValueError):
    """An incoming report cannot be reconciled (e.g. duplicate business keys)."""

    def __init__(self, message: str, device_id: Any = None):
        self.detail = message
        self.device_id = device_id
        if device_id is not None:
            message = f"{message} from device {device_id}"
        super().__init__(message)

    def for_device(self, device_id: Any) -> "MergeError":
        return MergeError(self.detail, device_id)
