"""
Shared entity types for stationsync.

A Station together with its Modules and their Sensors forms one aggregate.
Storage identities (``id``, ``station_id``, ``module_id``) are ``None`` until
the persistence layer assigns them; nothing else ever invents one.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from .errors import ParseDatetimeError

# === Timestamp codec ===


def utc_now() -> datetime:
    """Current instant, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def format_datetime(dt: datetime) -> str:
    """Encode an instant as fixed-format RFC-3339 text.

    Always UTC with a ``+00:00`` offset and microsecond precision, so the
    text sorts lexically and parses back to the identical instant. Naive
    datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_datetime(s: Optional[str]) -> Optional[datetime]:
    """Decode RFC-3339 text written by format_datetime.

    Raises:
        ParseDatetimeError: if the value is not an offset-qualified timestamp.
    """
    if s is None:
        return None
    try:
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except (AttributeError, TypeError, ValueError) as exc:
        raise ParseDatetimeError(s, exc) from exc
    if parsed.tzinfo is None:
        raise ParseDatetimeError(s, ValueError("timestamp has no UTC offset"))
    return parsed.astimezone(timezone.utc)


# === Station parts ===


@dataclass(frozen=True)
class DeviceId:
    """Opaque, stable identifier of a physical station."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass
class Firmware:
    label: str
    time: int  # build time, seconds since epoch


@dataclass
class Stream:
    size: int = 0  # bytes
    records: int = 0


@dataclass
class Battery:
    percentage: float = 0.0
    voltage: float = 0.0


@dataclass
class Solar:
    voltage: float = 0.0


@dataclass
class ModuleHeader:
    manufacturer: int
    kind: int
    version: int


@dataclass
class LiveValue:
    """Latest reading of a sensor."""

    time: datetime
    value: float  # calibrated
    uncalibrated: float


# === Aggregate ===


@dataclass
class Sensor:
    number: int
    flags: int
    key: str
    calibrated_uom: str
    uncalibrated_uom: str
    value: Optional[LiveValue] = None
    removed: bool = False
    id: Optional[int] = None
    module_id: Optional[int] = None


@dataclass
class Module:
    hardware_id: str
    header: ModuleHeader
    flags: int
    position: int
    key: str
    path: str
    configuration: Optional[bytes] = None
    sensors: List[Sensor] = field(default_factory=list)
    removed: bool = False
    id: Optional[int] = None
    station_id: Optional[int] = None

    def active_sensors(self) -> List[Sensor]:
        return [sensor for sensor in self.sensors if not sensor.removed]


@dataclass
class Station:
    device_id: DeviceId
    generation_id: str
    name: str
    firmware: Firmware
    last_seen: datetime
    meta: Stream = field(default_factory=Stream)
    data: Stream = field(default_factory=Stream)
    battery: Battery = field(default_factory=Battery)
    solar: Solar = field(default_factory=Solar)
    status: Optional[str] = None
    modules: List[Module] = field(default_factory=list)
    id: Optional[int] = None

    def active_modules(self) -> List[Module]:
        return [module for module in self.modules if not module.removed]

    def module_by_key(self, key: str) -> Optional[Module]:
        """First non-removed module with the given business key."""
        for module in self.modules:
            if module.key == key and not module.removed:
                return module
        return None


# === Download ledger ===


@dataclass
class StationDownload:
    """One data-retrieval pass against a station. Rows are never deleted."""

    station_id: Optional[int]
    generation_id: str
    started: datetime
    begin: int  # byte range [begin, end)
    end: int
    path: str
    uploaded: int = 0
    finished: Optional[datetime] = None
    size: Optional[int] = None
    error: Optional[str] = None
    id: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.finished is not None

    @property
    def failed(self) -> bool:
        return self.error is not None


def describe(entity: Any) -> str:
    """Short human label used in log lines."""
    if isinstance(entity, Station):
        return f"station {entity.device_id} (id={entity.id})"
    if isinstance(entity, Module):
        return f"module {entity.key!r} (id={entity.id})"
    if isinstance(entity, Sensor):
        return f"sensor {entity.key!r} (id={entity.id})"
    return repr(entity)
