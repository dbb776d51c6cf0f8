"""Decoded device reports and their translation into Station snapshots.

The device client decodes a station's binary reply into a plain dict (the
JSON rendering of the reply message, camelCase keys). :class:`HttpReply`
validates that dict; :func:`http_reply_to_station` turns it into an incoming
Station with business keys and no storage identities.

Binary fields (module configuration) arrive as hex text. Device and
generation identifiers stay hex text and are used as-is.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .errors import ReplyError
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
    Stream,
    utc_now,
)

logger = logging.getLogger(__name__)


def _hex_to_bytes(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return bytes.fromhex(value)
        except ValueError as e:
            raise ValueError(f"expected hex text: {e}") from e
    return value


def _epoch_to_datetime(value: Any) -> Any:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return value


HexBytes = Annotated[bytes | None, BeforeValidator(_hex_to_bytes)]
EpochTime = Annotated[datetime, BeforeValidator(_epoch_to_datetime)]


class ReplyModel(BaseModel):
    """camelCase keys map to snake_case fields; unknown keys are ignored."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


# =============================================================================
# Status
# =============================================================================


class Identity(ReplyModel):
    device_id: str = Field(..., min_length=1)
    generation_id: str = ""
    name: str = ""


class FirmwareInfo(ReplyModel):
    version: str = ""
    timestamp: int = 0


class BatteryInfo(ReplyModel):
    percentage: float = 0.0
    voltage: float = 0.0


class SolarInfo(ReplyModel):
    voltage: float = 0.0


class PowerInfo(ReplyModel):
    battery: BatteryInfo = Field(default_factory=BatteryInfo)
    solar: SolarInfo = Field(default_factory=SolarInfo)


class RecordingInfo(ReplyModel):
    enabled: bool = False


class Status(ReplyModel):
    identity: Identity | None = None
    firmware: FirmwareInfo = Field(default_factory=FirmwareInfo)
    power: PowerInfo = Field(default_factory=PowerInfo)
    recording: RecordingInfo | None = None


class StreamInfo(ReplyModel):
    size: int = 0
    records: int = 0


# =============================================================================
# Modules
# =============================================================================


class HeaderInfo(ReplyModel):
    manufacturer: int = 0
    kind: int = 0
    version: int = 0


class SensorInfo(ReplyModel):
    number: int
    name: str
    unit_of_measure: str = ""
    uncalibrated_unit_of_measure: str = ""
    flags: int = 0


class ModuleInfo(ReplyModel):
    position: int
    name: str
    id: str = ""  # hardware id, hex
    path: str = ""
    flags: int = 0
    header: HeaderInfo = Field(default_factory=HeaderInfo)
    configuration: HexBytes = None
    sensors: list[SensorInfo] = Field(default_factory=list)


# =============================================================================
# Live readings
# =============================================================================


class ModuleRef(ReplyModel):
    position: int


class SensorRef(ReplyModel):
    number: int


class LiveSensorReading(ReplyModel):
    sensor: SensorRef
    value: float
    uncalibrated: float


class LiveModuleReadings(ReplyModel):
    module: ModuleRef
    readings: list[LiveSensorReading] = Field(default_factory=list)


class LiveReadings(ReplyModel):
    time: EpochTime
    modules: list[LiveModuleReadings] = Field(default_factory=list)


class HttpReply(ReplyModel):
    """A decoded status/readings reply from one station."""

    status: Status | None = None
    streams: list[StreamInfo] = Field(default_factory=list)
    modules: list[ModuleInfo] = Field(default_factory=list)
    live_readings: list[LiveReadings] = Field(default_factory=list)


def parse_reply(data: dict[str, Any]) -> HttpReply:
    """Validate a decoded reply dict.

    Raises:
        ReplyError: if the dict does not have the shape of a device reply.
    """
    try:
        return HttpReply.model_validate(data)
    except ValidationError as e:
        raise ReplyError(f"Malformed device reply: {e}") from e


def _latest_values(reply: HttpReply) -> dict[tuple[int, int], LiveValue]:
    """Readings keyed by (module position, sensor number); later sets win."""
    values: dict[tuple[int, int], LiveValue] = {}
    for live in reply.live_readings:
        for module_readings in live.modules:
            for reading in module_readings.readings:
                values[(module_readings.module.position, reading.sensor.number)] = LiveValue(
                    time=live.time,
                    value=reading.value,
                    uncalibrated=reading.uncalibrated,
                )
    return values


def http_reply_to_station(reply: HttpReply, now: datetime | None = None) -> Station:
    """Translate a decoded reply into an incoming Station snapshot.

    Module key is the module name, sensor key the sensor name. ``streams[0]``
    is the data stream and ``streams[1]`` the meta stream.

    Raises:
        ReplyError: if the reply carries no status/identity section.
    """
    if reply.status is None or reply.status.identity is None:
        raise ReplyError("Device reply has no status identity")

    status = reply.status
    identity = status.identity
    values = _latest_values(reply)

    modules = [
        Module(
            hardware_id=info.id,
            header=ModuleHeader(
                manufacturer=info.header.manufacturer,
                kind=info.header.kind,
                version=info.header.version,
            ),
            flags=info.flags,
            position=info.position,
            key=info.name,
            path=info.path,
            configuration=info.configuration,
            sensors=[
                Sensor(
                    number=sensor.number,
                    flags=sensor.flags,
                    key=sensor.name,
                    calibrated_uom=sensor.unit_of_measure,
                    uncalibrated_uom=sensor.uncalibrated_unit_of_measure,
                    value=values.get((info.position, sensor.number)),
                )
                for sensor in info.sensors
            ],
        )
        for info in reply.modules
    ]

    data = reply.streams[0] if len(reply.streams) > 0 else StreamInfo()
    meta = reply.streams[1] if len(reply.streams) > 1 else StreamInfo()

    if status.recording is None:
        recording = None
    else:
        recording = "recording" if status.recording.enabled else "idle"

    station = Station(
        device_id=DeviceId(identity.device_id),
        generation_id=identity.generation_id,
        name=identity.name,
        firmware=Firmware(label=status.firmware.version, time=status.firmware.timestamp),
        last_seen=now or utc_now(),
        meta=Stream(size=meta.size, records=meta.records),
        data=Stream(size=data.size, records=data.records),
        battery=Battery(
            percentage=status.power.battery.percentage,
            voltage=status.power.battery.voltage,
        ),
        solar=Solar(voltage=status.power.solar.voltage),
        status=recording,
        modules=modules,
    )
    logger.debug(
        f"Translated reply from {station.device_id}: {len(modules)} modules, "
        f"{len(values)} live readings"
    )
    return station
