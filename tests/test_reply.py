"""Tests for decoded device replies and their translation to Station snapshots."""

from datetime import datetime, timezone

import pytest

from stationsync.errors import DecodeError, ReplyError
from stationsync.reply import HttpReply, http_reply_to_station, parse_reply
from stationsync.types import DeviceId

NOW = datetime(2023, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)


@pytest.fixture
def reply_dict():
    return {
        "status": {
            "identity": {
                "deviceId": "0011223344556677",
                "generationId": "aabbccdd",
                "name": "Hoppy Kangaroo",
            },
            "firmware": {"version": "1.2.3", "timestamp": 1600000000},
            "power": {
                "battery": {"percentage": 77.0, "voltage": 3.9},
                "solar": {"voltage": 4.8},
            },
            "recording": {"enabled": False},
        },
        "streams": [{"size": 65536, "records": 4096}, {"size": 1024, "records": 12}],
        "modules": [
            {
                "position": 0,
                "name": "modules.weather",
                "id": "deadbeef",
                "path": "/fk/v1/modules/0",
                "flags": 1,
                "header": {"manufacturer": 1, "kind": 2, "version": 3},
                "configuration": "0a0b0c",
                "sensors": [
                    {
                        "number": 0,
                        "name": "temperature",
                        "unitOfMeasure": "C",
                        "uncalibratedUnitOfMeasure": "mV",
                    },
                    {"number": 1, "name": "humidity", "unitOfMeasure": "%"},
                ],
            },
            {"position": 1, "name": "modules.water.ph", "sensors": []},
        ],
        "liveReadings": [
            {
                "time": 1683356889,
                "modules": [
                    {
                        "module": {"position": 0},
                        "readings": [
                            {"sensor": {"number": 0}, "value": 21.5, "uncalibrated": 812.0}
                        ],
                    }
                ],
            }
        ],
        "someFutureField": {"ignored": True},
    }


class TestParseReply:
    def test_parses_camel_case(self, reply_dict):
        reply = parse_reply(reply_dict)

        assert isinstance(reply, HttpReply)
        assert reply.status.identity.device_id == "0011223344556677"
        assert reply.modules[0].sensors[0].unit_of_measure == "C"

    def test_configuration_hex_is_bytes(self, reply_dict):
        reply = parse_reply(reply_dict)

        assert reply.modules[0].configuration == b"\x0a\x0b\x0c"
        assert reply.modules[1].configuration is None

    def test_bad_hex_is_reply_error(self, reply_dict):
        reply_dict["modules"][0]["configuration"] = "not hex"
        with pytest.raises(ReplyError):
            parse_reply(reply_dict)

    def test_empty_device_id_is_reply_error(self, reply_dict):
        reply_dict["status"]["identity"]["deviceId"] = ""
        with pytest.raises(ReplyError) as exc_info:
            parse_reply(reply_dict)
        assert isinstance(exc_info.value, DecodeError)

    def test_module_without_name_is_reply_error(self, reply_dict):
        del reply_dict["modules"][0]["name"]
        with pytest.raises(ReplyError):
            parse_reply(reply_dict)


class TestHttpReplyToStation:
    def test_station_fields(self, reply_dict):
        station = http_reply_to_station(parse_reply(reply_dict), now=NOW)

        assert station.id is None
        assert station.device_id == DeviceId("0011223344556677")
        assert station.generation_id == "aabbccdd"
        assert station.name == "Hoppy Kangaroo"
        assert station.firmware.label == "1.2.3"
        assert station.firmware.time == 1600000000
        assert station.last_seen == NOW
        assert station.battery.percentage == 77.0
        assert station.battery.voltage == 3.9
        assert station.solar.voltage == 4.8
        assert station.status == "idle"

    def test_streams(self, reply_dict):
        station = http_reply_to_station(parse_reply(reply_dict), now=NOW)

        assert (station.data.size, station.data.records) == (65536, 4096)
        assert (station.meta.size, station.meta.records) == (1024, 12)

    def test_missing_streams_default_to_empty(self, reply_dict):
        reply_dict["streams"] = []
        station = http_reply_to_station(parse_reply(reply_dict), now=NOW)

        assert station.data.size == 0
        assert station.meta.records == 0

    def test_modules_keyed_by_name(self, reply_dict):
        station = http_reply_to_station(parse_reply(reply_dict), now=NOW)

        weather = station.modules[0]
        assert [m.key for m in station.modules] == ["modules.weather", "modules.water.ph"]
        assert weather.hardware_id == "deadbeef"
        assert weather.position == 0
        assert weather.path == "/fk/v1/modules/0"
        assert weather.configuration == b"\x0a\x0b\x0c"
        assert (weather.header.manufacturer, weather.header.kind, weather.header.version) == (
            1,
            2,
            3,
        )
        assert all(m.id is None and not m.removed for m in station.modules)

    def test_sensors_keyed_by_name(self, reply_dict):
        station = http_reply_to_station(parse_reply(reply_dict), now=NOW)

        temperature, humidity = station.modules[0].sensors
        assert temperature.key == "temperature"
        assert temperature.calibrated_uom == "C"
        assert temperature.uncalibrated_uom == "mV"
        assert humidity.number == 1
        assert humidity.uncalibrated_uom == ""

    def test_live_readings_attach_to_sensors(self, reply_dict):
        station = http_reply_to_station(parse_reply(reply_dict), now=NOW)

        temperature, humidity = station.modules[0].sensors
        assert temperature.value.value == 21.5
        assert temperature.value.uncalibrated == 812.0
        assert temperature.value.time == datetime.fromtimestamp(1683356889, tz=timezone.utc)
        assert humidity.value is None

    def test_later_readings_win(self, reply_dict):
        later = {
            "time": 1683356949,
            "modules": [
                {
                    "module": {"position": 0},
                    "readings": [{"sensor": {"number": 0}, "value": 22.0, "uncalibrated": 820.0}],
                }
            ],
        }
        reply_dict["liveReadings"].append(later)

        station = http_reply_to_station(parse_reply(reply_dict), now=NOW)

        assert station.modules[0].sensors[0].value.value == 22.0

    def test_recording_status(self, reply_dict):
        reply_dict["status"]["recording"]["enabled"] = True
        assert http_reply_to_station(parse_reply(reply_dict), now=NOW).status == "recording"

        del reply_dict["status"]["recording"]
        assert http_reply_to_station(parse_reply(reply_dict), now=NOW).status is None

    def test_last_seen_defaults_to_now(self, reply_dict):
        before = datetime.now(timezone.utc)
        station = http_reply_to_station(parse_reply(reply_dict))

        assert station.last_seen >= before
        assert station.last_seen.tzinfo is not None

    def test_missing_status_is_reply_error(self, reply_dict):
        del reply_dict["status"]
        with pytest.raises(ReplyError):
            http_reply_to_station(parse_reply(reply_dict))

    def test_missing_identity_is_reply_error(self, reply_dict):
        del reply_dict["status"]["identity"]
        with pytest.raises(ReplyError):
            http_reply_to_station(parse_reply(reply_dict))

    def test_snake_case_keys_accepted(self):
        reply = HttpReply.model_validate(
            {"status": {"identity": {"device_id": "beef"}}, "live_readings": []}
        )
        assert http_reply_to_station(reply, now=NOW).device_id == DeviceId("beef")
