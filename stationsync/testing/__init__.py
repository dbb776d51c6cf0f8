"""Test support for stationsync."""

from .builders import (
    DEFAULT_DEVICE_ID,
    DEFAULT_TIME,
    build_basic_module,
    build_download,
    build_module,
    build_sensor,
    build_station,
    build_station_with_basic_modules,
)

__all__ = [
    "DEFAULT_DEVICE_ID",
    "DEFAULT_TIME",
    "build_basic_module",
    "build_download",
    "build_module",
    "build_sensor",
    "build_station",
    "build_station_with_basic_modules",
]
