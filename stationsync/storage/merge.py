"""Reconcile an incoming station report with the stored aggregate.

Pure functions: inputs are never mutated and no storage is touched. Modules
are matched by module key, sensors by sensor key within their module. Every
match goes through ``classify``, which tags each entity as present in both
reports (Matched), only in stored state (ExistingOnly) or only in the report
(IncomingOnly).

Identities are carried forward from stored state or cleared; this module
never invents one.
"""

import dataclasses
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, Sequence, TypeVar, Union

from ..errors import MergeError, SeriousBug
from ..types import Module, Sensor, Station

T = TypeVar("T")


@dataclass(frozen=True)
class Matched(Generic[T]):
    existing: T
    incoming: T


@dataclass(frozen=True)
class ExistingOnly(Generic[T]):
    existing: T


@dataclass(frozen=True)
class IncomingOnly(Generic[T]):
    incoming: T


Classified = Union[Matched[T], ExistingOnly[T], IncomingOnly[T]]


def classify(
    existing: Sequence[T],
    incoming: Sequence[T],
    key: Callable[[T], str],
    entity: str = "entity",
) -> List[Classified]:
    """Three-way classification of two collections by business key.

    Result order: incoming order for Matched/IncomingOnly, followed by the
    ExistingOnly entries in stored order.

    Raises:
        MergeError: the incoming collection repeats a key.
        SeriousBug: the stored collection repeats a key.
    """
    by_key: Dict[str, T] = {}
    for item in existing:
        k = key(item)
        if k in by_key:
            raise SeriousBug(f"Duplicate active {entity} key in stored state", entity, k)
        by_key[k] = item

    seen = set()
    result: List[Classified] = []
    for item in incoming:
        k = key(item)
        if k in seen:
            raise MergeError(f"Duplicate {entity} key {k!r} in incoming report")
        seen.add(k)
        if k in by_key:
            result.append(Matched(existing=by_key[k], incoming=item))
        else:
            result.append(IncomingOnly(incoming=item))

    for item in existing:
        if key(item) not in seen:
            result.append(ExistingOnly(existing=item))

    return result


def _new_sensor(sensor: Sensor) -> Sensor:
    return dataclasses.replace(sensor, id=None, module_id=None, removed=False)


def merge_sensors(existing: Sequence[Sensor], incoming: Sequence[Sensor]) -> List[Sensor]:
    """Reconcile the sensors of one module."""
    merged = []
    for entry in classify(existing, incoming, lambda s: s.key, "sensor"):
        if isinstance(entry, Matched):
            # Last report wins on flags, units and the live reading.
            merged.append(
                dataclasses.replace(
                    entry.incoming,
                    id=entry.existing.id,
                    module_id=entry.existing.module_id,
                    removed=False,
                )
            )
        elif isinstance(entry, ExistingOnly):
            merged.append(dataclasses.replace(entry.existing, removed=True))
        else:
            merged.append(_new_sensor(entry.incoming))
    return merged


def merge_modules(existing: Sequence[Module], incoming: Sequence[Module]) -> List[Module]:
    """Reconcile the modules of one station."""
    merged = []
    for entry in classify(existing, incoming, lambda m: m.key, "module"):
        if isinstance(entry, Matched):
            merged.append(
                dataclasses.replace(
                    entry.incoming,
                    id=entry.existing.id,
                    station_id=entry.existing.station_id,
                    removed=False,
                    sensors=merge_sensors(entry.existing.sensors, entry.incoming.sensors),
                )
            )
        elif isinstance(entry, ExistingOnly):
            # Gone from the latest report: tombstone, stored sensors untouched.
            merged.append(dataclasses.replace(entry.existing, removed=True))
        else:
            merged.append(
                dataclasses.replace(
                    entry.incoming,
                    id=None,
                    station_id=None,
                    removed=False,
                    sensors=[_new_sensor(s) for s in entry.incoming.sensors],
                )
            )
    return merged


def merge(existing: Optional[Station], incoming: Station) -> Station:
    """Produce the aggregate to persist for an incoming report.

    With no stored station every module and sensor of ``incoming`` is new.
    Otherwise station scalars come from ``incoming`` while ``id`` and
    ``device_id`` stay those of ``existing``.
    """
    if existing is None:
        return dataclasses.replace(incoming, id=None, modules=merge_modules([], incoming.modules))

    return dataclasses.replace(
        incoming,
        id=existing.id,
        device_id=existing.device_id,
        modules=merge_modules(existing.modules, incoming.modules),
    )
