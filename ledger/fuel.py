"""
Fuel consumption (L/100km) from a fill-up history.

Only a full tank gives a trustworthy volume-to-distance ratio, so consumption
is measured between two full fills. Liters of partial fills (top-ups) in
between are folded into the later full fill's window.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .kinds import FuelFillKind, LogEntryKind
from .ordering import entry_sort_key
from .records import LogEntry

logger = logging.getLogger(__name__)

# Sorts after any real id string, so an unsaved draft follows existing
# entries that share its date and odometer.
_DRAFT_ID_SENTINEL = "\uffff"


class SeriesMode(Enum):
    FULL_TO_FULL = "fullToFull"
    PER_FILL_UP = "perFillUp"


@dataclass
class FuelDraft:
    """A fuel entry being edited, not (yet) written to the store."""

    date: datetime
    odometer_km: Optional[int]
    liters: Optional[float]
    fill_kind: FuelFillKind = FuelFillKind.FULL
    entry_id: Optional[uuid.UUID] = None


def sorted_fuel_entries(entries: Iterable[LogEntry]) -> List[LogEntry]:
    """Fuel entries in (date, odometer, id) order."""
    return sorted((e for e in entries if e.kind is LogEntryKind.FUEL), key=entry_sort_key)


def _has_odometer(entry: LogEntry) -> bool:
    return entry.odometer_km is not None and entry.odometer_km > 0


def _consumption_at(fuels: List[LogEntry], index: int) -> Optional[float]:
    """Consumption for ``fuels[index]`` given the whole ordered fuel history."""
    current = fuels[index]
    if current.fuel_fill_kind is not FuelFillKind.FULL:
        return None
    if not _has_odometer(current):
        return None
    liters = current.fuel_liters
    if liters is None or liters <= 0:
        return None

    prev_index = None
    for i in range(index - 1, -1, -1):
        candidate = fuels[i]
        if candidate.fuel_fill_kind is FuelFillKind.FULL and _has_odometer(candidate):
            prev_index = i
            break
    if prev_index is None:
        return None

    distance = current.odometer_km - fuels[prev_index].odometer_km
    if distance <= 0:
        return None

    liters_sum = liters + sum(
        e.fuel_liters
        for e in fuels[prev_index + 1 : index]
        if e.fuel_liters is not None and e.fuel_liters > 0
    )
    if liters_sum <= 0:
        return None

    consumption = liters_sum / distance * 100.0
    if not math.isfinite(consumption):
        return None
    return consumption


def recalculate_all(entries: Iterable[LogEntry]) -> None:
    """
    Recompute ``fuel_consumption_l_per_100km`` on every entry in place.

    Only full fills with a usable predecessor get a value; every other entry,
    whatever its kind, is cleared.
    """
    entries = list(entries)
    for entry in entries:
        entry.fuel_consumption_l_per_100km = None
    fuels = sorted_fuel_entries(entries)
    for index, entry in enumerate(fuels):
        entry.fuel_consumption_l_per_100km = _consumption_at(fuels, index)
    logger.debug("Recalculated consumption for %d fuel entries", len(fuels))


def compute_draft(existing_entries: Iterable[LogEntry], draft: FuelDraft) -> Optional[float]:
    """
    Preview consumption for an entry being edited, without touching stored entries.

    When ``draft.entry_id`` names an existing entry, the draft takes its place
    in the history.
    """
    if draft.fill_kind is not FuelFillKind.FULL:
        return None

    candidate = LogEntry(
        kind_raw=LogEntryKind.FUEL.value,
        id=draft.entry_id or uuid.uuid4(),
        date=draft.date,
        odometer_km=draft.odometer_km,
        fuel_liters=draft.liters,
        fuel_fill_kind_raw=draft.fill_kind.value,
    )

    def key(entry: LogEntry) -> Tuple:
        if entry is candidate and draft.entry_id is None:
            return entry_sort_key(entry)[:2] + (_DRAFT_ID_SENTINEL,)
        return entry_sort_key(entry)

    others = [
        e for e in existing_entries
        if e.kind is LogEntryKind.FUEL and (draft.entry_id is None or e.id != draft.entry_id)
    ]
    fuels = sorted(others + [candidate], key=key)
    index = next(i for i, e in enumerate(fuels) if e is candidate)
    return _consumption_at(fuels, index)


def consumption_series(
    entries: Iterable[LogEntry], mode: SeriesMode = SeriesMode.PER_FILL_UP
) -> List[Tuple[datetime, float]]:
    """
    (date, L/100km) points for charts, without mutating anything.

    FULL_TO_FULL uses the same rule as ``recalculate_all``. PER_FILL_UP takes
    each fill's liters over the distance since the previous fill that has
    both an odometer reading and liters.
    """
    fuels = sorted_fuel_entries(entries)
    points: List[Tuple[datetime, float]] = []

    if mode is SeriesMode.FULL_TO_FULL:
        for index, entry in enumerate(fuels):
            value = _consumption_at(fuels, index)
            if value is not None:
                points.append((entry.date, value))
    else:
        usable = [e for e in fuels if _has_odometer(e) and (e.fuel_liters or 0) > 0]
        for prev, cur in zip(usable, usable[1:]):
            distance = cur.odometer_km - prev.odometer_km
            if distance <= 0:
                continue
            points.append((cur.date, cur.fuel_liters / distance * 100.0))

    return sorted(points, key=lambda p: p[0])


def average_consumption(entries: Iterable[LogEntry]) -> Optional[float]:
    """Mean of the stored consumption values, or None when there are none."""
    values = [
        e.fuel_consumption_l_per_100km
        for e in entries
        if e.kind is LogEntryKind.FUEL and e.fuel_consumption_l_per_100km is not None
    ]
    if not values:
        return None
    return sum(values) / len(values)
