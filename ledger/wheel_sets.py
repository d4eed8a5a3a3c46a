"""Decides whether a tire-service edit may move a vehicle's current wheel set."""

import uuid
from datetime import datetime
from typing import Iterable, Optional

from .kinds import LogEntryKind
from .ordering import date_id_key
from .records import LogEntry, Vehicle


def is_latest_tire_service_entry(
    entries: Iterable[LogEntry], candidate_id: uuid.UUID, candidate_date: datetime
) -> bool:
    """
    True if no other tire-service entry sorts after the candidate.

    Ordering is (date, id string); the candidate's own stored row is ignored
    so an edit is judged by its new date.
    """
    others = [
        e for e in entries
        if e.kind is LogEntryKind.TIRE_SERVICE and e.id != candidate_id
    ]
    if not others:
        return True
    latest = max(others, key=date_id_key)
    return (candidate_date, str(candidate_id)) >= date_id_key(latest)


def update_vehicle_current_wheel_set_if_latest(
    vehicle: Vehicle,
    entries: Iterable[LogEntry],
    candidate_id: uuid.UUID,
    candidate_date: datetime,
    wheel_set_id: Optional[uuid.UUID],
) -> bool:
    """
    Point the vehicle at ``wheel_set_id`` when the candidate is the latest tire service.

    A backdated edit never clobbers the wheel set set by a later entry.
    Returns True if the vehicle was updated.
    """
    if wheel_set_id is None:
        return False
    if not is_latest_tire_service_entry(entries, candidate_id, candidate_date):
        return False
    vehicle.current_wheel_set_id = wheel_set_id
    return True
