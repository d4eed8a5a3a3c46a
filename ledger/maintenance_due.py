"""MaintenanceDue dataclass and due-status derivation for maintenance intervals."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .calculations import calc_due_date, calc_due_km, check_status, days_between, worst_status
from .records import LogEntry, MaintenanceInterval, Vehicle
from .status import Status

DEFAULT_LEAD_KM = 500


@dataclass
class MaintenanceDue:
    """Calculated due information for one maintenance interval."""

    interval: MaintenanceInterval
    status: Status
    next_due_km: Optional[int] = None
    next_due_date: Optional[datetime] = None
    km_until_due: Optional[int] = None
    days_until_due: Optional[int] = None
    km_status: Optional[Status] = None
    date_status: Optional[Status] = None

    @property
    def is_due(self) -> bool:
        return self.status in (Status.OVERDUE, Status.WARNING)


def effective_lead_km(interval: MaintenanceInterval) -> int:
    """Configured lead distance, or 500 km when unset."""
    if interval.notification_lead_km is None:
        return DEFAULT_LEAD_KM
    return max(0, interval.notification_lead_km)


def resolve_current_km(vehicle: Vehicle, entries: Iterable[LogEntry]) -> Optional[int]:
    """Highest odometer reading in the log, else the vehicle's initial reading."""
    readings = [e.odometer_km for e in entries if e.odometer_km is not None]
    if readings:
        return max(readings)
    return vehicle.initial_odometer_km


def calculate_due(
    interval: MaintenanceInterval,
    current_km: Optional[int],
    now: Optional[datetime] = None,
) -> MaintenanceDue:
    """
    Calculate when an interval is next due and how urgent it is.

    Logic:
    - Disabled interval: status = UNKNOWN
    - Distance channel: due at last done odometer + interval km, compared to
      current_km against the lead distance
    - Date channel: due at last done date + interval months, compared to now
      against the lead days
    - Either channel negative: OVERDUE; worst channel wins
    - No channel computable: UNKNOWN
    """
    now = now or datetime.now()

    next_due_km = calc_due_km(interval.last_done_odometer_km, interval.interval_km)
    next_due_date = calc_due_date(interval.last_done_date, interval.interval_months)

    km_until_due = None
    km_status = None
    if next_due_km is not None and current_km is not None:
        km_until_due = next_due_km - current_km
        km_status = check_status(km_until_due, effective_lead_km(interval))

    days_until_due = None
    date_status = None
    if next_due_date is not None:
        days_until_due = days_between(now, next_due_date)
        date_status = check_status(days_until_due, max(0, interval.notification_lead_days))

    if interval.is_enabled:
        status = worst_status([km_status, date_status])
    else:
        status = Status.UNKNOWN

    return MaintenanceDue(
        interval=interval,
        status=status,
        next_due_km=next_due_km,
        next_due_date=next_due_date,
        km_until_due=km_until_due,
        days_until_due=days_until_due,
        km_status=km_status,
        date_status=date_status,
    )
