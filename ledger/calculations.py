"""Helper functions for maintenance due calculations."""

from datetime import datetime
from dateutil.relativedelta import relativedelta
from typing import Iterable, Optional

from .status import Status


def calc_due_km(last_km: Optional[int], interval_km: Optional[int]) -> Optional[int]:
    """Next due odometer reading: last done + interval. Needs both."""
    if interval_km is None or last_km is None:
        return None
    return last_km + interval_km


def calc_due_date(
    last_date: Optional[datetime], interval_months: Optional[int]
) -> Optional[datetime]:
    """Next due date: last done + interval calendar months."""
    if interval_months is None or last_date is None:
        return None
    return last_date + relativedelta(months=interval_months)


def days_between(start: datetime, end: datetime) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative if ``end`` is earlier)."""
    return (end.date() - start.date()).days


def check_status(remaining: float, lead: float) -> Status:
    """Classify what is left until due against a lead threshold."""
    if remaining < 0:
        return Status.OVERDUE
    if remaining <= lead:
        return Status.WARNING
    return Status.OK


def worst_status(statuses: Iterable[Optional[Status]]) -> Status:
    """Most urgent of the known statuses, UNKNOWN if there are none."""
    known = [s for s in statuses if s is not None]
    if not known:
        return Status.UNKNOWN
    return min(known, key=lambda s: s.value)
