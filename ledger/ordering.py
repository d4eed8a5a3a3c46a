"""Total-order sort keys shared by the fuel engine, the backup codec and the wheel-set rule."""

import math
from typing import Tuple

from .records import LogEntry

_MISSING_ODOMETER = -math.inf


def entry_sort_key(entry: LogEntry) -> Tuple:
    """
    (date, odometer, id) ascending; a missing odometer sorts first.

    The id string breaks every remaining tie, so two distinct entries never
    compare equal.
    """
    odometer = entry.odometer_km if entry.odometer_km is not None else _MISSING_ODOMETER
    return (entry.date, odometer, str(entry.id))


def date_id_key(entry: LogEntry) -> Tuple:
    """(date, id) ascending, used to decide which tire service is the latest."""
    return (entry.date, str(entry.id))
