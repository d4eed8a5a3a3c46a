"""Status enum for maintenance urgency levels."""

from enum import Enum


class Status(Enum):
    """Maintenance status categories. Lower value = more urgent."""

    OVERDUE = 1
    WARNING = 2
    OK = 3
    UNKNOWN = 4  # Can't calculate (missing baseline or disabled)
