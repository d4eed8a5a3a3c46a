"""
Raw-value enumerations.

Records keep the raw strings they were given (so unknown values written by a
newer version survive a round trip) and read them through ``parse``, which
falls back to a documented default instead of raising.
"""

from enum import Enum
from typing import Optional


class RawEnum(str, Enum):
    """String enum with a parse-or-default constructor."""

    @classmethod
    def default(cls) -> Optional["RawEnum"]:
        return None

    @classmethod
    def parse(cls, raw: Optional[str]):
        """Return the member for ``raw``, or ``default()`` when unknown."""
        if raw is not None:
            try:
                return cls(raw)
            except ValueError:
                pass
        return cls.default()


class LogEntryKind(RawEnum):
    """What a log entry records. Unknown raw values read as NOTE."""

    FUEL = "fuel"
    SERVICE = "service"
    TIRE_SERVICE = "tireService"
    PURCHASE = "purchase"
    TOLLS = "tolls"
    FINES = "fines"
    CARWASH = "carwash"
    PARKING = "parking"
    ODOMETER = "odometer"
    NOTE = "note"

    @classmethod
    def default(cls) -> "LogEntryKind":
        return cls.NOTE


class FuelFillKind(RawEnum):
    """Full tank or top-up. Absent or unknown raw values read as FULL."""

    FULL = "full"
    PARTIAL = "partial"

    @classmethod
    def default(cls) -> "FuelFillKind":
        return cls.FULL


class NotificationRepeat(RawEnum):
    """Overdue repeat policy. Unknown raw values read as NONE."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"

    @classmethod
    def default(cls) -> "NotificationRepeat":
        return cls.NONE


class PerformedBy(RawEnum):
    """Who did the work recorded in the service book."""

    SERVICE = "service"
    DIY = "diy"

    @classmethod
    def default(cls) -> "PerformedBy":
        return cls.SERVICE


class TireSeason(RawEnum):
    SUMMER = "summer"
    WINTER = "winter"
    ALL_SEASON = "allSeason"


class WinterTireKind(RawEnum):
    STUDDED = "studded"
    FRICTION = "friction"


class RimType(RawEnum):
    ALLOY = "alloy"
    STEEL = "steel"


class AuthorizationStatus(Enum):
    """Notification permission state reported by a notification center."""

    NOT_DETERMINED = "notDetermined"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    PROVISIONAL = "provisional"
