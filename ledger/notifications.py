"""
Maintenance reminder scheduling.

Every sync starts by cancelling all six notification slots of an interval and
then re-derives them from scratch, so no stale reminder survives a change to
the due date or the odometer. Scheduling is best-effort: failures of the
notification center are logged and never reach the caller.
"""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import yaml

from .calculations import calc_due_date, calc_due_km
from .errors import NotificationError
from .kinds import AuthorizationStatus, NotificationRepeat
from .maintenance_due import effective_lead_km, resolve_current_km
from .records import LogEntry, MaintenanceInterval, Vehicle

logger = logging.getLogger(__name__)

DEFAULT_TIME_MINUTES = 9 * 60
AUTHORIZATION_OPTIONS = ("alert", "sound", "badge")

# Slot positions in notification_identifiers()
LEGACY_WARNING, WARNING, DUE, OVERDUE, MILEAGE_NOW, MILEAGE_REPEAT = range(6)


# =============================================================================
# Requests and the notification center port
# =============================================================================


@dataclass
class NotificationContent:
    title: str
    body: str
    subtitle: Optional[str] = None


@dataclass
class CalendarTrigger:
    """
    Fire at ``fire_at``. A repeating trigger fires every day at the
    time of day of ``fire_at``.
    """

    fire_at: datetime
    repeats: bool = False


@dataclass
class ImmediateTrigger:
    delay_seconds: float = 1.0


@dataclass
class NotificationRequest:
    identifier: str
    content: NotificationContent
    trigger: Union[CalendarTrigger, ImmediateTrigger]


class NotificationCenter(ABC):
    """Asynchronous local-notification facility."""

    @abstractmethod
    async def authorization_status(self) -> AuthorizationStatus:
        ...

    @abstractmethod
    async def request_authorization(self, options: Sequence[str]) -> bool:
        ...

    @abstractmethod
    async def add(self, request: NotificationRequest) -> None:
        """Schedule a request, replacing any pending one with the same identifier."""

    @abstractmethod
    async def remove_pending(self, identifiers: Sequence[str]) -> None:
        ...

    @abstractmethod
    async def remove_delivered(self, identifiers: Sequence[str]) -> None:
        ...


class InMemoryNotificationCenter(NotificationCenter):
    """Keeps scheduled requests in memory. Used for dry runs and tests."""

    def __init__(self, status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED):
        self.status = status
        self.pending: Dict[str, NotificationRequest] = {}
        self.added: List[NotificationRequest] = []
        self.removed_pending: List[List[str]] = []
        self.removed_delivered: List[List[str]] = []

    async def authorization_status(self) -> AuthorizationStatus:
        return self.status

    async def request_authorization(self, options: Sequence[str]) -> bool:
        self.status = AuthorizationStatus.AUTHORIZED
        return True

    async def add(self, request: NotificationRequest) -> None:
        if self.status is AuthorizationStatus.DENIED:
            raise NotificationError(f"Not authorized to schedule {request.identifier}")
        self.added.append(request)
        self.pending[request.identifier] = request

    async def remove_pending(self, identifiers: Sequence[str]) -> None:
        self.removed_pending.append(list(identifiers))
        for identifier in identifiers:
            self.pending.pop(identifier, None)

    async def remove_delivered(self, identifiers: Sequence[str]) -> None:
        self.removed_delivered.append(list(identifiers))


# =============================================================================
# Mileage alert cooldown
# =============================================================================


class CooldownStore:
    """
    Last-fired timestamps for mileage alerts, keyed by interval.

    With a ``path`` the timestamps are kept in a YAML file so they survive
    restarts. An unreadable file, or any entry in it that is not a timestamp,
    is dropped with a warning; a cooldown is only ever lost, never fatal.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._values: Dict[str, datetime] = {}
        if self.path and self.path.exists():
            self._values = self._load(self.path)

    @staticmethod
    def _load(path: Path) -> Dict[str, datetime]:
        try:
            with open(path, "r") as fp:
                data = yaml.safe_load(fp)
        except (OSError, yaml.YAMLError):
            logger.warning("Ignoring unreadable cooldown file %s", path, exc_info=True)
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring cooldown file %s: not a mapping", path)
            return {}

        values = {}
        for key, value in data.items():
            if isinstance(key, str) and isinstance(value, datetime):
                if value.tzinfo is not None:
                    value = value.astimezone().replace(tzinfo=None)
                values[key] = value
            else:
                logger.warning("Dropping invalid cooldown entry %r in %s", key, path)
        return values

    @staticmethod
    def key_for(interval_id: uuid.UUID) -> str:
        return f"maintenance.notifications.cooldown.{interval_id}"

    def get(self, key: str) -> Optional[datetime]:
        return self._values.get(key)

    def set(self, key: str, value: datetime) -> None:
        self._values[key] = value
        if self.path is None:
            return
        # The file on disk is only ever replaced whole.
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w") as fp:
                yaml.safe_dump(self._values, fp, default_flow_style=False)
            os.replace(tmp_path, self.path)
        except OSError:
            logger.warning("Could not persist cooldowns to %s", self.path, exc_info=True)


def _cooldown_hit(
    cooldowns: CooldownStore,
    interval_id: uuid.UUID,
    repeat: NotificationRepeat,
    now: datetime,
) -> bool:
    last = cooldowns.get(CooldownStore.key_for(interval_id))
    if last is None:
        return False
    if repeat is NotificationRepeat.DAILY:
        return last.date() == now.date()
    return now - last < timedelta(days=7)


# =============================================================================
# Scheduling
# =============================================================================


def notification_identifiers(interval_id: uuid.UUID) -> List[str]:
    """[legacy warning, warning, due, overdue repeat, mileage now, mileage repeat]"""
    base = f"maintenance.{str(interval_id).upper()}"
    return [
        f"{base}.warning",
        f"{base}.warning.v2",
        f"{base}.due",
        f"{base}.overdue",
        f"{base}.mileage.now",
        f"{base}.mileage.repeat",
    ]


async def request_authorization_if_needed(center: NotificationCenter) -> bool:
    """True when notifications may be scheduled, asking the user if undecided."""
    try:
        status = await center.authorization_status()
        if status in (AuthorizationStatus.AUTHORIZED, AuthorizationStatus.PROVISIONAL):
            return True
        if status is AuthorizationStatus.NOT_DETERMINED:
            return await center.request_authorization(AUTHORIZATION_OPTIONS)
    except Exception:
        logger.warning("Notification authorization failed", exc_info=True)
    return False


async def remove(interval_id: uuid.UUID, center: NotificationCenter) -> None:
    """Cancel every pending and delivered reminder of an interval."""
    ids = notification_identifiers(interval_id)
    try:
        await center.remove_pending(ids)
        await center.remove_delivered(ids)
    except Exception:
        logger.warning("Could not cancel reminders for %s", interval_id, exc_info=True)


async def _add(center: NotificationCenter, request: NotificationRequest) -> None:
    try:
        await center.add(request)
    except Exception:
        logger.warning("Could not schedule %s", request.identifier, exc_info=True)


async def sync(
    interval: MaintenanceInterval,
    center: NotificationCenter,
    cooldowns: CooldownStore,
    vehicle_name: Optional[str] = None,
    current_km: Optional[int] = None,
    now: Optional[datetime] = None,
) -> None:
    """
    Bring the scheduled reminders of one interval in line with its state.

    Steps:
    1. Cancel all six slots
    2. Stop if the interval or its notifications are disabled
    3. Stop unless notifications are authorized
    4. Date channel: due, warning (lead days earlier), overdue repeat
    5. Mileage channel: immediate alert behind a cooldown, plus a repeat
    """
    await remove(interval.id, center)

    if not (interval.notifications_enabled and interval.is_enabled):
        return

    if not await request_authorization_if_needed(center):
        return

    now = now or datetime.now()
    ids = notification_identifiers(interval.id)
    repeat = interval.notification_repeat

    minutes = interval.notification_time_minutes
    if not 0 <= minutes < 24 * 60:
        minutes = DEFAULT_TIME_MINUTES

    def at_fire_time(moment: datetime) -> datetime:
        return moment.replace(hour=minutes // 60, minute=minutes % 60, second=0, microsecond=0)

    def request(slot: int, body: str, trigger) -> NotificationRequest:
        content = NotificationContent(title=interval.title, body=body)
        if vehicle_name and vehicle_name.strip():
            content.subtitle = vehicle_name
        return NotificationRequest(identifier=ids[slot], content=content, trigger=trigger)

    async def add_calendar(slot: int, body: str, fire_at: datetime, repeats: bool = False) -> None:
        if fire_at <= now and not repeats:
            return
        await _add(center, request(slot, body, CalendarTrigger(fire_at=fire_at, repeats=repeats)))

    async def add_repeat(slot: int, body: str) -> None:
        if repeat is NotificationRepeat.DAILY:
            await add_calendar(slot, body, at_fire_time(now), repeats=True)
        elif repeat is NotificationRepeat.WEEKLY:
            await add_calendar(slot, body, at_fire_time(now + timedelta(days=7)))

    due_date = calc_due_date(interval.last_done_date, interval.interval_months)
    if interval.notifications_by_date_enabled and due_date is not None:
        await add_calendar(DUE, "Maintenance is due today.", at_fire_time(due_date))

        lead_days = max(0, interval.notification_lead_days)
        if lead_days > 0:
            await add_calendar(
                WARNING,
                f"Maintenance is due on {due_date.date().isoformat()}.",
                at_fire_time(due_date - timedelta(days=lead_days)),
            )

        if due_date <= now:
            await add_repeat(OVERDUE, "Maintenance is overdue.")

    next_due_km = calc_due_km(interval.last_done_odometer_km, interval.interval_km)
    if (
        interval.notifications_by_mileage_enabled
        and next_due_km is not None
        and current_km is not None
    ):
        km_left = next_due_km - current_km
        if km_left <= effective_lead_km(interval):
            if not _cooldown_hit(cooldowns, interval.id, repeat, now):
                if km_left < 0:
                    body = f"Overdue by {abs(km_left)} km."
                else:
                    body = f"Due in {km_left} km."
                await _add(center, request(MILEAGE_NOW, body, ImmediateTrigger()))
                cooldowns.set(CooldownStore.key_for(interval.id), now)

            await add_repeat(MILEAGE_REPEAT, "Mileage-based maintenance is due.")


async def sync_all(
    vehicle: Vehicle,
    intervals: Iterable[MaintenanceInterval],
    entries: Iterable[LogEntry],
    center: NotificationCenter,
    cooldowns: CooldownStore,
    current_km: Optional[int] = None,
    now: Optional[datetime] = None,
) -> None:
    """Sync every interval of a vehicle, one after another."""
    if current_km is None:
        current_km = resolve_current_km(vehicle, entries)
    for interval in intervals:
        await sync(
            interval,
            center,
            cooldowns,
            vehicle_name=vehicle.name,
            current_km=current_km,
            now=now,
        )
