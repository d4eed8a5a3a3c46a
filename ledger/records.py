"""
Plain record types for the six entity kinds held by the record store.

Relationships are expressed by id (``vehicle_id``, ``log_entry_id``) so the
records stay independent of any storage engine. Raw-string tags are stored
verbatim and read through parse-or-default properties (see ``kinds``).
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .kinds import (
    FuelFillKind,
    LogEntryKind,
    NotificationRepeat,
    PerformedBy,
    RimType,
    TireSeason,
    WinterTireKind,
)


def _unique(ids: List[uuid.UUID]) -> List[uuid.UUID]:
    """De-duplicate while keeping first-seen order."""
    seen = set()
    result = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


@dataclass
class Vehicle:
    """A vehicle and its descriptive details."""

    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    make: Optional[str] = None
    model: Optional[str] = None
    generation: Optional[str] = None
    year: Optional[int] = None
    engine: Optional[str] = None
    body_style: Optional[str] = None
    color_name: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    icon_symbol: Optional[str] = None
    initial_odometer_km: Optional[int] = None
    current_wheel_set_id: Optional[uuid.UUID] = None

    @property
    def display_subtitle(self) -> str:
        """Make and model joined with a dot, blanks skipped."""
        parts = [p.strip() for p in (self.make, self.model) if p and p.strip()]
        return " · ".join(parts)


@dataclass
class PurchaseItem:
    """One line of a purchase entry."""

    title: str
    price: Optional[float] = None


@dataclass
class LogEntry:
    """A dated event in a vehicle's log. ``kind_raw`` selects the payload."""

    kind_raw: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    vehicle_id: Optional[uuid.UUID] = None
    date: datetime = field(default_factory=datetime.now)
    odometer_km: Optional[int] = None
    total_cost: Optional[float] = None
    notes: Optional[str] = None

    # fuel
    fuel_liters: Optional[float] = None
    fuel_price_per_liter: Optional[float] = None
    fuel_station: Optional[str] = None
    fuel_consumption_l_per_100km: Optional[float] = None
    fuel_fill_kind_raw: Optional[str] = None

    # service / tireService
    service_title: Optional[str] = None
    service_details: Optional[str] = None
    service_checklist: List[str] = field(default_factory=list)
    maintenance_interval_id: Optional[uuid.UUID] = None
    maintenance_interval_ids: List[uuid.UUID] = field(default_factory=list)
    wheel_set_id: Optional[uuid.UUID] = None

    # purchase
    purchase_category: Optional[str] = None
    purchase_vendor: Optional[str] = None
    purchase_items: List[PurchaseItem] = field(default_factory=list)

    # other kinds
    toll_zone: Optional[str] = None
    carwash_location: Optional[str] = None
    parking_location: Optional[str] = None
    fines_violation_type: Optional[str] = None

    def __post_init__(self):
        # Purchase items come back from YAML as plain mappings.
        self.purchase_items = [
            PurchaseItem(**item) if isinstance(item, dict) else item
            for item in self.purchase_items
        ]

    @property
    def kind(self) -> LogEntryKind:
        return LogEntryKind.parse(self.kind_raw)

    @kind.setter
    def kind(self, value: LogEntryKind) -> None:
        self.kind_raw = value.value

    @property
    def fuel_fill_kind(self) -> FuelFillKind:
        return FuelFillKind.parse(self.fuel_fill_kind_raw)

    @fuel_fill_kind.setter
    def fuel_fill_kind(self, value: FuelFillKind) -> None:
        self.fuel_fill_kind_raw = value.value

    @property
    def linked_maintenance_interval_ids(self) -> List[uuid.UUID]:
        """Plural links when present, else the legacy single link, else none."""
        if self.maintenance_interval_ids:
            return list(self.maintenance_interval_ids)
        if self.maintenance_interval_id is not None:
            return [self.maintenance_interval_id]
        return []

    def set_linked_maintenance_intervals(self, ids: List[uuid.UUID]) -> None:
        unique = _unique(ids)
        self.maintenance_interval_ids = unique
        self.maintenance_interval_id = unique[0] if len(unique) == 1 else None

    def set_checklist_items(self, items: List[str]) -> None:
        self.service_checklist = [i.strip() for i in items if i and i.strip()]


@dataclass
class Attachment:
    """
    A document attached to a log entry.

    ``applies_to_all_maintenance_intervals`` selects how the interval scope is
    read: when true the entry's linked intervals all apply and
    ``maintenance_interval_ids`` is ignored; when false the list is an
    explicit subset, and an empty list means "none".
    """

    original_file_name: str
    uti: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    log_entry_id: Optional[uuid.UUID] = None
    created_at: datetime = field(default_factory=datetime.now)
    relative_path: str = ""
    file_size_bytes: Optional[int] = None
    applies_to_all_maintenance_intervals: bool = True
    maintenance_interval_ids: List[uuid.UUID] = field(default_factory=list)

    @property
    def file_extension(self) -> Optional[str]:
        for name in (self.relative_path, self.original_file_name):
            if name and "." in name.rsplit("/", 1)[-1]:
                return name.rsplit(".", 1)[-1]
        return None

    @property
    def scoped_maintenance_interval_ids(self) -> List[uuid.UUID]:
        if self.applies_to_all_maintenance_intervals:
            return []
        return list(self.maintenance_interval_ids)

    def set_applies_to_all(self) -> None:
        self.applies_to_all_maintenance_intervals = True
        self.maintenance_interval_ids = []

    def set_scoped(self, ids: List[uuid.UUID]) -> None:
        self.applies_to_all_maintenance_intervals = False
        self.maintenance_interval_ids = _unique(ids)


@dataclass
class MaintenanceInterval:
    """A recurring service rule: every N km and/or every N months."""

    title: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    vehicle_id: Optional[uuid.UUID] = None
    template_id: Optional[str] = None
    interval_km: Optional[int] = None
    interval_months: Optional[int] = None
    last_done_date: Optional[datetime] = None
    last_done_odometer_km: Optional[int] = None
    notifications_enabled: bool = False
    notifications_by_date_enabled: bool = True
    notifications_by_mileage_enabled: bool = True
    notification_lead_days: int = 30
    notification_lead_km: Optional[int] = None
    notification_time_minutes: int = 9 * 60
    notification_repeat_raw: str = "none"
    notes: Optional[str] = None
    is_enabled: bool = True

    @property
    def notification_repeat(self) -> NotificationRepeat:
        return NotificationRepeat.parse(self.notification_repeat_raw)

    @notification_repeat.setter
    def notification_repeat(self, value: NotificationRepeat) -> None:
        self.notification_repeat_raw = value.value


@dataclass
class ServiceBookEntry:
    """A service-book record for one maintenance interval."""

    interval_id: uuid.UUID
    title: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    vehicle_id: Optional[uuid.UUID] = None
    date: datetime = field(default_factory=datetime.now)
    odometer_km: Optional[int] = None
    performed_by_raw: str = "service"
    service_name: Optional[str] = None
    oil_brand: Optional[str] = None
    oil_viscosity: Optional[str] = None
    oil_spec: Optional[str] = None
    notes: Optional[str] = None

    @property
    def performed_by(self) -> PerformedBy:
        return PerformedBy.parse(self.performed_by_raw)


@dataclass
class WheelSet:
    """A set of tires and rims owned by a vehicle."""

    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    vehicle_id: Optional[uuid.UUID] = None
    tire_size: Optional[str] = None
    tire_season_raw: Optional[str] = None
    winter_tire_kind_raw: Optional[str] = None
    rim_type_raw: Optional[str] = None
    rim_diameter_inches: Optional[int] = None
    rim_width_inches: Optional[float] = None
    rim_offset_et: Optional[int] = None
    rim_spec: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def tire_season(self) -> Optional[TireSeason]:
        return TireSeason.parse(self.tire_season_raw)

    @property
    def winter_tire_kind(self) -> Optional[WinterTireKind]:
        return WinterTireKind.parse(self.winter_tire_kind_raw)

    @property
    def rim_type(self) -> Optional[RimType]:
        return RimType.parse(self.rim_type_raw)

    @property
    def summary(self) -> str:
        """Short description, e.g. '205/55 R16 · winter · studded · alloy R16 6.5J ET45'."""
        tire = []
        if self.tire_size and self.tire_size.strip():
            tire.append(self.tire_size.strip())
        if self.tire_season:
            tire.append(self.tire_season.value)
            if self.tire_season is TireSeason.WINTER and self.winter_tire_kind:
                tire.append(self.winter_tire_kind.value)

        rim = []
        if self.rim_type:
            rim.append(self.rim_type.value)
        if self.rim_diameter_inches is not None:
            rim.append(f"R{self.rim_diameter_inches}")
        if self.rim_width_inches is not None:
            width = self.rim_width_inches
            text = str(int(round(width))) if abs(round(width) - width) < 1e-6 else f"{width:.1f}"
            rim.append(f"{text}J")
        if self.rim_offset_et is not None:
            rim.append(f"ET{self.rim_offset_et}")
        rim_text = " ".join(rim)
        if not rim_text and self.rim_spec:
            rim_text = self.rim_spec.strip()

        parts = tire + ([rim_text] if rim_text else [])
        return " · ".join(parts)


ENTITY_TYPES = (Vehicle, WheelSet, LogEntry, Attachment, MaintenanceInterval, ServiceBookEntry)
