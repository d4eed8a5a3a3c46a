"""
Vehicle ledger core.

This package provides the non-visual business logic of the ledger:
- Records: Vehicle, LogEntry, Attachment, MaintenanceInterval, ServiceBookEntry, WheelSet
- Store: record store port, in-memory and YAML-file implementations
- Fuel: L/100km between full fills, drafts and chart series
- Maintenance: due status and reminder scheduling
- Wheel sets: "latest tire service wins"
- Backup: versioned export, decode and import
"""

from .status import Status
from .kinds import (
    AuthorizationStatus,
    FuelFillKind,
    LogEntryKind,
    NotificationRepeat,
    PerformedBy,
    RimType,
    TireSeason,
    WinterTireKind,
)
from .errors import DecodeError, FileError, LedgerError, NotificationError, StoreError
from .records import (
    Attachment,
    LogEntry,
    MaintenanceInterval,
    PurchaseItem,
    ServiceBookEntry,
    Vehicle,
    WheelSet,
)
from .store import MemoryStore, RecordStore
from .loader import YamlStore, load_store
from .attachments import AttachmentFiles, DirectoryAttachmentFiles
from .fuel import FuelDraft, SeriesMode, average_consumption, compute_draft, consumption_series, recalculate_all
from .maintenance_due import MaintenanceDue, calculate_due, resolve_current_km
from .notifications import CooldownStore, InMemoryNotificationCenter, NotificationCenter, sync, sync_all
from .wheel_sets import is_latest_tire_service_entry, update_vehicle_current_wheel_set_if_latest
from .backup import CURRENT_FORMAT_VERSION, ImportSummary, export_bytes, export_document, import_bytes, loads
from .config import Settings, load_settings

__all__ = [
    "Status",
    "AuthorizationStatus",
    "FuelFillKind",
    "LogEntryKind",
    "NotificationRepeat",
    "PerformedBy",
    "RimType",
    "TireSeason",
    "WinterTireKind",
    "LedgerError",
    "DecodeError",
    "StoreError",
    "FileError",
    "NotificationError",
    "Vehicle",
    "LogEntry",
    "PurchaseItem",
    "Attachment",
    "MaintenanceInterval",
    "ServiceBookEntry",
    "WheelSet",
    "RecordStore",
    "MemoryStore",
    "YamlStore",
    "load_store",
    "AttachmentFiles",
    "DirectoryAttachmentFiles",
    "FuelDraft",
    "SeriesMode",
    "recalculate_all",
    "compute_draft",
    "consumption_series",
    "average_consumption",
    "MaintenanceDue",
    "calculate_due",
    "resolve_current_km",
    "NotificationCenter",
    "InMemoryNotificationCenter",
    "CooldownStore",
    "sync",
    "sync_all",
    "is_latest_tire_service_entry",
    "update_vehicle_current_wheel_set_if_latest",
    "CURRENT_FORMAT_VERSION",
    "ImportSummary",
    "export_document",
    "export_bytes",
    "loads",
    "import_bytes",
    "Settings",
    "load_settings",
]
