"""
Versioned backup codec.

``export_document`` turns the whole store into a self-describing document,
``loads`` decodes and validates one without touching the store, and
``import_document`` reconciles a decoded document into a live store by
identifier, so importing the same document twice leaves the same state.

Format versions:
- 5: wheel sets, ``LogEntry.wheelSetID``, ``Vehicle.currentWheelSetID``
- 7: structured purchase line items
"""

import base64
import binascii
import dataclasses
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from dateutil.parser import isoparse
from jsonschema import ValidationError, validate

from .attachments import AttachmentFiles
from .errors import DecodeError, FileError
from .ordering import entry_sort_key
from .records import (
    Attachment,
    LogEntry,
    MaintenanceInterval,
    PurchaseItem,
    ServiceBookEntry,
    Vehicle,
    WheelSet,
)
from .store import RecordStore

logger = logging.getLogger(__name__)

CURRENT_FORMAT_VERSION = 7
WHEEL_SETS_VERSION = 5
PURCHASE_ITEMS_VERSION = 7

SCHEMA_PATH = Path(__file__).parent / "backup_schema.yaml"

# Value kinds used by the field tables below
STR, INT, FLOAT, BOOL, DATE, UUID = "str", "int", "float", "bool", "date", "uuid"

# (document key, record attribute, kind) for plain scalar fields.
# Fields with special reconciliation rules are handled explicitly.
VEHICLE_FIELDS = [
    ("id", "id", UUID),
    ("name", "name", STR),
    ("make", "make", STR),
    ("model", "model", STR),
    ("generation", "generation", STR),
    ("year", "year", INT),
    ("engine", "engine", STR),
    ("bodyStyle", "body_style", STR),
    ("colorName", "color_name", STR),
    ("createdAt", "created_at", DATE),
    ("licensePlate", "license_plate", STR),
    ("vin", "vin", STR),
    ("iconSymbol", "icon_symbol", STR),
    ("initialOdometerKm", "initial_odometer_km", INT),
]

ENTRY_FIELDS = [
    ("id", "id", UUID),
    ("kindRaw", "kind_raw", STR),
    ("date", "date", DATE),
    ("odometerKm", "odometer_km", INT),
    ("totalCost", "total_cost", FLOAT),
    ("notes", "notes", STR),
    ("fuelLiters", "fuel_liters", FLOAT),
    ("fuelPricePerLiter", "fuel_price_per_liter", FLOAT),
    ("fuelStation", "fuel_station", STR),
    ("fuelConsumptionLPer100km", "fuel_consumption_l_per_100km", FLOAT),
    ("fuelFillKindRaw", "fuel_fill_kind_raw", STR),
    ("serviceTitle", "service_title", STR),
    ("serviceDetails", "service_details", STR),
    ("maintenanceIntervalID", "maintenance_interval_id", UUID),
    ("purchaseCategory", "purchase_category", STR),
    ("purchaseVendor", "purchase_vendor", STR),
    ("tollZone", "toll_zone", STR),
    ("carwashLocation", "carwash_location", STR),
    ("parkingLocation", "parking_location", STR),
    ("finesViolationType", "fines_violation_type", STR),
]

ATTACHMENT_FIELDS = [
    ("id", "id", UUID),
    ("createdAt", "created_at", DATE),
    ("originalFileName", "original_file_name", STR),
    ("uti", "uti", STR),
    ("fileSizeBytes", "file_size_bytes", INT),
]

INTERVAL_FIELDS = [
    ("id", "id", UUID),
    ("title", "title", STR),
    ("templateID", "template_id", STR),
    ("intervalKm", "interval_km", INT),
    ("intervalMonths", "interval_months", INT),
    ("lastDoneDate", "last_done_date", DATE),
    ("lastDoneOdometerKm", "last_done_odometer_km", INT),
    ("notificationsEnabled", "notifications_enabled", BOOL),
    ("notificationsByDateEnabled", "notifications_by_date_enabled", BOOL),
    ("notificationsByMileageEnabled", "notifications_by_mileage_enabled", BOOL),
    ("notificationLeadDays", "notification_lead_days", INT),
    ("notificationLeadKm", "notification_lead_km", INT),
    ("notificationTimeMinutes", "notification_time_minutes", INT),
    ("notificationRepeatRaw", "notification_repeat_raw", STR),
    ("notes", "notes", STR),
    ("isEnabled", "is_enabled", BOOL),
]

SERVICE_BOOK_FIELDS = [
    ("id", "id", UUID),
    ("intervalID", "interval_id", UUID),
    ("title", "title", STR),
    ("date", "date", DATE),
    ("odometerKm", "odometer_km", INT),
    ("performedByRaw", "performed_by_raw", STR),
    ("serviceName", "service_name", STR),
    ("oilBrand", "oil_brand", STR),
    ("oilViscosity", "oil_viscosity", STR),
    ("oilSpec", "oil_spec", STR),
    ("notes", "notes", STR),
]

WHEEL_SET_FIELDS = [
    ("id", "id", UUID),
    ("name", "name", STR),
    ("tireSize", "tire_size", STR),
    ("tireSeasonRaw", "tire_season_raw", STR),
    ("winterTireKindRaw", "winter_tire_kind_raw", STR),
    ("rimTypeRaw", "rim_type_raw", STR),
    ("rimDiameterInches", "rim_diameter_inches", INT),
    ("rimWidthInches", "rim_width_inches", FLOAT),
    ("rimOffsetET", "rim_offset_et", INT),
    ("rimSpec", "rim_spec", STR),
    ("createdAt", "created_at", DATE),
]


# =============================================================================
# Decoded document
# =============================================================================


@dataclass
class AttachmentBackup:
    """An attachment as found in a document, scope flags kept as given."""

    attachment: Attachment
    data_base64: Optional[str] = None
    file_extension: Optional[str] = None
    applies_to_all: Optional[bool] = None
    interval_ids: Optional[List[uuid.UUID]] = None


@dataclass
class EntryBackup:
    entry: LogEntry
    attachments: List[AttachmentBackup] = field(default_factory=list)


@dataclass
class VehicleBackup:
    vehicle: Vehicle
    current_wheel_set_id: Optional[uuid.UUID] = None
    entries: List[EntryBackup] = field(default_factory=list)
    maintenance_intervals: List[MaintenanceInterval] = field(default_factory=list)
    service_book_entries: List[ServiceBookEntry] = field(default_factory=list)
    wheel_sets: List[WheelSet] = field(default_factory=list)


@dataclass
class BackupDocument:
    format_version: int
    exported_at: Optional[datetime] = None
    vehicles: List[VehicleBackup] = field(default_factory=list)


@dataclass
class ImportSummary:
    """Counts of what an import wrote."""

    vehicles_upserted: int = 0
    entries_upserted: int = 0
    maintenance_intervals_upserted: int = 0
    service_book_entries_upserted: int = 0
    wheel_sets_upserted: int = 0
    attachments_upserted: int = 0
    attachments_skipped: int = 0

    @property
    def message(self) -> str:
        text = (
            f"Imported {self.vehicles_upserted} vehicles, "
            f"{self.entries_upserted} entries, "
            f"{self.maintenance_intervals_upserted} maintenance intervals, "
            f"{self.service_book_entries_upserted} service book entries, "
            f"{self.wheel_sets_upserted} wheel sets and "
            f"{self.attachments_upserted} attachments."
        )
        if self.attachments_skipped:
            text += f" Skipped {self.attachments_skipped} attachments that could not be restored."
        return text


# =============================================================================
# Value conversion
# =============================================================================


def _encode(value: Any, kind: str) -> Any:
    if kind == DATE:
        return value.isoformat()
    if kind == UUID:
        return str(value).upper()
    return value


def _decode(value: Any, kind: str) -> Any:
    if value is None:
        return None
    if kind == DATE:
        parsed = isoparse(value)
        if parsed.tzinfo is not None:
            # Records hold naive local time.
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    if kind == UUID:
        return uuid.UUID(value)
    if kind == INT:
        return int(value)
    if kind == FLOAT:
        return float(value)
    return value


def _encode_fields(record: Any, fields: List[Tuple[str, str, str]]) -> Dict[str, Any]:
    """Write every non-None field; absent values are omitted, never blanked."""
    out = {}
    for key, attr, kind in fields:
        value = getattr(record, attr)
        if value is not None:
            out[key] = _encode(value, kind)
    return out


def _decode_fields(dct: Dict[str, Any], fields: List[Tuple[str, str, str]]) -> Dict[str, Any]:
    """Keyword arguments for a record constructor; absent and null keys are left out."""
    kwargs = {}
    for key, attr, kind in fields:
        value = _decode(dct.get(key), kind)
        if value is not None:
            kwargs[attr] = value
    return kwargs


def _uuid_list(values: Optional[List[str]]) -> Optional[List[uuid.UUID]]:
    if values is None:
        return None
    return [uuid.UUID(v) for v in values]


# =============================================================================
# Export
# =============================================================================


def _export_attachment(attachment: Attachment, files: AttachmentFiles) -> Optional[Dict[str, Any]]:
    out = _encode_fields(attachment, ATTACHMENT_FIELDS)
    if attachment.file_extension:
        out["fileExtension"] = attachment.file_extension
    if attachment.relative_path:
        try:
            data = files.read_bytes(attachment.relative_path)
        except FileError:
            logger.warning("Skipping attachment %s: file unreadable", attachment.id, exc_info=True)
            return None
        if data is not None:
            out["dataBase64"] = base64.b64encode(data).decode("ascii")

    if attachment.applies_to_all_maintenance_intervals:
        out["appliesToAllMaintenanceIntervals"] = True
    else:
        out["appliesToAllMaintenanceIntervals"] = False
        out["maintenanceIntervalIds"] = sorted(
            _encode(i, UUID) for i in attachment.maintenance_interval_ids
        )
    return out


def _export_entry(entry: LogEntry, store: RecordStore, files: AttachmentFiles) -> Dict[str, Any]:
    out = _encode_fields(entry, ENTRY_FIELDS)
    if entry.service_checklist:
        out["serviceChecklistItems"] = list(entry.service_checklist)
    if entry.maintenance_interval_ids:
        out["maintenanceIntervalIds"] = [_encode(i, UUID) for i in entry.maintenance_interval_ids]
    if entry.wheel_set_id is not None:
        out["wheelSetID"] = _encode(entry.wheel_set_id, UUID)
    if entry.purchase_items:
        out["purchaseItems"] = [
            {k: v for k, v in dataclasses.asdict(item).items() if v is not None}
            for item in entry.purchase_items
        ]

    attachments = sorted(
        store.attachments_for(entry), key=lambda a: (a.created_at, str(a.id))
    )
    exported = [_export_attachment(a, files) for a in attachments]
    exported = [a for a in exported if a is not None]
    if exported:
        out["attachments"] = exported
    return out


def _export_vehicle(vehicle: Vehicle, store: RecordStore, files: AttachmentFiles) -> Dict[str, Any]:
    out = _encode_fields(vehicle, VEHICLE_FIELDS)
    if vehicle.current_wheel_set_id is not None:
        out["currentWheelSetID"] = _encode(vehicle.current_wheel_set_id, UUID)

    entries = sorted(store.entries_for(vehicle), key=entry_sort_key)
    intervals = sorted(store.intervals_for(vehicle), key=lambda i: (i.title, str(i.id)))
    book = sorted(store.service_book_for(vehicle), key=lambda s: (s.date, str(s.id)))
    wheel_sets = sorted(store.wheel_sets_for(vehicle), key=lambda w: (w.created_at, str(w.id)))

    out["entries"] = [_export_entry(e, store, files) for e in entries]
    out["maintenanceIntervals"] = [_encode_fields(i, INTERVAL_FIELDS) for i in intervals]
    out["serviceBookEntries"] = [_encode_fields(s, SERVICE_BOOK_FIELDS) for s in book]
    out["wheelSets"] = [_encode_fields(w, WHEEL_SET_FIELDS) for w in wheel_sets]
    return out


def export_document(
    store: RecordStore, files: AttachmentFiles, exported_at: Optional[datetime] = None
) -> Dict[str, Any]:
    """Snapshot the whole store as a backup document (a JSON-ready dict)."""
    exported_at = exported_at or datetime.now()
    vehicles = store.vehicles()
    document = {
        "formatVersion": CURRENT_FORMAT_VERSION,
        "exportedAt": _encode(exported_at, DATE),
        "vehicles": [_export_vehicle(v, store, files) for v in vehicles],
    }
    logger.info("Exported %d vehicles", len(vehicles))
    return document


def dumps(document: Dict[str, Any]) -> bytes:
    """Serialize a document deterministically (sorted keys, fixed indent)."""
    text = json.dumps(document, sort_keys=True, indent=2, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def export_bytes(
    store: RecordStore, files: AttachmentFiles, exported_at: Optional[datetime] = None
) -> bytes:
    return dumps(export_document(store, files, exported_at))


# =============================================================================
# Decode
# =============================================================================


def load_schema() -> dict:
    """Load the backup JSON schema."""
    with open(SCHEMA_PATH) as f:
        return yaml.safe_load(f)


def _decode_attachment(dct: Dict[str, Any]) -> AttachmentBackup:
    attachment = Attachment(**_decode_fields(dct, ATTACHMENT_FIELDS))
    return AttachmentBackup(
        attachment=attachment,
        data_base64=dct.get("dataBase64"),
        file_extension=dct.get("fileExtension"),
        applies_to_all=dct.get("appliesToAllMaintenanceIntervals"),
        interval_ids=_uuid_list(dct.get("maintenanceIntervalIds")),
    )


def _decode_entry(dct: Dict[str, Any]) -> EntryBackup:
    entry = LogEntry(**_decode_fields(dct, ENTRY_FIELDS))
    entry.maintenance_interval_ids = _uuid_list(dct.get("maintenanceIntervalIds")) or []
    entry.service_checklist = list(dct.get("serviceChecklistItems") or [])
    entry.wheel_set_id = _decode(dct.get("wheelSetID"), UUID)
    entry.purchase_items = [
        PurchaseItem(title=item["title"], price=_decode(item.get("price"), FLOAT))
        for item in dct.get("purchaseItems") or []
    ]
    return EntryBackup(
        entry=entry,
        attachments=[_decode_attachment(a) for a in dct.get("attachments") or []],
    )


def _decode_vehicle(dct: Dict[str, Any]) -> VehicleBackup:
    return VehicleBackup(
        vehicle=Vehicle(**_decode_fields(dct, VEHICLE_FIELDS)),
        current_wheel_set_id=_decode(dct.get("currentWheelSetID"), UUID),
        entries=[_decode_entry(e) for e in dct.get("entries") or []],
        maintenance_intervals=[
            MaintenanceInterval(**_decode_fields(i, INTERVAL_FIELDS))
            for i in dct.get("maintenanceIntervals") or []
        ],
        service_book_entries=[
            ServiceBookEntry(**_decode_fields(s, SERVICE_BOOK_FIELDS))
            for s in dct.get("serviceBookEntries") or []
        ],
        wheel_sets=[
            WheelSet(**_decode_fields(w, WHEEL_SET_FIELDS))
            for w in dct.get("wheelSets") or []
        ],
    )


def loads(data: Union[bytes, str]) -> BackupDocument:
    """
    Decode and validate a backup document. Raises DecodeError on any problem.

    Nothing is written anywhere, so a bad document never leaves a partial
    import behind.
    """
    try:
        raw = json.loads(data)
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeError(f"Backup is not valid JSON: {e}") from e

    try:
        validate(instance=raw, schema=load_schema())
    except ValidationError as e:
        where = ".".join(str(p) for p in e.path)
        raise DecodeError(
            f"Backup does not match the expected format: {e.message}"
            + (f" (at {where})" if where else "")
        ) from e

    try:
        return BackupDocument(
            format_version=raw["formatVersion"],
            exported_at=_decode(raw.get("exportedAt"), DATE),
            vehicles=[_decode_vehicle(v) for v in raw.get("vehicles") or []],
        )
    except (ValueError, OverflowError) as e:
        raise DecodeError(f"Backup contains an invalid value: {e}") from e


# =============================================================================
# Import
# =============================================================================


def _first_by_id(items: List[Tuple[Any, Any]]) -> List[Tuple[Any, Any]]:
    """Keep the first (record, owner) pair for each record id."""
    seen: Dict[uuid.UUID, Tuple[Any, Any]] = {}
    for record, owner in items:
        seen.setdefault(record.id, (record, owner))
    return list(seen.values())


def _upsert(store: RecordStore, incoming: Any, skip: Tuple[str, ...] = ()) -> Any:
    """Find or insert the row with ``incoming.id`` and overwrite its fields."""
    row = store.get(type(incoming), incoming.id)
    if row is None:
        row = incoming
        store.insert(row)
        return row
    for f in dataclasses.fields(row):
        if f.name == "id" or f.name in skip:
            continue
        setattr(row, f.name, getattr(incoming, f.name))
    return row


def _reconcile_scope(row: Attachment, backup: AttachmentBackup) -> None:
    if backup.applies_to_all is not None:
        if backup.applies_to_all:
            row.set_applies_to_all()
        else:
            row.set_scoped(backup.interval_ids or [])
    elif backup.interval_ids:
        row.set_scoped(backup.interval_ids)
    else:
        # Documents from before attachment scoping.
        row.set_applies_to_all()


def _import_attachment(
    backup: AttachmentBackup,
    entry: LogEntry,
    store: RecordStore,
    files: AttachmentFiles,
    written: List[str],
) -> bool:
    """
    Upsert one attachment. Returns False if it had to be skipped.

    Paths of files written here are appended to ``written``.
    """
    incoming = backup.attachment
    row = store.get(Attachment, incoming.id)
    relative_path = row.relative_path if row is not None else ""

    # Never overwrite a file that is already in place.
    if not relative_path and backup.data_base64:
        try:
            data = base64.b64decode(backup.data_base64, validate=True)
            relative_path = files.write_bytes(data, backup.file_extension)
            written.append(relative_path)
        except (binascii.Error, FileError):
            logger.warning("Skipping attachment %s: could not restore file", incoming.id, exc_info=True)
            return False

    incoming.log_entry_id = entry.id
    incoming.relative_path = relative_path
    row = _upsert(store, incoming)
    _reconcile_scope(row, backup)
    return True


def _discard_files(files: AttachmentFiles, paths: List[str]) -> None:
    """Remove files written by an import that was rolled back."""
    for path in paths:
        try:
            files.delete_file(path)
        except FileError:
            logger.warning("Could not remove orphaned attachment %s", path, exc_info=True)


def import_document(
    document: BackupDocument, store: RecordStore, files: AttachmentFiles
) -> ImportSummary:
    """
    Reconcile a decoded document into the store.

    Records are matched by id and every field is overwritten (never merged),
    so re-importing a document is idempotent. Entity types are applied in the
    order vehicles, wheel sets, entries (with attachments), maintenance
    intervals, service book entries, followed by a single commit.

    The import is all-or-nothing: if anything fails before the commit
    succeeds, the store is rolled back, attachment files written by this
    import are deleted and the error re-raised.
    """
    summary = ImportSummary()
    version = document.format_version
    with_wheel_sets = version >= WHEEL_SETS_VERSION
    with_purchase_items = version >= PURCHASE_ITEMS_VERSION

    vehicles = _first_by_id([(vb.vehicle, vb) for vb in document.vehicles])
    wheel_sets = _first_by_id(
        [(w, vb.vehicle.id) for vb in document.vehicles for w in vb.wheel_sets]
    )
    entries = _first_by_id(
        [(eb.entry, (vb.vehicle.id, eb)) for vb in document.vehicles for eb in vb.entries]
    )
    intervals = _first_by_id(
        [(i, vb.vehicle.id) for vb in document.vehicles for i in vb.maintenance_intervals]
    )
    book = _first_by_id(
        [(s, vb.vehicle.id) for vb in document.vehicles for s in vb.service_book_entries]
    )

    written: List[str] = []
    try:
        for vehicle, vb in vehicles:
            if with_wheel_sets:
                vehicle.current_wheel_set_id = vb.current_wheel_set_id
                _upsert(store, vehicle)
            else:
                _upsert(store, vehicle, skip=("current_wheel_set_id",))
            summary.vehicles_upserted += 1

        if with_wheel_sets:
            for wheel_set, vehicle_id in wheel_sets:
                wheel_set.vehicle_id = vehicle_id
                _upsert(store, wheel_set)
                summary.wheel_sets_upserted += 1

        seen_attachments = set()
        for entry, (vehicle_id, eb) in entries:
            entry.vehicle_id = vehicle_id
            linked = entry.linked_maintenance_interval_ids
            checklist = list(entry.service_checklist)

            # Fields the document's version does not carry keep their stored
            # value, or start empty on a new row.
            skip = ("maintenance_interval_id", "maintenance_interval_ids", "service_checklist")
            if not with_wheel_sets:
                entry.wheel_set_id = None
                skip += ("wheel_set_id",)
            if not with_purchase_items:
                entry.purchase_items = []
                skip += ("purchase_items",)
            row = _upsert(store, entry, skip=skip)

            row.set_linked_maintenance_intervals(linked)
            row.set_checklist_items(checklist)
            summary.entries_upserted += 1

            for backup in eb.attachments:
                if backup.attachment.id in seen_attachments:
                    continue
                seen_attachments.add(backup.attachment.id)
                if _import_attachment(backup, row, store, files, written):
                    summary.attachments_upserted += 1
                else:
                    summary.attachments_skipped += 1

        for interval, vehicle_id in intervals:
            interval.vehicle_id = vehicle_id
            _upsert(store, interval)
            summary.maintenance_intervals_upserted += 1

        for book_entry, vehicle_id in book:
            book_entry.vehicle_id = vehicle_id
            _upsert(store, book_entry)
            summary.service_book_entries_upserted += 1

        store.commit()
    except Exception:
        logger.error("Import failed, rolling back")
        store.rollback()
        _discard_files(files, written)
        raise

    logger.info(summary.message)
    return summary


def import_bytes(data: Union[bytes, str], store: RecordStore, files: AttachmentFiles) -> ImportSummary:
    """Decode ``data`` and import it. Decoding fails before any mutation."""
    return import_document(loads(data), store, files)
