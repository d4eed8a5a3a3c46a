"""Flask JSON API over the vehicle ledger."""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from flask import Flask, Response, abort, jsonify, request

from ledger import (
    DecodeError,
    DirectoryAttachmentFiles,
    LedgerError,
    SeriesMode,
    Status,
    Vehicle,
    WheelSet,
    average_consumption,
    calculate_due,
    consumption_series,
    export_bytes,
    import_bytes,
    load_settings,
    load_store,
    resolve_current_km,
)
from ledger.fuel import sorted_fuel_entries

logger = logging.getLogger(__name__)

settings = load_settings()

app = Flask(__name__)
app.secret_key = settings.secret_key
app.config["STORE_PATH"] = settings.store_path
app.config["ATTACHMENTS_DIR"] = settings.attachments_dir


def get_store():
    """Load the store fresh for each request."""
    return load_store(Path(app.config["STORE_PATH"]))


def get_files():
    return DirectoryAttachmentFiles(app.config["ATTACHMENTS_DIR"])


def get_vehicle_or_404(store, vehicle_id: str) -> Vehicle:
    try:
        key = uuid.UUID(vehicle_id)
    except ValueError:
        abort(404)
    vehicle = store.get(Vehicle, key)
    if vehicle is None:
        abort(404)
    return vehicle


def format_date(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def status_name(status: Optional[Status]) -> Optional[str]:
    return status.name.lower() if status is not None else None


def status_counts(dues) -> dict:
    """Number of intervals per status."""
    return {s.name.lower(): sum(1 for d in dues if d.status is s) for s in Status}


def vehicle_summary(vehicle: Vehicle) -> dict:
    return {
        "id": str(vehicle.id),
        "name": vehicle.name,
        "subtitle": vehicle.display_subtitle,
        "year": vehicle.year,
        "licensePlate": vehicle.license_plate,
    }


def vehicle_dues(store, vehicle: Vehicle):
    current_km = resolve_current_km(vehicle, store.entries_for(vehicle))
    dues = [calculate_due(i, current_km) for i in store.intervals_for(vehicle)]
    # Most urgent first
    dues.sort(key=lambda d: (d.status.value, d.interval.title))
    return current_km, dues


@app.errorhandler(404)
def not_found(error):
    return jsonify({"error": "not found"}), 404


@app.errorhandler(LedgerError)
def ledger_error(error):
    logger.error("Request failed: %s", error)
    return jsonify({"error": str(error)}), 500


@app.route("/")
def index():
    """All vehicles with their maintenance status counts."""
    store = get_store()
    vehicles = []
    for vehicle in store.vehicles():
        current_km, dues = vehicle_dues(store, vehicle)
        item = vehicle_summary(vehicle)
        item["currentOdometerKm"] = current_km
        item["status"] = status_counts(dues)
        vehicles.append(item)
    return jsonify({"vehicles": vehicles})


@app.route("/vehicles/<vehicle_id>")
def vehicle_detail(vehicle_id: str):
    """One vehicle with the due status of every maintenance interval."""
    store = get_store()
    vehicle = get_vehicle_or_404(store, vehicle_id)
    current_km, dues = vehicle_dues(store, vehicle)

    result = vehicle_summary(vehicle)
    result["currentOdometerKm"] = current_km
    result["currentWheelSet"] = None
    if vehicle.current_wheel_set_id is not None:
        wheel_set = store.get(WheelSet, vehicle.current_wheel_set_id)
        if wheel_set is not None:
            result["currentWheelSet"] = {
                "id": str(wheel_set.id),
                "name": wheel_set.name,
                "summary": wheel_set.summary,
            }
    result["intervals"] = [
        {
            "id": str(d.interval.id),
            "title": d.interval.title,
            "status": status_name(d.status),
            "nextDueKm": d.next_due_km,
            "nextDueDate": format_date(d.next_due_date),
            "kmUntilDue": d.km_until_due,
            "daysUntilDue": d.days_until_due,
        }
        for d in dues
    ]
    return jsonify(result)


@app.route("/vehicles/<vehicle_id>/fuel")
def vehicle_fuel(vehicle_id: str):
    """Fuel fill-ups and a consumption series (?mode=fullToFull|perFillUp)."""
    store = get_store()
    vehicle = get_vehicle_or_404(store, vehicle_id)

    try:
        mode = SeriesMode(request.args.get("mode", SeriesMode.PER_FILL_UP.value))
    except ValueError:
        return jsonify({"error": f"unknown mode '{request.args.get('mode')}'"}), 400

    entries = store.entries_for(vehicle)
    fuels = sorted_fuel_entries(entries)
    return jsonify({
        "vehicle": vehicle_summary(vehicle),
        "averageLPer100km": average_consumption(fuels),
        "entries": [
            {
                "id": str(e.id),
                "date": format_date(e.date),
                "odometerKm": e.odometer_km,
                "liters": e.fuel_liters,
                "fillKind": e.fuel_fill_kind.value,
                "lPer100km": e.fuel_consumption_l_per_100km,
            }
            for e in fuels
        ],
        "series": [
            {"date": format_date(d), "lPer100km": v}
            for d, v in consumption_series(entries, mode)
        ],
    })


@app.route("/backup", methods=["GET"])
def download_backup():
    """The whole ledger as a backup document."""
    data = export_bytes(get_store(), get_files())
    filename = f"driveledger-{datetime.now().strftime('%Y%m%d-%H%M%S')}.json"
    return Response(
        data,
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.route("/backup", methods=["POST"])
def upload_backup():
    """Import a backup document sent as the request body."""
    try:
        summary = import_bytes(request.get_data(), get_store(), get_files())
    except DecodeError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({
        "message": summary.message,
        "vehiclesUpserted": summary.vehicles_upserted,
        "entriesUpserted": summary.entries_upserted,
        "maintenanceIntervalsUpserted": summary.maintenance_intervals_upserted,
        "serviceBookEntriesUpserted": summary.service_book_entries_upserted,
        "wheelSetsUpserted": summary.wheel_sets_upserted,
        "attachmentsUpserted": summary.attachments_upserted,
        "attachmentsSkipped": summary.attachments_skipped,
    })


if __name__ == "__main__":
    logging.basicConfig(level=getattr(logging, str(settings.log_level).upper(), logging.INFO))
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    app.run(debug=True, host="0.0.0.0", port=5001)
