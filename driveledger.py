#!/usr/bin/env python3
"""
Command line interface for the vehicle ledger.

Commands:
  status     - Show maintenance status for every interval of a vehicle
  fuel       - Show fuel fill-ups with their consumption
  reminders  - Preview the reminders that would be scheduled (dry run)
  log-fuel   - Add a fuel fill-up and recalculate consumption
  log-tires  - Add a tire service and switch the current wheel set
  export     - Write a backup file
  import     - Restore a backup file into the ledger
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional

from ledger import (
    CooldownStore,
    DirectoryAttachmentFiles,
    FuelFillKind,
    InMemoryNotificationCenter,
    LedgerError,
    LogEntry,
    LogEntryKind,
    MaintenanceDue,
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
    recalculate_all,
    resolve_current_km,
    sync_all,
    update_vehicle_current_wheel_set_if_latest,
)
from ledger.fuel import sorted_fuel_entries
from ledger.notifications import CalendarTrigger
from ledger.parsing import clean_optional, parse_float, parse_int_optional

logger = logging.getLogger(__name__)

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[int]) -> str:
    """Format a distance for display."""
    return f"{km:,} km" if km is not None else "-"


def format_date(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value is not None else "-"


def format_consumption(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "-"


def format_days(days: Optional[int]) -> str:
    """Format remaining days (e.g. '3mo 15d' or '-2mo 5d')."""
    if days is None:
        return "-"
    sign = "-" if days < 0 else ""
    days = abs(days)
    months, rest = divmod(days, 30)
    if months > 0:
        return f"{sign}{months}mo {rest}d"
    return f"{sign}{days}d"


def parse_date(text: str) -> datetime:
    """argparse type for YYYY-MM-DD (or a full ISO timestamp)."""
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date: '{text}'") from None


def find_vehicle(store, key: str) -> Optional[Vehicle]:
    """Look a vehicle up by id or by name (case-insensitive)."""
    key = key.strip().lower()
    for vehicle in store.vehicles():
        if str(vehicle.id).lower() == key or vehicle.name.strip().lower() == key:
            return vehicle
    return None


def find_wheel_set(store, vehicle: Vehicle, key: str) -> Optional[WheelSet]:
    key = key.strip().lower()
    for wheel_set in store.wheel_sets_for(vehicle):
        if str(wheel_set.id).lower() == key or wheel_set.name.strip().lower() == key:
            return wheel_set
    return None


# =============================================================================
# Status command
# =============================================================================


def make_status_table(dues: List[MaintenanceDue]) -> List[List[str]]:
    """Convert due results to table rows."""
    rows = []
    for due in dues:
        interval = due.interval
        last_done = []
        if interval.last_done_date:
            last_done.append(format_date(interval.last_done_date))
        if interval.last_done_odometer_km is not None:
            last_done.append(format_km(interval.last_done_odometer_km))
        rows.append(
            [
                interval.title,
                " @ ".join(last_done) or "-",
                format_km(due.next_due_km),
                format_date(due.next_due_date),
                format_km(due.km_until_due),
                format_days(due.days_until_due),
            ]
        )
    return rows


def cmd_status(args, store) -> int:
    """Show maintenance status for every interval of a vehicle."""
    vehicle = find_vehicle(store, args.vehicle)
    if vehicle is None:
        print(f"Error: Unknown vehicle '{args.vehicle}'")
        return 1

    entries = store.entries_for(vehicle)
    current_km = resolve_current_km(vehicle, entries)
    dues = [calculate_due(i, current_km) for i in store.intervals_for(vehicle)]

    print(f"Vehicle: {vehicle.name}")
    if vehicle.display_subtitle:
        print(f"Model: {vehicle.display_subtitle}")
    print(f"Current odometer: {format_km(current_km)}")
    if vehicle.current_wheel_set_id is not None:
        wheel_set = store.get(WheelSet, vehicle.current_wheel_set_id)
        if wheel_set is not None:
            print(f"Wheel set: {wheel_set.name} ({wheel_set.summary or '-'})")
    print(f"Intervals: {len(dues)}")
    print()

    headers = ["Interval", "Last Done", "Due (km)", "Due (date)", "Remaining (km)", "Remaining (time)"]
    sections = [
        (Status.OVERDUE, "OVERDUE:"),
        (Status.WARNING, "DUE SOON:"),
        (Status.OK, "OK:"),
    ]
    for status, title in sections:
        group = sorted((d for d in dues if d.status is status), key=lambda d: d.interval.title)
        if group:
            print(title)
            print(tabulate(make_status_table(group), headers=headers, tablefmt="simple"))
            print()

    unknown = [d for d in dues if d.status is Status.UNKNOWN]
    if unknown:
        print("UNKNOWN (no baseline or disabled):")
        for due in sorted(unknown, key=lambda d: d.interval.title):
            print(f"  {due.interval.title}")
        print()

    return 0


# =============================================================================
# Fuel command
# =============================================================================


def cmd_fuel(args, store) -> int:
    """Show fuel fill-ups with their consumption."""
    vehicle = find_vehicle(store, args.vehicle)
    if vehicle is None:
        print(f"Error: Unknown vehicle '{args.vehicle}'")
        return 1

    entries = store.entries_for(vehicle)
    fuels = sorted_fuel_entries(entries)
    print(f"Vehicle: {vehicle.name}")
    print(f"Fill-ups: {len(fuels)}")
    average = average_consumption(fuels)
    if average is not None:
        print(f"Average consumption: {average:.2f} L/100km")
    print()

    if not fuels:
        print("No fuel entries found.")
        return 0

    if args.series:
        mode = SeriesMode(args.series)
        rows = [[format_date(d), format_consumption(v)] for d, v in consumption_series(entries, mode)]
        print(tabulate(rows, headers=["Date", "L/100km"], tablefmt="simple"))
        return 0

    rows = [
        [
            format_date(e.date),
            format_km(e.odometer_km),
            format_consumption(e.fuel_liters),
            e.fuel_fill_kind.value,
            format_consumption(e.fuel_consumption_l_per_100km),
            e.fuel_station or "-",
        ]
        for e in fuels
    ]
    headers = ["Date", "Odometer", "Liters", "Fill", "L/100km", "Station"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# Reminders command
# =============================================================================


def cmd_reminders(args, store, settings) -> int:
    """Preview the reminders a sync would schedule, without scheduling anything."""
    vehicle = find_vehicle(store, args.vehicle)
    if vehicle is None:
        print(f"Error: Unknown vehicle '{args.vehicle}'")
        return 1

    center = InMemoryNotificationCenter()
    cooldowns = CooldownStore(settings.cooldown_path)
    # Preview only: existing cooldowns are honoured but never written back.
    cooldowns.path = None
    asyncio.run(
        sync_all(vehicle, store.intervals_for(vehicle), store.entries_for(vehicle), center, cooldowns)
    )

    print(f"Vehicle: {vehicle.name}")
    print(f"Reminders: {len(center.pending)}")
    print()
    if not center.pending:
        print("Nothing would be scheduled.")
        return 0

    rows = []
    for identifier, request in sorted(center.pending.items()):
        trigger = request.trigger
        if isinstance(trigger, CalendarTrigger):
            when = trigger.fire_at.strftime("%Y-%m-%d %H:%M")
            if trigger.repeats:
                when = f"daily at {trigger.fire_at.strftime('%H:%M')}"
        else:
            when = "now"
        rows.append([request.content.title, request.content.body, when, identifier])
    print(tabulate(rows, headers=["Interval", "Message", "When", "Id"], tablefmt="simple"))
    return 0


# =============================================================================
# Log commands
# =============================================================================


def cmd_log_fuel(args, store) -> int:
    """Add a fuel fill-up and recalculate consumption for the vehicle."""
    vehicle = find_vehicle(store, args.vehicle)
    if vehicle is None:
        print(f"Error: Unknown vehicle '{args.vehicle}'")
        return 1

    liters = parse_float(args.liters)
    if liters is None or liters <= 0:
        print(f"Error: Invalid liters '{args.liters}'")
        return 1

    entry = LogEntry(
        kind_raw=LogEntryKind.FUEL.value,
        vehicle_id=vehicle.id,
        date=args.date or datetime.now(),
        odometer_km=parse_int_optional(args.odometer),
        fuel_liters=liters,
        fuel_price_per_liter=parse_float(args.price),
        fuel_station=clean_optional(args.station),
    )
    entry.fuel_fill_kind = FuelFillKind.PARTIAL if args.partial else FuelFillKind.FULL
    if entry.fuel_price_per_liter is not None:
        entry.total_cost = round(liters * entry.fuel_price_per_liter, 2)

    entries = store.entries_for(vehicle) + [entry]
    recalculate_all(entries)

    print(f"Adding fuel entry to {vehicle.name}:")
    print(f"  Date:     {format_date(entry.date)}")
    print(f"  Odometer: {format_km(entry.odometer_km)}")
    print(f"  Liters:   {liters:.2f} ({entry.fuel_fill_kind.value})")
    print(f"  L/100km:  {format_consumption(entry.fuel_consumption_l_per_100km)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        store.rollback()
        return 0

    store.insert(entry)
    store.commit()
    print("Entry saved.")
    return 0


def cmd_log_tires(args, store) -> int:
    """Add a tire service and move the current wheel set if it is the latest."""
    vehicle = find_vehicle(store, args.vehicle)
    if vehicle is None:
        print(f"Error: Unknown vehicle '{args.vehicle}'")
        return 1

    wheel_set = find_wheel_set(store, vehicle, args.wheel_set)
    if wheel_set is None:
        print(f"Error: Unknown wheel set '{args.wheel_set}'")
        return 1

    entry = LogEntry(
        kind_raw=LogEntryKind.TIRE_SERVICE.value,
        vehicle_id=vehicle.id,
        date=args.date or datetime.now(),
        odometer_km=parse_int_optional(args.odometer),
        service_title=clean_optional(args.title),
        wheel_set_id=wheel_set.id,
        notes=clean_optional(args.notes),
    )

    switched = update_vehicle_current_wheel_set_if_latest(
        vehicle, store.entries_for(vehicle), entry.id, entry.date, wheel_set.id
    )

    print(f"Adding tire service to {vehicle.name}:")
    print(f"  Date:      {format_date(entry.date)}")
    print(f"  Wheel set: {wheel_set.name}")
    if switched:
        print("  Current wheel set updated.")
    else:
        print("  A later tire service exists; current wheel set unchanged.")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        store.rollback()
        return 0

    store.insert(entry)
    store.commit()
    print("Entry saved.")
    return 0


# =============================================================================
# Backup commands
# =============================================================================


def cmd_export(args, store, files) -> int:
    """Write a backup of the whole ledger."""
    data = export_bytes(store, files)
    args.output.write_bytes(data)
    print(f"Wrote {len(data):,} bytes to {args.output}")
    return 0


def cmd_import(args, store, files) -> int:
    """Restore a backup into the ledger."""
    if not args.input.exists():
        print(f"Error: File not found: {args.input}")
        return 1
    summary = import_bytes(args.input.read_bytes(), store, files)
    print(summary.message)
    return 0


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Vehicle ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s status "Daily driver"
  %(prog)s fuel "Daily driver" --series fullToFull
  %(prog)s reminders "Daily driver"
  %(prog)s log-fuel "Daily driver" 42,5 --odometer 58000 --price 1.89
  %(prog)s log-tires "Daily driver" "Winter set" --date 2024-11-02
  %(prog)s export backup.json
  %(prog)s import backup.json
""",
    )
    parser.add_argument("--config", type=Path, help="Path to settings YAML file")
    parser.add_argument("--store", type=Path, help="Path to ledger YAML file (overrides settings)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    status_parser = subparsers.add_parser("status", help="Show maintenance status")
    status_parser.add_argument("vehicle", help="Vehicle name or id")

    fuel_parser = subparsers.add_parser("fuel", help="Show fuel fill-ups")
    fuel_parser.add_argument("vehicle", help="Vehicle name or id")
    fuel_parser.add_argument(
        "--series",
        choices=[m.value for m in SeriesMode],
        help="Show a consumption series instead of the fill-up list",
    )

    reminders_parser = subparsers.add_parser("reminders", help="Preview scheduled reminders")
    reminders_parser.add_argument("vehicle", help="Vehicle name or id")

    log_fuel_parser = subparsers.add_parser("log-fuel", help="Add a fuel fill-up")
    log_fuel_parser.add_argument("vehicle", help="Vehicle name or id")
    log_fuel_parser.add_argument("liters", help="Liters filled (comma or dot decimals)")
    log_fuel_parser.add_argument("--odometer", help="Odometer reading in km")
    log_fuel_parser.add_argument("--date", type=parse_date, help="Date in YYYY-MM-DD format (default: now)")
    log_fuel_parser.add_argument("--price", help="Price per liter")
    log_fuel_parser.add_argument("--station", help="Fuel station")
    log_fuel_parser.add_argument("--partial", action="store_true", help="Top-up rather than a full tank")
    log_fuel_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be added without saving"
    )

    log_tires_parser = subparsers.add_parser("log-tires", help="Add a tire service")
    log_tires_parser.add_argument("vehicle", help="Vehicle name or id")
    log_tires_parser.add_argument("wheel_set", help="Wheel set name or id")
    log_tires_parser.add_argument("--odometer", help="Odometer reading in km")
    log_tires_parser.add_argument("--date", type=parse_date, help="Date in YYYY-MM-DD format (default: now)")
    log_tires_parser.add_argument("--title", help="Service title")
    log_tires_parser.add_argument("--notes", help="Notes")
    log_tires_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be added without saving"
    )

    export_parser = subparsers.add_parser("export", help="Write a backup file")
    export_parser.add_argument("output", type=Path, help="Backup file to write")

    import_parser = subparsers.add_parser("import", help="Restore a backup file")
    import_parser.add_argument("input", type=Path, help="Backup file to read")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    settings = load_settings(args.config)
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        store_path = args.store or settings.store_path
        logger.debug("Using store %s", store_path)
        store = load_store(store_path)
        files = DirectoryAttachmentFiles(settings.attachments_dir)

        if args.command == "status":
            return cmd_status(args, store)
        elif args.command == "fuel":
            return cmd_fuel(args, store)
        elif args.command == "reminders":
            return cmd_reminders(args, store, settings)
        elif args.command == "log-fuel":
            return cmd_log_fuel(args, store)
        elif args.command == "log-tires":
            return cmd_log_tires(args, store)
        elif args.command == "export":
            return cmd_export(args, store, files)
        elif args.command == "import":
            return cmd_import(args, store, files)
    except LedgerError as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
