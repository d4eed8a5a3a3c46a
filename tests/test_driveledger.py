#!/usr/bin/env python3
"""Tests for the driveledger CLI helpers and commands."""

import argparse
from datetime import datetime

import pytest

from driveledger import (
    find_vehicle,
    format_consumption,
    format_days,
    format_km,
    main,
    make_status_table,
    parse_date,
)
from ledger import (
    LogEntry,
    MaintenanceDue,
    MaintenanceInterval,
    MemoryStore,
    Status,
    Vehicle,
    WheelSet,
    load_store,
    recalculate_all,
)


@pytest.fixture
def ledger_path(tmp_path, monkeypatch):
    """A saved ledger with one vehicle, two fill-ups, one interval and two wheel sets."""
    monkeypatch.chdir(tmp_path)
    for name in ("STORE_PATH", "ATTACHMENTS_DIR", "COOLDOWN_PATH", "LOG_LEVEL"):
        monkeypatch.delenv(f"DRIVELEDGER_{name}", raising=False)

    path = tmp_path / "ledger.yaml"
    store = load_store(path)
    vehicle = Vehicle(name="Octavia", make="Skoda", model="Octavia", initial_odometer_km=40000)
    summer = WheelSet(name="Summer", vehicle_id=vehicle.id, tire_size="205/55 R16", tire_season_raw="summer")
    winter = WheelSet(name="Winter", vehicle_id=vehicle.id, tire_season_raw="winter")
    vehicle.current_wheel_set_id = summer.id
    fuels = [
        LogEntry(kind_raw="fuel", vehicle_id=vehicle.id, date=datetime(2024, 4, 1), odometer_km=57500, fuel_liters=40),
        LogEntry(kind_raw="fuel", vehicle_id=vehicle.id, date=datetime(2024, 5, 1), odometer_km=58000, fuel_liters=30),
    ]
    recalculate_all(fuels)
    oil = MaintenanceInterval(
        title="Oil",
        vehicle_id=vehicle.id,
        interval_km=10000,
        last_done_odometer_km=40000,
        notifications_enabled=True,
    )
    for record in [vehicle, summer, winter, oil, *fuels]:
        store.insert(record)
    store.commit()
    return path


def run(ledger_path, *args):
    return main(["--store", str(ledger_path), *args])


class TestFormatting:
    """Tests for the display helpers."""

    def test_format_km(self):
        assert format_km(58000) == "58,000 km"
        assert format_km(-250) == "-250 km"
        assert format_km(None) == "-"

    def test_format_consumption(self):
        assert format_consumption(11.25) == "11.25"
        assert format_consumption(None) == "-"

    def test_format_days(self):
        """Months of 30 days, with a sign when overdue."""
        assert format_days(105) == "3mo 15d"
        assert format_days(14) == "14d"
        assert format_days(-65) == "-2mo 5d"
        assert format_days(None) == "-"

    def test_parse_date(self):
        """ISO dates parse; anything else is an argparse error."""
        assert parse_date("2024-11-02") == datetime(2024, 11, 2)
        with pytest.raises(argparse.ArgumentTypeError):
            parse_date("next tuesday")


class TestFindVehicle:
    """Tests for find_vehicle."""

    def test_by_name_or_id(self):
        """Case-insensitive name or id."""
        store = MemoryStore()
        vehicle = Vehicle(name="Daily Driver")
        store.insert(vehicle)
        assert find_vehicle(store, "daily driver") is vehicle
        assert find_vehicle(store, str(vehicle.id).upper()) is vehicle
        assert find_vehicle(store, "Weekend car") is None


class TestMakeStatusTable:
    """Tests for make_status_table."""

    def test_row(self):
        """Last done shows date and odometer joined with @."""
        interval = MaintenanceInterval(
            title="Oil", interval_km=10000, last_done_odometer_km=40000, last_done_date=datetime(2024, 1, 5)
        )
        due = MaintenanceDue(interval=interval, status=Status.OVERDUE, next_due_km=50000, km_until_due=-8000)
        assert make_status_table([due]) == [["Oil", "2024-01-05 @ 40,000 km", "50,000 km", "-", "-8,000 km", "-"]]


class TestCommands:
    """End-to-end runs of main() against a YAML ledger."""

    def test_status(self, ledger_path, capsys):
        """Vehicle header, wheel set and the overdue section."""
        assert run(ledger_path, "status", "octavia") == 0
        out = capsys.readouterr().out
        assert "Vehicle: Octavia" in out
        assert "Current odometer: 58,000 km" in out
        assert "Wheel set: Summer" in out
        assert "OVERDUE:" in out

    def test_unknown_vehicle(self, ledger_path, capsys):
        """Unknown vehicle exits with 1."""
        assert run(ledger_path, "status", "Fabia") == 1
        assert "Unknown vehicle" in capsys.readouterr().out

    def test_fuel(self, ledger_path, capsys):
        """Fill-up count and average consumption."""
        assert run(ledger_path, "fuel", "Octavia") == 0
        out = capsys.readouterr().out
        assert "Fill-ups: 2" in out
        assert "Average consumption: 6.00 L/100km" in out

    def test_fuel_series(self, ledger_path, capsys):
        assert run(ledger_path, "fuel", "Octavia", "--series", "fullToFull") == 0
        assert "6.00" in capsys.readouterr().out

    def test_log_fuel(self, ledger_path, capsys):
        """Comma decimals accepted; consumption saved with the entry."""
        assert run(ledger_path, "log-fuel", "Octavia", "42,5", "--odometer", "58500", "--date", "2024-06-01") == 0
        assert "L/100km:  8.50" in capsys.readouterr().out

        store = load_store(ledger_path)
        fuels = [e for e in store.fetch(LogEntry) if e.odometer_km == 58500]
        assert len(fuels) == 1
        assert fuels[0].fuel_liters == 42.5
        assert fuels[0].fuel_consumption_l_per_100km == pytest.approx(8.5)

    def test_log_fuel_dry_run(self, ledger_path, capsys):
        """Nothing is saved with --dry-run."""
        assert run(ledger_path, "log-fuel", "Octavia", "40", "--odometer", "58500", "--dry-run") == 0
        assert "dry run" in capsys.readouterr().out
        assert len(load_store(ledger_path).fetch(LogEntry)) == 2

    def test_log_fuel_invalid_liters(self, ledger_path, capsys):
        """Unparsable liters exit with 1."""
        assert run(ledger_path, "log-fuel", "Octavia", "lots") == 1
        assert "Invalid liters" in capsys.readouterr().out

    def test_log_tires_switches_wheel_set(self, ledger_path, capsys):
        """The newest tire service moves the current wheel set."""
        assert run(ledger_path, "log-tires", "Octavia", "winter", "--date", "2024-11-02") == 0
        assert "Current wheel set updated." in capsys.readouterr().out

        store = load_store(ledger_path)
        [vehicle] = store.vehicles()
        [winter] = [w for w in store.wheel_sets_for(vehicle) if w.name == "Winter"]
        assert vehicle.current_wheel_set_id == winter.id

    def test_log_tires_unknown_wheel_set(self, ledger_path, capsys):
        assert run(ledger_path, "log-tires", "Octavia", "Spare") == 1
        assert "Unknown wheel set" in capsys.readouterr().out

    def test_reminders_preview_does_not_persist(self, ledger_path, tmp_path, capsys):
        """Preview lists the mileage alert without writing cooldowns."""
        assert run(ledger_path, "reminders", "Octavia") == 0
        out = capsys.readouterr().out
        assert "Reminders: 1" in out
        assert "Overdue by 8000 km." in out
        assert not (tmp_path / "cooldowns.yaml").exists()

    def test_reminders_with_broken_cooldown_file(self, ledger_path, tmp_path, capsys):
        """A corrupt cooldown file is ignored and left untouched."""
        cooldowns = tmp_path / "cooldowns.yaml"
        cooldowns.write_text("maintenance.notifications.cooldown.x: [2025-01-01\n")
        assert run(ledger_path, "reminders", "Octavia") == 0
        assert "Reminders: 1" in capsys.readouterr().out
        assert cooldowns.read_text() == "maintenance.notifications.cooldown.x: [2025-01-01\n"

    def test_export_then_import(self, ledger_path, tmp_path, capsys):
        """A backup written by export restores into an empty ledger."""
        backup = tmp_path / "backup.json"
        assert run(ledger_path, "export", str(backup)) == 0
        assert backup.exists()

        fresh = tmp_path / "fresh.yaml"
        assert run(fresh, "import", str(backup)) == 0
        assert "Imported 1 vehicles, 2 entries" in capsys.readouterr().out
        assert [v.name for v in load_store(fresh).vehicles()] == ["Octavia"]

    def test_import_missing_file(self, ledger_path, tmp_path, capsys):
        assert run(ledger_path, "import", str(tmp_path / "missing.json")) == 1
        assert "File not found" in capsys.readouterr().out

    def test_import_invalid_backup(self, ledger_path, tmp_path, capsys):
        """A decode error is reported, exit code 1."""
        bad = tmp_path / "bad.json"
        bad.write_text('{"vehicles": []}')
        assert run(ledger_path, "import", str(bad)) == 1
        assert "Error:" in capsys.readouterr().out
