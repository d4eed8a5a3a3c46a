#!/usr/bin/env python3
"""Tests for maintenance due calculation."""
from datetime import datetime

from ledger import LogEntry, MaintenanceInterval, Status, Vehicle, calculate_due, resolve_current_km
from ledger.maintenance_due import effective_lead_km

NOW = datetime(2025, 6, 1, 12, 0)


class TestCalculateDueByDistance:
    """Distance channel."""

    def test_warning_within_lead(self):
        """400 km left with the default 500 km lead is a warning."""
        interval = MaintenanceInterval(title="Oil", interval_km=10000, last_done_odometer_km=5000)
        due = calculate_due(interval, current_km=14600, now=NOW)
        assert due.next_due_km == 15000
        assert due.km_until_due == 400
        assert due.status == Status.WARNING
        assert due.is_due

    def test_overdue(self):
        """Past the due odometer is OVERDUE."""
        interval = MaintenanceInterval(title="Oil", interval_km=10000, last_done_odometer_km=5000)
        due = calculate_due(interval, current_km=15001, now=NOW)
        assert due.km_until_due == -1
        assert due.status == Status.OVERDUE

    def test_ok(self):
        """Outside the lead distance is OK."""
        interval = MaintenanceInterval(title="Oil", interval_km=10000, last_done_odometer_km=5000)
        due = calculate_due(interval, current_km=6000, now=NOW)
        assert due.status == Status.OK
        assert not due.is_due

    def test_custom_lead(self):
        """notification_lead_km replaces the 500 km default."""
        interval = MaintenanceInterval(
            title="Oil", interval_km=10000, last_done_odometer_km=5000, notification_lead_km=1000
        )
        assert calculate_due(interval, current_km=14100, now=NOW).status == Status.WARNING
        assert calculate_due(interval, current_km=13900, now=NOW).status == Status.OK

    def test_unknown_without_current_km(self):
        """No odometer reading leaves the distance channel unknown."""
        interval = MaintenanceInterval(title="Oil", interval_km=10000, last_done_odometer_km=5000)
        due = calculate_due(interval, current_km=None, now=NOW)
        assert due.next_due_km == 15000
        assert due.km_until_due is None
        assert due.status == Status.UNKNOWN


class TestCalculateDueByDate:
    """Date channel."""

    def test_due_date_and_days(self):
        """last_done_date + interval_months and days remaining."""
        interval = MaintenanceInterval(title="Inspection", interval_months=12, last_done_date=datetime(2024, 7, 1))
        due = calculate_due(interval, current_km=None, now=NOW)
        assert due.next_due_date == datetime(2025, 7, 1)
        assert due.days_until_due == 30
        assert due.status == Status.WARNING

    def test_overdue_by_date(self):
        """A passed due date is OVERDUE."""
        interval = MaintenanceInterval(title="Inspection", interval_months=12, last_done_date=datetime(2024, 5, 1))
        assert calculate_due(interval, current_km=None, now=NOW).status == Status.OVERDUE

    def test_worst_channel_wins(self):
        """The more urgent channel sets the status."""
        interval = MaintenanceInterval(
            title="Oil",
            interval_km=10000,
            last_done_odometer_km=5000,
            interval_months=12,
            last_done_date=datetime(2024, 5, 1),
        )
        due = calculate_due(interval, current_km=6000, now=NOW)
        assert due.km_status == Status.OK
        assert due.date_status == Status.OVERDUE
        assert due.status == Status.OVERDUE

    def test_no_baseline_is_unknown(self):
        """UNKNOWN when never done."""
        interval = MaintenanceInterval(title="Oil", interval_km=10000, interval_months=12)
        assert calculate_due(interval, current_km=9000, now=NOW).status == Status.UNKNOWN

    def test_disabled_is_unknown(self):
        """Disabled intervals are UNKNOWN."""
        interval = MaintenanceInterval(
            title="Oil", interval_km=10000, last_done_odometer_km=5000, is_enabled=False
        )
        due = calculate_due(interval, current_km=20000, now=NOW)
        assert due.status == Status.UNKNOWN
        assert due.km_until_due == -5000


class TestHelpers:
    """Tests for effective_lead_km and resolve_current_km."""

    def test_default_lead(self):
        assert effective_lead_km(MaintenanceInterval(title="Oil")) == 500
        assert effective_lead_km(MaintenanceInterval(title="Oil", notification_lead_km=-5)) == 0

    def test_current_km_from_entries(self):
        """Highest odometer across all entries."""
        vehicle = Vehicle(name="Car", initial_odometer_km=1000)
        entries = [LogEntry(kind_raw="fuel", odometer_km=5000), LogEntry(kind_raw="note")]
        assert resolve_current_km(vehicle, entries) == 5000

    def test_current_km_falls_back_to_initial(self):
        """Initial odometer when no entry has a reading."""
        vehicle = Vehicle(name="Car", initial_odometer_km=1000)
        assert resolve_current_km(vehicle, []) == 1000
        assert resolve_current_km(Vehicle(name="Car"), []) is None
