#!/usr/bin/env python3
"""Tests for the in-memory record store."""
from datetime import datetime

import pytest

from ledger import (
    Attachment,
    LogEntry,
    MaintenanceInterval,
    MemoryStore,
    ServiceBookEntry,
    StoreError,
    Vehicle,
    WheelSet,
)


@pytest.fixture
def populated():
    """A store with one vehicle owning one of everything."""
    store = MemoryStore()
    vehicle = Vehicle(name="Octavia")
    entry = LogEntry(kind_raw="service", vehicle_id=vehicle.id)
    interval = MaintenanceInterval(title="Oil", vehicle_id=vehicle.id)
    store.insert(vehicle)
    store.insert(entry)
    store.insert(Attachment(original_file_name="r.pdf", uti="com.adobe.pdf", log_entry_id=entry.id))
    store.insert(interval)
    store.insert(ServiceBookEntry(interval_id=interval.id, title="Oil", vehicle_id=vehicle.id))
    store.insert(WheelSet(name="Winter", vehicle_id=vehicle.id))
    store.commit()
    return store, vehicle, entry


class TestInsertFetch:
    """Tests for insert, fetch and get."""

    def test_duplicate_id_rejected(self):
        """Inserting an existing id raises StoreError."""
        store = MemoryStore()
        vehicle = Vehicle(name="A")
        store.insert(vehicle)
        with pytest.raises(StoreError):
            store.insert(Vehicle(name="B", id=vehicle.id))

    def test_unsupported_type(self):
        """Unknown record types raise StoreError."""
        with pytest.raises(StoreError):
            MemoryStore().insert("not a record")

    def test_fetch_with_predicate_and_sort(self):
        store = MemoryStore()
        for odo in (300, 100, 200):
            store.insert(LogEntry(kind_raw="odometer", odometer_km=odo))
        rows = store.fetch(LogEntry, lambda e: e.odometer_km >= 200, sort_key=lambda e: e.odometer_km)
        assert [e.odometer_km for e in rows] == [200, 300]

    def test_get(self, populated):
        store, vehicle, _ = populated
        assert store.get(Vehicle, vehicle.id) is vehicle
        assert store.get(Vehicle, WheelSet(name="x").id) is None

    def test_vehicles_ordered_by_creation(self):
        """Oldest vehicle first."""
        store = MemoryStore()
        newer = Vehicle(name="Newer", created_at=datetime(2024, 5, 1))
        older = Vehicle(name="Older", created_at=datetime(2023, 5, 1))
        store.insert(newer)
        store.insert(older)
        assert [v.name for v in store.vehicles()] == ["Older", "Newer"]


class TestDeleteCascade:
    """Deleting an owner deletes what it owns."""

    def test_vehicle_cascade(self, populated):
        """Deleting a vehicle removes everything it owns."""
        store, vehicle, _ = populated
        store.delete(vehicle)
        for record_type in (Vehicle, LogEntry, Attachment, MaintenanceInterval, ServiceBookEntry, WheelSet):
            assert store.fetch(record_type) == []

    def test_entry_cascade(self, populated):
        """Deleting an entry removes its attachments."""
        store, vehicle, entry = populated
        store.delete(entry)
        assert store.fetch(Attachment) == []
        assert store.fetch(LogEntry) == []
        assert store.fetch(Vehicle) == [vehicle]

    def test_current_wheel_set_is_not_ownership(self, populated):
        """Deleting the current wheel set leaves the vehicle."""
        store, vehicle, _ = populated
        wheel_set = store.fetch(WheelSet)[0]
        vehicle.current_wheel_set_id = wheel_set.id
        store.delete(wheel_set)
        assert store.get(Vehicle, vehicle.id) is vehicle


class TestCommitRollback:
    """Tests for commit and rollback."""

    def test_rollback_discards_uncommitted(self, populated):
        """Rollback drops changes since the last commit."""
        store, vehicle, _ = populated
        store.insert(Vehicle(name="Temp"))
        store.get(Vehicle, vehicle.id).name = "Renamed"
        store.rollback()
        assert [v.name for v in store.vehicles()] == ["Octavia"]

    def test_rollback_after_commit_keeps_committed(self):
        """Committed changes survive a rollback."""
        store = MemoryStore()
        store.insert(Vehicle(name="Kept"))
        store.commit()
        store.rollback()
        assert [v.name for v in store.vehicles()] == ["Kept"]
