"""
Record store port and an in-memory implementation.

The store owns record lifetime. Callers fetch live records, mutate them in
place and call ``commit()``; ``rollback()`` discards everything since the
last commit.
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from .errors import StoreError
from .records import (
    ENTITY_TYPES,
    Attachment,
    LogEntry,
    MaintenanceInterval,
    ServiceBookEntry,
    Vehicle,
    WheelSet,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordStore(ABC):
    """Abstract persistent collection of ledger records."""

    @abstractmethod
    def insert(self, entity: Any) -> None:
        """Add a new record. Raises StoreError if its id is already present."""

    @abstractmethod
    def fetch(
        self,
        entity_type: Type[T],
        predicate: Optional[Callable[[T], bool]] = None,
        sort_key: Optional[Callable[[T], Any]] = None,
    ) -> List[T]:
        """Return records of one type, optionally filtered and sorted."""

    @abstractmethod
    def delete(self, entity: Any) -> None:
        """Remove a record and everything it owns."""

    @abstractmethod
    def commit(self) -> None:
        """Persist pending changes. Raises StoreError on failure."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard changes made since the last successful commit."""

    def get(self, entity_type: Type[T], entity_id: uuid.UUID) -> Optional[T]:
        """Find a single record by id."""
        found = self.fetch(entity_type, lambda e: e.id == entity_id)
        return found[0] if found else None

    # Convenience queries used throughout the core

    def vehicles(self) -> List[Vehicle]:
        return self.fetch(Vehicle, sort_key=lambda v: (v.created_at, str(v.id)))

    def entries_for(self, vehicle: Vehicle) -> List[LogEntry]:
        return self.fetch(LogEntry, lambda e: e.vehicle_id == vehicle.id)

    def intervals_for(self, vehicle: Vehicle) -> List[MaintenanceInterval]:
        return self.fetch(MaintenanceInterval, lambda i: i.vehicle_id == vehicle.id)

    def service_book_for(self, vehicle: Vehicle) -> List[ServiceBookEntry]:
        return self.fetch(ServiceBookEntry, lambda s: s.vehicle_id == vehicle.id)

    def wheel_sets_for(self, vehicle: Vehicle) -> List[WheelSet]:
        return self.fetch(WheelSet, lambda w: w.vehicle_id == vehicle.id)

    def attachments_for(self, entry: LogEntry) -> List[Attachment]:
        return self.fetch(Attachment, lambda a: a.log_entry_id == entry.id)


class MemoryStore(RecordStore):
    """
    Keeps every record in memory.

    Deletes cascade: a vehicle takes its entries, intervals, service-book
    entries and wheel sets with it; an entry takes its attachments.
    """

    def __init__(self):
        self._tables: Dict[type, List[Any]] = {t: [] for t in ENTITY_TYPES}
        self._committed = copy.deepcopy(self._tables)

    def _table(self, entity_type: type) -> List[Any]:
        try:
            return self._tables[entity_type]
        except KeyError:
            raise StoreError(f"Unsupported record type: {entity_type.__name__}") from None

    def insert(self, entity: Any) -> None:
        table = self._table(type(entity))
        if any(existing.id == entity.id for existing in table):
            raise StoreError(f"{type(entity).__name__} {entity.id} already exists")
        table.append(entity)

    def fetch(self, entity_type, predicate=None, sort_key=None):
        rows = [e for e in self._table(entity_type) if predicate is None or predicate(e)]
        if sort_key is not None:
            rows.sort(key=sort_key)
        return rows

    def delete(self, entity: Any) -> None:
        if isinstance(entity, Vehicle):
            for entry in self.entries_for(entity):
                self.delete(entry)
            for owned in (
                self.intervals_for(entity)
                + self.service_book_for(entity)
                + self.wheel_sets_for(entity)
            ):
                self.delete(owned)
        elif isinstance(entity, LogEntry):
            for attachment in self.attachments_for(entity):
                self.delete(attachment)

        table = self._table(type(entity))
        table[:] = [e for e in table if e.id != entity.id]

    def commit(self) -> None:
        self._committed = copy.deepcopy(self._tables)

    def rollback(self) -> None:
        logger.debug("Rolling back uncommitted changes")
        self._tables = copy.deepcopy(self._committed)
