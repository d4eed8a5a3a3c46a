"""YAML file persistence for the record store."""

import dataclasses
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .errors import StoreError
from .records import (
    Attachment,
    LogEntry,
    MaintenanceInterval,
    ServiceBookEntry,
    Vehicle,
    WheelSet,
)
from .store import MemoryStore

logger = logging.getLogger(__name__)

# Section name in the file -> record type. Order is the write order.
SECTIONS = {
    "vehicles": Vehicle,
    "wheelSets": WheelSet,
    "logEntries": LogEntry,
    "attachments": Attachment,
    "maintenanceIntervals": MaintenanceInterval,
    "serviceBookEntries": ServiceBookEntry,
}


class _Dumper(yaml.SafeDumper):
    pass


class _Loader(yaml.SafeLoader):
    pass


_Dumper.add_representer(
    uuid.UUID, lambda dumper, value: dumper.represent_scalar("!uuid", str(value))
)
_Loader.add_constructor(
    "!uuid", lambda loader, node: uuid.UUID(loader.construct_scalar(node))
)


def _camel(name: str) -> str:
    """Convert snake_case field names to the camelCase keys used on disk."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _record_to_dict(record: Any) -> Dict[str, Any]:
    """Serialize a record, omitting None values for cleaner YAML."""
    return {
        _camel(key): value
        for key, value in dataclasses.asdict(record).items()
        if value is not None
    }


def _record_from_dict(record_type: type, dct: Dict[str, Any]) -> Any:
    names = {_camel(f.name): f.name for f in dataclasses.fields(record_type)}
    kwargs = {names[key]: value for key, value in dct.items() if key in names}
    return record_type(**kwargs)


class YamlStore(MemoryStore):
    """A MemoryStore that writes itself to a YAML file on every commit."""

    def __init__(self, filename: Union[str, Path]):
        super().__init__()
        self.filename = Path(filename)

    def commit(self) -> None:
        data = {
            section: [_record_to_dict(r) for r in self.fetch(record_type)]
            for section, record_type in SECTIONS.items()
        }
        try:
            with open(self.filename, "w") as fp:
                yaml.dump(
                    data,
                    fp,
                    Dumper=_Dumper,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Could not write {self.filename}: {e}") from e
        super().commit()


def load_store(filename: Union[str, Path]) -> YamlStore:
    """
    Load a store from a YAML file.

    A missing file gives an empty store that will be created on first commit.
    """
    store = YamlStore(filename)
    path = Path(filename)
    if not path.exists():
        logger.info("Store file %s not found, starting empty", path)
        return store

    try:
        with open(path, "r") as fp:
            data = yaml.load(fp, Loader=_Loader) or {}
    except (OSError, yaml.YAMLError) as e:
        raise StoreError(f"Could not read {path}: {e}") from e

    for section, record_type in SECTIONS.items():
        for dct in data.get(section) or []:
            store.insert(_record_from_dict(record_type, dct))
    # Loaded state is the committed baseline.
    MemoryStore.commit(store)
    return store
