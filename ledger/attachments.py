"""Attachment byte storage: the port used by the backup codec and a directory-backed adapter."""

import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from .errors import FileError

logger = logging.getLogger(__name__)

FOLDER_NAME = "Attachments"


class AttachmentFiles(ABC):
    """Reads and writes attachment payloads by relative storage path."""

    @abstractmethod
    def read_bytes(self, relative_path: str) -> Optional[bytes]:
        """Return the file's bytes, or None if there is no such file."""

    @abstractmethod
    def write_bytes(self, data: bytes, suggested_extension: Optional[str] = None) -> str:
        """Store ``data`` under a new name and return its relative path."""

    @abstractmethod
    def delete_file(self, relative_path: str) -> None:
        """Remove a stored file. A missing file is not an error."""


class DirectoryAttachmentFiles(AttachmentFiles):
    """Stores attachments as files under ``<root>/Attachments/``."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _path(self, relative_path: str) -> Path:
        return self.root / relative_path

    def read_bytes(self, relative_path: str) -> Optional[bytes]:
        path = self._path(relative_path)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise FileError(f"Could not read attachment {relative_path}: {e}") from e

    def write_bytes(self, data: bytes, suggested_extension: Optional[str] = None) -> str:
        ext = (suggested_extension or "").strip().lstrip(".")
        name = f"{uuid.uuid4()}.{ext}" if ext else str(uuid.uuid4())
        relative_path = f"{FOLDER_NAME}/{name}"
        path = self._path(relative_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise FileError(f"Could not write attachment {relative_path}: {e}") from e
        logger.debug("Wrote %d bytes to %s", len(data), relative_path)
        return relative_path


    def delete_file(self, relative_path: str) -> None:
        try:
            self._path(relative_path).unlink(missing_ok=True)
        except OSError as e:
            raise FileError(f"Could not delete attachment {relative_path}: {e}") from e
        logger.debug("Deleted %s", relative_path)
