"""Error taxonomy for the ledger core."""


class LedgerError(Exception):
    """Base class for every error raised by the ledger core."""


class DecodeError(LedgerError):
    """A backup document could not be decoded. Raised before any mutation."""


class StoreError(LedgerError):
    """The record store rejected an insert or failed to commit."""


class FileError(LedgerError):
    """An attachment file could not be read or written."""


class NotificationError(LedgerError):
    """Authorization or scheduling failed. Never surfaced by the scheduler."""
