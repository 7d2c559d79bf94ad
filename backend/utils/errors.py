"""Ledger error taxonomy.

Every error raised by the ledger core derives from ``LedgerError``. Errors
tied to a specific expense or settlement carry its ``record_id`` so callers
can report the offending record. ``main.py`` maps each class to an HTTP
status code.
"""

from typing import Optional


class LedgerError(Exception):
    status_code = 400

    def __init__(self, message: str, record_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.record_id = record_id

    def __str__(self) -> str:
        if self.record_id is not None:
            return f"{self.message} (record {self.record_id})"
        return self.message


class StoreUnavailableError(LedgerError):
    """Transient I/O failure against the record store."""
    status_code = 503


class InvalidStateError(LedgerError):
    """Relationship operation attempted from a state that forbids it."""
    status_code = 409


class VersionConflictError(LedgerError):
    """A write was based on a stale version of the record."""
    status_code = 409


class RecordNotFoundError(LedgerError):
    status_code = 404


class ConservationViolationError(LedgerError):
    """Split shares do not sum exactly to the expense amount."""
    status_code = 422


class CurrencyMismatchError(LedgerError):
    status_code = 422


class MalformedRecordError(LedgerError):
    status_code = 422
