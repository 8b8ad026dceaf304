"""
Ledger Exceptions

Every error the ledger raises derives from LedgerError so callers
(the terminal front end) can catch one type and show the message.

- ValidationError: bad input, rejected before anything is written
- OutOfRangeError: a date or month outside the configured year span
- StorageError and subclasses: database failures, unknown ids

Storage errors are re-exported from rexledger.services.storage for callers
that only deal with persistence.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for all ledger operations."""
    pass


class ValidationError(LedgerError):
    """
    Malformed transaction or method input.

    `field` names the input at fault (date, amount, method, kind, ...).
    `issues` carries every ValidationIssue found, errors and warnings.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        issues: Optional[list] = None,
    ):
        super().__init__(message)
        self.field = field
        self.issues = issues or []


class OutOfRangeError(LedgerError):
    """Date or month index falls outside the materialized month span."""
    pass


class StorageError(LedgerError):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class DatabaseConnectionError(StorageError):
    """Could not open the ledger database."""
    pass
